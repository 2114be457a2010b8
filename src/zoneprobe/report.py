"""Final report rendering.

Read-only projection of the run ledger into a Rich table: one row per
partition, plus a totals caption.
"""

from collections.abc import Sequence

from rich.console import Console
from rich.table import Table

from zoneprobe.models import PartitionOutcome


def zone_display(region: str, zone: str) -> str:
    """Zone column value: "<region>-<zone>" unless the zone already carries the region."""
    if zone.startswith(f"{region}-"):
        return zone
    return f"{region}-{zone}"


def render_report(outcomes: Sequence[PartitionOutcome], region: str) -> Table:
    """Build the results table for a run."""
    succeeded = sum(o.succeeded for o in outcomes)
    failed = sum(o.failed for o in outcomes)

    table = Table(
        title=f"Provisioning results for [cyan]{region}[/cyan]",
        caption=f"Total: {succeeded} created, {failed} failed across {len(outcomes)} partition(s)",
        show_header=True,
        header_style="bold",
        border_style="dim",
    )
    table.add_column("VM Size", style="white")
    table.add_column("Zone")
    table.add_column("Group", justify="right")
    table.add_column("Created", justify="right")
    table.add_column("Failed", justify="right")

    if not outcomes:
        table.add_row("[dim]No partitions completed[/dim]", "", "", "", "")
        return table

    for outcome in outcomes:
        created = f"[green]{outcome.succeeded}[/green]" if outcome.succeeded else "0"
        failures = f"[red]{outcome.failed}[/red]" if outcome.failed else "0"
        table.add_row(
            outcome.size,
            zone_display(region, outcome.zone),
            str(outcome.group),
            created,
            failures,
        )

    return table


def display_report(console: Console, outcomes: Sequence[PartitionOutcome], region: str) -> None:
    console.print()
    console.print(render_report(outcomes, region))


__all__ = ["display_report", "render_report", "zone_display"]
