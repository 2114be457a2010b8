"""Command-line interface for zoneprobe.

Probes whether N instances of a size can actually be provisioned in a region
right now. Creates every instance across the region's zones (optionally in
fixed-size placement groups), records per-partition success and failure
counts, prints a results table and deletes everything it created.

Commands:
    zoneprobe -r eastus -s Standard_D2s_v5 -n 20 --dnodes
    zoneprobe -p gcp -r us-east4 -i n2d-standard-2 -n 4 --role dnode
"""

import logging
import os
import sys

import click
from rich.console import Console

from zoneprobe import __version__, naming
from zoneprobe.config_manager import SUPPORTED_PROVIDERS, ConfigManager, ProbeConfig
from zoneprobe.errors import ProbeError, ValidationError
from zoneprobe.models import RunSpec
from zoneprobe.probe import ProbeOrchestrator
from zoneprobe.report import display_report

logger = logging.getLogger(__name__)

LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
ROLES = ("dnode", "cnode")


class ProbeCommand(click.Command):
    """Click command that shows help and exits 1 on usage errors."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        try:
            return super().parse_args(ctx, args)
        except (
            click.exceptions.UsageError,
            click.exceptions.BadParameter,
            click.exceptions.MissingParameter,
        ) as e:
            click.echo(f"Error: {e.format_message()}", err=True)
            click.echo("")
            click.echo(ctx.get_help())
            ctx.exit(1)
            return []  # never reached


def setup_logging(verbose: bool) -> None:
    """Configure root logging once per process."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="[%(asctime)s] %(name)s: %(message)s",
            datefmt=LOG_DATE_FORMAT,
        )
    else:
        logging.basicConfig(
            level=logging.INFO, format="[%(asctime)s] %(message)s", datefmt=LOG_DATE_FORMAT
        )


def build_run_spec(
    config: ProbeConfig,
    *,
    provider: str | None,
    region: str,
    size: str,
    count: int,
    zone: str | None = None,
    dnodes: bool = False,
    cnodes: bool = False,
    ungrouped: bool = False,
    role: str | None = None,
    image: str | None = None,
    run_id: str | None = None,
) -> RunSpec:
    """Validate option combinations and build the run.

    Performs no external calls.

    Raises:
        ValidationError: If the options are inconsistent
        ConfigError: If the provider has no settings
    """
    provider = provider or config.default_provider
    settings = config.provider_settings(provider)

    if count <= 0:
        raise ValidationError("Number of instances must be a positive integer")

    flags = (("--dnodes", dnodes), ("--cnodes", cnodes), ("--ungrouped", ungrouped))
    selected = [flag for flag, on in flags if on]
    if len(selected) > 1:
        raise ValidationError(f"Cannot specify both {selected[0]} and {selected[1]}")
    if not selected and provider == "azure":
        raise ValidationError("Must specify either --dnodes or --cnodes (or --ungrouped)")

    group_size: int | None = None
    if dnodes:
        group_size = config.large_group_size
        role = role or "dnode"
    elif cnodes:
        group_size = config.small_group_size
        role = role or "cnode"

    if provider == "gcp" and role is None:
        raise ValidationError("Missing required parameter: --role")

    if zone and settings.is_zoneless(region):
        raise ValidationError(
            f"Cannot specify --zone with region {region}, as zones are not used in this region"
        )

    return RunSpec(
        provider=provider,
        region=region,
        size=size,
        count=count,
        run_id=run_id or naming.new_run_id(),
        image=image or settings.image,
        zone=zone or None,
        group_size=group_size,
        role=role,
    )


@click.command(cls=ProbeCommand, context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-r", "--region", required=True, help="Region to probe (e.g. eastus, us-east4)")
@click.option(
    "-s",
    "--size",
    "-i",
    "--instance-type",
    "size",
    required=True,
    help="VM size or machine type (e.g. Standard_D2s_v5, n2d-standard-2)",
)
@click.option(
    "-n",
    "--number",
    "count",
    type=click.IntRange(min=1),
    required=True,
    help="Number of instances to create per zone",
)
@click.option("--zone", help="Probe only this zone (skips zone discovery)")
@click.option("--dnodes", is_flag=True, help="Place instances in groups of 16 (configurable)")
@click.option("--cnodes", is_flag=True, help="Place instances in groups of 8 (configurable)")
@click.option("--ungrouped", is_flag=True, help="One placement group per zone")
@click.option("--role", type=click.Choice(ROLES), help="Node role; dnode attaches local SSDs")
@click.option(
    "-p",
    "--provider",
    type=click.Choice(SUPPORTED_PROVIDERS),
    help="Cloud provider (default: azure, or default_provider from config)",
)
@click.option("--image", help="Image override (default from config)")
@click.option(
    "--config",
    "config_file",
    type=click.Path(),
    help="Config file path (default: ~/.zoneprobe/config.toml)",
)
@click.option("-v", "--verbose", is_flag=True, help="Log every cloud CLI command")
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.version_option(version=__version__)
def main(
    region: str,
    size: str,
    count: int,
    zone: str | None,
    dnodes: bool,
    cnodes: bool,
    ungrouped: bool,
    role: str | None,
    provider: str | None,
    image: str | None,
    config_file: str | None,
    verbose: bool,
    no_color: bool,
) -> None:
    """zoneprobe - check whether cloud capacity is actually available.

    Creates NUMBER instances of SIZE in every zone of REGION that offers it,
    counts how many succeeded and failed per zone and placement group, and
    deletes everything afterwards.

    \b
    EXAMPLES:
        # 20 Azure VMs per zone, in placement groups of 16
        $ zoneprobe -r eastus -s Standard_D2s_v5 -n 20 --dnodes

    \b
        # One specific zone, groups of 8
        $ zoneprobe -r eastus -s Standard_D2s_v5 -n 8 --cnodes --zone 2

    \b
        # GCP storage nodes (local NVMe SSDs attached)
        $ zoneprobe -p gcp -r us-east4 -i n2d-standard-2 -n 4 --role dnode

    \b
    CONFIGURATION:
        Config file: ~/.zoneprobe/config.toml
        Results are appended to a zoneprobe-*-results.log file in results_dir
        (default: the system temp directory).

    Exits 0 when the probe completes, even if some instances failed.
    """
    setup_logging(verbose)
    plain = no_color or bool(os.getenv("NO_COLOR"))
    # None lets click decide from the terminal
    color = False if plain else None
    console = Console(no_color=True) if plain else Console()

    try:
        config = ConfigManager.load_config(config_file)
        run = build_run_spec(
            config,
            provider=provider,
            region=region,
            size=size,
            count=count,
            zone=zone,
            dnodes=dnodes,
            cnodes=cnodes,
            ungrouped=ungrouped,
            role=role,
            image=image,
        )
        logger.info(
            f"Probing {run.count} x {run.size} in {run.region} on {run.provider} (run {run.run_id})"
        )
        result = ProbeOrchestrator(run, config).run()
    except ProbeError as e:
        click.secho(f"Error: {e}", fg="red", err=True, color=color)
        sys.exit(e.exit_code)

    display_report(console, result.outcomes, run.region)
    click.echo(f"\nResults written to {result.ledger_path}")
    if result.teardown and result.teardown.warnings:
        click.secho(
            f"Warning: {len(result.teardown.warnings)} resource(s) could not be deleted; "
            f"check the log above for manual cleanup",
            fg="yellow",
            err=True,
            color=color,
        )


if __name__ == "__main__":
    main()
