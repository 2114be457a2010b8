"""Tests for report module."""

from rich.console import Console

from zoneprobe.models import PartitionOutcome
from zoneprobe.report import display_report, render_report, zone_display


def _render(table) -> str:
    console = Console(width=120, no_color=True, record=True)
    console.print(table)
    return console.export_text()


class TestZoneDisplay:
    def test_prefixes_region(self):
        assert zone_display("eastus", "1") == "eastus-1"

    def test_zoneless(self):
        assert zone_display("westus", "none") == "westus-none"

    def test_zone_already_carries_region(self):
        assert zone_display("us-east4", "us-east4-a") == "us-east4-a"


class TestRenderReport:
    """Test the results table."""

    def test_one_row_per_outcome(self):
        outcomes = [
            PartitionOutcome(size="Standard_D2s_v5", zone="1", group=1, succeeded=8, failed=0),
            PartitionOutcome(size="Standard_D2s_v5", zone="1", group=2, succeeded=5, failed=3),
        ]

        table = render_report(outcomes, "eastus")

        assert table.row_count == 2
        headers = [c.header for c in table.columns]
        assert headers == ["VM Size", "Zone", "Group", "Created", "Failed"]
        text = _render(table)
        assert "eastus-1" in text
        assert "Total: 13 created, 3 failed across 2 partition(s)" in text

    def test_empty_report(self):
        table = render_report([], "eastus")

        assert table.row_count == 1
        assert "No partitions completed" in _render(table)

    def test_display_report_prints_table(self):
        console = Console(width=120, no_color=True, record=True)
        outcomes = [PartitionOutcome(size="s", zone="none", group=1, succeeded=1, failed=0)]

        display_report(console, outcomes, "westus")

        assert "westus-none" in console.export_text()
