"""Tests for the zoneprobe command line.

Exit codes: 0 when a probe completes (also with failed instances), 1 for
usage, validation and fatal errors. Help never touches the cloud.
"""

from unittest.mock import patch

import pytest
from click.testing import CliRunner

from tests.mocks.fake_provider import FakeProvider
from zoneprobe import __version__
from zoneprobe.cli import build_run_spec, main
from zoneprobe.config_manager import ProbeConfig
from zoneprobe.errors import ValidationError

AZURE_ARGS = ["-r", "eastus", "-s", "Standard_D2s_v5", "-n", "4", "--cnodes"]


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def mock_orchestrator():
    with patch("zoneprobe.cli.ProbeOrchestrator") as mock:
        yield mock


@pytest.fixture
def fake_cloud():
    """Route the real orchestrator to a FakeProvider."""
    providers: list[FakeProvider] = []

    def make_provider(name, config):
        provider = FakeProvider(config, config.provider_settings(name), **fake_cloud_options)
        providers.append(provider)
        return provider

    fake_cloud_options: dict = {}
    with (
        patch("zoneprobe.probe.get_provider", side_effect=make_provider),
        patch("zoneprobe.probe.PrerequisiteChecker.require"),
    ):
        yield providers, fake_cloud_options


class TestHelpAndVersion:
    """Test side-effect-free options."""

    def test_help_exits_zero(self, runner, mock_orchestrator):
        result = runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        assert "Usage:" in result.output
        assert "--dnodes" in result.output
        mock_orchestrator.assert_not_called()

    def test_short_help_with_other_options(self, runner, mock_orchestrator):
        result = runner.invoke(main, ["-r", "eastus", "-h"])

        assert result.exit_code == 0
        mock_orchestrator.assert_not_called()

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output


class TestUsageErrors:
    """Usage errors exit 1 and show help."""

    @pytest.mark.parametrize("number", ["0", "-3", "abc"])
    def test_invalid_number(self, runner, mock_orchestrator, number):
        args = ["-r", "eastus", "-s", "Standard_D2s_v5", "-n", number, "--cnodes"]

        result = runner.invoke(main, args)

        assert result.exit_code == 1
        assert "Error:" in result.output
        assert "Usage:" in result.output
        mock_orchestrator.assert_not_called()

    def test_missing_region(self, runner, mock_orchestrator):
        result = runner.invoke(main, ["-s", "Standard_D2s_v5", "-n", "4", "--cnodes"])

        assert result.exit_code == 1
        assert "region" in result.output
        mock_orchestrator.assert_not_called()

    def test_unknown_provider(self, runner, mock_orchestrator):
        result = runner.invoke(main, [*AZURE_ARGS, "-p", "aws"])

        assert result.exit_code == 1
        mock_orchestrator.assert_not_called()


class TestValidation:
    """Option combinations rejected before any external call."""

    def test_zone_with_zoneless_region(self, runner, mock_orchestrator):
        args = ["-r", "westus", "-s", "Standard_D2s_v5", "-n", "4", "--cnodes", "--zone", "1"]

        result = runner.invoke(main, args)

        assert result.exit_code == 1
        assert "Cannot specify --zone with region westus" in result.output
        mock_orchestrator.assert_not_called()

    def test_dnodes_and_cnodes(self, runner, mock_orchestrator):
        result = runner.invoke(main, [*AZURE_ARGS, "--dnodes"])

        assert result.exit_code == 1
        assert "Cannot specify both --dnodes and --cnodes" in result.output

    def test_azure_requires_grouping(self, runner, mock_orchestrator):
        result = runner.invoke(main, ["-r", "eastus", "-s", "Standard_D2s_v5", "-n", "4"])

        assert result.exit_code == 1
        assert "Must specify either --dnodes or --cnodes" in result.output

    def test_gcp_requires_role(self, runner, mock_orchestrator):
        args = ["-p", "gcp", "-r", "us-east4", "-i", "n2d-standard-2", "-n", "2"]

        result = runner.invoke(main, args)

        assert result.exit_code == 1
        assert "--role" in result.output

    def test_invalid_config_file(self, runner, mock_orchestrator, tmp_path):
        config_file = tmp_path / "bad.toml"
        config_file.write_text("instance_timeout = 'soon'\n")

        result = runner.invoke(main, [*AZURE_ARGS, "--config", str(config_file)])

        assert result.exit_code == 1
        assert "instance_timeout" in result.output


class TestProbeRuns:
    """End-to-end runs against the FakeProvider."""

    def test_completed_run_exits_zero(self, runner, fake_cloud):
        result = runner.invoke(main, AZURE_ARGS)

        assert result.exit_code == 0, result.output
        assert "Results written to" in result.output
        assert "eastus-1" in result.output

    def test_partial_failure_exits_zero(self, runner, fake_cloud):
        _, options = fake_cloud
        options["instance_fails"] = lambda request: request.name.endswith("-2")

        result = runner.invoke(main, AZURE_ARGS)

        assert result.exit_code == 0, result.output
        assert "Total: 9 created, 3 failed" in result.output

    def test_fatal_error_exits_one(self, runner, fake_cloud):
        providers, options = fake_cloud
        options["fail_on"] = {"list_zones": 0}

        result = runner.invoke(main, AZURE_ARGS)

        assert result.exit_code == 1
        assert "Error: Failed to fetch available zones" in result.output
        assert len(providers[0].calls_to("delete_container")) == 1

    def test_teardown_warning_still_exits_zero(self, runner, fake_cloud):
        _, options = fake_cloud
        options["fail_on"] = {"delete_container": 0}

        result = runner.invoke(main, AZURE_ARGS)

        assert result.exit_code == 0
        assert "could not be deleted" in result.output

    def test_explicit_zone_skips_discovery(self, runner, fake_cloud):
        providers, _ = fake_cloud

        result = runner.invoke(main, [*AZURE_ARGS, "--zone", "2"])

        assert result.exit_code == 0, result.output
        assert providers[0].calls_to("list_zones") == []
        assert "eastus-2" in result.output


class TestColorOutput:
    """Tests that --no-color and NO_COLOR also silence click's styled messages."""

    @pytest.fixture(autouse=True)
    def fatal_error(self, fake_cloud):
        _, options = fake_cloud
        options["fail_on"] = {"list_zones": 0}

    def test_error_is_colored_by_default(self, runner):
        result = runner.invoke(main, AZURE_ARGS, color=True, env={"NO_COLOR": None})

        assert result.exit_code == 1
        assert "\x1b[" in result.output

    def test_no_color_flag_strips_styles(self, runner):
        result = runner.invoke(main, [*AZURE_ARGS, "--no-color"], color=True)

        assert result.exit_code == 1
        assert "Error: Failed to fetch available zones" in result.output
        assert "\x1b[" not in result.output

    def test_no_color_env_strips_styles(self, runner):
        result = runner.invoke(main, AZURE_ARGS, color=True, env={"NO_COLOR": "1"})

        assert result.exit_code == 1
        assert "\x1b[" not in result.output


class TestBuildRunSpec:
    """Test option-to-run translation."""

    def test_dnodes_uses_large_group_and_implies_role(self):
        run = build_run_spec(
            ProbeConfig(), provider="azure", region="eastus", size="s", count=20, dnodes=True
        )

        assert run.group_size == 16
        assert run.role == "dnode"
        assert run.image == "Debian:debian-12:12-gen2:latest"

    def test_cnodes_uses_small_group(self):
        run = build_run_spec(
            ProbeConfig(), provider="azure", region="eastus", size="s", count=20, cnodes=True
        )
        assert run.group_size == 8

    def test_group_sizes_come_from_config(self):
        config = ProbeConfig(large_group_size=4)

        run = build_run_spec(config, provider=None, region="eastus", size="s", count=9, dnodes=True)

        assert run.group_size == 4
        assert run.provider == "azure"

    def test_gcp_defaults_to_ungrouped(self):
        run = build_run_spec(
            ProbeConfig(),
            provider="gcp",
            region="us-east4",
            size="n2d-standard-2",
            count=3,
            role="dnode",
        )

        assert run.group_size is None
        assert run.is_storage_role
        assert run.image == "debian-cloud/debian-12"

    def test_explicit_role_wins_over_grouping(self):
        run = build_run_spec(
            ProbeConfig(),
            provider="gcp",
            region="us-east4",
            size="n2d-standard-2",
            count=3,
            cnodes=True,
            role="dnode",
        )
        assert run.role == "dnode"

    def test_image_override(self):
        run = build_run_spec(
            ProbeConfig(),
            provider="azure",
            region="eastus",
            size="s",
            count=1,
            ungrouped=True,
            image="Canonical:ubuntu:22_04-lts:latest",
        )
        assert run.image == "Canonical:ubuntu:22_04-lts:latest"

    def test_run_ids_differ(self):
        kwargs = {"provider": "azure", "region": "eastus", "size": "s", "count": 1, "cnodes": True}

        first = build_run_spec(ProbeConfig(), **kwargs)
        second = build_run_spec(ProbeConfig(), **kwargs)

        assert first.run_id != second.run_id

    def test_zero_count_rejected(self):
        with pytest.raises(ValidationError):
            build_run_spec(
                ProbeConfig(), provider="azure", region="eastus", size="s", count=0, cnodes=True
            )
