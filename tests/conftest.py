"""
Shared test fixtures and configuration for zoneprobe tests.

This module provides common fixtures used across all test types:
- Default configuration
- Sample runs and partitions
- The in-memory FakeProvider and a fresh run inventory
"""

from pathlib import Path

import pytest

from tests.mocks.fake_provider import FakeProvider
from zoneprobe.config_manager import ProbeConfig
from zoneprobe.models import (
    NetworkHandle,
    Partition,
    PartitionKey,
    RunInventory,
    RunSpec,
    ScaffoldingHandle,
)

# ============================================================================
# CONFIGURATION FIXTURES
# ============================================================================


@pytest.fixture
def probe_config(tmp_path):
    """Default configuration with results written under tmp_path."""
    return ProbeConfig(results_dir=str(tmp_path / "results"))


@pytest.fixture
def results_dir(tmp_path) -> Path:
    path = tmp_path / "results"
    path.mkdir(exist_ok=True)
    return path


# ============================================================================
# RUN FIXTURES
# ============================================================================


@pytest.fixture
def sample_run():
    """Azure run: 20 units per zone in groups of 8."""
    return RunSpec(
        provider="azure",
        region="eastus",
        size="Standard_D2s_v5",
        count=20,
        run_id="abc123",
        image="Debian:debian-12:12-gen2:latest",
        group_size=8,
        role="cnode",
    )


@pytest.fixture
def sample_partition():
    return Partition(key=PartitionKey(zone="1", group=1), start=1, end=8)


@pytest.fixture
def sample_network():
    return NetworkHandle(
        container="probe-abc123-eastus",
        network="probe-abc123-eastus-vnet",
        subnet="probe-subnet-abc123-eastus",
        region="eastus",
    )


@pytest.fixture
def sample_scaffolding(sample_partition):
    return ScaffoldingHandle(
        key=sample_partition.key,
        placement_group="ppg-eastus-z1-g1-0a1b2c",
        availability_group="as-eastus-z1-g1-3d4e5f",
    )


@pytest.fixture
def inventory():
    return RunInventory(region="eastus")


# ============================================================================
# PROVIDER FIXTURES
# ============================================================================


@pytest.fixture
def fake_provider(probe_config):
    """Cascading FakeProvider offering zones 1, 2 and 3."""
    return FakeProvider(probe_config)


@pytest.fixture
def explicit_provider(probe_config):
    """FakeProvider without cascading delete or availability groups (GCP-like)."""
    return FakeProvider(probe_config, cascading_delete=False, supports_availability_groups=False)
