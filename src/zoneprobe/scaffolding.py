"""Placement scaffolding for probe partitions.

Every partition gets its own placement-affinity construct and, where the
provider has one, an availability-grouping construct bound to it. All of a
run's scaffolding is created up front, sequentially, before the first
instance is requested. A failure anywhere aborts the whole run: whatever the
run has created so far is rolled back and ScaffoldingError is raised.
"""

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from zoneprobe import naming
from zoneprobe.config_manager import ProbeConfig
from zoneprobe.errors import ProviderError, ScaffoldingError
from zoneprobe.models import (
    NetworkHandle,
    Partition,
    PartitionKey,
    RunInventory,
    RunSpec,
    ScaffoldingHandle,
)
from zoneprobe.providers.base import CloudProvider

if TYPE_CHECKING:
    from zoneprobe.teardown import TeardownCoordinator

logger = logging.getLogger(__name__)


class ScaffoldingManager:
    """Create per-partition placement scaffolding, rolling back on failure."""

    def __init__(
        self,
        provider: CloudProvider,
        teardown: "TeardownCoordinator",
        config: ProbeConfig,
    ):
        self.provider = provider
        self.teardown = teardown
        self.config = config

    def provision_all(
        self,
        run: RunSpec,
        partitions: Sequence[Partition],
        network: NetworkHandle,
        inventory: RunInventory,
    ) -> dict[PartitionKey, ScaffoldingHandle]:
        """Create scaffolding for every partition, in order.

        Raises:
            ScaffoldingError: If any step fails (after full rollback)
        """
        handles: dict[PartitionKey, ScaffoldingHandle] = {}
        for partition in partitions:
            handles[partition.key] = self.provision(run, partition, network, inventory)
        logger.info(f"Created placement scaffolding for {len(handles)} partition(s)")
        return handles

    def provision(
        self,
        run: RunSpec,
        partition: Partition,
        network: NetworkHandle,
        inventory: RunInventory,
    ) -> ScaffoldingHandle:
        """Create one partition's scaffolding and record it in the inventory.

        Raises:
            ScaffoldingError: If either step fails (after full rollback)
        """
        key = partition.key
        fault_domains = self.provider.settings.fault_domain_count(run.region)

        placement_group = naming.placement_group_name(run.region, key)
        try:
            self.provider.create_placement_group(
                placement_group,
                network.container,
                run.region,
                key.zone,
                run.size,
                fault_domains,
            )
        except ProviderError as e:
            self._abort(f"Failed to create placement group for {key}: {e}", e)

        handle = ScaffoldingHandle(key=key, placement_group=placement_group)
        inventory.scaffolding[key] = handle

        if not self.provider.supports_availability_groups:
            return handle

        availability_group = naming.availability_group_name(run.region, key)
        try:
            self.provider.create_availability_group(
                availability_group,
                network.container,
                run.region,
                placement_group,
                fault_domains,
                self.provider.settings.update_domain_count,
            )
        except ProviderError as e:
            self._abort(f"Failed to create availability group for {key}: {e}", e)

        handle = ScaffoldingHandle(
            key=key, placement_group=placement_group, availability_group=availability_group
        )
        inventory.scaffolding[key] = handle
        return handle

    def _abort(self, message: str, cause: ProviderError) -> None:
        logger.info(f"{message}; rolling back resources created by this run...")
        self.teardown.teardown()
        raise ScaffoldingError(message) from cause


__all__ = ["ScaffoldingManager"]
