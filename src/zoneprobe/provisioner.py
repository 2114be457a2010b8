"""Concurrent instance provisioning for one partition.

Every unit in a partition is launched at once as its own CLI child process
(fan-out), then the provisioner waits for all of them (fan-in). A failed
creation is counted, never raised, and never cancels its siblings. Failed
creations are not retried.

Example:
    provisioner = ConcurrentProvisioner(provider, config)
    tasks = provisioner.run_partition(run, partition, scaffolding, network, inventory)
    succeeded = sum(1 for t in tasks if t.succeeded)
"""

import logging
import time
from collections.abc import Callable

from zoneprobe import naming
from zoneprobe.config_manager import ProbeConfig
from zoneprobe.models import (
    InstanceRequest,
    NetworkHandle,
    Partition,
    ProvisionTask,
    RunInventory,
    RunSpec,
    ScaffoldingHandle,
    TaskOutcome,
)
from zoneprobe.providers.base import CloudProvider

logger = logging.getLogger(__name__)


class ConcurrentProvisioner:
    """Fan out instance creation for a partition and collect every outcome."""

    def __init__(
        self,
        provider: CloudProvider,
        config: ProbeConfig,
        progress_callback: Callable[[str], None] | None = None,
    ):
        self.provider = provider
        self.config = config
        self.progress_callback = progress_callback

    def _report(self, message: str) -> None:
        if self.progress_callback:
            self.progress_callback(message)
        else:
            logger.debug(message)

    def build_requests(
        self,
        run: RunSpec,
        partition: Partition,
        scaffolding: ScaffoldingHandle,
        network: NetworkHandle,
    ) -> list[InstanceRequest]:
        """One creation request per unit index in the partition."""
        extras = self.provider.instance_extras(run)
        return [
            InstanceRequest(
                name=naming.instance_name(run.region, run.run_id, partition.key, index),
                size=run.size,
                region=run.region,
                zone=partition.key.zone,
                image=run.image,
                network=network,
                scaffolding=scaffolding,
                extras=extras,
            )
            for index in partition.units()
        ]

    def run_partition(
        self,
        run: RunSpec,
        partition: Partition,
        scaffolding: ScaffoldingHandle,
        network: NetworkHandle,
        inventory: RunInventory,
    ) -> list[ProvisionTask]:
        """Provision every unit of a partition concurrently.

        Each launched instance is recorded in the inventory before the wait
        begins, so an interrupt during fan-in still tears it down. Instances
        whose creation failed are dropped from it again; timed-out ones stay.

        Returns:
            Exactly partition.size tasks, each with an outcome set
        """
        requests = self.build_requests(run, partition, scaffolding, network)
        logger.info(
            f"Creating {len(requests)} instance(s) of size {run.size} in {partition.key} "
            f"(units {partition.start}-{partition.end})..."
        )

        tasks: list[ProvisionTask] = []
        for request in requests:
            handle = self.provider.create_instance(request)
            inventory.add_instance(request.zone, request.name)
            tasks.append(ProvisionTask(name=request.name, key=partition.key, handle=handle))

        # One shared deadline for the whole fan-in
        deadline = time.monotonic() + self.config.instance_timeout
        for task in tasks:
            remaining = max(deadline - time.monotonic(), 0.0)
            task.outcome = self.provider.await_instance(task.handle, timeout=remaining)
            task.error = task.handle.error

            if task.outcome is TaskOutcome.SUCCEEDED:
                self._report(f"✓ {task.name} created")
            else:
                # A timed-out creation may still complete in the cloud
                if not task.handle.timed_out:
                    inventory.discard_instance(partition.key.zone, task.name)
                self._report(f"✗ {task.name} failed: {task.error or 'unknown error'}")

        failed = sum(1 for t in tasks if not t.succeeded)
        if failed:
            logger.info(f"{failed} of {len(tasks)} instance(s) failed in {partition.key}")
        return tasks


__all__ = ["ConcurrentProvisioner"]
