"""Teardown of everything a probe run created.

Best effort by contract: every deletion failure is logged as a warning and
collected in the summary, never raised, so the run still produces its
report. Resources that were deleted are dropped from the inventory, which
makes a repeated call a no-op (or a retry of whatever is left).

Providers with cascading scoped deletion (Azure resource groups) need one
call. Others get explicit deletion in dependency order: instances, then
availability groups, placement groups, subnet and network.
"""

import logging
from dataclasses import dataclass, field, replace

from zoneprobe.errors import ProviderError
from zoneprobe.models import RunInventory
from zoneprobe.providers.base import CloudProvider

logger = logging.getLogger(__name__)


@dataclass
class TeardownWarning:
    """A resource that could not be deleted."""

    resource: str
    message: str


@dataclass
class TeardownSummary:
    """Result of a teardown pass."""

    deleted: list[str] = field(default_factory=list)
    warnings: list[TeardownWarning] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not self.warnings


class TeardownCoordinator:
    """Delete a run's resources, tolerating failures."""

    def __init__(self, provider: CloudProvider, inventory: RunInventory):
        self.provider = provider
        self.inventory = inventory
        self.completed = False

    def teardown(self) -> TeardownSummary:
        """Delete every resource recorded in the inventory.

        Safe to call when nothing was created. Never raises ProviderError.
        """
        summary = TeardownSummary()

        if self.inventory.is_empty():
            logger.debug("Nothing to tear down")
        elif self.provider.cascading_delete:
            self._teardown_cascading(summary)
        else:
            self._teardown_explicit(summary)

        self.completed = True
        if summary.warnings:
            logger.warning(
                f"Teardown finished with {len(summary.warnings)} warning(s); "
                f"some resources may need manual cleanup"
            )
        elif summary.deleted:
            logger.info("Teardown complete")
        return summary

    def _attempt(self, summary: TeardownSummary, resource: str, delete, *args) -> bool:
        try:
            delete(*args)
        except (ProviderError, NotImplementedError) as e:
            message = str(e) or f"{self.provider.name} cannot delete this resource"
            logger.warning(f"Failed to delete {resource}: {message}")
            summary.warnings.append(TeardownWarning(resource=resource, message=message))
            return False
        summary.deleted.append(resource)
        return True

    def _teardown_cascading(self, summary: TeardownSummary) -> None:
        container = self.inventory.container
        if container is None:
            return
        if self._attempt(summary, container, self.provider.delete_container, container):
            # Everything else was scoped under the container
            self.inventory.container = None
            self.inventory.subnet = None
            self.inventory.scaffolding.clear()
            self.inventory.instances.clear()

    def _teardown_explicit(self, summary: TeardownSummary) -> None:
        inv = self.inventory
        container = inv.container or ""

        for zone, names in list(inv.instances.items()):
            if not names:
                del inv.instances[zone]
                continue
            resource = f"{len(names)} instance(s) in zone {zone or 'none'}"
            if self._attempt(
                summary, resource, self.provider.delete_instances, container, zone, list(names)
            ):
                del inv.instances[zone]

        for key, handle in list(inv.scaffolding.items()):
            if handle.availability_group:
                if not self._attempt(
                    summary,
                    handle.availability_group,
                    self.provider.delete_availability_group,
                    container,
                    handle.availability_group,
                    inv.region,
                ):
                    continue
                handle = replace(handle, availability_group=None)
                inv.scaffolding[key] = handle
            if self._attempt(
                summary,
                handle.placement_group,
                self.provider.delete_placement_group,
                container,
                handle.placement_group,
                inv.region,
            ):
                del inv.scaffolding[key]

        if inv.subnet is not None:
            if self._attempt(
                summary, inv.subnet, self.provider.delete_subnet, container, inv.subnet, inv.region
            ):
                inv.subnet = None

        if inv.container is not None:
            if self._attempt(summary, inv.container, self.provider.delete_network, inv.container):
                inv.container = None


__all__ = ["TeardownCoordinator", "TeardownSummary", "TeardownWarning"]
