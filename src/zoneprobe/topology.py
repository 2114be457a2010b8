"""Topology resolution: which partitions a run probes.

A partition is a zone, or a (zone, group) pair when the run splits each zone
into fixed-size groups. Unit indices 1..count are assigned to groups in
contiguous ranges of group_size, the last group taking the remainder; every
zone gets the full range.

Example:
    >>> build_partitions(["a", "b"], count=20, group_size=8)
    # (a,1):1-8 (a,2):9-16 (a,3):17-20 (b,1):1-8 (b,2):9-16 (b,3):17-20
"""

import logging
from collections.abc import Sequence

from zoneprobe.config_manager import ProviderSettings
from zoneprobe.errors import DiscoveryError, ProviderError, ValidationError
from zoneprobe.models import Partition, PartitionKey, RunSpec
from zoneprobe.providers.base import CloudProvider

logger = logging.getLogger(__name__)


def group_ranges(count: int, group_size: int | None) -> list[tuple[int, int]]:
    """Inclusive (start, end) unit ranges, one per group.

    Raises:
        ValueError: If count or group_size is not positive
    """
    if count <= 0:
        raise ValueError(f"count must be positive, got {count}")
    if group_size is None:
        return [(1, count)]
    if group_size <= 0:
        raise ValueError(f"group_size must be positive, got {group_size}")

    return [
        (start, min(start + group_size - 1, count)) for start in range(1, count + 1, group_size)
    ]


def build_partitions(
    zones: Sequence[str | None], count: int, group_size: int | None = None
) -> list[Partition]:
    """Partition every zone's unit range into groups, in zone order."""
    partitions: list[Partition] = []
    seen: set[str | None] = set()
    ranges = group_ranges(count, group_size)

    for zone in zones:
        if zone in seen:
            continue
        seen.add(zone)
        for group, (start, end) in enumerate(ranges, start=1):
            key = PartitionKey(zone=zone, group=group)
            partitions.append(Partition(key=key, start=start, end=end))

    return partitions


class TopologyResolver:
    """Resolve the ordered partitions of a run."""

    def __init__(self, provider: CloudProvider, settings: ProviderSettings):
        self.provider = provider
        self.settings = settings

    def resolve(self, run: RunSpec) -> list[Partition]:
        """Resolve partitions for a run.

        Raises:
            ValidationError: If an explicit zone is requested for a zoneless region
            DiscoveryError: If zone discovery fails or finds no zones
        """
        zones = self.resolve_zones(run)
        partitions = build_partitions(zones, run.count, run.group_size)
        logger.info(
            f"Probing {len(partitions)} partition(s) across "
            f"{len(set(p.key.zone for p in partitions))} zone(s)"
        )
        return partitions

    def validate(self, run: RunSpec) -> None:
        """Reject zone options the region cannot honour, before any side effect.

        Raises:
            ValidationError: If an explicit zone is requested for a zoneless region
        """
        if run.zone and self.settings.is_zoneless(run.region):
            raise ValidationError(
                f"Cannot specify --zone with region {run.region}, "
                f"as zones are not used in this region"
            )

    def resolve_zones(self, run: RunSpec) -> list[str | None]:
        """Zone set of a run: zoneless, explicit, or discovered."""
        self.validate(run)
        if self.settings.is_zoneless(run.region):
            logger.info(f"Region is {run.region}, skipping zone fetching and usage.")
            return [None]

        if run.zone:
            logger.info(f"Using user-specified zone: {run.zone}")
            return [run.zone]

        logger.info(
            f"Fetching available zones for region '{run.region}' and size '{run.size}'... "
            f"(may be slow)"
        )
        try:
            zones = self.provider.list_zones(run.region, run.size)
        except ProviderError as e:
            raise DiscoveryError(
                f"Failed to fetch available zones for region '{run.region}' "
                f"and size '{run.size}': {e}"
            ) from e

        if not zones:
            raise DiscoveryError(
                f"No zones offer size '{run.size}' in region '{run.region}'"
            )

        logger.info(f"Zones: {', '.join(zones)}")
        return list(zones)


__all__ = ["TopologyResolver", "build_partitions", "group_ranges"]
