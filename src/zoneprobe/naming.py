"""Resource naming for a probe run.

Names are derived from region, zone, group and index, plus a random run id
or suffix, so repeated or concurrent runs never collide. Everything is
lowercase: GCP rejects upper case in resource names.
"""

import re
import uuid

from zoneprobe.models import PartitionKey

_INVALID_CHARS = re.compile(r"[^a-z0-9-]")


def random_suffix(length: int = 6) -> str:
    """Short random hex string."""
    return uuid.uuid4().hex[:length]


def new_run_id() -> str:
    """Identifier shared by every resource a run creates."""
    return random_suffix(6)


def _clean(value: str) -> str:
    return _INVALID_CHARS.sub("-", value.lower())


def zone_token(region: str, zone: str | None) -> str:
    """Compact zone segment: "z1" for Azure zone "1", "za" for "us-east4-a".

    Returns an empty string for the zoneless partition.
    """
    if zone is None:
        return ""
    short = zone[len(region) + 1 :] if zone.startswith(f"{region}-") else zone
    return f"z{_clean(short)}"


def _partition_segment(region: str, key: PartitionKey) -> str:
    token = zone_token(region, key.zone)
    return f"{token}-g{key.group}" if token else f"g{key.group}"


def container_name(region: str, run_id: str) -> str:
    """Run container (resource group or VPC network)."""
    return f"probe-{run_id}-{_clean(region)}"


def subnet_name(region: str, run_id: str) -> str:
    return f"probe-subnet-{run_id}-{_clean(region)}"


def placement_group_name(region: str, key: PartitionKey) -> str:
    """Placement-affinity construct name, unique per call."""
    return f"ppg-{_clean(region)}-{_partition_segment(region, key)}-{random_suffix()}"


def availability_group_name(region: str, key: PartitionKey) -> str:
    """Availability-grouping construct name, unique per call."""
    return f"as-{_clean(region)}-{_partition_segment(region, key)}-{random_suffix()}"


def instance_name(region: str, run_id: str, key: PartitionKey, index: int) -> str:
    """Instance name, unique within a run by (zone, group, index)."""
    return f"vm-{_clean(region)}-{run_id}-{_partition_segment(region, key)}-{index}"


__all__ = [
    "availability_group_name",
    "container_name",
    "instance_name",
    "new_run_id",
    "placement_group_name",
    "random_suffix",
    "subnet_name",
    "zone_token",
]
