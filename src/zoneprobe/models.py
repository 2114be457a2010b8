"""Data model for a provisioning probe.

A run is split into partitions (a zone, or a zone plus group index). Each
partition gets its own placement scaffolding and a batch of concurrent
instance-creation tasks whose outcomes are tallied into a PartitionOutcome.
"""

import subprocess
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import IO

ZONELESS_LABEL = "none"


class TaskOutcome(Enum):
    """Terminal state of one instance-creation attempt."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class RunSpec:
    """One provisioning probe, built once from validated input."""

    provider: str
    region: str
    size: str
    count: int
    run_id: str
    image: str
    zone: str | None = None
    group_size: int | None = None
    role: str | None = None

    @property
    def is_storage_role(self) -> bool:
        """True for roles that carry ephemeral local storage."""
        return self.role == "dnode"


@dataclass(frozen=True)
class PartitionKey:
    """Composite key of a partition: zone (None when zoneless) and group."""

    zone: str | None
    group: int = 1

    @property
    def zone_label(self) -> str:
        return self.zone if self.zone is not None else ZONELESS_LABEL

    def __str__(self) -> str:
        return f"zone {self.zone_label}, group {self.group}"


@dataclass(frozen=True)
class Partition:
    """A contiguous, inclusive range of unit indices placed together."""

    key: PartitionKey
    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start + 1

    def units(self) -> Iterator[int]:
        return iter(range(self.start, self.end + 1))


@dataclass(frozen=True)
class NetworkHandle:
    """Run-level network resources."""

    container: str
    network: str
    subnet: str
    region: str


@dataclass(frozen=True)
class ScaffoldingHandle:
    """Placement resources owned by one partition."""

    key: PartitionKey
    placement_group: str
    availability_group: str | None = None


@dataclass(frozen=True)
class InstanceRequest:
    """Everything a single create-instance call binds."""

    name: str
    size: str
    region: str
    zone: str | None
    image: str
    network: NetworkHandle
    scaffolding: ScaffoldingHandle
    extras: tuple[str, ...] = ()


@dataclass
class InstanceHandle:
    """Handle to an in-flight instance creation (a launched CLI process)."""

    name: str
    zone: str | None
    process: subprocess.Popen | None = None
    stderr_file: IO[bytes] | None = None
    error: str | None = None
    timed_out: bool = False


@dataclass
class ProvisionTask:
    """One instance-creation attempt and its terminal outcome."""

    name: str
    key: PartitionKey
    handle: InstanceHandle
    error: str | None = None
    _outcome: TaskOutcome | None = field(default=None, init=False, repr=False)

    @property
    def outcome(self) -> TaskOutcome | None:
        return self._outcome

    @outcome.setter
    def outcome(self, value: TaskOutcome) -> None:
        if self._outcome is not None:
            raise ValueError(f"Outcome of {self.name} already set to {self._outcome.value}")
        self._outcome = value

    @property
    def succeeded(self) -> bool:
        return self._outcome is TaskOutcome.SUCCEEDED


@dataclass(frozen=True)
class PartitionOutcome:
    """Immutable tally of one completed partition."""

    size: str
    zone: str
    group: int
    succeeded: int
    failed: int

    @property
    def total(self) -> int:
        return self.succeeded + self.failed


@dataclass
class RunInventory:
    """Resources a run has created and teardown must remove."""

    region: str
    container: str | None = None
    subnet: str | None = None
    scaffolding: dict[PartitionKey, ScaffoldingHandle] = field(default_factory=dict)
    instances: dict[str | None, list[str]] = field(default_factory=dict)

    def add_instance(self, zone: str | None, name: str) -> None:
        self.instances.setdefault(zone, []).append(name)

    def discard_instance(self, zone: str | None, name: str) -> None:
        """Forget an instance that was never created."""
        names = self.instances.get(zone, [])
        if name in names:
            names.remove(name)
        if not names:
            self.instances.pop(zone, None)

    def is_empty(self) -> bool:
        return (
            self.container is None
            and self.subnet is None
            and not self.scaffolding
            and not any(self.instances.values())
        )


__all__ = [
    "InstanceHandle",
    "InstanceRequest",
    "NetworkHandle",
    "Partition",
    "PartitionKey",
    "PartitionOutcome",
    "ProvisionTask",
    "RunInventory",
    "RunSpec",
    "ScaffoldingHandle",
    "TaskOutcome",
    "ZONELESS_LABEL",
]
