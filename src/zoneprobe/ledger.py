"""Run ledger: durable, append-only record of partition outcomes.

One line per completed partition, written and fsynced before the next
partition starts, so results survive a later crash or interrupt:

    VMSize: Standard_D2s_v5, Zone: 1, Group: 2, Successfully created: 7, Failed to create: 1
"""

import logging
import os
import re
import tempfile
from collections.abc import Iterable
from pathlib import Path

from zoneprobe.errors import LedgerError
from zoneprobe.models import Partition, PartitionOutcome, ProvisionTask, RunSpec

logger = logging.getLogger(__name__)

LINE_FORMAT = (
    "VMSize: {size}, Zone: {zone}, Group: {group}, "
    "Successfully created: {succeeded}, Failed to create: {failed}"
)

_LINE_PATTERN = re.compile(
    r"^VMSize: (?P<size>[^,]+), Zone: (?P<zone>[^,]+), Group: (?P<group>\d+), "
    r"Successfully created: (?P<succeeded>\d+), Failed to create: (?P<failed>\d+)$"
)


def format_line(outcome: PartitionOutcome) -> str:
    return LINE_FORMAT.format(
        size=outcome.size,
        zone=outcome.zone,
        group=outcome.group,
        succeeded=outcome.succeeded,
        failed=outcome.failed,
    )


def parse_line(line: str) -> PartitionOutcome:
    """Parse one ledger line.

    Raises:
        LedgerError: If the line is malformed
    """
    match = _LINE_PATTERN.match(line.strip())
    if not match:
        raise LedgerError(f"Malformed ledger line: {line.strip()!r}")
    return PartitionOutcome(
        size=match["size"],
        zone=match["zone"],
        group=int(match["group"]),
        succeeded=int(match["succeeded"]),
        failed=int(match["failed"]),
    )


def tally(run: RunSpec, partition: Partition, tasks: Iterable[ProvisionTask]) -> PartitionOutcome:
    """Count succeeded and failed tasks of a partition.

    Raises:
        LedgerError: If a task has no outcome or the count does not match the partition
    """
    succeeded = failed = 0
    for task in tasks:
        if task.outcome is None:
            raise LedgerError(f"Task {task.name} has no outcome")
        if task.succeeded:
            succeeded += 1
        else:
            failed += 1

    if succeeded + failed != partition.size:
        raise LedgerError(
            f"{partition.key}: expected {partition.size} outcomes, got {succeeded + failed}"
        )

    return PartitionOutcome(
        size=run.size,
        zone=partition.key.zone_label,
        group=partition.key.group,
        succeeded=succeeded,
        failed=failed,
    )


class RunLedger:
    """Append-only results file for one run."""

    def __init__(self, path: Path):
        self.path = path
        self.outcomes: list[PartitionOutcome] = []

    @classmethod
    def create(cls, directory: Path | None = None) -> "RunLedger":
        """Create a new, process-unique ledger file.

        Raises:
            LedgerError: If the file cannot be created
        """
        try:
            if directory is not None:
                directory.mkdir(parents=True, exist_ok=True)
            fd, name = tempfile.mkstemp(
                prefix="zoneprobe-", suffix="-results.log", dir=directory
            )
        except OSError as e:
            raise LedgerError(f"Failed to create results file in {directory}: {e}") from e
        os.close(fd)
        logger.info(f"Results will be written to {name}")
        return cls(Path(name))

    def record(
        self, run: RunSpec, partition: Partition, tasks: Iterable[ProvisionTask]
    ) -> PartitionOutcome:
        """Tally a completed partition and append it durably.

        Raises:
            LedgerError: If the outcome cannot be written
        """
        outcome = tally(run, partition, tasks)
        line = format_line(outcome)

        try:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            raise LedgerError(f"Failed to write results file {self.path}: {e}") from e

        self.outcomes.append(outcome)
        logger.info(line)
        return outcome

    def read(self) -> list[PartitionOutcome]:
        """Parse every line of the ledger file.

        Raises:
            LedgerError: If the file cannot be read or a line is malformed
        """
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise LedgerError(f"Failed to read results file {self.path}: {e}") from e
        return [parse_line(line) for line in text.splitlines() if line.strip()]


__all__ = ["RunLedger", "format_line", "parse_line", "tally"]
