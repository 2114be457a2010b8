"""Probe orchestration.

Drives one run end to end:

1. Prerequisites and provider-side validation (no side effects yet)
2. Results ledger
3. Network container and subnet
4. Topology resolution (zones, groups)
5. Placement scaffolding for every partition
6. Partitions, sequentially: concurrent provisioning, then a ledger record
7. Teardown, exactly once, on success and on every abort path

Fatal errors propagate as ProbeError subclasses. SIGINT and SIGTERM both
unwind as KeyboardInterrupt and are reported as ProbeInterrupted after
teardown.
"""

import contextlib
import logging
import signal
import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path

from zoneprobe import naming
from zoneprobe.config_manager import ProbeConfig
from zoneprobe.errors import ProbeInterrupted, ProviderError, ScaffoldingError
from zoneprobe.ledger import RunLedger
from zoneprobe.models import NetworkHandle, PartitionOutcome, RunInventory, RunSpec
from zoneprobe.prerequisites import PrerequisiteChecker
from zoneprobe.providers import get_provider
from zoneprobe.providers.base import CloudProvider
from zoneprobe.provisioner import ConcurrentProvisioner
from zoneprobe.scaffolding import ScaffoldingManager
from zoneprobe.teardown import TeardownCoordinator, TeardownSummary
from zoneprobe.topology import TopologyResolver

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def terminate_as_interrupt() -> Iterator[None]:
    """Deliver SIGTERM as KeyboardInterrupt while the block runs.

    The previous handler is restored on exit. Outside the main thread
    signal handlers cannot be installed and the block runs unchanged.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _raise_interrupt(signum, frame):
        raise KeyboardInterrupt(f"Received signal {signum}")

    previous = signal.signal(signal.SIGTERM, _raise_interrupt)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)


@dataclass
class ProbeResult:
    """Outcome of a completed run."""

    run: RunSpec
    ledger_path: Path
    outcomes: list[PartitionOutcome] = field(default_factory=list)
    teardown: TeardownSummary | None = None

    @property
    def total_succeeded(self) -> int:
        return sum(o.succeeded for o in self.outcomes)

    @property
    def total_failed(self) -> int:
        return sum(o.failed for o in self.outcomes)


class ProbeOrchestrator:
    """Run one provisioning probe to completion or fatal error."""

    def __init__(
        self,
        run: RunSpec,
        config: ProbeConfig,
        provider: CloudProvider | None = None,
        progress_callback: Callable[[str], None] | None = None,
    ):
        self.run_spec = run
        self.config = config
        self.provider = provider or get_provider(run.provider, config)
        self.inventory = RunInventory(region=run.region)
        self.teardown = TeardownCoordinator(self.provider, self.inventory)
        self.provisioner = ConcurrentProvisioner(self.provider, config, progress_callback)
        self.ledger: RunLedger | None = None
        self.teardown_summary: TeardownSummary | None = None

    def run(self) -> ProbeResult:
        """Execute the probe.

        Returns:
            ProbeResult, also when some instances failed

        Raises:
            ProbeError: On any fatal error, after teardown
        """
        with terminate_as_interrupt():
            try:
                ledger = self._execute()
            except KeyboardInterrupt as e:
                where = f"; partial results in {self.ledger.path}" if self.ledger else ""
                logger.warning(f"Interrupted, tearing down{where}")
                raise ProbeInterrupted(f"Probe interrupted{where}") from e
            finally:
                if not self.teardown.completed:
                    self.teardown_summary = self.teardown.teardown()

        return ProbeResult(
            run=self.run_spec,
            ledger_path=ledger.path,
            outcomes=list(ledger.outcomes),
            teardown=self.teardown_summary,
        )

    def _execute(self) -> RunLedger:
        run = self.run_spec

        # STEP 1: Fail fast before touching the cloud
        resolver = TopologyResolver(self.provider, self.provider.settings)
        PrerequisiteChecker.require(self.provider.cli_tool)
        self.provider.validate(run)
        resolver.validate(run)

        # STEP 2: Results file
        self.ledger = RunLedger.create(self.config.get_results_dir())

        # STEP 3: Network
        network = self._create_network()

        # STEP 4: Topology
        partitions = resolver.resolve(run)

        # STEP 5: All scaffolding up front
        scaffolding = ScaffoldingManager(self.provider, self.teardown, self.config).provision_all(
            run, partitions, network, self.inventory
        )

        # STEP 6: Partitions, one at a time
        for partition in partitions:
            tasks = self.provisioner.run_partition(
                run, partition, scaffolding[partition.key], network, self.inventory
            )
            self.ledger.record(run, partition, tasks)

        return self.ledger

    def _create_network(self) -> NetworkHandle:
        """Create the run container and subnet, rolling back on failure.

        Raises:
            ScaffoldingError: If either cannot be created
        """
        run = self.run_spec
        container = naming.container_name(run.region, run.run_id)
        try:
            self.inventory.container = self.provider.create_network_container(
                container, run.region
            )
            network = self.provider.create_subnet(
                self.inventory.container,
                naming.subnet_name(run.region, run.run_id),
                self.config.subnet_cidr,
                run.region,
            )
        except ProviderError as e:
            logger.info(f"Network setup failed: {e}; rolling back...")
            self.teardown.teardown()
            raise ScaffoldingError(f"Failed to create network for run {run.run_id}: {e}") from e

        self.inventory.subnet = network.subnet
        return network


__all__ = ["ProbeOrchestrator", "ProbeResult", "terminate_as_interrupt"]
