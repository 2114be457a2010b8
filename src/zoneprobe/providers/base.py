"""Cloud provider interface.

A provider is the narrow seam between the probe engine and a cloud control
plane. Each implementation drives the vendor's command-line tool; the engine
only sees the operations below and ProviderError on failure.

Instance creation is the one non-blocking operation: create_instance()
launches the CLI as a child process and returns a handle immediately, and
await_instance() later blocks until that process exits.
"""

import logging
import subprocess
import tempfile
from abc import ABC, abstractmethod

from zoneprobe.cli_executor import format_command, run_cli_command
from zoneprobe.config_manager import ProbeConfig, ProviderSettings
from zoneprobe.errors import ProviderError
from zoneprobe.models import InstanceHandle, InstanceRequest, NetworkHandle, RunSpec, TaskOutcome

logger = logging.getLogger(__name__)

STDERR_TAIL_LINES = 3


class CloudProvider(ABC):
    """Operations the probe engine invokes against a cloud control plane."""

    name: str = ""
    cli_tool: str = ""
    cascading_delete: bool = False
    supports_availability_groups: bool = False

    def __init__(self, settings: ProviderSettings, config: ProbeConfig):
        self.settings = settings
        self.config = config

    # ------------------------------------------------------------------
    # Validation and discovery
    # ------------------------------------------------------------------

    def validate(self, run: RunSpec) -> None:
        """Reject runs this provider cannot execute, before any side effect.

        Raises:
            ValidationError: If the run is not supported
        """

    @abstractmethod
    def list_zones(self, region: str, size: str) -> list[str]:
        """Zones in a region that offer the given size, in provider order.

        Raises:
            ProviderError: If the query fails or the output cannot be parsed
        """

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    @abstractmethod
    def create_network_container(self, name: str, region: str) -> str:
        """Create the run's top-level container and return its name."""

    @abstractmethod
    def create_subnet(self, container: str, name: str, cidr: str, region: str) -> NetworkHandle:
        """Create the run's subnet inside the container."""

    @abstractmethod
    def create_placement_group(
        self,
        name: str,
        container: str,
        region: str,
        zone: str | None,
        size: str,
        fault_domain_count: int,
    ) -> str:
        """Create a placement-affinity construct and return its name."""

    def create_availability_group(
        self,
        name: str,
        container: str,
        region: str,
        placement_group: str,
        fault_domain_count: int,
        update_domain_count: int,
    ) -> str:
        """Create an availability-grouping construct and return its name."""
        raise NotImplementedError(f"{self.name} has no availability-grouping construct")

    def instance_extras(self, run: RunSpec) -> tuple[str, ...]:
        """Role-specific extra CLI arguments for create_instance."""
        return ()

    @abstractmethod
    def build_instance_command(self, request: InstanceRequest) -> list[str]:
        """CLI command that creates one instance."""

    def create_instance(self, request: InstanceRequest) -> InstanceHandle:
        """Launch instance creation without waiting for it (non-blocking).

        Never raises for an individual launch failure: the returned handle
        carries the error and resolves to FAILED.
        """
        cmd = self.build_instance_command(request)
        handle = InstanceHandle(name=request.name, zone=request.zone)
        logger.debug(f"+ {format_command(cmd)} &")

        stderr_file = tempfile.TemporaryFile()
        try:
            handle.process = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=stderr_file,
            )
        except OSError as e:
            stderr_file.close()
            handle.error = f"Failed to launch {self.cli_tool}: {e}"
            logger.debug(f"{request.name}: {handle.error}")
            return handle

        handle.stderr_file = stderr_file
        return handle

    def await_instance(self, handle: InstanceHandle, timeout: float | None = None) -> TaskOutcome:
        """Block until an instance creation reaches a terminal state."""
        if handle.process is None:
            return TaskOutcome.FAILED

        try:
            returncode = handle.process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            handle.process.kill()
            handle.process.wait()
            handle.timed_out = True
            handle.error = f"Timed out after {timeout}s"
            self._close_stderr(handle)
            return TaskOutcome.FAILED

        stderr = self._close_stderr(handle)
        if returncode == 0:
            return TaskOutcome.SUCCEEDED

        tail = [line for line in stderr.strip().splitlines() if line.strip()]
        handle.error = " | ".join(tail[-STDERR_TAIL_LINES:]) or f"exit code {returncode}"
        return TaskOutcome.FAILED

    @staticmethod
    def _close_stderr(handle: InstanceHandle) -> str:
        if handle.stderr_file is None:
            return ""
        try:
            handle.stderr_file.seek(0)
            return handle.stderr_file.read().decode("utf-8", errors="replace")
        finally:
            handle.stderr_file.close()
            handle.stderr_file = None

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    def delete_container(self, container: str) -> None:
        """Delete the container and everything scoped under it (cascading)."""
        raise NotImplementedError(f"{self.name} has no cascading delete")

    def delete_instances(self, container: str, zone: str | None, names: list[str]) -> None:
        raise NotImplementedError

    def delete_availability_group(self, container: str, name: str, region: str) -> None:
        raise NotImplementedError

    def delete_placement_group(self, container: str, name: str, region: str) -> None:
        raise NotImplementedError

    def delete_subnet(self, container: str, subnet: str, region: str) -> None:
        raise NotImplementedError

    def delete_network(self, container: str) -> None:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _run(
        self,
        cmd: list[str],
        *,
        timeout: int | None = None,
        max_attempts: int = 1,
    ) -> subprocess.CompletedProcess[str]:
        """Run a blocking CLI call, translating failures into ProviderError."""
        try:
            return run_cli_command(
                cmd,
                timeout=timeout or self.config.command_timeout,
                max_attempts=max_attempts,
            )
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip()
            raise ProviderError(
                f"{' '.join(cmd[:3])} failed: {stderr or f'exit code {e.returncode}'}",
                command=cmd,
                stderr=stderr,
            ) from e
        except subprocess.TimeoutExpired as e:
            raise ProviderError(
                f"{' '.join(cmd[:3])} timed out after {e.timeout}s", command=cmd
            ) from e
        except FileNotFoundError as e:
            raise ProviderError(f"{self.cli_tool} not found", command=cmd) from e


__all__ = ["CloudProvider"]
