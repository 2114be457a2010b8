"""Cloud CLI subprocess execution.

Provides run_cli_command(), a thin wrapper around subprocess.run that logs
every command line at DEBUG (visible with --verbose) and optionally retries
with exponential backoff on transient failures (CalledProcessError,
TimeoutExpired).

Usage:
    from zoneprobe.cli_executor import run_cli_command

    result = run_cli_command(["az", "vm", "list-skus", "--location", "eastus"])

    # Read-only queries may be retried
    result = run_cli_command(cmd, timeout=120, max_attempts=3)
"""

import logging
import shlex
import subprocess

from zoneprobe.retry_handler import retry_with_exponential_backoff

logger = logging.getLogger(__name__)


def format_command(cmd: list[str]) -> str:
    """Render a command list as a copy-pasteable shell line."""
    return " ".join(shlex.quote(part) for part in cmd)


def run_cli_command(
    cmd: list[str],
    *,
    timeout: int = 300,
    max_attempts: int = 1,
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Execute a cloud CLI command.

    Args:
        cmd: Command list, e.g. ["az", "group", "create", ...]
        timeout: Subprocess timeout in seconds (default: 300)
        max_attempts: Attempts before giving up (default: 1, no retry)
        check: If True, raise CalledProcessError on non-zero exit (default: True)

    Returns:
        subprocess.CompletedProcess with stdout/stderr

    Raises:
        subprocess.CalledProcessError: After attempts exhausted (when check=True)
        subprocess.TimeoutExpired: After attempts exhausted
        FileNotFoundError: If the CLI binary is not installed
    """

    @retry_with_exponential_backoff(
        max_attempts=max_attempts,
        retryable_exceptions=(subprocess.CalledProcessError, subprocess.TimeoutExpired),
    )
    def _run() -> subprocess.CompletedProcess[str]:
        logger.debug(f"+ {format_command(cmd)}")
        return subprocess.run(cmd, capture_output=True, text=True, check=check, timeout=timeout)

    return _run()


__all__ = ["format_command", "run_cli_command"]
