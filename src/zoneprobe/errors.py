"""Exception hierarchy for zoneprobe.

Every fatal error a probe can hit derives from ProbeError, which carries the
process exit code. Per-instance creation failures are not exceptions: they are
counted as FAILED task outcomes by the provisioner. Teardown failures are not
exceptions either: they are collected as warnings.
"""


class ProbeError(Exception):
    """Base exception for fatal zoneprobe errors."""

    exit_code = 1


class ValidationError(ProbeError):
    """Raised when CLI input or option combinations are invalid."""

    pass


class ConfigError(ProbeError):
    """Raised when the configuration file cannot be loaded or is invalid."""

    pass


class DependencyError(ProbeError):
    """Raised when a required external command-line tool is missing."""

    pass


class DiscoveryError(ProbeError):
    """Raised when zone discovery fails or returns unusable data."""

    pass


class ScaffoldingError(ProbeError):
    """Raised when network or placement scaffolding cannot be created."""

    pass


class LedgerError(ProbeError):
    """Raised when the results ledger cannot be written or parsed."""

    pass


class ProbeInterrupted(ProbeError):
    """Raised when the operator interrupts a running probe."""

    pass


class ProviderError(Exception):
    """Raised when a cloud CLI call fails.

    Callers translate this into the fatal error, task outcome or teardown
    warning that fits the phase they are in.
    """

    def __init__(self, message: str, command: list[str] | None = None, stderr: str = ""):
        super().__init__(message)
        self.command = command or []
        self.stderr = stderr


__all__ = [
    "ConfigError",
    "DependencyError",
    "DiscoveryError",
    "LedgerError",
    "ProbeError",
    "ProbeInterrupted",
    "ProviderError",
    "ScaffoldingError",
    "ValidationError",
]
