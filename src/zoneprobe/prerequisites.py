"""
Prerequisites Checker Module

Verifies the cloud CLI a provider drives is installed before any resource is
touched.

Security Requirements:
- Read-only system checks
- No shell=True in subprocess calls
"""

import logging
import platform
import shutil
from typing import ClassVar

from zoneprobe.errors import DependencyError

logger = logging.getLogger(__name__)


class PrerequisiteChecker:
    """
    Check required external tools are installed.

    Required tools depend on the provider:
    - az (Azure CLI)
    - gcloud (Google Cloud SDK)
    """

    INSTALL_HINTS: ClassVar[dict[str, dict[str, str]]] = {
        "az": {
            "macos": "brew install azure-cli",
            "linux": "curl -sL https://aka.ms/InstallAzureCLIDeb | sudo bash",
            "windows": "winget install -e --id Microsoft.AzureCLI",
        },
        "gcloud": {
            "macos": "brew install --cask google-cloud-sdk",
            "linux": "https://cloud.google.com/sdk/docs/install#linux",
            "windows": "https://cloud.google.com/sdk/docs/install#windows",
        },
    }

    @classmethod
    def check_tool(cls, tool_name: str) -> bool:
        """
        Check if a single tool is available in PATH.

        Args:
            tool_name: Name of the tool to check

        Returns:
            bool: True if tool is available
        """
        result = shutil.which(tool_name)
        if result:
            logger.debug(f"Found {tool_name} at {result}")
            return True
        logger.debug(f"Tool not found: {tool_name}")
        return False

    @classmethod
    def require(cls, tool_name: str) -> None:
        """
        Fail fast if a required tool is missing.

        Args:
            tool_name: Name of the tool to check

        Raises:
            DependencyError: If the tool is not in PATH
        """
        if not cls.check_tool(tool_name):
            raise DependencyError(cls.format_missing_message(tool_name, cls.detect_platform()))

    @classmethod
    def detect_platform(cls) -> str:
        """
        Detect the operating system platform.

        Returns:
            str: Platform name (macos, linux, windows, unknown)
        """
        system = platform.system().lower()
        if system == "darwin":
            return "macos"
        if system in ("linux", "windows"):
            return system
        return "unknown"

    @classmethod
    def format_missing_message(cls, tool_name: str, platform_name: str) -> str:
        """
        Format user-friendly installation instructions for a missing tool.

        Args:
            tool_name: Missing tool name
            platform_name: Platform name from detect_platform()

        Returns:
            str: Error message with an install hint where one is known
        """
        message = f"{tool_name} is not installed. Please install {tool_name} to proceed."
        hint = cls.INSTALL_HINTS.get(tool_name, {}).get(platform_name)
        if hint:
            message += f"\n  Install: {hint}"
        return message


__all__ = ["PrerequisiteChecker"]
