"""Cloud provider back ends.

Public API:
    CloudProvider: Interface the probe engine talks to
    get_provider: Build the back end named on the command line
"""

from zoneprobe.config_manager import ProbeConfig
from zoneprobe.errors import ValidationError
from zoneprobe.providers.azure import AzureProvider
from zoneprobe.providers.base import CloudProvider
from zoneprobe.providers.gcp import GcpProvider

PROVIDERS: dict[str, type[CloudProvider]] = {
    AzureProvider.name: AzureProvider,
    GcpProvider.name: GcpProvider,
}


def get_provider(name: str, config: ProbeConfig) -> CloudProvider:
    """Instantiate a provider by name.

    Raises:
        ValidationError: If the provider is unknown
    """
    try:
        provider_class = PROVIDERS[name]
    except KeyError as e:
        raise ValidationError(
            f"Unknown provider: {name}. Supported: {', '.join(sorted(PROVIDERS))}"
        ) from e
    return provider_class(config.provider_settings(name), config)


__all__ = ["PROVIDERS", "AzureProvider", "CloudProvider", "GcpProvider", "get_provider"]
