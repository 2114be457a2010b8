"""Azure back end, driven through the az CLI.

The run container is a resource group. Every resource the probe creates
(vnet, subnet, proximity placement groups, availability sets, VMs) lives in
it, so teardown is a single cascading `az group delete --no-wait`.
"""

import json
import logging
from typing import Any

from zoneprobe.errors import ProviderError
from zoneprobe.models import InstanceRequest, NetworkHandle
from zoneprobe.providers.base import CloudProvider

logger = logging.getLogger(__name__)

# az vm list-skus walks the whole catalogue and is slow
LIST_SKUS_TIMEOUT = 600


class AzureProvider(CloudProvider):
    """Azure control plane via az CLI."""

    name = "azure"
    cli_tool = "az"
    cascading_delete = True
    supports_availability_groups = True

    def list_zones(self, region: str, size: str) -> list[str]:
        """Zones of a region offering a VM size, from `az vm list-skus`.

        Raises:
            ProviderError: If the query fails or returns unparseable output
        """
        cmd = [
            "az",
            "vm",
            "list-skus",
            "--location",
            region,
            "--size",
            size,
            "--resource-type",
            "virtualMachines",
            "--output",
            "json",
        ]
        result = self._run(
            cmd, timeout=LIST_SKUS_TIMEOUT, max_attempts=self.config.discovery_max_attempts
        )

        try:
            skus: list[dict[str, Any]] = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise ProviderError(f"Failed to parse SKU list: {e}", command=cmd) from e

        if not isinstance(skus, list) or not skus:
            return []

        # --size is a prefix match; prefer the exact SKU
        sku = next(
            (s for s in skus if str(s.get("name", "")).lower() == size.lower()),
            skus[0],
        )
        return self._zones_from_sku(sku, region)

    @staticmethod
    def _zones_from_sku(sku: dict[str, Any], region: str) -> list[str]:
        location_info = sku.get("locationInfo") or []
        if not isinstance(location_info, list) or not location_info:
            return []

        info = next(
            (i for i in location_info if str(i.get("location", "")).lower() == region.lower()),
            location_info[0],
        )
        zones = info.get("zones") or []
        if not isinstance(zones, list):
            raise ProviderError(f"Unexpected zones value for {sku.get('name')}: {zones!r}")

        for restriction in sku.get("restrictions") or []:
            if restriction.get("type") == "Zone":
                restricted = (restriction.get("restrictionInfo") or {}).get("zones") or []
                logger.warning(
                    f"{sku.get('name')} is restricted in zone(s) {', '.join(restricted)}: "
                    f"{restriction.get('reasonCode', 'unknown reason')}"
                )

        return [str(z) for z in zones]

    def create_network_container(self, name: str, region: str) -> str:
        logger.info(f"Creating resource group '{name}' in region '{region}'...")
        self._run(
            ["az", "group", "create", "--name", name, "--location", region, "--output", "none"]
        )
        return name

    def create_subnet(self, container: str, name: str, cidr: str, region: str) -> NetworkHandle:
        vnet_name = f"{container}-vnet"
        logger.info(f"Creating virtual network '{vnet_name}' in resource group '{container}'...")
        self._run(
            [
                "az",
                "network",
                "vnet",
                "create",
                "--name",
                vnet_name,
                "--resource-group",
                container,
                "--location",
                region,
                "--address-prefixes",
                self.config.vnet_cidr,
                "--subnet-name",
                name,
                "--subnet-prefix",
                cidr,
                "--output",
                "none",
            ]
        )
        return NetworkHandle(container=container, network=vnet_name, subnet=name, region=region)

    def create_placement_group(
        self,
        name: str,
        container: str,
        region: str,
        zone: str | None,
        size: str,
        fault_domain_count: int,
    ) -> str:
        zone_msg = f", zone '{zone}'" if zone else ""
        logger.info(
            f"Creating Proximity Placement Group '{name}' in region '{region}'{zone_msg}..."
        )
        cmd = [
            "az",
            "ppg",
            "create",
            "--name",
            name,
            "--resource-group",
            container,
            "--location",
            region,
            "--type",
            "Standard",
            "--intent-vm-sizes",
            size,
            "--output",
            "none",
        ]
        if zone:
            cmd.extend(["--zone", zone])
        self._run(cmd)
        return name

    def create_availability_group(
        self,
        name: str,
        container: str,
        region: str,
        placement_group: str,
        fault_domain_count: int,
        update_domain_count: int,
    ) -> str:
        logger.info(
            f"Creating Availability Set '{name}' in region '{region}' "
            f"with fault domain count '{fault_domain_count}'..."
        )
        self._run(
            [
                "az",
                "vm",
                "availability-set",
                "create",
                "--name",
                name,
                "--resource-group",
                container,
                "--location",
                region,
                "--ppg",
                placement_group,
                "--platform-fault-domain-count",
                str(fault_domain_count),
                "--platform-update-domain-count",
                str(update_domain_count),
                "--output",
                "none",
            ]
        )
        return name

    def build_instance_command(self, request: InstanceRequest) -> list[str]:
        # Zone comes from the zonal proximity placement group; az rejects
        # --zone together with --availability-set
        cmd = [
            "az",
            "vm",
            "create",
            "--resource-group",
            request.network.container,
            "--name",
            request.name,
            "--location",
            request.region,
            "--size",
            request.size,
            "--image",
            request.image,
            "--vnet-name",
            request.network.network,
            "--subnet",
            request.network.subnet,
            "--security-type",
            "TrustedLaunch",
            "--enable-secure-boot",
            "false",
            "--admin-username",
            self.settings.admin_username,
            "--generate-ssh-keys",
            "--ppg",
            request.scaffolding.placement_group,
            "--public-ip-address",
            "",
            "--accelerated-networking",
            "true",
        ]
        if request.scaffolding.availability_group:
            cmd.extend(["--availability-set", request.scaffolding.availability_group])
        cmd.extend(request.extras)
        cmd.extend(["--only-show-errors", "--output", "none"])
        return cmd

    def delete_container(self, container: str) -> None:
        logger.info(f"Deleting resource group '{container}'...")
        self._run(
            [
                "az",
                "group",
                "delete",
                "--name",
                container,
                "--yes",
                "--no-wait",
                "--output",
                "none",
            ]
        )


__all__ = ["AzureProvider"]
