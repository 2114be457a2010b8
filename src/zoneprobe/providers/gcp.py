"""Google Cloud back end, driven through the gcloud CLI.

The run container is a custom-mode VPC network. GCP has no cascading delete
for it, so teardown removes instances, placement policies, the subnet and the
network one by one. The placement-affinity construct is a group-placement
resource policy whose availability-domain count does the fault spreading;
there is no separate availability-grouping construct.
"""

import logging

from zoneprobe.errors import ProviderError, ValidationError
from zoneprobe.models import InstanceRequest, NetworkHandle, RunSpec
from zoneprobe.providers.base import CloudProvider

logger = logging.getLogger(__name__)


def min_cpu_platform(machine_type: str) -> str:
    """Minimum CPU platform for a machine type.

    AMD families carry a "d" as third character (n2d, c2d, c3d); anything
    else is treated as Intel.

    Raises:
        ValidationError: For an AMD family with no known platform
    """
    family = machine_type.lower()
    if len(family) > 2 and family[2] == "d":
        if family[0] == "n":
            return "AMD Rome"
        if family[0] == "c":
            return "AMD Milan" if family[1] == "2" else "AMD Genoa"
        raise ValidationError(
            f"Unknown instance type '{machine_type}': no minimum CPU platform is known for it"
        )
    return "Intel Ice Lake"


def only_not_found(stderr: str) -> bool:
    """True if every per-resource error gcloud listed is "was not found"."""
    failures = [line.strip()[2:] for line in stderr.splitlines() if line.strip().startswith("- ")]
    return bool(failures) and all("was not found" in failure for failure in failures)


class GcpProvider(CloudProvider):
    """Google Cloud control plane via gcloud CLI."""

    name = "gcp"
    cli_tool = "gcloud"
    cascading_delete = False
    supports_availability_groups = False

    def validate(self, run: RunSpec) -> None:
        min_cpu_platform(run.size)

    def list_zones(self, region: str, size: str) -> list[str]:
        """Zones of a region offering a machine type.

        Raises:
            ProviderError: If the query fails
        """
        cmd = [
            "gcloud",
            "compute",
            "machine-types",
            "list",
            f"--filter=name={size} AND zone~^{region}-",
            "--format=value(zone.basename())",
        ]
        result = self._run(cmd, max_attempts=self.config.discovery_max_attempts)

        zones: list[str] = []
        for line in result.stdout.splitlines():
            zone = line.strip()
            if zone and zone not in zones:
                zones.append(zone)
        return zones

    def create_network_container(self, name: str, region: str) -> str:
        logger.info(f"Creating VPC network '{name}'...")
        self._run(
            ["gcloud", "compute", "networks", "create", name, "--subnet-mode=custom", "--quiet"]
        )
        return name

    def create_subnet(self, container: str, name: str, cidr: str, region: str) -> NetworkHandle:
        logger.info(f"Creating subnet '{name}' in network '{container}' ({cidr})...")
        self._run(
            [
                "gcloud",
                "compute",
                "networks",
                "subnets",
                "create",
                name,
                "--network",
                container,
                "--region",
                region,
                "--range",
                cidr,
                "--quiet",
            ]
        )
        return NetworkHandle(container=container, network=container, subnet=name, region=region)

    def create_placement_group(
        self,
        name: str,
        container: str,
        region: str,
        zone: str | None,
        size: str,
        fault_domain_count: int,
    ) -> str:
        # Resource policies are regional; zone only affects where instances go
        logger.info(
            f"Creating placement policy '{name}' in region '{region}' "
            f"with {fault_domain_count} availability domains..."
        )
        self._run(
            [
                "gcloud",
                "compute",
                "resource-policies",
                "create",
                "group-placement",
                name,
                f"--availability-domain-count={fault_domain_count}",
                f"--region={region}",
                "--quiet",
            ]
        )
        return name

    def instance_extras(self, run: RunSpec) -> tuple[str, ...]:
        if run.is_storage_role:
            return ("--local-ssd=interface=NVME",) * self.settings.local_ssd_count
        return ()

    def _image_args(self, image: str) -> list[str]:
        # "project/family" or a bare family name
        if "/" in image:
            project, family = image.split("/", 1)
            return ["--image-project", project, "--image-family", family]
        return ["--image-family", image]

    def build_instance_command(self, request: InstanceRequest) -> list[str]:
        cmd = [
            "gcloud",
            "compute",
            "instances",
            "create",
            request.name,
            "--zone",
            request.zone or "",
            f"--min-cpu-platform={min_cpu_platform(request.size)}",
            "--machine-type",
            request.size,
            f"--resource-policies={request.scaffolding.placement_group}",
            "--network",
            request.network.network,
            "--subnet",
            request.network.subnet,
            "--no-address",
        ]
        cmd.extend(self._image_args(request.image))
        cmd.extend(request.extras)
        cmd.append("--quiet")
        return cmd

    def delete_instances(self, container: str, zone: str | None, names: list[str]) -> None:
        logger.info(f"Deleting {len(names)} instance(s) in zone '{zone}'...")
        try:
            self._run(
                [
                    "gcloud",
                    "compute",
                    "instances",
                    "delete",
                    *names,
                    "--zone",
                    zone or "",
                    "--quiet",
                ],
                timeout=self.config.instance_timeout,
            )
        except ProviderError as e:
            if not only_not_found(e.stderr):
                raise
            # The others were deleted; the missing ones never existed
            logger.debug(f"Some instances in zone '{zone}' were already gone: {e.stderr}")

    def delete_placement_group(self, container: str, name: str, region: str) -> None:
        logger.info(f"Deleting placement policy '{name}'...")
        self._run(
            [
                "gcloud",
                "compute",
                "resource-policies",
                "delete",
                name,
                "--region",
                region,
                "--quiet",
            ]
        )

    def delete_subnet(self, container: str, subnet: str, region: str) -> None:
        logger.info(f"Deleting subnet '{subnet}'...")
        self._run(
            [
                "gcloud",
                "compute",
                "networks",
                "subnets",
                "delete",
                subnet,
                "--region",
                region,
                "--quiet",
            ]
        )

    def delete_network(self, container: str) -> None:
        logger.info(f"Deleting VPC network '{container}'...")
        self._run(["gcloud", "compute", "networks", "delete", container, "--quiet"])


__all__ = ["GcpProvider", "min_cpu_platform", "only_not_found"]
