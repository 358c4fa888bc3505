"""AWS EKS cluster management and the Terraform-backed provisioning provider."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

from .config import ClusterConfig
from .errors import ProvisioningError
from .providers import ClusterOutputs
from .terraform import TerraformManager
from .utils import run_command, warn

STATUS_NOT_FOUND = "NOT_FOUND"
STATUS_UNKNOWN = "UNKNOWN"


class EKSManager:
    """Wraps the ``aws eks`` CLI for one cluster."""

    def __init__(self, cluster_name: str, region: str):
        """
        Initialize EKS manager.

        Args:
            cluster_name: Name of the EKS cluster
            region: AWS region
        """
        self.cluster_name = cluster_name
        self.region = region

    def get_cluster_status(self) -> str:
        """
        Get cluster status.

        Returns:
            Cluster status (ACTIVE, CREATING, DELETING, etc.) or NOT_FOUND

        Raises:
            ProvisioningError: If the AWS call fails for any other reason
        """
        proc = run_command(
            [
                "aws", "eks", "describe-cluster",
                "--region", self.region,
                "--name", self.cluster_name,
                "--query", "cluster.status",
                "--output", "text"
            ],
            capture=True,
            check=False,
            verbose=False
        )

        if proc.returncode == 0:
            return (proc.stdout or "").strip()

        err = (proc.stderr or "").strip()
        if "ResourceNotFoundException" in err:
            return STATUS_NOT_FOUND

        raise ProvisioningError(f"Unable to check EKS cluster status: {err or 'unknown error'}")

    def kubeconfig(self, endpoint: str, ca_data: str) -> Dict[str, Any]:
        """
        Build an in-memory kubeconfig that authenticates through ``aws eks get-token``.

        Args:
            endpoint: Cluster API endpoint
            ca_data: Base64 encoded cluster CA bundle

        Returns:
            Kubeconfig as a dictionary
        """
        return {
            "apiVersion": "v1",
            "kind": "Config",
            "clusters": [{
                "name": self.cluster_name,
                "cluster": {"server": endpoint, "certificate-authority-data": ca_data},
            }],
            "users": [{
                "name": self.cluster_name,
                "user": {
                    "exec": {
                        "apiVersion": "client.authentication.k8s.io/v1beta1",
                        "command": "aws",
                        "args": [
                            "eks", "get-token",
                            "--region", self.region,
                            "--cluster-name", self.cluster_name,
                        ],
                    },
                },
            }],
            "contexts": [{
                "name": self.cluster_name,
                "context": {"cluster": self.cluster_name, "user": self.cluster_name},
            }],
            "current-context": self.cluster_name,
        }


class TerraformEKSProvider:
    """Provisions clusters by applying a Terraform EKS configuration."""

    def __init__(self, terraform_dir: Path, region: str, terraform: Optional[TerraformManager] = None):
        """
        Initialize the provider.

        Args:
            terraform_dir: Directory containing the Terraform EKS configuration
            region: AWS region the clusters live in
            terraform: Pre-built TerraformManager (defaults to one for terraform_dir)
        """
        self.region = region
        self.terraform = terraform or TerraformManager(terraform_dir)
        self._variables: Dict[str, Dict[str, Any]] = {}

    def apply(self, config: ClusterConfig) -> ClusterOutputs:
        """
        Apply the Terraform configuration for a cluster.

        The status is a best-effort snapshot; readiness is polled afterwards,
        so a failed status lookup is reported as UNKNOWN rather than raised.

        Args:
            config: Validated cluster configuration

        Returns:
            ClusterOutputs read from the Terraform outputs

        Raises:
            ProvisioningError: If Terraform fails or produces no outputs
        """
        variables = config.to_terraform_vars()
        # Remembered before apply so a partial apply can still be destroyed.
        self._variables[config.name] = variables
        self.terraform.init_and_apply(variables)

        outputs = self.terraform.get_outputs()
        if not outputs:
            raise ProvisioningError("Terraform apply completed but no outputs found")

        name = str(outputs.get("cluster_name", ""))
        status = STATUS_UNKNOWN
        if name:
            try:
                status = self.describe(name)
            except ProvisioningError as e:
                warn(f"Could not read status of cluster {name} after apply: {e}")

        return ClusterOutputs(
            endpoint=str(outputs.get("cluster_endpoint", "")),
            ca_data=str(outputs.get("cluster_certificate_authority_data", "")),
            name=name,
            status=status,
            version=outputs.get("cluster_version"),
        )

    def describe(self, name: str) -> str:
        """
        Get the current status of a cluster.

        Args:
            name: Cluster name

        Returns:
            EKS status string, or NOT_FOUND
        """
        return EKSManager(name, self.region).get_cluster_status()

    def destroy(self, name: str) -> None:
        """
        Destroy a cluster with the variables it was applied with.

        Args:
            name: Cluster name
        """
        variables = self._variables.get(name, {"cluster_name": name, "aws_region": self.region})
        self.terraform.destroy(var_args=self.terraform.build_var_args(variables))
