"""Capabilities the harness drives: cluster provisioning and probe workloads."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Protocol

if TYPE_CHECKING:
    from .config import ClusterConfig

CLUSTER_ACTIVE = "ACTIVE"
POD_RUNNING = "Running"


@dataclass(frozen=True)
class ClusterOutputs:
    """What a provisioning call reports about the cluster it created."""

    endpoint: str
    ca_data: str
    name: str
    status: str
    version: Optional[str] = None


class ProvisioningProvider(Protocol):
    """Creates, inspects and destroys clusters."""

    def apply(self, config: "ClusterConfig") -> ClusterOutputs:
        ...

    def describe(self, name: str) -> str:
        """Return the current cluster status, e.g. ``CREATING`` or ``ACTIVE``."""
        ...

    def destroy(self, name: str) -> None:
        """Release the cluster; destroying an already-gone cluster must succeed."""
        ...


class WorkloadProvider(Protocol):
    """Runs probe workloads on a provisioned cluster."""

    def count_ready_nodes(self, cluster: ClusterOutputs) -> int:
        ...

    def create_probe(self, cluster: ClusterOutputs) -> str:
        """Start a probe workload and return its identifier."""
        ...

    def get_probe_status(self, probe_id: str) -> str:
        """Return the probe's phase, e.g. ``Pending`` or ``Running``."""
        ...

    def delete_probe(self, probe_id: str) -> None:
        """Remove the probe; deleting an already-gone probe must succeed."""
        ...
