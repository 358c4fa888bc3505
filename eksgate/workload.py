"""Kubernetes probe workloads run against a freshly provisioned cluster."""

from __future__ import annotations

from typing import Dict, Optional

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from .eks import EKSManager
from .errors import ProvisioningError
from .providers import ClusterOutputs
from .utils import info, unique_id

PROBE_IMAGE = "nginx:alpine"
PROBE_PREFIX = "terratest-pod"


def load_k8s_client(cluster: ClusterOutputs, region: str) -> client.CoreV1Api:
    """
    Load a Kubernetes client for an EKS cluster.

    Args:
        cluster: Endpoint, CA data and name of the cluster
        region: AWS region of the cluster

    Returns:
        CoreV1Api client instance
    """
    kubeconfig = EKSManager(cluster.name, region).kubeconfig(cluster.endpoint, cluster.ca_data)
    configuration = client.Configuration()
    config.load_kube_config_from_dict(kubeconfig, client_configuration=configuration)
    return client.CoreV1Api(client.ApiClient(configuration))


def build_probe_pod(name: str, namespace: str, image: str = PROBE_IMAGE) -> client.V1Pod:
    """Minimal single-container pod used to prove the cluster runs work."""
    resources = client.V1ResourceRequirements(
        requests={"cpu": "100m", "memory": "64Mi"},
        limits={"cpu": "200m", "memory": "128Mi"},
    )
    container = client.V1Container(
        name="nginx",
        image=image,
        ports=[client.V1ContainerPort(container_port=80)],
        resources=resources,
    )
    return client.V1Pod(
        metadata=client.V1ObjectMeta(
            name=name,
            namespace=namespace,
            labels={"app": "terratest", "test": "true"},
        ),
        spec=client.V1PodSpec(containers=[container], restart_policy="Never"),
    )


class KubernetesWorkloadProvider:
    """Runs probe pods and inspects nodes through the Kubernetes API."""

    def __init__(self, region: str, namespace: str = "default", image: str = PROBE_IMAGE):
        """
        Initialize the provider.

        Args:
            region: AWS region of the clusters
            namespace: Namespace the probe pods are created in
            image: Container image of the probe
        """
        self.region = region
        self.namespace = namespace
        self.image = image
        self._clients: Dict[str, client.CoreV1Api] = {}
        self._probe_clusters: Dict[str, str] = {}

    def _api(self, cluster: ClusterOutputs) -> client.CoreV1Api:
        if cluster.name not in self._clients:
            self._clients[cluster.name] = load_k8s_client(cluster, self.region)
        return self._clients[cluster.name]

    def _probe_api(self, probe_id: str) -> client.CoreV1Api:
        cluster_name = self._probe_clusters.get(probe_id)
        if cluster_name is None:
            raise ProvisioningError(f"Unknown probe: {probe_id}")
        return self._clients[cluster_name]

    def count_ready_nodes(self, cluster: ClusterOutputs) -> int:
        """
        Count nodes reporting a Ready=True condition.

        Args:
            cluster: Cluster to query

        Returns:
            Number of ready nodes
        """
        nodes = self._api(cluster).list_node().items
        ready = 0
        for node in nodes:
            for cond in (node.status.conditions or []):
                if cond.type == "Ready" and cond.status == "True":
                    ready += 1
                    break
        return ready

    def create_probe(self, cluster: ClusterOutputs) -> str:
        """
        Create the nginx probe pod.

        Args:
            cluster: Cluster to run the probe on

        Returns:
            Probe pod name, used as the probe id
        """
        api = self._api(cluster)
        name = f"{PROBE_PREFIX}-{unique_id().lower()}"
        info(f"Creating probe pod {name} in namespace {self.namespace}")
        api.create_namespaced_pod(
            namespace=self.namespace,
            body=build_probe_pod(name, self.namespace, self.image),
        )
        self._probe_clusters[name] = cluster.name
        return name

    def get_probe_status(self, probe_id: str) -> str:
        """
        Get the probe pod phase.

        Args:
            probe_id: Probe pod name returned by create_probe

        Returns:
            Pod phase (Pending, Running, ...) or Unknown

        Raises:
            ProvisioningError: If the probe was not created by this provider
        """
        pod = self._probe_api(probe_id).read_namespaced_pod(name=probe_id, namespace=self.namespace)
        phase: Optional[str] = pod.status.phase if pod.status else None
        return phase or "Unknown"

    def delete_probe(self, probe_id: str) -> None:
        """
        Delete the probe pod. Unknown or already deleted probes are ignored.

        Args:
            probe_id: Probe pod name returned by create_probe
        """
        if probe_id not in self._probe_clusters:
            return
        try:
            self._probe_api(probe_id).delete_namespaced_pod(name=probe_id, namespace=self.namespace)
        except ApiException as e:
            if e.status != 404:
                raise
        self._probe_clusters.pop(probe_id, None)
