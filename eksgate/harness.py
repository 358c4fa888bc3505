"""Provisioning test harness - validate, provision, poll, probe, always tear down."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Tuple, TypeVar

from .config import ClusterConfig, HarnessSettings
from .errors import (
    ConfigValidationError,
    HarnessError,
    NotReadyError,
    ProvisioningError,
    TeardownError,
)
from .providers import (
    CLUSTER_ACTIVE,
    POD_RUNNING,
    ClusterOutputs,
    ProvisioningProvider,
    WorkloadProvider,
)
from .retry import RetryPolicy, do_with_retry
from .utils import error, info, success, warn
from .validation import validate_config

T = TypeVar("T")


class HarnessState(str, Enum):
    """
    Lifecycle of one harness run.

    Each phase moves from a running state to either its success state or its
    failure state. Every run, passed or failed, ends TEARDOWN -> DONE.
    """

    INIT = "INIT"
    APPLYING = "APPLYING"
    APPLY_FAILED = "APPLY_FAILED"
    APPLIED = "APPLIED"
    POLLING_CLUSTER = "POLLING_CLUSTER"
    CLUSTER_ACTIVE = "CLUSTER_ACTIVE"
    CLUSTER_TIMEOUT = "CLUSTER_TIMEOUT"
    POLLING_NODES = "POLLING_NODES"
    NODES_READY = "NODES_READY"
    NODE_TIMEOUT = "NODE_TIMEOUT"
    PROBING_WORKLOAD = "PROBING_WORKLOAD"
    WORKLOAD_OK = "WORKLOAD_OK"
    WORKLOAD_TIMEOUT = "WORKLOAD_TIMEOUT"
    TEARDOWN = "TEARDOWN"
    DONE = "DONE"


@dataclass
class HarnessResult:
    """What a successful run observed."""

    cluster: ClusterOutputs
    ready_nodes: Optional[int] = None
    probe_id: Optional[str] = None
    history: List[HarnessState] = field(default_factory=list)


def check_outputs(config: ClusterConfig, outputs: ClusterOutputs) -> None:
    """
    Sanity-check what the provisioning provider reported.

    Raises:
        ProvisioningError: Listing every mismatch found
    """
    problems = []
    if not outputs.endpoint:
        problems.append("cluster endpoint should not be empty")
    elif not outputs.endpoint.startswith("https://"):
        problems.append(f"cluster endpoint should be HTTPS, got {outputs.endpoint}")
    if not outputs.ca_data:
        problems.append("cluster CA data should not be empty")
    if outputs.name != config.name:
        problems.append(f"cluster name should be {config.name}, got {outputs.name}")
    if outputs.version is not None and not str(outputs.version).startswith("1."):
        problems.append(f"cluster version should start with 1., got {outputs.version}")

    if problems:
        raise ProvisioningError("; ".join(problems))


class ProvisioningHarness:
    """
    Drives one cluster through provision -> ready -> probe -> teardown.

    A harness instance handles a single run. Cleanups are registered before
    the call that creates the resource they release and run in reverse order
    on every exit path, including KeyboardInterrupt. Cleanup failures are
    reported but never replace the failure that ended the run.

    Usage:
        harness = ProvisioningHarness(provider, workloads, settings)
        result = harness.run(config)
    """

    def __init__(
        self,
        provisioner: ProvisioningProvider,
        workloads: Optional[WorkloadProvider] = None,
        settings: Optional[HarnessSettings] = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the harness.

        Args:
            provisioner: Creates, describes and destroys clusters
            workloads: Runs node checks and probe pods; skipped when None
            settings: Retry budgets and validation parameters
            sleep: Sleep function used between poll attempts
            clock: Monotonic clock used for the run deadline
        """
        self.provisioner = provisioner
        self.workloads = workloads
        self.settings = settings or HarnessSettings()
        self._sleep = sleep
        self._clock = clock
        self._deadline: Optional[float] = None
        self._cleanups: List[Tuple[str, Callable[[], None]]] = []
        self.state = HarnessState.INIT
        self.history: List[HarnessState] = [HarnessState.INIT]

    def __enter__(self) -> "ProvisioningHarness":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        teardown_error = self.teardown()
        if teardown_error is not None and exc_type is None:
            raise teardown_error
        return False

    def _transition(self, state: HarnessState) -> None:
        self.state = state
        self.history.append(state)
        print(f"  harness state -> {state.value}")

    def _defer(self, label: str, cleanup: Callable[[], None]) -> None:
        self._cleanups.append((label, cleanup))

    def _phase(
        self,
        running: HarnessState,
        done: HarnessState,
        failed: HarnessState,
        step: Callable[[], T],
    ) -> T:
        self._transition(running)
        try:
            value = step()
        except Exception:
            self._transition(failed)
            raise
        self._transition(done)
        return value

    def _poll(self, description: str, policy: RetryPolicy, check: Callable[[], T]) -> T:
        return do_with_retry(
            description,
            policy,
            check,
            deadline=self._deadline,
            sleep=self._sleep,
            clock=self._clock,
        )

    def run(self, config: ClusterConfig) -> HarnessResult:
        """
        Validate, provision and verify a cluster, then tear it down.

        Args:
            config: The cluster to provision

        Returns:
            HarnessResult describing the verified cluster

        Raises:
            ConfigValidationError: Before any provider call, if config is invalid
            HarnessError: If provisioning, polling or probing failed
            TeardownError: If the run passed but cleanup failed
        """
        if self.state is not HarnessState.INIT:
            raise RuntimeError("ProvisioningHarness instances are single-use")

        try:
            validate_config(config, self.settings.min_subnets, self.settings.required_tags)
        except ConfigValidationError as e:
            error(f"Invalid cluster configuration ({e.kind.value}): {e}")
            self.teardown()
            raise

        if self.settings.run_timeout is not None:
            self._deadline = self._clock() + self.settings.run_timeout

        try:
            result = self._provision_and_verify(config)
        except Exception as exc:
            failed_state = self.state
            error(f"Run for cluster {config.name} failed in {failed_state.value}: {exc}")
            raise HarnessError(failed_state, exc, self.teardown()) from exc
        except BaseException:
            # KeyboardInterrupt and friends still release what was created.
            self.teardown()
            raise

        teardown_error = self.teardown()
        if teardown_error is not None:
            raise teardown_error

        result.history = list(self.history)
        success(f"Cluster {config.name} verified and torn down")
        return result

    def _provision_and_verify(self, config: ClusterConfig) -> HarnessResult:
        info(f"Provisioning cluster {config.name} ({config.region}, Kubernetes {config.version})")

        def apply() -> ClusterOutputs:
            self._defer(f"destroy cluster {config.name}", lambda: self.provisioner.destroy(config.name))
            outputs = self.provisioner.apply(config)
            check_outputs(config, outputs)
            return outputs

        cluster = self._phase(
            HarnessState.APPLYING, HarnessState.APPLIED, HarnessState.APPLY_FAILED, apply
        )

        def cluster_active() -> str:
            status = self.provisioner.describe(cluster.name)
            if status != CLUSTER_ACTIVE:
                raise NotReadyError(f"cluster status is {status}, waiting for {CLUSTER_ACTIVE}")
            return status

        self._phase(
            HarnessState.POLLING_CLUSTER,
            HarnessState.CLUSTER_ACTIVE,
            HarnessState.CLUSTER_TIMEOUT,
            lambda: self._poll("Describe EKS cluster", self.settings.cluster_retry, cluster_active),
        )
        result = HarnessResult(cluster=cluster)

        workloads = self.workloads
        if workloads is None:
            warn("No workload provider configured; skipping node and probe checks")
            return result

        def nodes_ready() -> int:
            ready = workloads.count_ready_nodes(cluster)
            if ready == 0:
                raise NotReadyError("no nodes are ready yet")
            return ready

        result.ready_nodes = self._phase(
            HarnessState.POLLING_NODES,
            HarnessState.NODES_READY,
            HarnessState.NODE_TIMEOUT,
            lambda: self._poll("Wait for nodes to be ready", self.settings.node_retry, nodes_ready),
        )
        print(f"  {result.ready_nodes} node(s) ready")

        if not self.settings.probe_workload:
            return result

        def probe() -> str:
            probe_id = workloads.create_probe(cluster)
            self._defer(f"delete probe {probe_id}", lambda: workloads.delete_probe(probe_id))

            def probe_running() -> str:
                phase = workloads.get_probe_status(probe_id)
                if phase != POD_RUNNING:
                    raise NotReadyError(f"pod is in {phase} state, waiting for {POD_RUNNING}")
                return phase

            self._poll("Wait for pod to be running", self.settings.probe_retry, probe_running)
            return probe_id

        result.probe_id = self._phase(
            HarnessState.PROBING_WORKLOAD,
            HarnessState.WORKLOAD_OK,
            HarnessState.WORKLOAD_TIMEOUT,
            probe,
        )
        return result

    def teardown(self) -> Optional[TeardownError]:
        """
        Run every registered cleanup, newest first.

        Safe to call repeatedly: once the cleanups have run, later calls do
        nothing.

        Returns:
            TeardownError collecting failed steps, or None
        """
        if self.state is HarnessState.DONE and not self._cleanups:
            return None

        self._transition(HarnessState.TEARDOWN)
        failures: List[Tuple[str, Exception]] = []
        while self._cleanups:
            label, cleanup = self._cleanups.pop()
            info(f"Teardown: {label}")
            try:
                cleanup()
            except Exception as exc:
                warn(f"Teardown step '{label}' failed: {exc}")
                failures.append((label, exc))
        self._transition(HarnessState.DONE)

        return TeardownError(failures) if failures else None
