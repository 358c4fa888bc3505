"""
Pre-flight validation and integration-test harness for EKS clusters.

This package provides:
- Pure validation of cluster parameters (name, version, subnets, tags,
  instance types, node group sizing) and tag merging
- A bounded retry loop for polling external systems
- A harness that provisions a cluster, waits for it, probes it with a pod
  and always tears it down
- Terraform, AWS EKS and Kubernetes backed providers for that harness
"""

from .config import ClusterConfig, HarnessSettings, NodeGroupSize
from .errors import (
    CommandError,
    ConfigValidationError,
    HarnessError,
    NotReadyError,
    PollTimeoutError,
    ProvisioningError,
    TeardownError,
    ValidationErrorKind,
)
from .harness import HarnessResult, HarnessState, ProvisioningHarness
from .providers import ClusterOutputs, ProvisioningProvider, WorkloadProvider
from .retry import PollAttempt, RetryPolicy, do_with_retry
from .validation import (
    merge_tags,
    validate_config,
    validate_instance_types,
    validate_name,
    validate_node_group_size,
    validate_subnets,
    validate_tags,
    validate_version,
)

__all__ = [
    "ClusterConfig",
    "HarnessSettings",
    "NodeGroupSize",
    "ClusterOutputs",
    "ProvisioningProvider",
    "WorkloadProvider",
    "ProvisioningHarness",
    "HarnessState",
    "HarnessResult",
    "RetryPolicy",
    "PollAttempt",
    "do_with_retry",
    "validate_name",
    "validate_version",
    "validate_subnets",
    "validate_tags",
    "validate_instance_types",
    "validate_node_group_size",
    "validate_config",
    "merge_tags",
    "ValidationErrorKind",
    "ConfigValidationError",
    "ProvisioningError",
    "NotReadyError",
    "CommandError",
    "PollTimeoutError",
    "TeardownError",
    "HarnessError",
]
