"""Cluster configuration record and harness settings."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import ConfigValidationError, ValidationErrorKind
from .retry import RetryPolicy
from .utils import env_with_default, parse_bool, split_list, unique_id
from .validation import merge_tags

DEFAULT_REGION = "us-west-1"
DEFAULT_ENVIRONMENT = "terratest"
DEFAULT_KUBERNETES_VERSION = "1.29"
DEFAULT_INSTANCE_TYPES = ("t3.medium",)
DEFAULT_NAME_PREFIX = "terratest"

DEFAULT_RETRY_INTERVAL = 30.0
DEFAULT_MAX_RETRIES = 20
DEFAULT_TEST_TIMEOUT = 30 * 60.0


@dataclass(frozen=True)
class NodeGroupSize:
    """Managed node group bounds."""

    min_size: int = 1
    max_size: int = 3
    desired_size: int = 2


@dataclass(frozen=True)
class ClusterConfig:
    """
    The parameters of one cluster provisioning attempt.

    Built right before provisioning, validated once, then handed to the
    provisioning provider. ``tags=None`` is kept distinct from ``{}`` so the
    validator can reject a missing tag mapping.
    """

    name: str
    version: str = DEFAULT_KUBERNETES_VERSION
    subnets: Tuple[str, ...] = ()
    tags: Optional[Mapping[str, str]] = field(default_factory=dict)
    instance_types: Tuple[str, ...] = DEFAULT_INSTANCE_TYPES
    node_group: NodeGroupSize = field(default_factory=NodeGroupSize)
    region: str = DEFAULT_REGION
    environment: str = DEFAULT_ENVIRONMENT

    @classmethod
    def from_env(cls, env_vars: Mapping[str, str]) -> "ClusterConfig":
        """
        Build a configuration from ``.env`` style variables.

        Args:
            env_vars: Variables loaded from an environment file

        Returns:
            ClusterConfig; a unique ``terratest-xxxxxx`` name is generated when
            CLUSTER_NAME is unset
        """
        env = dict(env_vars)
        name = env_with_default(env, "CLUSTER_NAME", "")
        if not name:
            name = f"{DEFAULT_NAME_PREFIX}-{unique_id().lower()}"

        instance_types = tuple(split_list(env_with_default(env, "NODE_INSTANCE_TYPES", "")))

        return cls(
            name=name,
            version=env_with_default(env, "KUBERNETES_VERSION", DEFAULT_KUBERNETES_VERSION),
            subnets=tuple(split_list(env_with_default(env, "SUBNET_IDS", ""))),
            tags=parse_tags(env_with_default(env, "TAGS", "")),
            instance_types=instance_types or DEFAULT_INSTANCE_TYPES,
            node_group=NodeGroupSize(
                min_size=_size_env(env, "NODE_MIN_SIZE", 1),
                max_size=_size_env(env, "NODE_MAX_SIZE", 3),
                desired_size=_size_env(env, "NODE_DESIRED_SIZE", 2),
            ),
            region=env_with_default(env, "AWS_REGION", DEFAULT_REGION),
            environment=env_with_default(env, "ENVIRONMENT", DEFAULT_ENVIRONMENT),
        )

    def default_tags(self) -> Dict[str, str]:
        """Tags applied to every resource unless overridden."""
        return {"ManagedBy": "terraform", "Environment": self.environment}

    def to_terraform_vars(self) -> Dict[str, Any]:
        """Map the configuration to the example module's Terraform variables."""
        variables: Dict[str, Any] = {
            "cluster_name": self.name,
            "aws_region": self.region,
            "environment": self.environment,
            "cluster_version": self.version,
            "node_instance_types": list(self.instance_types),
            "node_desired_size": self.node_group.desired_size,
            "node_min_size": self.node_group.min_size,
            "node_max_size": self.node_group.max_size,
            "tags": merge_tags(self.default_tags(), self.tags),
        }
        if self.subnets:
            variables["subnet_ids"] = list(self.subnets)
        return variables


def _size_env(env: Dict[str, str], key: str, default: int) -> int:
    raw = env_with_default(env, key, str(default))
    try:
        return int(raw)
    except ValueError:
        raise ConfigValidationError(
            ValidationErrorKind.INVALID_NODE_GROUP_SIZE,
            f"{key} must be an integer, got '{raw}'",
            value=raw,
            variable=key,
        ) from None


def parse_tags(raw: str) -> Dict[str, str]:
    """Parse ``Key=Value,Other=Value`` into a dict; a key without ``=`` gets an empty value."""
    tags: Dict[str, str] = {}
    for item in split_list(raw):
        if not item:
            continue
        key, _, value = item.partition("=")
        tags[key.strip()] = value.strip()
    return tags


@dataclass(frozen=True)
class HarnessSettings:
    """
    Tunables for a harness run.

    Each phase's worst case is ``max_attempts * delay``; ``run_timeout`` caps
    the whole run.
    """

    cluster_retry: RetryPolicy = field(
        default_factory=lambda: RetryPolicy(DEFAULT_MAX_RETRIES, DEFAULT_RETRY_INTERVAL)
    )
    node_retry: RetryPolicy = field(
        default_factory=lambda: RetryPolicy(DEFAULT_MAX_RETRIES, DEFAULT_RETRY_INTERVAL)
    )
    probe_retry: RetryPolicy = field(
        default_factory=lambda: RetryPolicy(DEFAULT_MAX_RETRIES, DEFAULT_RETRY_INTERVAL)
    )
    run_timeout: Optional[float] = DEFAULT_TEST_TIMEOUT
    min_subnets: int = 2
    required_tags: Tuple[str, ...] = ()
    probe_workload: bool = True

    @classmethod
    def from_env(cls, env_vars: Mapping[str, str]) -> "HarnessSettings":
        """
        Read settings from ``.env`` style variables.

        MAX_RETRIES and RETRY_INTERVAL apply to every phase; NODE_MAX_RETRIES
        and POD_MAX_RETRIES override the node and probe phases. TEST_TIMEOUT
        of 0 disables the run deadline.
        """
        env = dict(env_vars)
        interval = float(env_with_default(env, "RETRY_INTERVAL", str(DEFAULT_RETRY_INTERVAL)))
        max_retries = int(env_with_default(env, "MAX_RETRIES", str(DEFAULT_MAX_RETRIES)))
        node_retries = int(env_with_default(env, "NODE_MAX_RETRIES", str(max_retries)))
        pod_retries = int(env_with_default(env, "POD_MAX_RETRIES", str(max_retries)))
        timeout = float(env_with_default(env, "TEST_TIMEOUT", str(DEFAULT_TEST_TIMEOUT)))

        return cls(
            cluster_retry=RetryPolicy(max_retries, interval),
            node_retry=RetryPolicy(node_retries, interval),
            probe_retry=RetryPolicy(pod_retries, interval),
            run_timeout=timeout if timeout > 0 else None,
            min_subnets=int(env_with_default(env, "MIN_SUBNETS", "2")),
            required_tags=tuple(t for t in split_list(env_with_default(env, "REQUIRED_TAGS", "")) if t),
            probe_workload=not parse_bool(env_with_default(env, "SKIP_WORKLOAD", "false")),
        )
