"""Pre-flight validation of EKS cluster parameters.

Every check is pure and independent of the others, so callers may run any
subset in any order. A failing check raises ``ConfigValidationError`` with a
``kind`` identifying the constraint and the offending ``value``.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Dict, Iterable, Mapping, Optional, Sequence

from .errors import ConfigValidationError, ValidationErrorKind as Kind

if TYPE_CHECKING:
    from .config import ClusterConfig

MAX_NAME_LENGTH = 100

CLUSTER_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9-]*$")
KUBERNETES_VERSION_PATTERN = re.compile(r"^1\.[0-9]{1,2}$")
INSTANCE_TYPE_PATTERN = re.compile(r"^[a-z][a-z0-9]+\.[a-z0-9]+$")


def validate_name(name: str) -> None:
    """
    Check that a name is usable as an EKS cluster name.

    EKS cluster names must be 1-100 characters, alphanumeric plus hyphens,
    and must start with a letter or number.

    Raises:
        ConfigValidationError: EMPTY_NAME, NAME_TOO_LONG or INVALID_NAME_FORMAT
    """
    if not name:
        raise ConfigValidationError(Kind.EMPTY_NAME, "cluster name cannot be empty", name)

    if len(name) > MAX_NAME_LENGTH:
        raise ConfigValidationError(
            Kind.NAME_TOO_LONG,
            f"cluster name cannot exceed {MAX_NAME_LENGTH} characters, got {len(name)}",
            name,
            length=len(name),
        )

    if not CLUSTER_NAME_PATTERN.fullmatch(name):
        raise ConfigValidationError(
            Kind.INVALID_NAME_FORMAT,
            "cluster name must contain only alphanumeric characters and hyphens, "
            "and must start with a letter or number",
            name,
        )


def validate_version(version: str) -> None:
    """
    Check the Kubernetes version has the form ``1.XX``.

    Raises:
        ConfigValidationError: EMPTY_VERSION or INVALID_VERSION_FORMAT
    """
    if not version:
        raise ConfigValidationError(Kind.EMPTY_VERSION, "kubernetes version cannot be empty", version)

    if not KUBERNETES_VERSION_PATTERN.fullmatch(version):
        raise ConfigValidationError(
            Kind.INVALID_VERSION_FORMAT,
            f"kubernetes version must be in format 1.XX (e.g., 1.29), got {version!r}",
            version,
        )


def validate_subnets(subnets: Sequence[str], min_required: int) -> None:
    """
    Check the subnet count and that no subnet ID is blank.

    Whitespace-only IDs are treated as empty.

    Raises:
        ConfigValidationError: INSUFFICIENT_SUBNETS or EMPTY_SUBNET
    """
    if len(subnets) < min_required:
        raise ConfigValidationError(
            Kind.INSUFFICIENT_SUBNETS,
            f"at least {min_required} subnets required for high availability, got {len(subnets)}",
            list(subnets),
            have=len(subnets),
            need=min_required,
        )

    for index, subnet in enumerate(subnets):
        if not subnet.strip():
            raise ConfigValidationError(
                Kind.EMPTY_SUBNET,
                f"subnet at index {index} is empty",
                subnet,
                index=index,
            )


def validate_tags(tags: Optional[Mapping[str, str]], required_keys: Iterable[str]) -> None:
    """
    Check a tag mapping is present and carries every required key.

    An absent mapping (``None``) is an error; an empty one is not.

    Raises:
        ConfigValidationError: NIL_TAG_MAP or MISSING_REQUIRED_TAG
    """
    if tags is None:
        raise ConfigValidationError(Kind.NIL_TAG_MAP, "tags map cannot be nil")

    for key in required_keys:
        if key not in tags:
            raise ConfigValidationError(
                Kind.MISSING_REQUIRED_TAG,
                f"required tag '{key}' is missing",
                key,
            )


def validate_instance_types(instance_types: Sequence[str]) -> None:
    """
    Check there is at least one EC2 instance type and each looks like ``t3.medium``.

    Raises:
        ConfigValidationError: EMPTY_INSTANCE_TYPES or INVALID_INSTANCE_TYPE
    """
    if not instance_types:
        raise ConfigValidationError(
            Kind.EMPTY_INSTANCE_TYPES,
            "at least one instance type must be specified",
            list(instance_types),
        )

    for instance_type in instance_types:
        if not INSTANCE_TYPE_PATTERN.fullmatch(instance_type):
            raise ConfigValidationError(
                Kind.INVALID_INSTANCE_TYPE,
                f"invalid instance type format: {instance_type}",
                instance_type,
            )


def validate_node_group_size(min_size: int, max_size: int, desired_size: int) -> None:
    """
    Check ``0 <= min_size <= desired_size <= max_size``.

    Raises:
        ConfigValidationError: NEGATIVE_MIN, MAX_LESS_THAN_MIN,
            DESIRED_BELOW_MIN or DESIRED_ABOVE_MAX
    """
    bounds = {"min_size": min_size, "max_size": max_size, "desired_size": desired_size}

    if min_size < 0:
        raise ConfigValidationError(
            Kind.NEGATIVE_MIN, f"min size cannot be negative, got {min_size}", min_size, **bounds
        )

    if max_size < min_size:
        raise ConfigValidationError(
            Kind.MAX_LESS_THAN_MIN,
            f"max size ({max_size}) cannot be less than min size ({min_size})",
            max_size,
            **bounds,
        )

    if desired_size < min_size:
        raise ConfigValidationError(
            Kind.DESIRED_BELOW_MIN,
            f"desired size ({desired_size}) cannot be less than min size ({min_size})",
            desired_size,
            **bounds,
        )

    if desired_size > max_size:
        raise ConfigValidationError(
            Kind.DESIRED_ABOVE_MAX,
            f"desired size ({desired_size}) cannot exceed max size ({max_size})",
            desired_size,
            **bounds,
        )


def merge_tags(
    default_tags: Optional[Mapping[str, str]],
    custom_tags: Optional[Mapping[str, str]],
) -> Dict[str, str]:
    """Merge two tag sets; custom values win and ``None`` counts as empty."""
    result: Dict[str, str] = {}
    result.update(default_tags or {})
    result.update(custom_tags or {})
    return result


def validate_config(
    config: "ClusterConfig",
    min_subnets: int = 2,
    required_tags: Iterable[str] = (),
) -> None:
    """
    Run every check against a cluster configuration, raising the first failure.

    Args:
        config: The configuration about to be provisioned
        min_subnets: Minimum number of subnet IDs required
        required_tags: Tag keys that must be present

    Raises:
        ConfigValidationError: If any check fails
    """
    validate_name(config.name)
    validate_version(config.version)
    validate_subnets(config.subnets, min_subnets)
    validate_tags(config.tags, required_tags)
    validate_instance_types(config.instance_types)
    validate_node_group_size(
        config.node_group.min_size,
        config.node_group.max_size,
        config.node_group.desired_size,
    )
