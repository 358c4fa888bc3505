"""Exception types raised by the validator, providers and harness."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, List, Optional, Sequence, Tuple

if TYPE_CHECKING:
    from .retry import PollAttempt


class ValidationErrorKind(str, Enum):
    """Which configuration constraint was violated."""

    EMPTY_NAME = "empty_name"
    NAME_TOO_LONG = "name_too_long"
    INVALID_NAME_FORMAT = "invalid_name_format"
    EMPTY_VERSION = "empty_version"
    INVALID_VERSION_FORMAT = "invalid_version_format"
    INSUFFICIENT_SUBNETS = "insufficient_subnets"
    EMPTY_SUBNET = "empty_subnet"
    NIL_TAG_MAP = "nil_tag_map"
    MISSING_REQUIRED_TAG = "missing_required_tag"
    EMPTY_INSTANCE_TYPES = "empty_instance_types"
    INVALID_INSTANCE_TYPE = "invalid_instance_type"
    NEGATIVE_MIN = "negative_min"
    MAX_LESS_THAN_MIN = "max_less_than_min"
    DESIRED_BELOW_MIN = "desired_below_min"
    DESIRED_ABOVE_MAX = "desired_above_max"
    INVALID_NODE_GROUP_SIZE = "invalid_node_group_size"


class ConfigValidationError(ValueError):
    """
    A configuration value was rejected before any infrastructure action.

    Attributes:
        kind: The violated constraint
        value: The offending value
        details: Extra structured context (lengths, indexes, bounds)
    """

    def __init__(self, kind: ValidationErrorKind, message: str, value: Any = None, **details: Any):
        super().__init__(message)
        self.kind = kind
        self.value = value
        self.details = details


class ProvisioningError(RuntimeError):
    """The provisioning or workload provider reported a failure."""


class NotReadyError(ProvisioningError):
    """A single-shot readiness check did not observe the target state."""


class CommandError(ProvisioningError):
    """An external command exited with a non-zero status."""

    def __init__(self, cmd: Sequence[str], returncode: int, output: str = ""):
        self.cmd = list(cmd)
        self.returncode = returncode
        self.output = output
        message = f"Command failed ({returncode}): {' '.join(self.cmd)}"
        if output:
            message = f"{message}\n{output}"
        super().__init__(message)


class PollTimeoutError(ProvisioningError):
    """A poll loop used up its attempt budget (or deadline) without success."""

    def __init__(self, description: str, attempts: List["PollAttempt"]):
        self.description = description
        self.attempts = attempts
        last = attempts[-1] if attempts else None
        self.last_error: Optional[BaseException] = last.error if last else None
        message = f"'{description}' unsuccessful after {len(attempts)} attempts"
        if self.last_error is not None:
            message = f"{message}: {self.last_error}"
        super().__init__(message)


class TeardownError(RuntimeError):
    """One or more cleanup steps failed."""

    def __init__(self, failures: List[Tuple[str, Exception]]):
        self.failures = failures
        summary = "; ".join(f"{label}: {exc}" for label, exc in failures)
        super().__init__(f"Teardown failed ({len(failures)} step(s)): {summary}")


class HarnessError(RuntimeError):
    """
    A harness run failed after provisioning started.

    Attributes:
        state: Terminal failure state of the run
        cause: The primary error
        teardown_error: Cleanup failure observed afterwards, if any
    """

    def __init__(self, state: Any, cause: BaseException, teardown_error: Optional[TeardownError] = None):
        self.state = state
        self.cause = cause
        self.teardown_error = teardown_error
        message = f"{getattr(state, 'value', state)}: {cause}"
        if teardown_error is not None:
            message = f"{message} (additionally: {teardown_error})"
        super().__init__(message)
