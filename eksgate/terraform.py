"""Terraform CLI wrapper."""

from __future__ import annotations

import json
import re
import time
from pathlib import Path
from typing import Any, Callable, Pattern

from .errors import CommandError, ProvisioningError
from .utils import info, run_command, success, warn

# Errors worth retrying rather than failing the run (network blips, registry hiccups).
DEFAULT_RETRYABLE_ERRORS: dict[str, str] = {
    r".*timeout while waiting for plugin to start.*": "Failed to reach helper plugin",
    r".*timed out waiting for server handshake.*": "Failed to reach helper plugin",
    r".*Error installing provider.*": "Failed to install provider",
    r".*Failed to query available provider packages.*": "Failed to query provider registry",
    r".*registry service is unreachable.*": "Registry unreachable",
    r".*RequestError: send request failed.*": "AWS request failed",
    r".*connection reset by peer.*": "Connection reset",
    r".*TLS handshake timeout.*": "TLS handshake timeout",
    r".*Client\.Timeout exceeded while awaiting headers.*": "HTTP client timeout",
    r".*could not query provider registry.*": "Failed to query provider registry",
}


class TerraformManager:
    """Runs Terraform commands against one configuration directory."""

    def __init__(
        self,
        working_dir: Path,
        retryable_errors: dict[str, str] | None = None,
        max_retries: int = 3,
        retry_interval: float = 5.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize Terraform manager.

        Args:
            working_dir: Directory containing Terraform configuration
            retryable_errors: Regex -> reason map of output worth retrying
            max_retries: Attempts for a command that hits a retryable error
            retry_interval: Seconds between such attempts
            sleep: Sleep function (injectable for tests)
        """
        self.working_dir = working_dir
        if not self.working_dir.is_dir():
            raise ProvisioningError(f"Terraform directory not found: {working_dir}")

        patterns = DEFAULT_RETRYABLE_ERRORS if retryable_errors is None else retryable_errors
        self.retryable_errors: list[tuple[Pattern[str], str]] = [
            (re.compile(pattern, re.DOTALL), reason) for pattern, reason in patterns.items()
        ]
        self.max_retries = max_retries
        self.retry_interval = retry_interval
        self._sleep = sleep

    def _run(self, args: list[str]) -> None:
        """Run ``terraform <args>``, retrying output that matches a retryable error."""
        cmd = ["terraform", *args, "-no-color"]
        for attempt in range(1, self.max_retries + 1):
            try:
                run_command(cmd, cwd=self.working_dir, capture=True)
                return
            except CommandError as exc:
                reason = self._retry_reason(exc.output)
                if reason is None or attempt == self.max_retries:
                    raise
                warn(f"{reason}; retrying terraform {args[0]} ({attempt}/{self.max_retries})")
                self._sleep(self.retry_interval)

    def _retry_reason(self, output: str) -> str | None:
        for pattern, reason in self.retryable_errors:
            if pattern.search(output):
                return reason
        return None

    def init(self, upgrade: bool = True) -> None:
        """
        Initialize Terraform.

        Args:
            upgrade: Whether to upgrade providers
        """
        info("Initializing Terraform")
        args = ["init", "-input=false"]
        if upgrade:
            args.append("-upgrade")
        self._run(args)
        success("Terraform initialized")

    def validate(self) -> None:
        """Validate Terraform configuration."""
        info("Validating Terraform configuration")
        self._run(["validate"])
        success("Terraform configuration is valid")

    def apply(self, var_args: list[str] | None = None, auto_approve: bool = True) -> None:
        """
        Apply Terraform configuration.

        Args:
            var_args: Variable arguments to pass to Terraform
            auto_approve: Whether to auto-approve changes
        """
        info("Applying Terraform configuration")
        args = ["apply", "-input=false"]
        if auto_approve:
            args.append("-auto-approve")
        if var_args:
            args.extend(var_args)
        self._run(args)
        success("Terraform applied successfully")

    def init_and_apply(self, variables: dict[str, Any]) -> None:
        """Run ``init``, ``validate`` and ``apply`` with the given variables."""
        self.init(upgrade=False)
        self.validate()
        self.apply(var_args=self.build_var_args(variables))

    def destroy(self, var_args: list[str] | None = None, auto_approve: bool = True) -> None:
        """
        Destroy Terraform-managed infrastructure.

        Destroying an empty state is a no-op, so this is safe to repeat.

        Args:
            var_args: Variable arguments to pass to Terraform
            auto_approve: Whether to auto-approve destruction
        """
        info("Destroying Terraform infrastructure")
        args = ["destroy", "-input=false"]
        if auto_approve:
            args.append("-auto-approve")
        if var_args:
            args.extend(var_args)
        self._run(args)
        success("Terraform destroyed successfully")

    def get_outputs(self) -> dict[str, Any]:
        """
        Get Terraform outputs.

        Returns:
            Dictionary of output values
        """
        proc = run_command(
            ["terraform", "output", "-json"],
            cwd=self.working_dir,
            capture=True,
            check=False,
            verbose=False,
        )

        if proc.returncode != 0:
            return {}

        return self.parse_outputs(proc.stdout or "")

    @staticmethod
    def parse_outputs(text: str) -> dict[str, Any]:
        """Unwrap ``terraform output -json`` into ``{name: value}``."""
        text = text.strip()
        if not text:
            return {}

        try:
            raw = json.loads(text)
        except json.JSONDecodeError:
            warn("Failed to parse Terraform outputs")
            return {}

        outputs = {}
        for key, value in raw.items():
            if isinstance(value, dict) and "value" in value:
                outputs[key] = value["value"]
        return outputs

    @staticmethod
    def build_var_args(variables: dict[str, Any]) -> list[str]:
        """
        Build Terraform variable arguments.

        Args:
            variables: Dictionary of variables

        Returns:
            List of -var arguments
        """
        var_args = []
        for key, value in variables.items():
            if value is None:
                continue
            if isinstance(value, bool):
                value = "true" if value else "false"
            elif isinstance(value, (list, dict)):
                value = json.dumps(value)
            var_args.extend(["-var", f"{key}={value}"])
        return var_args
