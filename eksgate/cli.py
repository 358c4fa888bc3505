"""Command-line entry point for running the EKS integration harness."""

from __future__ import annotations

import argparse
import os
import sys
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional

from .config import ClusterConfig, HarnessSettings
from .eks import TerraformEKSProvider
from .errors import ConfigValidationError, HarnessError, TeardownError
from .harness import ProvisioningHarness
from .utils import error, info, load_env_file, success
from .validation import validate_config
from .workload import KubernetesWorkloadProvider

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INVALID_CONFIG = 2
EXIT_INTERRUPTED = 130


def create_cli(default_env_file: Path = Path(".env")) -> argparse.ArgumentParser:
    """
    Create the argument parser.

    Args:
        default_env_file: Default path to .env file

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog="eksgate",
        description="Validate EKS cluster parameters and run a provision/probe/teardown test",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Check the configuration only
  eksgate --validate-only

  # Full run against examples/complete
  eksgate --terraform-dir examples/complete --env-file examples/complete/.env

  # Stop after the cluster is ACTIVE and nodes are ready
  eksgate --terraform-dir examples/complete --skip-workload
        """
    )

    parser.add_argument(
        "--env-file",
        type=Path,
        default=default_env_file,
        help=f"Path to environment file (default: {default_env_file}; optional)"
    )
    parser.add_argument(
        "--terraform-dir",
        type=Path,
        default=Path("examples") / "complete",
        help="Terraform configuration to apply (default: examples/complete)"
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        help="Validate the configuration and exit without provisioning"
    )
    parser.add_argument(
        "--skip-workload",
        action="store_true",
        help="Do not deploy the probe pod"
    )

    return parser


def setup_aws_environment(env_vars: Dict[str, str]) -> None:
    """
    Configure AWS environment from loaded variables.

    Args:
        env_vars: Environment variables dictionary
    """
    if "AWS_PROFILE" in env_vars:
        os.environ["AWS_PROFILE"] = env_vars["AWS_PROFILE"]
    if "AWS_REGION" in env_vars:
        os.environ["AWS_REGION"] = env_vars["AWS_REGION"]
        os.environ["AWS_DEFAULT_REGION"] = env_vars["AWS_REGION"]
    os.environ["AWS_SDK_LOAD_CONFIG"] = "1"


def run_cli(argv: Optional[List[str]] = None) -> int:
    """
    Run the CLI workflow.

    Args:
        argv: Arguments (defaults to sys.argv)

    Returns:
        Exit code (0 success, 1 failure, 2 invalid configuration, 130 interrupted)
    """
    parser = create_cli()
    args = parser.parse_args(argv)

    try:
        env_vars = load_env_file(args.env_file) if args.env_file.exists() else {}
        setup_aws_environment(env_vars)

        config = ClusterConfig.from_env(env_vars)
        settings = HarnessSettings.from_env(env_vars)
        if args.skip_workload:
            settings = replace(settings, probe_workload=False)

        if args.validate_only:
            validate_config(config, settings.min_subnets, settings.required_tags)
            success(f"Configuration for cluster {config.name} is valid")
            return EXIT_OK

        harness = ProvisioningHarness(
            TerraformEKSProvider(args.terraform_dir, config.region),
            KubernetesWorkloadProvider(config.region),
            settings,
        )
        result = harness.run(config)

        info("Run summary")
        print(f"Cluster:     {result.cluster.name}")
        print(f"Endpoint:    {result.cluster.endpoint}")
        print(f"Version:     {result.cluster.version}")
        print(f"Ready nodes: {result.ready_nodes}")
        print(f"Probe pod:   {result.probe_id}")
        print(f"States:      {' -> '.join(s.value for s in result.history)}")
        return EXIT_OK

    except ConfigValidationError as exc:
        error(f"Invalid configuration ({exc.kind.value}): {exc}")
        return EXIT_INVALID_CONFIG
    except HarnessError as exc:
        error(str(exc))
        return EXIT_FAILED
    except TeardownError as exc:
        error(f"Run passed but resources may have leaked: {exc}")
        return EXIT_FAILED
    except KeyboardInterrupt:
        print("\n\n⚠️  Operation interrupted by user")
        return EXIT_INTERRUPTED
    except Exception as exc:
        error(str(exc))
        return EXIT_FAILED


def main() -> None:
    sys.exit(run_cli())
