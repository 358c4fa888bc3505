"""Tests for the command-line entry point."""

from __future__ import annotations

import os

import pytest

from eksgate import cli
from eksgate.errors import HarnessError, PollTimeoutError
from eksgate.harness import HarnessResult, HarnessState
from eksgate.providers import ClusterOutputs


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    # setup_aws_environment writes os.environ; give each test its own copy.
    monkeypatch.setattr(os, "environ", dict(os.environ))
    for key in ["CLUSTER_NAME", "SUBNET_IDS", "MIN_SUBNETS", "AWS_REGION", "AWS_PROFILE",
                "AWS_DEFAULT_REGION", "AWS_SDK_LOAD_CONFIG", "REQUIRED_TAGS", "TAGS",
                "SKIP_WORKLOAD", "KUBERNETES_VERSION", "NODE_MIN_SIZE", "NODE_MAX_SIZE",
                "NODE_DESIRED_SIZE"]:
        monkeypatch.delenv(key, raising=False)


def write_env(path, **values):
    path.write_text("\n".join(f"{k}={v}" for k, v in values.items()) + "\n")
    return path


def test_validate_only_success(tmp_path):
    env_file = write_env(tmp_path / ".env", CLUSTER_NAME="demo", SUBNET_IDS="s-1,s-2", AWS_REGION="eu-west-1")

    assert cli.run_cli(["--env-file", str(env_file), "--validate-only"]) == cli.EXIT_OK


def test_validate_only_failure(tmp_path, capsys):
    env_file = write_env(tmp_path / ".env", CLUSTER_NAME="demo", SUBNET_IDS="s-1, ,s-2")

    assert cli.run_cli(["--env-file", str(env_file), "--validate-only"]) == cli.EXIT_INVALID_CONFIG
    assert "subnet at index 1 is empty" in capsys.readouterr().err


def test_missing_env_file_uses_defaults(tmp_path):
    # Default config has no subnets, so the default minimum of 2 rejects it.
    assert cli.run_cli(["--env-file", str(tmp_path / "absent.env"), "--validate-only"]) == cli.EXIT_INVALID_CONFIG


def test_setup_aws_environment():
    cli.setup_aws_environment({"AWS_PROFILE": "ci", "AWS_REGION": "eu-west-1"})

    assert os.environ["AWS_PROFILE"] == "ci"
    assert os.environ["AWS_DEFAULT_REGION"] == "eu-west-1"
    assert os.environ["AWS_SDK_LOAD_CONFIG"] == "1"


class RecordingHarness:
    instances = []

    def __init__(self, provisioner, workloads, settings):
        self.settings = settings
        RecordingHarness.instances.append(self)

    def run(self, config):
        if config.name == "boom":
            raise HarnessError(HarnessState.CLUSTER_TIMEOUT, PollTimeoutError("Describe EKS cluster", []))
        return HarnessResult(
            cluster=ClusterOutputs("https://x.eks.amazonaws.com", "Q0E=", config.name, "ACTIVE", "1.29"),
            ready_nodes=2,
            probe_id=None,
            history=[HarnessState.INIT, HarnessState.DONE],
        )


@pytest.fixture
def fake_stack(monkeypatch):
    RecordingHarness.instances = []
    monkeypatch.setattr(cli, "ProvisioningHarness", RecordingHarness)
    monkeypatch.setattr(cli, "TerraformEKSProvider", lambda terraform_dir, region: object())
    monkeypatch.setattr(cli, "KubernetesWorkloadProvider", lambda region: object())


def test_full_run_with_skip_workload(tmp_path, fake_stack):
    env_file = write_env(tmp_path / ".env", CLUSTER_NAME="demo", MIN_SUBNETS="0")

    code = cli.run_cli(["--env-file", str(env_file), "--terraform-dir", str(tmp_path), "--skip-workload"])

    assert code == cli.EXIT_OK
    assert RecordingHarness.instances[0].settings.probe_workload is False


def test_failed_run(tmp_path, fake_stack):
    env_file = write_env(tmp_path / ".env", CLUSTER_NAME="boom", MIN_SUBNETS="0")

    assert cli.run_cli(["--env-file", str(env_file), "--terraform-dir", str(tmp_path)]) == cli.EXIT_FAILED


def test_non_integer_node_size_is_invalid_config(tmp_path, capsys):
    env_file = write_env(tmp_path / ".env", CLUSTER_NAME="demo", SUBNET_IDS="s-1,s-2", NODE_MAX_SIZE="lots")

    assert cli.run_cli(["--env-file", str(env_file), "--validate-only"]) == cli.EXIT_INVALID_CONFIG
    assert "NODE_MAX_SIZE must be an integer" in capsys.readouterr().err
