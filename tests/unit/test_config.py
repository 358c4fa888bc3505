"""Tests for building configuration and settings from .env variables."""

from __future__ import annotations

import pytest

from eksgate.config import ClusterConfig, HarnessSettings, NodeGroupSize, parse_tags
from eksgate.errors import ConfigValidationError, ValidationErrorKind
from eksgate.retry import RetryPolicy

ENV_KEYS = [
    "CLUSTER_NAME", "KUBERNETES_VERSION", "SUBNET_IDS", "TAGS", "NODE_INSTANCE_TYPES",
    "NODE_MIN_SIZE", "NODE_MAX_SIZE", "NODE_DESIRED_SIZE", "AWS_REGION", "ENVIRONMENT",
    "MAX_RETRIES", "RETRY_INTERVAL", "NODE_MAX_RETRIES", "POD_MAX_RETRIES", "TEST_TIMEOUT",
    "MIN_SUBNETS", "REQUIRED_TAGS", "SKIP_WORKLOAD",
]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_from_env_defaults():
    config = ClusterConfig.from_env({})

    assert config.name.startswith("terratest-")
    assert len(config.name) == len("terratest-") + 6
    assert config.name == config.name.lower()
    assert config.version == "1.29"
    assert config.subnets == ()
    assert config.tags == {}
    assert config.instance_types == ("t3.medium",)
    assert config.node_group == NodeGroupSize(1, 3, 2)
    assert config.region == "us-west-1"
    assert config.environment == "terratest"


def test_generated_names_differ():
    assert ClusterConfig.from_env({}).name != ClusterConfig.from_env({}).name


def test_from_env_values():
    config = ClusterConfig.from_env({
        "CLUSTER_NAME": "demo",
        "KUBERNETES_VERSION": "1.30",
        "SUBNET_IDS": "subnet-a, subnet-b",
        "TAGS": "Team=platform, Owner=ops",
        "NODE_INSTANCE_TYPES": "t3.large,m5.large",
        "NODE_MIN_SIZE": "2",
        "NODE_MAX_SIZE": "6",
        "NODE_DESIRED_SIZE": "4",
        "AWS_REGION": "eu-west-1",
        "ENVIRONMENT": "staging",
    })

    assert config.name == "demo"
    assert config.version == "1.30"
    assert config.subnets == ("subnet-a", "subnet-b")
    assert config.tags == {"Team": "platform", "Owner": "ops"}
    assert config.instance_types == ("t3.large", "m5.large")
    assert config.node_group == NodeGroupSize(2, 6, 4)
    assert config.region == "eu-west-1"
    assert config.environment == "staging"


def test_from_env_falls_back_to_process_environment(monkeypatch):
    monkeypatch.setenv("AWS_REGION", "ap-south-1")
    assert ClusterConfig.from_env({}).region == "ap-south-1"
    assert ClusterConfig.from_env({"AWS_REGION": "us-east-2"}).region == "us-east-2"


def test_blank_subnet_entries_survive_parsing():
    # Left for the validator to reject with an index.
    assert ClusterConfig.from_env({"SUBNET_IDS": "subnet-a,,subnet-b"}).subnets == ("subnet-a", "", "subnet-b")


@pytest.mark.parametrize("key", ["NODE_MIN_SIZE", "NODE_MAX_SIZE", "NODE_DESIRED_SIZE"])
def test_non_integer_node_size_is_a_config_error(key):
    with pytest.raises(ConfigValidationError, match=key) as excinfo:
        ClusterConfig.from_env({key: "two"})

    assert excinfo.value.kind is ValidationErrorKind.INVALID_NODE_GROUP_SIZE
    assert excinfo.value.value == "two"
    assert excinfo.value.details["variable"] == key


def test_parse_tags():
    assert parse_tags("") == {}
    assert parse_tags("A=1,B=x=y, C") == {"A": "1", "B": "x=y", "C": ""}


def test_terraform_vars():
    config = ClusterConfig(
        name="demo",
        tags={"Team": "platform", "Environment": "custom"},
        node_group=NodeGroupSize(1, 3, 2),
    )

    assert config.to_terraform_vars() == {
        "cluster_name": "demo",
        "aws_region": "us-west-1",
        "environment": "terratest",
        "cluster_version": "1.29",
        "node_instance_types": ["t3.medium"],
        "node_desired_size": 2,
        "node_min_size": 1,
        "node_max_size": 3,
        "tags": {"ManagedBy": "terraform", "Environment": "custom", "Team": "platform"},
    }


def test_terraform_vars_with_subnets_and_no_tags():
    variables = ClusterConfig(name="demo", subnets=("s-1", "s-2"), tags=None).to_terraform_vars()

    assert variables["subnet_ids"] == ["s-1", "s-2"]
    assert variables["tags"] == {"ManagedBy": "terraform", "Environment": "terratest"}


def test_settings_defaults():
    settings = HarnessSettings.from_env({})

    assert settings.cluster_retry == RetryPolicy(20, 30)
    assert settings.node_retry == RetryPolicy(20, 30)
    assert settings.probe_retry == RetryPolicy(20, 30)
    assert settings.run_timeout == 1800
    assert settings.min_subnets == 2
    assert settings.required_tags == ()
    assert settings.probe_workload is True


def test_settings_from_env():
    settings = HarnessSettings.from_env({
        "MAX_RETRIES": "10",
        "RETRY_INTERVAL": "0.5",
        "POD_MAX_RETRIES": "3",
        "TEST_TIMEOUT": "0",
        "MIN_SUBNETS": "0",
        "REQUIRED_TAGS": "Team, Owner",
        "SKIP_WORKLOAD": "yes",
    })

    assert settings.cluster_retry == RetryPolicy(10, 0.5)
    assert settings.node_retry == RetryPolicy(10, 0.5)
    assert settings.probe_retry == RetryPolicy(3, 0.5)
    assert settings.run_timeout is None
    assert settings.min_subnets == 0
    assert settings.required_tags == ("Team", "Owner")
    assert settings.probe_workload is False
