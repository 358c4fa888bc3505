"""Shared fixtures for the unit tests."""

from __future__ import annotations

import pytest

from eksgate.config import ClusterConfig, HarnessSettings, NodeGroupSize
from eksgate.retry import RetryPolicy

from .fakes import CLUSTER_NAME, FakeClock


@pytest.fixture
def config() -> ClusterConfig:
    return ClusterConfig(
        name=CLUSTER_NAME,
        version="1.29",
        subnets=("subnet-1", "subnet-2"),
        tags={"Environment": "terratest", "Team": "platform"},
        instance_types=("t3.medium",),
        node_group=NodeGroupSize(min_size=1, max_size=3, desired_size=2),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> HarnessSettings:
    policy = RetryPolicy(max_attempts=5, delay=0.0)
    return HarnessSettings(
        cluster_retry=policy,
        node_retry=policy,
        probe_retry=policy,
        run_timeout=None,
    )
