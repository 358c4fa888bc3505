"""Tests that the bundled Terraform example accepts what the provider passes it."""

from __future__ import annotations

import re
from pathlib import Path

from eksgate.config import ClusterConfig

EXAMPLE_DIR = Path(__file__).resolve().parents[2] / "examples" / "complete"


def declared(kind):
    names = set()
    for tf_file in EXAMPLE_DIR.glob("*.tf"):
        names.update(re.findall(rf'^{kind}\s+"([^"]+)"', tf_file.read_text(), re.MULTILINE))
    return names


def test_example_declares_every_terraform_variable():
    config = ClusterConfig(name="demo", subnets=("subnet-1", "subnet-2"), tags={"Team": "platform"})

    assert set(config.to_terraform_vars()) <= declared("variable")


def test_example_exports_the_outputs_apply_reads():
    assert declared("output") >= {
        "cluster_endpoint",
        "cluster_certificate_authority_data",
        "cluster_name",
        "cluster_version",
    }
