#!/usr/bin/env python3
"""
Integration run for the complete EKS example.

Applies the Terraform configuration in this directory with the parameters
from ``.env``, waits for the cluster and its nodes, runs a probe pod and
destroys everything again.
"""

from __future__ import annotations

import sys
from pathlib import Path

# Add parent directory to path to import eksgate
sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from eksgate.cli import run_cli


SCRIPT_DIR = Path(__file__).resolve().parent


if __name__ == "__main__":
    sys.exit(run_cli([
        "--terraform-dir", str(SCRIPT_DIR),
        "--env-file", str(SCRIPT_DIR / ".env"),
        *sys.argv[1:],
    ]))
