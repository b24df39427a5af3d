# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3 Reconciliation Service - Object store front with snapshot backup/restore.

Keeps an in-process snapshot of every object in a bucket, restores the
objects that went missing, and exports backup-system style telemetry
(real operation metrics plus simulated dashboard load). Package name: s3recon.
"""

__version__ = "0.1.0"

# Configuration
from s3recon.builder import build_config, build_from_steps
from s3recon.config import BackupType, ReconConfig, RestoreType, SourceSystem
from s3recon.env import create_config_from_env, demo_profile, production_profile

# Core
from s3recon.core import (
    ReconciliationEngine,
    build_state,
    ensure_bucket,
    get_backup_status,
    shutdown_state,
)
from s3recon.metrics import MetricsRegistry
from s3recon.snapshots import SnapshotEntry, SnapshotRepository

__all__ = [
    # Version
    "__version__",
    # Configuration
    "ReconConfig",
    "BackupType",
    "RestoreType",
    "SourceSystem",
    "build_config",
    "build_from_steps",
    "create_config_from_env",
    "demo_profile",
    "production_profile",
    # Core
    "ReconciliationEngine",
    "build_state",
    "ensure_bucket",
    "get_backup_status",
    "shutdown_state",
    "MetricsRegistry",
    "SnapshotEntry",
    "SnapshotRepository",
]
