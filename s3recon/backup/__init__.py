# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Reconciliation Engine internals - Backup and restore operations.
"""

from s3recon.backup.manager import (
    run_backup,
    BackupOperation,
    BackupResult,
    OperationStatus,
)

from s3recon.backup.restore import (
    run_restore,
    restore_single_entry,
    PLACEHOLDER_FILES,
    RestoredFile,
    RestoreOperation,
    RestoreResult,
)

__all__ = [
    # Backup
    "run_backup",
    "BackupOperation",
    "BackupResult",
    "OperationStatus",
    # Restore
    "run_restore",
    "restore_single_entry",
    "PLACEHOLDER_FILES",
    "RestoredFile",
    "RestoreOperation",
    "RestoreResult",
]
