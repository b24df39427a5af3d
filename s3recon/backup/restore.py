# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3Recon Restore Manager - Snapshot-to-store reconciliation.

A restore only fills gaps: it writes back the snapshots whose names are
missing from the bucket. Objects already present are left untouched even
when their content differs from the snapshot, so running restore twice
is the same as running it once.
"""

from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Dict, List

import structlog

from s3recon.backup.manager import OperationStatus
from s3recon.config import OperationOutcome, RestoreType
from s3recon.exceptions import ChecksumMismatchError, OperationAbortedError
from s3recon.metrics import MetricsRegistry, classify_error
from s3recon.snapshots import SnapshotEntry, SnapshotRepository, compute_checksum
from s3recon.store import ObjectStore

logger = structlog.get_logger()

# Demonstration objects written when a restore finds an empty repository
PLACEHOLDER_FILES = (
    (
        "restore-demo.txt",
        b"Placeholder restored by the backup demo: no snapshots existed yet.\n",
        "text/plain",
    ),
)


@dataclass
class RestoredFile:
    """One object written back to the store."""

    name: str
    backup_timestamp: datetime
    checksum: str
    size: int


@dataclass
class RestoreOperation:
    """Ephemeral state of one restore call."""

    operation_id: str  # ULID
    restore_type: RestoreType
    started_at: datetime
    status: OperationStatus = OperationStatus.STARTED
    files_processed: List[RestoredFile] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)
    skipped: List[str] = field(default_factory=list)
    total_bytes: int = 0
    duration_seconds: float = 0.0


@dataclass
class RestoreResult:
    """Summary returned by a completed restore."""

    operation_id: str
    restore_type: RestoreType
    files_restored: int
    restored_files: List[RestoredFile]
    failures: Dict[str, str]
    skipped_files: List[str]
    restore_needed: bool
    placeholder: bool
    total_bytes: int
    duration_seconds: float
    throughput_bytes_per_second: float
    completed_at: datetime

    @property
    def restored_names(self) -> List[str]:
        return [f.name for f in self.restored_files]

    def _message(self) -> str:
        if self.placeholder:
            return "No backups found, created placeholder file(s)"
        if not self.restore_needed:
            return "No files needed restoring"
        if self.failures:
            return f"Restore completed with {len(self.failures)} failed file(s)"
        return "Restore completed successfully"

    def to_payload(self) -> dict:
        """JSON body of POST /api/restore."""
        return {
            "message": self._message(),
            "operationId": self.operation_id,
            "restoreType": self.restore_type.value,
            "filesRestored": self.files_restored,
            "restoredFiles": [
                {
                    "name": f.name,
                    "backupTimestamp": f.backup_timestamp.isoformat(),
                    "checksum": f.checksum,
                    "size": f.size,
                }
                for f in self.restored_files
            ],
            "failedFiles": [
                {"name": name, "error": error} for name, error in self.failures.items()
            ],
            "skippedFiles": self.skipped_files,
            "restoreNeeded": self.restore_needed,
            "placeholder": self.placeholder,
            "totalBytes": self.total_bytes,
            "durationSeconds": round(self.duration_seconds, 6),
            "throughputBytesPerSecond": round(self.throughput_bytes_per_second, 2),
            "timestamp": self.completed_at.isoformat(),
        }


async def restore_single_entry(store: ObjectStore, entry: SnapshotEntry) -> RestoredFile:
    """
    Write one snapshot back to the store under its original name.

    Raises:
        ChecksumMismatchError: If the snapshot content no longer matches its digest
    """
    if compute_checksum(entry.content) != entry.checksum:
        raise ChecksumMismatchError(
            "Snapshot content does not match its checksum",
            details={"name": entry.name, "checksum": entry.checksum},
        )

    await store.put_object(entry.name, entry.content, len(entry.content), entry.content_type)

    logger.info("object_restored", name=entry.name, size=entry.size)

    return RestoredFile(
        name=entry.name,
        backup_timestamp=entry.backup_timestamp,
        checksum=entry.checksum,
        size=entry.size,
    )


async def _write_placeholders(
    store: ObjectStore,
    metrics: MetricsRegistry,
    operation: RestoreOperation,
    live_names: set[str],
) -> bool:
    """Write absent placeholders; True if any of them was missing."""
    needed = False
    for name, content, content_type in PLACEHOLDER_FILES:
        if name in live_names:
            operation.skipped.append(name)
            continue
        needed = True
        try:
            await store.put_object(name, content, len(content), content_type)
            operation.files_processed.append(
                RestoredFile(
                    name=name,
                    backup_timestamp=datetime.now(UTC),
                    checksum=compute_checksum(content),
                    size=len(content),
                )
            )
            operation.total_bytes += len(content)
        except Exception as e:
            operation.failures[name] = str(e)
            metrics.record_item_failure("restore", classify_error(e))
            logger.error("placeholder_restore_failed", name=name, error=str(e))
    return needed


async def run_restore(
    store: ObjectStore,
    repository: SnapshotRepository,
    metrics: MetricsRegistry,
    restore_type: RestoreType,
    demo_fallback: bool = True,
) -> RestoreResult:
    """
    Write back every snapshot whose name is missing from the store.

    Args:
        store: Object store to write into
        repository: Snapshot repository to read from
        metrics: Metrics registry to update
        restore_type: Label recorded on metrics
        demo_fallback: With an empty repository, write PLACEHOLDER_FILES
            instead of reporting that nothing needed restoring

    Returns:
        RestoreResult with restored, skipped and failed names

    Raises:
        OperationAbortedError: If the store cannot be enumerated
    """
    from ulid import ULID

    operation = RestoreOperation(
        operation_id=str(ULID()),
        restore_type=restore_type,
        started_at=datetime.now(UTC),
    )
    stop_timer = metrics.start_timer("restore_duration_seconds", {"restore_type": restore_type})
    metrics.operation_started("restore")

    logger.info(
        "restore_started",
        operation_id=operation.operation_id,
        restore_type=restore_type.value,
    )

    placeholder = False
    restore_needed = False

    try:
        try:
            live_names = {record.name for record in await store.list_objects()}
        except Exception as e:
            operation.status = OperationStatus.ABORTED
            operation.duration_seconds = stop_timer()
            metrics.record_restore(OperationOutcome.FAILURE, restore_type)
            logger.error(
                "restore_aborted",
                operation_id=operation.operation_id,
                error=str(e),
                duration=operation.duration_seconds,
            )
            raise OperationAbortedError(
                f"Restore failed: {e}",
                details={
                    "operation_id": operation.operation_id,
                    "duration_seconds": operation.duration_seconds,
                },
            ) from e

        entries = repository.list()

        if not entries and demo_fallback:
            placeholder = True
            logger.warning("restore_placeholder_fallback", operation_id=operation.operation_id)
            restore_needed = await _write_placeholders(store, metrics, operation, live_names)
        else:
            missing: List[SnapshotEntry] = []
            for entry in entries:
                if entry.name in live_names:
                    operation.skipped.append(entry.name)
                else:
                    missing.append(entry)

            restore_needed = bool(missing)
            logger.info(
                "restore_diff_computed",
                operation_id=operation.operation_id,
                missing=len(missing),
                skipped=len(operation.skipped),
            )

            for entry in missing:
                try:
                    restored = await restore_single_entry(store, entry)
                    operation.files_processed.append(restored)
                    operation.total_bytes += restored.size
                except Exception as e:
                    operation.failures[entry.name] = str(e)
                    metrics.record_item_failure("restore", classify_error(e))
                    logger.error(
                        "restore_object_failed",
                        operation_id=operation.operation_id,
                        name=entry.name,
                        error=str(e),
                    )

        operation.status = OperationStatus.COMPLETED
        operation.duration_seconds = stop_timer()
    finally:
        metrics.operation_finished("restore")

    metrics.record_restore(
        OperationOutcome.SUCCESS,
        restore_type,
        files=len(operation.files_processed),
        total_bytes=operation.total_bytes,
    )
    throughput = metrics.set_throughput("restore", operation.total_bytes, operation.duration_seconds)

    result = RestoreResult(
        operation_id=operation.operation_id,
        restore_type=restore_type,
        files_restored=len(operation.files_processed),
        restored_files=list(operation.files_processed),
        failures=dict(operation.failures),
        skipped_files=list(operation.skipped),
        restore_needed=restore_needed,
        placeholder=placeholder,
        total_bytes=operation.total_bytes,
        duration_seconds=operation.duration_seconds,
        throughput_bytes_per_second=throughput,
        completed_at=datetime.now(UTC),
    )

    logger.info(
        "restore_completed",
        operation_id=operation.operation_id,
        restored=result.files_restored,
        failed=len(result.failures),
        skipped=len(result.skipped_files),
        duration=result.duration_seconds,
    )

    return result
