# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3Recon Backup Manager - Store-to-snapshot reconciliation.

A backup enumerates every object in the bucket, fetches its content and
replaces the snapshot entry of that name. Per-object failures are
recorded and the loop moves on; only a failed enumeration aborts the
whole operation.
"""

from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from typing import Dict, List

import structlog

from s3recon.config import BackupType, OperationOutcome, SourceSystem
from s3recon.exceptions import OperationAbortedError
from s3recon.metrics import MetricsRegistry, classify_error
from s3recon.snapshots import SnapshotEntry, SnapshotRepository, compute_checksum
from s3recon.store import ObjectStore

logger = structlog.get_logger()


class OperationStatus(str, Enum):
    """Lifecycle of a single backup or restore call."""

    STARTED = "started"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class BackupOperation:
    """Ephemeral state of one backup call."""

    operation_id: str  # ULID
    backup_type: BackupType
    source_system: SourceSystem
    started_at: datetime
    status: OperationStatus = OperationStatus.STARTED
    files_processed: List[str] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)
    total_bytes: int = 0
    duration_seconds: float = 0.0


@dataclass
class BackupResult:
    """Summary returned by a completed backup."""

    operation_id: str
    backup_type: BackupType
    source_system: SourceSystem
    files_backed_up: int
    backup_files: List[str]
    total_bytes: int
    duration_seconds: float
    throughput_bytes_per_second: float
    failures: Dict[str, str]
    completed_at: datetime

    def to_payload(self) -> dict:
        """JSON body of POST /api/backup."""
        return {
            "message": (
                "Backup completed successfully"
                if not self.failures
                else f"Backup completed with {len(self.failures)} failed file(s)"
            ),
            "operationId": self.operation_id,
            "backupType": self.backup_type.value,
            "sourceSystem": self.source_system.value,
            "filesBackedUp": self.files_backed_up,
            "backupFiles": self.backup_files,
            "totalBytes": self.total_bytes,
            "durationSeconds": round(self.duration_seconds, 6),
            "throughputBytesPerSecond": round(self.throughput_bytes_per_second, 2),
            "failedFiles": [
                {"name": name, "error": error} for name, error in self.failures.items()
            ],
            "timestamp": self.completed_at.isoformat(),
        }


async def run_backup(
    store: ObjectStore,
    repository: SnapshotRepository,
    metrics: MetricsRegistry,
    backup_type: BackupType,
    source_system: SourceSystem,
) -> BackupResult:
    """
    Capture every object of the store into the snapshot repository.

    Args:
        store: Object store to read from
        repository: Snapshot repository to write into
        metrics: Metrics registry to update
        backup_type: Label recorded on entries and metrics
        source_system: Origin tag recorded on entries and metrics

    Returns:
        BackupResult with captured names, bytes, duration and failures

    Raises:
        OperationAbortedError: If the store cannot be enumerated
    """
    from ulid import ULID

    operation = BackupOperation(
        operation_id=str(ULID()),
        backup_type=backup_type,
        source_system=source_system,
        started_at=datetime.now(UTC),
    )
    stop_timer = metrics.start_timer(
        "backup_duration_seconds",
        {"backup_type": backup_type, "source_system": source_system},
    )
    metrics.operation_started("backup")

    logger.info(
        "backup_started",
        operation_id=operation.operation_id,
        backup_type=backup_type.value,
        source_system=source_system.value,
    )

    try:
        try:
            objects = await store.list_objects()
        except Exception as e:
            operation.status = OperationStatus.ABORTED
            operation.duration_seconds = stop_timer()
            metrics.record_backup(OperationOutcome.FAILURE, backup_type, source_system)
            logger.error(
                "backup_aborted",
                operation_id=operation.operation_id,
                error=str(e),
                duration=operation.duration_seconds,
            )
            raise OperationAbortedError(
                f"Backup failed: {e}",
                details={
                    "operation_id": operation.operation_id,
                    "duration_seconds": operation.duration_seconds,
                },
            ) from e

        logger.info("objects_listed", operation_id=operation.operation_id, total=len(objects))

        for record in objects:
            try:
                data = await store.get_object(record.name)
                repository.put(
                    SnapshotEntry(
                        name=record.name,
                        content=data.content,
                        size=len(data.content),
                        source_last_modified=data.last_modified or record.last_modified,
                        backup_timestamp=datetime.now(UTC),
                        backup_type=backup_type,
                        source_system=source_system,
                        content_type=data.content_type,
                        checksum=compute_checksum(data.content),
                    )
                )
                operation.files_processed.append(record.name)
                operation.total_bytes += len(data.content)
            except Exception as e:
                operation.failures[record.name] = str(e)
                metrics.record_item_failure("backup", classify_error(e))
                logger.error(
                    "backup_object_failed",
                    operation_id=operation.operation_id,
                    name=record.name,
                    error=str(e),
                )

        operation.status = OperationStatus.COMPLETED
        operation.duration_seconds = stop_timer()
    finally:
        metrics.operation_finished("backup")

    metrics.record_backup(
        OperationOutcome.SUCCESS,
        backup_type,
        source_system,
        files=len(operation.files_processed),
        total_bytes=operation.total_bytes,
    )
    throughput = metrics.set_throughput("backup", operation.total_bytes, operation.duration_seconds)
    metrics.update_snapshot_gauges(repository.size(), repository.total_bytes())

    result = BackupResult(
        operation_id=operation.operation_id,
        backup_type=backup_type,
        source_system=source_system,
        files_backed_up=len(operation.files_processed),
        backup_files=list(operation.files_processed),
        total_bytes=operation.total_bytes,
        duration_seconds=operation.duration_seconds,
        throughput_bytes_per_second=throughput,
        failures=dict(operation.failures),
        completed_at=datetime.now(UTC),
    )

    logger.info(
        "backup_completed",
        operation_id=operation.operation_id,
        files=result.files_backed_up,
        failed=len(result.failures),
        total_bytes=result.total_bytes,
        duration=result.duration_seconds,
    )

    return result
