# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3Recon Core - Reconciliation engine and runtime state.

This module wires the object store, the snapshot repository, the metrics
registry and the load simulator together. The HTTP layer only talks to
the objects collected in ReconState.
"""

from datetime import datetime, UTC
from typing import TypedDict

import structlog

from s3recon.backup.manager import BackupResult, run_backup
from s3recon.backup.restore import RestoreResult, run_restore
from s3recon.config import BackupType, ReconConfig, RestoreType, SourceSystem
from s3recon.metrics import MetricsRegistry
from s3recon.simulation import LoadSimulator, RandomSource
from s3recon.snapshots import SnapshotRepository
from s3recon.store import ObjectStore

logger = structlog.get_logger()


class ReconciliationEngine:
    """
    Diff-and-copy backup and restore between a store and a repository.

    All collaborators are passed in, so each engine owns exactly one
    repository and several engines can run side by side.

    Consistency: operations run on one event loop and take no locks. A
    backup and a restore interleaved by the scheduler may each observe
    repository or store contents that change between their suspension
    points (listing, per-object fetch or write). The two are eventually
    consistent, not linearizable. Operations have no timeout and no
    cancellation, and any number of them may run at once.
    """

    def __init__(
        self,
        store: ObjectStore,
        repository: SnapshotRepository,
        metrics: MetricsRegistry,
        source_system: SourceSystem = SourceSystem.OBJECT_STORE,
        demo_fallback: bool = True,
    ):
        self.store = store
        self.repository = repository
        self.metrics = metrics
        self.source_system = SourceSystem(source_system)
        self.demo_fallback = demo_fallback

    async def backup(
        self,
        backup_type: BackupType | str = BackupType.FULL,
        source_system: SourceSystem | str | None = None,
    ) -> BackupResult:
        """
        Capture every object of the store into the repository.

        Raises:
            OperationAbortedError: If the store cannot be enumerated
        """
        return await run_backup(
            self.store,
            self.repository,
            self.metrics,
            BackupType(backup_type),
            SourceSystem(source_system) if source_system else self.source_system,
        )

    async def restore(self, restore_type: RestoreType | str = RestoreType.FULL) -> RestoreResult:
        """
        Write back every snapshot missing from the store.

        Raises:
            OperationAbortedError: If the store cannot be enumerated
        """
        return await run_restore(
            self.store,
            self.repository,
            self.metrics,
            RestoreType(restore_type),
            demo_fallback=self.demo_fallback,
        )


class ReconState(TypedDict):
    """Runtime state shared by the HTTP layer."""

    store: ObjectStore
    repository: SnapshotRepository
    metrics: MetricsRegistry
    engine: ReconciliationEngine
    simulator: LoadSimulator
    started_at: datetime


def build_state(
    config: ReconConfig,
    *,
    store: ObjectStore | None = None,
    metrics: MetricsRegistry | None = None,
    random_source: RandomSource | None = None,
) -> ReconState:
    """
    Build runtime state for the service.

    Nothing here touches the network; call ensure_bucket() once an event
    loop is running.

    Args:
        config: Service configuration
        store: Object store to use (default: S3ObjectStore from config)
        metrics: Metrics registry to use (default: a fresh one)
        random_source: Random source for the load simulator

    Returns:
        Initialized ReconState dictionary
    """
    if store is None:
        from s3recon.store import S3ObjectStore

        store = S3ObjectStore(config)

    metrics = metrics or MetricsRegistry()
    repository = SnapshotRepository()

    engine = ReconciliationEngine(
        store,
        repository,
        metrics,
        source_system=config.source_system,
        demo_fallback=config.demo_restore_fallback,
    )
    simulator = LoadSimulator(metrics, config, random_source=random_source)

    return ReconState(
        store=store,
        repository=repository,
        metrics=metrics,
        engine=engine,
        simulator=simulator,
        started_at=datetime.now(UTC),
    )


async def ensure_bucket(state: ReconState) -> bool:
    """
    Create the bucket if it does not exist yet.

    Failures are logged and reported, never raised: the API keeps serving
    and individual requests surface store errors themselves.

    Returns:
        True if the bucket exists after the call
    """
    store = state["store"]
    try:
        if not await store.bucket_exists():
            await store.make_bucket()
        return True
    except Exception as e:
        logger.error("bucket_initialization_failed", bucket=store.bucket, error=str(e))
        return False


def get_backup_status(state: ReconState) -> dict:
    """Current snapshot inventory, as returned by GET /api/backup/status."""
    entries = sorted(state["repository"].list(), key=lambda e: e.name)
    last_backup = max((e.backup_timestamp for e in entries), default=None)

    return {
        "totalBackups": len(entries),
        "totalBytes": sum(e.size for e in entries),
        "lastBackupTimestamp": last_backup.isoformat() if last_backup else None,
        "backups": [entry.describe() for entry in entries],
    }


async def shutdown_state(state: ReconState) -> None:
    """Stop background work."""
    try:
        await state["simulator"].stop()
    except Exception as e:
        logger.warning("simulator_stop_failed", error=str(e))

    logger.info("recon_state_shutdown_complete")
