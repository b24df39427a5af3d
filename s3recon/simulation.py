# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3Recon Load Simulator - Synthetic telemetry for backup dashboards.

Three APScheduler interval jobs feed the MetricsRegistry without any
client request:

1. System and dashboard gauges, redrawn every tick from SimulationRanges
2. Fake backup operations, started with a fixed probability and resolved
   after a bounded random delay into the same series real backups use
3. Fake restore operations, the same way but on a rarer cadence

Every random draw goes through a RandomSource so tests can inject a
deterministic sequence. No job ever raises: failures are logged and
dropped so the serving loop is never interrupted.
"""

import asyncio
import random
from dataclasses import dataclass
from typing import Any, Protocol, Sequence, Set, Tuple, TypeVar

import structlog

from s3recon.config import (
    BackupType,
    ErrorType,
    OperationOutcome,
    ReconConfig,
    RestoreType,
    SourceSystem,
)
from s3recon.metrics import MetricsRegistry

logger = structlog.get_logger()

T = TypeVar("T")


class RandomSource(Protocol):
    """Random draws used by the simulator; ``random.Random`` satisfies it."""

    def random(self) -> float: ...

    def uniform(self, a: float, b: float) -> float: ...

    def randint(self, a: int, b: int) -> int: ...

    def choice(self, seq: Sequence[T]) -> T: ...


@dataclass(frozen=True)
class SimulationRanges:
    """Documented bounds of every simulated value (inclusive)."""

    cpu_percent: Tuple[float, float] = (15.0, 85.0)
    memory_percent: Tuple[float, float] = (30.0, 90.0)
    disk_percent: Tuple[float, float] = (40.0, 85.0)
    network_mbps: Tuple[float, float] = (10.0, 950.0)

    success_rate_percent: Tuple[float, float] = (92.0, 99.9)
    storage_utilization_percent: Tuple[float, float] = (45.0, 85.0)
    retention_compliance_percent: Tuple[float, float] = (95.0, 100.0)
    active_jobs: Tuple[int, int] = (5, 20)
    paused_jobs: Tuple[int, int] = (0, 3)
    rto_seconds: Tuple[float, float] = (900.0, 3600.0)
    rpo_seconds: Tuple[float, float] = (300.0, 3600.0)
    critical_alerts: Tuple[int, int] = (0, 2)
    warning_alerts: Tuple[int, int] = (0, 5)
    info_alerts: Tuple[int, int] = (0, 10)
    queue_size: Tuple[int, int] = (0, 25)

    # Within the backup (0.5-600s) and restore (1-1800s) histogram buckets
    backup_duration_seconds: Tuple[float, float] = (5.0, 300.0)
    restore_duration_seconds: Tuple[float, float] = (30.0, 1200.0)
    backup_bytes: Tuple[int, int] = (1024 * 1024, 5 * 1024 ** 3)
    restore_bytes: Tuple[int, int] = (1024 * 1024, 2 * 1024 ** 3)
    files_per_operation: Tuple[int, int] = (1, 500)


DEFAULT_RANGES = SimulationRanges()


@dataclass
class SimulatedOperation:
    """A fake backup or restore, fully drawn when it starts."""

    operation: str  # "backup" or "restore"
    kind: BackupType | RestoreType
    source_system: SourceSystem | None
    delay_seconds: float
    outcome: OperationOutcome
    duration_seconds: float
    files: int
    total_bytes: int
    error_type: ErrorType | None = None
    resolved: bool = False


class LoadSimulator:
    """
    Background producer of synthetic operational metrics.

    start() schedules the jobs on the running event loop and stop() is the
    cancellation handle: it shuts the scheduler down and cancels fake
    operations still waiting to resolve.
    """

    def __init__(
        self,
        metrics: MetricsRegistry,
        config: ReconConfig,
        random_source: RandomSource | None = None,
        ranges: SimulationRanges = DEFAULT_RANGES,
    ):
        self._metrics = metrics
        self._config = config
        self._random: RandomSource = random_source or random.Random()
        self._ranges = ranges
        self._scheduler: Any = None
        self._pending: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    @property
    def pending(self) -> Set[asyncio.Task]:
        return set(self._pending)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Schedule the periodic jobs. Must be called with a running loop."""
        from apscheduler.schedulers.asyncio import AsyncIOScheduler
        from apscheduler.triggers.interval import IntervalTrigger

        if self.running:
            return

        scheduler = AsyncIOScheduler()
        scheduler.add_job(
            self._system_metrics_job,
            trigger=IntervalTrigger(seconds=self._config.system_metrics_interval),
            id="simulate_system_metrics",
            replace_existing=True,
        )
        scheduler.add_job(
            self._backup_job,
            trigger=IntervalTrigger(seconds=self._config.backup_simulation_interval),
            id="simulate_backup",
            replace_existing=True,
        )
        scheduler.add_job(
            self._restore_job,
            trigger=IntervalTrigger(seconds=self._config.restore_simulation_interval),
            id="simulate_restore",
            replace_existing=True,
        )
        scheduler.start()
        self._scheduler = scheduler

        # Dashboards should not wait a full interval for their first values
        self.tick_system_metrics()

        logger.info(
            "simulator_started",
            system_interval=self._config.system_metrics_interval,
            backup_interval=self._config.backup_simulation_interval,
            restore_interval=self._config.restore_simulation_interval,
        )

    async def stop(self) -> None:
        """Stop the jobs and cancel unresolved fake operations."""
        if self._scheduler is not None:
            if self._scheduler.running:
                self._scheduler.shutdown(wait=False)
            self._scheduler = None

        pending = list(self._pending)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._pending.clear()

        logger.info("simulator_stopped", cancelled=len(pending))

    async def drain(self) -> None:
        """Wait until every started fake operation has resolved."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def job_ids(self) -> list[str]:
        if self._scheduler is None:
            return []
        return [job.id for job in self._scheduler.get_jobs()]

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    async def _system_metrics_job(self) -> None:
        self.tick_system_metrics()

    async def _backup_job(self) -> None:
        self.tick_backup()

    async def _restore_job(self) -> None:
        self.tick_restore()

    def _uniform(self, bounds: Tuple[float, float]) -> float:
        return self._random.uniform(bounds[0], bounds[1])

    def _randint(self, bounds: Tuple[int, int]) -> int:
        return self._random.randint(bounds[0], bounds[1])

    def tick_system_metrics(self) -> dict | None:
        """
        Redraw system and dashboard gauges.

        Returns:
            The values written, keyed by metric name, or None on failure
        """
        try:
            r = self._ranges
            values = {
                "system_cpu_usage_percent": self._uniform(r.cpu_percent),
                "system_memory_usage_percent": self._uniform(r.memory_percent),
                "system_disk_usage_percent": self._uniform(r.disk_percent),
                "system_network_throughput_mbps": self._uniform(r.network_mbps),
                "backup_success_rate_percent": self._uniform(r.success_rate_percent),
                "storage_utilization_percent": self._uniform(r.storage_utilization_percent),
                "retention_compliance_percent": self._uniform(r.retention_compliance_percent),
                "rto_seconds": self._uniform(r.rto_seconds),
                "rpo_seconds": self._uniform(r.rpo_seconds),
                "backup_queue_size": self._randint(r.queue_size),
            }
            for name, value in values.items():
                self._metrics.set_gauge(name, value=value)

            labelled = {
                ("scheduled_jobs", "state", "active"): self._randint(r.active_jobs),
                ("scheduled_jobs", "state", "paused"): self._randint(r.paused_jobs),
                ("active_alerts", "severity", "critical"): self._randint(r.critical_alerts),
                ("active_alerts", "severity", "warning"): self._randint(r.warning_alerts),
                ("active_alerts", "severity", "info"): self._randint(r.info_alerts),
            }
            for (name, label, label_value), value in labelled.items():
                self._metrics.set_gauge(name, {label: label_value}, value)
                values[f"{name}{{{label}={label_value}}}"] = value

            logger.debug("simulated_system_metrics", cpu=values["system_cpu_usage_percent"])
            return values
        except Exception as e:
            logger.error("simulation_tick_failed", task="system_metrics", error=str(e))
            return None

    def tick_backup(self) -> SimulatedOperation | None:
        """
        Maybe start a fake backup.

        Returns:
            The started operation, or None when the draw skipped this tick
            or the tick failed
        """
        try:
            if self._random.random() >= self._config.backup_simulation_probability:
                return None

            success = self._random.random() < self._config.simulated_backup_success_rate
            op = SimulatedOperation(
                operation="backup",
                kind=self._random.choice(list(BackupType)),
                source_system=self._random.choice(list(SourceSystem)),
                delay_seconds=self._random.uniform(0.0, self._config.max_simulation_delay),
                outcome=OperationOutcome.SUCCESS if success else OperationOutcome.FAILURE,
                duration_seconds=self._uniform(self._ranges.backup_duration_seconds),
                files=self._randint(self._ranges.files_per_operation) if success else 0,
                total_bytes=self._randint(self._ranges.backup_bytes) if success else 0,
                error_type=None if success else self._random.choice(list(ErrorType)),
            )
            self._spawn(op)
            return op
        except Exception as e:
            logger.error("simulation_tick_failed", task="backup", error=str(e))
            return None

    def tick_restore(self) -> SimulatedOperation | None:
        """Maybe start a fake restore; same contract as tick_backup()."""
        try:
            if self._random.random() >= self._config.restore_simulation_probability:
                return None

            success = self._random.random() < self._config.simulated_restore_success_rate
            op = SimulatedOperation(
                operation="restore",
                kind=self._random.choice(list(RestoreType)),
                source_system=None,
                delay_seconds=self._random.uniform(0.0, self._config.max_simulation_delay),
                outcome=OperationOutcome.SUCCESS if success else OperationOutcome.FAILURE,
                duration_seconds=self._uniform(self._ranges.restore_duration_seconds),
                files=self._randint(self._ranges.files_per_operation) if success else 0,
                total_bytes=self._randint(self._ranges.restore_bytes) if success else 0,
                error_type=None if success else self._random.choice(list(ErrorType)),
            )
            self._spawn(op)
            return op
        except Exception as e:
            logger.error("simulation_tick_failed", task="restore", error=str(e))
            return None

    def _spawn(self, op: SimulatedOperation) -> None:
        self._metrics.operation_started(op.operation)
        task = asyncio.get_running_loop().create_task(self._resolve(op))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        # Runs even when the task is cancelled before its first step
        task.add_done_callback(lambda _task: self._metrics.operation_finished(op.operation))

    async def _resolve(self, op: SimulatedOperation) -> None:
        try:
            await asyncio.sleep(op.delay_seconds)

            if op.operation == "backup":
                self._metrics.record_backup(
                    op.outcome,
                    op.kind,
                    op.source_system,
                    duration_seconds=op.duration_seconds,
                    files=op.files,
                    total_bytes=op.total_bytes,
                )
            else:
                self._metrics.record_restore(
                    op.outcome,
                    op.kind,
                    duration_seconds=op.duration_seconds,
                    files=op.files,
                    total_bytes=op.total_bytes,
                )

            if op.error_type is not None:
                self._metrics.record_item_failure(op.operation, op.error_type)

            op.resolved = True
            logger.debug(
                "simulated_operation_resolved",
                operation=op.operation,
                kind=op.kind.value,
                outcome=op.outcome.value,
                duration=op.duration_seconds,
            )
        except Exception as e:
            logger.error("simulation_resolve_failed", operation=op.operation, error=str(e))
