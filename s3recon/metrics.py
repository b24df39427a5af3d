# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3Recon Metrics - Prometheus instrumentation for reconciliation.

Every MetricsRegistry owns a private CollectorRegistry, so instances never
collide on metric names and tests can build as many as they like. Label
values are checked against closed vocabularies before they reach
prometheus_client, which keeps series cardinality fixed.

Series families:
- Counters: operation outcomes, files and bytes moved, per-item errors, HTTP requests
- Gauges: snapshot inventory, throughput, simulated system and dashboard values
- Histograms: backup, restore and HTTP request durations
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Mapping, Tuple

import structlog
from botocore.exceptions import ClientError, HTTPClientError
from botocore.exceptions import ConnectionError as BotoConnectionError
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    disable_created_metrics,
    generate_latest,
)

from s3recon.config import BackupType, ErrorType, OperationOutcome, RestoreType, SourceSystem
from s3recon.exceptions import ChecksumMismatchError, MetricsError

logger = structlog.get_logger()

# One exposed series per (name, label set): no *_created timestamps
disable_created_metrics()


class MetricKind(str, Enum):
    """The three metric primitives."""

    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"


BACKUP_DURATION_BUCKETS = (0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0)
RESTORE_DURATION_BUCKETS = (1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0, 1200.0, 1800.0)
HTTP_DURATION_BUCKETS = (0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0)

# Closed label vocabularies; labels missing here (method, route, status_code) are free-form
LABEL_VOCABULARIES: Dict[str, frozenset] = {
    "status": frozenset(o.value for o in OperationOutcome),
    "backup_type": frozenset(t.value for t in BackupType),
    "restore_type": frozenset(t.value for t in RestoreType),
    "source_system": frozenset(s.value for s in SourceSystem),
    "error_type": frozenset(e.value for e in ErrorType),
    "operation": frozenset({"backup", "restore"}),
    "state": frozenset({"active", "paused"}),
    "severity": frozenset({"critical", "warning", "info"}),
}


@dataclass(frozen=True)
class MetricDefinition:
    """Declaration of one metric family."""

    kind: MetricKind
    name: str
    documentation: str
    labels: Tuple[str, ...] = ()
    buckets: Tuple[float, ...] | None = None


METRIC_DEFINITIONS: Tuple[MetricDefinition, ...] = (
    # Operation counters
    MetricDefinition(
        MetricKind.COUNTER,
        "backup_operations_total",
        "Total backup operations by outcome",
        ("status", "backup_type", "source_system"),
    ),
    MetricDefinition(
        MetricKind.COUNTER,
        "restore_operations_total",
        "Total restore operations by outcome",
        ("status", "restore_type"),
    ),
    MetricDefinition(
        MetricKind.COUNTER,
        "backup_files_total",
        "Total objects captured into snapshots",
        ("backup_type",),
    ),
    MetricDefinition(
        MetricKind.COUNTER,
        "restored_files_total",
        "Total objects written back from snapshots",
        ("restore_type",),
    ),
    MetricDefinition(
        MetricKind.COUNTER,
        "backup_bytes_total",
        "Total bytes captured into snapshots",
        ("backup_type",),
    ),
    MetricDefinition(
        MetricKind.COUNTER,
        "restore_bytes_total",
        "Total bytes written back from snapshots",
        ("restore_type",),
    ),
    MetricDefinition(
        MetricKind.COUNTER,
        "reconciliation_errors_total",
        "Per-object backup and restore failures by error type",
        ("operation", "error_type"),
    ),
    MetricDefinition(
        MetricKind.COUNTER,
        "http_requests_total",
        "Total HTTP requests",
        ("method", "route", "status_code"),
    ),
    # Duration histograms
    MetricDefinition(
        MetricKind.HISTOGRAM,
        "backup_duration_seconds",
        "Backup operation wall time",
        ("backup_type", "source_system"),
        BACKUP_DURATION_BUCKETS,
    ),
    MetricDefinition(
        MetricKind.HISTOGRAM,
        "restore_duration_seconds",
        "Restore operation wall time",
        ("restore_type",),
        RESTORE_DURATION_BUCKETS,
    ),
    MetricDefinition(
        MetricKind.HISTOGRAM,
        "http_request_duration_seconds",
        "HTTP request latency",
        ("method", "route", "status_code"),
        HTTP_DURATION_BUCKETS,
    ),
    # Snapshot inventory
    MetricDefinition(MetricKind.GAUGE, "snapshot_entries", "Objects held in the snapshot repository"),
    MetricDefinition(MetricKind.GAUGE, "snapshot_size_bytes", "Bytes held in the snapshot repository"),
    MetricDefinition(
        MetricKind.GAUGE,
        "last_backup_timestamp_seconds",
        "Unix timestamp of the last successful backup",
        ("backup_type",),
    ),
    MetricDefinition(
        MetricKind.GAUGE,
        "operation_throughput_bytes_per_second",
        "Throughput of the most recent operation",
        ("operation",),
    ),
    MetricDefinition(
        MetricKind.GAUGE,
        "operations_in_progress",
        "Backup and restore operations currently running",
        ("operation",),
    ),
    # Simulated system load
    MetricDefinition(MetricKind.GAUGE, "system_cpu_usage_percent", "CPU usage percentage"),
    MetricDefinition(MetricKind.GAUGE, "system_memory_usage_percent", "Memory usage percentage"),
    MetricDefinition(MetricKind.GAUGE, "system_disk_usage_percent", "Disk usage percentage"),
    MetricDefinition(
        MetricKind.GAUGE, "system_network_throughput_mbps", "Network throughput in Mbit/s"
    ),
    # Simulated dashboard values
    MetricDefinition(
        MetricKind.GAUGE, "backup_success_rate_percent", "Rolling backup success rate"
    ),
    MetricDefinition(
        MetricKind.GAUGE, "storage_utilization_percent", "Backup storage utilization"
    ),
    MetricDefinition(
        MetricKind.GAUGE, "retention_compliance_percent", "Snapshots within retention policy"
    ),
    MetricDefinition(MetricKind.GAUGE, "scheduled_jobs", "Scheduled backup jobs", ("state",)),
    MetricDefinition(MetricKind.GAUGE, "rto_seconds", "Recovery time objective"),
    MetricDefinition(MetricKind.GAUGE, "rpo_seconds", "Recovery point objective"),
    MetricDefinition(MetricKind.GAUGE, "active_alerts", "Open alerts", ("severity",)),
    MetricDefinition(MetricKind.GAUGE, "backup_queue_size", "Backup jobs waiting to run"),
)

_CONSTRUCTORS = {
    MetricKind.COUNTER: Counter,
    MetricKind.GAUGE: Gauge,
    MetricKind.HISTOGRAM: Histogram,
}


def _label_value(value: object) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def classify_error(exc: BaseException) -> ErrorType:
    """
    Map a real failure to the coarse error_type vocabulary.

    Connection problems and timeouts are network errors, access denials
    are permission errors, digest mismatches are corruption. Anything
    else is attributed to storage.
    """
    if isinstance(exc, ChecksumMismatchError):
        return ErrorType.CORRUPTION

    if isinstance(exc, (BotoConnectionError, HTTPClientError, ConnectionError, TimeoutError)):
        return ErrorType.NETWORK

    if isinstance(exc, PermissionError):
        return ErrorType.PERMISSION

    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        code = str(error.get("Code", ""))
        status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")

        if code in {
            "AccessDenied",
            "AllAccessDisabled",
            "Forbidden",
            "InvalidAccessKeyId",
            "SignatureDoesNotMatch",
        } or status in (401, 403):
            return ErrorType.PERMISSION
        if code in {"RequestTimeout", "ServiceUnavailable", "SlowDown"} or status in (503, 504):
            return ErrorType.NETWORK
        if code in {"BadDigest", "InvalidDigest", "XAmzContentSHA256Mismatch"}:
            return ErrorType.CORRUPTION

    return ErrorType.STORAGE


class MetricsRegistry:
    """
    Holder of all counters, gauges and histograms of the service.

    The registry is process-wide in practice (one per app) and is only
    reset by building a new instance.
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        self.registry = registry or CollectorRegistry()
        self._definitions: Dict[str, MetricDefinition] = {}
        self._metrics: Dict[str, object] = {}

        for definition in METRIC_DEFINITIONS:
            self._register(definition)

    def _register(self, definition: MetricDefinition) -> None:
        kwargs: dict = {"registry": self.registry}
        if definition.buckets is not None:
            kwargs["buckets"] = definition.buckets

        self._metrics[definition.name] = _CONSTRUCTORS[definition.kind](
            definition.name,
            definition.documentation,
            list(definition.labels),
            **kwargs,
        )
        self._definitions[definition.name] = definition

    # ------------------------------------------------------------------
    # Generic access
    # ------------------------------------------------------------------

    def definition(self, name: str) -> MetricDefinition:
        try:
            return self._definitions[name]
        except KeyError:
            raise MetricsError(f"Unknown metric: {name}", details={"name": name}) from None

    def _child(self, kind: MetricKind, name: str, labels: Mapping[str, object] | None):
        definition = self.definition(name)
        if definition.kind is not kind:
            raise MetricsError(
                f"Metric {name} is a {definition.kind.value}, not a {kind.value}",
                details={"name": name},
            )

        values = {key: _label_value(value) for key, value in (labels or {}).items()}
        if set(values) != set(definition.labels):
            raise MetricsError(
                f"Metric {name} expects labels {list(definition.labels)}",
                details={"name": name, "labels": sorted(values)},
            )

        for key, value in values.items():
            allowed = LABEL_VOCABULARIES.get(key)
            if allowed is not None and value not in allowed:
                raise MetricsError(
                    f"Label {key}={value!r} is outside its vocabulary",
                    details={"name": name, "allowed": sorted(allowed)},
                )

        metric = self._metrics[name]
        if not definition.labels:
            return metric
        return metric.labels(**values)

    def record(
        self,
        kind: MetricKind | str,
        name: str,
        labels: Mapping[str, object] | None = None,
        value: float = 1.0,
    ) -> None:
        """
        Record a value with the semantics of the metric's kind.

        Counters increment by ``value`` (never negative), gauges are set to
        ``value``, histograms observe ``value``.
        """
        kind = MetricKind(kind)
        child = self._child(kind, name, labels)

        if kind is MetricKind.COUNTER:
            if value < 0:
                raise MetricsError(
                    "Counters can only increase", details={"name": name, "value": value}
                )
            child.inc(value)
        elif kind is MetricKind.GAUGE:
            child.set(value)
        else:
            if value < 0:
                raise MetricsError(
                    "Durations cannot be negative", details={"name": name, "value": value}
                )
            child.observe(value)

    def increment(self, name: str, labels: Mapping[str, object] | None = None, delta: float = 1.0) -> None:
        self.record(MetricKind.COUNTER, name, labels, delta)

    def set_gauge(self, name: str, labels: Mapping[str, object] | None = None, value: float = 0.0) -> None:
        self.record(MetricKind.GAUGE, name, labels, value)

    def observe(self, name: str, labels: Mapping[str, object] | None = None, value: float = 0.0) -> None:
        self.record(MetricKind.HISTOGRAM, name, labels, value)

    def start_timer(self, name: str, labels: Mapping[str, object] | None = None) -> Callable[[], float]:
        """
        Start timing an observation for histogram ``name``.

        Returns:
            A stop() callable that observes the elapsed seconds and
            returns them. Calling stop() again returns the first value.
        """
        # Fail before the timed work starts, not at stop()
        self._child(MetricKind.HISTOGRAM, name, labels)
        started = time.perf_counter()
        elapsed: list[float] = []

        def stop() -> float:
            if not elapsed:
                elapsed.append(max(time.perf_counter() - started, 0.0))
                self.observe(name, labels, elapsed[0])
            return elapsed[0]

        return stop

    def get_sample_value(self, sample_name: str, labels: Mapping[str, object] | None = None) -> float | None:
        """Read one exposed sample, e.g. ``backup_duration_seconds_count``."""
        values = {key: _label_value(value) for key, value in (labels or {}).items()}
        return self.registry.get_sample_value(sample_name, values)

    def snapshot(self) -> str:
        """
        Render every registered series in the Prometheus text format.

        Raises:
            MetricsError: If the exposition cannot be generated
        """
        try:
            return generate_latest(self.registry).decode("utf-8")
        except Exception as e:
            raise MetricsError(f"Failed to generate metrics: {e}") from e

    # ------------------------------------------------------------------
    # Domain helpers
    # ------------------------------------------------------------------

    def record_backup(
        self,
        outcome: OperationOutcome,
        backup_type: BackupType,
        source_system: SourceSystem,
        *,
        duration_seconds: float | None = None,
        files: int = 0,
        total_bytes: int = 0,
    ) -> None:
        """
        Record the completion of one backup operation.

        ``duration_seconds`` is only needed when the caller did not time
        the operation with start_timer().
        """
        self.increment(
            "backup_operations_total",
            {"status": outcome, "backup_type": backup_type, "source_system": source_system},
        )
        if duration_seconds is not None:
            self.observe(
                "backup_duration_seconds",
                {"backup_type": backup_type, "source_system": source_system},
                duration_seconds,
            )
        if files:
            self.increment("backup_files_total", {"backup_type": backup_type}, files)
        if total_bytes:
            self.increment("backup_bytes_total", {"backup_type": backup_type}, total_bytes)
        if outcome is OperationOutcome.SUCCESS:
            self.set_gauge("last_backup_timestamp_seconds", {"backup_type": backup_type}, time.time())
            if duration_seconds:
                self.set_throughput("backup", total_bytes, duration_seconds)

    def record_restore(
        self,
        outcome: OperationOutcome,
        restore_type: RestoreType,
        *,
        duration_seconds: float | None = None,
        files: int = 0,
        total_bytes: int = 0,
    ) -> None:
        """Record the completion of one restore operation."""
        self.increment("restore_operations_total", {"status": outcome, "restore_type": restore_type})
        if duration_seconds is not None:
            self.observe("restore_duration_seconds", {"restore_type": restore_type}, duration_seconds)
        if files:
            self.increment("restored_files_total", {"restore_type": restore_type}, files)
        if total_bytes:
            self.increment("restore_bytes_total", {"restore_type": restore_type}, total_bytes)
        if outcome is OperationOutcome.SUCCESS and duration_seconds:
            self.set_throughput("restore", total_bytes, duration_seconds)

    def record_item_failure(self, operation: str, error_type: ErrorType) -> None:
        self.increment("reconciliation_errors_total", {"operation": operation, "error_type": error_type})

    def set_throughput(self, operation: str, total_bytes: int, duration_seconds: float) -> float:
        throughput = total_bytes / duration_seconds if duration_seconds > 0 else 0.0
        self.set_gauge("operation_throughput_bytes_per_second", {"operation": operation}, throughput)
        return throughput

    def update_snapshot_gauges(self, entries: int, total_bytes: int) -> None:
        self.set_gauge("snapshot_entries", value=entries)
        self.set_gauge("snapshot_size_bytes", value=total_bytes)

    def operation_started(self, operation: str) -> None:
        self._child(MetricKind.GAUGE, "operations_in_progress", {"operation": operation}).inc()

    def operation_finished(self, operation: str) -> None:
        self._child(MetricKind.GAUGE, "operations_in_progress", {"operation": operation}).dec()

    def record_http_request(self, method: str, route: str, status_code: int, duration_seconds: float) -> None:
        labels = {"method": method, "route": route, "status_code": status_code}
        self.increment("http_requests_total", labels)
        self.observe("http_request_duration_seconds", labels, duration_seconds)
