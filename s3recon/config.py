# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3Recon Configuration - Immutable configuration data structures.

All configuration is frozen (immutable) after creation to prevent
accidental modification while the service is running. The closed label
vocabularies used by the engine and the metrics registry live here too.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List
import re


class BackupType(str, Enum):
    """Kind of backup requested."""

    FULL = "full"
    INCREMENTAL = "incremental"


class RestoreType(str, Enum):
    """Kind of restore requested."""

    FULL = "full"
    PARTIAL = "partial"


class SourceSystem(str, Enum):
    """Logical origin tag attached to snapshots and backup metrics."""

    OBJECT_STORE = "object-store"
    DATABASE = "database"
    FILE_SERVER = "file-server"
    APPLICATION = "application"


class OperationOutcome(str, Enum):
    """Outcome label for operation counters."""

    SUCCESS = "success"
    FAILURE = "failure"


class ErrorType(str, Enum):
    """Coarse classification of a per-item reconciliation failure."""

    NETWORK = "network"
    STORAGE = "storage"
    PERMISSION = "permission"
    CORRUPTION = "corruption"


# 10 MiB, the upload limit of the original demo service
DEFAULT_UPLOAD_MAX_BYTES = 10 * 1024 * 1024


def _validate_bucket_name(bucket: str) -> bool:
    """
    Validate an S3 bucket name.

    Rules:
    - 3-63 characters
    - Lowercase letters, numbers, hyphens, periods
    - Must start and end with letter or number
    - No consecutive periods
    - Not formatted as IP address
    """
    if not bucket or len(bucket) < 3 or len(bucket) > 63:
        return False

    if not re.match(r"^[a-z0-9][a-z0-9.-]*[a-z0-9]$", bucket):
        return False

    if ".." in bucket:
        return False

    if re.match(r"^\d+\.\d+\.\d+\.\d+$", bucket):
        return False

    return True


def _is_probability(value: float) -> bool:
    return 0.0 <= value <= 1.0


@dataclass(frozen=True)
class ReconConfig:
    """
    Immutable configuration for the reconciliation service.

    This configuration is frozen after creation so the engine, the HTTP
    layer and the load simulator all observe the same values.
    """

    # Object store bucket holding every object of this system
    bucket: str = "testbucket"

    # S3-compatible endpoint (MinIO in the docker setup); None means AWS
    endpoint_url: str | None = "http://storage:9000"

    region: str = "us-east-1"

    access_key: str | None = "minio"
    secret_key: str | None = "minio123"

    # Listen address of the HTTP API
    host: str = "0.0.0.0"
    port: int = 3000

    # Maximum accepted size of an uploaded file
    upload_max_bytes: int = DEFAULT_UPLOAD_MAX_BYTES

    # Origin tag recorded on snapshots taken through the API
    source_system: SourceSystem = SourceSystem.OBJECT_STORE

    # Write a placeholder object when restore runs with no snapshots
    demo_restore_fallback: bool = True

    # Background telemetry simulation
    simulation_enabled: bool = True
    system_metrics_interval: float = 5.0
    backup_simulation_interval: float = 10.0
    restore_simulation_interval: float = 60.0
    backup_simulation_probability: float = 0.3
    restore_simulation_probability: float = 0.2
    simulated_backup_success_rate: float = 0.95
    simulated_restore_success_rate: float = 0.9
    max_simulation_delay: float = 5.0

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    def __post_init__(self) -> None:
        """Validate configuration after creation."""
        errors: List[str] = []

        if not _validate_bucket_name(self.bucket):
            errors.append(f"Invalid bucket name: {self.bucket}")

        if not 0 < self.port < 65536:
            errors.append(f"port must be between 1 and 65535, got {self.port}")

        if self.upload_max_bytes < 1:
            errors.append(f"upload_max_bytes must be >= 1, got {self.upload_max_bytes}")

        if bool(self.access_key) != bool(self.secret_key):
            errors.append("access_key and secret_key must be set together")

        try:
            SourceSystem(self.source_system)
        except ValueError:
            errors.append(f"Invalid source_system: {self.source_system}")

        for name in (
            "system_metrics_interval",
            "backup_simulation_interval",
            "restore_simulation_interval",
        ):
            if getattr(self, name) <= 0:
                errors.append(f"{name} must be > 0, got {getattr(self, name)}")

        for name in (
            "backup_simulation_probability",
            "restore_simulation_probability",
            "simulated_backup_success_rate",
            "simulated_restore_success_rate",
        ):
            if not _is_probability(getattr(self, name)):
                errors.append(f"{name} must be within [0, 1], got {getattr(self, name)}")

        if self.max_simulation_delay < 0:
            errors.append(
                f"max_simulation_delay must be >= 0, got {self.max_simulation_delay}"
            )

        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            errors.append(f"Invalid log_level: {self.log_level}")

        if errors:
            from s3recon.exceptions import ConfigurationError

            raise ConfigurationError(
                "Configuration validation failed",
                details={"errors": errors},
            )

    def with_updates(self, **kwargs) -> "ReconConfig":
        """
        Create a new config with updated values.

        Since the config is frozen, this creates a new instance.
        """
        from dataclasses import asdict

        current = asdict(self)
        current.update(kwargs)
        return ReconConfig(**current)
