# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Environment-based configuration helpers and profiles.

These helpers are small wrappers around ReconConfig and
ReconConfig.with_updates(). They make it easy to:

- Build a configuration from environment variables
- Apply ready-made demo or production profiles
"""

from __future__ import annotations

import os

from s3recon.config import DEFAULT_UPLOAD_MAX_BYTES, ReconConfig, SourceSystem
from s3recon.errors import (
    explain_invalid_bool_env,
    explain_invalid_int_env,
    explain_invalid_source_system,
)
from s3recon.exceptions import ConfigurationError

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(name: str, value: str | None, default: bool) -> bool:
    if value is None or not value.strip():
        return default
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigurationError(explain_invalid_bool_env(name, value))


def _parse_positive_int(name: str, value: str | None, default: int) -> int:
    if not value:
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(explain_invalid_int_env(name, value)) from exc
    if parsed < 1:
        raise ConfigurationError(explain_invalid_int_env(name, value))
    return parsed


def _parse_source_system(value: str | None) -> SourceSystem:
    if not value:
        return SourceSystem.OBJECT_STORE
    try:
        return SourceSystem(value.lower())
    except ValueError as exc:
        allowed = tuple(s.value for s in SourceSystem)
        raise ConfigurationError(explain_invalid_source_system(value, allowed)) from exc


def _first_env(*names: str) -> str | None:
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return None


def create_config_from_env() -> ReconConfig:
    """
    Create a ReconConfig from environment variables.

    Every variable is optional; unset variables fall back to the
    ReconConfig defaults, which match the docker-compose MinIO setup.

    Environment variables:
        - S3_BUCKET: Bucket name (default: testbucket)
        - S3_ENDPOINT_URL: S3-compatible endpoint (default: http://storage:9000)
        - AWS_REGION: Region (default: us-east-1)
        - S3_ACCESS_KEY / AWS_ACCESS_KEY_ID: Access key
        - S3_SECRET_KEY / AWS_SECRET_ACCESS_KEY: Secret key
        - HOST, PORT: HTTP listen address (default: 0.0.0.0:3000)
        - RECON_UPLOAD_MAX_BYTES: Upload size limit (default: 10 MiB)
        - RECON_SOURCE_SYSTEM: Origin tag for API backups
        - RECON_DEMO_RESTORE_FALLBACK: Placeholder restore on empty repository
        - RECON_SIMULATION_ENABLED: Run the background load simulator
        - RECON_LOG_LEVEL, RECON_LOG_JSON: Logging output
    """

    defaults = ReconConfig()

    return ReconConfig(
        bucket=os.getenv("S3_BUCKET") or defaults.bucket,
        endpoint_url=os.getenv("S3_ENDPOINT_URL") or defaults.endpoint_url,
        region=os.getenv("AWS_REGION") or defaults.region,
        access_key=_first_env("S3_ACCESS_KEY", "AWS_ACCESS_KEY_ID") or defaults.access_key,
        secret_key=_first_env("S3_SECRET_KEY", "AWS_SECRET_ACCESS_KEY") or defaults.secret_key,
        host=os.getenv("HOST") or defaults.host,
        port=_parse_positive_int("PORT", os.getenv("PORT"), defaults.port),
        upload_max_bytes=_parse_positive_int(
            "RECON_UPLOAD_MAX_BYTES",
            os.getenv("RECON_UPLOAD_MAX_BYTES"),
            DEFAULT_UPLOAD_MAX_BYTES,
        ),
        source_system=_parse_source_system(os.getenv("RECON_SOURCE_SYSTEM")),
        demo_restore_fallback=_parse_bool(
            "RECON_DEMO_RESTORE_FALLBACK",
            os.getenv("RECON_DEMO_RESTORE_FALLBACK"),
            defaults.demo_restore_fallback,
        ),
        simulation_enabled=_parse_bool(
            "RECON_SIMULATION_ENABLED",
            os.getenv("RECON_SIMULATION_ENABLED"),
            defaults.simulation_enabled,
        ),
        log_level=(os.getenv("RECON_LOG_LEVEL") or defaults.log_level).upper(),
        log_json=_parse_bool("RECON_LOG_JSON", os.getenv("RECON_LOG_JSON"), defaults.log_json),
    )


# ============================================================================
# Profiles
# ============================================================================

def demo_profile(config: ReconConfig) -> ReconConfig:
    """
    Apply the dashboard demo profile.

    - Background simulation on, with a busier backup cadence
    - Placeholder restore enabled so an empty bucket still "restores"
    """

    return config.with_updates(
        simulation_enabled=True,
        demo_restore_fallback=True,
        backup_simulation_interval=min(config.backup_simulation_interval, 10.0),
    )


def production_profile(config: ReconConfig) -> ReconConfig:
    """
    Apply a production-faithful profile.

    - No synthetic telemetry
    - No placeholder objects: an empty repository restores nothing
    - JSON log lines
    """

    return config.with_updates(
        simulation_enabled=False,
        demo_restore_fallback=False,
        log_json=True,
    )
