# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3Recon Builder - Functional builder pattern for configuration.

This module provides pure functions for building ReconConfig objects.
Each function takes a config dict and returns a new dict with the
modification applied (immutable updates).
"""

from typing import Any, Callable, Dict

from s3recon.config import DEFAULT_UPLOAD_MAX_BYTES, ReconConfig, SourceSystem


# Type alias for builder functions
ConfigDict = Dict[str, Any]
BuilderFunc = Callable[[ConfigDict], ConfigDict]


def create_empty_config() -> ConfigDict:
    """
    Create an initial configuration dictionary.

    Returns:
        Dict with default values for all configuration fields
    """
    return {
        "bucket": "",
        "endpoint_url": None,
        "region": "us-east-1",
        "access_key": None,
        "secret_key": None,
        "host": "0.0.0.0",
        "port": 3000,
        "upload_max_bytes": DEFAULT_UPLOAD_MAX_BYTES,
        "source_system": SourceSystem.OBJECT_STORE,
        "demo_restore_fallback": True,
        "simulation_enabled": True,
        "system_metrics_interval": 5.0,
        "backup_simulation_interval": 10.0,
        "restore_simulation_interval": 60.0,
        "backup_simulation_probability": 0.3,
        "restore_simulation_probability": 0.2,
        "simulated_backup_success_rate": 0.95,
        "simulated_restore_success_rate": 0.9,
        "max_simulation_delay": 5.0,
        "log_level": "INFO",
        "log_json": False,
    }


def with_bucket(config: ConfigDict, bucket_name: str) -> ConfigDict:
    """
    Set the object store bucket name.

    Args:
        config: Current configuration dictionary
        bucket_name: Name of the bucket holding all objects

    Returns:
        New configuration dictionary with bucket set
    """
    return {**config, "bucket": bucket_name}


def with_endpoint(config: ConfigDict, endpoint_url: str, region: str | None = None) -> ConfigDict:
    """
    Point the object store client at an S3-compatible endpoint.

    Args:
        config: Current configuration dictionary
        endpoint_url: Endpoint URL, e.g. 'http://storage:9000'
        region: Optional region override

    Returns:
        New configuration dictionary with endpoint set
    """
    updated = {**config, "endpoint_url": endpoint_url}
    if region:
        updated["region"] = region
    return updated


def with_credentials(config: ConfigDict, access_key: str, secret_key: str) -> ConfigDict:
    """Set the object store access and secret keys."""
    return {**config, "access_key": access_key, "secret_key": secret_key}


def listen_on(config: ConfigDict, port: int, host: str = "0.0.0.0") -> ConfigDict:
    """Set the HTTP listen address."""
    return {**config, "host": host, "port": port}


def limit_uploads_to(config: ConfigDict, max_bytes: int) -> ConfigDict:
    """
    Set the maximum accepted upload size.

    Args:
        config: Current configuration dictionary
        max_bytes: Size limit in bytes

    Returns:
        New configuration dictionary with upload limit set
    """
    return {**config, "upload_max_bytes": max_bytes}


def tag_source_system(config: ConfigDict, source_system: SourceSystem | str) -> ConfigDict:
    """Set the origin tag recorded on snapshots taken through the API."""
    return {**config, "source_system": SourceSystem(source_system)}


def enable_demo_restore_fallback(config: ConfigDict) -> ConfigDict:
    """Write a placeholder object when restore finds no snapshots."""
    return {**config, "demo_restore_fallback": True}


def disable_demo_restore_fallback(config: ConfigDict) -> ConfigDict:
    """
    Report "nothing to restore" instead of writing a placeholder object.

    Recommended outside demo environments, where the placeholder would
    hide an empty snapshot repository.
    """
    return {**config, "demo_restore_fallback": False}


def simulate_every(
    config: ConfigDict,
    system_metrics: float | None = None,
    backups: float | None = None,
    restores: float | None = None,
) -> ConfigDict:
    """
    Set the load simulator tick intervals, in seconds.

    Args:
        config: Current configuration dictionary
        system_metrics: Interval for system and dashboard gauges
        backups: Interval for simulated backup operations
        restores: Interval for simulated restore operations

    Returns:
        New configuration dictionary with intervals set
    """
    updated = {**config, "simulation_enabled": True}
    if system_metrics is not None:
        updated["system_metrics_interval"] = system_metrics
    if backups is not None:
        updated["backup_simulation_interval"] = backups
    if restores is not None:
        updated["restore_simulation_interval"] = restores
    return updated


def disable_simulation(config: ConfigDict) -> ConfigDict:
    """Turn off background telemetry simulation."""
    return {**config, "simulation_enabled": False}


def log_as_json(config: ConfigDict, level: str = "INFO") -> ConfigDict:
    """Render logs as JSON lines at the given level."""
    return {**config, "log_json": True, "log_level": level.upper()}


def build_config(config_dict: ConfigDict) -> ReconConfig:
    """
    Validate and build an immutable ReconConfig from a configuration dictionary.

    Args:
        config_dict: Configuration dictionary built using builder functions

    Returns:
        Validated, immutable ReconConfig instance

    Raises:
        ConfigurationError: If validation fails
    """
    if not config_dict.get("bucket"):
        from s3recon.exceptions import ConfigurationError

        raise ConfigurationError("bucket is required")

    return ReconConfig(**config_dict)


def build_from_steps(*steps: BuilderFunc) -> ReconConfig:
    """
    Build config by applying a sequence of builder functions.

    Example:
        config = build_from_steps(
            lambda c: with_bucket(c, "testbucket"),
            lambda c: with_endpoint(c, "http://storage:9000"),
            disable_simulation,
        )

    Args:
        *steps: Builder functions to apply in sequence

    Returns:
        Validated, immutable ReconConfig instance
    """
    config = create_empty_config()
    for step in steps:
        config = step(config)
    return build_config(config)
