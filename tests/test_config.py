# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Configuration tests: validation, builder, environment and profiles.
"""

import json

import pytest
import structlog

from s3recon.builder import (
    build_config,
    build_from_steps,
    create_empty_config,
    disable_demo_restore_fallback,
    disable_simulation,
    enable_demo_restore_fallback,
    limit_uploads_to,
    listen_on,
    log_as_json,
    simulate_every,
    tag_source_system,
    with_bucket,
    with_credentials,
    with_endpoint,
)
from s3recon.config import DEFAULT_UPLOAD_MAX_BYTES, ReconConfig, SourceSystem
from s3recon.env import create_config_from_env, demo_profile, production_profile
from s3recon.errors import explain_file_too_large
from s3recon.exceptions import ConfigurationError
from s3recon.log import configure_logging

ENV_VARS = (
    "S3_BUCKET",
    "S3_ENDPOINT_URL",
    "AWS_REGION",
    "S3_ACCESS_KEY",
    "S3_SECRET_KEY",
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
    "HOST",
    "PORT",
    "RECON_UPLOAD_MAX_BYTES",
    "RECON_SOURCE_SYSTEM",
    "RECON_DEMO_RESTORE_FALLBACK",
    "RECON_SIMULATION_ENABLED",
    "RECON_LOG_LEVEL",
    "RECON_LOG_JSON",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


# ============================================================================
# Validation
# ============================================================================

def test_defaults_are_valid():
    config = ReconConfig()

    assert config.bucket == "testbucket"
    assert config.port == 3000
    assert config.upload_max_bytes == 10 * 1024 * 1024
    assert config.source_system is SourceSystem.OBJECT_STORE


@pytest.mark.parametrize("bucket", ["ab", "Upper-Case", "bad..name", "192.168.0.1", "-leading"])
def test_invalid_bucket_names(bucket):
    with pytest.raises(ConfigurationError) as exc_info:
        ReconConfig(bucket=bucket)

    assert any("bucket" in error for error in exc_info.value.details["errors"])


def test_all_errors_are_collected():
    with pytest.raises(ConfigurationError) as exc_info:
        ReconConfig(port=0, upload_max_bytes=0, backup_simulation_probability=1.5)

    assert len(exc_info.value.details["errors"]) == 3


def test_credentials_must_come_in_pairs():
    with pytest.raises(ConfigurationError):
        ReconConfig(access_key="minio", secret_key=None)


def test_intervals_must_be_positive():
    with pytest.raises(ConfigurationError):
        ReconConfig(system_metrics_interval=0)


def test_log_level_is_checked():
    with pytest.raises(ConfigurationError):
        ReconConfig(log_level="LOUD")


def test_with_updates_returns_new_config():
    config = ReconConfig()

    updated = config.with_updates(port=8080)

    assert updated.port == 8080
    assert config.port == 3000


# ============================================================================
# Builder
# ============================================================================

def test_build_from_steps():
    config = build_from_steps(
        lambda c: with_bucket(c, "backups"),
        lambda c: with_endpoint(c, "http://localhost:9000", region="eu-west-1"),
        lambda c: with_credentials(c, "key", "secret"),
        lambda c: listen_on(c, 8080, "127.0.0.1"),
        lambda c: limit_uploads_to(c, 1024),
        lambda c: tag_source_system(c, "database"),
        lambda c: simulate_every(c, system_metrics=1.0, backups=2.0, restores=3.0),
        disable_demo_restore_fallback,
        lambda c: log_as_json(c, "debug"),
    )

    assert config.bucket == "backups"
    assert config.endpoint_url == "http://localhost:9000"
    assert config.region == "eu-west-1"
    assert config.port == 8080
    assert config.host == "127.0.0.1"
    assert config.upload_max_bytes == 1024
    assert config.source_system is SourceSystem.DATABASE
    assert config.simulation_enabled is True
    assert config.backup_simulation_interval == 2.0
    assert config.demo_restore_fallback is False
    assert config.log_json is True
    assert config.log_level == "DEBUG"


def test_demo_restore_fallback_steps():
    disabled = build_from_steps(lambda c: with_bucket(c, "backups"), disable_demo_restore_fallback)
    enabled = build_from_steps(
        lambda c: with_bucket(c, "backups"),
        disable_demo_restore_fallback,
        enable_demo_restore_fallback,
    )

    assert disabled.demo_restore_fallback is False
    assert enabled.demo_restore_fallback is True


def test_disable_simulation_step():
    config = build_from_steps(lambda c: with_bucket(c, "backups"), disable_simulation)

    assert config.simulation_enabled is False


def test_builder_requires_bucket():
    with pytest.raises(ConfigurationError, match="bucket is required"):
        build_config(create_empty_config())


def test_builder_steps_do_not_mutate_input():
    base = create_empty_config()

    with_bucket(base, "backups")

    assert base["bucket"] == ""


# ============================================================================
# Environment
# ============================================================================

def test_env_defaults(clean_env):
    config = create_config_from_env()

    assert config.bucket == "testbucket"
    assert config.endpoint_url == "http://storage:9000"
    assert config.access_key == "minio"
    assert config.upload_max_bytes == DEFAULT_UPLOAD_MAX_BYTES


def test_env_overrides(clean_env):
    clean_env.setenv("S3_BUCKET", "other-bucket")
    clean_env.setenv("PORT", "8080")
    clean_env.setenv("AWS_ACCESS_KEY_ID", "aws-key")
    clean_env.setenv("AWS_SECRET_ACCESS_KEY", "aws-secret")
    clean_env.setenv("RECON_SOURCE_SYSTEM", "File-Server")
    clean_env.setenv("RECON_SIMULATION_ENABLED", "off")
    clean_env.setenv("RECON_LOG_LEVEL", "debug")

    config = create_config_from_env()

    assert config.bucket == "other-bucket"
    assert config.port == 8080
    assert config.access_key == "aws-key"
    assert config.secret_key == "aws-secret"
    assert config.source_system is SourceSystem.FILE_SERVER
    assert config.simulation_enabled is False
    assert config.log_level == "DEBUG"


def test_s3_credentials_take_precedence(clean_env):
    clean_env.setenv("S3_ACCESS_KEY", "s3-key")
    clean_env.setenv("S3_SECRET_KEY", "s3-secret")
    clean_env.setenv("AWS_ACCESS_KEY_ID", "aws-key")
    clean_env.setenv("AWS_SECRET_ACCESS_KEY", "aws-secret")

    config = create_config_from_env()

    assert config.access_key == "s3-key"
    assert config.secret_key == "s3-secret"


@pytest.mark.parametrize(
    "name, value, fragment",
    [
        ("PORT", "not-a-port", "PORT"),
        ("RECON_UPLOAD_MAX_BYTES", "-5", "RECON_UPLOAD_MAX_BYTES"),
        ("RECON_SIMULATION_ENABLED", "maybe", "RECON_SIMULATION_ENABLED"),
        ("RECON_SOURCE_SYSTEM", "mainframe", "RECON_SOURCE_SYSTEM"),
    ],
)
def test_env_invalid_values(clean_env, name, value, fragment):
    clean_env.setenv(name, value)

    with pytest.raises(ConfigurationError, match=fragment):
        create_config_from_env()


# ============================================================================
# Profiles
# ============================================================================

def test_demo_profile():
    config = demo_profile(ReconConfig(simulation_enabled=False, backup_simulation_interval=30.0))

    assert config.simulation_enabled is True
    assert config.demo_restore_fallback is True
    assert config.backup_simulation_interval == 10.0


def test_production_profile():
    config = production_profile(ReconConfig())

    assert config.simulation_enabled is False
    assert config.demo_restore_fallback is False
    assert config.log_json is True


# ============================================================================
# Messages and logging
# ============================================================================

def test_file_too_large_message():
    assert explain_file_too_large(10 * 1024 * 1024) == "File too large. Maximum size is 10MB."
    assert explain_file_too_large(1500) == "File too large. Maximum size is 1500 bytes."


def test_json_logging(capsys):
    configure_logging("INFO", json=True)
    try:
        structlog.get_logger().info("backup_completed", files=2)
        structlog.get_logger().debug("hidden_event")
    finally:
        structlog.reset_defaults()

    lines = [line for line in capsys.readouterr().out.splitlines() if line.strip()]
    assert len(lines) == 1
    record = json.loads(lines[0])
    assert record["event"] == "backup_completed"
    assert record["files"] == 2
    assert record["level"] == "info"
