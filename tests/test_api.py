# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
HTTP API tests for s3recon.

The app runs over the in-memory object store through httpx's ASGI
transport, so no MinIO is needed.
"""

import pytest
from fastapi import FastAPI

from s3recon.core import build_state
from s3recon.integrations.fastapi import create_app, get_recon_state, recon_lifespan
from s3recon.metrics import CONTENT_TYPE_LATEST


# ============================================================================
# Health and metrics
# ============================================================================

@pytest.mark.asyncio
async def test_health(api_client):
    response = await api_client.get("/api/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "OK"
    assert isinstance(body["timestamp"], int)


@pytest.mark.asyncio
async def test_metrics_exposition(api_client):
    await api_client.post("/api/backup")

    response = await api_client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"] == CONTENT_TYPE_LATEST
    assert "backup_operations_total" in response.text
    assert "system_cpu_usage_percent" in response.text


@pytest.mark.asyncio
async def test_requests_are_counted_by_route(api_client, test_state):
    await api_client.get("/api/health")
    await api_client.get("/api/health")

    assert test_state["metrics"].get_sample_value(
        "http_requests_total",
        {"method": "GET", "route": "/api/health", "status_code": "200"},
    ) == 2.0


# ============================================================================
# File endpoints
# ============================================================================

@pytest.mark.asyncio
async def test_upload_list_view_delete(api_client, memory_store):
    upload = await api_client.post(
        "/api/upload", files={"file": ("notes.txt", b"hello", "text/plain")}
    )
    assert upload.status_code == 200
    assert upload.json() == {
        "message": "File uploaded successfully",
        "filename": "notes.txt",
        "size": 5,
        "type": "text/plain",
    }

    listing = await api_client.get("/api/files")
    assert [f["name"] for f in listing.json()] == ["notes.txt"]
    assert listing.json()[0]["size"] == 5
    assert listing.json()[0]["lastModified"] is not None

    view = await api_client.get("/api/files/notes.txt/view")
    assert view.status_code == 200
    assert view.content == b"hello"
    assert view.headers["content-type"].startswith("text/plain")

    delete = await api_client.delete("/api/files/notes.txt")
    assert delete.json() == {"message": "File deleted successfully", "filename": "notes.txt"}
    assert memory_store.objects == {}


@pytest.mark.asyncio
async def test_view_infers_content_type_from_name(api_client, memory_store):
    memory_store.add("data.json", b"{}", "application/octet-stream")

    response = await api_client.get("/api/files/data.json/view")

    assert response.headers["content-type"].startswith("application/json")


@pytest.mark.asyncio
async def test_view_missing_file_is_server_error(api_client):
    response = await api_client.get("/api/files/missing.txt/view")

    assert response.status_code == 500
    assert "error" in response.json()


@pytest.mark.asyncio
async def test_upload_without_file_is_rejected(api_client):
    response = await api_client.post("/api/upload", files={"other": ("x.txt", b"x", "text/plain")})

    assert response.status_code == 400
    assert response.json() == {"error": "No file provided"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "kwargs",
    [
        {"files": {"file": ("", b"x", "text/plain")}},
        {"data": {"file": "x"}},
    ],
    ids=["empty-filename", "plain-field"],
)
async def test_upload_file_field_without_filename_is_rejected(api_client, memory_store, kwargs):
    response = await api_client.post("/api/upload", **kwargs)

    assert response.status_code == 400
    assert response.json() == {"error": "No file provided"}
    assert memory_store.objects == {}


@pytest.mark.asyncio
async def test_oversized_upload_is_rejected(api_client, memory_store):
    payload = b"x" * (11 * 1024 * 1024)

    response = await api_client.post(
        "/api/upload", files={"file": ("big.bin", payload, "application/octet-stream")}
    )

    assert response.status_code == 400
    assert response.json() == {"error": "File too large. Maximum size is 10MB."}
    assert "big.bin" not in memory_store.objects


@pytest.mark.asyncio
async def test_upload_at_limit_is_accepted(api_client, memory_store):
    payload = b"x" * (10 * 1024 * 1024)

    response = await api_client.post(
        "/api/upload", files={"file": ("edge.bin", payload, "application/octet-stream")}
    )

    assert response.status_code == 200
    assert len(memory_store.objects["edge.bin"].content) == len(payload)


@pytest.mark.asyncio
async def test_store_failure_on_upload_is_server_error(api_client, memory_store):
    memory_store.put_errors["a.txt"] = ConnectionError("store unreachable")

    response = await api_client.post("/api/upload", files={"file": ("a.txt", b"a", "text/plain")})

    assert response.status_code == 500
    assert response.json()["error"].startswith("Upload failed")


# ============================================================================
# Backup and restore
# ============================================================================

@pytest.mark.asyncio
async def test_backup_delete_restore_round(api_client, memory_store):
    await api_client.post("/api/upload", files={"file": ("a.txt", b"hello", "text/plain")})
    listing = (await api_client.get("/api/files")).json()
    assert [(f["name"], f["size"]) for f in listing] == [("a.txt", 5)]

    backup = await api_client.post("/api/backup", json={"type": "full"})
    assert backup.status_code == 200
    assert backup.json()["filesBackedUp"] == 1
    assert backup.json()["backupFiles"] == ["a.txt"]

    await api_client.delete("/api/files/a.txt")
    assert (await api_client.get("/api/files")).json() == []

    restore = await api_client.post("/api/restore", json={"type": "full"})
    body = restore.json()
    assert restore.status_code == 200
    assert body["restoreNeeded"] is True
    assert body["filesRestored"] == 1
    assert body["restoredFiles"][0]["name"] == "a.txt"
    assert body["placeholder"] is False
    assert [f["name"] for f in (await api_client.get("/api/files")).json()] == ["a.txt"]

    view = await api_client.get("/api/files/a.txt/view")
    assert view.content == b"hello"


@pytest.mark.asyncio
async def test_restore_keeps_newer_object(api_client):
    await api_client.post("/api/upload", files={"file": ("a.txt", b"v1", "text/plain")})
    await api_client.post("/api/backup")
    await api_client.post("/api/upload", files={"file": ("a.txt", b"v2", "text/plain")})

    restore = await api_client.post("/api/restore")

    assert restore.json()["restoreNeeded"] is False
    assert restore.json()["skippedFiles"] == ["a.txt"]
    assert (await api_client.get("/api/files/a.txt/view")).content == b"v2"


@pytest.mark.asyncio
async def test_restore_with_no_snapshots_writes_placeholder(api_client):
    response = await api_client.post("/api/restore")

    body = response.json()
    assert response.status_code == 200
    assert body["placeholder"] is True
    assert body["restoreNeeded"] is True
    assert body["message"] == "No backups found, created placeholder file(s)"

    names = [f["name"] for f in (await api_client.get("/api/files")).json()]
    assert names == [f["name"] for f in body["restoredFiles"]]


@pytest.mark.asyncio
async def test_backup_type_from_body(api_client):
    response = await api_client.post("/api/backup", json={"type": "incremental"})

    assert response.json()["backupType"] == "incremental"
    assert response.json()["sourceSystem"] == "object-store"


@pytest.mark.asyncio
async def test_unknown_backup_type_is_validation_error(api_client):
    response = await api_client.post("/api/backup", json={"type": "differential"})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_backup_abort_reports_duration(api_client, memory_store):
    memory_store.list_error = ConnectionError("store unreachable")

    response = await api_client.post("/api/backup")

    body = response.json()
    assert response.status_code == 500
    assert body["error"].startswith("Backup failed")
    assert body["durationSeconds"] >= 0
    assert body["operationId"]


@pytest.mark.asyncio
async def test_backup_status(api_client):
    await api_client.post("/api/upload", files={"file": ("a.txt", b"hello", "text/plain")})
    await api_client.post("/api/backup")

    response = await api_client.get("/api/backup/status")

    body = response.json()
    assert body["totalBackups"] == 1
    assert body["totalBytes"] == 5
    assert body["lastBackupTimestamp"] is not None
    assert body["backups"][0]["name"] == "a.txt"
    assert "content" not in body["backups"][0]


# ============================================================================
# App wiring
# ============================================================================

@pytest.mark.asyncio
async def test_lifespan_creates_bucket_and_runs_simulator(test_config, memory_store, scripted_random):
    config = test_config.with_updates(simulation_enabled=True)
    state = build_state(config, store=memory_store, random_source=scripted_random())
    app = create_app(config, state)
    memory_store.exists = False

    async with recon_lifespan(app, config, state):
        assert memory_store.exists is True
        assert state["simulator"].running is True

    assert state["simulator"].running is False


def test_get_recon_state(test_config, test_state):
    app = create_app(test_config, test_state)

    assert get_recon_state(app) is test_state

    with pytest.raises(RuntimeError):
        get_recon_state(FastAPI())
