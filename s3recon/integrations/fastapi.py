# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3Recon FastAPI Integration - HTTP front for the object store and engine.

This module provides:
- File endpoints (upload, list, view, delete) over the object store
- Backup, restore and snapshot status endpoints
- Prometheus exposition and per-request latency metrics
- Lifespan management (bucket creation, load simulator start/stop)
"""

import mimetypes
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

import structlog
from fastapi import Body, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import BaseModel
from starlette.datastructures import UploadFile

from s3recon.config import BackupType, ReconConfig, RestoreType
from s3recon.core import (
    ReconState,
    build_state,
    ensure_bucket,
    get_backup_status,
    shutdown_state,
)
from s3recon.errors import explain_file_too_large, explain_no_file_provided
from s3recon.exceptions import (
    MetricsError,
    ObjectStoreError,
    OperationAbortedError,
    ReconError,
    UploadRejectedError,
)
from s3recon.metrics import CONTENT_TYPE_LATEST, MetricsRegistry

logger = structlog.get_logger()


class BackupRequest(BaseModel):
    """Optional body of POST /api/backup."""

    type: BackupType = BackupType.FULL


class RestoreRequest(BaseModel):
    """Optional body of POST /api/restore."""

    type: RestoreType = RestoreType.FULL


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _guess_content_type(filename: str, fallback: str = "application/octet-stream") -> str:
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or fallback


def install_error_handlers(app: FastAPI) -> None:
    """
    Convert s3recon exceptions into JSON error responses.

    Upload rejections are client errors (400). Everything else is logged
    and reported as a 500 with an ``error`` message.
    """

    @app.exception_handler(UploadRejectedError)
    async def upload_rejected(request: Request, exc: UploadRejectedError) -> JSONResponse:
        logger.warning("upload_rejected", reason=exc.message, path=request.url.path)
        return JSONResponse(status_code=400, content={"error": exc.message})

    @app.exception_handler(OperationAbortedError)
    async def operation_aborted(request: Request, exc: OperationAbortedError) -> JSONResponse:
        logger.error("operation_aborted", error=exc.message, path=request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "error": exc.message,
                "operationId": exc.details.get("operation_id"),
                "durationSeconds": exc.details.get("duration_seconds"),
            },
        )

    @app.exception_handler(ReconError)
    async def recon_error(request: Request, exc: ReconError) -> JSONResponse:
        logger.error("request_failed", error=str(exc), path=request.url.path)
        return JSONResponse(status_code=500, content={"error": exc.message})

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled_exception", error=str(exc), path=request.url.path)
        return JSONResponse(status_code=500, content={"error": f"Internal server error: {exc}"})


def install_http_metrics(app: FastAPI, metrics: MetricsRegistry) -> None:
    """Record count and latency of every request, labelled by route template."""

    @app.middleware("http")
    async def record_request(request: Request, call_next: Any) -> Response:
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            route = request.scope.get("route")
            metrics.record_http_request(
                request.method,
                getattr(route, "path", "unmatched"),
                status_code,
                time.perf_counter() - started,
            )


def register_recon_routes(app: FastAPI, config: ReconConfig, state: ReconState) -> None:
    """
    Register the API endpoints on a FastAPI app.

    Args:
        app: FastAPI application
        config: Service configuration
        state: Runtime state
    """
    store = state["store"]
    engine = state["engine"]
    metrics = state["metrics"]

    @app.get("/api/health")
    async def health_check() -> dict:
        """Liveness check."""
        return {"status": "OK", "timestamp": int(time.time() * 1000)}

    @app.get("/metrics")
    async def get_metrics() -> Response:
        """Prometheus text exposition of every registered series."""
        try:
            return PlainTextResponse(content=metrics.snapshot(), media_type=CONTENT_TYPE_LATEST)
        except MetricsError as e:
            logger.error("metrics_generation_failed", error=str(e))
            return JSONResponse(status_code=500, content={"error": e.message})

    @app.post("/api/upload")
    async def upload_file(request: Request) -> dict:
        """
        Upload one file (multipart field ``file``) into the bucket.

        A missing part, a plain form value or an empty filename is "no
        file". Files larger than the configured limit are rejected before
        anything is written.
        """
        async with request.form() as form:
            file = form.get("file")
            if not isinstance(file, UploadFile) or not file.filename:
                raise UploadRejectedError(explain_no_file_provided())

            filename = file.filename
            declared_type = file.content_type
            content = await file.read(config.upload_max_bytes + 1)

        if len(content) > config.upload_max_bytes:
            raise UploadRejectedError(
                explain_file_too_large(config.upload_max_bytes),
                details={"filename": filename, "limit": config.upload_max_bytes},
            )

        content_type = declared_type or _guess_content_type(filename)

        try:
            await store.put_object(filename, content, len(content), content_type)
        except Exception as e:
            raise ObjectStoreError(
                f"Upload failed: {e}", details={"filename": filename}
            ) from e

        logger.info("file_uploaded", filename=filename, size=len(content))

        return {
            "message": "File uploaded successfully",
            "filename": filename,
            "size": len(content),
            "type": content_type,
        }

    @app.get("/api/files")
    async def list_files() -> list:
        """List every object in the bucket."""
        try:
            records = await store.list_objects()
        except Exception as e:
            raise ObjectStoreError(f"Failed to list files: {e}") from e

        return [
            {
                "name": record.name,
                "size": record.size,
                "lastModified": _isoformat(record.last_modified),
            }
            for record in records
        ]

    @app.get("/api/files/{filename:path}/view")
    async def view_file(filename: str) -> Response:
        """Stream one object back with a content type inferred from its name."""
        try:
            data = await store.get_object(filename)
        except Exception as e:
            raise ObjectStoreError(
                f"Failed to view file: {e}", details={"filename": filename}
            ) from e

        return Response(
            content=data.content,
            media_type=_guess_content_type(filename, fallback=data.content_type),
        )

    @app.delete("/api/files/{filename:path}")
    async def delete_file(filename: str) -> dict:
        """Remove one object from the bucket."""
        try:
            await store.remove_object(filename)
        except Exception as e:
            raise ObjectStoreError(
                f"Failed to delete file: {e}", details={"filename": filename}
            ) from e

        logger.info("file_deleted", filename=filename)
        return {"message": "File deleted successfully", "filename": filename}

    @app.post("/api/backup")
    async def trigger_backup(body: BackupRequest | None = Body(None)) -> dict:
        """
        Back up every object into the snapshot repository.

        Per-file failures are listed in the response; only a failed
        listing of the bucket turns into a 500.
        """
        backup_type = body.type if body else BackupType.FULL
        result = await engine.backup(backup_type)
        return result.to_payload()

    @app.post("/api/restore")
    async def trigger_restore(body: RestoreRequest | None = Body(None)) -> dict:
        """
        Restore snapshots whose objects are missing from the bucket.

        Objects that still exist are never overwritten.
        """
        restore_type = body.type if body else RestoreType.FULL
        result = await engine.restore(restore_type)
        return result.to_payload()

    @app.get("/api/backup/status")
    async def backup_status() -> dict:
        """Current snapshot inventory."""
        return get_backup_status(state)


@asynccontextmanager
async def recon_lifespan(app: FastAPI, config: ReconConfig, state: ReconState):
    """
    Lifespan context manager for the service.

    Creates the bucket if needed and runs the load simulator for the
    lifetime of the app when simulation is enabled.
    """
    logger.info("recon_lifespan_starting", bucket=config.bucket)

    await ensure_bucket(state)

    if config.simulation_enabled:
        state["simulator"].start()

    logger.info("recon_lifespan_started", simulation=config.simulation_enabled)

    try:
        yield
    finally:
        logger.info("recon_lifespan_stopping")
        await shutdown_state(state)
        logger.info("recon_lifespan_stopped")


def create_app(config: ReconConfig, state: ReconState | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Service configuration
        state: Prebuilt runtime state (default: built from config)

    Returns:
        FastAPI app with routes, error handlers, metrics and lifespan
    """
    state = state or build_state(config)

    app = FastAPI(
        title="S3 Backup Reconciliation",
        description="Object store front with snapshot backup, restore and telemetry",
        version="0.1.0",
        lifespan=lambda app: recon_lifespan(app, config, state),
    )
    app.state.recon_config = config
    app.state.recon_state = state

    install_http_metrics(app, state["metrics"])
    install_error_handlers(app)
    register_recon_routes(app, config, state)

    return app


def get_recon_state(app: FastAPI) -> ReconState:
    """
    Get the runtime state from a FastAPI app.

    Raises:
        RuntimeError: If the app was not built with create_app()
    """
    state = getattr(app.state, "recon_state", None)
    if not state:
        raise RuntimeError("s3recon not initialized. Build the app with create_app().")
    return state
