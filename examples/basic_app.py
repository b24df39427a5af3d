# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Example FastAPI Application for the S3 reconciliation service.

Serves the upload/list/view/delete file API, backup and restore of the
bucket, and a Prometheus /metrics endpoint fed by real operations and the
background load simulator.

Run with:
    uvicorn examples.basic_app:app --reload

Environment variables:
    S3_ENDPOINT_URL: MinIO/S3 endpoint (default: http://storage:9000)
    S3_BUCKET: Bucket name (default: testbucket)
    S3_ACCESS_KEY / S3_SECRET_KEY: Credentials (default: minio / minio123)
    PORT: Listen port (default: 3000)
    RECON_PROFILE: 'demo' or 'production' (default: demo)
"""

import os

from s3recon.env import create_config_from_env, demo_profile, production_profile
from s3recon.integrations.fastapi import create_app
from s3recon.log import configure_logging


def create_recon_config():
    """
    Create the service configuration from environment variables.

    The demo profile keeps the simulated telemetry and the placeholder
    restore; the production profile turns both off.
    """
    config = create_config_from_env()

    if os.getenv("RECON_PROFILE", "demo").lower() == "production":
        return production_profile(config)
    return demo_profile(config)


recon_config = create_recon_config()
configure_logging(recon_config.log_level, json=recon_config.log_json)

app = create_app(recon_config)


# ============================================================================
# Endpoints registered by create_app
# ============================================================================
#
# GET    /api/health                  - Liveness probe
# GET    /metrics                     - Prometheus exposition
# POST   /api/upload                  - Upload one file (multipart field "file")
# GET    /api/files                   - List objects
# GET    /api/files/{filename}/view   - Download one object
# DELETE /api/files/{filename}        - Delete one object
# POST   /api/backup                  - Snapshot every object {"type": "full"|"incremental"}
# POST   /api/restore                 - Restore missing objects {"type": "full"|"partial"}
# GET    /api/backup/status           - Snapshot inventory


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=recon_config.host, port=recon_config.port)
