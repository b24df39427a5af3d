# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Framework Integrations - FastAPI application factory and routes.
"""

from s3recon.integrations.fastapi import (
    create_app,
    register_recon_routes,
    recon_lifespan,
    get_recon_state,
)

__all__ = [
    "create_app",
    "register_recon_routes",
    "recon_lifespan",
    "get_recon_state",
]
