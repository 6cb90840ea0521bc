"""
FastAPI application entry point for the lunch spot backend.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from lunchspot.config import DEV_JWT_SECRET, Settings, get_settings
from lunchspot.db import DbClient
from lunchspot.dependencies import build_db_client
from lunchspot.error_handlers import register_error_handlers
from lunchspot.routes import root_router, router

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None, db: Optional[DbClient] = None
) -> FastAPI:
    settings = settings or get_settings()
    if settings.jwt_secret == DEV_JWT_SECRET:
        logger.warning(
            "JWT_SECRET is not set; tokens are signed with the development secret"
        )
    app = FastAPI(title="Lunch Spot Backend", version="0.1.0")
    app.state.settings = settings
    app.state.db = db if db is not None else build_db_client(settings)

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    register_error_handlers(app)
    app.include_router(router, prefix=settings.api_prefix)
    app.include_router(root_router)

    # Mounted last so API routes take precedence.
    if settings.static_dir and os.path.isdir(settings.static_dir):
        app.mount("/", StaticFiles(directory=settings.static_dir), name="static")
        logger.info("Serving static files from %s", settings.static_dir)
    return app
