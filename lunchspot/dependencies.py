"""
Dependency wiring for the FastAPI app.

The storage handle and settings are attached to ``app.state`` by
``create_app``; handlers reach them only through these dependencies so tests
can build an app around their own doubles.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from lunchspot.config import Settings
from lunchspot.db import DbClient, InMemoryDbClient, SqlDbClient
from lunchspot.errors import MISSING_CREDENTIAL, UnauthorizedError
from lunchspot.security import decode_access_token

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)


def build_db_client(settings: Settings) -> DbClient:
    """Pick the storage backend described by ``settings``."""
    if settings.use_in_memory_backends or not settings.database_url:
        logger.info("Using in-memory storage")
        return InMemoryDbClient()
    return SqlDbClient(settings.database_url)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db_client(request: Request) -> DbClient:
    return request.app.state.db


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    settings: Settings = Depends(get_app_settings),
) -> str:
    """
    Auth gate for protected routes: verify the bearer token and return the
    caller's user id.
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError(MISSING_CREDENTIAL)
    return decode_access_token(credentials.credentials, settings)
