"""
Dependency wiring for the FastAPI app.

The storage backend is built once by ``create_app`` and kept on
``app.state``; handlers receive it through these dependencies.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request

from shoplist.core.config import STORAGE_BACKENDS, Settings
from shoplist.db.session import get_engine
from shoplist.domain import User
from shoplist.repositories.base import Storage
from shoplist.repositories.memory_storage import MemStorage
from shoplist.repositories.parse_storage import ParseStorage
from shoplist.repositories.sql_repository import SQLRepository
from shoplist.services.auth_service import AuthService
from shoplist.services.session_service import SESSION_COOKIE_NAME

logger = logging.getLogger(__name__)


def build_storage(settings: Settings) -> Storage:
    """Instantiate the configured backend; misconfiguration fails here, at startup."""
    backend = settings.storage_backend
    if backend == "memory":
        storage: Storage = MemStorage(session_ttl_seconds=settings.session_ttl_seconds)
    elif backend == "sql":
        get_engine()
        storage = SQLRepository(session_ttl_seconds=settings.session_ttl_seconds)
    elif backend == "parse":
        storage = ParseStorage.from_settings(settings)
    else:
        raise RuntimeError(f"STORAGE_BACKEND must be one of {', '.join(STORAGE_BACKENDS)} (got {backend!r}).")
    logger.info("Using %s storage backend", backend)
    return storage


def get_storage(request: Request) -> Storage:
    storage = getattr(getattr(request.app, "state", None), "storage", None)
    if storage is None:
        raise RuntimeError("Storage nao configurado")
    return storage


def get_auth_service(storage: Storage = Depends(get_storage)) -> AuthService:
    return AuthService(storage)


def session_token(request: Request) -> Optional[str]:
    return request.cookies.get(SESSION_COOKIE_NAME)


def require_user(
    token: Optional[str] = Depends(session_token),
    auth: AuthService = Depends(get_auth_service),
) -> User:
    user = auth.current_user(token)
    if user is None:
        raise HTTPException(401, "Nao autenticado")
    return user
