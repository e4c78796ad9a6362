"""FastAPI application entry point."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from shoplist.core.config import get_settings
from shoplist.core.log import configure_logging
from shoplist.dependencies import build_storage
from shoplist.repositories.base import ParentNotFoundError, Storage, StoreUnavailableError
from shoplist.routers import auth as auth_router
from shoplist.routers import lists as lists_router

logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject baseline security headers on every JSON response."""

    def __init__(self, app, *, enforce_hsts: bool) -> None:
        super().__init__(app)
        self._enforce_hsts = enforce_hsts

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer-when-downgrade")
        if self._enforce_hsts:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response


async def _store_unavailable(request: Request, exc: StoreUnavailableError) -> JSONResponse:
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse({"detail": "Armazenamento indisponivel"}, status_code=503)


async def _parent_not_found(request: Request, exc: ParentNotFoundError) -> JSONResponse:
    # dono ou lista removidos entre a checagem da rota e a escrita
    logger.warning("Parent missing on %s %s: %s", request.method, request.url.path, exc)
    detail = "Lista nao encontrada" if exc.parent == "list" else "Usuario nao encontrado"
    return JSONResponse({"detail": detail}, status_code=404)


def create_app(storage: Optional[Storage] = None) -> FastAPI:
    """Factory compatible with uvicorn/gunicorn; pass ``storage`` to inject a backend."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Shopping List API")
    app.state.storage = storage if storage is not None else build_storage(settings)

    if settings.app_env != "prod":
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[
                "http://localhost:5000",
                "http://127.0.0.1:5000",
                "http://localhost:5173",
                "http://127.0.0.1:5173",
            ],
            allow_credentials=True,
            allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
            allow_headers=["*"],
        )
    app.add_middleware(SecurityHeadersMiddleware, enforce_hsts=settings.app_env == "prod")
    app.add_exception_handler(StoreUnavailableError, _store_unavailable)
    app.add_exception_handler(ParentNotFoundError, _parent_not_found)

    app.include_router(auth_router.router)
    app.include_router(lists_router.router)
    return app
