"""Session helpers (issue tokens, cookies, validation)."""
from __future__ import annotations

import logging
import secrets
import threading
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Protocol, Tuple

from fastapi import Response
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError

from shoplist.core.config import get_settings
from shoplist.db.models import UserSession
from shoplist.db.session import get_session
from shoplist.repositories.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "session"
MIN_SESSION_TTL = 60


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: datetime) -> datetime:
    # SQLite devolve datetimes sem tzinfo; tratamos como UTC.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _ttl(ttl_seconds: Optional[int]) -> int:
    ttl = ttl_seconds if ttl_seconds is not None else get_settings().session_ttl_seconds
    return max(MIN_SESSION_TTL, ttl)


class SessionStore(Protocol):
    """Maps opaque session tokens to user ids."""

    ttl_seconds: int

    def issue(self, user_id: int) -> str:
        ...

    def resolve(self, token: str) -> Optional[int]:
        ...

    def revoke(self, token: str) -> None:
        ...


class MemorySessionStore:
    """Process-local sessions; expired entries are pruned on access."""

    def __init__(self, ttl_seconds: Optional[int] = None) -> None:
        self.ttl_seconds = _ttl(ttl_seconds)
        self._sessions: Dict[str, Tuple[int, datetime]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def issue(self, user_id: int) -> str:
        token = secrets.token_urlsafe(32)
        expires_at = _now() + timedelta(seconds=self.ttl_seconds)
        with self._lock:
            self._prune(_now())
            self._sessions[token] = (user_id, expires_at)
        return token

    def resolve(self, token: str) -> Optional[int]:
        if not token:
            return None
        with self._lock:
            entry = self._sessions.get(token)
            if not entry:
                return None
            user_id, expires_at = entry
            if expires_at < _now():
                del self._sessions[token]
                return None
            return user_id

    def revoke(self, token: str) -> None:
        with self._lock:
            self._sessions.pop(token, None)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()

    def _prune(self, now: datetime) -> None:
        expired = [token for token, (_, expires_at) in self._sessions.items() if expires_at < now]
        for token in expired:
            del self._sessions[token]


class SQLSessionStore:
    """Sessions persisted in the ``sessions`` table next to the SQL backend."""

    def __init__(self, ttl_seconds: Optional[int] = None) -> None:
        self.ttl_seconds = _ttl(ttl_seconds)

    def issue(self, user_id: int) -> str:
        token = secrets.token_urlsafe(32)
        expires_at = _now() + timedelta(seconds=self.ttl_seconds)
        try:
            with get_session() as session:
                session.add(UserSession(token=token, user_id=user_id, expires_at=expires_at))
                session.commit()
        except SQLAlchemyError as exc:
            raise StoreUnavailableError("issue_session", str(exc)) from exc
        return token

    def resolve(self, token: str) -> Optional[int]:
        if not token:
            return None
        try:
            with get_session() as session:
                entity = session.get(UserSession, token)
                if not entity:
                    return None
                if entity.expires_at and _aware(entity.expires_at) < _now():
                    session.delete(entity)
                    session.commit()
                    return None
                return entity.user_id
        except SQLAlchemyError:
            logger.warning("Session lookup failed", exc_info=True)
            return None

    def revoke(self, token: str) -> None:
        if not token:
            return
        try:
            with get_session() as session:
                session.execute(delete(UserSession).where(UserSession.token == token))
                session.commit()
        except SQLAlchemyError:
            logger.exception("Failed to revoke session")


def set_session_cookie(response: Response, token: str, max_age: Optional[int] = None) -> None:
    """Cookie lifetime mirrors the store TTL, including its 60s floor."""
    settings = get_settings()
    secure_cookie = settings.app_env == "prod"
    response.set_cookie(
        SESSION_COOKIE_NAME,
        token,
        httponly=True,
        secure=secure_cookie,
        samesite="strict",
        max_age=_ttl(max_age),
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE_NAME, path="/")
