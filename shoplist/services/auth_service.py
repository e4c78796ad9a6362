"""
Authentication and identity related use cases.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from shoplist.core.security import hash_password, verify_password
from shoplist.domain import NewUser, User
from shoplist.repositories.base import Storage, UsernameTakenError


class AuthError(Exception):
    """Base class for authentication-related exceptions."""


class RegistrationError(AuthError):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AccountExistsError(AuthError):
    pass


class InvalidCredentialsError(AuthError):
    pass


@dataclass
class LoginSuccess:
    user: User
    session_token: str


@dataclass
class AuthService:
    """Handles signup, login, logout and session resolution over a storage backend."""

    storage: Storage

    def register(self, username: str, password: str) -> LoginSuccess:
        name = (username or "").strip()
        if not name:
            raise RegistrationError("Usuario obrigatorio")
        if not password:
            raise RegistrationError("Senha obrigatoria")
        if self.storage.get_user_by_username(name):
            raise AccountExistsError("Usuario ja existe")
        try:
            user = self.storage.create_user(NewUser(username=name, password=hash_password(password)))
        except UsernameTakenError as exc:
            raise AccountExistsError("Usuario ja existe") from exc
        token = self.storage.session_store.issue(user.id)
        return LoginSuccess(user=user, session_token=token)

    def login(self, username: str, password: str) -> LoginSuccess:
        user = self.storage.get_user_by_username((username or "").strip())
        if not user or not verify_password(password or "", user.password):
            raise InvalidCredentialsError("Usuario ou senha invalidos")
        token = self.storage.session_store.issue(user.id)
        return LoginSuccess(user=user, session_token=token)

    def logout(self, token: Optional[str]) -> None:
        if token:
            self.storage.session_store.revoke(token)

    def current_user(self, token: Optional[str]) -> Optional[User]:
        if not token:
            return None
        user_id = self.storage.session_store.resolve(token)
        if user_id is None:
            return None
        return self.storage.get_user(user_id)
