from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response

from shoplist.dependencies import get_auth_service, require_user, session_token
from shoplist.domain import User
from shoplist.schemas import Credentials, UserOut
from shoplist.services.auth_service import (
    AccountExistsError,
    AuthService,
    InvalidCredentialsError,
    RegistrationError,
)
from shoplist.services.session_service import clear_session_cookie, set_session_cookie

router = APIRouter(prefix="/api", tags=["auth"])


def _user_out(user: User) -> UserOut:
    return UserOut(id=user.id, username=user.username)


@router.post("/register", response_model=UserOut, status_code=201)
def register(payload: Credentials, response: Response, auth: AuthService = Depends(get_auth_service)):
    try:
        result = auth.register(payload.username, payload.password)
    except RegistrationError as exc:
        raise HTTPException(400, exc.message)
    except AccountExistsError:
        raise HTTPException(400, "Usuario ja existe")
    set_session_cookie(response, result.session_token, auth.storage.session_store.ttl_seconds)
    return _user_out(result.user)


@router.post("/login", response_model=UserOut)
def login(payload: Credentials, response: Response, auth: AuthService = Depends(get_auth_service)):
    try:
        result = auth.login(payload.username, payload.password)
    except InvalidCredentialsError:
        raise HTTPException(401, "Usuario ou senha invalidos")
    set_session_cookie(response, result.session_token, auth.storage.session_store.ttl_seconds)
    return _user_out(result.user)


@router.post("/logout")
def logout(
    response: Response,
    token: Optional[str] = Depends(session_token),
    auth: AuthService = Depends(get_auth_service),
):
    auth.logout(token)
    clear_session_cookie(response)
    return {"ok": True}


@router.get("/user", response_model=UserOut)
def current_user(user: User = Depends(require_user)):
    return _user_out(user)
