#!/usr/bin/env python3
"""
Cadastrar um usuario diretamente no backend configurado.

Uso:
  python scripts/add_user.py --username ana --password pw123
"""
from __future__ import annotations

import argparse
import sys

from shoplist.core.config import get_settings
from shoplist.dependencies import build_storage
from shoplist.services.auth_service import AccountExistsError, AuthService


def main() -> None:
    ap = argparse.ArgumentParser(description="Cadastrar usuario")
    ap.add_argument("--username", required=True, help="Nome de usuario (unico)")
    ap.add_argument("--password", required=True, help="Senha em texto; sera gravada como hash argon2")
    args = ap.parse_args()

    settings = get_settings()
    if settings.storage_backend == "memory":
        raise SystemExit("STORAGE_BACKEND=memory nao persiste; use sql ou parse")
    auth = AuthService(build_storage(settings))
    try:
        result = auth.register(args.username, args.password)
    except AccountExistsError:
        raise SystemExit(f"Usuario '{args.username}' ja existe")
    auth.logout(result.session_token)
    print("OK: usuario cadastrado")
    print(f"  ID: {result.user.id}")
    print(f"  Usuario: {result.user.username}")


if __name__ == "__main__":
    try:
        main()
    except Exception as exc:  # pragma: no cover - uso CLI
        sys.stderr.write(f"Erro: {exc}\n")
        raise SystemExit(1)
