#!/usr/bin/env python3
"""
Preparar o backend de armazenamento configurado (executar uma vez por deploy).

Uso:
  STORAGE_BACKEND=sql DATABASE_URL=postgresql://... python scripts/init_storage.py
  STORAGE_BACKEND=parse PARSE_APP_ID=... PARSE_CLIENT_KEY=... PARSE_MASTER_KEY=... python scripts/init_storage.py
"""
from __future__ import annotations

import argparse
import logging
import sys

from shoplist.core.config import STORAGE_BACKENDS, get_settings
from shoplist.core.log import configure_logging
from shoplist.db.create_tables import ensure_tables
from shoplist.repositories.parse_storage import ParseStorage

logger = logging.getLogger("init_storage")


def main() -> None:
    settings = get_settings()
    ap = argparse.ArgumentParser(description="Criar schema do backend de armazenamento")
    ap.add_argument(
        "--backend",
        choices=STORAGE_BACKENDS,
        default=settings.storage_backend,
        help="Backend a preparar (default: STORAGE_BACKEND)",
    )
    args = ap.parse_args()
    configure_logging(settings.log_level)

    if args.backend == "memory":
        print("Backend em memoria nao precisa de schema.")
        return
    if args.backend == "sql":
        created = ensure_tables()
        print(f"OK: tabelas criadas: {', '.join(created) or 'nenhuma (ja existiam)'}")
        return
    storage = ParseStorage.from_settings(settings)
    try:
        created = storage.ensure_schema()
    finally:
        storage.close()
    print(f"OK: classes criadas: {', '.join(created) or 'nenhuma (ja existiam)'}")


if __name__ == "__main__":
    try:
        main()
    except Exception as exc:  # pragma: no cover - uso CLI
        sys.stderr.write(f"Erro: {exc}\n")
        raise SystemExit(1)
