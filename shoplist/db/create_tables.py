"""Explicit SQL schema setup, run once per deploy by ``scripts/init_storage.py``."""
from __future__ import annotations

import logging

from sqlalchemy import inspect

from .session import Base, get_engine
from . import models  # noqa: F401  # registra users/shopping_lists/list_items/sessions no metadata

logger = logging.getLogger(__name__)


def ensure_tables() -> list[str]:
    """Create missing tables and return their names; existing ones are left untouched.

    Errors other than "already exists" propagate as ``SQLAlchemyError``.
    """
    engine = get_engine()
    existing = set(inspect(engine).get_table_names())
    missing = [table for table in Base.metadata.sorted_tables if table.name not in existing]
    if missing:
        Base.metadata.create_all(bind=engine, tables=missing)
    created = [table.name for table in missing]
    logger.info("SQL schema ready (created: %s)", ", ".join(created) or "none")
    return created
