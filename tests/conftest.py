from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Garante que o pacote shoplist seja importável durante os testes locais
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from shoplist.core import config as core_config  # noqa: E402
from shoplist.db import models  # noqa: E402
from shoplist.db import session as db_session  # noqa: E402
from shoplist.repositories.memory_storage import MemStorage  # noqa: E402
from shoplist.repositories.parse_storage import ParseClient, ParseStorage  # noqa: E402
from shoplist.repositories.sql_repository import SQLRepository  # noqa: E402

from fake_parse import FakeParseServer  # noqa: E402


def _reset_caches() -> None:
    core_config.get_settings.cache_clear()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]


@pytest.fixture()
def sql_env(tmp_path, monkeypatch):
    """Configura um SQLite temporário e reseta caches de settings/engine."""
    db_file = tmp_path / "test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_file}")
    _reset_caches()

    engine = db_session.get_engine()
    models.Base.metadata.drop_all(bind=engine)
    models.Base.metadata.create_all(bind=engine)

    yield db_file

    models.Base.metadata.drop_all(bind=engine)
    engine.dispose()
    _reset_caches()


@pytest.fixture()
def fake_parse():
    return FakeParseServer()


@pytest.fixture()
def parse_storage(fake_parse):
    client = ParseClient(
        "https://parse.test/parse/",
        "app-id",
        "client-key",
        fake_parse.master_key,
        transport=fake_parse.transport(),
    )
    storage = ParseStorage(client)
    storage.ensure_schema()
    yield storage
    storage.close()


@pytest.fixture(params=["memory", "sql", "parse"])
def storage(request):
    """Each contract test runs against every backend."""
    if request.param == "memory":
        return MemStorage()
    if request.param == "sql":
        request.getfixturevalue("sql_env")
        return SQLRepository()
    return request.getfixturevalue("parse_storage")
