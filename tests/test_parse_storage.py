"""
Parse backend specifics: localId mapping, atomic sequences, master-key gating,
failure normalisation and explicit schema setup.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import date

import pytest

from shoplist.core.config import Settings
from shoplist.domain import NewItem, NewList, NewUser
from shoplist.repositories.base import ParentNotFoundError, StoreUnavailableError
from shoplist.repositories import parse_storage as parse_module
from shoplist.repositories.parse_storage import ParseStorage


def _settings(**overrides) -> Settings:
    values = dict(
        app_env="dev",
        storage_backend="parse",
        database_url="",
        parse_server_url="https://parse.test/parse/",
        parse_app_id="app-id",
        parse_client_key="client-key",
        parse_master_key="master",
        parse_timeout_seconds=5.0,
        session_ttl_seconds=3600,
        log_level="INFO",
    )
    values.update(overrides)
    return Settings(**values)


def _seed_owner(fake_parse, local_id: int = 1) -> None:
    fake_parse.seed("User", localId=local_id, username=f"user{local_id}", password="argon2$hash")


@pytest.mark.parametrize("missing", ["parse_app_id", "parse_client_key", "parse_master_key"])
def test_from_settings_fails_fast_without_credentials(missing):
    with pytest.raises(RuntimeError) as excinfo:
        ParseStorage.from_settings(_settings(**{missing: ""}))
    assert missing.upper() in str(excinfo.value)


def test_from_settings_sends_credentials(fake_parse):
    storage = ParseStorage.from_settings(_settings(), transport=fake_parse.transport())
    try:
        storage.get_list(1)
    finally:
        storage.close()
    request = fake_parse.requests[-1]
    assert request.headers["X-Parse-Application-Id"] == "app-id"
    assert request.headers["X-Parse-REST-API-Key"] == "client-key"
    assert "X-Parse-Master-Key" not in request.headers
    assert request.url.path == "/parse/classes/ShoppingList"


def test_objects_carry_local_ids(parse_storage, fake_parse):
    user = parse_storage.create_user(NewUser(username="ana", password="argon2$hash"))
    shopping_list = parse_storage.create_list(user.id, NewList(name="Mercado", date=date(2024, 1, 1)))

    [stored] = fake_parse.objects("ShoppingList")
    assert stored["localId"] == shopping_list.id == 1
    assert stored["userId"] == user.id
    assert stored["date"] == "2024-01-01"
    assert stored["objectId"] != str(shopping_list.id)


def test_user_class_requires_master_key(parse_storage, fake_parse):
    parse_storage.create_user(NewUser(username="ana", password="argon2$hash"))
    user_calls = [r for r in fake_parse.requests if "/classes/User" in r.url.path]
    assert user_calls
    assert all(r.headers.get("X-Parse-Master-Key") == "master" for r in user_calls)
    # uma so representacao de credencial
    [stored] = fake_parse.objects("User")
    assert set(stored) >= {"localId", "username", "password"}
    assert stored["password"] == "argon2$hash"


def test_sequence_is_seeded_from_existing_local_ids(parse_storage, fake_parse):
    # dados antigos gravados com o esquema "maior localId + 1"
    _seed_owner(fake_parse)
    fake_parse.seed("ShoppingList", localId=7, userId=1, name="Antiga", date="2023-12-01")

    created = parse_storage.create_list(1, NewList(name="Nova", date=date(2024, 1, 1)))

    assert created.id == 8
    [counter] = fake_parse.objects("Sequence")
    assert counter["name"] == "ShoppingList"
    assert counter["value"] == 8


def test_ids_come_from_atomic_increment(parse_storage, fake_parse):
    _seed_owner(fake_parse)
    fake_parse.seed("ShoppingList", localId=1, userId=1, name="Mercado", date="2024-01-01")
    parse_storage.create_item(1, NewItem(name="Arroz", price=5.5, quantity=2))
    increments = [
        r for r in fake_parse.requests if r.method == "PUT" and "/classes/Sequence/" in r.url.path
    ]
    assert len(increments) == 1
    assert b'"__op": "Increment"' in increments[0].content or b'"__op":"Increment"' in increments[0].content


def test_concurrent_creates_get_distinct_ids(parse_storage, fake_parse):
    _seed_owner(fake_parse)
    with ThreadPoolExecutor(max_workers=10) as pool:
        created = list(
            pool.map(
                lambda n: parse_storage.create_list(1, NewList(name=f"L{n}", date=date(2024, 1, 1))),
                range(30),
            )
        )
    ids = sorted(entry.id for entry in created)
    assert ids == list(range(1, 31))
    assert len(fake_parse.objects("Sequence")) == 1


def test_reads_degrade_when_parse_is_offline(parse_storage, fake_parse):
    _seed_owner(fake_parse)
    parse_storage.create_list(1, NewList(name="Mercado", date=date(2024, 1, 1)))
    fake_parse.offline = True

    assert parse_storage.get_user(1) is None
    assert parse_storage.get_user_by_username("ana") is None
    assert parse_storage.get_list(1) is None
    assert parse_storage.get_lists(1) == []
    assert parse_storage.get_items(1) == []
    assert parse_storage.get_item(1) is None
    parse_storage.delete_list(1)
    parse_storage.delete_item(1)


def test_writes_raise_typed_error_when_parse_is_offline(parse_storage, fake_parse):
    fake_parse.offline = True
    with pytest.raises(StoreUnavailableError):
        parse_storage.create_user(NewUser(username="ana", password="x"))
    with pytest.raises(StoreUnavailableError):
        parse_storage.create_list(1, NewList(name="Mercado", date=date(2024, 1, 1)))
    with pytest.raises(StoreUnavailableError):
        parse_storage.create_item(1, NewItem(name="Arroz", price=1.0, quantity=1))
    with pytest.raises(StoreUnavailableError):
        parse_storage.update_list(1, {"name": "x"})
    with pytest.raises(StoreUnavailableError):
        parse_storage.update_item(1, {"name": "x"})


def test_delete_list_removes_items_in_batches(parse_storage, fake_parse, monkeypatch):
    monkeypatch.setattr(parse_module, "BATCH_SIZE", 2)
    _seed_owner(fake_parse)
    shopping_list = parse_storage.create_list(1, NewList(name="Mercado", date=date(2024, 1, 1)))
    for n in range(5):
        parse_storage.create_item(shopping_list.id, NewItem(name=f"I{n}", price=1.0, quantity=1))

    parse_storage.delete_list(shopping_list.id)

    assert fake_parse.objects("ListItem") == []
    assert fake_parse.objects("ShoppingList") == []
    batches = [r for r in fake_parse.requests if r.url.path == "/parse/batch"]
    assert len(batches) == 3
    assert b"/parse/classes/ListItem/" in batches[0].content


def test_find_all_pages_through_results(parse_storage, fake_parse, monkeypatch):
    monkeypatch.setattr(parse_module, "PAGE_SIZE", 2)
    for n in range(5):
        fake_parse.seed("ListItem", localId=n + 1, listId=3, name=f"I{n}", price=1, quantity=1)

    items = parse_storage.get_items(3)

    assert sorted(item.id for item in items) == [1, 2, 3, 4, 5]


def test_ensure_schema_is_idempotent(parse_storage, fake_parse):
    assert set(fake_parse.schemas) == {"User", "ShoppingList", "ListItem", "Sequence"}
    assert fake_parse.schemas["User"]["classLevelPermissions"]["find"] == {}
    assert "classLevelPermissions" not in fake_parse.schemas["ShoppingList"]
    assert parse_storage.ensure_schema() == []


def test_ensure_schema_raises_on_other_errors(parse_storage, fake_parse):
    fake_parse.offline = True
    with pytest.raises(parse_module.ParseError):
        parse_storage.ensure_schema()


def test_legacy_date_objects_are_read(parse_storage, fake_parse):
    fake_parse.seed(
        "ShoppingList",
        localId=1,
        userId=1,
        name="Mercado",
        date={"__type": "Date", "iso": "2024-03-05T00:00:00.000Z"},
    )
    assert parse_storage.get_list(1).date == date(2024, 3, 5)


def test_create_checks_parent_before_taking_an_id(parse_storage, fake_parse):
    with pytest.raises(ParentNotFoundError):
        parse_storage.create_list(5, NewList(name="Mercado", date=date(2024, 1, 1)))
    with pytest.raises(ParentNotFoundError):
        parse_storage.create_item(5, NewItem(name="Arroz", price=1.0, quantity=1))

    assert fake_parse.objects("Sequence") == []
    owner_lookups = [r for r in fake_parse.requests if r.url.path == "/parse/classes/User"]
    assert owner_lookups
    assert all(r.headers.get("X-Parse-Master-Key") == "master" for r in owner_lookups)
