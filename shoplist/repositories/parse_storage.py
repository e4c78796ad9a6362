"""
Parse Server (Back4App) storage backend over the REST API.

Every object carries an application ``localId`` (sequential int) next to the
Parse ``objectId``; the storage contract only ever sees ``localId``. New ids
come from one ``Sequence`` object per class bumped with Parse's atomic
``Increment`` operator, so concurrent creates never share an id.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import date
from typing import Any, Iterable, Optional
from urllib.parse import urlparse

import httpx

from shoplist.core.config import Settings
from shoplist.domain import (
    ListItem,
    MUTABLE_ITEM_FIELDS,
    MUTABLE_LIST_FIELDS,
    NewItem,
    NewList,
    NewUser,
    ShoppingList,
    User,
    patch_fields,
)
from shoplist.repositories.errors import ParentNotFoundError, StoreUnavailableError, UsernameTakenError
from shoplist.services.session_service import MemorySessionStore

logger = logging.getLogger(__name__)

USER_CLASS = "User"
LIST_CLASS = "ShoppingList"
ITEM_CLASS = "ListItem"
SEQUENCE_CLASS = "Sequence"

PAGE_SIZE = 1000
BATCH_SIZE = 50
OBJECT_NOT_FOUND = 101

_NUMBER = {"type": "Number"}
_STRING = {"type": "String"}

CLASS_FIELDS = {
    USER_CLASS: {"localId": _NUMBER, "username": _STRING, "password": _STRING},
    LIST_CLASS: {
        "localId": _NUMBER,
        "userId": _NUMBER,
        "name": _STRING,
        "date": _STRING,
        "description": _STRING,
    },
    ITEM_CLASS: {
        "localId": _NUMBER,
        "listId": _NUMBER,
        "name": _STRING,
        "price": _NUMBER,
        "quantity": _NUMBER,
    },
    SEQUENCE_CLASS: {"name": _STRING, "value": _NUMBER},
}

# Sem permissao publica: so a master key le/escreve.
_MASTER_ONLY = {
    "find": {},
    "count": {},
    "get": {},
    "create": {},
    "update": {},
    "delete": {},
    "addField": {},
}
CLASS_PERMISSIONS = {USER_CLASS: _MASTER_ONLY, SEQUENCE_CLASS: _MASTER_ONLY}


class ParseError(Exception):
    """A Parse REST call failed (transport error or Parse error payload)."""

    def __init__(self, message: str, code: Optional[int] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code


class ParseClient:
    """Thin httpx wrapper around the Parse REST endpoints we use."""

    def __init__(
        self,
        server_url: str,
        app_id: str,
        client_key: str,
        master_key: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.server_url = server_url.rstrip("/") + "/"
        self._mount_path = urlparse(self.server_url).path.rstrip("/")
        self._master_key = master_key
        self._http = httpx.Client(
            base_url=self.server_url,
            timeout=timeout,
            transport=transport,
            headers={
                "X-Parse-Application-Id": app_id,
                "X-Parse-REST-API-Key": client_key,
                "Content-Type": "application/json",
            },
        )

    def close(self) -> None:
        self._http.close()

    def _request(
        self,
        method: str,
        path: str,
        *,
        master: bool = False,
        params: Optional[dict] = None,
        payload: Any = None,
    ) -> Any:
        headers = {"X-Parse-Master-Key": self._master_key} if master else None
        try:
            response = self._http.request(method, path, params=params, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise ParseError(f"{method} {path}: {exc}") from exc
        try:
            body = response.json() if response.content else {}
        except ValueError:
            body = {}
        if response.status_code >= 400:
            info = body if isinstance(body, dict) else {}
            raise ParseError(
                info.get("error") or response.text or f"HTTP {response.status_code}",
                code=info.get("code"),
                status_code=response.status_code,
            )
        return body

    def find(
        self,
        class_name: str,
        where: Optional[dict] = None,
        *,
        order: Optional[str] = None,
        limit: Optional[int] = None,
        skip: Optional[int] = None,
        master: bool = False,
    ) -> list[dict]:
        params: dict = {}
        if where:
            params["where"] = json.dumps(where)
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = limit
        if skip:
            params["skip"] = skip
        body = self._request("GET", f"classes/{class_name}", params=params, master=master)
        return list(body.get("results") or [])

    def find_all(self, class_name: str, where: Optional[dict] = None, *, master: bool = False) -> list[dict]:
        """Page through every match; Parse caps a single response."""
        results: list[dict] = []
        while True:
            page = self.find(class_name, where, order="objectId", limit=PAGE_SIZE, skip=len(results), master=master)
            results.extend(page)
            if len(page) < PAGE_SIZE:
                return results

    def create(self, class_name: str, data: dict, *, master: bool = False) -> dict:
        return self._request("POST", f"classes/{class_name}", payload=data, master=master)

    def update(self, class_name: str, object_id: str, data: dict, *, master: bool = False) -> dict:
        return self._request("PUT", f"classes/{class_name}/{object_id}", payload=data, master=master)

    def delete(self, class_name: str, object_id: str, *, master: bool = False) -> None:
        try:
            self._request("DELETE", f"classes/{class_name}/{object_id}", master=master)
        except ParseError as exc:
            if exc.code != OBJECT_NOT_FOUND:
                raise

    def batch_delete(self, class_name: str, object_ids: Iterable[str], *, master: bool = False) -> None:
        ids = list(object_ids)
        for start in range(0, len(ids), BATCH_SIZE):
            requests = [
                {"method": "DELETE", "path": f"{self._mount_path}/classes/{class_name}/{object_id}"}
                for object_id in ids[start : start + BATCH_SIZE]
            ]
            results = self._request("POST", "batch", payload={"requests": requests}, master=master)
            for result in results or []:
                error = result.get("error") if isinstance(result, dict) else None
                if error and error.get("code") != OBJECT_NOT_FOUND:
                    raise ParseError(error.get("error") or "batch delete failed", code=error.get("code"))

    def create_class(self, class_name: str, fields: dict, permissions: Optional[dict] = None) -> dict:
        payload: dict = {"className": class_name, "fields": fields}
        if permissions is not None:
            payload["classLevelPermissions"] = permissions
        return self._request("POST", f"schemas/{class_name}", payload=payload, master=True)


def _parse_date(value: Any) -> date:
    if isinstance(value, dict):
        # Parse Date: {"__type": "Date", "iso": "2024-01-01T00:00:00.000Z"}
        value = value.get("iso") or ""
    return date.fromisoformat(str(value)[:10])


def _to_user(obj: dict) -> User:
    return User(id=int(obj["localId"]), username=obj.get("username") or "", password=obj.get("password") or "")


def _to_list(obj: dict) -> ShoppingList:
    return ShoppingList(
        id=int(obj["localId"]),
        user_id=int(obj["userId"]),
        name=obj.get("name") or "",
        date=_parse_date(obj.get("date")),
        description=obj.get("description"),
    )


def _to_item(obj: dict) -> ListItem:
    return ListItem(
        id=int(obj["localId"]),
        list_id=int(obj["listId"]),
        name=obj.get("name") or "",
        price=float(obj.get("price") or 0),
        quantity=int(obj.get("quantity") or 0),
    )


def _encode(changes: dict) -> dict:
    return {key: value.isoformat() if isinstance(value, date) else value for key, value in changes.items()}


class ParseStorage:
    """Storage contract persisted in Parse classes ``User``, ``ShoppingList`` and ``ListItem``."""

    def __init__(self, client: ParseClient, session_ttl_seconds: Optional[int] = None) -> None:
        self.client = client
        self.session_store = MemorySessionStore(session_ttl_seconds)
        self._sequence_ids: dict[str, str] = {}
        self._sequence_lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.BaseTransport] = None) -> "ParseStorage":
        required = {
            "PARSE_APP_ID": settings.parse_app_id,
            "PARSE_CLIENT_KEY": settings.parse_client_key,
            "PARSE_MASTER_KEY": settings.parse_master_key,
        }
        missing = [name for name, value in required.items() if not (value or "").strip()]
        if missing:
            raise RuntimeError(f"{', '.join(missing)} must be configured to use the Parse backend.")
        client = ParseClient(
            settings.parse_server_url,
            settings.parse_app_id,
            settings.parse_client_key,
            settings.parse_master_key,
            timeout=settings.parse_timeout_seconds,
            transport=transport,
        )
        return cls(client, session_ttl_seconds=settings.session_ttl_seconds)

    def close(self) -> None:
        self.client.close()

    # -------------------------- schema --------------------------
    def ensure_schema(self) -> list[str]:
        """Create the classes this backend needs; returns the ones created now."""
        created = []
        for class_name, fields in CLASS_FIELDS.items():
            try:
                self.client.create_class(class_name, fields, CLASS_PERMISSIONS.get(class_name))
            except ParseError as exc:
                if "already exists" in (exc.message or "").lower():
                    logger.info("Parse class %s already exists", class_name)
                    continue
                raise
            logger.info("Created Parse class %s", class_name)
            created.append(class_name)
        return created

    # -------------------------- ids --------------------------
    def _max_local_id(self, class_name: str) -> int:
        master = class_name == USER_CLASS
        rows = self.client.find(class_name, order="-localId", limit=1, master=master)
        return int(rows[0].get("localId") or 0) if rows else 0

    def _oldest_sequence(self, class_name: str) -> Optional[dict]:
        rows = self.client.find(SEQUENCE_CLASS, {"name": class_name}, order="createdAt", limit=1, master=True)
        return rows[0] if rows else None

    def _sequence_object_id(self, class_name: str) -> str:
        with self._sequence_lock:
            cached = self._sequence_ids.get(class_name)
            if cached:
                return cached
            counter = self._oldest_sequence(class_name)
            if counter is None:
                # Semeia com o maior localId existente para manter ids ja emitidos.
                seed = self._max_local_id(class_name)
                self.client.create(SEQUENCE_CLASS, {"name": class_name, "value": seed}, master=True)
                counter = self._oldest_sequence(class_name)
            if counter is None:
                raise ParseError(f"sequence for {class_name} could not be created")
            self._sequence_ids[class_name] = counter["objectId"]
            return counter["objectId"]

    def _next_local_id(self, class_name: str) -> int:
        object_id = self._sequence_object_id(class_name)
        result = self.client.update(
            SEQUENCE_CLASS,
            object_id,
            {"value": {"__op": "Increment", "amount": 1}},
            master=True,
        )
        if "value" not in result:
            raise ParseError(f"increment of {class_name} sequence returned no value")
        return int(result["value"])

    def _first(self, class_name: str, where: dict, *, master: bool = False) -> Optional[dict]:
        rows = self.client.find(class_name, where, limit=1, master=master)
        return rows[0] if rows else None

    # -------------------------- users --------------------------
    def get_user(self, user_id: int) -> Optional[User]:
        try:
            obj = self._first(USER_CLASS, {"localId": user_id}, master=True)
        except ParseError:
            logger.warning("get_user(%s) failed", user_id, exc_info=True)
            return None
        return _to_user(obj) if obj else None

    def get_user_by_username(self, username: str) -> Optional[User]:
        try:
            obj = self._first(USER_CLASS, {"username": username}, master=True)
        except ParseError:
            logger.warning("get_user_by_username(%r) failed", username, exc_info=True)
            return None
        return _to_user(obj) if obj else None

    def create_user(self, data: NewUser) -> User:
        try:
            if self._first(USER_CLASS, {"username": data.username}, master=True):
                raise UsernameTakenError(data.username)
            local_id = self._next_local_id(USER_CLASS)
            self.client.create(
                USER_CLASS,
                {"localId": local_id, "username": data.username, "password": data.password},
                master=True,
            )
        except ParseError as exc:
            raise StoreUnavailableError("create_user", exc.message) from exc
        return User(id=local_id, username=data.username, password=data.password)

    # -------------------------- lists --------------------------
    def get_lists(self, user_id: int) -> list[ShoppingList]:
        try:
            rows = self.client.find_all(LIST_CLASS, {"userId": user_id})
        except ParseError:
            logger.warning("get_lists(%s) failed", user_id, exc_info=True)
            return []
        return [_to_list(row) for row in rows]

    def get_list(self, list_id: int) -> Optional[ShoppingList]:
        try:
            obj = self._first(LIST_CLASS, {"localId": list_id})
        except ParseError:
            logger.warning("get_list(%s) failed", list_id, exc_info=True)
            return None
        return _to_list(obj) if obj else None

    def create_list(self, user_id: int, data: NewList) -> ShoppingList:
        try:
            if self._first(USER_CLASS, {"localId": user_id}, master=True) is None:
                raise ParentNotFoundError("user", user_id)
            local_id = self._next_local_id(LIST_CLASS)
            self.client.create(
                LIST_CLASS,
                {
                    "localId": local_id,
                    "userId": user_id,
                    "name": data.name,
                    "date": data.date.isoformat(),
                    "description": data.description,
                },
            )
        except ParseError as exc:
            raise StoreUnavailableError("create_list", exc.message) from exc
        return ShoppingList(
            id=local_id,
            user_id=user_id,
            name=data.name,
            date=data.date,
            description=data.description,
        )

    def update_list(self, list_id: int, partial: dict) -> Optional[ShoppingList]:
        changes = _encode(patch_fields(partial, MUTABLE_LIST_FIELDS))
        try:
            obj = self._first(LIST_CLASS, {"localId": list_id})
            if obj is None:
                return None
            if changes:
                self.client.update(LIST_CLASS, obj["objectId"], changes)
        except ParseError as exc:
            raise StoreUnavailableError("update_list", exc.message) from exc
        obj.update(changes)
        return _to_list(obj)

    def delete_list(self, list_id: int) -> None:
        # Itens primeiro: uma falha no meio nunca deixa itens orfaos.
        try:
            items = self.client.find_all(ITEM_CLASS, {"listId": list_id})
            self.client.batch_delete(ITEM_CLASS, [item["objectId"] for item in items])
            rows = self.client.find_all(LIST_CLASS, {"localId": list_id})
            for row in rows:
                self.client.delete(LIST_CLASS, row["objectId"])
        except ParseError:
            logger.exception("delete_list(%s) failed", list_id)

    # -------------------------- items --------------------------
    def get_items(self, list_id: int) -> list[ListItem]:
        try:
            rows = self.client.find_all(ITEM_CLASS, {"listId": list_id})
        except ParseError:
            logger.warning("get_items(%s) failed", list_id, exc_info=True)
            return []
        return [_to_item(row) for row in rows]

    def get_item(self, item_id: int) -> Optional[ListItem]:
        try:
            obj = self._first(ITEM_CLASS, {"localId": item_id})
        except ParseError:
            logger.warning("get_item(%s) failed", item_id, exc_info=True)
            return None
        return _to_item(obj) if obj else None

    def create_item(self, list_id: int, data: NewItem) -> ListItem:
        try:
            if self._first(LIST_CLASS, {"localId": list_id}) is None:
                raise ParentNotFoundError("list", list_id)
            local_id = self._next_local_id(ITEM_CLASS)
            self.client.create(
                ITEM_CLASS,
                {
                    "localId": local_id,
                    "listId": list_id,
                    "name": data.name,
                    "price": data.price,
                    "quantity": data.quantity,
                },
            )
        except ParseError as exc:
            raise StoreUnavailableError("create_item", exc.message) from exc
        return ListItem(id=local_id, list_id=list_id, name=data.name, price=data.price, quantity=data.quantity)

    def update_item(self, item_id: int, partial: dict) -> Optional[ListItem]:
        changes = patch_fields(partial, MUTABLE_ITEM_FIELDS)
        try:
            obj = self._first(ITEM_CLASS, {"localId": item_id})
            if obj is None:
                return None
            if changes:
                self.client.update(ITEM_CLASS, obj["objectId"], changes)
        except ParseError as exc:
            raise StoreUnavailableError("update_item", exc.message) from exc
        obj.update(changes)
        return _to_item(obj)

    def delete_item(self, item_id: int) -> None:
        try:
            rows = self.client.find_all(ITEM_CLASS, {"localId": item_id})
            self.client.batch_delete(ITEM_CLASS, [row["objectId"] for row in rows])
        except ParseError:
            logger.exception("delete_item(%s) failed", item_id)
