"""
Process-local storage backend.

Three dicts keyed by integer id with one counter each. A single lock covers
id assignment plus insert and the list/items cascade, because FastAPI runs
sync endpoints on a thread pool.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from typing import Optional

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
from shoplist.repositories.errors import ParentNotFoundError, UsernameTakenError
from shoplist.services.session_service import MemorySessionStore


class MemStorage:
    """Reference implementation of the storage contract."""

    def __init__(self, session_ttl_seconds: Optional[int] = None) -> None:
        self._lock = threading.Lock()
        self.session_store = MemorySessionStore(session_ttl_seconds)
        self.reset()

    def reset(self) -> None:
        """Drop every user, list, item and session (used by tests)."""
        with self._lock:
            self._users: dict[int, User] = {}
            self._lists: dict[int, ShoppingList] = {}
            self._items: dict[int, ListItem] = {}
            self._next_user_id = 1
            self._next_list_id = 1
            self._next_item_id = 1
        self.session_store.clear()

    # -------------------------- users --------------------------
    def get_user(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._lock:
            users = list(self._users.values())
        return next((user for user in users if user.username == username), None)

    def create_user(self, data: NewUser) -> User:
        with self._lock:
            if any(user.username == data.username for user in self._users.values()):
                raise UsernameTakenError(data.username)
            user = User(id=self._next_user_id, username=data.username, password=data.password)
            self._next_user_id += 1
            self._users[user.id] = user
        return user

    # -------------------------- lists --------------------------
    def get_lists(self, user_id: int) -> list[ShoppingList]:
        with self._lock:
            return [entry for entry in self._lists.values() if entry.user_id == user_id]

    def get_list(self, list_id: int) -> Optional[ShoppingList]:
        return self._lists.get(list_id)

    def create_list(self, user_id: int, data: NewList) -> ShoppingList:
        with self._lock:
            if user_id not in self._users:
                raise ParentNotFoundError("user", user_id)
            entry = ShoppingList(
                id=self._next_list_id,
                user_id=user_id,
                name=data.name,
                date=data.date,
                description=data.description,
            )
            self._next_list_id += 1
            self._lists[entry.id] = entry
        return entry

    def update_list(self, list_id: int, partial: dict) -> Optional[ShoppingList]:
        changes = patch_fields(partial, MUTABLE_LIST_FIELDS)
        with self._lock:
            existing = self._lists.get(list_id)
            if existing is None:
                return None
            updated = replace(existing, **changes)
            self._lists[list_id] = updated
        return updated

    def delete_list(self, list_id: int) -> None:
        with self._lock:
            self._lists.pop(list_id, None)
            orphaned = [item_id for item_id, item in self._items.items() if item.list_id == list_id]
            for item_id in orphaned:
                del self._items[item_id]

    # -------------------------- items --------------------------
    def get_items(self, list_id: int) -> list[ListItem]:
        with self._lock:
            return [item for item in self._items.values() if item.list_id == list_id]

    def get_item(self, item_id: int) -> Optional[ListItem]:
        return self._items.get(item_id)

    def create_item(self, list_id: int, data: NewItem) -> ListItem:
        with self._lock:
            if list_id not in self._lists:
                raise ParentNotFoundError("list", list_id)
            item = ListItem(
                id=self._next_item_id,
                list_id=list_id,
                name=data.name,
                price=data.price,
                quantity=data.quantity,
            )
            self._next_item_id += 1
            self._items[item.id] = item
        return item

    def update_item(self, item_id: int, partial: dict) -> Optional[ListItem]:
        changes = patch_fields(partial, MUTABLE_ITEM_FIELDS)
        with self._lock:
            existing = self._items.get(item_id)
            if existing is None:
                return None
            updated = replace(existing, **changes)
            self._items[item_id] = updated
        return updated

    def delete_item(self, item_id: int) -> None:
        with self._lock:
            self._items.pop(item_id, None)
