"""Storage contract shared by every backend, plus its typed failures."""

from __future__ import annotations

from typing import Optional, Protocol

from shoplist.domain import ListItem, NewItem, NewList, NewUser, ShoppingList, User
from shoplist.repositories.errors import (  # noqa: F401
    ParentNotFoundError,
    StorageError,
    StoreUnavailableError,
    UsernameTakenError,
)
from shoplist.services.session_service import SessionStore


class Storage(Protocol):
    """
    Operations every backend provides.

    Reads signal "not found" with ``None`` / ``[]``; updates ignore keys that
    are not patchable and return ``None`` for a missing id; deletes are
    idempotent; ``delete_list`` also removes the list's items.
    ``create_list``/``create_item`` raise ``ParentNotFoundError`` when the
    owning user/list does not exist.
    """

    session_store: SessionStore

    def get_user(self, user_id: int) -> Optional[User]:
        ...

    def get_user_by_username(self, username: str) -> Optional[User]:
        ...

    def create_user(self, data: NewUser) -> User:
        ...

    def get_lists(self, user_id: int) -> list[ShoppingList]:
        ...

    def get_list(self, list_id: int) -> Optional[ShoppingList]:
        ...

    def create_list(self, user_id: int, data: NewList) -> ShoppingList:
        ...

    def update_list(self, list_id: int, partial: dict) -> Optional[ShoppingList]:
        ...

    def delete_list(self, list_id: int) -> None:
        ...

    def get_items(self, list_id: int) -> list[ListItem]:
        ...

    def get_item(self, item_id: int) -> Optional[ListItem]:
        ...

    def create_item(self, list_id: int, data: NewItem) -> ListItem:
        ...

    def update_item(self, item_id: int, partial: dict) -> Optional[ListItem]:
        ...

    def delete_item(self, item_id: int) -> None:
        ...
