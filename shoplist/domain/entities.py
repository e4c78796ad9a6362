"""
Entities shared by every storage backend.

Values are frozen; stores build a new instance when a patch is applied.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Mapping, Optional

MUTABLE_LIST_FIELDS = frozenset({"name", "date", "description"})
MUTABLE_ITEM_FIELDS = frozenset({"name", "price", "quantity"})


@dataclass(frozen=True)
class User:
    id: int
    username: str
    password: str


@dataclass(frozen=True)
class ShoppingList:
    id: int
    user_id: int
    name: str
    date: date
    description: Optional[str] = None


@dataclass(frozen=True)
class ListItem:
    id: int
    list_id: int
    name: str
    price: float
    quantity: int


@dataclass(frozen=True)
class NewUser:
    username: str
    password: str


@dataclass(frozen=True)
class NewList:
    name: str
    date: date
    description: Optional[str] = None


@dataclass(frozen=True)
class NewItem:
    name: str
    price: float
    quantity: int


def patch_fields(partial: Mapping | None, allowed: frozenset) -> dict:
    """Keep only the keys a patch may overwrite; identity/FK keys are dropped."""
    return {key: value for key, value in (partial or {}).items() if key in allowed}


def items_total(items: Iterable[ListItem]) -> float:
    """Sum of price * quantity, rounded to cents (what the list page shows)."""
    return round(sum(item.price * item.quantity for item in items), 2)
