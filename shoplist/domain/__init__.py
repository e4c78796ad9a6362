"""Framework-free domain types (entities, insert payloads, totals)."""

from .entities import (
    ListItem,
    MUTABLE_ITEM_FIELDS,
    MUTABLE_LIST_FIELDS,
    NewItem,
    NewList,
    NewUser,
    ShoppingList,
    User,
    items_total,
    patch_fields,
)

__all__ = [
    "ListItem",
    "MUTABLE_ITEM_FIELDS",
    "MUTABLE_LIST_FIELDS",
    "NewItem",
    "NewList",
    "NewUser",
    "ShoppingList",
    "User",
    "items_total",
    "patch_fields",
]
