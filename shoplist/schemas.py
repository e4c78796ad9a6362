"""
Pydantic schemas for the HTTP surface.

Responses use camelCase keys (``userId``, ``listId``) to match what the web
client reads; request bodies only check shape.
"""

from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from shoplist.domain import NewItem, NewList


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Credentials(BaseModel):
    username: str = Field(..., min_length=1, max_length=128)
    password: str = Field(..., min_length=1, max_length=256)


class ListCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    date: dt.date
    description: Optional[str] = None

    def to_new_list(self) -> NewList:
        return NewList(name=self.name, date=self.date, description=self.description)


class ListUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    date: Optional[dt.date] = None
    description: Optional[str] = None

    def changes(self) -> dict:
        """Fields the client actually sent; only ``description`` may be cleared with null."""
        sent = self.model_dump(exclude_unset=True)
        return {k: v for k, v in sent.items() if v is not None or k == "description"}


class ItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    price: float = Field(..., ge=0)
    quantity: int = Field(..., ge=1)

    def to_new_item(self) -> NewItem:
        return NewItem(name=self.name, price=self.price, quantity=self.quantity)


class ItemUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    price: Optional[float] = Field(default=None, ge=0)
    quantity: Optional[int] = Field(default=None, ge=1)

    def changes(self) -> dict:
        sent = self.model_dump(exclude_unset=True)
        return {k: v for k, v in sent.items() if v is not None}


class UserOut(_CamelModel):
    id: int
    username: str


class ShoppingListOut(_CamelModel):
    id: int
    user_id: int
    name: str
    date: dt.date
    description: Optional[str] = None


class ListItemOut(_CamelModel):
    id: int
    list_id: int
    name: str
    price: float
    quantity: int
