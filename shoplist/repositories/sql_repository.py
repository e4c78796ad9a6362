"""High-level data access helpers backed by SQLAlchemy."""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from shoplist.db import models
from shoplist.db.session import get_session
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
from shoplist.services.session_service import SQLSessionStore

logger = logging.getLogger(__name__)


def _to_user(row: models.User) -> User:
    return User(id=row.id, username=row.username, password=row.password)


def _to_list(row: models.ShoppingList) -> ShoppingList:
    return ShoppingList(
        id=row.id,
        user_id=row.user_id,
        name=row.name,
        date=row.date,
        description=row.description,
    )


def _to_item(row: models.ListItem) -> ListItem:
    return ListItem(
        id=row.id,
        list_id=row.list_id,
        name=row.name,
        price=float(row.price),
        quantity=int(row.quantity),
    )


class SQLRepository:
    """Storage contract over the SQLAlchemy session; ids come from the database."""

    def __init__(self, session_ttl_seconds: Optional[int] = None) -> None:
        self.session_store = SQLSessionStore(session_ttl_seconds)

    # -------------------------- users --------------------------
    def get_user(self, user_id: int) -> Optional[User]:
        try:
            with get_session() as session:
                row = session.get(models.User, user_id)
                return _to_user(row) if row else None
        except SQLAlchemyError:
            logger.warning("get_user(%s) failed", user_id, exc_info=True)
            return None

    def get_user_by_username(self, username: str) -> Optional[User]:
        try:
            with get_session() as session:
                stmt = select(models.User).where(models.User.username == username)
                row = session.execute(stmt).scalar_one_or_none()
                return _to_user(row) if row else None
        except SQLAlchemyError:
            logger.warning("get_user_by_username(%r) failed", username, exc_info=True)
            return None

    def create_user(self, data: NewUser) -> User:
        entity = models.User(username=data.username, password=data.password)
        try:
            with get_session() as session:
                session.add(entity)
                session.commit()
                session.refresh(entity)
                return _to_user(entity)
        except IntegrityError as exc:
            raise UsernameTakenError(data.username) from exc
        except SQLAlchemyError as exc:
            raise StoreUnavailableError("create_user", str(exc)) from exc

    # -------------------------- lists --------------------------
    def get_lists(self, user_id: int) -> list[ShoppingList]:
        try:
            with get_session() as session:
                stmt = select(models.ShoppingList).where(models.ShoppingList.user_id == user_id)
                return [_to_list(row) for row in session.execute(stmt).scalars().all()]
        except SQLAlchemyError:
            logger.warning("get_lists(%s) failed", user_id, exc_info=True)
            return []

    def get_list(self, list_id: int) -> Optional[ShoppingList]:
        try:
            with get_session() as session:
                row = session.get(models.ShoppingList, list_id)
                return _to_list(row) if row else None
        except SQLAlchemyError:
            logger.warning("get_list(%s) failed", list_id, exc_info=True)
            return None

    def create_list(self, user_id: int, data: NewList) -> ShoppingList:
        entity = models.ShoppingList(
            user_id=user_id,
            name=data.name,
            date=data.date,
            description=data.description,
        )
        try:
            with get_session() as session:
                if session.get(models.User, user_id) is None:
                    raise ParentNotFoundError("user", user_id)
                session.add(entity)
                session.commit()
                session.refresh(entity)
                return _to_list(entity)
        except IntegrityError as exc:
            # FK rejeitada quando o usuario some entre a checagem e o commit
            raise ParentNotFoundError("user", user_id) from exc
        except SQLAlchemyError as exc:
            raise StoreUnavailableError("create_list", str(exc)) from exc

    def update_list(self, list_id: int, partial: dict) -> Optional[ShoppingList]:
        changes = patch_fields(partial, MUTABLE_LIST_FIELDS)
        try:
            with get_session() as session:
                row = session.get(models.ShoppingList, list_id)
                if not row:
                    return None
                for key, value in changes.items():
                    setattr(row, key, value)
                session.commit()
                session.refresh(row)
                return _to_list(row)
        except SQLAlchemyError as exc:
            raise StoreUnavailableError("update_list", str(exc)) from exc

    def delete_list(self, list_id: int) -> None:
        # Items e lista saem na mesma transacao.
        try:
            with get_session() as session:
                session.execute(delete(models.ListItem).where(models.ListItem.list_id == list_id))
                session.execute(delete(models.ShoppingList).where(models.ShoppingList.id == list_id))
                session.commit()
        except SQLAlchemyError:
            logger.exception("delete_list(%s) failed", list_id)

    # -------------------------- items --------------------------
    def get_items(self, list_id: int) -> list[ListItem]:
        try:
            with get_session() as session:
                stmt = select(models.ListItem).where(models.ListItem.list_id == list_id)
                return [_to_item(row) for row in session.execute(stmt).scalars().all()]
        except SQLAlchemyError:
            logger.warning("get_items(%s) failed", list_id, exc_info=True)
            return []

    def get_item(self, item_id: int) -> Optional[ListItem]:
        try:
            with get_session() as session:
                row = session.get(models.ListItem, item_id)
                return _to_item(row) if row else None
        except SQLAlchemyError:
            logger.warning("get_item(%s) failed", item_id, exc_info=True)
            return None

    def create_item(self, list_id: int, data: NewItem) -> ListItem:
        entity = models.ListItem(
            list_id=list_id,
            name=data.name,
            price=data.price,
            quantity=data.quantity,
        )
        try:
            with get_session() as session:
                if session.get(models.ShoppingList, list_id) is None:
                    raise ParentNotFoundError("list", list_id)
                session.add(entity)
                session.commit()
                session.refresh(entity)
                return _to_item(entity)
        except IntegrityError as exc:
            raise ParentNotFoundError("list", list_id) from exc
        except SQLAlchemyError as exc:
            raise StoreUnavailableError("create_item", str(exc)) from exc

    def update_item(self, item_id: int, partial: dict) -> Optional[ListItem]:
        changes = patch_fields(partial, MUTABLE_ITEM_FIELDS)
        try:
            with get_session() as session:
                row = session.get(models.ListItem, item_id)
                if not row:
                    return None
                for key, value in changes.items():
                    setattr(row, key, value)
                session.commit()
                session.refresh(row)
                return _to_item(row)
        except SQLAlchemyError as exc:
            raise StoreUnavailableError("update_item", str(exc)) from exc

    def delete_item(self, item_id: int) -> None:
        try:
            with get_session() as session:
                session.execute(delete(models.ListItem).where(models.ListItem.id == item_id))
                session.commit()
        except SQLAlchemyError:
            logger.exception("delete_item(%s) failed", item_id)
