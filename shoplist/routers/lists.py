from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from shoplist.dependencies import get_storage, require_user
from shoplist.domain import ListItem, ShoppingList, User
from shoplist.repositories.base import Storage
from shoplist.schemas import (
    ItemCreate,
    ItemUpdate,
    ListCreate,
    ListItemOut,
    ListUpdate,
    ShoppingListOut,
)

router = APIRouter(prefix="/api/lists", tags=["lists"])


def _owned_list(list_id: int, user: User, storage: Storage) -> ShoppingList:
    shopping_list = storage.get_list(list_id)
    if not shopping_list:
        raise HTTPException(404, "Lista nao encontrada")
    if shopping_list.user_id != user.id:
        raise HTTPException(403, "Acesso negado")
    return shopping_list


def _list_item(shopping_list: ShoppingList, item_id: int, storage: Storage) -> ListItem:
    item = storage.get_item(item_id)
    if not item or item.list_id != shopping_list.id:
        raise HTTPException(404, "Item nao encontrado")
    return item


@router.get("", response_model=list[ShoppingListOut])
def get_lists(user: User = Depends(require_user), storage: Storage = Depends(get_storage)):
    return storage.get_lists(user.id)


@router.post("", response_model=ShoppingListOut, status_code=201)
def create_list(payload: ListCreate, user: User = Depends(require_user), storage: Storage = Depends(get_storage)):
    return storage.create_list(user.id, payload.to_new_list())


@router.patch("/{list_id}", response_model=ShoppingListOut)
def update_list(
    list_id: int,
    payload: ListUpdate,
    user: User = Depends(require_user),
    storage: Storage = Depends(get_storage),
):
    _owned_list(list_id, user, storage)
    updated = storage.update_list(list_id, payload.changes())
    if not updated:
        raise HTTPException(404, "Lista nao encontrada")
    return updated


@router.delete("/{list_id}")
def delete_list(list_id: int, user: User = Depends(require_user), storage: Storage = Depends(get_storage)):
    _owned_list(list_id, user, storage)
    storage.delete_list(list_id)
    return {"ok": True}


@router.get("/{list_id}/items", response_model=list[ListItemOut])
def get_items(list_id: int, user: User = Depends(require_user), storage: Storage = Depends(get_storage)):
    _owned_list(list_id, user, storage)
    return storage.get_items(list_id)


@router.post("/{list_id}/items", response_model=ListItemOut, status_code=201)
def create_item(
    list_id: int,
    payload: ItemCreate,
    user: User = Depends(require_user),
    storage: Storage = Depends(get_storage),
):
    _owned_list(list_id, user, storage)
    return storage.create_item(list_id, payload.to_new_item())


@router.patch("/{list_id}/items/{item_id}", response_model=ListItemOut)
def update_item(
    list_id: int,
    item_id: int,
    payload: ItemUpdate,
    user: User = Depends(require_user),
    storage: Storage = Depends(get_storage),
):
    shopping_list = _owned_list(list_id, user, storage)
    _list_item(shopping_list, item_id, storage)
    updated = storage.update_item(item_id, payload.changes())
    if not updated:
        raise HTTPException(404, "Item nao encontrado")
    return updated


@router.delete("/{list_id}/items/{item_id}")
def delete_item(
    list_id: int,
    item_id: int,
    user: User = Depends(require_user),
    storage: Storage = Depends(get_storage),
):
    shopping_list = _owned_list(list_id, user, storage)
    _list_item(shopping_list, item_id, storage)
    storage.delete_item(item_id)
    return {"ok": True}
