"""Typed storage failures surfaced to callers."""

from __future__ import annotations


class StorageError(Exception):
    """Base class for storage-level failures surfaced to callers."""


class StoreUnavailableError(StorageError):
    """The backing store could not complete a write."""

    def __init__(self, operation: str, reason: str = ""):
        message = f"{operation} failed" + (f": {reason}" if reason else "")
        super().__init__(message)
        self.operation = operation
        self.reason = reason


class UsernameTakenError(StorageError):
    def __init__(self, username: str):
        super().__init__(f"username already exists: {username}")
        self.username = username


class ParentNotFoundError(StorageError):
    """A list/item was created under a user/list that does not exist."""

    def __init__(self, parent: str, parent_id: int):
        super().__init__(f"{parent} {parent_id} does not exist")
        self.parent = parent
        self.parent_id = parent_id
