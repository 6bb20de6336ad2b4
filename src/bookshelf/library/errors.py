"""Library error taxonomy."""

from __future__ import annotations


class LibraryError(Exception):
    """Base class for errors raised by the library core."""


class StorageUnavailable(LibraryError):
    """The storage backend was never initialised or has been closed."""


class NotFound(LibraryError):
    """No row exists for the requested id."""

    def __init__(self, kind: str, item_id: str) -> None:
        super().__init__(f"{kind} not found: {item_id}")
        self.kind = kind
        self.item_id = item_id


class ConstraintViolation(LibraryError):
    """A write would break a foreign-key or uniqueness constraint."""


class IOFailure(LibraryError):
    """An underlying file or connection error. The cause is chained."""
