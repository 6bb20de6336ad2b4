"""Storage backend interface shared by the durable and in-memory stores."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any, Optional, TypeVar

from bookshelf.library.errors import NotFound, StorageUnavailable
from bookshelf.library.models import (
    Annotation,
    Book,
    Bookmark,
    Category,
    ReadingProgress,
)

E = TypeVar("E")


@dataclass(frozen=True)
class ReadingTotals:
    total_time: int = 0  # minutes
    total_pages: int = 0


class StorageBackend(ABC):
    """Abstract CRUD store for the six library relations.

    Every operation raises StorageUnavailable before ``init()`` or after
    ``close()``. Writes referencing a missing parent, or reusing an existing
    primary key, raise ConstraintViolation. An entity that fails its own
    validation raises ValueError in every backend, and nothing is written.
    """

    NAME: str = ""

    def __init__(self) -> None:
        self._opened = False
        self._closed = False

    @property
    def is_open(self) -> bool:
        return self._opened and not self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise StorageUnavailable(f"{self.NAME} storage has been closed")
        if not self._opened:
            raise StorageUnavailable(f"{self.NAME} storage is not initialised")

    @staticmethod
    def _validated(entity: E) -> E:
        """Copy an entity, re-running the checks in its __post_init__.

        Entities are mutable, so a value changed after construction is only
        caught here. Raises ValueError before anything is written.
        """
        return replace(entity)  # type: ignore[type-var]

    async def init(self) -> None:
        """Open the store and apply the schema. A second call is a no-op."""
        if self._closed:
            raise StorageUnavailable(f"{self.NAME} storage has been closed")
        if self._opened:
            return
        await self._open()
        self._opened = True

    async def close(self) -> None:
        if self._opened and not self._closed:
            await self._close()
        self._closed = True

    async def __aenter__(self) -> StorageBackend:
        await self.init()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @abstractmethod
    async def _open(self) -> None: ...

    @abstractmethod
    async def _close(self) -> None: ...

    # ── Books ──────────────────────────────────────────────

    @abstractmethod
    async def add_book(self, book: Book) -> None: ...

    @abstractmethod
    async def update_book(self, book: Book) -> bool:
        """Replace the stored row with the same id.

        Returns False, without inserting, when no such book exists.
        """

    @abstractmethod
    async def delete_book(self, book_id: str) -> None:
        """Delete a book and every row it owns."""

    @abstractmethod
    async def get_books(self) -> list[Book]:
        """All books, newest import first."""

    @abstractmethod
    async def get_book_by_id(self, book_id: str) -> Optional[Book]: ...

    @abstractmethod
    async def search_books(self, query: str) -> list[Book]:
        """Case-insensitive substring match on title or author, by title."""

    @abstractmethod
    async def get_favorite_books(self) -> list[Book]: ...

    @abstractmethod
    async def get_recent_books(self, limit: int) -> list[Book]:
        """Books with a last_read_at, most recently read first."""

    async def require_book(self, book_id: str) -> Book:
        book = await self.get_book_by_id(book_id)
        if book is None:
            raise NotFound("Book", book_id)
        return book

    # ── Categories ─────────────────────────────────────────

    @abstractmethod
    async def add_category(self, category: Category) -> None: ...

    @abstractmethod
    async def get_categories(self) -> list[Category]:
        """All categories by sort_order."""

    @abstractmethod
    async def delete_category(self, category_id: str) -> None: ...

    @abstractmethod
    async def add_book_to_category(self, book_id: str, category_id: str) -> None:
        """Add a membership row. Adding an existing pair is a no-op."""

    @abstractmethod
    async def remove_book_from_category(
        self, book_id: str, category_id: str
    ) -> None: ...

    @abstractmethod
    async def get_books_by_category(self, category_id: str) -> list[Book]: ...

    @abstractmethod
    async def get_categories_for_book(self, book_id: str) -> list[Category]: ...

    # ── Bookmarks ──────────────────────────────────────────

    @abstractmethod
    async def add_bookmark(self, bookmark: Bookmark) -> None: ...

    @abstractmethod
    async def get_bookmarks_by_book(self, book_id: str) -> list[Bookmark]:
        """Bookmarks of one book, most recent first."""

    @abstractmethod
    async def delete_bookmark(self, bookmark_id: str) -> None: ...

    # ── Annotations ────────────────────────────────────────

    @abstractmethod
    async def add_annotation(self, annotation: Annotation) -> None: ...

    @abstractmethod
    async def get_annotations_by_book(self, book_id: str) -> list[Annotation]: ...

    @abstractmethod
    async def delete_annotation(self, annotation_id: str) -> None: ...

    # ── Reading Progress ───────────────────────────────────

    @abstractmethod
    async def add_reading_progress(self, progress: ReadingProgress) -> None: ...

    @abstractmethod
    async def get_reading_progress_by_book(
        self, book_id: str
    ) -> list[ReadingProgress]: ...

    @abstractmethod
    async def get_all_reading_progress(self) -> list[ReadingProgress]: ...

    @abstractmethod
    async def get_total_reading_stats(self) -> ReadingTotals: ...


def create_backend(name: str, **kwargs: Any) -> StorageBackend:
    """Return a new, uninitialised backend by name."""
    from bookshelf.library.storage.memory_backend import MemoryStorage
    from bookshelf.library.storage.sqlite_backend import SqliteStorage

    backends: list[type[StorageBackend]] = [SqliteStorage, MemoryStorage]
    for backend_cls in backends:
        if backend_cls.NAME == name:
            return backend_cls(**kwargs)

    raise ValueError(
        f"Unknown storage backend: {name}. "
        f"Available: {', '.join(b.NAME for b in backends)}"
    )
