"""Volatile in-memory storage with the same contract as the SQLite store.

There is no constraint engine here, so foreign keys, primary keys and
cascades are checked by hand. Each mutation runs without awaiting, so no
caller can observe a half-applied cascade.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable, Iterable, Optional, TypeVar

from bookshelf.library.errors import ConstraintViolation
from bookshelf.library.models import (
    Annotation,
    Book,
    Bookmark,
    Category,
    ReadingProgress,
)

from .base import ReadingTotals, StorageBackend

log = logging.getLogger(__name__)

T = TypeVar("T")


def _newest_first(items: Iterable[T], key: Callable[[T], Any]) -> list[T]:
    # Later insertions win ties, the same as "ORDER BY key DESC, rowid DESC"
    return sorted(reversed(list(items)), key=key, reverse=True)


def _copies(items: Iterable[T]) -> list[T]:
    return [replace(item) for item in items]  # type: ignore[type-var]


class MemoryStorage(StorageBackend):
    NAME = "memory"

    def __init__(self) -> None:
        super().__init__()
        self._books: dict[str, Book] = {}
        self._categories: dict[str, Category] = {}
        self._book_categories: dict[tuple[str, str], None] = {}
        self._bookmarks: dict[str, Bookmark] = {}
        self._annotations: dict[str, Annotation] = {}
        self._progress: dict[str, ReadingProgress] = {}

    async def _open(self) -> None:
        log.info("Library storage initialised (in-memory)")

    async def _close(self) -> None:
        self._books.clear()
        self._categories.clear()
        self._book_categories.clear()
        self._bookmarks.clear()
        self._annotations.clear()
        self._progress.clear()

    # ── Constraint checks ──────────────────────────────────

    def _require_new(self, table: dict, item_id: str, relation: str) -> None:
        if item_id in table:
            raise ConstraintViolation(f"UNIQUE constraint failed: {relation}.id")

    def _require_book(self, book_id: str, relation: str) -> None:
        if book_id not in self._books:
            raise ConstraintViolation(
                f"FOREIGN KEY constraint failed: {relation}.book_id -> books.id"
            )

    # ── Books ──────────────────────────────────────────────

    async def add_book(self, book: Book) -> None:
        self._check_open()
        book = self._validated(book)
        self._require_new(self._books, book.id, "books")
        self._books[book.id] = book

    async def update_book(self, book: Book) -> bool:
        self._check_open()
        book = self._validated(book)
        if book.id not in self._books:
            log.warning("update_book: no book with id %s", book.id)
            return False
        self._books[book.id] = book
        return True

    async def delete_book(self, book_id: str) -> None:
        self._check_open()
        if self._books.pop(book_id, None) is None:
            return
        self._book_categories = {
            pair: None for pair in self._book_categories if pair[0] != book_id
        }
        self._bookmarks = {
            k: v for k, v in self._bookmarks.items() if v.book_id != book_id
        }
        self._annotations = {
            k: v for k, v in self._annotations.items() if v.book_id != book_id
        }
        self._progress = {
            k: v for k, v in self._progress.items() if v.book_id != book_id
        }

    async def get_books(self) -> list[Book]:
        self._check_open()
        return _copies(_newest_first(self._books.values(), lambda b: b.added_at))

    async def get_book_by_id(self, book_id: str) -> Optional[Book]:
        self._check_open()
        book = self._books.get(book_id)
        return replace(book) if book else None

    async def search_books(self, query: str) -> list[Book]:
        self._check_open()
        needle = query.casefold()
        matches = [
            b
            for b in self._books.values()
            if needle in b.title.casefold() or needle in b.author.casefold()
        ]
        matches.sort(key=lambda b: (b.title.casefold(), b.title))
        return _copies(matches)

    async def get_favorite_books(self) -> list[Book]:
        self._check_open()
        favorites = [b for b in self._books.values() if b.is_favorite]
        return _copies(_newest_first(favorites, lambda b: b.added_at))

    async def get_recent_books(self, limit: int) -> list[Book]:
        self._check_open()
        read = [b for b in self._books.values() if b.last_read_at is not None]
        return _copies(_newest_first(read, lambda b: b.last_read_at)[: max(0, limit)])

    # ── Categories ─────────────────────────────────────────

    async def add_category(self, category: Category) -> None:
        self._check_open()
        category = self._validated(category)
        self._require_new(self._categories, category.id, "categories")
        self._categories[category.id] = category

    async def get_categories(self) -> list[Category]:
        self._check_open()
        return _copies(sorted(self._categories.values(), key=lambda c: c.sort_order))

    async def delete_category(self, category_id: str) -> None:
        self._check_open()
        if self._categories.pop(category_id, None) is None:
            return
        self._book_categories = {
            pair: None for pair in self._book_categories if pair[1] != category_id
        }

    async def add_book_to_category(self, book_id: str, category_id: str) -> None:
        self._check_open()
        self._require_book(book_id, "book_categories")
        if category_id not in self._categories:
            raise ConstraintViolation(
                "FOREIGN KEY constraint failed: "
                "book_categories.category_id -> categories.id"
            )
        self._book_categories.setdefault((book_id, category_id), None)

    async def remove_book_from_category(self, book_id: str, category_id: str) -> None:
        self._check_open()
        self._book_categories.pop((book_id, category_id), None)

    async def get_books_by_category(self, category_id: str) -> list[Book]:
        self._check_open()
        member_ids = {b for b, c in self._book_categories if c == category_id}
        members = [b for b in self._books.values() if b.id in member_ids]
        return _copies(_newest_first(members, lambda b: b.added_at))

    async def get_categories_for_book(self, book_id: str) -> list[Category]:
        self._check_open()
        category_ids = {c for b, c in self._book_categories if b == book_id}
        found = [c for c in self._categories.values() if c.id in category_ids]
        return _copies(sorted(found, key=lambda c: c.sort_order))

    # ── Bookmarks ──────────────────────────────────────────

    async def add_bookmark(self, bookmark: Bookmark) -> None:
        self._check_open()
        bookmark = self._validated(bookmark)
        self._require_new(self._bookmarks, bookmark.id, "bookmarks")
        self._require_book(bookmark.book_id, "bookmarks")
        self._bookmarks[bookmark.id] = bookmark

    async def get_bookmarks_by_book(self, book_id: str) -> list[Bookmark]:
        self._check_open()
        found = [b for b in self._bookmarks.values() if b.book_id == book_id]
        return _copies(_newest_first(found, lambda b: b.created_at))

    async def delete_bookmark(self, bookmark_id: str) -> None:
        self._check_open()
        self._bookmarks.pop(bookmark_id, None)

    # ── Annotations ────────────────────────────────────────

    async def add_annotation(self, annotation: Annotation) -> None:
        self._check_open()
        annotation = self._validated(annotation)
        self._require_new(self._annotations, annotation.id, "annotations")
        self._require_book(annotation.book_id, "annotations")
        self._annotations[annotation.id] = annotation

    async def get_annotations_by_book(self, book_id: str) -> list[Annotation]:
        self._check_open()
        found = [a for a in self._annotations.values() if a.book_id == book_id]
        return _copies(_newest_first(found, lambda a: a.created_at))

    async def delete_annotation(self, annotation_id: str) -> None:
        self._check_open()
        self._annotations.pop(annotation_id, None)

    # ── Reading Progress ───────────────────────────────────

    async def add_reading_progress(self, progress: ReadingProgress) -> None:
        self._check_open()
        progress = self._validated(progress)
        self._require_new(self._progress, progress.id, "reading_progress")
        self._require_book(progress.book_id, "reading_progress")
        self._progress[progress.id] = progress

    async def get_reading_progress_by_book(self, book_id: str) -> list[ReadingProgress]:
        self._check_open()
        found = [p for p in self._progress.values() if p.book_id == book_id]
        return _copies(_newest_first(found, lambda p: p.date))

    async def get_all_reading_progress(self) -> list[ReadingProgress]:
        self._check_open()
        return _copies(_newest_first(self._progress.values(), lambda p: p.date))

    async def get_total_reading_stats(self) -> ReadingTotals:
        self._check_open()
        return ReadingTotals(
            total_time=sum(p.time_spent for p in self._progress.values()),
            total_pages=sum(p.pages_read for p in self._progress.values()),
        )
