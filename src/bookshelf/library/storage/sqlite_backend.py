"""Durable storage on SQLite via aiosqlite."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Callable, Optional, TypeVar, Union

import aiosqlite

from bookshelf.library.errors import ConstraintViolation, IOFailure
from bookshelf.library.models import (
    Annotation,
    Book,
    Bookmark,
    Category,
    ReadingProgress,
    to_millis,
)
from bookshelf.library.schema import COLUMNS, apply_schema

from .base import ReadingTotals, StorageBackend
from .rows import (
    book_to_params,
    row_to_annotation,
    row_to_book,
    row_to_bookmark,
    row_to_category,
    row_to_progress,
)

log = logging.getLogger(__name__)

T = TypeVar("T")


def _casefold(value: Optional[str]) -> Optional[str]:
    return value.casefold() if value is not None else None


_BOOK_COLUMNS = ", ".join(COLUMNS["books"])
_BOOK_PLACEHOLDERS = ", ".join("?" for _ in COLUMNS["books"])


class SqliteStorage(StorageBackend):
    NAME = "sqlite"

    def __init__(self, db_path: Union[Path, str] = ":memory:") -> None:
        super().__init__()
        self._db_path = str(db_path)
        self._conn: Optional[aiosqlite.Connection] = None

    async def _open(self) -> None:
        try:
            self._conn = await aiosqlite.connect(self._db_path)
            self._conn.row_factory = sqlite3.Row
            if self._db_path != ":memory:":
                await self._conn.execute("PRAGMA journal_mode=WAL")
            await self._conn.execute("PRAGMA foreign_keys=ON")
            await self._conn.create_function(
                "casefold", 1, _casefold, deterministic=True
            )
            await apply_schema(self._conn)
        except sqlite3.Error as exc:
            if self._conn is not None:
                await self._conn.close()
                self._conn = None
            raise IOFailure(f"Cannot open database {self._db_path}: {exc}") from exc
        log.info("Opened library database %s", self._db_path)

    async def _close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
        log.info("Closed library database %s", self._db_path)

    # ── Helpers ────────────────────────────────────────────

    @property
    def _db(self) -> aiosqlite.Connection:
        self._check_open()
        assert self._conn is not None
        return self._conn

    async def _write(self, sql: str, params: tuple = ()) -> int:
        db = self._db
        try:
            cursor = await db.execute(sql, params)
            await db.commit()
        except sqlite3.IntegrityError as exc:
            await db.rollback()
            raise ConstraintViolation(str(exc)) from exc
        except sqlite3.Error as exc:
            raise IOFailure(str(exc)) from exc
        return cursor.rowcount

    async def _fetch_all(
        self, sql: str, params: tuple, mapper: Callable[[sqlite3.Row], T]
    ) -> list[T]:
        try:
            async with self._db.execute(sql, params) as cursor:
                rows = await cursor.fetchall()
        except sqlite3.Error as exc:
            raise IOFailure(str(exc)) from exc
        return [mapper(r) for r in rows]

    async def _fetch_one(self, sql: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        try:
            async with self._db.execute(sql, params) as cursor:
                return await cursor.fetchone()
        except sqlite3.Error as exc:
            raise IOFailure(str(exc)) from exc

    # ── Books ──────────────────────────────────────────────

    async def add_book(self, book: Book) -> None:
        self._check_open()
        book = self._validated(book)
        await self._write(
            f"INSERT INTO books ({_BOOK_COLUMNS}) VALUES ({_BOOK_PLACEHOLDERS})",
            book_to_params(book),
        )

    async def update_book(self, book: Book) -> bool:
        self._check_open()
        book = self._validated(book)
        params = book_to_params(book)
        changed = await self._write(
            """UPDATE books SET title = ?, author = ?, description = ?, file_path = ?,
               file_type = ?, cover_image = ?, added_at = ?, last_read_at = ?,
               total_pages = ?, current_page = ?, current_cfi = ?, reading_time = ?,
               is_favorite = ?
               WHERE id = ?""",
            params[1:] + params[:1],
        )
        if not changed:
            log.warning("update_book: no book with id %s", book.id)
        return changed > 0

    async def delete_book(self, book_id: str) -> None:
        # children go with the parent through ON DELETE CASCADE
        await self._write("DELETE FROM books WHERE id = ?", (book_id,))

    async def get_books(self) -> list[Book]:
        return await self._fetch_all(
            "SELECT * FROM books ORDER BY added_at DESC, rowid DESC",
            (),
            row_to_book,
        )

    async def get_book_by_id(self, book_id: str) -> Optional[Book]:
        row = await self._fetch_one("SELECT * FROM books WHERE id = ?", (book_id,))
        return row_to_book(row) if row else None

    async def search_books(self, query: str) -> list[Book]:
        needle = query.casefold()
        return await self._fetch_all(
            """SELECT * FROM books
               WHERE instr(casefold(title), ?) > 0 OR instr(casefold(author), ?) > 0
               ORDER BY casefold(title) ASC, title ASC, rowid ASC""",
            (needle, needle),
            row_to_book,
        )

    async def get_favorite_books(self) -> list[Book]:
        return await self._fetch_all(
            """SELECT * FROM books WHERE is_favorite = 1
               ORDER BY added_at DESC, rowid DESC""",
            (),
            row_to_book,
        )

    async def get_recent_books(self, limit: int) -> list[Book]:
        return await self._fetch_all(
            """SELECT * FROM books WHERE last_read_at IS NOT NULL
               ORDER BY last_read_at DESC, rowid DESC LIMIT ?""",
            (max(0, limit),),
            row_to_book,
        )

    # ── Categories ─────────────────────────────────────────

    async def add_category(self, category: Category) -> None:
        self._check_open()
        category = self._validated(category)
        await self._write(
            "INSERT INTO categories (id, name, color, sort_order) VALUES (?, ?, ?, ?)",
            (category.id, category.name, category.color, category.sort_order),
        )

    async def get_categories(self) -> list[Category]:
        return await self._fetch_all(
            "SELECT * FROM categories ORDER BY sort_order ASC, rowid ASC",
            (),
            row_to_category,
        )

    async def delete_category(self, category_id: str) -> None:
        await self._write("DELETE FROM categories WHERE id = ?", (category_id,))

    async def add_book_to_category(self, book_id: str, category_id: str) -> None:
        # OR IGNORE covers the duplicate pair only; foreign keys are still checked
        await self._write(
            """INSERT OR IGNORE INTO book_categories (book_id, category_id)
               VALUES (?, ?)""",
            (book_id, category_id),
        )

    async def remove_book_from_category(self, book_id: str, category_id: str) -> None:
        await self._write(
            "DELETE FROM book_categories WHERE book_id = ? AND category_id = ?",
            (book_id, category_id),
        )

    async def get_books_by_category(self, category_id: str) -> list[Book]:
        return await self._fetch_all(
            """SELECT b.* FROM books b
               INNER JOIN book_categories bc ON b.id = bc.book_id
               WHERE bc.category_id = ?
               ORDER BY b.added_at DESC, b.rowid DESC""",
            (category_id,),
            row_to_book,
        )

    async def get_categories_for_book(self, book_id: str) -> list[Category]:
        return await self._fetch_all(
            """SELECT c.* FROM categories c
               INNER JOIN book_categories bc ON c.id = bc.category_id
               WHERE bc.book_id = ?
               ORDER BY c.sort_order ASC, c.rowid ASC""",
            (book_id,),
            row_to_category,
        )

    # ── Bookmarks ──────────────────────────────────────────

    async def add_bookmark(self, bookmark: Bookmark) -> None:
        self._check_open()
        bookmark = self._validated(bookmark)
        await self._write(
            """INSERT INTO bookmarks (id, book_id, cfi, page, created_at, note)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                bookmark.id,
                bookmark.book_id,
                bookmark.cfi,
                bookmark.page,
                to_millis(bookmark.created_at),
                bookmark.note,
            ),
        )

    async def get_bookmarks_by_book(self, book_id: str) -> list[Bookmark]:
        return await self._fetch_all(
            """SELECT * FROM bookmarks WHERE book_id = ?
               ORDER BY created_at DESC, rowid DESC""",
            (book_id,),
            row_to_bookmark,
        )

    async def delete_bookmark(self, bookmark_id: str) -> None:
        await self._write("DELETE FROM bookmarks WHERE id = ?", (bookmark_id,))

    # ── Annotations ────────────────────────────────────────

    async def add_annotation(self, annotation: Annotation) -> None:
        self._check_open()
        annotation = self._validated(annotation)
        await self._write(
            """INSERT INTO annotations (id, book_id, cfi, text, note, color, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                annotation.id,
                annotation.book_id,
                annotation.cfi,
                annotation.text,
                annotation.note,
                annotation.color,
                to_millis(annotation.created_at),
            ),
        )

    async def get_annotations_by_book(self, book_id: str) -> list[Annotation]:
        return await self._fetch_all(
            """SELECT * FROM annotations WHERE book_id = ?
               ORDER BY created_at DESC, rowid DESC""",
            (book_id,),
            row_to_annotation,
        )

    async def delete_annotation(self, annotation_id: str) -> None:
        await self._write("DELETE FROM annotations WHERE id = ?", (annotation_id,))

    # ── Reading Progress ───────────────────────────────────

    async def add_reading_progress(self, progress: ReadingProgress) -> None:
        self._check_open()
        progress = self._validated(progress)
        await self._write(
            """INSERT INTO reading_progress (id, book_id, date, pages_read, time_spent)
               VALUES (?, ?, ?, ?, ?)""",
            (
                progress.id,
                progress.book_id,
                to_millis(progress.date),
                progress.pages_read,
                progress.time_spent,
            ),
        )

    async def get_reading_progress_by_book(self, book_id: str) -> list[ReadingProgress]:
        return await self._fetch_all(
            """SELECT * FROM reading_progress WHERE book_id = ?
               ORDER BY date DESC, rowid DESC""",
            (book_id,),
            row_to_progress,
        )

    async def get_all_reading_progress(self) -> list[ReadingProgress]:
        return await self._fetch_all(
            "SELECT * FROM reading_progress ORDER BY date DESC, rowid DESC",
            (),
            row_to_progress,
        )

    async def get_total_reading_stats(self) -> ReadingTotals:
        row = await self._fetch_one(
            """SELECT COALESCE(SUM(time_spent), 0) AS total_time,
                      COALESCE(SUM(pages_read), 0) AS total_pages
               FROM reading_progress"""
        )
        if row is None:
            return ReadingTotals()
        return ReadingTotals(
            total_time=int(row["total_time"]), total_pages=int(row["total_pages"])
        )
