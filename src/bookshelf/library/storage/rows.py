"""Strict mapping between SQLite rows and library entities.

Rows coming back from the engine are checked column by column here, and
nothing outside this module reads a raw row.
"""

from __future__ import annotations

import sqlite3
from typing import Any, Optional

from bookshelf.library.errors import IOFailure
from bookshelf.library.models import (
    Annotation,
    Book,
    Bookmark,
    Category,
    ReadingProgress,
    to_millis,
)


def _column(row: sqlite3.Row, name: str, kind: type, nullable: bool = False) -> Any:
    try:
        value = row[name]
    except (IndexError, KeyError) as exc:
        raise IOFailure(f"Row is missing column {name!r}") from exc
    if value is None:
        if nullable:
            return None
        raise IOFailure(f"Column {name!r} is NULL")
    if kind is int and isinstance(value, bool):
        raise IOFailure(f"Column {name!r} has unexpected type bool")
    if not isinstance(value, kind):
        raise IOFailure(
            f"Column {name!r} has type {type(value).__name__}, expected {kind.__name__}"
        )
    return value


def _mapped(entity: type, values: dict[str, Any]) -> Any:
    try:
        return entity(**values)
    except ValueError as exc:
        raise IOFailure(f"Invalid {entity.__name__} row: {exc}") from exc


def row_to_book(row: sqlite3.Row) -> Book:
    return _mapped(
        Book,
        dict(
            id=_column(row, "id", str),
            title=_column(row, "title", str),
            author=_column(row, "author", str),
            description=_column(row, "description", str),
            file_path=_column(row, "file_path", str),
            file_type=_column(row, "file_type", str),
            cover_image=_column(row, "cover_image", str, nullable=True),
            added_at=_column(row, "added_at", int),
            last_read_at=_column(row, "last_read_at", int, nullable=True),
            total_pages=_column(row, "total_pages", int),
            current_page=_column(row, "current_page", int),
            current_cfi=_column(row, "current_cfi", str, nullable=True),
            reading_time=_column(row, "reading_time", int),
            is_favorite=_column(row, "is_favorite", int) == 1,
        ),
    )


def book_to_params(book: Book) -> tuple:
    """Column values in the order of COLUMNS["books"]."""
    return (
        book.id,
        book.title,
        book.author,
        book.description,
        book.file_path,
        book.file_type,
        book.cover_image,
        to_millis(book.added_at),
        _optional_millis(book),
        book.total_pages,
        book.current_page,
        book.current_cfi,
        book.reading_time,
        1 if book.is_favorite else 0,
    )


def _optional_millis(book: Book) -> Optional[int]:
    return to_millis(book.last_read_at) if book.last_read_at else None


def row_to_category(row: sqlite3.Row) -> Category:
    return _mapped(
        Category,
        dict(
            id=_column(row, "id", str),
            name=_column(row, "name", str),
            color=_column(row, "color", str),
            sort_order=_column(row, "sort_order", int),
        ),
    )


def row_to_bookmark(row: sqlite3.Row) -> Bookmark:
    return _mapped(
        Bookmark,
        dict(
            id=_column(row, "id", str),
            book_id=_column(row, "book_id", str),
            cfi=_column(row, "cfi", str, nullable=True),
            page=_column(row, "page", int, nullable=True),
            created_at=_column(row, "created_at", int),
            note=_column(row, "note", str, nullable=True),
        ),
    )


def row_to_annotation(row: sqlite3.Row) -> Annotation:
    return _mapped(
        Annotation,
        dict(
            id=_column(row, "id", str),
            book_id=_column(row, "book_id", str),
            cfi=_column(row, "cfi", str),
            text=_column(row, "text", str),
            note=_column(row, "note", str, nullable=True),
            color=_column(row, "color", str),
            created_at=_column(row, "created_at", int),
        ),
    )


def row_to_progress(row: sqlite3.Row) -> ReadingProgress:
    return _mapped(
        ReadingProgress,
        dict(
            id=_column(row, "id", str),
            book_id=_column(row, "book_id", str),
            date=_column(row, "date", int),
            pages_read=_column(row, "pages_read", int),
            time_spent=_column(row, "time_spent", int),
        ),
    )
