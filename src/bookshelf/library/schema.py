"""Relational schema for the library store."""

from __future__ import annotations

import logging

import aiosqlite

log = logging.getLogger(__name__)

SCHEMA_VERSION = 1

TABLES = (
    "books",
    "categories",
    "book_categories",
    "bookmarks",
    "annotations",
    "reading_progress",
)

# Logical column surface shared by every backend
COLUMNS: dict[str, tuple[str, ...]] = {
    "books": (
        "id",
        "title",
        "author",
        "description",
        "file_path",
        "file_type",
        "cover_image",
        "added_at",
        "last_read_at",
        "total_pages",
        "current_page",
        "current_cfi",
        "reading_time",
        "is_favorite",
    ),
    "categories": ("id", "name", "color", "sort_order"),
    "book_categories": ("book_id", "category_id"),
    "bookmarks": ("id", "book_id", "cfi", "page", "created_at", "note"),
    "annotations": ("id", "book_id", "cfi", "text", "note", "color", "created_at"),
    "reading_progress": ("id", "book_id", "date", "pages_read", "time_spent"),
}

_SCHEMA = """
CREATE TABLE IF NOT EXISTS books (
    id TEXT PRIMARY KEY NOT NULL,
    title TEXT NOT NULL,
    author TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    file_path TEXT NOT NULL,
    file_type TEXT NOT NULL,
    cover_image TEXT,
    added_at INTEGER NOT NULL,
    last_read_at INTEGER,
    total_pages INTEGER NOT NULL DEFAULT 0,
    current_page INTEGER NOT NULL DEFAULT 0,
    current_cfi TEXT,
    reading_time INTEGER NOT NULL DEFAULT 0,
    is_favorite INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS categories (
    id TEXT PRIMARY KEY NOT NULL,
    name TEXT NOT NULL,
    color TEXT NOT NULL,
    sort_order INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS book_categories (
    book_id TEXT NOT NULL REFERENCES books(id) ON DELETE CASCADE,
    category_id TEXT NOT NULL REFERENCES categories(id) ON DELETE CASCADE,
    PRIMARY KEY (book_id, category_id)
);

CREATE TABLE IF NOT EXISTS bookmarks (
    id TEXT PRIMARY KEY NOT NULL,
    book_id TEXT NOT NULL REFERENCES books(id) ON DELETE CASCADE,
    cfi TEXT,
    page INTEGER,
    created_at INTEGER NOT NULL,
    note TEXT
);

CREATE TABLE IF NOT EXISTS annotations (
    id TEXT PRIMARY KEY NOT NULL,
    book_id TEXT NOT NULL REFERENCES books(id) ON DELETE CASCADE,
    cfi TEXT NOT NULL,
    text TEXT NOT NULL,
    note TEXT,
    color TEXT NOT NULL,
    created_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS reading_progress (
    id TEXT PRIMARY KEY NOT NULL,
    book_id TEXT NOT NULL REFERENCES books(id) ON DELETE CASCADE,
    date INTEGER NOT NULL,
    pages_read INTEGER NOT NULL DEFAULT 0,
    time_spent INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_books_author ON books(author);
CREATE INDEX IF NOT EXISTS idx_books_added_at ON books(added_at);
CREATE INDEX IF NOT EXISTS idx_books_last_read_at ON books(last_read_at);
CREATE INDEX IF NOT EXISTS idx_book_categories_book_id ON book_categories(book_id);
CREATE INDEX IF NOT EXISTS idx_book_categories_category_id ON book_categories(category_id);
CREATE INDEX IF NOT EXISTS idx_bookmarks_book_id ON bookmarks(book_id);
CREATE INDEX IF NOT EXISTS idx_annotations_book_id ON annotations(book_id);
CREATE INDEX IF NOT EXISTS idx_reading_progress_book_id ON reading_progress(book_id);
CREATE INDEX IF NOT EXISTS idx_reading_progress_date ON reading_progress(date);
"""


async def apply_schema(conn: aiosqlite.Connection) -> None:
    """Create any missing tables and indexes. Safe to run on every start."""
    await conn.executescript(_SCHEMA)
    async with conn.execute("PRAGMA user_version") as cursor:
        row = await cursor.fetchone()
    version = row[0] if row else 0
    if version < SCHEMA_VERSION:
        log.info("Schema version %d -> %d", version, SCHEMA_VERSION)
        await conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
    await conn.commit()
