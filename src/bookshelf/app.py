"""Bookshelf - e-book library manager.

This module is the composition root: it builds the storage backend and the
library service from the config and owns their lifecycle.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from bookshelf.config import AppConfig, load_config
from bookshelf.library.errors import LibraryError
from bookshelf.library.files import LocalFileStorage
from bookshelf.library.models import BOOK_FORMATS, Book
from bookshelf.library.service import LibraryService
from bookshelf.library.stats import format_reading_time
from bookshelf.library.storage.base import StorageBackend, create_backend

log = logging.getLogger(__name__)


def build_storage(config: AppConfig) -> StorageBackend:
    if config.storage_backend == "sqlite":
        return create_backend("sqlite", db_path=config.db_path)
    return create_backend(config.storage_backend)


@asynccontextmanager
async def open_library(config: AppConfig) -> AsyncIterator[LibraryService]:
    """Yield a ready LibraryService and close its storage on exit."""
    storage = build_storage(config)
    await storage.init()
    try:
        service = LibraryService(
            storage,
            LocalFileStorage(),
            books_dir=config.books_dir,
            covers_dir=config.covers_dir,
        )
        await service.initialize()
        if config.seed_default_categories:
            await service.ensure_default_categories()
        yield service
    finally:
        await storage.close()


def _format_book(book: Book) -> str:
    star = "*" if book.is_favorite else " "
    return (
        f"{star} {book.id}  {book.title} by {book.author}"
        f"  [{book.file_type}, {book.progress}%]"
    )


async def _run(config: AppConfig, args: argparse.Namespace) -> int:
    async with open_library(config) as library:
        if args.command == "import":
            for path in args.files:
                book = await library.import_book(path, args.format)
                print(f"Imported: {_format_book(book)}")
        elif args.command == "list":
            books = (
                await library.get_favorite_books()
                if args.favorites
                else await library.get_all_books()
            )
            for book in books:
                print(_format_book(book))
        elif args.command == "search":
            for book in await library.search_books(args.query):
                print(_format_book(book))
        elif args.command == "delete":
            if not await library.delete_book(args.book_id):
                print(f"No such book: {args.book_id}", file=sys.stderr)
                return 1
        elif args.command == "favorite":
            book = await library.toggle_favorite(args.book_id)
            if book is None:
                print(f"No such book: {args.book_id}", file=sys.stderr)
                return 1
            print(_format_book(book))
        elif args.command == "stats":
            stats = await library.get_library_stats()
            print(f"Books:         {stats.total_books}")
            print(f"Books read:    {stats.books_read}")
            print(f"Reading time:  {format_reading_time(stats.total_reading_time)}")
            print(f"Pages read:    {stats.total_pages}")
            print(
                f"Streak:        {stats.current_streak} days"
                f" (longest {stats.longest_streak})"
            )
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bookshelf", description="E-book library manager"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_import = sub.add_parser("import", help="Copy book files into the library")
    p_import.add_argument("files", nargs="+")
    p_import.add_argument("--format", choices=BOOK_FORMATS)

    p_list = sub.add_parser("list", help="List books, newest first")
    p_list.add_argument("--favorites", action="store_true")

    p_search = sub.add_parser("search", help="Search titles and authors")
    p_search.add_argument("query")

    p_delete = sub.add_parser("delete", help="Delete a book and its file")
    p_delete.add_argument("book_id")

    p_fav = sub.add_parser("favorite", help="Toggle a book's favorite flag")
    p_fav.add_argument("book_id")

    sub.add_parser("stats", help="Show reading statistics")
    return parser


def _setup_logging(config: AppConfig) -> None:
    handler = logging.FileHandler(config.log_path, encoding="utf-8")
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    root = logging.getLogger("bookshelf")
    root.setLevel(config.log_level)
    root.addHandler(handler)


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    try:
        config = load_config()
    except ValueError as e:
        # logging is not configured yet
        print(f"Error: {e}", file=sys.stderr)
        return 1
    _setup_logging(config)

    try:
        return asyncio.run(_run(config, args))
    except (LibraryError, ValueError) as e:
        log.error("%s failed: %s", args.command, e)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
