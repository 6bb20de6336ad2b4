"""Book lifecycle operations on top of a storage backend."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from bookshelf.metadata.base import BookMetadata, MetadataExtractor

from .errors import LibraryError, NotFound
from .files import FileStorage
from .models import (
    Annotation,
    Book,
    Bookmark,
    Category,
    DEFAULT_CATEGORY_COLOR,
    DEFAULT_HIGHLIGHT_COLOR,
    ReadingProgress,
    default_categories,
    detect_format,
    new_id,
    utcnow,
)
from .stats import LibraryStats, calculate_totals, library_summary
from .storage.base import ReadingTotals, StorageBackend

log = logging.getLogger(__name__)


def _check_page(name: str, value: object) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if value < 0:
        raise ValueError(f"{name} must be >= 0, got {value}")


@dataclass(frozen=True)
class BookStats:
    total_time: int
    total_pages: int
    sessions: int


class LibraryService:
    """Imports, updates and removes books, keeping files and rows together.

    The storage backend is owned by the caller, which must ``init()`` it
    before use and ``close()`` it afterwards.
    """

    def __init__(
        self,
        storage: StorageBackend,
        files: FileStorage,
        books_dir: Path,
        covers_dir: Path,
        extractor: Optional[MetadataExtractor] = None,
    ) -> None:
        self._storage = storage
        self._files = files
        self._books_dir = Path(books_dir)
        self._covers_dir = Path(covers_dir)
        self._extractor = extractor or MetadataExtractor()

    @property
    def storage(self) -> StorageBackend:
        return self._storage

    async def initialize(self) -> None:
        await self._files.ensure_dir(self._books_dir)
        await self._files.ensure_dir(self._covers_dir)

    # ── Books ──────────────────────────────────────────────

    async def import_book(
        self, source: Union[str, Path], file_type: Optional[str] = None
    ) -> Book:
        """Copy a book file into the library and register it.

        If the row insert fails, the copied file and cover are removed again
        before the error propagates.
        """
        source = Path(source)
        file_type = file_type or detect_format(source)
        book = Book(id=new_id(), file_type=file_type)
        dest = self._books_dir / f"{book.id}_{source.name}"

        await self._files.copy(source, dest)
        book.file_path = str(dest)

        meta = await self._extract_metadata(dest)
        book.title = meta.title or source.stem
        book.author = meta.author or "Unknown Author"
        book.description = meta.description
        book.total_pages = meta.total_pages

        if meta.cover:
            cover_path = self._covers_dir / f"{book.id}.jpg"
            try:
                await self._files.write_bytes(cover_path, meta.cover)
                book.cover_image = str(cover_path)
            except LibraryError as e:
                log.warning("Could not save cover for %s: %s", book.id, e)

        try:
            await self._storage.add_book(book)
        except LibraryError:
            log.error("Import of %s failed, removing copied files", source)
            await self._remove_files(book)
            raise

        log.info("Imported %s as %s (%s)", source.name, book.id, book.title)
        return book

    async def _extract_metadata(self, path: Path) -> BookMetadata:
        try:
            return await asyncio.to_thread(self._extractor.extract, path)
        except Exception as e:
            log.warning("Metadata extraction failed for %s: %s", path, e)
            return BookMetadata()

    async def _remove_files(self, book: Book) -> None:
        for path in (book.file_path, book.cover_image):
            if not path:
                continue
            try:
                await self._files.delete(path)
            except (LibraryError, OSError) as e:
                log.warning("Could not delete %s: %s", path, e)

    async def delete_book(self, book_id: str) -> bool:
        """Delete the book's files, then its row and everything it owns.

        A failed file deletion is logged and does not stop the row delete.
        Returns False if there was no such book.
        """
        book = await self._storage.get_book_by_id(book_id)
        if book is None:
            return False
        await self._remove_files(book)
        await self._storage.delete_book(book_id)
        log.info("Deleted book %s (%s)", book_id, book.title)
        return True

    async def get_all_books(self) -> list[Book]:
        return await self._storage.get_books()

    async def get_book(self, book_id: str) -> Optional[Book]:
        return await self._storage.get_book_by_id(book_id)

    async def load_book(self, book_id: str) -> Book:
        """Like get_book, but a missing book raises NotFound."""
        return await self._storage.require_book(book_id)

    async def search_books(self, query: str) -> list[Book]:
        return await self._storage.search_books(query)

    async def get_favorite_books(self) -> list[Book]:
        return await self._storage.get_favorite_books()

    async def get_recent_books(self, limit: int = 10) -> list[Book]:
        return await self._storage.get_recent_books(limit)

    async def update_book(self, book: Book) -> bool:
        return await self._storage.update_book(book)

    async def toggle_favorite(self, book_id: str) -> Optional[Book]:
        book = await self._storage.get_book_by_id(book_id)
        if book is None:
            return None
        book.is_favorite = not book.is_favorite
        await self._storage.update_book(book)
        return book

    async def update_reading_progress(
        self,
        book_id: str,
        current_page: int,
        current_cfi: Optional[str] = None,
        total_pages: Optional[int] = None,
    ) -> Optional[Book]:
        """Store the reader position reported by the renderer.

        total_pages lets the reader report a page count it discovered
        after import.
        """
        book = await self._storage.get_book_by_id(book_id)
        if book is None:
            return None
        _check_page("current_page", current_page)
        book.current_page = current_page
        book.current_cfi = current_cfi
        if total_pages is not None:
            _check_page("total_pages", total_pages)
            book.total_pages = total_pages
        book.last_read_at = utcnow()
        await self._storage.update_book(book)
        return book

    # ── Categories ─────────────────────────────────────────

    async def get_categories(self) -> list[Category]:
        return await self._storage.get_categories()

    async def create_category(
        self, name: str, color: str = DEFAULT_CATEGORY_COLOR
    ) -> Category:
        categories = await self._storage.get_categories()
        next_order = max((c.sort_order for c in categories), default=-1) + 1
        category = Category(id=new_id(), name=name, color=color, sort_order=next_order)
        await self._storage.add_category(category)
        return category

    async def ensure_default_categories(self) -> list[Category]:
        """Seed the stock categories into a library that has none."""
        existing = await self._storage.get_categories()
        if existing:
            return existing
        seeded = default_categories()
        for category in seeded:
            await self._storage.add_category(category)
        log.info("Seeded %d default categories", len(seeded))
        return seeded

    async def delete_category(self, category_id: str) -> None:
        await self._storage.delete_category(category_id)

    async def add_book_to_category(self, book_id: str, category_id: str) -> None:
        await self._storage.add_book_to_category(book_id, category_id)

    async def remove_book_from_category(self, book_id: str, category_id: str) -> None:
        await self._storage.remove_book_from_category(book_id, category_id)

    async def get_books_by_category(self, category_id: str) -> list[Book]:
        return await self._storage.get_books_by_category(category_id)

    async def get_categories_for_book(self, book_id: str) -> list[Category]:
        return await self._storage.get_categories_for_book(book_id)

    # ── Bookmarks & Annotations ────────────────────────────

    async def add_bookmark(
        self,
        book_id: str,
        cfi: Optional[str] = None,
        page: Optional[int] = None,
        note: Optional[str] = None,
    ) -> Bookmark:
        if not cfi and page is None:
            raise ValueError("A bookmark needs a cfi or a page")
        bookmark = Bookmark(id=new_id(), book_id=book_id, cfi=cfi, page=page, note=note)
        await self._storage.add_bookmark(bookmark)
        return bookmark

    async def get_bookmarks(self, book_id: str) -> list[Bookmark]:
        return await self._storage.get_bookmarks_by_book(book_id)

    async def delete_bookmark(self, bookmark_id: str) -> None:
        await self._storage.delete_bookmark(bookmark_id)

    async def add_annotation(
        self,
        book_id: str,
        cfi: str,
        text: str,
        color: str = DEFAULT_HIGHLIGHT_COLOR,
        note: Optional[str] = None,
    ) -> Annotation:
        if not cfi:
            raise ValueError("An annotation needs a cfi")
        annotation = Annotation(
            id=new_id(), book_id=book_id, cfi=cfi, text=text, note=note, color=color
        )
        await self._storage.add_annotation(annotation)
        return annotation

    async def get_annotations(self, book_id: str) -> list[Annotation]:
        return await self._storage.get_annotations_by_book(book_id)

    async def delete_annotation(self, annotation_id: str) -> None:
        await self._storage.delete_annotation(annotation_id)

    # ── Reading sessions & statistics ──────────────────────

    async def record_reading_session(
        self, book_id: str, pages_read: int, time_spent: int
    ) -> ReadingProgress:
        """Log a finished session and add its minutes to the book total."""
        book = await self._storage.get_book_by_id(book_id)
        if book is None:
            raise NotFound("Book", book_id)
        progress = ReadingProgress(
            id=new_id(), book_id=book_id, pages_read=pages_read, time_spent=time_spent
        )
        await self._storage.add_reading_progress(progress)
        book.reading_time += time_spent
        await self._storage.update_book(book)
        return progress

    async def get_reading_history(self, book_id: str) -> list[ReadingProgress]:
        return await self._storage.get_reading_progress_by_book(book_id)

    async def get_book_stats(self, book_id: str) -> BookStats:
        history = await self._storage.get_reading_progress_by_book(book_id)
        totals = calculate_totals(history)
        return BookStats(
            total_time=totals.total_time,
            total_pages=totals.total_pages,
            sessions=len(history),
        )

    async def get_reading_stats(self) -> ReadingTotals:
        return await self._storage.get_total_reading_stats()

    async def get_library_stats(self) -> LibraryStats:
        books = await self._storage.get_books()
        history = await self._storage.get_all_reading_progress()
        return library_summary(books, history)
