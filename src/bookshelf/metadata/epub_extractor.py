"""EPUB metadata using ebooklib."""

from __future__ import annotations

import re
import warnings
from pathlib import Path
from typing import Optional

import ebooklib
from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning
from ebooklib import epub

warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)

from .base import BaseExtractor, BookMetadata


class EpubExtractor(BaseExtractor):
    SUPPORTED_EXTENSIONS = (".epub",)

    def extract(self, file_path: Path) -> BookMetadata:
        book = epub.read_epub(str(file_path), options={"ignore_ncx": True})

        description = self._get_meta(book, "description")
        if description:
            description = self._strip_html(description)

        return BookMetadata(
            title=self._get_meta(book, "title"),
            author=self._get_meta(book, "creator"),
            description=description,
            # reflowable: page count is only known once the reader paginates
            total_pages=0,
            cover=self._find_cover(book),
        )

    @staticmethod
    def _strip_html(html: str) -> str:
        soup = BeautifulSoup(html, "lxml")
        text = soup.get_text(separator=" ", strip=True)
        return re.sub(r"\s+", " ", text).strip()

    @staticmethod
    def _find_cover(book: epub.EpubBook) -> Optional[bytes]:
        covers = list(book.get_items_of_type(ebooklib.ITEM_COVER))
        if covers:
            return covers[0].get_content()

        # EPUB 2 books point at the cover through <meta name="cover">
        for _, attrs in book.get_metadata("OPF", "cover"):
            cover_id = attrs.get("content") if attrs else None
            item = book.get_item_with_id(cover_id) if cover_id else None
            if item is not None:
                return item.get_content()

        for item in book.get_items_of_type(ebooklib.ITEM_IMAGE):
            if "cover" in item.get_name().lower():
                return item.get_content()
        return None

    @staticmethod
    def _get_meta(book: epub.EpubBook, field: str) -> str:
        values = book.get_metadata("DC", field)
        if values:
            val = values[0]
            if isinstance(val, tuple):
                return str(val[0]).strip() if val[0] else ""
            return str(val).strip()
        return ""
