"""PDF metadata using PyMuPDF."""

from __future__ import annotations

from pathlib import Path

import pymupdf

from .base import BaseExtractor, BookMetadata


class PdfExtractor(BaseExtractor):
    SUPPORTED_EXTENSIONS = (".pdf",)

    # Width of the rendered first-page thumbnail used as cover
    COVER_WIDTH = 300

    def extract(self, file_path: Path) -> BookMetadata:
        doc = pymupdf.open(str(file_path))
        try:
            meta = doc.metadata or {}
            return BookMetadata(
                title=(meta.get("title") or "").strip(),
                author=(meta.get("author") or "").strip(),
                description=(meta.get("subject") or "").strip(),
                total_pages=len(doc),
                cover=self._render_cover(doc),
            )
        finally:
            doc.close()

    def _render_cover(self, doc: pymupdf.Document) -> bytes | None:
        if len(doc) == 0:
            return None
        page = doc[0]
        zoom = self.COVER_WIDTH / max(page.rect.width, 1)
        pix = page.get_pixmap(matrix=pymupdf.Matrix(zoom, zoom))
        return pix.tobytes("jpeg")
