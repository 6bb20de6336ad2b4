"""Best-effort metadata extraction for imported books."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

log = logging.getLogger(__name__)


@dataclass
class BookMetadata:
    title: str = ""
    author: str = ""
    description: str = ""
    total_pages: int = 0
    cover: Optional[bytes] = None  # raw image data


class BaseExtractor(ABC):
    """Abstract base for format-specific metadata readers."""

    SUPPORTED_EXTENSIONS: tuple[str, ...] = ()

    @abstractmethod
    def extract(self, file_path: Path) -> BookMetadata:
        """Read whatever metadata the file carries."""

    @classmethod
    def can_handle(cls, file_path: Path) -> bool:
        return file_path.suffix.lower() in cls.SUPPORTED_EXTENSIONS


def get_extractor(file_path: Path) -> BaseExtractor:
    """Return the appropriate extractor for a file."""
    from bookshelf.metadata.epub_extractor import EpubExtractor
    from bookshelf.metadata.mobi_extractor import MobiExtractor
    from bookshelf.metadata.pdf_extractor import PdfExtractor

    extractors: list[type[BaseExtractor]] = [
        EpubExtractor,
        PdfExtractor,
        MobiExtractor,
    ]
    for extractor_cls in extractors:
        if extractor_cls.can_handle(file_path):
            return extractor_cls()

    supported = []
    for e in extractors:
        supported.extend(e.SUPPORTED_EXTENSIONS)
    raise ValueError(
        f"Unsupported format: {file_path.suffix}. Supported: {', '.join(supported)}"
    )


class MetadataExtractor:
    """Extracts metadata and never lets a broken file abort an import."""

    def extract(self, file_path: Path) -> BookMetadata:
        try:
            return get_extractor(file_path).extract(file_path)
        except Exception as e:
            log.warning("Metadata extraction failed for %s: %s", file_path, e)
            return BookMetadata()
