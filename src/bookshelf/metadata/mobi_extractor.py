"""MOBI/AZW metadata, via Calibre when installed, else from the PalmDB header."""

from __future__ import annotations

import shutil
import struct
import subprocess
import tempfile
from pathlib import Path

from .base import BaseExtractor, BookMetadata

_EXTH_TITLE = 503
_EXTH_AUTHOR = 100
_EXTH_DESCRIPTION = 103


class MobiExtractor(BaseExtractor):
    """Kindle book metadata.

    With Calibre's ebook-convert on PATH the book is converted to EPUB and
    read like any other EPUB, which also yields the cover. Without it, title,
    author and description come from the EXTH header. Kindle files have no
    page numbers, so total_pages stays 0.
    """

    SUPPORTED_EXTENSIONS = (".mobi", ".azw", ".azw3")

    def extract(self, file_path: Path) -> BookMetadata:
        ebook_convert = shutil.which("ebook-convert")
        if ebook_convert:
            return self._extract_converted(ebook_convert, file_path)
        return self._extract_header(file_path)

    def _extract_converted(self, ebook_convert: str, file_path: Path) -> BookMetadata:
        with tempfile.TemporaryDirectory() as tmp:
            epub_path = Path(tmp) / "converted.epub"
            result = subprocess.run(
                [ebook_convert, str(file_path), str(epub_path)],
                capture_output=True,
                text=True,
                timeout=120,
            )
            if result.returncode != 0:
                raise RuntimeError(f"ebook-convert failed: {result.stderr[:500]}")

            from bookshelf.metadata.epub_extractor import EpubExtractor

            meta = EpubExtractor().extract(epub_path)
        meta.total_pages = 0
        return meta

    def _extract_header(self, file_path: Path) -> BookMetadata:
        data = file_path.read_bytes()
        if len(data) < 82 or data[60:68] not in (b"BOOKMOBI", b"TEXtREAd"):
            raise ValueError(f"Not a MOBI file: {file_path.name}")

        # First record offset from the PalmDB record list
        (record0,) = struct.unpack(">I", data[78:82])
        header = data[record0:]
        if header[16:20] != b"MOBI":
            return BookMetadata()

        (mobi_len,) = struct.unpack(">I", header[20:24])
        (encoding,) = struct.unpack(">I", header[28:32])
        codec = "cp1252" if encoding == 1252 else "utf-8"

        meta = BookMetadata()
        full_name_offset, full_name_len = struct.unpack(">II", header[84:92])
        meta.title = header[full_name_offset : full_name_offset + full_name_len].decode(
            codec, errors="replace"
        )

        (flags,) = struct.unpack(">I", header[128:132])
        if flags & 0x40:
            records = self._exth_records(header[16 + mobi_len :])
            exth_title = records.get(_EXTH_TITLE, b"").decode(codec, errors="replace")
            meta.title = exth_title or meta.title
            meta.author = records.get(_EXTH_AUTHOR, b"").decode(codec, errors="replace")
            meta.description = records.get(_EXTH_DESCRIPTION, b"").decode(
                codec, errors="replace"
            )
        meta.title = meta.title.strip()
        meta.author = meta.author.strip()
        meta.description = meta.description.strip()
        return meta

    @staticmethod
    def _exth_records(exth: bytes) -> dict[int, bytes]:
        if exth[:4] != b"EXTH":
            return {}
        (count,) = struct.unpack(">I", exth[8:12])
        records: dict[int, bytes] = {}
        pos = 12
        for _ in range(count):
            rec_type, rec_len = struct.unpack(">II", exth[pos : pos + 8])
            if rec_len < 8:
                break
            # first occurrence wins, e.g. the primary author
            records.setdefault(rec_type, exth[pos + 8 : pos + rec_len])
            pos += rec_len
        return records
