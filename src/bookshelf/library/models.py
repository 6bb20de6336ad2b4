"""Data models for the book library."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, fields
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional, Union

BOOK_FORMATS: tuple[str, ...] = ("epub", "pdf", "mobi", "azw", "azw3")

# Formats whose pagination is recomputed per viewport and addressed by CFI
REFLOWABLE_FORMATS = frozenset({"epub", "mobi", "azw", "azw3"})

MIME_TYPES = {
    "epub": "application/epub+zip",
    "pdf": "application/pdf",
    "mobi": "application/x-mobipocket-ebook",
    "azw": "application/vnd.amazon.ebook",
    "azw3": "application/vnd.amazon.ebook",
}

DEFAULT_CATEGORY_COLOR = "#6200EE"
DEFAULT_HIGHLIGHT_COLOR = "#FFEB3B"

Timestamp = Union[datetime, int, float]
Day = date

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return to_datetime(datetime.now(timezone.utc))


def to_datetime(value: Timestamp) -> datetime:
    """Normalise to an aware UTC datetime truncated to milliseconds.

    Integers and floats are read as epoch milliseconds.
    """
    if isinstance(value, datetime):
        dt = value
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        dt = dt.astimezone(timezone.utc)
        return dt.replace(microsecond=dt.microsecond // 1000 * 1000)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Not a timestamp: {value!r}")
    return _EPOCH + timedelta(milliseconds=int(value))


def to_millis(value: datetime) -> int:
    delta = value - _EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000


def _optional_datetime(value: Optional[Timestamp]) -> Optional[datetime]:
    return None if value is None else to_datetime(value)


def _check_text(obj: object, *names: str, optional: bool = False) -> None:
    for name in names:
        value = getattr(obj, name)
        if value is None and optional:
            continue
        if not isinstance(value, str):
            raise ValueError(f"{name} must be a string, got {value!r}")


def _check_non_negative(obj: object, *names: str) -> None:
    for name in names:
        value = getattr(obj, name)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{name} must be an integer, got {value!r}")
        if value < 0:
            raise ValueError(f"{name} must be >= 0, got {value}")


class _Record:
    """Plain-record conversion shared by all entities."""

    _DATETIME_FIELDS: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for f in fields(self):  # type: ignore[arg-type]
            value = getattr(self, f.name)
            if f.name in self._DATETIME_FIELDS and value is not None:
                value = to_millis(value)
            out[f.name] = value
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]):
        known = {f.name for f in fields(cls)}  # type: ignore[arg-type]
        unknown = set(data) - known
        if unknown:
            raise ValueError(
                f"Unknown fields for {cls.__name__}: {', '.join(sorted(unknown))}"
            )
        return cls(**data)


def detect_format(file_path: Union[str, Path]) -> str:
    """Return the book format for a file extension, or raise ValueError."""
    ext = Path(file_path).suffix.lower().lstrip(".")
    if ext not in BOOK_FORMATS:
        raise ValueError(
            f"Unsupported format: .{ext}. Supported: "
            + ", ".join(f".{f}" for f in BOOK_FORMATS)
        )
    return ext


@dataclass
class Book(_Record):
    id: str = ""
    title: str = "Unknown Title"
    author: str = "Unknown Author"
    description: str = ""
    file_path: str = ""
    file_type: str = "epub"  # epub, pdf, mobi, azw, azw3
    cover_image: Optional[str] = None
    added_at: datetime = field(default_factory=utcnow)
    last_read_at: Optional[datetime] = None
    total_pages: int = 0  # 0 = unknown
    current_page: int = 0
    current_cfi: Optional[str] = None  # reflowable position
    reading_time: int = 0  # minutes
    is_favorite: bool = False

    _DATETIME_FIELDS = ("added_at", "last_read_at")

    def __post_init__(self) -> None:
        if self.file_type not in BOOK_FORMATS:
            raise ValueError(f"Unknown book format: {self.file_type!r}")
        _check_text(self, "id", "title", "author", "description", "file_path")
        _check_text(self, "cover_image", "current_cfi", optional=True)
        _check_non_negative(self, "total_pages", "current_page", "reading_time")
        self.added_at = to_datetime(self.added_at)
        self.last_read_at = _optional_datetime(self.last_read_at)
        self.is_favorite = bool(self.is_favorite)

    @property
    def progress(self) -> int:
        """Reading progress as a whole percentage."""
        if self.total_pages <= 0:
            return 0
        # round half up, like the percentage shown in the library list
        return int(self.current_page * 100 / self.total_pages + 0.5)

    @property
    def is_reading(self) -> bool:
        return 0 < self.current_page < self.total_pages

    @property
    def is_completed(self) -> bool:
        return self.total_pages > 0 and self.current_page >= self.total_pages

    @property
    def is_reflowable(self) -> bool:
        return self.file_type in REFLOWABLE_FORMATS

    @property
    def mime_type(self) -> str:
        return MIME_TYPES.get(self.file_type, "application/octet-stream")


@dataclass
class Category(_Record):
    id: str = ""
    name: str = ""
    color: str = DEFAULT_CATEGORY_COLOR
    sort_order: int = 0

    def __post_init__(self) -> None:
        _check_text(self, "id", "name", "color")
        if isinstance(self.sort_order, bool) or not isinstance(self.sort_order, int):
            raise ValueError(f"sort_order must be an integer, got {self.sort_order!r}")


def default_categories() -> list[Category]:
    """Stock categories offered to an empty library."""
    stock = [
        ("Fiction", "#E91E63"),
        ("Non-Fiction", "#2196F3"),
        ("Science", "#4CAF50"),
        ("History", "#FF9800"),
        ("Technology", "#9C27B0"),
    ]
    return [
        Category(id=new_id(), name=name, color=color, sort_order=i)
        for i, (name, color) in enumerate(stock)
    ]


@dataclass
class BookCategory(_Record):
    book_id: str = ""
    category_id: str = ""

    def __post_init__(self) -> None:
        _check_text(self, "book_id", "category_id")


@dataclass
class Bookmark(_Record):
    id: str = ""
    book_id: str = ""
    cfi: Optional[str] = None  # reflowable formats
    page: Optional[int] = None  # fixed-layout formats
    created_at: datetime = field(default_factory=utcnow)
    note: Optional[str] = None

    _DATETIME_FIELDS = ("created_at",)

    def __post_init__(self) -> None:
        _check_text(self, "id", "book_id")
        _check_text(self, "cfi", "note", optional=True)
        _check_non_negative(self, "page")
        self.created_at = to_datetime(self.created_at)

    @property
    def location(self) -> str:
        if self.cfi:
            return f"Location: {self.cfi}"
        if self.page:
            return f"Page {self.page}"
        return "Unknown location"

    @classmethod
    def for_cfi(cls, book_id: str, cfi: str, note: Optional[str] = None) -> Bookmark:
        return cls(id=new_id(), book_id=book_id, cfi=cfi, note=note)

    @classmethod
    def for_page(cls, book_id: str, page: int, note: Optional[str] = None) -> Bookmark:
        return cls(id=new_id(), book_id=book_id, page=page, note=note)


@dataclass
class Annotation(_Record):
    id: str = ""
    book_id: str = ""
    cfi: str = ""
    text: str = ""  # highlighted excerpt
    note: Optional[str] = None
    color: str = DEFAULT_HIGHLIGHT_COLOR
    created_at: datetime = field(default_factory=utcnow)

    _DATETIME_FIELDS = ("created_at",)

    PREVIEW_LENGTH = 100

    def __post_init__(self) -> None:
        _check_text(self, "id", "book_id", "cfi", "text", "color")
        _check_text(self, "note", optional=True)
        self.created_at = to_datetime(self.created_at)

    @property
    def has_note(self) -> bool:
        return bool(self.note and self.note.strip())

    @property
    def preview_text(self) -> str:
        if len(self.text) <= self.PREVIEW_LENGTH:
            return self.text
        return self.text[: self.PREVIEW_LENGTH] + "..."


@dataclass
class ReadingProgress(_Record):
    """One reading session. Rows are only ever appended."""

    id: str = ""
    book_id: str = ""
    date: datetime = field(default_factory=utcnow)
    pages_read: int = 0
    time_spent: int = 0  # minutes

    _DATETIME_FIELDS = ("date",)

    def __post_init__(self) -> None:
        _check_text(self, "id", "book_id")
        _check_non_negative(self, "pages_read", "time_spent")
        self.date = to_datetime(self.date)

    @property
    def day(self) -> Day:
        return self.date.date()
