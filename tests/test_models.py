"""Tests for data models."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from bookshelf.library.models import (
    BOOK_FORMATS,
    Annotation,
    Book,
    BookCategory,
    Bookmark,
    Category,
    ReadingProgress,
    default_categories,
    detect_format,
    new_id,
    to_datetime,
    to_millis,
)


def _full_book() -> Book:
    return Book(
        id="b1",
        title="The Hobbit",
        author="J.R.R. Tolkien",
        description="There and back again",
        file_path="/books/b1_hobbit.epub",
        file_type="epub",
        cover_image="/covers/b1.jpg",
        added_at=datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc),
        last_read_at=datetime(2024, 2, 1, tzinfo=timezone.utc),
        total_pages=310,
        current_page=42,
        current_cfi="epubcfi(/6/4[chap01]!/4/2/1:0)",
        reading_time=95,
        is_favorite=True,
    )


class TestBook:
    def test_defaults(self):
        book = Book()
        assert book.id == ""
        assert book.title == "Unknown Title"
        assert book.author == "Unknown Author"
        assert book.description == ""
        assert book.file_type == "epub"
        assert book.cover_image is None
        assert book.last_read_at is None
        assert book.total_pages == 0
        assert book.current_page == 0
        assert book.reading_time == 0
        assert book.is_favorite is False
        assert book.added_at.tzinfo is timezone.utc

    def test_unknown_format_rejected(self):
        with pytest.raises(ValueError):
            Book(file_type="docx")

    def test_negative_counters_rejected(self):
        with pytest.raises(ValueError):
            Book(current_page=-1)
        with pytest.raises(ValueError):
            Book(total_pages=-5)

    def test_progress_unknown_total(self):
        assert Book(current_page=12, total_pages=0).progress == 0

    def test_progress_rounds(self):
        assert Book(current_page=1, total_pages=3).progress == 33
        assert Book(current_page=2, total_pages=3).progress == 67
        assert Book(current_page=1, total_pages=8).progress == 13

    def test_page_beyond_total_allowed(self):
        book = Book(current_page=120, total_pages=100)
        assert book.progress == 120
        assert book.is_completed

    @pytest.mark.parametrize(
        "current,total", [(0, 0), (0, 10), (5, 10), (10, 10), (11, 10), (3, 0)]
    )
    def test_reading_and_completed_exclusive(self, current: int, total: int):
        book = Book(current_page=current, total_pages=total)
        assert not (book.is_reading and book.is_completed)

    def test_is_reading(self):
        assert Book(current_page=5, total_pages=10).is_reading
        assert not Book(current_page=0, total_pages=10).is_reading
        assert not Book(current_page=10, total_pages=10).is_reading

    def test_is_completed(self):
        assert Book(current_page=10, total_pages=10).is_completed
        assert not Book(current_page=10, total_pages=0).is_completed

    def test_mime_type(self):
        assert Book(file_type="pdf").mime_type == "application/pdf"
        assert Book(file_type="azw3").mime_type == "application/vnd.amazon.ebook"

    def test_reflowable(self):
        assert Book(file_type="epub").is_reflowable
        assert not Book(file_type="pdf").is_reflowable

    def test_datetimes_truncated_to_millis(self):
        added = datetime(2024, 1, 1, 0, 0, 0, 123456, tzinfo=timezone.utc)
        book = Book(added_at=added)
        assert book.added_at.microsecond == 123000

    def test_naive_datetime_read_as_utc(self):
        book = Book(added_at=datetime(2024, 1, 1, 8, 30))
        assert book.added_at == datetime(2024, 1, 1, 8, 30, tzinfo=timezone.utc)


class TestPlainRoundTrip:
    @pytest.mark.parametrize(
        "entity",
        [
            _full_book(),
            Book(),
            Category(id="c1", name="Fiction", color="#E91E63", sort_order=3),
            BookCategory(book_id="b1", category_id="c1"),
            Bookmark(id="bm1", book_id="b1", cfi="epubcfi(/6/2)", note="here"),
            Bookmark(id="bm2", book_id="b1", page=17),
            Annotation(id="a1", book_id="b1", cfi="epubcfi(/6/8)", text="quote"),
            Annotation(
                id="a2",
                book_id="b1",
                cfi="epubcfi(/6/8)",
                text="q",
                note="n",
                color="#00FF00",
            ),
            ReadingProgress(id="p1", book_id="b1", pages_read=10, time_spent=5),
        ],
        ids=lambda e: type(e).__name__,
    )
    def test_from_dict_inverts_to_dict(self, entity):
        assert type(entity).from_dict(entity.to_dict()) == entity

    def test_plain_form_uses_epoch_millis(self):
        plain = _full_book().to_dict()
        assert plain["added_at"] == to_millis(_full_book().added_at)
        assert isinstance(plain["added_at"], int)
        assert plain["is_favorite"] is True

    def test_partial_record_fills_defaults(self):
        book = Book.from_dict({"id": "x", "title": "Only a title"})
        assert book.author == "Unknown Author"
        assert book.total_pages == 0

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError):
            Book.from_dict({"id": "x", "pages": 3})


class TestTimestamps:
    def test_millis_round_trip(self):
        ms = 1_709_294_400_123
        assert to_millis(to_datetime(ms)) == ms

    def test_epoch(self):
        assert to_millis(datetime(1970, 1, 1, tzinfo=timezone.utc)) == 0

    def test_rejects_strings(self):
        with pytest.raises(ValueError):
            to_datetime("2024-01-01")  # type: ignore[arg-type]


class TestBookmark:
    def test_location_cfi(self):
        assert Bookmark(cfi="epubcfi(/6/4)").location == "Location: epubcfi(/6/4)"

    def test_location_page(self):
        assert Bookmark(page=12).location == "Page 12"

    def test_location_unknown(self):
        assert Bookmark().location == "Unknown location"

    def test_factories(self):
        reflow = Bookmark.for_cfi("b1", "epubcfi(/6/4)", note="n")
        fixed = Bookmark.for_page("b1", 7)
        assert reflow.cfi and reflow.page is None and reflow.id
        assert fixed.page == 7 and fixed.cfi is None
        assert reflow.id != fixed.id


class TestAnnotation:
    def test_defaults(self):
        a = Annotation()
        assert a.color == "#FFEB3B"
        assert a.note is None
        assert not a.has_note

    def test_has_note_ignores_blank(self):
        assert not Annotation(note="   ").has_note
        assert Annotation(note="good point").has_note

    def test_preview_text(self):
        assert Annotation(text="short").preview_text == "short"
        preview = Annotation(text="x" * 150).preview_text
        assert preview == "x" * 100 + "..."


class TestCategory:
    def test_defaults(self):
        c = Category()
        assert c.color == "#6200EE"
        assert c.sort_order == 0

    def test_default_categories(self):
        cats = default_categories()
        assert [c.name for c in cats] == [
            "Fiction",
            "Non-Fiction",
            "Science",
            "History",
            "Technology",
        ]
        assert [c.sort_order for c in cats] == list(range(5))
        assert len({c.id for c in cats}) == 5


class TestReadingProgress:
    def test_day(self):
        p = ReadingProgress(date=datetime(2024, 5, 6, 23, 59, tzinfo=timezone.utc))
        assert p.day == date(2024, 5, 6)

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            ReadingProgress(pages_read=-1)


class TestHelpers:
    def test_new_id_unique(self):
        assert len({new_id() for _ in range(100)}) == 100

    @pytest.mark.parametrize("fmt", BOOK_FORMATS)
    def test_detect_format(self, fmt: str):
        assert detect_format(f"/tmp/Book.{fmt.upper()}") == fmt

    def test_detect_format_unsupported(self):
        with pytest.raises(ValueError):
            detect_format("/tmp/notes.txt")
