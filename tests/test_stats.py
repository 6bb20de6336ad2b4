"""Tests for reading statistics."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from bookshelf.library.models import Book, ReadingProgress
from bookshelf.library.stats import (
    DailyTotals,
    aggregate_by_day,
    calculate_totals,
    count_books_read,
    format_reading_time,
    library_summary,
    reading_streaks,
)
from bookshelf.library.storage.base import ReadingTotals

TODAY = date(2024, 3, 10)


def _session(
    day: date, pages: int = 1, minutes: int = 1, hour: int = 12
) -> ReadingProgress:
    return ReadingProgress(
        book_id="b1",
        date=datetime(day.year, day.month, day.day, hour, tzinfo=timezone.utc),
        pages_read=pages,
        time_spent=minutes,
    )


def _days_ago(n: int) -> date:
    return TODAY - timedelta(days=n)


class TestTotals:
    def test_sums(self):
        sessions = [_session(TODAY, 10, 5), _session(TODAY, 20, 15)]
        assert calculate_totals(sessions) == ReadingTotals(
            total_time=20, total_pages=30
        )

    def test_empty(self):
        assert calculate_totals([]) == ReadingTotals(0, 0)


class TestAggregateByDay:
    def test_groups_by_calendar_day(self):
        sessions = [
            _session(_days_ago(1), 5, 10, hour=8),
            _session(TODAY, 3, 4),
            _session(_days_ago(1), 7, 20, hour=23),
        ]
        daily = aggregate_by_day(sessions)
        assert list(daily) == [_days_ago(1), TODAY]
        assert daily[_days_ago(1)] == DailyTotals(pages_read=12, time_spent=30)
        assert daily[TODAY] == DailyTotals(pages_read=3, time_spent=4)


class TestStreaks:
    def test_no_history(self):
        assert reading_streaks([], TODAY) == (0, 0)

    def test_current_run_ending_today(self):
        sessions = [_session(_days_ago(n)) for n in (0, 1, 2)]
        assert reading_streaks(sessions, TODAY) == (3, 3)

    def test_run_ending_yesterday_still_current(self):
        sessions = [_session(_days_ago(n)) for n in (1, 2)]
        assert reading_streaks(sessions, TODAY) == (2, 2)

    def test_broken_streak(self):
        sessions = [_session(_days_ago(n)) for n in (3, 4, 5, 6)]
        assert reading_streaks(sessions, TODAY) == (0, 4)

    def test_longest_in_the_past(self):
        days = (0, 5, 6, 7, 8)
        sessions = [_session(_days_ago(n)) for n in days]
        assert reading_streaks(sessions, TODAY) == (1, 4)

    def test_several_sessions_one_day(self):
        sessions = [_session(TODAY), _session(TODAY, hour=20)]
        assert reading_streaks(sessions, TODAY) == (1, 1)

    def test_empty_sessions_ignored(self):
        sessions = [_session(TODAY, pages=0, minutes=0), _session(_days_ago(1))]
        assert reading_streaks(sessions, TODAY) == (1, 1)


class TestBooksRead:
    @pytest.mark.parametrize(
        "current,total,counted",
        [
            (90, 100, True),
            (89, 100, False),
            (100, 100, True),
            (0, 0, False),
            (5, 0, True),
        ],
    )
    def test_threshold(self, current: int, total: int, counted: bool):
        book = Book(current_page=current, total_pages=total)
        assert count_books_read([book]) == int(counted)


class TestLibrarySummary:
    def test_summary(self):
        books = [
            Book(id="b1", total_pages=100, current_page=100),
            Book(id="b2", total_pages=100, current_page=20),
        ]
        sessions = [
            _session(TODAY, 10, 30),
            _session(_days_ago(1), 20, 45),
            _session(_days_ago(10), 5, 5),
        ]
        stats = library_summary(books, sessions, TODAY)
        assert stats.total_books == 2
        assert stats.books_read == 1
        assert stats.total_reading_time == 80
        assert stats.total_pages == 35
        assert stats.pages_read_today == 10
        assert (stats.current_streak, stats.longest_streak) == (2, 2)
        assert list(stats.weekly_progress) == [_days_ago(n) for n in range(6, -1, -1)]
        assert stats.weekly_progress[_days_ago(1)].time_spent == 45
        assert stats.weekly_progress[_days_ago(3)] == DailyTotals()

    def test_empty_library(self):
        stats = library_summary([], [], TODAY)
        assert stats.total_books == 0
        assert stats.current_streak == 0
        assert all(t == DailyTotals() for t in stats.weekly_progress.values())


class TestFormatReadingTime:
    @pytest.mark.parametrize(
        "minutes,expected",
        [(0, "0m"), (45, "45m"), (60, "1h 0m"), (135, "2h 15m"), (-5, "0m")],
    )
    def test_format(self, minutes: int, expected: str):
        assert format_reading_time(minutes) == expected
