"""Reading statistics folded from the session history.

Everything here is a pure function over data the caller has already loaded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, Optional

from .models import Book, ReadingProgress, utcnow
from .storage.base import ReadingTotals

# Share of pages after which a book counts as read in the summary
BOOK_READ_THRESHOLD = 0.9


@dataclass
class DailyTotals:
    pages_read: int = 0
    time_spent: int = 0


@dataclass
class LibraryStats:
    total_books: int = 0
    books_read: int = 0
    total_reading_time: int = 0
    total_pages: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    pages_read_today: int = 0
    weekly_progress: dict[date, DailyTotals] = field(default_factory=dict)


def calculate_totals(progress: Iterable[ReadingProgress]) -> ReadingTotals:
    total_time = 0
    total_pages = 0
    for p in progress:
        total_time += p.time_spent
        total_pages += p.pages_read
    return ReadingTotals(total_time=total_time, total_pages=total_pages)


def aggregate_by_day(progress: Iterable[ReadingProgress]) -> dict[date, DailyTotals]:
    """Group sessions by calendar day, in order of first appearance."""
    days: dict[date, DailyTotals] = {}
    for p in progress:
        totals = days.setdefault(p.day, DailyTotals())
        totals.pages_read += p.pages_read
        totals.time_spent += p.time_spent
    return days


def reading_streaks(
    progress: Iterable[ReadingProgress], today: Optional[date] = None
) -> tuple[int, int]:
    """Return (current, longest) runs of consecutive reading days.

    The current streak stays alive until a full day passes without reading.
    """
    today = today or utcnow().date()
    days = sorted(
        d for d, t in aggregate_by_day(progress).items() if t.time_spent or t.pages_read
    )
    if not days:
        return 0, 0

    longest = run = 1
    for prev, cur in zip(days, days[1:]):
        run = run + 1 if cur - prev == timedelta(days=1) else 1
        longest = max(longest, run)

    current = 0
    if today - days[-1] <= timedelta(days=1):
        current = 1
        for prev, cur in zip(reversed(days[:-1]), reversed(days[1:])):
            if cur - prev != timedelta(days=1):
                break
            current += 1
    return current, longest


def count_books_read(books: Iterable[Book]) -> int:
    return sum(
        1
        for b in books
        if b.current_page > 0 and b.current_page >= b.total_pages * BOOK_READ_THRESHOLD
    )


def library_summary(
    books: Iterable[Book],
    progress: Iterable[ReadingProgress],
    today: Optional[date] = None,
) -> LibraryStats:
    books = list(books)
    progress = list(progress)
    today = today or utcnow().date()
    totals = calculate_totals(progress)
    daily = aggregate_by_day(progress)
    current, longest = reading_streaks(progress, today)

    week_start = today - timedelta(days=6)
    week = [week_start + timedelta(days=i) for i in range(7)]
    weekly = {d: daily.get(d, DailyTotals()) for d in week}
    return LibraryStats(
        total_books=len(books),
        books_read=count_books_read(books),
        total_reading_time=totals.total_time,
        total_pages=totals.total_pages,
        current_streak=current,
        longest_streak=longest,
        pages_read_today=daily.get(today, DailyTotals()).pages_read,
        weekly_progress=weekly,
    )


def format_reading_time(minutes: int) -> str:
    hours, mins = divmod(max(0, minutes), 60)
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins}m"
