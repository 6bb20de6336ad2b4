"""Shared fixtures for tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio

from bookshelf.config import AppConfig
from bookshelf.library.files import LocalFileStorage
from bookshelf.library.models import Book, new_id
from bookshelf.library.service import LibraryService
from bookshelf.library.storage.base import StorageBackend, create_backend

BACKENDS = ["sqlite", "memory"]

T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_book(
    title: str = "Test Book",
    author: str = "Author",
    added_at: datetime = T0,
    **kwargs,
) -> Book:
    kwargs.setdefault("id", new_id())
    kwargs.setdefault("file_path", f"/books/{title}.epub")
    return Book(title=title, author=author, added_at=added_at, **kwargs)


def at(minutes: int) -> datetime:
    return T0 + timedelta(minutes=minutes)


def _new_backend(name: str, tmp_path: Path) -> StorageBackend:
    if name == "sqlite":
        return create_backend("sqlite", db_path=tmp_path / "test.db")
    return create_backend(name)


@pytest.fixture(params=BACKENDS)
def backend_name(request) -> str:
    return request.param


@pytest_asyncio.fixture
async def storage(backend_name: str, tmp_path: Path) -> StorageBackend:
    backend = _new_backend(backend_name, tmp_path)
    await backend.init()
    yield backend
    await backend.close()


@pytest.fixture
def fresh_storage(backend_name: str, tmp_path: Path) -> StorageBackend:
    """A backend that has not been initialised."""
    return _new_backend(backend_name, tmp_path)


@pytest_asyncio.fixture
async def library(storage: StorageBackend, tmp_path: Path) -> LibraryService:
    service = LibraryService(
        storage,
        LocalFileStorage(),
        books_dir=tmp_path / "books",
        covers_dir=tmp_path / "covers",
    )
    await service.initialize()
    return service


@pytest.fixture
def config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        data_dir=tmp_path / "data",
        config_dir=tmp_path / "config",
    )
