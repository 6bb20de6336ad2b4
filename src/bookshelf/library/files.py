"""File storage used by the library service for book and cover files."""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path
from typing import Protocol, Union

from bookshelf.library.errors import IOFailure

log = logging.getLogger(__name__)

PathLike = Union[str, Path]


class FileStorage(Protocol):
    """Async file operations the library service relies on.

    Implementations should report failures as IOFailure. The service also
    tolerates a raw OSError from ``delete``.
    """

    async def copy(self, source: PathLike, destination: PathLike) -> Path: ...

    async def delete(self, path: PathLike) -> None: ...

    async def exists(self, path: PathLike) -> bool: ...

    async def write_bytes(self, path: PathLike, data: bytes) -> Path: ...

    async def ensure_dir(self, path: PathLike) -> Path: ...


class LocalFileStorage:
    """Local filesystem storage. Blocking calls run in a worker thread."""

    async def copy(self, source: PathLike, destination: PathLike) -> Path:
        src, dest = Path(source), Path(destination)
        try:
            await asyncio.to_thread(self._copy, src, dest)
        except OSError as exc:
            raise IOFailure(f"Failed to copy {src} to {dest}: {exc}") from exc
        log.debug("Copied %s -> %s", src, dest)
        return dest

    @staticmethod
    def _copy(src: Path, dest: Path) -> None:
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src, dest)

    async def delete(self, path: PathLike) -> None:
        """Remove a file. A file that is already gone is not an error."""
        target = Path(path)
        try:
            await asyncio.to_thread(target.unlink, missing_ok=True)
        except OSError as exc:
            raise IOFailure(f"Failed to delete {target}: {exc}") from exc
        log.debug("Deleted %s", target)

    async def exists(self, path: PathLike) -> bool:
        return await asyncio.to_thread(Path(path).exists)

    async def write_bytes(self, path: PathLike, data: bytes) -> Path:
        target = Path(path)
        try:
            await asyncio.to_thread(self._write, target, data)
        except OSError as exc:
            raise IOFailure(f"Failed to write {target}: {exc}") from exc
        return target

    @staticmethod
    def _write(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    async def ensure_dir(self, path: PathLike) -> Path:
        target = Path(path)
        try:
            await asyncio.to_thread(target.mkdir, parents=True, exist_ok=True)
        except OSError as exc:
            raise IOFailure(f"Failed to create directory {target}: {exc}") from exc
        return target
