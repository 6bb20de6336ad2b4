"""Configuration management via .env file."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

STORAGE_BACKENDS = ("sqlite", "memory")


def _xdg_data_home() -> Path:
    return Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))


def _xdg_config_home() -> Path:
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class AppConfig:
    # Paths
    data_dir: Path = field(default_factory=lambda: _xdg_data_home() / "bookshelf")
    config_dir: Path = field(default_factory=lambda: _xdg_config_home() / "bookshelf")
    db_path: Path = field(init=False)
    books_dir: Path = field(init=False)
    covers_dir: Path = field(init=False)
    log_path: Path = field(init=False)

    # Storage
    storage_backend: str = "sqlite"  # sqlite, memory
    seed_default_categories: bool = True

    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.storage_backend not in STORAGE_BACKENDS:
            raise ValueError(
                f"Unknown storage backend: {self.storage_backend}. "
                f"Available: {', '.join(STORAGE_BACKENDS)}"
            )
        self.data_dir = Path(self.data_dir)
        self.config_dir = Path(self.config_dir)
        self.db_path = self.data_dir / "library.db"
        self.books_dir = self.data_dir / "books"
        self.covers_dir = self.data_dir / "covers"
        self.log_path = self.data_dir / "bookshelf.log"
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.config_dir.mkdir(parents=True, exist_ok=True)


def load_config(env_path: Optional[Path] = None) -> AppConfig:
    """Load config from .env file. Searches CWD then config dir."""
    search_paths = [
        env_path,
        Path.cwd() / ".env",
        _xdg_config_home() / "bookshelf" / ".env",
        Path.home() / ".env",
    ]
    for p in search_paths:
        if p and p.exists():
            load_dotenv(p)
            break

    kwargs = {}
    data_dir = os.getenv("BOOKSHELF_DATA_DIR")
    if data_dir:
        kwargs["data_dir"] = Path(data_dir).expanduser()

    return AppConfig(
        storage_backend=os.getenv("BOOKSHELF_STORAGE_BACKEND", "sqlite"),
        seed_default_categories=_env_flag("BOOKSHELF_SEED_CATEGORIES", True),
        log_level=os.getenv("BOOKSHELF_LOG_LEVEL", "INFO").upper(),
        **kwargs,
    )
