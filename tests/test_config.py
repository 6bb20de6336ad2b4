"""Tests for configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

from bookshelf.config import AppConfig, load_config

_ENV_VARS = (
    "BOOKSHELF_DATA_DIR",
    "BOOKSHELF_STORAGE_BACKEND",
    "BOOKSHELF_LOG_LEVEL",
    "BOOKSHELF_SEED_CATEGORIES",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    # load_dotenv writes into os.environ; registering each name first
    # makes monkeypatch remove it again on teardown
    for name in _ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg-data"))
    monkeypatch.chdir(tmp_path)


class TestAppConfig:
    def test_defaults(self, config: AppConfig, tmp_path: Path):
        assert config.storage_backend == "sqlite"
        assert config.seed_default_categories is True
        assert config.log_level == "INFO"
        assert config.db_path == tmp_path / "data" / "library.db"
        assert config.books_dir == tmp_path / "data" / "books"
        assert config.covers_dir == tmp_path / "data" / "covers"
        assert config.log_path == tmp_path / "data" / "bookshelf.log"

    def test_dirs_created(self, tmp_path: Path):
        data = tmp_path / "data"
        conf = tmp_path / "config"
        AppConfig(data_dir=data, config_dir=conf)
        assert data.exists()
        assert conf.exists()

    def test_xdg_default_location(self, tmp_path: Path):
        config = AppConfig()
        assert config.data_dir == tmp_path / "xdg-data" / "bookshelf"
        assert config.config_dir == tmp_path / "xdg-config" / "bookshelf"

    def test_unknown_backend(self, tmp_path: Path):
        with pytest.raises(ValueError):
            AppConfig(
                data_dir=tmp_path / "d",
                config_dir=tmp_path / "c",
                storage_backend="nosql",
            )


class TestLoadConfig:
    def test_load_from_env_file(self, tmp_path: Path):
        env_file = tmp_path / "custom.env"
        env_file.write_text(
            f"BOOKSHELF_DATA_DIR={tmp_path / 'library'}\n"
            "BOOKSHELF_STORAGE_BACKEND=memory\n"
            "BOOKSHELF_LOG_LEVEL=debug\n"
            "BOOKSHELF_SEED_CATEGORIES=no\n"
        )
        config = load_config(env_path=env_file)
        assert config.data_dir == tmp_path / "library"
        assert config.storage_backend == "memory"
        assert config.log_level == "DEBUG"
        assert config.seed_default_categories is False

    def test_empty_env_file(self, tmp_path: Path):
        env_file = tmp_path / ".env"
        env_file.write_text("")
        config = load_config(env_path=env_file)
        assert config.storage_backend == "sqlite"
        assert config.seed_default_categories is True
        assert config.data_dir == tmp_path / "xdg-data" / "bookshelf"

    def test_environment_wins_over_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ):
        env_file = tmp_path / ".env"
        env_file.write_text("BOOKSHELF_STORAGE_BACKEND=memory\n")
        monkeypatch.setenv("BOOKSHELF_STORAGE_BACKEND", "sqlite")
        assert load_config(env_path=env_file).storage_backend == "sqlite"

    def test_cwd_env_file(self, tmp_path: Path):
        (tmp_path / ".env").write_text("BOOKSHELF_STORAGE_BACKEND=memory\n")
        assert load_config().storage_backend == "memory"

    def test_bad_backend(self, tmp_path: Path):
        env_file = tmp_path / ".env"
        env_file.write_text("BOOKSHELF_STORAGE_BACKEND=postgres\n")
        with pytest.raises(ValueError):
            load_config(env_path=env_file)
