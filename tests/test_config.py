"""Tests for the config module."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

from taskblast.config import (
    get_db_path,
    get_store_path,
    load_config,
    reset_paths,
    save_config,
    set_db_path,
    set_store_path,
)
from taskblast.models import AppConfig


def _patch_config_paths(tmp_path: Path):
    """Return context managers that redirect the config and data dirs to tmp_path."""
    cfg_dir = tmp_path / "config"
    return (
        patch("taskblast.config._CONFIG_DIR", cfg_dir),
        patch("taskblast.config._CONFIG_FILE", cfg_dir / "config.json"),
        patch("taskblast.config._DATA_DIR", tmp_path / "data"),
    )


class TestLoadSaveConfig:
    def test_load_default_when_missing(self, tmp_path: Path) -> None:
        p1, p2, p3 = _patch_config_paths(tmp_path)
        with p1, p2, p3:
            config = load_config()
            assert config.db_path is None
            assert config.store_path is None

    def test_save_and_load_roundtrip(self, tmp_path: Path) -> None:
        p1, p2, p3 = _patch_config_paths(tmp_path)
        with p1, p2, p3:
            path = save_config(AppConfig(db_path="/tmp/test.db"))
            assert path.exists()
            assert load_config().db_path == "/tmp/test.db"

    def test_load_handles_corrupt_file(self, tmp_path: Path) -> None:
        p1, p2, p3 = _patch_config_paths(tmp_path)
        with p1, p2, p3:
            cfg_dir = tmp_path / "config"
            cfg_dir.mkdir(parents=True, exist_ok=True)
            (cfg_dir / "config.json").write_text("not valid json{{{")
            assert load_config().db_path is None


class TestPaths:
    def test_defaults(self, tmp_path: Path) -> None:
        p1, p2, p3 = _patch_config_paths(tmp_path)
        with p1, p2, p3:
            assert get_db_path() == tmp_path / "data" / "taskblast.db"
            assert get_store_path() == tmp_path / "data" / "store.json"

    def test_set_db_path(self, tmp_path: Path) -> None:
        p1, p2, p3 = _patch_config_paths(tmp_path)
        with p1, p2, p3:
            target = tmp_path / "elsewhere" / "tasks.db"
            config = set_db_path(str(target))
            assert config.db_path == str(target.resolve())
            assert get_db_path() == target.resolve()

    def test_directory_gets_default_name(self, tmp_path: Path) -> None:
        p1, p2, p3 = _patch_config_paths(tmp_path)
        with p1, p2, p3:
            folder = tmp_path / "sync"
            folder.mkdir()
            config = set_store_path(str(folder))
            assert config.store_path == str(folder.resolve() / "store.json")

    def test_reset(self, tmp_path: Path) -> None:
        p1, p2, p3 = _patch_config_paths(tmp_path)
        with p1, p2, p3:
            set_db_path(str(tmp_path / "x.db"))
            set_store_path(str(tmp_path / "x.json"))
            config = reset_paths()
            assert config.db_path is None
            assert config.store_path is None
            assert load_config().db_path is None
