# tests/test_config.py

from __future__ import annotations

from pathlib import Path

import pytest

from work_interruption.config import DEFAULT_AUTHORITY, Settings

_VARS = (
    "WI_APP_NAME",
    "WI_LOG_LEVEL",
    "WI_CONSOLE_ENABLED",
    "WI_AUTHORITY",
    "WI_DB_TIMEOUT",
    "WI_DATA_DIR",
    "WI_TASKS_DB_PATH",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    s = Settings.from_env()

    assert s.app_name == "work-interruption"
    assert s.log_level == "INFO"
    assert s.console_enabled is True
    assert s.authority == DEFAULT_AUTHORITY
    assert s.db_timeout_seconds == 30.0
    assert s.data_dir == Path(".local/work_interruption")
    assert s.tasks_db_path == Path(".local/work_interruption/tasks.sqlite3")


def test_env_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("WI_CONSOLE_ENABLED", "off")
    monkeypatch.setenv("WI_AUTHORITY", "example.tasks")
    monkeypatch.setenv("WI_DB_TIMEOUT", "2.5")
    monkeypatch.setenv("WI_DATA_DIR", str(tmp_path))

    s = Settings.from_env()

    assert s.console_enabled is False
    assert s.authority == "example.tasks"
    assert s.db_timeout_seconds == 2.5
    assert s.tasks_db_path == tmp_path / "tasks.sqlite3"


def test_bad_numbers_fall_back(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WI_DB_TIMEOUT", "soon")
    assert Settings.from_env().db_timeout_seconds == 30.0

    monkeypatch.setenv("WI_DB_TIMEOUT", "-4")
    assert Settings.from_env().db_timeout_seconds == 0.0


def test_blank_authority_uses_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WI_AUTHORITY", "   ")
    assert Settings.from_env().authority == DEFAULT_AUTHORITY
