# tests/conftest.py

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from types import SimpleNamespace

import pytest

from work_interruption.core.state import AppState
from work_interruption.provider.task_provider import TaskProvider
from work_interruption.tasks.task_store import TaskDatabase

from .fakes import RecordingNotifier

TEST_AUTHORITY = "test.workinterruption"


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with TaskProvider and AppState.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="work-interruption-test",
        log_level="DEBUG",
        console_enabled=False,
        authority=TEST_AUTHORITY,
        db_timeout_seconds=5.0,
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
    )


@pytest.fixture()
def db(settings: SimpleNamespace) -> TaskDatabase:
    return TaskDatabase(settings.tasks_db_path, timeout=settings.db_timeout_seconds)


@pytest.fixture()
def provider(settings: SimpleNamespace) -> Iterator[TaskProvider]:
    """Provider with the real threaded notifier."""
    p = TaskProvider.from_settings(settings)
    yield p
    p.close()


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def recording_provider(db: TaskDatabase, notifier: RecordingNotifier) -> TaskProvider:
    """
    Provider whose change events are recorded synchronously.

    NOTE: the real SQLite file is kept; only notification delivery is faked.
    """
    return TaskProvider(db, authority=TEST_AUTHORITY, notifier=notifier)  # type: ignore[arg-type]


@pytest.fixture()
def state(settings: SimpleNamespace, provider: TaskProvider) -> AppState:
    return AppState(settings=settings, provider=provider)
