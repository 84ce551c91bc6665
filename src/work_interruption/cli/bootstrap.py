# src/work_interruption/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the SQLite handle, notifier and provider into AppState,
- registers the change-log observer.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.state import AppState
from ..provider.contract import PATH_TASK
from ..provider.task_provider import TaskProvider
from ..provider.uri_router import ResourceAddress

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)


def _log_change(address: ResourceAddress) -> None:
    logger.debug("Tasks changed: %s", address)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    provider = TaskProvider.from_settings(settings)
    state = AppState(settings=settings, provider=provider)
    state.observers.append(provider.register_observer(f"/{PATH_TASK}", _log_change))
    return state


def shutdown_state(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    for handle in state.observers:
        state.provider.unregister_observer(handle)
    state.observers.clear()

    try:
        state.provider.close()
    except Exception:
        logger.exception("Provider close failed.")
