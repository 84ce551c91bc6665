# src/work_interruption/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from ..provider.notifier import ObserverHandle
from ..provider.task_provider import TaskProvider


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: object

    provider: TaskProvider

    # Serializes multi-step console commands (/start = stop + insert).
    lock: threading.Lock = field(default_factory=threading.Lock)

    observers: list[ObserverHandle] = field(default_factory=list)
