# src/work_interruption/tasks/task_api.py

from __future__ import annotations

import logging

from ..core.ports import TaskResolver
from ..provider.contract import MIMETYPE_TEXT_PLAIN, PATH_TASK
from ..provider.mutation import now_ms
from ..provider.uri_router import ResourceAddress
from .task_models import COL_CATEGORY, COL_DURATION, COL_STARTED, Task, TaskValues

logger = logging.getLogger(__name__)

TASKS_ADDRESS = f"/{PATH_TASK}"


def task_address(task_id: int) -> str:
    return f"{TASKS_ADDRESS}/{int(task_id)}"


def get_task(resolver: TaskResolver, task_id: int) -> Task | None:
    with resolver.query(task_address(task_id)) as cursor:
        row = cursor.fetchone()
    return Task.from_row(row) if row else None


def list_tasks(resolver: TaskResolver, *, category: str | None = None, limit: int | None = None) -> list[Task]:
    """Tasks in default order (newest started first), optionally one category only."""
    selection = f"{COL_CATEGORY} = ?" if category else None
    args = (category,) if category else ()

    out: list[Task] = []
    with resolver.query(TASKS_ADDRESS, selection=selection, selection_args=args) as cursor:
        for row in cursor:
            out.append(Task.from_row(row))
            if limit is not None and len(out) >= limit:
                break
    return out


def find_open_task(resolver: TaskResolver) -> Task | None:
    """The most recently started task that has no duration yet."""
    with resolver.query(TASKS_ADDRESS, selection=f"{COL_DURATION} IS NULL") as cursor:
        row = cursor.fetchone()
    return Task.from_row(row) if row else None


def stop_open_task(resolver: TaskResolver, *, at_ms: int | None = None) -> Task | None:
    """
    Close the open task by setting its duration to (at_ms - started).

    Returns the closed task, or None if nothing was open.
    """
    task = find_open_task(resolver)
    if task is None:
        return None

    at = now_ms() if at_ms is None else int(at_ms)
    duration = max(0, at - (task.started or at))
    resolver.update(task_address(task.id), TaskValues(duration=duration))
    task.duration = duration
    logger.info("Task %s (%s) closed after %d ms", task.id, task.category, duration)
    return task


def start_task(resolver: TaskResolver, category: str, *, at_ms: int | None = None) -> ResourceAddress:
    """
    Toggle into `category`: close whatever is open, then record a new task.

    Without at_ms the store stamps `started` itself.
    """
    stop_open_task(resolver, at_ms=at_ms)

    values = TaskValues(category=category)
    if at_ms is not None:
        values = values.with_value(COL_STARTED, int(at_ms))

    address = resolver.insert(TASKS_ADDRESS, values)
    logger.info("Task started %s category=%s", address, category)
    return address


def export_task_text(resolver: TaskResolver, task_id: int, *, timeout: float = 5.0) -> str:
    """Read the text/plain export of one task to the end."""
    with resolver.open_typed_stream(task_address(task_id), MIMETYPE_TEXT_PLAIN) as stream:
        text = stream.read_text()
        stream.join(timeout=timeout)
    return text
