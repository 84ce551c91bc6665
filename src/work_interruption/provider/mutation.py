# src/work_interruption/provider/mutation.py

from __future__ import annotations

import logging
import sqlite3
import time
from collections.abc import Mapping, Sequence
from typing import Any

from ..core.ports import ChangeSink
from ..tasks.task_models import COL_CATEGORY, COL_STARTED, TABLE_NAME, TaskValues
from ..tasks.task_store import TaskDatabase
from .errors import InvalidResource, InvalidValues, MissingRequiredField, PersistenceFailure
from .query import scoped_selection
from .uri_router import MatchKind, ResourceAddress, UriRouter

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


def _coerce_values(values: TaskValues | Mapping[str, Any] | None) -> TaskValues:
    if values is None:
        raise InvalidValues("Missing values")
    if isinstance(values, TaskValues):
        return values
    return TaskValues.from_mapping(values)


class MutationEngine:
    """
    Insert / update / delete against the tasks table.

    Every call runs in its own write transaction and publishes exactly one
    change event for the address it was called with (insert: the new row's address).
    """

    def __init__(self, db: TaskDatabase, router: UriRouter, notifier: ChangeSink) -> None:
        self._db = db
        self._router = router
        self._notifier = notifier

    def insert(
        self,
        address: str | ResourceAddress,
        values: TaskValues | Mapping[str, Any] | None,
    ) -> ResourceAddress:
        canonical = self._router.canonical(address)
        if self._router.match(canonical) is not MatchKind.TASKS:
            raise InvalidResource(address, "Insert not supported for")

        vals = _coerce_values(values)
        if not vals.has(COL_CATEGORY):
            raise MissingRequiredField(COL_CATEGORY)
        if not vals.has(COL_STARTED):
            vals = vals.with_value(COL_STARTED, now_ms())

        data = vals.as_dict()
        cols = ", ".join(data)
        placeholders = ", ".join("?" for _ in data)
        sql = f"INSERT INTO {TABLE_NAME}({cols}) VALUES ({placeholders})"

        try:
            with self._db.write_session() as conn:
                cur = conn.execute(sql, list(data.values()))
                rowid = cur.lastrowid
                if rowid is None or rowid <= 0:
                    raise PersistenceFailure(f"Failed to insert row into {canonical}")
        except (sqlite3.Error, OverflowError) as e:
            raise PersistenceFailure(f"Failed to insert row into {canonical}: {e}") from e

        task_address = self._router.task_address(int(rowid))
        logger.debug("Task inserted %s values=%s", task_address, data)
        self._notifier.notify_change(task_address)
        return task_address

    def update(
        self,
        address: str | ResourceAddress,
        values: TaskValues | Mapping[str, Any] | None,
        selection: str | None = None,
        selection_args: Sequence[Any] = (),
    ) -> int:
        canonical = self._router.canonical(address)
        where, params = scoped_selection(self._router, canonical, selection, selection_args)

        vals = _coerce_values(values)
        data = vals.as_dict()
        if not data:
            raise InvalidValues(f"Empty values for update of {canonical}")

        assignments = ", ".join(f"{c} = ?" for c in data)
        sql = f"UPDATE {TABLE_NAME} SET {assignments}"
        if where is not None:
            sql += f" WHERE {where}"

        try:
            with self._db.write_session() as conn:
                count = conn.execute(sql, [*data.values(), *params]).rowcount
        except (sqlite3.Error, OverflowError) as e:
            raise PersistenceFailure(f"Failed to update {canonical}: {e}") from e

        logger.debug("Tasks updated %s count=%s values=%s", canonical, count, data)
        # Fires even when nothing matched.
        self._notifier.notify_change(canonical)
        return int(count)

    def delete(
        self,
        address: str | ResourceAddress,
        selection: str | None = None,
        selection_args: Sequence[Any] = (),
    ) -> int:
        canonical = self._router.canonical(address)
        where, params = scoped_selection(self._router, canonical, selection, selection_args)

        sql = f"DELETE FROM {TABLE_NAME}"
        if where is not None:
            sql += f" WHERE {where}"

        try:
            with self._db.write_session() as conn:
                count = conn.execute(sql, params).rowcount
        except (sqlite3.Error, OverflowError) as e:
            raise PersistenceFailure(f"Failed to delete {canonical}: {e}") from e

        logger.debug("Tasks deleted %s count=%s", canonical, count)
        # Fires even when nothing matched.
        self._notifier.notify_change(canonical)
        return int(count)
