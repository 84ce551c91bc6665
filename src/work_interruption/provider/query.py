# src/work_interruption/provider/query.py

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable, Iterator, Sequence
from typing import Any

from ..tasks.task_models import ALL_COLUMNS, COL_ID, INT_MAX, TABLE_NAME
from ..tasks.task_store import TaskDatabase
from .contract import DEFAULT_SORT_ORDER
from .errors import InvalidSortOrder, PersistenceFailure
from .uri_router import MatchKind, ResourceAddress, UriRouter

logger = logging.getLogger(__name__)

Row = dict[str, Any]

_DIRECTIONS = {"ASC", "DESC"}


def scoped_selection(
    router: UriRouter,
    address: str | ResourceAddress,
    selection: str | None,
    selection_args: Sequence[Any] = (),
) -> tuple[str | None, list[Any]]:
    """
    Final WHERE clause + parameters for an address.

    For a single-task address the id predicate always applies; the caller's
    predicate is ANDed in parentheses so an OR inside it cannot widen the match.
    """
    kind = router.match(address)
    args = list(selection_args or ())
    where = selection.strip() if selection and selection.strip() else None

    if kind is MatchKind.TASKS:
        return where, args

    task_id = router.task_id(address)
    if task_id > INT_MAX:
        # No row can carry this id; match nothing instead of binding it.
        id_clause, params = "0", args
    else:
        id_clause, params = f"{COL_ID} = ?", [task_id, *args]
    if where is None:
        return id_clause, params
    return f"{id_clause} AND ({where})", params


def narrow_projection(projection: Iterable[str] | None) -> tuple[str, ...]:
    """Keep only allow-listed columns, in the caller's order, without duplicates."""
    if projection is None:
        return ALL_COLUMNS

    names = list(projection)
    out: list[str] = []
    for name in names:
        if name in ALL_COLUMNS and name not in out:
            out.append(name)

    if not out:
        logger.warning("Projection %r has no known columns; returning all columns.", names)
        return ALL_COLUMNS
    return tuple(out)


def normalize_sort_order(sort_order: str | None) -> str:
    if sort_order is None or not sort_order.strip():
        return DEFAULT_SORT_ORDER

    terms: list[str] = []
    for raw_term in sort_order.split(","):
        tokens = raw_term.split()
        if not tokens or len(tokens) > 2:
            raise InvalidSortOrder(f"Bad sort term {raw_term.strip()!r} in {sort_order!r}")

        column = tokens[0]
        if column not in ALL_COLUMNS:
            raise InvalidSortOrder(f"Cannot sort by unknown column {column!r}")

        if len(tokens) == 2:
            direction = tokens[1].upper()
            if direction not in _DIRECTIONS:
                raise InvalidSortOrder(f"Bad sort direction {tokens[1]!r}")
            terms.append(f"{column} {direction}")
        else:
            terms.append(column)

    return ", ".join(terms)


class TaskCursor:
    """
    Lazy, single-pass result of a query.

    Owns its connection: rows are pulled from SQLite as the caller iterates,
    and the connection is released on close() or when the rows run out.
    Not restartable; re-issue the query to read again.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        cur: sqlite3.Cursor,
        columns: tuple[str, ...],
    ) -> None:
        self._conn: sqlite3.Connection | None = conn
        self._cur: sqlite3.Cursor | None = cur
        self.columns = columns
        self.notification_address: ResourceAddress | None = None

    def set_notification_address(self, address: ResourceAddress) -> None:
        """Tag which address a change observer should watch to know this result went stale."""
        self.notification_address = address

    @property
    def closed(self) -> bool:
        return self._conn is None

    def fetchone(self) -> Row | None:
        if self._cur is None:
            return None
        row = self._cur.fetchone()
        if row is None:
            self.close()
            return None
        return dict(row)

    def fetchall(self) -> list[Row]:
        return list(self)

    def __iter__(self) -> Iterator[Row]:
        while True:
            row = self.fetchone()
            if row is None:
                return
            yield row

    def close(self) -> None:
        conn, self._conn = self._conn, None
        self._cur = None
        if conn is not None:
            conn.close()

    def __enter__(self) -> TaskCursor:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __del__(self) -> None:
        # Last resort for cursors the caller forgot about.
        if getattr(self, "_conn", None) is not None:
            self.close()


class QueryEngine:
    def __init__(self, db: TaskDatabase, router: UriRouter) -> None:
        self._db = db
        self._router = router

    def query(
        self,
        address: str | ResourceAddress,
        projection: Iterable[str] | None = None,
        selection: str | None = None,
        selection_args: Sequence[Any] = (),
        sort_order: str | None = None,
    ) -> TaskCursor:
        """
        Read tasks at `address`.

        Unknown projection columns are dropped; a missing sort order means
        newest-started first. Raises InvalidResource for unknown addresses,
        InvalidSortOrder for bad sort terms and PersistenceFailure when SQLite
        rejects the statement (e.g. a malformed selection).
        """
        canonical = self._router.canonical(address)
        where, params = scoped_selection(self._router, canonical, selection, selection_args)
        columns = narrow_projection(projection)
        order_by = normalize_sort_order(sort_order)

        sql = f"SELECT {', '.join(columns)} FROM {TABLE_NAME}"
        if where is not None:
            sql += f" WHERE {where}"
        sql += f" ORDER BY {order_by}"

        conn = self._db.connect()
        try:
            cur = conn.execute(sql, params)
        except (sqlite3.Error, OverflowError) as e:
            conn.close()
            raise PersistenceFailure(f"Query failed for {canonical}: {e}") from e
        except BaseException:
            conn.close()
            raise

        logger.debug("query %s columns=%s where=%s order=%s", canonical, columns, where, order_by)
        cursor = TaskCursor(conn, cur, columns)
        cursor.set_notification_address(canonical)
        return cursor
