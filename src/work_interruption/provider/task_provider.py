# src/work_interruption/provider/task_provider.py

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from ..core.ports import ChangeListener
from ..tasks.task_models import TaskValues
from ..tasks.task_store import TaskDatabase
from .exporter import ExportStream, StreamExporter
from .mutation import MutationEngine
from .notifier import ChangeNotifier, ObserverHandle
from .query import QueryEngine, TaskCursor
from .uri_router import ResourceAddress, UriRouter

logger = logging.getLogger(__name__)


class TaskProvider:
    """
    Addressable access layer in front of the tasks table.

    Addresses:
    - /tasks       collection (query, insert, bulk update/delete)
    - /tasks/{id}  single task (query, update, delete, text export)

    Stateless between calls: each operation opens and releases its own
    SQLite connection, so one provider can be shared by any number of threads.
    """

    def __init__(
        self,
        db: TaskDatabase,
        *,
        authority: str,
        notifier: ChangeNotifier | None = None,
    ) -> None:
        self._db = db
        self._owns_notifier = notifier is None
        self.notifier = notifier if notifier is not None else ChangeNotifier()
        self.router = UriRouter(authority)

        self._queries = QueryEngine(db, self.router)
        self._mutations = MutationEngine(db, self.router, self.notifier)
        self._exporter = StreamExporter(self.router, self._queries)

    @classmethod
    def from_settings(cls, settings, *, notifier: ChangeNotifier | None = None) -> TaskProvider:
        db = TaskDatabase(
            settings.tasks_db_path,
            timeout=float(getattr(settings, "db_timeout_seconds", 30.0)),
        )
        return cls(db, authority=settings.authority, notifier=notifier)

    @property
    def db(self) -> TaskDatabase:
        return self._db

    # ---- reads ----

    def query(
        self,
        address: str | ResourceAddress,
        projection: Iterable[str] | None = None,
        selection: str | None = None,
        selection_args: Sequence[Any] = (),
        sort_order: str | None = None,
    ) -> TaskCursor:
        return self._queries.query(address, projection, selection, selection_args, sort_order)

    def get_type(self, address: str | ResourceAddress) -> str:
        return self.router.get_type(address)

    def get_stream_types(self, address: str | ResourceAddress, mime_filter: str) -> list[str] | None:
        return self._exporter.get_stream_types(address, mime_filter)

    def open_typed_stream(self, address: str | ResourceAddress, mime_filter: str) -> ExportStream:
        return self._exporter.open_typed_stream(address, mime_filter)

    # ---- writes ----

    def insert(
        self,
        address: str | ResourceAddress,
        values: TaskValues | Mapping[str, Any] | None,
    ) -> ResourceAddress:
        return self._mutations.insert(address, values)

    def update(
        self,
        address: str | ResourceAddress,
        values: TaskValues | Mapping[str, Any] | None,
        selection: str | None = None,
        selection_args: Sequence[Any] = (),
    ) -> int:
        return self._mutations.update(address, values, selection, selection_args)

    def delete(
        self,
        address: str | ResourceAddress,
        selection: str | None = None,
        selection_args: Sequence[Any] = (),
    ) -> int:
        return self._mutations.delete(address, selection, selection_args)

    # ---- change subscriptions ----

    def register_observer(
        self,
        address: str | ResourceAddress,
        listener: ChangeListener,
        *,
        notify_for_descendants: bool = True,
    ) -> ObserverHandle:
        canonical = self.router.canonical(address)
        return self.notifier.register_observer(canonical, listener, notify_for_descendants=notify_for_descendants)

    def unregister_observer(self, handle: ObserverHandle) -> bool:
        return self.notifier.unregister_observer(handle)

    def close(self) -> None:
        if self._owns_notifier:
            self.notifier.shutdown()
        self._db.close()
        logger.debug("TaskProvider closed.")
