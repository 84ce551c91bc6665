# src/work_interruption/core/ports.py

"""
Ports (interfaces) used by the provider and its callers.

The engines depend on Protocols instead of concrete implementations.
This keeps the notifier swappable and makes testing easier.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from ..provider.exporter import ExportStream
    from ..provider.notifier import ObserverHandle
    from ..provider.query import TaskCursor
    from ..provider.uri_router import ResourceAddress
    from ..tasks.task_models import TaskValues

ChangeListener = Callable[["ResourceAddress"], None]


class ChangeSink(Protocol):
    """Where the mutation engine publishes "address changed" after a write."""

    def notify_change(self, address: ResourceAddress) -> None: ...


class ChangeSubscriptions(Protocol):
    """Collaborator-side port: UI layers register interest in an address."""

    def register_observer(
            self,
            address: str | ResourceAddress,
            listener: ChangeListener,
            *,
            notify_for_descendants: bool = True,
    ) -> ObserverHandle: ...

    def unregister_observer(self, handle: ObserverHandle) -> bool: ...


class TaskResolver(Protocol):
    """What front ends (console, tests) need from the provider."""

    def query(
            self,
            address: str | ResourceAddress,
            projection: Iterable[str] | None = None,
            selection: str | None = None,
            selection_args: Sequence[Any] = (),
            sort_order: str | None = None,
    ) -> TaskCursor: ...

    def get_type(self, address: str | ResourceAddress) -> str: ...

    def insert(
            self,
            address: str | ResourceAddress,
            values: TaskValues | dict[str, Any],
    ) -> ResourceAddress: ...

    def update(
            self,
            address: str | ResourceAddress,
            values: TaskValues | dict[str, Any],
            selection: str | None = None,
            selection_args: Sequence[Any] = (),
    ) -> int: ...

    def delete(
            self,
            address: str | ResourceAddress,
            selection: str | None = None,
            selection_args: Sequence[Any] = (),
    ) -> int: ...

    def open_typed_stream(self, address: str | ResourceAddress, mime_filter: str) -> ExportStream: ...
