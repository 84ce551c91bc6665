# src/work_interruption/provider/notifier.py

from __future__ import annotations

import asyncio
import itertools
import logging
import queue
import threading
from dataclasses import dataclass

from ..core.ports import ChangeListener
from .uri_router import ResourceAddress

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ObserverHandle:
    id: int
    address: ResourceAddress
    listener: ChangeListener
    notify_for_descendants: bool

    def wants(self, changed: ResourceAddress) -> bool:
        """
        Delivery rule:
        - a change at the watched address itself
        - a change at an ancestor (a bulk write on /tasks may touch /tasks/5)
        - a change below the watched address, if notify_for_descendants
        """
        if self.address.same_path(changed):
            return True
        if changed.is_ancestor_of(self.address):
            return True
        return self.notify_for_descendants and changed.is_descendant_of(self.address)


def _path_only(address: str | ResourceAddress) -> ResourceAddress:
    return ResourceAddress(segments=ResourceAddress.parse(address).segments)


class ChangeNotifier:
    """
    Publishes "address changed" events to registered listeners.

    Design:
    - notify_change() only enqueues; the mutation caller never waits on listeners.
    - One dispatcher thread drains a FIFO queue, so events are delivered in the
      order the writes committed.
    - A listener that raises is logged and skipped; delivery continues.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._observers: dict[int, ObserverHandle] = {}
        self._ids = itertools.count(1)

        self._queue: queue.Queue[ResourceAddress | None] = queue.Queue()
        self._idle = threading.Condition()
        self._pending = 0
        self._stop_requested = False

        self._worker = threading.Thread(target=self._dispatch_loop, name="change-notifier", daemon=True)
        self._worker.start()

    # ---- subscriptions ----

    def register_observer(
        self,
        address: str | ResourceAddress,
        listener: ChangeListener,
        *,
        notify_for_descendants: bool = True,
    ) -> ObserverHandle:
        handle = ObserverHandle(
            id=next(self._ids),
            address=_path_only(address),
            listener=listener,
            notify_for_descendants=bool(notify_for_descendants),
        )
        with self._lock:
            self._observers[handle.id] = handle
        logger.debug("Observer %s registered for %s", handle.id, handle.address)
        return handle

    def unregister_observer(self, handle: ObserverHandle) -> bool:
        with self._lock:
            removed = self._observers.pop(handle.id, None)
        return removed is not None

    def observer_count(self) -> int:
        with self._lock:
            return len(self._observers)

    # ---- publishing ----

    def notify_change(self, address: ResourceAddress) -> None:
        # Accepting an event and queueing the stop sentinel share one lock,
        # so no event can land behind the sentinel.
        with self._idle:
            if self._stop_requested:
                logger.warning("Change for %s dropped: notifier is shut down.", address)
                return
            self._pending += 1
            self._queue.put(_path_only(address))

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until every queued event has been delivered. Returns False on timeout."""
        with self._idle:
            return self._idle.wait_for(lambda: self._pending == 0, timeout=timeout)

    def _dispatch_loop(self) -> None:
        logger.debug("Change notifier thread started.")
        while True:
            item = self._queue.get()
            try:
                if item is None:
                    logger.debug("Change notifier received stop signal.")
                    return
                self._deliver(item)
            finally:
                self._queue.task_done()
                if item is not None:
                    with self._idle:
                        self._pending -= 1
                        self._idle.notify_all()

    def _deliver(self, changed: ResourceAddress) -> None:
        with self._lock:
            targets = [h for h in self._observers.values() if h.wants(changed)]

        logger.debug("Change at %s -> %d observer(s)", changed, len(targets))
        for handle in targets:
            try:
                handle.listener(changed)
            except Exception:
                logger.exception("Change listener %s failed for %s", handle.id, changed)

    def shutdown(self, timeout: float = 2.0) -> None:
        """Deliver what is queued, then stop the dispatcher thread."""
        with self._idle:
            if self._stop_requested:
                return
            self._stop_requested = True
            self._queue.put(None)

        self._worker.join(timeout=timeout)
        logger.debug("Change notifier stopped.")


class AsyncChangeStream:
    """
    Async iterator over change events for one address.

    Listeners run on the dispatcher thread; events are handed to the owning
    event loop with call_soon_threadsafe. Create it from inside the loop.

        async with AsyncChangeStream(notifier, "/tasks") as changes:
            async for address in changes:
                ...
    """

    def __init__(
        self,
        notifier: ChangeNotifier,
        address: str | ResourceAddress,
        *,
        notify_for_descendants: bool = True,
    ) -> None:
        self._loop = asyncio.get_running_loop()
        self._queue: asyncio.Queue[ResourceAddress | None] = asyncio.Queue()
        self._notifier = notifier
        self._closed = False
        self._handle = notifier.register_observer(
            address,
            self._on_change,
            notify_for_descendants=notify_for_descendants,
        )

    def _on_change(self, address: ResourceAddress) -> None:
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, address)
        except RuntimeError:
            # Loop already closed: nobody is listening any more.
            logger.debug("Event loop closed, dropping change for %s", address)

    async def get(self) -> ResourceAddress | None:
        if self._closed and self._queue.empty():
            return None
        return await self._queue.get()

    def __aiter__(self) -> AsyncChangeStream:
        return self

    async def __anext__(self) -> ResourceAddress:
        item = await self.get()
        if item is None:
            raise StopAsyncIteration
        return item

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._notifier.unregister_observer(self._handle)
        self._queue.put_nowait(None)

    async def __aenter__(self) -> AsyncChangeStream:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()
