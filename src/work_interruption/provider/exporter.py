# src/work_interruption/provider/exporter.py

"""
Text export of a single task through a pipe.

The caller gets the read end immediately; a producer thread renders the task
and writes into the other end, then closes it. Length is never known up front.
"""

from __future__ import annotations

import contextlib
import logging
import os
import threading
from dataclasses import dataclass, field
from typing import Any, BinaryIO

from ..tasks.task_models import COL_CATEGORY, COL_STARTED
from .contract import MIMETYPE_TEXT_PLAIN, READ_TASK_PROJECTION
from .errors import ResourceNotFound
from .query import QueryEngine, TaskCursor
from .uri_router import MatchKind, ResourceAddress, UriRouter

logger = logging.getLogger(__name__)

UNKNOWN_LENGTH = -1

EXPORT_ENCODING = "utf-8"

# MIME types a single task can be streamed as.
TASK_STREAM_TYPES: tuple[str, ...] = (MIMETYPE_TEXT_PLAIN,)


def compare_mime_types(concrete: str, desired: str) -> bool:
    """True if `concrete` satisfies `desired` (which may be "*/*" or "type/*")."""
    concrete = concrete.strip().lower()
    desired = desired.strip().lower()
    if desired == "*/*":
        return True
    if desired.endswith("/*"):
        return concrete.split("/", 1)[0] == desired[:-2]
    return concrete == desired


def filter_mime_types(types: tuple[str, ...], mime_filter: str) -> list[str] | None:
    out = [t for t in types if compare_mime_types(t, mime_filter)]
    return out or None


def render_task_text(row: dict[str, Any]) -> str:
    """Category, blank line, started. Not a full dump of the record."""

    def s(v: Any) -> str:
        return "" if v is None else str(v)

    return f"{s(row.get(COL_CATEGORY))}\n\n{s(row.get(COL_STARTED))}\n"


@dataclass
class ExportStream:
    """
    Read end of an export pipe.

    Reads may come back short; read until b"" to get everything.
    """

    stream: BinaryIO
    mime_type: str
    producer: threading.Thread = field(repr=False)
    length: int = UNKNOWN_LENGTH

    def read(self, size: int = -1) -> bytes:
        return self.stream.read(size)

    def read_text(self) -> str:
        return self.stream.read().decode(EXPORT_ENCODING)

    def close(self) -> None:
        self.stream.close()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the producer to finish. Returns False if it is still running."""
        self.producer.join(timeout=timeout)
        return not self.producer.is_alive()

    def __enter__(self) -> ExportStream:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class StreamExporter:
    def __init__(self, router: UriRouter, query_engine: QueryEngine) -> None:
        self._router = router
        self._query = query_engine

    def get_stream_types(self, address: str | ResourceAddress, mime_filter: str) -> list[str] | None:
        """
        MIME types `address` can be streamed as, restricted to `mime_filter`.

        Collections have no stream types (None, not an error).
        Unknown addresses raise InvalidResource.
        """
        if self._router.match(address) is MatchKind.TASKS:
            return None
        return filter_mime_types(TASK_STREAM_TYPES, mime_filter)

    def open_typed_stream(self, address: str | ResourceAddress, mime_filter: str) -> ExportStream:
        mime_types = self.get_stream_types(address, mime_filter)
        if mime_types is None:
            raise ResourceNotFound(f"No stream of type {mime_filter} for {address}")

        canonical = self._router.canonical(address)
        cursor = self._query.query(canonical, projection=READ_TASK_PROJECTION)
        try:
            row = cursor.fetchone()
        except BaseException:
            cursor.close()
            raise
        if row is None:
            cursor.close()
            raise ResourceNotFound(f"Unable to query {canonical}")

        read_fd, write_fd = os.pipe()
        try:
            producer = threading.Thread(
                target=self._write_to_pipe,
                args=(write_fd, cursor, row, canonical),
                name=f"task-export-{canonical.segments[-1]}",
                daemon=True,
            )
            producer.start()
        except BaseException:
            os.close(read_fd)
            os.close(write_fd)
            cursor.close()
            raise

        logger.debug("Export started for %s as %s", canonical, mime_types[0])
        return ExportStream(stream=os.fdopen(read_fd, "rb"), mime_type=mime_types[0], producer=producer)

    @staticmethod
    def _write_to_pipe(write_fd: int, cursor: TaskCursor, row: dict[str, Any], address: ResourceAddress) -> None:
        out = os.fdopen(write_fd, "wb")
        try:
            try:
                payload = render_task_text(row).encode(EXPORT_ENCODING)
            except UnicodeEncodeError:
                # Known weak spot: the reader just sees an empty stream.
                logger.warning("Export of %s could not be encoded as %s.", address, EXPORT_ENCODING, exc_info=True)
                return
            out.write(payload)
            out.flush()
            logger.debug("Export of %s done (%d bytes).", address, len(payload))
        except BrokenPipeError:
            logger.debug("Reader of %s went away before the export finished.", address)
        except OSError:
            logger.exception("Export of %s failed while writing.", address)
        finally:
            cursor.close()
            # The buffer may still hold bytes nobody will read.
            with contextlib.suppress(BrokenPipeError):
                out.close()
