# src/work_interruption/provider/uri_router.py

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlsplit

from .contract import CONTENT_ITEM_TYPE, CONTENT_TYPE, PATH_POSITION_TASK_ID, PATH_TASK, SCHEME
from .errors import InvalidResource

# Numeric path segment wildcard (as in Android's UriMatcher).
_NUMBER = "#"


class MatchKind(Enum):
    TASKS = "tasks"
    TASK_ID = "task_id"


@dataclass(frozen=True, slots=True)
class ResourceAddress:
    """
    Logical address of a record or collection.

    Only the path segments take part in routing and notification fan-out;
    the authority is checked once by the router and then dropped.
    """

    segments: tuple[str, ...]
    authority: str | None = None

    @classmethod
    def parse(cls, raw: str | ResourceAddress) -> ResourceAddress:
        if isinstance(raw, ResourceAddress):
            return raw
        if not isinstance(raw, str):
            raise InvalidResource(raw)

        parts = urlsplit(raw.strip())
        if parts.scheme and parts.scheme != SCHEME:
            raise InvalidResource(raw, "Unsupported scheme in")
        if parts.query or parts.fragment:
            raise InvalidResource(raw)

        segments = tuple(s for s in parts.path.split("/") if s)
        return cls(segments=segments, authority=parts.netloc or None)

    def with_appended_id(self, row_id: int) -> ResourceAddress:
        return ResourceAddress(segments=(*self.segments, str(int(row_id))), authority=self.authority)

    def is_ancestor_of(self, other: ResourceAddress) -> bool:
        n = len(self.segments)
        return n < len(other.segments) and other.segments[:n] == self.segments

    def is_descendant_of(self, other: ResourceAddress) -> bool:
        return other.is_ancestor_of(self)

    def same_path(self, other: ResourceAddress) -> bool:
        return self.segments == other.segments

    def __str__(self) -> str:
        path = "/" + "/".join(self.segments)
        if self.authority:
            return f"{SCHEME}://{self.authority}{path}"
        return path


def _segment_matches(pattern: str, segment: str) -> bool:
    if pattern == _NUMBER:
        return segment.isdigit() and segment.isascii()
    return pattern == segment


class UriRouter:
    """
    Classifies an address into a MatchKind.

    The match table is built once in __init__ and never mutated afterwards,
    so a single router can be shared between threads without locking.
    """

    def __init__(self, authority: str) -> None:
        self._authority = authority
        self._table: tuple[tuple[tuple[str, ...], MatchKind], ...] = (
            ((PATH_TASK,), MatchKind.TASKS),
            ((PATH_TASK, _NUMBER), MatchKind.TASK_ID),
        )

    @property
    def authority(self) -> str:
        return self._authority

    @property
    def collection_address(self) -> ResourceAddress:
        return ResourceAddress(segments=(PATH_TASK,))

    def canonical(self, raw: str | ResourceAddress) -> ResourceAddress:
        """Parse, check the authority, and return a path-only address."""
        address = ResourceAddress.parse(raw)
        if address.authority is not None and address.authority != self._authority:
            raise InvalidResource(raw, "Unknown authority in")
        if address.authority is None:
            return address
        return ResourceAddress(segments=address.segments)

    def match(self, raw: str | ResourceAddress) -> MatchKind:
        address = self.canonical(raw)
        for pattern, kind in self._table:
            if len(pattern) != len(address.segments):
                continue
            if all(_segment_matches(p, s) for p, s in zip(pattern, address.segments)):
                return kind
        raise InvalidResource(raw)

    def get_type(self, raw: str | ResourceAddress) -> str:
        kind = self.match(raw)
        if kind is MatchKind.TASKS:
            return CONTENT_TYPE
        return CONTENT_ITEM_TYPE

    def task_id(self, raw: str | ResourceAddress) -> int:
        address = self.canonical(raw)
        if self.match(address) is not MatchKind.TASK_ID:
            raise InvalidResource(raw, "Not a single-task URI:")
        return int(address.segments[PATH_POSITION_TASK_ID])

    def task_address(self, task_id: int) -> ResourceAddress:
        return self.collection_address.with_appended_id(task_id)
