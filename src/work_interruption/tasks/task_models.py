# src/work_interruption/tasks/task_models.py

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from ..provider.errors import InvalidValues

TABLE_NAME = "tasks"

COL_ID = "id"
COL_CATEGORY = "category"
COL_STARTED = "started"
COL_DURATION = "duration"

# Projection allow-list, in schema order.
ALL_COLUMNS: tuple[str, ...] = (COL_ID, COL_CATEGORY, COL_STARTED, COL_DURATION)

# Columns a caller may write. `id` is assigned by the store.
WRITABLE_COLUMNS: tuple[str, ...] = (COL_CATEGORY, COL_STARTED, COL_DURATION)

# SQLite INTEGER range.
INT_MIN = -(2**63)
INT_MAX = 2**63 - 1


class TaskCategory(StrEnum):
    """
    Well-known task categories (the four toggles of the front end).

    The column accepts any string; these are just the names the front end uses.
    """

    WORK = "work"
    BREAK = "break"
    MEETING = "meeting"
    INTERRUPT = "interrupt"


class _Unset:
    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


@dataclass(slots=True)
class Task:
    id: int
    category: str
    started: int | None
    duration: int | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Task:
        return cls(
            id=int(row[COL_ID]),
            category=str(row[COL_CATEGORY]),
            started=int(row[COL_STARTED]) if row.get(COL_STARTED) is not None else None,
            duration=int(row[COL_DURATION]) if row.get(COL_DURATION) is not None else None,
        )


def _check_int(name: str, value: Any) -> None:
    # bool is an int subclass; a True "started" is always a caller bug.
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidValues(f"{name} must be an integer, got {type(value).__name__}")
    if not INT_MIN <= value <= INT_MAX:
        raise InvalidValues(f"{name} is out of range: {value}")


def _check_text(name: str, value: Any) -> None:
    if value is None:
        return
    if not isinstance(value, str):
        raise InvalidValues(f"{name} must be a string, got {type(value).__name__}")
    try:
        value.encode("utf-8")
    except UnicodeEncodeError as e:
        raise InvalidValues(f"{name} is not valid text: {e.reason}") from e


@dataclass(frozen=True, slots=True)
class TaskValues:
    """
    Partial set of column values for insert/update.

    Each field is either UNSET (not part of the write) or a value.
    An explicit None is a value: it writes NULL.
    """

    category: Any = UNSET
    started: Any = UNSET
    duration: Any = UNSET

    def __post_init__(self) -> None:
        if self.category is not UNSET:
            _check_text(COL_CATEGORY, self.category)
        if self.started is not UNSET:
            _check_int(COL_STARTED, self.started)
        if self.duration is not UNSET:
            _check_int(COL_DURATION, self.duration)

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> TaskValues:
        unknown = sorted(set(values) - set(WRITABLE_COLUMNS))
        if unknown:
            raise InvalidValues(f"Unknown or read-only columns: {', '.join(unknown)}")
        return cls(**dict(values))

    def has(self, column: str) -> bool:
        return getattr(self, column) is not UNSET

    def with_value(self, column: str, value: Any) -> TaskValues:
        data = self.as_dict()
        data[column] = value
        return TaskValues(**data)

    def as_dict(self) -> dict[str, Any]:
        """Only the columns that are set, in schema order."""
        out: dict[str, Any] = {}
        for c in WRITABLE_COLUMNS:
            if not self.has(c):
                continue
            v = getattr(self, c)
            # TaskCategory members -> plain str for sqlite3 binding.
            out[c] = str(v) if isinstance(v, str) else v
        return out

    def __len__(self) -> int:
        return len(self.as_dict())
