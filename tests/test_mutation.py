# tests/test_mutation.py

from __future__ import annotations

import threading

import pytest

from work_interruption.provider.errors import (
    InvalidResource,
    InvalidValues,
    MissingRequiredField,
    PersistenceFailure,
)
from work_interruption.provider.mutation import now_ms
from work_interruption.provider.task_provider import TaskProvider
from work_interruption.tasks.task_models import TaskValues

from .fakes import RecordingNotifier


def _ids(p: TaskProvider) -> list[int]:
    with p.query("/tasks", projection=["id"], sort_order="id") as cursor:
        return [r["id"] for r in cursor]


def test_insert_returns_address_and_notifies_once(
    recording_provider: TaskProvider, notifier: RecordingNotifier
) -> None:
    addr = recording_provider.insert("/tasks", {"category": "work", "started": 100})

    assert str(addr) == f"/tasks/{addr.segments[-1]}"
    assert notifier.paths() == [str(addr)]

    with recording_provider.query(addr) as cursor:
        assert cursor.fetchone() == {"id": int(addr.segments[-1]), "category": "work", "started": 100, "duration": None}


def test_insert_defaults_started_to_now(recording_provider: TaskProvider) -> None:
    before = now_ms()
    addr = recording_provider.insert("/tasks", TaskValues(category="break"))
    after = now_ms()

    with recording_provider.query(addr, projection=["started"]) as cursor:
        started = cursor.fetchone()["started"]
    assert before <= started <= after


def test_insert_keeps_explicit_started(recording_provider: TaskProvider) -> None:
    addr = recording_provider.insert("/tasks", {"category": "work", "started": 0})
    with recording_provider.query(addr, projection=["started"]) as cursor:
        assert cursor.fetchone() == {"started": 0}


def test_insert_without_category(recording_provider: TaskProvider, notifier: RecordingNotifier) -> None:
    with pytest.raises(MissingRequiredField) as exc:
        recording_provider.insert("/tasks", {"started": 5})
    assert isinstance(exc.value, InvalidValues)
    assert _ids(recording_provider) == []
    assert notifier.changes == []


def test_insert_null_category_is_rejected_by_store(
    recording_provider: TaskProvider, notifier: RecordingNotifier
) -> None:
    with pytest.raises(PersistenceFailure):
        recording_provider.insert("/tasks", {"category": None})
    assert _ids(recording_provider) == []
    assert notifier.changes == []


@pytest.mark.parametrize("address", ["/tasks/1", "/other"])
def test_insert_only_on_collection(recording_provider: TaskProvider, address: str) -> None:
    with pytest.raises(InvalidResource):
        recording_provider.insert(address, {"category": "work"})


def test_insert_missing_values(recording_provider: TaskProvider) -> None:
    with pytest.raises(InvalidValues):
        recording_provider.insert("/tasks", None)


def test_insert_into_missing_table_is_persistence_failure(recording_provider: TaskProvider) -> None:
    conn = recording_provider.db.connect()
    conn.execute("DROP TABLE tasks")
    conn.commit()
    conn.close()

    with pytest.raises(PersistenceFailure) as exc:
        recording_provider.insert("/tasks", {"category": "work"})
    assert exc.value.__cause__ is not None


def test_ids_are_not_reused_after_delete(recording_provider: TaskProvider) -> None:
    first = recording_provider.insert("/tasks", {"category": "work"})
    recording_provider.delete(first)
    second = recording_provider.insert("/tasks", {"category": "work"})

    assert int(second.segments[-1]) > int(first.segments[-1])


def test_update_single_task(recording_provider: TaskProvider, notifier: RecordingNotifier) -> None:
    a = recording_provider.insert("/tasks", {"category": "work", "started": 100})
    b = recording_provider.insert("/tasks", {"category": "work", "started": 200})
    notifier.changes.clear()

    count = recording_provider.update(a, {"duration": 50})

    assert count == 1
    assert notifier.paths() == [str(a)]
    with recording_provider.query(b, projection=["duration"]) as cursor:
        assert cursor.fetchone() == {"duration": None}


def test_update_single_task_selection_cannot_widen(recording_provider: TaskProvider) -> None:
    a = recording_provider.insert("/tasks", {"category": "work"})
    recording_provider.insert("/tasks", {"category": "work"})

    count = recording_provider.update(a, {"category": "break"}, selection="1 = 1 OR id > ?", selection_args=[0])

    assert count == 1
    with recording_provider.query("/tasks", selection="category = ?", selection_args=["break"]) as cursor:
        assert len(cursor.fetchall()) == 1


def test_update_collection_with_selection(recording_provider: TaskProvider, notifier: RecordingNotifier) -> None:
    recording_provider.insert("/tasks", {"category": "work"})
    recording_provider.insert("/tasks", {"category": "work"})
    recording_provider.insert("/tasks", {"category": "break"})
    notifier.changes.clear()

    count = recording_provider.update("/tasks", {"duration": 1}, "category = ?", ["work"])

    assert count == 2
    assert notifier.paths() == ["/tasks"]


def test_update_notifies_even_when_nothing_matched(
    recording_provider: TaskProvider, notifier: RecordingNotifier
) -> None:
    assert recording_provider.update("/tasks/77", {"duration": 1}) == 0
    assert notifier.paths() == ["/tasks/77"]


def test_update_rejects_empty_values(recording_provider: TaskProvider, notifier: RecordingNotifier) -> None:
    with pytest.raises(InvalidValues):
        recording_provider.update("/tasks", {})
    with pytest.raises(InvalidValues):
        recording_provider.update("/tasks", None)
    assert notifier.changes == []


def test_update_rejects_id_column(recording_provider: TaskProvider) -> None:
    a = recording_provider.insert("/tasks", {"category": "work"})
    with pytest.raises(InvalidValues):
        recording_provider.update(a, {"id": 99})


def test_delete_single_and_collection(recording_provider: TaskProvider, notifier: RecordingNotifier) -> None:
    a = recording_provider.insert("/tasks", {"category": "work"})
    recording_provider.insert("/tasks", {"category": "break"})
    recording_provider.insert("/tasks", {"category": "work"})
    notifier.changes.clear()

    assert recording_provider.delete(a) == 1
    assert recording_provider.delete("/tasks", "category = ?", ["break"]) == 1
    assert recording_provider.delete("/tasks") == 1

    assert notifier.paths() == [str(a), "/tasks", "/tasks"]
    assert _ids(recording_provider) == []


def test_delete_missing_task_still_notifies(recording_provider: TaskProvider, notifier: RecordingNotifier) -> None:
    assert recording_provider.delete("/tasks/5") == 0
    assert notifier.paths() == ["/tasks/5"]


def test_failed_write_leaves_no_partial_state(recording_provider: TaskProvider) -> None:
    recording_provider.insert("/tasks", {"category": "work", "started": 1})

    with pytest.raises(PersistenceFailure):
        recording_provider.update("/tasks", {"category": None})

    with recording_provider.query("/tasks", projection=["category"]) as cursor:
        assert cursor.fetchall() == [{"category": "work"}]


def test_concurrent_inserts_get_distinct_ids(recording_provider: TaskProvider, notifier: RecordingNotifier) -> None:
    errors: list[BaseException] = []

    def worker() -> None:
        try:
            for _ in range(10):
                recording_provider.insert("/tasks", {"category": "work"})
        except BaseException as e:  # pragma: no cover - surfaced by the assert below
            errors.append(e)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    ids = _ids(recording_provider)
    assert len(ids) == 40
    assert len(set(ids)) == 40
    assert len(notifier.changes) == 40


def test_insert_get_delete_round_trip(recording_provider: TaskProvider) -> None:
    addr = recording_provider.insert("/tasks", {"category": "interrupt", "started": 42})

    with recording_provider.query(addr) as cursor:
        assert cursor.fetchone()["category"] == "interrupt"

    assert recording_provider.delete(addr) == 1

    with recording_provider.query(addr) as cursor:
        assert cursor.fetchall() == []


def test_bulk_delete_count_matches_rows_before(recording_provider: TaskProvider) -> None:
    for category in ("work", "break", "meeting", "work", "interrupt"):
        recording_provider.insert("/tasks", {"category": category})

    before = recording_provider.db.count_tasks()
    assert before == 5
    assert recording_provider.delete("/tasks") == before
    assert recording_provider.db.count_tasks() == 0


def test_oversized_id_update_and_delete_match_nothing(
    recording_provider: TaskProvider, notifier: RecordingNotifier
) -> None:
    recording_provider.insert("/tasks", {"category": "work"})
    notifier.changes.clear()
    huge = "/tasks/99999999999999999999"

    assert recording_provider.update(huge, {"duration": 1}) == 0
    assert recording_provider.delete(huge) == 0

    assert notifier.paths() == [huge, huge]
    assert len(_ids(recording_provider)) == 1


@pytest.mark.parametrize(
    "values",
    [
        {"category": "\ud800"},
        {"category": "work", "started": 2**63},
        {"category": "work", "duration": -(2**63) - 1},
    ],
)
def test_insert_unstorable_values_are_invalid(
    recording_provider: TaskProvider, notifier: RecordingNotifier, values: dict
) -> None:
    with pytest.raises(InvalidValues):
        recording_provider.insert("/tasks", values)
    assert _ids(recording_provider) == []
    assert notifier.changes == []


def test_update_with_oversized_selection_arg_is_persistence_failure(recording_provider: TaskProvider) -> None:
    recording_provider.insert("/tasks", {"category": "work"})

    with pytest.raises(PersistenceFailure):
        recording_provider.update("/tasks", {"duration": 1}, "started > ?", [2**70])
