from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from conftest import make_entry
from hourbook.db import SqlTimeEntryStore
from hourbook.errors import EntryNotFound, RunningEntryConflict
from hourbook.models import TimeEntry


@pytest.fixture
def sql_store():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    return SqlTimeEntryStore(engine)


def running(entry_id: str, owner_id: str = "u1") -> TimeEntry:
    return TimeEntry(
        id=entry_id,
        owner_id=owner_id,
        project_id="p-a",
        start_time=datetime(2024, 5, 1, 9),
        is_running=True,
        resumed_at=datetime(2024, 5, 1, 9),
    )


def test_create_and_get(sql_store):
    entry = make_entry("e1", "p-a", datetime(2024, 5, 1, 9), 3600, activity_id="dev", description="review")
    sql_store.create(entry)

    assert sql_store.get("e1") == entry


def test_partial_index_allows_one_running_entry_per_owner(sql_store):
    sql_store.create(running("e1"))
    sql_store.create(running("e2", owner_id="u2"))

    with pytest.raises(RunningEntryConflict):
        sql_store.create(running("e3"))

    assert sql_store.find_running("u1").id == "e1"
    assert [e.id for e in sql_store.list_by_owner("u1")] == ["e1"]


def test_stopped_entries_do_not_count_as_running(sql_store):
    sql_store.create(make_entry("e1", "p-a", datetime(2024, 5, 1, 7), 600))
    sql_store.create(make_entry("e2", "p-a", datetime(2024, 5, 1, 8), 600))
    sql_store.create(running("e3"))

    assert sql_store.find_running("u1").id == "e3"


def test_update_into_second_running_entry_conflicts(sql_store):
    sql_store.create(running("e1"))
    sql_store.create(make_entry("e2", "p-a", datetime(2024, 5, 1, 7), 600))

    with pytest.raises(RunningEntryConflict):
        sql_store.update("e2", is_running=True)

    assert sql_store.get("e2").is_running is False


def test_stop_then_start_again(sql_store):
    sql_store.create(running("e1"))
    stopped = sql_store.update("e1", is_running=False, duration=120, end_time=datetime(2024, 5, 1, 9, 2))
    sql_store.create(running("e2"))

    assert stopped.duration == 120
    assert sql_store.find_running("u1").id == "e2"


def test_update_rejects_unknown_fields(sql_store):
    sql_store.create(running("e1"))

    with pytest.raises(ValueError, match="Unknown time entry field"):
        sql_store.update("e1", colour="red")


def test_missing_entries(sql_store):
    with pytest.raises(EntryNotFound):
        sql_store.get("nope")
    with pytest.raises(EntryNotFound):
        sql_store.update("nope", description="x")
    with pytest.raises(EntryNotFound):
        sql_store.delete("nope")


def test_default_engine_from_settings(tmp_path, monkeypatch):
    monkeypatch.setenv("HOURBOOK_DATABASE_URL", f"sqlite:///{tmp_path / 'entries.db'}")

    store = SqlTimeEntryStore()
    store.create(running("e1"))

    assert (tmp_path / "entries.db").exists()
    store.engine.dispose()
