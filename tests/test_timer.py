import asyncio
from datetime import datetime

import pytest

from hourbook.errors import EntryNotFound, RunningEntryConflict, TimerStateError, ValidationError
from hourbook.models import TimeEntry
from hourbook.timer import Idle, Paused, Running, TimerController


@pytest.fixture
def timer(store, reference, clock):
    ids = iter(f"t{n}" for n in range(1, 100))
    return TimerController(store, "u1", reference, clock=clock, tick_interval=None, id_factory=lambda: next(ids))


def tick(controller: TimerController, count: int) -> None:
    for _ in range(count):
        controller.tick()


def test_start_persists_running_entry(timer, store, clock):
    entry = timer.start("p-a", activity_id="dev", description="planning")

    stored = store.get(entry.id)
    assert stored.is_running is True
    assert stored.start_time == clock.now
    assert stored.duration == 0
    assert stored.activity_id == "dev"
    assert isinstance(timer.state, Running)
    assert timer.display == "00:00:00"


def test_pause_excludes_paused_time(timer, store, clock):
    timer.start("p-a")
    tick(timer, 10)
    timer.pause()
    clock.advance(300)
    timer.tick()
    timer.resume()
    tick(timer, 5)
    clock.advance(5)

    entry = timer.stop()

    assert entry.duration == 15
    assert entry.is_running is False
    assert entry.end_time == clock.now
    assert isinstance(timer.state, Idle)
    assert store.find_running("u1") is None


def test_pause_persists_accumulated_duration(timer, store):
    entry = timer.start("p-a")
    tick(timer, 42)
    timer.pause()

    stored = store.get(entry.id)
    assert isinstance(timer.state, Paused)
    assert stored.duration == 42
    assert stored.is_paused is True
    assert stored.is_running is True
    assert timer.display == "00:00:42"


def test_start_requires_project(timer):
    with pytest.raises(ValidationError, match="Please select a project"):
        timer.start("")


def test_start_rejects_unknown_or_inactive_project(timer, store):
    with pytest.raises(ValidationError):
        timer.start("missing")
    with pytest.raises(ValidationError):
        timer.start("p-old")

    assert store.time_entries == {}


def test_start_twice_is_rejected(timer):
    timer.start("p-a")

    with pytest.raises(TimerStateError, match="Timer already running"):
        timer.start("p-b")


def test_start_conflicts_with_entry_running_elsewhere(timer, store, clock):
    store.create(TimeEntry(id="other", owner_id="u1", project_id="p-b", start_time=clock.now, is_running=True))

    with pytest.raises(RunningEntryConflict):
        timer.start("p-a")

    assert isinstance(timer.state, Idle)


def test_stop_without_elapsed_time_keeps_timer_active(timer, store):
    entry = timer.start("p-a")

    with pytest.raises(ValidationError):
        timer.stop()

    assert timer.is_active
    assert store.get(entry.id).is_running is True


def test_stop_while_idle(timer):
    with pytest.raises(TimerStateError):
        timer.stop()


def test_description_edits_are_written_immediately(timer, store):
    entry = timer.start("p-a", description="draft")
    timer.edit_description("final wording")

    assert store.get(entry.id).description == "final wording"
    tick(timer, 3)
    assert timer.stop().description == "final wording"


def test_discard_removes_entry(timer, store):
    entry = timer.start("p-a")
    timer.discard()

    assert not timer.is_active
    with pytest.raises(EntryNotFound):
        store.get(entry.id)


def test_pause_and_resume_guard_states(timer):
    with pytest.raises(TimerStateError):
        timer.pause()
    timer.start("p-a")
    with pytest.raises(TimerStateError):
        timer.resume()


def test_restore_paused_timer(store, reference, clock):
    store.create(
        TimeEntry(
            id="e1",
            owner_id="u1",
            project_id="p-a",
            start_time=datetime(2024, 5, 6, 8, 0),
            duration=600,
            is_running=True,
            is_paused=True,
            description="notes",
        )
    )

    timer = TimerController.restore(store, "u1", reference, clock=clock, tick_interval=None)

    assert timer.state == Paused(600)
    assert timer.entry_id == "e1"
    assert timer.description == "notes"


def test_restore_running_timer_adds_time_since_resume(store, reference, clock):
    store.create(
        TimeEntry(
            id="e1",
            owner_id="u1",
            project_id="p-a",
            start_time=datetime(2024, 5, 6, 8, 0),
            duration=600,
            is_running=True,
            resumed_at=datetime(2024, 5, 6, 8, 50),
        )
    )

    timer = TimerController.restore(store, "u1", reference, clock=clock, tick_interval=None)

    assert isinstance(timer.state, Running)
    assert timer.elapsed_seconds == 600 + 600


def test_restore_without_running_entry_is_idle(store, reference, clock):
    timer = TimerController.restore(store, "u1", reference, clock=clock, tick_interval=None)

    assert isinstance(timer.state, Idle)


def test_automatic_ticking_needs_event_loop(store, reference, clock):
    timer = TimerController(store, "u1", reference, clock=clock, tick_interval=0.01)

    with pytest.raises(TimerStateError):
        timer.start("p-a")

    assert store.time_entries == {}


@pytest.mark.asyncio
async def test_tick_task_counts_and_stops(store, reference, clock):
    timer = TimerController(store, "u1", reference, clock=clock, tick_interval=0.01)
    timer.start("p-a")

    await asyncio.sleep(0.1)
    timer.pause()
    paused_at = timer.elapsed_seconds
    await asyncio.sleep(0.05)

    assert paused_at > 0
    assert timer.elapsed_seconds == paused_at
    assert timer._ticker is None

    timer.resume()
    await asyncio.sleep(0.05)
    entry = timer.stop()

    assert entry.duration >= paused_at
    assert timer._ticker is None
    timer.close()


def test_from_settings_uses_configured_tick_interval(store, reference, monkeypatch):
    monkeypatch.setenv("HOURBOOK_TICK_INTERVAL_SECONDS", "0.5")

    timer = TimerController.from_settings(store, "u1", reference)

    assert timer.tick_interval == 0.5
    assert TimerController.from_settings(store, "u1", reference, tick_interval=None).tick_interval is None


class FailingStore:
    def __init__(self, inner):
        self.inner = inner
        self.fail_updates = False

    def __getattr__(self, name):
        return getattr(self.inner, name)

    def update(self, entry_id, **changes):
        if self.fail_updates:
            raise OSError("disk full")
        return self.inner.update(entry_id, **changes)


@pytest.mark.asyncio
async def test_failed_stop_keeps_timer_ticking(store, reference, clock):
    failing = FailingStore(store)
    timer = TimerController(failing, "u1", reference, clock=clock, tick_interval=0.01)
    timer.start("p-a")
    await asyncio.sleep(0.05)
    failing.fail_updates = True

    with pytest.raises(OSError):
        timer.stop()

    assert isinstance(timer.state, Running)
    before = timer.elapsed_seconds
    await asyncio.sleep(0.05)
    assert timer.elapsed_seconds > before

    failing.fail_updates = False
    assert timer.stop().duration >= before
