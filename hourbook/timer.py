"""Timer controller: the in-session state machine behind a running time entry.

States move ``Idle -> Running -> (Paused <-> Running) -> Idle``. Elapsed time
is the number of ticks received while running, not wall-clock time since
``start_time``, so a paused interval never counts. Every transition is written
to the store, which lets :meth:`TimerController.restore` pick up a paused or
running timer after a reload.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Union
from uuid import uuid4

from .config import Settings, get_settings
from .errors import TimerStateError, ValidationError
from .logging import get_logger
from .models import ReferenceData, TimeEntry
from .time_tracking import TimeEntryStore, calculate_duration
from .views import format_duration

logger = get_logger(__name__)


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Running:
    started_at: datetime
    accumulated_seconds: int = 0


@dataclass(frozen=True)
class Paused:
    accumulated_seconds: int


TimerState = Union[Idle, Running, Paused]

IDLE = Idle()


class TimerController:
    def __init__(
        self,
        store: TimeEntryStore,
        owner_id: str,
        reference: ReferenceData,
        *,
        clock: Callable[[], datetime] = datetime.now,
        tick_interval: Optional[float] = 1.0,
        id_factory: Callable[[], str] = lambda: str(uuid4()),
    ) -> None:
        self.store = store
        self.owner_id = owner_id
        self.reference = reference
        self.clock = clock
        self.tick_interval = tick_interval
        self.id_factory = id_factory
        self.state: TimerState = IDLE
        self.entry_id: Optional[str] = None
        self.project_id: Optional[str] = None
        self.activity_id: Optional[str] = None
        self.description = ""
        self._ticker: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(
        cls,
        store: TimeEntryStore,
        owner_id: str,
        reference: ReferenceData,
        settings: Optional[Settings] = None,
        **kwargs,
    ) -> "TimerController":
        settings = settings or get_settings()
        kwargs.setdefault("tick_interval", settings.tick_interval_seconds)
        return cls(store, owner_id, reference, **kwargs)

    @classmethod
    def restore(
        cls,
        store: TimeEntryStore,
        owner_id: str,
        reference: ReferenceData,
        **kwargs,
    ) -> "TimerController":
        """Rebuild a controller from the owner's persisted running entry, if any."""

        controller = cls(store, owner_id, reference, **kwargs)
        entry = store.find_running(owner_id)
        if entry is None:
            return controller

        controller.entry_id = entry.id
        controller.project_id = entry.project_id
        controller.activity_id = entry.activity_id
        controller.description = entry.description
        if entry.is_paused:
            controller.state = Paused(entry.duration)
        else:
            segment_start = entry.resumed_at or entry.start_time
            elapsed = max(calculate_duration(segment_start, controller.clock()), 0)
            controller.state = Running(entry.start_time, entry.duration + elapsed)
            controller._require_loop()
            controller._start_ticking()
        logger.info("timer_restored", owner_id=owner_id, entry_id=entry.id, paused=entry.is_paused)
        return controller

    @property
    def is_active(self) -> bool:
        return not isinstance(self.state, Idle)

    @property
    def elapsed_seconds(self) -> int:
        if isinstance(self.state, Idle):
            return 0
        return self.state.accumulated_seconds

    @property
    def display(self) -> str:
        return format_duration(self.elapsed_seconds)

    def start(self, project_id: str, activity_id: Optional[str] = None, description: str = "") -> TimeEntry:
        if self.is_active:
            raise TimerStateError("Timer already running")
        if not project_id:
            raise ValidationError("Please select a project")
        project = self.reference.project(project_id)
        if project is None or not project.is_active:
            raise ValidationError("Project not found")
        self._require_loop()

        now = self.clock()
        entry = TimeEntry(
            id=self.id_factory(),
            owner_id=self.owner_id,
            project_id=project_id,
            activity_id=activity_id or None,
            start_time=now,
            duration=0,
            is_running=True,
            description=description,
            resumed_at=now,
        )
        self.store.create(entry)

        self.entry_id = entry.id
        self.project_id = project_id
        self.activity_id = entry.activity_id
        self.description = description
        self.state = Running(started_at=now)
        self._start_ticking()
        logger.info("timer_started", owner_id=self.owner_id, entry_id=entry.id, project_id=project_id)
        return entry

    def tick(self) -> int:
        if isinstance(self.state, Running):
            self.state = Running(self.state.started_at, self.state.accumulated_seconds + 1)
        return self.elapsed_seconds

    def pause(self) -> None:
        if not isinstance(self.state, Running):
            raise TimerStateError("Timer is not running")
        self._stop_ticking()
        accumulated = self.state.accumulated_seconds
        self.state = Paused(accumulated)
        self.store.update(self.entry_id, duration=accumulated, is_paused=True, resumed_at=None)
        logger.info("timer_paused", owner_id=self.owner_id, entry_id=self.entry_id, elapsed=accumulated)

    def resume(self) -> None:
        if not isinstance(self.state, Paused):
            raise TimerStateError("Timer is not paused")
        self._require_loop()
        now = self.clock()
        started_at = self.store.get(self.entry_id).start_time
        self.store.update(self.entry_id, is_paused=False, resumed_at=now)
        self.state = Running(started_at, self.state.accumulated_seconds)
        self._start_ticking()
        logger.info("timer_resumed", owner_id=self.owner_id, entry_id=self.entry_id, elapsed=self.elapsed_seconds)

    def edit_description(self, text: str) -> None:
        if not self.is_active:
            raise TimerStateError("No timer running")
        self.description = text
        self.store.update(self.entry_id, description=text)

    def stop(self) -> TimeEntry:
        if not self.is_active:
            raise TimerStateError("No timer running")
        duration = self.elapsed_seconds
        if duration <= 0:
            raise ValidationError("Timer must run for at least one second before it can be stopped")

        entry = self.store.update(
            self.entry_id,
            end_time=self.clock(),
            duration=duration,
            is_running=False,
            is_paused=False,
            resumed_at=None,
            description=self.description,
        )
        self._stop_ticking()
        logger.info("timer_stopped", owner_id=self.owner_id, entry_id=entry.id, duration=duration)
        self._reset()
        return entry

    def discard(self) -> None:
        if not self.is_active:
            raise TimerStateError("No timer running")
        self._stop_ticking()
        self.store.delete(self.entry_id)
        logger.info("timer_discarded", owner_id=self.owner_id, entry_id=self.entry_id)
        self._reset()

    def close(self) -> None:
        self._stop_ticking()

    def _reset(self) -> None:
        self.state = IDLE
        self.entry_id = None
        self.project_id = None
        self.activity_id = None
        self.description = ""

    def _require_loop(self) -> None:
        if self.tick_interval is not None:
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                raise TimerStateError("Automatic ticking needs a running event loop") from None

    def _start_ticking(self) -> None:
        if self.tick_interval is None or self._ticker is not None:
            return
        self._ticker = asyncio.get_running_loop().create_task(self._tick_loop())

    def _stop_ticking(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self.tick_interval)
            self.tick()
