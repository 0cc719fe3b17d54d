from __future__ import annotations
from datetime import date, datetime, time
from typing import Optional, Protocol
from uuid import uuid4

from .errors import ValidationError
from .logging import get_logger
from .models import TimeEntry

logger = get_logger(__name__)


class TimeEntryStore(Protocol):
    def get(self, entry_id: str) -> TimeEntry: ...

    def create(self, entry: TimeEntry) -> TimeEntry: ...

    def update(self, entry_id: str, **changes) -> TimeEntry: ...

    def delete(self, entry_id: str) -> None: ...

    def list_by_owner(self, owner_id: str) -> list[TimeEntry]: ...

    def find_running(self, owner_id: str) -> Optional[TimeEntry]: ...


def calculate_duration(start: datetime, end: datetime) -> int:
    return int((end - start).total_seconds())


def create_manual_entry(
    store: TimeEntryStore,
    *,
    owner_id: str,
    project_id: str,
    work_date: date,
    start: time,
    end: time,
    activity_id: str | None = None,
    description: str = "",
    entry_id: str | None = None,
) -> TimeEntry:
    """Record a finished span of work without going through the timer."""

    if not project_id:
        raise ValidationError("Please select a project")
    start_time = datetime.combine(work_date, start)
    end_time = datetime.combine(work_date, end)
    duration = calculate_duration(start_time, end_time)
    if duration <= 0:
        raise ValidationError("End time must be after start time")

    entry = TimeEntry(
        id=entry_id or str(uuid4()),
        owner_id=owner_id,
        project_id=project_id,
        activity_id=activity_id or None,
        start_time=start_time,
        end_time=end_time,
        duration=duration,
        is_running=False,
        description=description,
    )
    store.create(entry)
    logger.info("manual_entry_created", entry_id=entry.id, owner_id=owner_id, duration=duration)
    return entry
