from __future__ import annotations
from datetime import date
from typing import Iterable

from .models import ReferenceData, TimeEntry


def format_duration(seconds: int) -> str:
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def _short_duration(seconds: int) -> str:
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_rounded_time(original_seconds: int, rounded_seconds: int) -> str:
    rounded = _short_duration(rounded_seconds)
    if original_seconds != rounded_seconds:
        return f"{rounded} ({_short_duration(original_seconds)} rounded up)"
    return rounded


def format_timesheet(entries: Iterable[TimeEntry], reference: ReferenceData, start: date, end: date) -> str:
    rows = ["Timesheet", "Date        Duration  Project               Description"]
    total = 0
    for entry in sorted(entries, key=lambda e: e.start_time):
        worked_date = entry.start_time.date()
        if entry.is_running or not (start <= worked_date <= end):
            continue
        project = reference.project(entry.project_id)
        total += entry.duration
        rows.append(
            f"{worked_date.isoformat()}  {format_duration(entry.duration)}  "
            f"{(project.name if project else '-'):<20}  {entry.description or '-'}"
        )
    rows.append(f"Total: {format_duration(total)}")
    return "\n".join(rows)
