from __future__ import annotations


class HourbookError(Exception):
    """Base class for errors raised by the time tracking core."""


class ValidationError(HourbookError, ValueError):
    """Input rejected before anything was written."""


class RunningEntryConflict(HourbookError, ValueError):
    """The owner already has a running entry."""

    def __init__(self, owner_id: str, running_entry_id: str | None = None) -> None:
        self.owner_id = owner_id
        self.running_entry_id = running_entry_id
        super().__init__(f"Timer already running for owner {owner_id}")


class TimerStateError(HourbookError, RuntimeError):
    pass


class EntryNotFound(HourbookError, KeyError):
    def __init__(self, entry_id: str) -> None:
        self.entry_id = entry_id
        super().__init__(f"Time entry not found: {entry_id}")

    def __str__(self) -> str:
        return self.args[0]


class TemplateError(HourbookError, ValueError):
    pass
