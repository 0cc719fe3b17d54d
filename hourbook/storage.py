from __future__ import annotations
import json
import threading
from dataclasses import asdict, fields, replace
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Optional

from .config import Settings, get_settings
from .errors import EntryNotFound, RunningEntryConflict
from .logging import get_logger
from .models import Activity, Customer, PricingType, Project, RateType, ReferenceData, TimeEntry

logger = get_logger(__name__)

ENTRY_FIELDS = frozenset(f.name for f in fields(TimeEntry))


class DataStore:
    """JSON-file backed time entry store.

    Holds the reference data (customers, projects, activities) next to the
    entries. Pass ``path=None`` for a purely in-memory store.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = path
        self.customers: Dict[str, Customer] = {}
        self.projects: Dict[str, Project] = {}
        self.activities: Dict[str, Activity] = {}
        self.time_entries: Dict[str, TimeEntry] = {}
        self.version = 0
        self._lock = threading.Lock()
        if path is not None and path.exists():
            self.load()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "DataStore":
        settings = settings or get_settings()
        return cls(settings.data_path)

    def load(self) -> None:
        content = json.loads(self.path.read_text())
        self.customers = {c["id"]: Customer(**c) for c in content.get("customers", [])}
        self.projects = {p["id"]: self._deserialize_project(p) for p in content.get("projects", [])}
        self.activities = {a["id"]: self._deserialize_activity(a) for a in content.get("activities", [])}
        self.time_entries = {t["id"]: self._deserialize_time_entry(t) for t in content.get("time_entries", [])}

    def save(self) -> None:
        if self.path is None:
            return
        payload = {
            "customers": [asdict(c) for c in self.customers.values()],
            "projects": [asdict(p) for p in self.projects.values()],
            "activities": [asdict(a) for a in self.activities.values()],
            "time_entries": [asdict(t) for t in self.time_entries.values()],
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(payload, default=self._serializer, indent=2))

    def add_customer(self, customer: Customer) -> None:
        self.customers[customer.id] = customer

    def add_project(self, project: Project) -> None:
        self.projects[project.id] = project

    def add_activity(self, activity: Activity) -> None:
        self.activities[activity.id] = activity

    def reference_data(self) -> ReferenceData:
        return ReferenceData.build(self.customers.values(), self.projects.values(), self.activities.values())

    def get(self, entry_id: str) -> TimeEntry:
        try:
            return self.time_entries[entry_id]
        except KeyError:
            raise EntryNotFound(entry_id) from None

    def create(self, entry: TimeEntry) -> TimeEntry:
        with self._lock:
            if entry.is_running:
                self._ensure_no_running(entry.owner_id, exclude=entry.id)
            self.time_entries[entry.id] = entry
            self._touch()
        logger.debug("entry_created", entry_id=entry.id, owner_id=entry.owner_id, running=entry.is_running)
        return entry

    def update(self, entry_id: str, **changes) -> TimeEntry:
        unknown = sorted(name for name in changes if name not in ENTRY_FIELDS or name == "id")
        if unknown:
            raise ValueError(f"Unknown time entry field: {unknown[0]}")
        with self._lock:
            current = self.get(entry_id)
            updated = replace(current, **changes)
            if updated.is_running and not current.is_running:
                self._ensure_no_running(updated.owner_id, exclude=entry_id)
            self.time_entries[entry_id] = updated
            self._touch()
        return updated

    def delete(self, entry_id: str) -> None:
        with self._lock:
            self.get(entry_id)
            del self.time_entries[entry_id]
            self._touch()
        logger.debug("entry_deleted", entry_id=entry_id)

    def list_by_owner(self, owner_id: str) -> List[TimeEntry]:
        entries = [e for e in self.time_entries.values() if e.owner_id == owner_id]
        return sorted(entries, key=lambda e: e.start_time)

    def find_running(self, owner_id: str) -> Optional[TimeEntry]:
        for entry in self.time_entries.values():
            if entry.owner_id == owner_id and entry.is_running:
                return entry
        return None

    def snapshot(self) -> tuple[int, tuple[TimeEntry, ...]]:
        """Return the current version and an immutable copy of all entries."""

        with self._lock:
            return self.version, tuple(sorted(self.time_entries.values(), key=lambda e: (e.start_time, e.id)))

    def _ensure_no_running(self, owner_id: str, exclude: str) -> None:
        running = self.find_running(owner_id)
        if running is not None and running.id != exclude:
            logger.warning("running_entry_conflict", owner_id=owner_id, running_entry_id=running.id)
            raise RunningEntryConflict(owner_id, running.id)

    def _touch(self) -> None:
        self.version += 1
        self.save()

    @staticmethod
    def _serializer(value):
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, Decimal):
            return str(value)
        raise TypeError(f"Type {type(value)} not serializable")

    @staticmethod
    def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
        return datetime.fromisoformat(value) if value else None

    def _deserialize_project(self, data: dict) -> Project:
        data["hourly_rate"] = Decimal(str(data.get("hourly_rate", "0")))
        data["rate_type"] = RateType(data.get("rate_type", RateType.HOURLY.value))
        return Project(**data)

    def _deserialize_activity(self, data: dict) -> Activity:
        data["pricing_type"] = PricingType(data.get("pricing_type", PricingType.HOURLY.value))
        if data.get("flat_rate") is not None:
            data["flat_rate"] = Decimal(str(data["flat_rate"]))
        return Activity(**data)

    def _deserialize_time_entry(self, data: dict) -> TimeEntry:
        data["start_time"] = self._parse_datetime(data["start_time"])
        data["end_time"] = self._parse_datetime(data.get("end_time"))
        data["resumed_at"] = self._parse_datetime(data.get("resumed_at"))
        return TimeEntry(**data)
