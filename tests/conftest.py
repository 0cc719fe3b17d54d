from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from hourbook.config import get_settings
from hourbook.models import Activity, Customer, PricingType, Project, ReferenceData, TimeEntry
from hourbook.storage import DataStore


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture(autouse=True)
def clear_settings_cache(monkeypatch):
    monkeypatch.delenv("HOURBOOK_CURRENCY", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def reference() -> ReferenceData:
    return ReferenceData.build(
        customers=[
            Customer(id="acme", name="Acme GmbH", report_title="Report {{customer}} {{month}}"),
            Customer(id="globex", name="Globex", color="#10B981"),
        ],
        projects=[
            Project(id="p-a", customer_id="acme", name="Project A", hourly_rate=Decimal("60")),
            Project(id="p-b", customer_id="acme", name="Project B", hourly_rate=Decimal("80")),
            Project(id="p-g", customer_id="globex", name="Globex Site", hourly_rate=Decimal("100")),
            Project(id="p-old", customer_id="globex", name="Archived", hourly_rate=Decimal("50"), is_active=False),
        ],
        activities=[
            Activity(id="dev", name="Development"),
            Activity(id="setup", name="Setup", pricing_type=PricingType.FLAT, flat_rate=Decimal("50")),
            Activity(id="internal", name="Internal", is_billable=False),
        ],
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 5, 6, 9, 0, 0))


@pytest.fixture
def store() -> DataStore:
    return DataStore()


def make_entry(entry_id: str, project_id: str, start: datetime, duration: int, **kwargs) -> TimeEntry:
    kwargs.setdefault("owner_id", "u1")
    kwargs.setdefault("end_time", start + timedelta(seconds=duration))
    return TimeEntry(id=entry_id, project_id=project_id, start_time=start, duration=duration, **kwargs)
