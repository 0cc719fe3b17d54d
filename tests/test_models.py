from datetime import datetime
from decimal import Decimal

import pytest

from hourbook.errors import EntryNotFound, RunningEntryConflict, ValidationError
from hourbook.models import Activity, PricingType, Project, TimeEntry


def test_time_entry_rejects_negative_duration():
    with pytest.raises(ValueError):
        TimeEntry(id="e1", owner_id="u1", project_id="p-a", start_time=datetime(2024, 5, 1), duration=-1)


def test_project_rejects_negative_rate():
    with pytest.raises(ValueError):
        Project(id="p", customer_id="c", name="P", hourly_rate=Decimal("-1"))


def test_flat_activity_requires_flat_rate():
    with pytest.raises(ValueError):
        Activity(id="a", name="Setup", pricing_type=PricingType.FLAT)


def test_zero_flat_rate_is_allowed():
    activity = Activity(id="a", name="Free setup", pricing_type=PricingType.FLAT, flat_rate=Decimal("0"))

    assert activity.flat_rate == Decimal("0")


def test_reference_lookups(reference):
    assert reference.project("p-a").name == "Project A"
    assert reference.project(None) is None
    assert reference.customer_for_project("p-g").name == "Globex"
    assert reference.customer_for_project("missing") is None
    assert reference.activity("") is None
    assert [p.id for p in reference.active_projects()] == ["p-a", "p-b", "p-g"]


def test_reference_data_is_read_only(reference):
    with pytest.raises(TypeError):
        reference.projects["p-new"] = Project(id="p-new", customer_id="acme", name="New")


def test_error_hierarchy_and_messages():
    conflict = RunningEntryConflict("u1", "e1")

    assert isinstance(conflict, ValueError)
    assert str(conflict) == "Timer already running for owner u1"
    assert conflict.running_entry_id == "e1"
    assert issubclass(ValidationError, ValueError)
    assert str(EntryNotFound("e9")) == "Time entry not found: e9"
