from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping, Optional


class RateType(str, Enum):
    HOURLY = "hourly"
    DAILY = "daily"  # informational, amounts are always hours x hourly_rate


class PricingType(str, Enum):
    HOURLY = "hourly"
    FLAT = "flat"


@dataclass(frozen=True)
class TimeEntry:
    id: str
    owner_id: str
    project_id: str
    start_time: datetime
    duration: int = 0
    activity_id: Optional[str] = None
    end_time: Optional[datetime] = None
    is_running: bool = False
    description: str = ""
    is_paused: bool = False
    resumed_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.duration < 0:
            raise ValueError("duration must be >= 0")


@dataclass(frozen=True)
class Customer:
    id: str
    name: str
    color: str = "#3B82F6"
    report_title: Optional[str] = None
    contact_person: Optional[str] = None
    email: Optional[str] = None


@dataclass(frozen=True)
class Project:
    id: str
    customer_id: str
    name: str
    hourly_rate: Decimal = Decimal("0")
    rate_type: RateType = RateType.HOURLY
    is_active: bool = True

    def __post_init__(self) -> None:
        if self.hourly_rate < 0:
            raise ValueError("hourly_rate must be >= 0")


@dataclass(frozen=True)
class Activity:
    id: str
    name: str
    pricing_type: PricingType = PricingType.HOURLY
    flat_rate: Optional[Decimal] = None
    is_billable: bool = True

    def __post_init__(self) -> None:
        if self.pricing_type == PricingType.FLAT and self.flat_rate is None:
            raise ValueError(f"Flat-rate activity {self.id} requires a flat_rate")


@dataclass(frozen=True)
class BusinessIdentity:
    """Letterhead data printed on reports and emails."""

    name: str
    address: Optional[str] = None
    zip_code: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    tax_id: Optional[str] = None
    logo_path: Optional[str] = None


def _index(items: Iterable) -> Mapping:
    return MappingProxyType({item.id: item for item in items})


@dataclass(frozen=True)
class ReferenceData:
    """Read-only snapshot of customers, projects and activities keyed by id."""

    customers: Mapping[str, Customer] = field(default_factory=dict)
    projects: Mapping[str, Project] = field(default_factory=dict)
    activities: Mapping[str, Activity] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        customers: Iterable[Customer] = (),
        projects: Iterable[Project] = (),
        activities: Iterable[Activity] = (),
    ) -> "ReferenceData":
        return cls(customers=_index(customers), projects=_index(projects), activities=_index(activities))

    def project(self, project_id: Optional[str]) -> Optional[Project]:
        if not project_id:
            return None
        return self.projects.get(project_id)

    def customer(self, customer_id: Optional[str]) -> Optional[Customer]:
        if not customer_id:
            return None
        return self.customers.get(customer_id)

    def activity(self, activity_id: Optional[str]) -> Optional[Activity]:
        if not activity_id:
            return None
        return self.activities.get(activity_id)

    def customer_for_project(self, project_id: Optional[str]) -> Optional[Customer]:
        project = self.project(project_id)
        return self.customer(project.customer_id) if project else None

    def active_projects(self) -> list[Project]:
        return [project for project in self.projects.values() if project.is_active]
