from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from hourbook.config import get_settings
from hourbook.logging import get_logger
from hourbook.models import ReferenceData, TimeEntry
from hourbook.rounding import billable_duration

from .filters import TimeframeSpec, filter_entries
from .rates import ZERO, hours_for, resolve_amount, round_money

logger = get_logger(__name__)

PROJECT_NOT_FOUND = "project_not_found"
CUSTOMER_NOT_FOUND = "customer_not_found"


@dataclass(frozen=True)
class SkippedEntry:
    entry_id: str
    reason: str
    duration: int


@dataclass(frozen=True)
class Diagnostics:
    skipped: Tuple[SkippedEntry, ...] = ()

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    @property
    def skipped_seconds(self) -> int:
        return sum(item.duration for item in self.skipped)

    @property
    def skipped_ids(self) -> List[str]:
        return [item.entry_id for item in self.skipped]


@dataclass
class ProjectAggregate:
    project_id: str
    project_name: str
    customer_id: str
    customer_name: str
    customer_color: str
    hourly_rate: Decimal
    total_seconds: int = 0
    total_amount: Decimal = ZERO
    entry_count: int = 0
    billable_seconds: int = 0

    @property
    def total_hours(self) -> Decimal:
        return Decimal(self.total_seconds) / Decimal(3600)


@dataclass
class CustomerAggregate:
    customer_id: str
    name: str
    color: str
    total_seconds: int = 0
    total_hours: float = 0.0
    total_amount: Decimal = ZERO
    entry_count: int = 0


@dataclass(frozen=True)
class ProjectBreakdown:
    groups: List[ProjectAggregate]
    diagnostics: Diagnostics

    @property
    def total_seconds(self) -> int:
        return sum(group.total_seconds for group in self.groups)

    @property
    def total_amount(self) -> Decimal:
        return sum((group.total_amount for group in self.groups), ZERO)


@dataclass(frozen=True)
class CustomerBreakdown:
    groups: List[CustomerAggregate]
    diagnostics: Diagnostics

    @property
    def total_seconds(self) -> int:
        return sum(group.total_seconds for group in self.groups)


def percentage_of(seconds: int, overall_seconds: int) -> float:
    if overall_seconds == 0:
        return 0.0
    return seconds / overall_seconds * 100


def _skip(skipped: List[SkippedEntry], entry: TimeEntry, reason: str) -> None:
    logger.warning("entry_skipped", entry_id=entry.id, project_id=entry.project_id, reason=reason)
    skipped.append(SkippedEntry(entry_id=entry.id, reason=reason, duration=entry.duration))


def aggregate_by_project(
    entries: Iterable[TimeEntry],
    reference: ReferenceData,
    rounding_interval: int = 1,
) -> ProjectBreakdown:
    buckets: Dict[str, ProjectAggregate] = {}
    skipped: List[SkippedEntry] = []

    for entry in entries:
        project = reference.project(entry.project_id)
        if project is None:
            _skip(skipped, entry, PROJECT_NOT_FOUND)
            continue
        customer = reference.customer(project.customer_id)
        if customer is None:
            _skip(skipped, entry, CUSTOMER_NOT_FOUND)
            continue

        activity = reference.activity(entry.activity_id)
        bucket = buckets.get(project.id)
        if bucket is None:
            bucket = buckets[project.id] = ProjectAggregate(
                project_id=project.id,
                project_name=project.name,
                customer_id=customer.id,
                customer_name=customer.name,
                customer_color=customer.color,
                hourly_rate=project.hourly_rate,
            )
        bucket.total_seconds += entry.duration
        bucket.total_amount += resolve_amount(entry, project, activity)
        bucket.entry_count += 1
        bucket.billable_seconds += billable_duration(
            entry.duration, rounding_interval, activity.is_billable if activity else True
        )

    groups = sorted(buckets.values(), key=lambda g: (-g.total_seconds, g.project_name, g.project_id))
    return ProjectBreakdown(groups=groups, diagnostics=Diagnostics(tuple(skipped)))


def aggregate_by_customer(entries: Iterable[TimeEntry], reference: ReferenceData) -> CustomerBreakdown:
    buckets: Dict[str, CustomerAggregate] = {}
    skipped: List[SkippedEntry] = []

    for entry in entries:
        project = reference.project(entry.project_id)
        customer = reference.customer(project.customer_id) if project else None
        if customer is None:
            _skip(skipped, entry, PROJECT_NOT_FOUND if project is None else CUSTOMER_NOT_FOUND)
            continue
        bucket = buckets.get(customer.id)
        if bucket is None:
            bucket = buckets[customer.id] = CustomerAggregate(customer_id=customer.id, name=customer.name, color=customer.color)
        bucket.total_seconds += entry.duration
        bucket.total_amount += resolve_amount(entry, project, reference.activity(entry.activity_id))
        bucket.entry_count += 1

    for bucket in buckets.values():
        bucket.total_hours = float(round_money(hours_for(bucket.total_seconds)))

    groups = sorted(buckets.values(), key=lambda g: (-g.total_hours, g.name, g.customer_id))
    return CustomerBreakdown(groups=groups, diagnostics=Diagnostics(tuple(skipped)))


@dataclass(frozen=True)
class BillingSummary:
    spec: TimeframeSpec
    entries: Tuple[TimeEntry, ...]
    projects: ProjectBreakdown
    customers: CustomerBreakdown
    customer_id: Optional[str] = None
    project_id: Optional[str] = None

    @property
    def filtered_seconds(self) -> int:
        return sum(entry.duration for entry in self.entries)

    @property
    def total_seconds(self) -> int:
        return self.projects.total_seconds

    @property
    def total_hours(self) -> Decimal:
        return Decimal(self.total_seconds) / Decimal(3600)

    @property
    def total_amount(self) -> Decimal:
        return self.projects.total_amount

    def project_percentage(self, group: ProjectAggregate) -> float:
        return percentage_of(group.total_seconds, self.total_seconds)

    def customer_percentage(self, group: CustomerAggregate) -> float:
        return percentage_of(group.total_seconds, self.customers.total_seconds)


def summarize(
    entries: Iterable[TimeEntry],
    spec: TimeframeSpec,
    reference: ReferenceData,
    customer_id: Optional[str] = None,
    project_id: Optional[str] = None,
    rounding_interval: Optional[int] = None,
) -> BillingSummary:
    if rounding_interval is None:
        rounding_interval = get_settings().rounding_interval_minutes
    filtered = filter_entries(entries, spec, reference.projects, customer_id=customer_id, project_id=project_id)
    summary = BillingSummary(
        spec=spec,
        entries=tuple(filtered),
        projects=aggregate_by_project(filtered, reference, rounding_interval=rounding_interval),
        customers=aggregate_by_customer(filtered, reference),
        customer_id=customer_id,
        project_id=project_id,
    )
    logger.debug(
        "summary_built",
        timeframe=spec.type.value,
        entries=len(filtered),
        skipped=summary.projects.diagnostics.skipped_count,
    )
    return summary


@dataclass
class SummaryCache:
    """Memoizes summaries per (entries version, timeframe, customer, project)."""

    reference: ReferenceData
    rounding_interval: Optional[int] = None
    _cache: Dict[tuple, BillingSummary] = field(default_factory=dict, repr=False)

    def get(
        self,
        version: int,
        entries: Iterable[TimeEntry],
        spec: TimeframeSpec,
        customer_id: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> BillingSummary:
        key = (version, spec, customer_id, project_id)
        if key not in self._cache:
            # Only the latest entries version is kept.
            self._cache = {k: v for k, v in self._cache.items() if k[0] == version}
            self._cache[key] = summarize(
                entries,
                spec,
                self.reference,
                customer_id=customer_id,
                project_id=project_id,
                rounding_interval=self.rounding_interval,
            )
        return self._cache[key]

    def clear(self) -> None:
        self._cache.clear()
