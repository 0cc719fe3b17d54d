from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Iterable, List, Mapping, Optional, Tuple

from hourbook.logging import get_logger
from hourbook.models import Project, TimeEntry

logger = get_logger(__name__)

END_OF_DAY = time(23, 59, 59, 999000)


class TimeframeType(str, Enum):
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"
    CUSTOM = "custom"


def quarter_of(month: int) -> int:
    return (month - 1) // 3 + 1


def parse_reference_month(value: str) -> Tuple[int, int]:
    try:
        year_part, month_part = value.split("-")
        year, month = int(year_part), int(month_part)
    except (AttributeError, ValueError):
        raise ValueError(f"Reference month must look like YYYY-MM, got {value!r}") from None
    if not 1 <= month <= 12:
        raise ValueError(f"Reference month out of range: {value!r}")
    return year, month


@dataclass(frozen=True)
class TimeframeSpec:
    type: TimeframeType
    reference_month: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    def __post_init__(self) -> None:
        if self.type != TimeframeType.CUSTOM:
            parse_reference_month(self.reference_month)

    @classmethod
    def month(cls, reference_month: str) -> "TimeframeSpec":
        return cls(TimeframeType.MONTH, reference_month)

    @classmethod
    def quarter(cls, reference_month: str) -> "TimeframeSpec":
        return cls(TimeframeType.QUARTER, reference_month)

    @classmethod
    def year(cls, reference_month: str) -> "TimeframeSpec":
        return cls(TimeframeType.YEAR, reference_month)

    @classmethod
    def custom(cls, start_date: Optional[date] = None, end_date: Optional[date] = None) -> "TimeframeSpec":
        return cls(TimeframeType.CUSTOM, start_date=start_date, end_date=end_date)

    @property
    def year_and_month(self) -> Tuple[int, int]:
        return parse_reference_month(self.reference_month)

    @property
    def has_range(self) -> bool:
        """True when a custom range has both bounds in the right order."""

        return (
            self.start_date is not None
            and self.end_date is not None
            and self.start_date <= self.end_date
        )

    def bounds(self) -> Optional[Tuple[datetime, datetime]]:
        """Inclusive datetime bounds of a custom range, None when it matches everything."""

        if self.type != TimeframeType.CUSTOM or not self.has_range:
            return None
        return datetime.combine(self.start_date, time.min), datetime.combine(self.end_date, END_OF_DAY)

    def contains(self, moment: datetime) -> bool:
        if self.type == TimeframeType.CUSTOM:
            bounds = self.bounds()
            if bounds is None:
                return True
            start, end = bounds
            if moment.tzinfo is not None:
                start, end = start.replace(tzinfo=moment.tzinfo), end.replace(tzinfo=moment.tzinfo)
            return start <= moment <= end

        year, month = self.year_and_month
        if self.type == TimeframeType.MONTH:
            return (moment.year, moment.month) == (year, month)
        if self.type == TimeframeType.QUARTER:
            return moment.year == year and quarter_of(moment.month) == quarter_of(month)
        return moment.year == year


def filter_entries(
    entries: Iterable[TimeEntry],
    spec: TimeframeSpec,
    projects: Mapping[str, Project],
    customer_id: Optional[str] = None,
    project_id: Optional[str] = None,
) -> List[TimeEntry]:
    """Select stopped entries inside the timeframe, optionally narrowed to a customer or project."""

    if spec.type == TimeframeType.CUSTOM and not spec.has_range:
        logger.warning(
            "custom_range_fallback",
            start_date=spec.start_date and spec.start_date.isoformat(),
            end_date=spec.end_date and spec.end_date.isoformat(),
        )

    def matches(entry: TimeEntry) -> bool:
        if entry.is_running:
            return False
        if customer_id:
            project = projects.get(entry.project_id)
            if project is None or project.customer_id != customer_id:
                return False
        if project_id and entry.project_id != project_id:
            return False
        return spec.contains(entry.start_time)

    return [entry for entry in entries if matches(entry)]


def available_months(entries: Iterable[TimeEntry]) -> List[str]:
    """Reference months that have at least one entry, newest first."""

    months = {f"{entry.start_time.year}-{entry.start_time.month:02d}" for entry in entries}
    return sorted(months, reverse=True)
