from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from hourbook.models import Activity, PricingType, Project, TimeEntry

SECONDS_PER_HOUR = Decimal(3600)
ZERO = Decimal("0")


def hours_for(seconds: int) -> Decimal:
    return Decimal(seconds) / SECONDS_PER_HOUR


def resolve_amount(entry: TimeEntry, project: Optional[Project], activity: Optional[Activity] = None) -> Decimal:
    """Billable amount of a single entry.

    A flat-rate activity bills its fixed price whatever the duration. Anything
    else bills ``hours * project.hourly_rate``, including projects whose
    ``rate_type`` is daily. Without a project the amount is zero.
    """

    if activity is not None and activity.pricing_type == PricingType.FLAT and activity.flat_rate is not None:
        return activity.flat_rate
    if project is None:
        return ZERO
    return hours_for(entry.duration) * project.hourly_rate


def round_money(amount: Decimal) -> Decimal:
    return amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
