from .errors import (
    EntryNotFound,
    HourbookError,
    RunningEntryConflict,
    TemplateError,
    TimerStateError,
    ValidationError,
)
from .models import Activity, BusinessIdentity, Customer, PricingType, Project, RateType, ReferenceData, TimeEntry

__all__ = [
    "Activity",
    "BusinessIdentity",
    "Customer",
    "EntryNotFound",
    "HourbookError",
    "PricingType",
    "Project",
    "RateType",
    "ReferenceData",
    "RunningEntryConflict",
    "TemplateError",
    "TimeEntry",
    "TimerStateError",
    "ValidationError",
]
