from __future__ import annotations


def round_time_up(seconds: int, interval_minutes: int) -> int:
    """Round a duration up to the next multiple of ``interval_minutes``.

    An interval of 1 minute means no rounding at all, seconds are kept as is.
    """

    if interval_minutes < 1:
        raise ValueError("interval_minutes must be >= 1")
    if interval_minutes == 1:
        return seconds
    interval_seconds = interval_minutes * 60
    remainder = seconds % interval_seconds
    if remainder == 0:
        return seconds
    return seconds + (interval_seconds - remainder)


def billable_duration(seconds: int, interval_minutes: int, is_billable: bool = True) -> int:
    if not is_billable:
        return 0
    return round_time_up(seconds, interval_minutes)


def rounding_interval_label(interval_minutes: int) -> str:
    if interval_minutes == 1:
        return "No rounding"
    if interval_minutes == 60:
        return "1 hour"
    return f"{interval_minutes} minutes"
