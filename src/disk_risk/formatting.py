from __future__ import annotations

import math
from typing import NamedTuple, Optional


class Timeline(NamedTuple):
    label: str
    severity_class: str


UNKNOWN_TIMELINE = Timeline("Unknown", "unknown")


def round_half_away(value: float) -> int:
    """Round to the nearest int, halves away from zero (2.5 -> 3, -2.5 -> -3)."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def timeline_for(months: Optional[int]) -> Timeline:
    """Label a months-remaining value for display, independent of device family."""
    if months is None:
        return UNKNOWN_TIMELINE
    if months <= 0:
        return Timeline("Replace Now", "critical")
    if months <= 6:
        return Timeline(f"{months} month{'s' if months > 1 else ''}", "warning")
    if months <= 12:
        return Timeline("Within 1 year", "caution")
    if months <= 36:
        years = round_half_away(months * 10 / 12) / 10
        return Timeline(f"{years:g} years", "normal")
    return Timeline("5+ years", "healthy")


HOURS_PER_YEAR_CALENDAR = 8766  # 365.25 days
HOURS_PER_MONTH = 730.5


def format_power_on_hours(hours: Optional[int]) -> str:
    if hours is None or hours < 0:
        return "N/A"
    if hours == 0:
        return "0h"
    years, rest = divmod(int(hours), HOURS_PER_YEAR_CALENDAR)
    months = int(rest // HOURS_PER_MONTH)
    rest -= int(months * HOURS_PER_MONTH)
    days, rest = divmod(rest, 24)
    return f"{years}y {months}m {days}d {rest}h"


def format_bytes(value: Optional[int]) -> str:
    if not value:
        return ""
    size = float(value)
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} PB"


def format_temperature(value: Optional[int]) -> str:
    if value is None:
        return ""
    return f"{value}"


TEMPERATURE_LEVELS = ((60, "critical"), (50, "high"), (40, "elevated"))


def temperature_class(value: Optional[int]) -> str:
    if value is None:
        return "unknown"
    for limit, name in TEMPERATURE_LEVELS:
        if value >= limit:
            return name
    return "normal"
