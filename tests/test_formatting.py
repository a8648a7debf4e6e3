import pytest

from disk_risk.formatting import (
    format_bytes,
    format_power_on_hours,
    temperature_class,
    timeline_for,
)


@pytest.mark.parametrize(
    "months, label, severity_class",
    [
        (None, "Unknown", "unknown"),
        (0, "Replace Now", "critical"),
        (-4, "Replace Now", "critical"),
        (1, "1 month", "warning"),
        (6, "6 months", "warning"),
        (7, "Within 1 year", "caution"),
        (12, "Within 1 year", "caution"),
        (15, "1.3 years", "normal"),
        (18, "1.5 years", "normal"),
        (24, "2 years", "normal"),
        (27, "2.3 years", "normal"),
        (33, "2.8 years", "normal"),
        (36, "3 years", "normal"),
        (37, "5+ years", "healthy"),
        (60, "5+ years", "healthy"),
    ],
)
def test_timeline_labels(months, label, severity_class):
    timeline = timeline_for(months)
    assert timeline.label == label
    assert timeline.severity_class == severity_class


@pytest.mark.parametrize(
    "hours, expected",
    [
        (None, "N/A"),
        (-1, "N/A"),
        (0, "0h"),
        (5, "0y 0m 0d 5h"),
        (26, "0y 0m 1d 2h"),
        (8766, "1y 0m 0d 0h"),
    ],
)
def test_power_on_hours_formatting(hours, expected):
    assert format_power_on_hours(hours) == expected


def test_format_bytes():
    assert format_bytes(None) == ""
    assert format_bytes(512) == "512.0 B"
    assert format_bytes(1024 ** 4) == "1.0 TB"


@pytest.mark.parametrize(
    "celsius, expected",
    [
        (None, "unknown"),
        (25, "normal"),
        (39, "normal"),
        (40, "elevated"),
        (49, "elevated"),
        (50, "high"),
        (59, "high"),
        (60, "critical"),
        (75, "critical"),
    ],
)
def test_temperature_class(celsius, expected):
    assert temperature_class(celsius) == expected
