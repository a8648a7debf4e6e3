from __future__ import annotations

import csv
import json
from typing import Any, Dict, List, Sequence

from .formatting import format_bytes, format_power_on_hours
from .models import DeviceReport

CSV_COLUMNS = [
    "device",
    "model",
    "serial",
    "device_family",
    "size_bytes",
    "temperature_c",
    "power_on_hours",
    "power_on_human",
    "tier",
    "tier_label",
    "tier_overrides",
    "warnings",
    "months_remaining",
    "confidence",
    "method",
    "timeline_label",
    "explanation",
]


def report_rows(reports: Sequence[DeviceReport]) -> List[Dict[str, Any]]:
    return [r.to_dict() for r in reports]


def reports_to_json(reports: Sequence[DeviceReport], indent: int = 2) -> str:
    return json.dumps(report_rows(reports), ensure_ascii=False, indent=indent)


def write_json(reports: Sequence[DeviceReport], path: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(reports_to_json(reports))


def csv_row(report: DeviceReport) -> List[Any]:
    data = report.to_dict()
    replacement = data["replacement"]
    return [
        data["device"],
        data["model"],
        data["serial"],
        data["device_family"],
        data["capacity_bytes"],
        data["temperature_c"],
        data["power_on_hours"],
        format_power_on_hours(data["power_on_hours"]),
        data["tier"],
        data["tier_label"],
        ",".join(data["tier_overrides"]),
        "; ".join(f"{w['severity']}: {w['message']}" for w in data["warnings"]),
        replacement["months_remaining"],
        replacement["confidence"],
        replacement["method"],
        replacement["timeline_label"],
        replacement["explanation"],
    ]


def write_csv(reports: Sequence[DeviceReport], path: str) -> None:
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(CSV_COLUMNS)
        for report in reports:
            writer.writerow(csv_row(report))


def format_table(reports: Sequence[DeviceReport]) -> str:
    """Plain-text summary, one line per device."""
    header = f"{'DEVICE':<16} {'SIZE':>10} {'POWER-ON':>16} {'RISK':<9} {'REPLACE':<14} {'CONF':<7} WARNINGS"
    lines = [header]
    for r in reports:
        record = r.record
        tier = r.tier.label if r.tier is not None else "unknown"
        warnings = ", ".join(w.message for w in r.warnings) or "-"
        lines.append(
            f"{record.device:<16} {format_bytes(record.capacity_bytes):>10} "
            f"{format_power_on_hours(record.power_on_hours):>16} {tier:<9} "
            f"{r.estimate.timeline_label:<14} {r.estimate.confidence.value:<7} {warnings}"
        )
    return "\n".join(lines)
