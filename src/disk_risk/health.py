from __future__ import annotations

from typing import List

from .models import HealthWarning, NormalizedDeviceRecord, Severity

REALLOCATED_CRITICAL_COUNT = 10

# NVMe SMART log critical warning bits
CRITICAL_WARNING_BITS = {
    0x01: "available spare below threshold",
    0x02: "temperature out of range",
    0x04: "reliability degraded",
    0x08: "media placed in read-only mode",
    0x10: "volatile memory backup failed",
    0x20: "persistent memory region read-only",
}


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'s' if count != 1 else ''}"


def describe_critical_warning(bitmap: int) -> List[str]:
    return [text for bit, text in CRITICAL_WARNING_BITS.items() if bitmap & bit]


def detect_warnings(record: NormalizedDeviceRecord) -> List[HealthWarning]:
    """Return the health warnings raised by the record's error counters.

    Rules are independent of each other and of the device family: each one
    looks only at its own counter, and an absent counter raises nothing.
    """
    warnings: List[HealthWarning] = []

    pending = record.pending_sector_count or 0
    if pending > 0:
        warnings.append(
            HealthWarning(
                severity=Severity.CRITICAL,
                attribute="pending_sectors",
                observed_value=pending,
                message=_plural(pending, "pending sector"),
                recommended_action="Replace ASAP",
                tooltip="Pending sectors are waiting to be reallocated. Drive is actively failing.",
            )
        )

    uncorrectable = record.uncorrectable_sector_count or 0
    if uncorrectable > 0:
        warnings.append(
            HealthWarning(
                severity=Severity.CRITICAL,
                attribute="uncorrectable_sectors",
                observed_value=uncorrectable,
                message=_plural(uncorrectable, "uncorrectable error"),
                recommended_action="Replace immediately",
                tooltip="Uncorrectable errors indicate permanent data loss. Replace drive now.",
            )
        )

    reallocated = record.reallocated_sector_count or 0
    if reallocated > 0:
        critical = reallocated > REALLOCATED_CRITICAL_COUNT
        warnings.append(
            HealthWarning(
                severity=Severity.CRITICAL if critical else Severity.CAUTION,
                attribute="reallocated_sectors",
                observed_value=reallocated,
                message=_plural(reallocated, "reallocated sector"),
                recommended_action=(
                    "Replace immediately" if critical else "Back up data and monitor closely"
                ),
                tooltip="Reallocated sectors indicate physical damage. Drive may fail soon.",
            )
        )

    media_errors = record.media_error_count or 0
    if media_errors > 0:
        warnings.append(
            HealthWarning(
                severity=Severity.CRITICAL,
                attribute="media_errors",
                observed_value=media_errors,
                message=_plural(media_errors, "media error"),
                recommended_action="Replace ASAP",
                tooltip="Uncorrectable data errors. Drive reliability compromised.",
            )
        )

    bitmap = record.critical_warning_bitmap or 0
    if bitmap != 0:
        reasons = describe_critical_warning(bitmap)
        message = "Critical warning active"
        if reasons:
            message += ": " + ", ".join(reasons)
        warnings.append(
            HealthWarning(
                severity=Severity.CRITICAL,
                attribute="critical_warning",
                observed_value=bitmap,
                message=message,
                recommended_action="Check drive immediately",
                tooltip="Drive has raised a critical warning flag.",
            )
        )

    return warnings


def has_critical(warnings: List[HealthWarning]) -> bool:
    return any(w.is_critical for w in warnings)
