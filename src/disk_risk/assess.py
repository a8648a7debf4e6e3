from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Optional, Sequence, Tuple

from .classifier import classify
from .config import Settings
from .health import detect_warnings, has_critical
from .models import (
    DeviceReport,
    HealthFlag,
    HealthWarning,
    NormalizedDeviceRecord,
    ReplacementEstimate,
    RiskTier,
)
from .predictor import predict

logger = logging.getLogger(__name__)

SHORT_HORIZON_MONTHS = 6


def reconcile_tier(
    tier: Optional[RiskTier],
    warnings: Sequence[HealthWarning],
    estimate: ReplacementEstimate,
    record: Optional[NormalizedDeviceRecord] = None,
) -> Tuple[Optional[RiskTier], List[str]]:
    """Apply predictor and warning signals on top of the classifier tier.

    Signals only ever raise the tier. Returns the final tier and the names of
    the signals that forced it to ``HIGH``.
    """
    overrides: List[str] = []
    if has_critical(list(warnings)):
        overrides.append("critical_warning")
    months = estimate.months_remaining
    if months is not None and months < SHORT_HORIZON_MONTHS:
        overrides.append("short_replacement_horizon")
    if record is not None and record.overall_health is HealthFlag.FAILED:
        overrides.append("health_check_failed")

    if not overrides:
        return tier, overrides
    return RiskTier.HIGH, overrides


def assess_device(
    record: NormalizedDeviceRecord, settings: Optional[Settings] = None
) -> DeviceReport:
    settings = settings or Settings()
    warnings = detect_warnings(record)
    classified = classify(record, settings.thresholds, settings.mode)
    estimate = predict(
        record,
        warnings,
        settings.profile,
        spare_threshold_default=settings.thresholds.spare_threshold_default,
    )
    tier, overrides = reconcile_tier(classified, warnings, estimate, record)
    if overrides and tier != classified:
        logger.debug(
            "%s: tier %s raised to %s by %s",
            record.device,
            classified.label if classified is not None else "unknown",
            tier.label,
            ", ".join(overrides),
        )
    return DeviceReport(
        record=record,
        tier=tier,
        classified_tier=classified,
        tier_overrides=overrides,
        warnings=warnings,
        estimate=estimate,
        tier_label=settings.label_for(tier),
    )


def assess_devices(
    records: Iterable[NormalizedDeviceRecord],
    settings: Optional[Settings] = None,
    max_workers: Optional[int] = None,
) -> List[DeviceReport]:
    """Assess many devices. Results keep the input order."""
    settings = settings or Settings()
    records = list(records)
    if not max_workers or max_workers <= 1 or len(records) <= 1:
        return [assess_device(r, settings) for r in records]
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        return list(pool.map(lambda r: assess_device(r, settings), records))


def oldest_first(reports: Iterable[DeviceReport]) -> List[DeviceReport]:
    """Sort by power-on hours, oldest first. Devices without hours go last."""
    return sorted(
        reports,
        key=lambda r: (r.record.power_on_hours is None, -(r.record.power_on_hours or 0)),
    )


def scan(settings: Optional[Settings] = None, max_workers: Optional[int] = None) -> List[DeviceReport]:
    """Discover local disks, read their telemetry and assess them."""
    from .platform import get_disks
    from .smartctl import has_smartctl, read_device_record, record_without_telemetry

    settings = settings or Settings()
    smart_available = has_smartctl()
    if not smart_available:
        logger.warning("smartctl not found in PATH, devices will report insufficient data")

    records: List[NormalizedDeviceRecord] = []
    for disk in get_disks():
        if not smart_available:
            records.append(record_without_telemetry(disk))
            continue
        try:
            records.append(read_device_record(disk))
        except (RuntimeError, ValueError, TypeError) as exc:
            logger.error("Failed to read SMART data for %s: %s", disk.device, exc)
            records.append(record_without_telemetry(disk))
    return oldest_first(assess_devices(records, settings, max_workers=max_workers))
