from __future__ import annotations

from typing import Optional

from .config import HOURS_PER_YEAR, PredictionMode, RiskThresholds
from .models import DeviceFamily, NormalizedDeviceRecord, RiskTier


def age_years(power_on_hours: Optional[int]) -> Optional[float]:
    if power_on_hours is None:
        return None
    return power_on_hours / HOURS_PER_YEAR


def tier_for_hours(power_on_hours: int, thresholds: RiskThresholds) -> RiskTier:
    minimal, low, moderate, elevated = thresholds.as_tuple()
    if power_on_hours < minimal:
        return RiskTier.MINIMAL
    if power_on_hours < low:
        return RiskTier.LOW
    if power_on_hours < moderate:
        return RiskTier.MODERATE
    if power_on_hours < elevated:
        return RiskTier.ELEVATED
    return RiskTier.HIGH


def _tier_for_percentage_used(percentage_used: Optional[int]) -> RiskTier:
    if percentage_used is None:
        return RiskTier.MINIMAL
    if percentage_used >= 80:
        return RiskTier.MODERATE
    if percentage_used >= 50:
        return RiskTier.LOW
    return RiskTier.MINIMAL


def _tier_for_available_spare(available_spare: Optional[int]) -> RiskTier:
    if available_spare is None:
        return RiskTier.MINIMAL
    if available_spare <= 50:
        return RiskTier.MODERATE
    if available_spare <= 80:
        return RiskTier.LOW
    return RiskTier.MINIMAL


def tier_for_wear(record: NormalizedDeviceRecord, spare_threshold: int) -> RiskTier:
    if (record.media_error_count or 0) > 0 or (record.critical_warning_bitmap or 0) != 0:
        return RiskTier.HIGH

    spare = record.available_spare
    if spare is not None and spare < spare_threshold:
        return RiskTier.HIGH

    if (spare is not None and spare < spare_threshold + 10) or (
        record.percentage_used is not None and record.percentage_used > 100
    ):
        return RiskTier.ELEVATED

    # the two wear signals can disagree; keep the worse one
    return max(
        _tier_for_percentage_used(record.percentage_used),
        _tier_for_available_spare(spare),
    )


def uses_wear_branch(record: NormalizedDeviceRecord) -> bool:
    if record.device_family is DeviceFamily.MECHANICAL:
        return False
    return record.has_wear_telemetry


def classify(
    record: NormalizedDeviceRecord,
    thresholds: Optional[RiskThresholds] = None,
    mode: PredictionMode = PredictionMode.CONSERVATIVE,
) -> Optional[RiskTier]:
    """Map a record to a risk tier.

    Flash devices reporting wear telemetry are tiered on wear; everything else
    is tiered on power-on hours. Returns ``None`` when the age branch applies
    but the device has no power-on hours.

    ``mode`` is accepted for a uniform engine signature; tier boundaries do not
    depend on it.
    """
    thresholds = RiskThresholds.coerce(thresholds)
    if uses_wear_branch(record):
        return tier_for_wear(record, record.spare_threshold(thresholds.spare_threshold_default))
    if record.power_on_hours is None:
        return None
    return tier_for_hours(record.power_on_hours, thresholds)
