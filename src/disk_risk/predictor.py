"""Replacement timing forecasts.

Each device family has an ordered tuple of ``(method, guard, compute)`` rules.
Rules are tried top to bottom and the first guard that holds produces the
estimate, so the override order is the tuple order. The last rule of each
branch always matches, which keeps :func:`predict` total.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple, Union

from .classifier import age_years
from .config import DEFAULT_SPARE_THRESHOLD, ModeProfile, PredictionMode, mode_profile
from .formatting import round_half_away, timeline_for
from .health import has_critical
from .models import (
    Confidence,
    DeviceFamily,
    HealthFlag,
    HealthWarning,
    NormalizedDeviceRecord,
    ReplacementEstimate,
)

MAX_AGE_MONTHS = 60
# Younger drives report the cap outright, so the estimate steps from 60 to 48
# months (conservative) when a drive reaches this age.
NEW_DRIVE_YEARS = 2.0
PAST_TARGET_BUFFER_MONTHS = 6
LOW_CONFIDENCE_MONTHS = 12

TBW_PER_TIB = 500
MIN_RATED_TBW = 250
PERCENT_USED_PER_YEAR = 20
SPARE_HISTORY_MONTHS = 24
SPARE_DEPLETION_CEILING = 90

BYTES_PER_TB = 1000 ** 4
BYTES_PER_TIB = 1024 ** 4


@dataclass(frozen=True)
class _Inputs:
    record: NormalizedDeviceRecord
    warnings: Tuple[HealthWarning, ...]
    profile: ModeProfile
    spare_threshold: int


Guard = Callable[[_Inputs], bool]
Compute = Callable[[_Inputs], ReplacementEstimate]
Rule = Tuple[str, Guard, Compute]


def _estimate(
    months: Optional[int],
    confidence: Confidence,
    method: str,
    explanation: str,
    **details: float,
) -> ReplacementEstimate:
    timeline = timeline_for(months)
    return ReplacementEstimate(
        months_remaining=months,
        confidence=confidence,
        method=method,
        explanation=explanation,
        timeline_label=timeline.label,
        timeline_severity_class=timeline.severity_class,
        details=details,
    )


def _always(inputs: _Inputs) -> bool:
    return True


def _insufficient_data(inputs: _Inputs) -> ReplacementEstimate:
    return _estimate(
        None,
        Confidence.NONE,
        "insufficient_data",
        "Insufficient data for a lifespan estimate.",
    )


# mechanical drives


def _has_critical_warning(inputs: _Inputs) -> bool:
    return has_critical(list(inputs.warnings))


def _critical_warning_estimate(inputs: _Inputs) -> ReplacementEstimate:
    names = ", ".join(w.attribute for w in inputs.warnings if w.is_critical)
    return _estimate(
        0,
        Confidence.HIGH,
        "critical_error",
        f"Critical SMART warnings detected ({names}). Replace immediately.",
    )


def _no_usable_hours(inputs: _Inputs) -> bool:
    hours = inputs.record.power_on_hours
    if hours is None:
        return True
    return hours == 0 and inputs.record.overall_health is HealthFlag.UNKNOWN


def _has_caution_warning(inputs: _Inputs) -> bool:
    return bool(inputs.warnings)


def _caution_estimate(inputs: _Inputs) -> ReplacementEstimate:
    months = inputs.profile.caution_months
    return _estimate(
        months,
        Confidence.MEDIUM,
        "caution_warnings",
        "SMART warnings detected. Plan replacement soon.",
        caution_months=months,
    )


def _age_estimate(inputs: _Inputs) -> ReplacementEstimate:
    age = age_years(inputs.record.power_on_hours) or 0.0
    target = inputs.profile.target_age_years
    remaining_years = target - age

    if age < NEW_DRIVE_YEARS:
        months = MAX_AGE_MONTHS
    else:
        months = round_half_away(remaining_years * 12)
        if months > MAX_AGE_MONTHS:
            months = MAX_AGE_MONTHS
        elif months < 0:
            months = max(0, round_half_away(PAST_TARGET_BUFFER_MONTHS + remaining_years * 12))

    if remaining_years * 12 <= LOW_CONFIDENCE_MONTHS:
        confidence = Confidence.LOW
    else:
        confidence = Confidence.MEDIUM

    if remaining_years < 0:
        explanation = (
            f"Drive is {age:.1f} years old, past the {target:g} year replacement target. "
            "Replace within the next few months."
        )
    else:
        explanation = (
            f"Drive is {age:.1f} years old against a {target:g} year replacement target."
        )
    return _estimate(
        months,
        confidence,
        "age_based",
        explanation,
        age_years=round(age, 2),
        target_age_years=target,
    )


MECHANICAL_RULES: Tuple[Rule, ...] = (
    ("critical_error", _has_critical_warning, _critical_warning_estimate),
    ("insufficient_data", _no_usable_hours, _insufficient_data),
    ("caution_warnings", _has_caution_warning, _caution_estimate),
    ("age_based", _always, _age_estimate),
)


# flash devices


def _flash_critical(inputs: _Inputs) -> bool:
    record = inputs.record
    return (
        (record.media_error_count or 0) > 0
        or (record.critical_warning_bitmap or 0) != 0
        or _has_critical_warning(inputs)
    )


def _flash_critical_estimate(inputs: _Inputs) -> ReplacementEstimate:
    return _estimate(
        0,
        Confidence.HIGH,
        "critical_error",
        "Critical errors detected. Replace immediately.",
    )


def _spare_below_threshold(inputs: _Inputs) -> bool:
    spare = inputs.record.available_spare
    return spare is not None and spare < inputs.spare_threshold


def _spare_below_threshold_estimate(inputs: _Inputs) -> ReplacementEstimate:
    return _estimate(
        1,
        Confidence.HIGH,
        "spare_below_threshold",
        "Available spare below threshold. Replace within 1 month.",
        available_spare=inputs.record.available_spare,
        spare_threshold=inputs.spare_threshold,
    )


def rated_tbw(capacity_bytes: int) -> int:
    """Rule-of-thumb endurance rating in TB written for a given capacity."""
    return max(round_half_away(capacity_bytes / BYTES_PER_TIB * TBW_PER_TIB), MIN_RATED_TBW)


def _remaining_tbw(record: NormalizedDeviceRecord) -> Optional[float]:
    written = record.bytes_written_total
    capacity = record.capacity_bytes
    if not written or not capacity:
        return None
    return rated_tbw(capacity) - written / BYTES_PER_TB


def _has_write_budget(inputs: _Inputs) -> bool:
    remaining = _remaining_tbw(inputs.record)
    return remaining is not None and remaining > 0


def _tbw_estimate(inputs: _Inputs) -> ReplacementEstimate:
    record = inputs.record
    rating = rated_tbw(record.capacity_bytes)
    remaining = _remaining_tbw(record)
    rate = inputs.profile.write_rate_tb_per_year
    months = round_half_away(remaining / rate * 12)
    return _estimate(
        months,
        Confidence.MEDIUM,
        "tbw_estimate",
        f"Based on an estimated {rating} TBW rating and {rate:g} TB/year write rate.",
        estimated_tbw=rating,
        written_tbw=round(record.bytes_written_total / BYTES_PER_TB, 2),
        remaining_tbw=round(remaining, 1),
        assumed_write_rate=rate,
    )


def _has_partial_wear(inputs: _Inputs) -> bool:
    used = inputs.record.percentage_used
    return used is not None and 0 < used < 100


def _percentage_used_estimate(inputs: _Inputs) -> ReplacementEstimate:
    used = inputs.record.percentage_used
    multiplier = inputs.profile.wear_multiplier
    months = round_half_away((100 - used) / PERCENT_USED_PER_YEAR * 12 / multiplier)
    return _estimate(
        months,
        Confidence.LOW,
        "percentage_used_linear",
        "Estimate based on current wear percentage. Actual lifespan may vary significantly.",
        percentage_used=used,
        wear_multiplier=multiplier,
    )


def _spare_margins(inputs: _Inputs) -> Tuple[int, int]:
    spare = inputs.record.available_spare
    return 100 - spare, spare - inputs.spare_threshold


def _is_depleting_spare(inputs: _Inputs) -> bool:
    spare = inputs.record.available_spare
    if spare is None or spare >= SPARE_DEPLETION_CEILING:
        return False
    consumed, above_threshold = _spare_margins(inputs)
    return consumed > 0 and above_threshold > 0


def _spare_depletion_estimate(inputs: _Inputs) -> ReplacementEstimate:
    consumed, above_threshold = _spare_margins(inputs)
    multiplier = inputs.profile.wear_multiplier
    months = round_half_away(above_threshold / consumed * SPARE_HISTORY_MONTHS / multiplier)
    return _estimate(
        months,
        Confidence.LOW,
        "spare_depletion",
        "Estimate based on spare capacity depletion rate.",
        available_spare=inputs.record.available_spare,
        spare_threshold=inputs.spare_threshold,
        wear_multiplier=multiplier,
    )


FLASH_RULES: Tuple[Rule, ...] = (
    ("critical_error", _flash_critical, _flash_critical_estimate),
    ("spare_below_threshold", _spare_below_threshold, _spare_below_threshold_estimate),
    ("tbw_estimate", _has_write_budget, _tbw_estimate),
    ("percentage_used_linear", _has_partial_wear, _percentage_used_estimate),
    ("spare_depletion", _is_depleting_spare, _spare_depletion_estimate),
    ("insufficient_data", _always, _insufficient_data),
)


def rules_for(record: NormalizedDeviceRecord) -> Tuple[Rule, ...]:
    if record.device_family is DeviceFamily.FLASH:
        return FLASH_RULES
    return MECHANICAL_RULES


def predict(
    record: NormalizedDeviceRecord,
    health_warnings: Optional[Sequence[HealthWarning]] = None,
    mode: Union[PredictionMode, ModeProfile, str, None] = PredictionMode.CONSERVATIVE,
    spare_threshold_default: int = DEFAULT_SPARE_THRESHOLD,
) -> ReplacementEstimate:
    inputs = _Inputs(
        record=record,
        warnings=tuple(health_warnings or ()),
        profile=mode_profile(mode),
        spare_threshold=record.spare_threshold(spare_threshold_default),
    )
    for _method, guard, compute in rules_for(record):
        if guard(inputs):
            return compute(inputs)
    return _insufficient_data(inputs)


def matching_rules(
    record: NormalizedDeviceRecord,
    health_warnings: Optional[Sequence[HealthWarning]] = None,
    mode: Union[PredictionMode, ModeProfile, str, None] = PredictionMode.CONSERVATIVE,
    spare_threshold_default: int = DEFAULT_SPARE_THRESHOLD,
) -> List[str]:
    """Every rule whose guard holds, in priority order. Useful for auditing overrides."""
    inputs = _Inputs(
        record=record,
        warnings=tuple(health_warnings or ()),
        profile=mode_profile(mode),
        spare_threshold=record.spare_threshold(spare_threshold_default),
    )
    return [method for method, guard, _compute in rules_for(record) if guard(inputs)]
