import pytest

from disk_risk.config import ModeProfile, PredictionMode
from disk_risk.formatting import round_half_away
from disk_risk.health import detect_warnings
from disk_risk.models import Confidence, DeviceFamily, HealthFlag, NormalizedDeviceRecord
from disk_risk.predictor import (
    FLASH_RULES,
    MECHANICAL_RULES,
    matching_rules,
    predict,
    rated_tbw,
)

from conftest import make_hdd, make_nvme

HOURS_PER_YEAR = 8760
TIB = 1024 ** 4


def _predict(record, mode=PredictionMode.CONSERVATIVE):
    return predict(record, detect_warnings(record), mode)


def test_rounding_is_half_away_from_zero():
    assert round_half_away(2.5) == 3
    assert round_half_away(3.5) == 4
    assert round_half_away(-2.5) == -3
    assert round_half_away(0.49) == 0


def test_rule_order_is_auditable():
    assert [r[0] for r in MECHANICAL_RULES] == [
        "critical_error",
        "insufficient_data",
        "caution_warnings",
        "age_based",
    ]
    assert [r[0] for r in FLASH_RULES] == [
        "critical_error",
        "spare_below_threshold",
        "tbw_estimate",
        "percentage_used_linear",
        "spare_depletion",
        "insufficient_data",
    ]


# mechanical


def test_new_drive_is_capped_at_sixty_months():
    estimate = _predict(make_hdd(power_on_hours=10000))
    assert estimate.method == "age_based"
    assert estimate.months_remaining == 60
    assert estimate.confidence is Confidence.MEDIUM
    assert estimate.timeline_label == "5+ years"
    assert estimate.timeline_severity_class == "healthy"


def test_no_hours_is_insufficient_data():
    estimate = _predict(make_hdd(power_on_hours=None))
    assert estimate.months_remaining is None
    assert estimate.confidence is Confidence.NONE
    assert estimate.method == "insufficient_data"
    assert estimate.timeline_label == "Unknown"


def test_zero_hours_with_unknown_health_is_insufficient_data():
    estimate = _predict(make_hdd(power_on_hours=0, overall_health=HealthFlag.UNKNOWN))
    assert estimate.method == "insufficient_data"


def test_zero_hours_with_passed_health_is_brand_new():
    estimate = _predict(make_hdd(power_on_hours=0, overall_health=HealthFlag.PASSED))
    assert estimate.method == "age_based"
    assert estimate.months_remaining == 60


@pytest.mark.parametrize("hours", [None, 0, 5000, 100000])
def test_pending_sectors_mean_replace_now(hours):
    estimate = _predict(make_hdd(power_on_hours=hours, pending_sector_count=3))
    assert estimate.months_remaining == 0
    assert estimate.confidence is Confidence.HIGH
    assert estimate.method == "critical_error"
    assert estimate.timeline_label == "Replace Now"
    assert estimate.timeline_severity_class == "critical"


def test_caution_only_depends_on_mode():
    record = make_hdd(reallocated_sector_count=2)
    conservative = _predict(record, PredictionMode.CONSERVATIVE)
    aggressive = _predict(record, PredictionMode.AGGRESSIVE)
    assert conservative.months_remaining == 3
    assert aggressive.months_remaining == 6
    assert conservative.confidence is Confidence.MEDIUM
    assert conservative.timeline_label == "3 months"
    assert conservative.timeline_severity_class == "warning"


def test_caution_without_hours_is_still_insufficient():
    estimate = _predict(make_hdd(power_on_hours=None, reallocated_sector_count=2))
    assert estimate.method == "insufficient_data"


def test_mid_life_linear_model():
    # 3 years old, 6 year target: 36 months left
    estimate = _predict(make_hdd(power_on_hours=3 * HOURS_PER_YEAR))
    assert estimate.months_remaining == 36
    assert estimate.confidence is Confidence.MEDIUM
    assert estimate.timeline_label == "3 years"
    assert estimate.timeline_severity_class == "normal"


def test_aggressive_target_is_longer_but_capped():
    estimate = _predict(make_hdd(power_on_hours=3 * HOURS_PER_YEAR), PredictionMode.AGGRESSIVE)
    assert estimate.months_remaining == 60


def test_near_target_drops_confidence():
    estimate = _predict(make_hdd(power_on_hours=int(5.5 * HOURS_PER_YEAR)))
    assert estimate.months_remaining == 6
    assert estimate.confidence is Confidence.LOW


def test_past_target_degrades_to_small_buffer():
    # 6.25 years: remaining -0.25y, -3 months, buffer 6 - 3 = 3
    estimate = _predict(make_hdd(power_on_hours=int(6.25 * HOURS_PER_YEAR)))
    assert estimate.months_remaining == 3
    assert estimate.confidence is Confidence.LOW


def test_far_past_target_never_goes_negative():
    estimate = _predict(make_hdd(power_on_hours=12 * HOURS_PER_YEAR))
    assert estimate.months_remaining == 0
    assert estimate.timeline_label == "Replace Now"


def test_age_estimate_stays_within_bounds():
    for hours in range(0, 15 * HOURS_PER_YEAR, 1000):
        months = _predict(make_hdd(power_on_hours=hours)).months_remaining
        assert 0 <= months <= 60


def test_removable_uses_age_branch():
    record = NormalizedDeviceRecord(
        device="/dev/sdc", device_family=DeviceFamily.REMOVABLE, power_on_hours=1000,
        overall_health=HealthFlag.PASSED,
    )
    assert _predict(record).method == "age_based"


def test_custom_mode_profile_is_injected():
    profile = ModeProfile(target_age_years=4.0, caution_months=1, write_rate_tb_per_year=10, wear_multiplier=2.0)
    estimate = predict(make_hdd(power_on_hours=3 * HOURS_PER_YEAR), [], profile)
    assert estimate.months_remaining == 12
    assert estimate.confidence is Confidence.LOW


# flash


def test_flash_media_errors_replace_now():
    estimate = _predict(make_nvme(media_error_count=4, percentage_used=3))
    assert (estimate.months_remaining, estimate.confidence, estimate.method) == (
        0,
        Confidence.HIGH,
        "critical_error",
    )


def test_flash_critical_bitmap_replace_now():
    assert _predict(make_nvme(critical_warning_bitmap=1)).method == "critical_error"


def test_flash_spare_below_threshold():
    estimate = _predict(make_nvme(available_spare=5, available_spare_threshold=10))
    assert estimate.months_remaining == 1
    assert estimate.confidence is Confidence.HIGH
    assert estimate.method == "spare_below_threshold"
    assert estimate.timeline_label == "1 month"


def test_rated_tbw_scales_with_capacity():
    assert rated_tbw(2 * TIB) == 1000
    assert rated_tbw(256 * 1024 ** 3) == 250


def test_tbw_estimate_conservative_and_aggressive():
    # 1 TiB drive: 500 TBW rating, 50 TB written, 450 TB left
    record = make_nvme(capacity_bytes=TIB, bytes_written_total=50 * 1000 ** 4, percentage_used=5)
    conservative = _predict(record, PredictionMode.CONSERVATIVE)
    aggressive = _predict(record, PredictionMode.AGGRESSIVE)
    assert conservative.method == "tbw_estimate"
    assert conservative.confidence is Confidence.MEDIUM
    assert conservative.months_remaining == 180
    assert aggressive.months_remaining == 360
    assert conservative.details["estimated_tbw"] == 500
    assert conservative.details["remaining_tbw"] == 450.0


def test_exhausted_write_budget_falls_through():
    record = make_nvme(capacity_bytes=TIB, bytes_written_total=600 * 1000 ** 4, percentage_used=40)
    estimate = _predict(record)
    assert estimate.method == "percentage_used_linear"


def test_percentage_used_linear():
    # 60% left, 3 years at 20%/year, /1.5 conservative
    record = make_nvme(percentage_used=40)
    conservative = _predict(record, PredictionMode.CONSERVATIVE)
    aggressive = _predict(record, PredictionMode.AGGRESSIVE)
    assert conservative.method == "percentage_used_linear"
    assert conservative.confidence is Confidence.LOW
    assert conservative.months_remaining == 24
    assert aggressive.months_remaining == 36


def test_spare_depletion():
    # 40 consumed, 50 above threshold: 50/40*24 = 30, /1.5 = 20
    record = make_nvme(available_spare=60, available_spare_threshold=10)
    estimate = _predict(record)
    assert estimate.method == "spare_depletion"
    assert estimate.months_remaining == 20
    assert estimate.confidence is Confidence.LOW
    assert _predict(record, PredictionMode.AGGRESSIVE).months_remaining == 30


def test_flash_without_basis_is_insufficient():
    estimate = _predict(make_nvme(percentage_used=0, available_spare=100))
    assert estimate.months_remaining is None
    assert estimate.confidence is Confidence.NONE
    assert estimate.method == "insufficient_data"


def test_flash_fully_worn_without_other_data_is_insufficient():
    assert _predict(make_nvme(percentage_used=100, available_spare=95)).method == "insufficient_data"


def test_matching_rules_lists_every_firing_rule():
    record = make_nvme(media_error_count=1, available_spare=5)
    assert matching_rules(record, detect_warnings(record)) == [
        "critical_error",
        "spare_below_threshold",
        "insufficient_data",
    ]


def test_predict_is_idempotent():
    record = make_nvme(percentage_used=33, available_spare=70)
    assert _predict(record) == _predict(record)


def test_unknown_mode_uses_conservative_profile():
    record = make_hdd(reallocated_sector_count=2)
    estimate = predict(record, detect_warnings(record), "balanced")
    assert estimate.months_remaining == 3


def test_age_model_steps_down_at_two_years():
    assert _predict(make_hdd(power_on_hours=2 * HOURS_PER_YEAR - 1)).months_remaining == 60
    assert _predict(make_hdd(power_on_hours=2 * HOURS_PER_YEAR)).months_remaining == 48
