from disk_risk.health import describe_critical_warning, detect_warnings, has_critical
from disk_risk.models import DeviceFamily, NormalizedDeviceRecord, Severity

from conftest import make_hdd, make_nvme


def _by_attribute(warnings):
    return {w.attribute: w for w in warnings}


def test_clean_drive_has_no_warnings():
    assert detect_warnings(make_hdd()) == []
    assert detect_warnings(make_nvme()) == []


def test_absent_counters_raise_nothing():
    record = NormalizedDeviceRecord(device="/dev/sda", device_family=DeviceFamily.MECHANICAL)
    assert detect_warnings(record) == []


def test_pending_sectors_are_critical():
    warnings = detect_warnings(make_hdd(pending_sector_count=3))
    assert len(warnings) == 1
    warning = warnings[0]
    assert warning.attribute == "pending_sectors"
    assert warning.severity is Severity.CRITICAL
    assert warning.observed_value == 3
    assert warning.message == "3 pending sectors"
    assert warning.recommended_action == "Replace ASAP"


def test_uncorrectable_sectors_are_critical():
    warning = detect_warnings(make_hdd(uncorrectable_sector_count=1))[0]
    assert warning.attribute == "uncorrectable_sectors"
    assert warning.severity is Severity.CRITICAL
    assert warning.message == "1 uncorrectable error"
    assert warning.recommended_action == "Replace immediately"


def test_few_reallocated_sectors_are_a_caution():
    warning = detect_warnings(make_hdd(reallocated_sector_count=10))[0]
    assert warning.severity is Severity.CAUTION
    assert warning.recommended_action == "Back up data and monitor closely"


def test_many_reallocated_sectors_are_critical():
    warning = detect_warnings(make_hdd(reallocated_sector_count=11))[0]
    assert warning.severity is Severity.CRITICAL
    assert warning.recommended_action == "Replace immediately"


def test_warnings_accumulate():
    record = make_hdd(pending_sector_count=2, reallocated_sector_count=4, uncorrectable_sector_count=1)
    warnings = _by_attribute(detect_warnings(record))
    assert set(warnings) == {"pending_sectors", "reallocated_sectors", "uncorrectable_sectors"}
    assert warnings["reallocated_sectors"].severity is Severity.CAUTION
    assert has_critical(list(warnings.values()))


def test_flash_media_errors():
    warning = detect_warnings(make_nvme(media_error_count=2))[0]
    assert warning.attribute == "media_errors"
    assert warning.severity is Severity.CRITICAL
    assert warning.recommended_action == "Replace ASAP"


def test_flash_critical_warning_names_raised_bits():
    warning = detect_warnings(make_nvme(critical_warning_bitmap=0x05))[0]
    assert warning.attribute == "critical_warning"
    assert warning.severity is Severity.CRITICAL
    assert warning.recommended_action == "Check drive immediately"
    assert "available spare below threshold" in warning.message
    assert "reliability degraded" in warning.message


def test_unknown_critical_warning_bits_still_warn():
    assert describe_critical_warning(0x80) == []
    warning = detect_warnings(make_nvme(critical_warning_bitmap=0x80))[0]
    assert warning.message == "Critical warning active"


def test_negative_counters_are_dropped():
    record = make_hdd(pending_sector_count=-5, reallocated_sector_count="garbage")
    assert record.pending_sector_count is None
    assert record.reallocated_sector_count is None
    assert detect_warnings(record) == []


def test_detect_is_idempotent():
    record = make_hdd(pending_sector_count=1, reallocated_sector_count=3)
    assert detect_warnings(record) == detect_warnings(record)
