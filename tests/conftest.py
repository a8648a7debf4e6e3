from disk_risk.models import DeviceFamily, HealthFlag, NormalizedDeviceRecord


def make_hdd(**overrides):
    fields = dict(
        device="/dev/sda",
        device_family=DeviceFamily.MECHANICAL,
        model="WDC WD40EFRX",
        serial="WD-1234",
        power_on_hours=10000,
        overall_health=HealthFlag.PASSED,
        reallocated_sector_count=0,
        pending_sector_count=0,
        uncorrectable_sector_count=0,
    )
    fields.update(overrides)
    return NormalizedDeviceRecord(**fields)


def make_nvme(**overrides):
    fields = dict(
        device="/dev/nvme0n1",
        device_family=DeviceFamily.FLASH,
        model="Samsung SSD 970 EVO 1TB",
        serial="S5H9NS0N",
        power_on_hours=5000,
        overall_health=HealthFlag.PASSED,
        percentage_used=None,
        available_spare=100,
        available_spare_threshold=10,
        media_error_count=0,
        critical_warning_bitmap=0,
    )
    fields.update(overrides)
    return NormalizedDeviceRecord(**fields)
