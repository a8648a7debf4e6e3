from __future__ import annotations

import json
import logging
import platform
import re
import subprocess
from pathlib import Path
from typing import Any, Dict, Optional

from .models import DeviceFamily, DiskInfo, HealthFlag, NormalizedDeviceRecord

logger = logging.getLogger(__name__)


SMARTCTL_STANDBY_EXIT = 2

NVME_DATA_UNIT_BYTES = 512 * 1000
ATA_LBA_BYTES = 512

# ATA attribute ids
ATTR_REALLOCATED = 5
ATTR_POWER_ON_HOURS = 9
ATTR_REPORTED_UNCORRECT = 187
ATTR_COMMAND_TIMEOUT = 188
ATTR_AIRFLOW_TEMPERATURE = 190
ATTR_TEMPERATURE = 194
ATTR_PENDING = 197
ATTR_OFFLINE_UNCORRECTABLE = 198
ATTR_TOTAL_LBAS_WRITTEN = 241

_ATA_COUNTERS = {
    ATTR_REALLOCATED: "reallocated_sector_count",
    ATTR_PENDING: "pending_sector_count",
    ATTR_OFFLINE_UNCORRECTABLE: "uncorrectable_sector_count",
    ATTR_REPORTED_UNCORRECT: "reported_uncorrectable_count",
    ATTR_COMMAND_TIMEOUT: "command_timeout_count",
}

_SMARTCTL_PATH: Optional[str] = None


def has_smartctl() -> bool:
    return _find_smartctl() is not None


def _find_smartctl() -> Optional[str]:
    global _SMARTCTL_PATH
    if _SMARTCTL_PATH:
        return _SMARTCTL_PATH
    from shutil import which

    path = which("smartctl")
    if path:
        _SMARTCTL_PATH = path
        return path
    if platform.system() == "Windows":
        candidates = [
            r"C:\Program Files\smartmontools\bin\smartctl.exe",
            r"C:\Program Files (x86)\smartmontools\bin\smartctl.exe",
        ]
        for c in candidates:
            if Path(c).is_file():
                _SMARTCTL_PATH = c
                return c
    return None


def _smartctl(args: list) -> subprocess.CompletedProcess:
    exe = _find_smartctl()
    if not exe:
        raise RuntimeError("smartctl not found in PATH")
    return subprocess.run([exe, *args], capture_output=True, text=True)


def is_in_standby(device: str) -> bool:
    # -n standby makes smartctl exit early instead of spinning the drive up
    proc = _smartctl(["-n", "standby", "-i", device])
    return proc.returncode == SMARTCTL_STANDBY_EXIT


def _run_smartctl(device: str) -> Dict[str, Any]:
    # smartctl return codes are a bitmask; non-zero can still include valid JSON
    proc = _smartctl(["-a", "-j", device])
    if proc.stdout.strip():
        try:
            return json.loads(proc.stdout)
        except json.JSONDecodeError:
            raise RuntimeError(f"smartctl returned non-JSON output for {device}")
    raise RuntimeError(proc.stderr.strip() or f"smartctl failed for {device}")


def _run_smartctl_text(device: str) -> str:
    proc = _smartctl(["-a", device])
    if proc.stdout.strip():
        return proc.stdout
    raise RuntimeError(proc.stderr.strip() or f"smartctl failed for {device}")


def _get_attr_value(attr: Dict[str, Any]) -> Optional[int]:
    raw = attr.get("raw", {})
    if isinstance(raw, dict):
        val = raw.get("value")
    else:
        val = raw
    if val is None:
        return None
    try:
        return int(val)
    except (TypeError, ValueError):
        return None


def _ata_attributes(data: Dict[str, Any]) -> Dict[int, Optional[int]]:
    table = (data.get("ata_smart_attributes") or {}).get("table", [])
    values: Dict[int, Optional[int]] = {}
    for attr in table:
        attr_id = attr.get("id")
        if isinstance(attr_id, int):
            values[attr_id] = _get_attr_value(attr)
    return values


def _ata_endurance_used(data: Dict[str, Any]) -> Optional[int]:
    stats = data.get("ata_device_statistics") or {}
    for page in stats.get("pages", []):
        for entry in page.get("table", []):
            if "Endurance" in str(entry.get("name", "")):
                return entry.get("value")
    return None


def detect_family(
    device: str,
    nvme: bool = False,
    rotation_rate: Optional[int] = None,
    disk: Optional[DiskInfo] = None,
) -> DeviceFamily:
    if disk is not None and (disk.removable or (disk.transport or "").lower() == "usb"):
        return DeviceFamily.REMOVABLE
    if nvme or "nvme" in device:
        return DeviceFamily.FLASH
    if rotation_rate == 0:
        return DeviceFamily.FLASH
    if rotation_rate is None and disk is not None and disk.rotational is False:
        return DeviceFamily.FLASH
    return DeviceFamily.MECHANICAL


def _health_flag(passed: Optional[bool]) -> HealthFlag:
    if passed is True:
        return HealthFlag.PASSED
    if passed is False:
        return HealthFlag.FAILED
    return HealthFlag.UNKNOWN


def record_without_telemetry(disk: DiskInfo) -> NormalizedDeviceRecord:
    """Record for a device whose diagnostics could not be read this pass."""
    return NormalizedDeviceRecord(
        device=disk.device,
        device_family=detect_family(disk.device, disk=disk),
        model=disk.model,
        serial=disk.serial,
        power_on_hours=disk.os_power_on_hours,
        temperature_c=disk.os_temperature_c,
        capacity_bytes=disk.size_bytes,
    )


def record_from_smartctl_json(
    data: Dict[str, Any],
    device: Optional[str] = None,
    disk: Optional[DiskInfo] = None,
) -> NormalizedDeviceRecord:
    """Normalize ``smartctl -a -j`` output into a device record."""
    device = device or (data.get("device") or {}).get("name") or (disk.device if disk else "")
    nvme = "nvme_smart_health_information_log" in data
    family = detect_family(device, nvme=nvme, rotation_rate=data.get("rotation_rate"), disk=disk)

    passed = None
    if isinstance(data.get("smart_status"), dict):
        passed = data["smart_status"].get("passed")

    attrs = _ata_attributes(data)

    temperature = None
    if isinstance(data.get("temperature"), dict):
        temperature = data["temperature"].get("current")
    if temperature is None:
        temperature = attrs.get(ATTR_TEMPERATURE, attrs.get(ATTR_AIRFLOW_TEMPERATURE))

    power_on_hours = attrs.get(ATTR_POWER_ON_HOURS)

    capacity = None
    if isinstance(data.get("user_capacity"), dict):
        capacity = data["user_capacity"].get("bytes")
    if capacity is None:
        capacity = data.get("nvme_total_capacity")

    fields: Dict[str, Any] = {
        name: attrs.get(attr_id) for attr_id, name in _ATA_COUNTERS.items()
    }
    fields["percentage_used"] = _ata_endurance_used(data)
    lbas_written = attrs.get(ATTR_TOTAL_LBAS_WRITTEN)
    if lbas_written:
        fields["bytes_written_total"] = lbas_written * ATA_LBA_BYTES

    if nvme:
        log = data["nvme_smart_health_information_log"]
        if temperature is None:
            temperature = log.get("temperature")
        if power_on_hours is None:
            power_on_hours = log.get("power_on_hours")
        fields["percentage_used"] = log.get("percentage_used")
        fields["available_spare"] = log.get("available_spare")
        fields["available_spare_threshold"] = log.get("available_spare_threshold")
        fields["media_error_count"] = log.get("media_errors")
        fields["critical_warning_bitmap"] = log.get("critical_warning")
        units = log.get("data_units_written")
        if units:
            fields["bytes_written_total"] = int(units) * NVME_DATA_UNIT_BYTES

    if power_on_hours is None and isinstance(data.get("power_on_time"), dict):
        power_on_hours = data["power_on_time"].get("hours")
    if power_on_hours is None and disk is not None:
        power_on_hours = disk.os_power_on_hours
    if temperature is None and disk is not None:
        temperature = disk.os_temperature_c
    if capacity is None and disk is not None:
        capacity = disk.size_bytes

    model = data.get("model_name") or data.get("model_number") or (disk.model if disk else None)
    serial = data.get("serial_number") or (disk.serial if disk else None)

    return NormalizedDeviceRecord(
        device=device,
        device_family=family,
        model=str(model) if model is not None else None,
        serial=str(serial) if serial is not None else None,
        power_on_hours=power_on_hours,
        temperature_c=temperature,
        overall_health=_health_flag(passed),
        capacity_bytes=capacity,
        **fields,
    )


_ATTR_ROW = re.compile(
    r"^\s*(\d+)\s+(\S+)\s+0x[0-9a-fA-F]+\s+\d+\s+\d+\s+\S+\s+\S+\s+\S+\s+\S+\s+(\d+)"
)
_NVME_FIELDS = {
    "Percentage Used": "percentage_used",
    "Available Spare Threshold": "available_spare_threshold",
    "Available Spare": "available_spare",
    "Media and Data Integrity Errors": "media_error_count",
    "Power On Hours": "power_on_hours",
    "Temperature": "temperature_c",
}
_NVME_LINE = re.compile(r"^([A-Za-z][A-Za-z /]+?):\s+([\d,]+)")


def _int_field(text: str) -> Optional[int]:
    match = re.search(r"[\d,]+", text)
    if not match:
        return None
    digits = match.group(0).replace(",", "")
    return int(digits) if digits else None


def _hex_field(text: str) -> Optional[int]:
    try:
        return int(text.strip(), 16)
    except ValueError:
        return None


def record_from_smartctl_text(
    text: str,
    device: str,
    disk: Optional[DiskInfo] = None,
) -> NormalizedDeviceRecord:
    """Normalize plain ``smartctl -a`` output, used when JSON is unavailable."""
    if re.search(r"Device is in (STANDBY|SLEEP) mode", text, re.IGNORECASE):
        if disk is not None:
            return record_without_telemetry(disk)
        return NormalizedDeviceRecord(device=device, device_family=detect_family(device))

    fields: Dict[str, Any] = {}
    model = serial = None
    passed: Optional[bool] = None
    rotation_rate: Optional[int] = None
    capacity: Optional[int] = None
    nvme = False

    for line in text.splitlines():
        if line.startswith(("Device Model:", "Model Number:")):
            model = line.split(":", 1)[1].strip()
            continue
        if line.startswith("Serial Number:"):
            serial = line.split(":", 1)[1].strip()
            continue
        if line.startswith("SMART overall-health"):
            passed = "PASSED" in line.upper()
            continue
        if line.startswith("Rotation Rate:"):
            value = line.split(":", 1)[1]
            rotation_rate = 0 if "Solid State" in value else _int_field(value)
            continue
        if line.startswith(("User Capacity:", "Total NVM Capacity:")):
            capacity = _int_field(line.split(":", 1)[1])
            continue
        if line.startswith("SMART/Health Information (NVMe Log"):
            nvme = True
            continue
        if line.startswith("Critical Warning:"):
            fields["critical_warning_bitmap"] = _hex_field(line.split(":", 1)[1])
            continue
        if line.startswith("Data Units Written:"):
            units = _int_field(line.split(":", 1)[1])
            if units:
                fields["bytes_written_total"] = units * NVME_DATA_UNIT_BYTES
            continue

        row = _ATTR_ROW.match(line)
        if row:
            attr_id, raw = int(row.group(1)), int(row.group(3))
            if attr_id in _ATA_COUNTERS:
                fields[_ATA_COUNTERS[attr_id]] = raw
            elif attr_id == ATTR_POWER_ON_HOURS:
                fields["power_on_hours"] = raw
            elif attr_id in (ATTR_TEMPERATURE, ATTR_AIRFLOW_TEMPERATURE):
                fields.setdefault("temperature_c", raw)
            elif attr_id == ATTR_TOTAL_LBAS_WRITTEN and raw:
                fields["bytes_written_total"] = raw * ATA_LBA_BYTES
            continue

        nvme_line = _NVME_LINE.match(line)
        if nvme_line and nvme_line.group(1) in _NVME_FIELDS:
            fields[_NVME_FIELDS[nvme_line.group(1)]] = _int_field(nvme_line.group(2))

    if disk is not None:
        fields.setdefault("power_on_hours", disk.os_power_on_hours)
        fields.setdefault("temperature_c", disk.os_temperature_c)
        capacity = capacity or disk.size_bytes
        model = model or disk.model
        serial = serial or disk.serial

    return NormalizedDeviceRecord(
        device=device,
        device_family=detect_family(device, nvme=nvme, rotation_rate=rotation_rate, disk=disk),
        model=model,
        serial=serial,
        overall_health=_health_flag(passed),
        capacity_bytes=capacity,
        **fields,
    )


def read_device_record(disk: DiskInfo) -> NormalizedDeviceRecord:
    """Read and normalize one device's diagnostics without waking it up."""
    if is_in_standby(disk.device):
        logger.info("%s is in standby, skipping SMART read", disk.device)
        return record_without_telemetry(disk)
    try:
        data = _run_smartctl(disk.device)
    except RuntimeError as exc:
        logger.debug("JSON read failed for %s (%s), falling back to text", disk.device, exc)
        return record_from_smartctl_text(_run_smartctl_text(disk.device), disk.device, disk)
    return record_from_smartctl_json(data, disk.device, disk)
