from __future__ import annotations

import json
import platform
import subprocess
from typing import Any, Dict, List, Optional

from .models import DiskInfo


def _run_powershell_json(cmd: str) -> Any:
    ps_cmd = ["powershell", "-NoProfile", "-Command", cmd]
    proc = subprocess.run(ps_cmd, capture_output=True, text=True)
    if not proc.stdout.strip():
        raise RuntimeError(proc.stderr.strip() or "PowerShell returned no output")
    return json.loads(proc.stdout)


def _as_list(value: Any) -> List[Dict[str, Any]]:
    if isinstance(value, dict):
        return [value]
    return [v for v in value or [] if isinstance(v, dict)]


def _windows_disks() -> List[DiskInfo]:
    disks = _as_list(
        _run_powershell_json(
            "Get-PhysicalDisk | Select-Object DeviceId,FriendlyName,SerialNumber,Size,"
            "BusType,MediaType | ConvertTo-Json -Depth 3"
        )
    )
    try:
        rel = _as_list(
            _run_powershell_json(
                "Get-PhysicalDisk | Get-StorageReliabilityCounter | "
                "Select-Object DeviceId,Temperature,PowerOnHours | ConvertTo-Json -Depth 3"
            )
        )
    except (RuntimeError, ValueError):
        rel = []

    rel_map: Dict[str, Dict[str, Any]] = {}
    for r in rel:
        if r.get("DeviceId") is not None:
            rel_map[str(r["DeviceId"])] = r

    result: List[DiskInfo] = []
    for d in disks:
        num = d.get("DeviceId")
        if num is None:
            continue
        bus = str(d.get("BusType") or "")
        media = str(d.get("MediaType") or "")
        rotational: Optional[bool] = None
        if media.upper() == "HDD":
            rotational = True
        elif media.upper() == "SSD":
            rotational = False
        r = rel_map.get(str(num), {})
        result.append(
            DiskInfo(
                # smartctl addresses Windows physical drives as /dev/pdN
                device=f"/dev/pd{num}",
                model=d.get("FriendlyName"),
                serial=d.get("SerialNumber"),
                size_bytes=d.get("Size"),
                removable=bus.upper() == "USB",
                rotational=rotational,
                transport=bus.lower() or None,
                os_temperature_c=r.get("Temperature"),
                os_power_on_hours=r.get("PowerOnHours"),
            )
        )

    return result


def _flag(value: Any) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    return str(value).strip() in ("1", "true")


def _linux_disks() -> List[DiskInfo]:
    cmd = [
        "lsblk",
        "-J",
        "-b",
        "-o",
        "NAME,TYPE,SIZE,MOUNTPOINT,MODEL,SERIAL,RM,ROTA,TRAN",
    ]
    proc = subprocess.run(cmd, capture_output=True, text=True)
    if not proc.stdout.strip():
        raise RuntimeError(proc.stderr.strip() or "lsblk returned no output")
    return parse_lsblk(json.loads(proc.stdout))


def parse_lsblk(data: Dict[str, Any]) -> List[DiskInfo]:
    result: List[DiskInfo] = []
    for dev in data.get("blockdevices", []):
        if dev.get("type") != "disk":
            continue
        size = dev.get("size")
        result.append(
            DiskInfo(
                device=f"/dev/{dev.get('name')}",
                model=(dev.get("model") or "").strip() or None,
                serial=dev.get("serial"),
                size_bytes=int(size) if size is not None else None,
                removable=bool(_flag(dev.get("rm"))),
                rotational=_flag(dev.get("rota")),
                transport=dev.get("tran"),
            )
        )

    return result


def get_disks() -> List[DiskInfo]:
    system = platform.system()
    if system == "Windows":
        return _windows_disks()
    if system == "Linux":
        return _linux_disks()
    raise RuntimeError(f"Unsupported OS: {system}")
