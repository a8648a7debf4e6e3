from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional


class DeviceFamily(str, Enum):
    MECHANICAL = "mechanical"
    FLASH = "flash"
    REMOVABLE = "removable"


class HealthFlag(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    UNKNOWN = "unknown"


class RiskTier(IntEnum):
    """Risk buckets in increasing order of severity."""

    MINIMAL = 0
    LOW = 1
    MODERATE = 2
    ELEVATED = 3
    HIGH = 4

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def from_label(cls, label: str) -> "RiskTier":
        return cls[label.strip().upper()]


class Severity(str, Enum):
    CAUTION = "caution"
    CRITICAL = "critical"


class Confidence(str, Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


PERCENTAGE_USED_MAX = 255


def _counter(value: Any) -> Optional[int]:
    """Coerce a raw counter to a non-negative int, or None when unusable."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    if number < 0:
        return None
    return number


def _percent(value: Any) -> Optional[int]:
    number = _counter(value)
    if number is None or number > 100:
        return None
    return number


@dataclass
class DiskInfo:
    device: str
    model: Optional[str]
    serial: Optional[str]
    size_bytes: Optional[int]
    removable: bool = False
    rotational: Optional[bool] = None
    transport: Optional[str] = None
    os_temperature_c: Optional[int] = None
    os_power_on_hours: Optional[int] = None


@dataclass
class NormalizedDeviceRecord:
    """Per-device diagnostic snapshot consumed by the engine.

    ``None`` always means "not measured". Counters that arrive malformed or
    negative are dropped to ``None`` when the record is built, so the engine
    never sees them.
    """

    device: str
    device_family: DeviceFamily
    model: Optional[str] = None
    serial: Optional[str] = None
    power_on_hours: Optional[int] = None
    temperature_c: Optional[int] = None
    overall_health: HealthFlag = HealthFlag.UNKNOWN

    reallocated_sector_count: Optional[int] = None
    pending_sector_count: Optional[int] = None
    uncorrectable_sector_count: Optional[int] = None
    reported_uncorrectable_count: Optional[int] = None
    command_timeout_count: Optional[int] = None

    percentage_used: Optional[int] = None
    available_spare: Optional[int] = None
    available_spare_threshold: Optional[int] = None
    media_error_count: Optional[int] = None
    critical_warning_bitmap: Optional[int] = None
    bytes_written_total: Optional[int] = None
    capacity_bytes: Optional[int] = None

    def __post_init__(self) -> None:
        self.device_family = DeviceFamily(self.device_family)
        if self.overall_health is None:
            self.overall_health = HealthFlag.UNKNOWN
        self.overall_health = HealthFlag(self.overall_health)
        if self.temperature_c is not None:
            try:
                self.temperature_c = int(self.temperature_c)
            except (TypeError, ValueError):
                self.temperature_c = None

        for name in (
            "power_on_hours",
            "reallocated_sector_count",
            "pending_sector_count",
            "uncorrectable_sector_count",
            "reported_uncorrectable_count",
            "command_timeout_count",
            "media_error_count",
            "critical_warning_bitmap",
            "bytes_written_total",
            "capacity_bytes",
        ):
            setattr(self, name, _counter(getattr(self, name)))

        used = _counter(self.percentage_used)
        if used is not None:
            used = min(used, PERCENTAGE_USED_MAX)
        self.percentage_used = used
        self.available_spare = _percent(self.available_spare)
        self.available_spare_threshold = _percent(self.available_spare_threshold)

    @property
    def has_wear_telemetry(self) -> bool:
        return any(
            value is not None
            for value in (
                self.percentage_used,
                self.available_spare,
                self.media_error_count,
                self.critical_warning_bitmap,
            )
        )

    def spare_threshold(self, default: int = 10) -> int:
        if self.available_spare_threshold is not None:
            return self.available_spare_threshold
        return default


@dataclass
class HealthWarning:
    severity: Severity
    attribute: str
    observed_value: int
    message: str
    recommended_action: str
    tooltip: str = ""

    @property
    def is_critical(self) -> bool:
        return self.severity is Severity.CRITICAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "severity": self.severity.value,
            "attribute": self.attribute,
            "observed_value": self.observed_value,
            "message": self.message,
            "recommended_action": self.recommended_action,
            "tooltip": self.tooltip,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HealthWarning":
        return cls(
            severity=Severity(data["severity"]),
            attribute=data["attribute"],
            observed_value=data["observed_value"],
            message=data["message"],
            recommended_action=data["recommended_action"],
            tooltip=data.get("tooltip", ""),
        )


@dataclass
class ReplacementEstimate:
    """Months until recommended replacement.

    ``months_remaining`` of ``None`` means there was no basis for a number and
    is kept apart from ``0`` (replace now) through serialization.
    """

    months_remaining: Optional[int]
    confidence: Confidence
    method: str
    explanation: str
    timeline_label: str
    timeline_severity_class: str
    details: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "months_remaining": self.months_remaining,
            "confidence": self.confidence.value,
            "method": self.method,
            "explanation": self.explanation,
            "timeline_label": self.timeline_label,
            "timeline_severity_class": self.timeline_severity_class,
            "details": dict(self.details),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReplacementEstimate":
        months = data.get("months_remaining")
        return cls(
            months_remaining=int(months) if months is not None else None,
            confidence=Confidence(data["confidence"]),
            method=data["method"],
            explanation=data.get("explanation", ""),
            timeline_label=data.get("timeline_label", ""),
            timeline_severity_class=data.get("timeline_severity_class", ""),
            details=dict(data.get("details") or {}),
        )


@dataclass
class DeviceReport:
    record: NormalizedDeviceRecord
    tier: Optional[RiskTier]
    classified_tier: Optional[RiskTier]
    tier_overrides: List[str]
    warnings: List[HealthWarning]
    estimate: ReplacementEstimate
    tier_label: str = "Unknown"

    @property
    def device(self) -> str:
        return self.record.device

    def to_dict(self) -> Dict[str, Any]:
        record = self.record
        return {
            "device": record.device,
            "model": record.model,
            "serial": record.serial,
            "device_family": record.device_family.value,
            "power_on_hours": record.power_on_hours,
            "temperature_c": record.temperature_c,
            "capacity_bytes": record.capacity_bytes,
            "overall_health": record.overall_health.value,
            "tier": self.tier.label if self.tier is not None else None,
            "tier_label": self.tier_label,
            "classified_tier": (
                self.classified_tier.label if self.classified_tier is not None else None
            ),
            "tier_overrides": list(self.tier_overrides),
            "warnings": [w.to_dict() for w in self.warnings],
            "replacement": self.estimate.to_dict(),
        }
