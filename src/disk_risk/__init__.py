"""Drive risk classification and replacement forecasting."""

from .models import (
    Confidence,
    DeviceFamily,
    DeviceReport,
    DiskInfo,
    HealthFlag,
    HealthWarning,
    NormalizedDeviceRecord,
    ReplacementEstimate,
    RiskTier,
    Severity,
)
from .config import ModeProfile, PredictionMode, RiskThresholds, Settings, load_settings
from .classifier import classify
from .health import detect_warnings
from .predictor import predict
from .assess import assess_device, assess_devices, oldest_first, reconcile_tier, scan

__all__ = [
    "Confidence",
    "DeviceFamily",
    "DeviceReport",
    "DiskInfo",
    "HealthFlag",
    "HealthWarning",
    "NormalizedDeviceRecord",
    "ReplacementEstimate",
    "RiskTier",
    "Severity",
    "ModeProfile",
    "PredictionMode",
    "RiskThresholds",
    "Settings",
    "load_settings",
    "classify",
    "detect_warnings",
    "predict",
    "assess_device",
    "assess_devices",
    "oldest_first",
    "reconcile_tier",
    "scan",
]
