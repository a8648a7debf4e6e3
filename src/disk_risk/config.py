from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml

from .models import RiskTier

logger = logging.getLogger(__name__)


HOURS_PER_YEAR = 8760
MAX_THRESHOLD_HOURS = 876600  # 100 years

DEFAULT_THRESHOLD_HOURS: Tuple[int, int, int, int] = (26280, 43800, 61320, 87600)
DEFAULT_SPARE_THRESHOLD = 10

DEFAULT_LABELS: Dict[RiskTier, str] = {
    RiskTier.MINIMAL: "Minimal Risk (AFR <1%)",
    RiskTier.LOW: "Low Risk (AFR 1-2%)",
    RiskTier.MODERATE: "Moderate Risk (AFR 2-5%)",
    RiskTier.ELEVATED: "Elevated Risk (AFR 5-10%)",
    RiskTier.HIGH: "High Risk (AFR >10%)",
}

DEFAULT_COLORS: Dict[RiskTier, str] = {
    RiskTier.MINIMAL: "#4CAF50",
    RiskTier.LOW: "#8BC34A",
    RiskTier.MODERATE: "#FFC107",
    RiskTier.ELEVATED: "#FF9800",
    RiskTier.HIGH: "#F44336",
}

MAX_LABEL_LENGTH = 50

_HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")
_TAG = re.compile(r"<[^>]*>")


class PredictionMode(str, Enum):
    CONSERVATIVE = "conservative"
    AGGRESSIVE = "aggressive"


@dataclass(frozen=True)
class ModeProfile:
    """Named time assumptions for one prediction mode."""

    target_age_years: float
    caution_months: int
    write_rate_tb_per_year: float
    wear_multiplier: float


MODE_PROFILES: Dict[PredictionMode, ModeProfile] = {
    PredictionMode.CONSERVATIVE: ModeProfile(
        target_age_years=6.0,
        caution_months=3,
        write_rate_tb_per_year=30.0,
        wear_multiplier=1.5,
    ),
    PredictionMode.AGGRESSIVE: ModeProfile(
        target_age_years=8.0,
        caution_months=6,
        write_rate_tb_per_year=15.0,
        wear_multiplier=1.0,
    ),
}


def mode_profile(mode: Union[PredictionMode, ModeProfile, str, None]) -> ModeProfile:
    if isinstance(mode, ModeProfile):
        return mode
    if mode is None:
        return MODE_PROFILES[PredictionMode.CONSERVATIVE]
    try:
        return MODE_PROFILES[PredictionMode(mode)]
    except ValueError:
        logger.warning("Unknown prediction mode %r, using conservative", mode)
        return MODE_PROFILES[PredictionMode.CONSERVATIVE]


@dataclass
class RiskThresholds:
    """Power-on hour boundaries between the five age tiers.

    The four values must be strictly ascending and the first must be
    positive. Anything else replaces the whole set with the defaults.
    """

    minimal: int = DEFAULT_THRESHOLD_HOURS[0]
    low: int = DEFAULT_THRESHOLD_HOURS[1]
    moderate: int = DEFAULT_THRESHOLD_HOURS[2]
    elevated: int = DEFAULT_THRESHOLD_HOURS[3]
    spare_threshold_default: int = DEFAULT_SPARE_THRESHOLD

    def __post_init__(self) -> None:
        hours = self.as_tuple()
        if not _ascending(hours):
            logger.error(
                "Invalid threshold order %s, resetting to defaults %s",
                hours,
                DEFAULT_THRESHOLD_HOURS,
            )
            self.minimal, self.low, self.moderate, self.elevated = DEFAULT_THRESHOLD_HOURS
        if not 0 <= self.spare_threshold_default <= 100:
            logger.error(
                "Spare threshold %s out of range, using %s",
                self.spare_threshold_default,
                DEFAULT_SPARE_THRESHOLD,
            )
            self.spare_threshold_default = DEFAULT_SPARE_THRESHOLD

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.minimal, self.low, self.moderate, self.elevated)

    @classmethod
    def coerce(cls, value: Any) -> "RiskThresholds":
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        return cls(*value)


def _ascending(hours: Tuple[Any, ...]) -> bool:
    prev = 0
    for value in hours:
        if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= prev:
            return False
        prev = value
    return True


@dataclass
class Settings:
    thresholds: RiskThresholds = field(default_factory=RiskThresholds)
    mode: PredictionMode = PredictionMode.CONSERVATIVE
    labels: Dict[RiskTier, str] = field(default_factory=lambda: dict(DEFAULT_LABELS))
    colors: Dict[RiskTier, str] = field(default_factory=lambda: dict(DEFAULT_COLORS))

    @property
    def profile(self) -> ModeProfile:
        return mode_profile(self.mode)

    def label_for(self, tier: Optional[RiskTier]) -> str:
        if tier is None:
            return "Unknown"
        return self.labels.get(tier, DEFAULT_LABELS[tier])

    def color_for(self, tier: Optional[RiskTier]) -> Optional[str]:
        if tier is None:
            return None
        return self.colors.get(tier, DEFAULT_COLORS[tier])


def _int_or(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _clean_label(value: Any, default: str) -> str:
    if not isinstance(value, str):
        return default
    label = _TAG.sub("", value).strip()
    if not label or len(label) > MAX_LABEL_LENGTH:
        return default
    return label


def settings_from_dict(data: Dict[str, Any]) -> Settings:
    """Build validated settings from a raw mapping (e.g. parsed YAML)."""
    raw_thresholds = data.get("thresholds") or {}
    if not isinstance(raw_thresholds, dict):
        logger.error("thresholds must be a mapping, got %r", type(raw_thresholds).__name__)
        raw_thresholds = {}
    hours = []
    for tier, default in zip(
        (RiskTier.MINIMAL, RiskTier.LOW, RiskTier.MODERATE, RiskTier.ELEVATED),
        DEFAULT_THRESHOLD_HOURS,
    ):
        value = _int_or(raw_thresholds.get(tier.label, default), default)
        hours.append(max(0, min(MAX_THRESHOLD_HOURS, value)))

    spare = _int_or(data.get("spare_threshold_default", DEFAULT_SPARE_THRESHOLD), DEFAULT_SPARE_THRESHOLD)
    thresholds = RiskThresholds(*hours, spare_threshold_default=spare)

    raw_mode = data.get("prediction_mode", PredictionMode.CONSERVATIVE.value)
    try:
        mode = PredictionMode(str(raw_mode).strip().lower())
    except ValueError:
        logger.warning("Unknown prediction mode %r, using conservative", raw_mode)
        mode = PredictionMode.CONSERVATIVE

    raw_labels = data.get("labels") or {}
    labels = {
        tier: _clean_label(raw_labels.get(tier.label), DEFAULT_LABELS[tier])
        for tier in RiskTier
    } if isinstance(raw_labels, dict) else dict(DEFAULT_LABELS)

    raw_colors = data.get("colors") or {}
    if not isinstance(raw_colors, dict):
        raw_colors = {}
    colors: Dict[RiskTier, str] = {}
    for tier in RiskTier:
        color = raw_colors.get(tier.label, DEFAULT_COLORS[tier])
        if isinstance(color, str) and _HEX_COLOR.match(color):
            colors[tier] = color.upper()
        else:
            colors[tier] = DEFAULT_COLORS[tier]
    if len(set(colors.values())) != len(colors):
        logger.error("Duplicate tier colors %s, resetting palette to defaults", colors)
        colors = dict(DEFAULT_COLORS)

    return Settings(thresholds=thresholds, mode=mode, labels=labels, colors=colors)


def load_settings(path: Union[str, Path, None]) -> Settings:
    """Load settings from a YAML file, falling back to defaults."""
    if path is None:
        return Settings()
    config_path = Path(path)
    if not config_path.exists():
        logger.info("Config file %s not found, using defaults", config_path)
        return Settings()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        logger.error("Failed to read config %s: %s", config_path, exc)
        return Settings()

    if data is None:
        return Settings()
    if not isinstance(data, dict):
        logger.error("Config %s must contain a mapping", config_path)
        return Settings()
    return settings_from_dict(data)
