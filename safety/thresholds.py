"""Per-signal status classification for helmet vital readings.

Each signal maps a reading onto one of three levels. Boundaries are exact:
a reading sitting on a boundary belongs to the less severe band listed
first in the table below.

    signal        normal          warning                 critical
    oximeter      >= 95           [90, 95)                < 90
    heart_rate    [60, 100]       [50, 60) or (100, 120]  < 50 or > 120
    temperature   [36, 37.5]      [35, 36) or (37.5, 38]  < 35 or > 38
    humidity      [40, 60]        [30, 40) or (60, 70]    < 30 or > 70
    gas_level     < 20            [20, 50]                > 50

These bands drive per-field badges only. Alert banners use their own
thresholds in `safety.alerts`.
"""
from __future__ import annotations

from enum import Enum
from typing import Callable, Dict, List, Tuple

from pydantic import BaseModel, ConfigDict, computed_field

from safety.models import MotionStatus, VitalSample


class VitalSignal(str, Enum):
    OXIMETER = "oximeter"
    HEART_RATE = "heart_rate"
    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"
    GAS_LEVEL = "gas_level"
    ACCELEROMETER = "accelerometer"


class StatusLevel(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"


LEVEL_COLORS: Dict[StatusLevel, str] = {
    StatusLevel.NORMAL: "green",
    StatusLevel.WARNING: "amber",
    StatusLevel.CRITICAL: "red",
}


class ClassificationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    signal: VitalSignal
    value: float | str
    level: StatusLevel
    label: str

    @computed_field
    @property
    def color(self) -> str:
        return LEVEL_COLORS[self.level]


def _oximeter_level(v: float) -> StatusLevel:
    if v >= 95:
        return StatusLevel.NORMAL
    if v >= 90:
        return StatusLevel.WARNING
    return StatusLevel.CRITICAL


def _heart_rate_level(v: float) -> StatusLevel:
    if 60 <= v <= 100:
        return StatusLevel.NORMAL
    if 50 <= v < 60 or 100 < v <= 120:
        return StatusLevel.WARNING
    return StatusLevel.CRITICAL


def _temperature_level(v: float) -> StatusLevel:
    if 36 <= v <= 37.5:
        return StatusLevel.NORMAL
    if 35 <= v < 36 or 37.5 < v <= 38:
        return StatusLevel.WARNING
    return StatusLevel.CRITICAL


def _humidity_level(v: float) -> StatusLevel:
    if 40 <= v <= 60:
        return StatusLevel.NORMAL
    if 30 <= v < 40 or 60 < v <= 70:
        return StatusLevel.WARNING
    return StatusLevel.CRITICAL


def _gas_level(v: float) -> StatusLevel:
    if v < 20:
        return StatusLevel.NORMAL
    if 20 <= v <= 50:
        return StatusLevel.WARNING
    return StatusLevel.CRITICAL


_NUMERIC_RULES: Dict[VitalSignal, Tuple[Callable[[float], StatusLevel], Tuple[str, str, str]]] = {
    VitalSignal.OXIMETER: (_oximeter_level, ("Normal", "Low", "Critical")),
    VitalSignal.HEART_RATE: (_heart_rate_level, ("Normal", "Abnormal", "Critical")),
    VitalSignal.TEMPERATURE: (_temperature_level, ("Normal", "Warning", "Critical")),
    VitalSignal.HUMIDITY: (_humidity_level, ("Normal", "Warning", "Critical")),
    VitalSignal.GAS_LEVEL: (_gas_level, ("Safe", "Warning", "Danger")),
}

_LEVEL_INDEX = {StatusLevel.NORMAL: 0, StatusLevel.WARNING: 1, StatusLevel.CRITICAL: 2}

_MOTION_RESULTS: Dict[MotionStatus, Tuple[StatusLevel, str]] = {
    MotionStatus.NORMAL: (StatusLevel.NORMAL, "Safe"),
    MotionStatus.WARNING: (StatusLevel.WARNING, "Warning"),
    MotionStatus.FALL_DETECTED: (StatusLevel.CRITICAL, "Alert"),
}


def classify(signal: VitalSignal | str, value: float) -> ClassificationResult:
    """Classify one numeric reading. Never raises for any real value."""
    signal = VitalSignal(signal)
    if signal is VitalSignal.ACCELEROMETER:
        raise ValueError("accelerometer readings are classified with classify_motion()")
    level_of, labels = _NUMERIC_RULES[signal]
    level = level_of(value)
    return ClassificationResult(signal=signal, value=value, level=level, label=labels[_LEVEL_INDEX[level]])


def classify_motion(status: MotionStatus | str) -> ClassificationResult:
    status = MotionStatus(status)
    level, label = _MOTION_RESULTS[status]
    return ClassificationResult(signal=VitalSignal.ACCELEROMETER, value=status.value, level=level, label=label)


def classify_sample(sample: VitalSample) -> List[ClassificationResult]:
    """Badge results for every field of a sample, in dashboard display order."""
    return [
        classify(VitalSignal.OXIMETER, sample.oximeter),
        classify(VitalSignal.HEART_RATE, sample.heart_rate),
        classify(VitalSignal.TEMPERATURE, sample.temperature),
        classify(VitalSignal.HUMIDITY, sample.humidity),
        classify(VitalSignal.GAS_LEVEL, sample.gas_level),
        classify_motion(sample.motion_status),
    ]
