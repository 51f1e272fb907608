"""Alert rules that evaluate a single helmet reading.

These thresholds only cover the dangerous side of each signal and are kept
apart from the badge bands in `safety.thresholds`; the two tables are allowed
to diverge.
"""
from __future__ import annotations

from enum import Enum
from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict

from safety.models import MotionStatus, Severity, VitalSample

LOW_OXYGEN_BELOW = 90.0
HEART_RATE_LOW_BELOW = 50.0
HEART_RATE_HIGH_ABOVE = 120.0
HIGH_TEMPERATURE_ABOVE = 38.0
HIGH_GAS_LEVEL_ABOVE = 50.0


class AlertKind(str, Enum):
    LOW_OXYGEN = "low_oxygen"
    ABNORMAL_HEART_RATE = "abnormal_heart_rate"
    HIGH_TEMPERATURE = "high_temperature"
    HIGH_GAS_LEVEL = "high_gas_level"
    FALL_DETECTED = "fall_detected"


class Alert(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: AlertKind
    title: str
    description: str
    severity: Severity


_LOW_OXYGEN = Alert(
    kind=AlertKind.LOW_OXYGEN,
    title="Low Oxygen",
    description="Worker oxygen level is critically low!",
    severity=Severity.CRITICAL,
)
_ABNORMAL_HEART_RATE = Alert(
    kind=AlertKind.ABNORMAL_HEART_RATE,
    title="Abnormal Heart Rate",
    description="Worker heart rate is outside safe range!",
    severity=Severity.HIGH,
)
_HIGH_TEMPERATURE = Alert(
    kind=AlertKind.HIGH_TEMPERATURE,
    title="High Temperature",
    description="Worker body temperature is elevated!",
    severity=Severity.HIGH,
)
_HIGH_GAS_LEVEL = Alert(
    kind=AlertKind.HIGH_GAS_LEVEL,
    title="High Gas Level",
    description="Dangerous gas levels detected!",
    severity=Severity.CRITICAL,
)
_FALL_DETECTED = Alert(
    kind=AlertKind.FALL_DETECTED,
    title="Fall Detected",
    description="Worker may have fallen! Immediate response required.",
    severity=Severity.CRITICAL,
)


def evaluate_alerts(sample: VitalSample) -> List[Alert]:
    """Return every alert the sample triggers, in priority order.

    Conditions are independent; a sample can raise all five at once.
    """
    alerts: List[Alert] = []

    if sample.oximeter < LOW_OXYGEN_BELOW:
        alerts.append(_LOW_OXYGEN)

    if sample.heart_rate < HEART_RATE_LOW_BELOW or sample.heart_rate > HEART_RATE_HIGH_ABOVE:
        alerts.append(_ABNORMAL_HEART_RATE)

    if sample.temperature > HIGH_TEMPERATURE_ABOVE:
        alerts.append(_HIGH_TEMPERATURE)

    if sample.gas_level > HIGH_GAS_LEVEL_ABOVE:
        alerts.append(_HIGH_GAS_LEVEL)

    if sample.motion_status is MotionStatus.FALL_DETECTED:
        alerts.append(_FALL_DETECTED)

    return alerts


def highest_severity(alerts: Iterable[Alert]) -> Optional[Severity]:
    severities = [a.severity for a in alerts]
    if not severities:
        return None
    return max(severities, key=lambda s: s.rank)
