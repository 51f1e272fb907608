"""Domain models shared by the API, the monitor and the dashboard.

Attributes are snake_case; serialized JSON uses camelCase aliases so the wire
shape matches what the dashboard and any external helmet gateway expect.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class MotionStatus(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    FALL_DETECTED = "fall_detected"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.LOW: 0, Severity.MEDIUM: 1, Severity.HIGH: 2, Severity.CRITICAL: 3}


class EventType(str, Enum):
    FALL_DETECTED = "fall_detected"
    HIGH_CO_LEVEL = "high_co_level"
    LOW_OXYGEN = "low_oxygen"
    HIGH_TEMPERATURE = "high_temperature"
    BATTERY_LOW = "battery_low"
    DISCONNECTED = "disconnected"


class EventStatus(str, Enum):
    NEW = "new"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"

    @property
    def order(self) -> int:
        return list(EventStatus).index(self)


class Accelerometer(_Model):
    x: float
    y: float
    z: float
    status: MotionStatus = MotionStatus.NORMAL


class VitalSample(_Model):
    """One worker's instantaneous helmet reading. Never mutated once produced."""

    worker_id: str
    oximeter: float
    heart_rate: float
    temperature: float
    humidity: float
    gas_level: float
    accelerometer: Accelerometer
    timestamp: datetime

    @property
    def motion_status(self) -> MotionStatus:
        return self.accelerometer.status


class Worker(_Model):
    id: str
    name: str
    photo: str = ""
    department: str
    position: str
    helmet_id: str


class HelmetData(_Model):
    id: str
    worker_id: str
    battery_level: int = Field(ge=0, le=100)
    status: Literal["active", "inactive", "warning", "critical"]
    last_connected: datetime


class Event(_Model):
    """A safety incident record. Only the event store writes these."""

    id: str
    worker_id: str
    helmet_id: str
    event_type: EventType
    severity: Severity
    status: EventStatus
    timestamp: datetime
    description: str
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None


class EventFilter(_Model):
    worker_id: Optional[str] = None
    event_type: Optional[EventType] = None
    status: Optional[EventStatus] = None
    severity: Optional[Severity] = None
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None
    search: Optional[str] = None


class Page(_Model, Generic[T]):
    items: List[T]
    page: int
    page_size: int
    total_items: int
    total_pages: int
    has_previous: bool
    has_next: bool


class User(_Model):
    id: str
    name: str
    email: str
    role: Literal["supervisor", "admin"] = "supervisor"


class Session(_Model):
    token: str
    user: User
    created_at: datetime
