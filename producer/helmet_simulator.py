from __future__ import annotations

import random
from datetime import UTC, datetime, timedelta
from typing import Dict, List, Optional, Sequence

from faker import Faker

from safety.models import (
    Accelerometer,
    Event,
    EventStatus,
    EventType,
    HelmetData,
    MotionStatus,
    Severity,
    VitalSample,
    Worker,
)

ABNORMAL_PROBABILITY = 0.2
HISTORY_SIZE = 24
EVENT_COUNT = 20
EVENT_LOOKBACK = timedelta(days=7)
RESOLUTION_DELAY = timedelta(minutes=30)

SEED_WORKERS: List[Worker] = [
    Worker(
        id="1",
        name="Alex Johnson",
        photo="https://images.pexels.com/photos/220453/pexels-photo-220453.jpeg?auto=compress&cs=tinysrgb&w=300",
        department="Construction",
        position="Site Manager",
        helmet_id="H001",
    ),
    Worker(
        id="2",
        name="Maria Rodriguez",
        photo="https://images.pexels.com/photos/774909/pexels-photo-774909.jpeg?auto=compress&cs=tinysrgb&w=300",
        department="Electrical",
        position="Lead Electrician",
        helmet_id="H002",
    ),
    Worker(
        id="3",
        name="David Chen",
        photo="https://images.pexels.com/photos/614810/pexels-photo-614810.jpeg?auto=compress&cs=tinysrgb&w=300",
        department="Maintenance",
        position="Technician",
        helmet_id="H003",
    ),
    Worker(
        id="4",
        name="Sarah Wilson",
        photo="https://images.pexels.com/photos/733872/pexels-photo-733872.jpeg?auto=compress&cs=tinysrgb&w=300",
        department="Safety",
        position="Inspector",
        helmet_id="H004",
    ),
]

# (id, name, email, password, role)
SEED_USERS = [
    ("1", "John Supervisor", "supervisor@example.com", "password123", "supervisor"),
    ("2", "Admin User", "admin@example.com", "admin123", "admin"),
]

EVENT_DESCRIPTIONS: Dict[EventType, str] = {
    EventType.FALL_DETECTED: "Worker may have fallen. Motion sensors detected sudden acceleration.",
    EventType.HIGH_CO_LEVEL: "High carbon monoxide level detected. Worker may be at risk.",
    EventType.LOW_OXYGEN: "Low oxygen level detected. Worker may be experiencing breathing difficulties.",
    EventType.HIGH_TEMPERATURE: "High body temperature detected. Worker may be experiencing heat stress.",
    EventType.BATTERY_LOW: "Helmet battery is low. Replacement or charging required soon.",
    EventType.DISCONNECTED: "Helmet connection lost. Unable to monitor worker status.",
}


def generate_vital_sample(
    worker_id: str,
    rng: random.Random,
    at: Optional[datetime] = None,
    abnormal_probability: float = ABNORMAL_PROBABILITY,
) -> VitalSample:
    """One randomized helmet reading; abnormal readings stray into warning and critical bands."""
    normal = rng.random() >= abnormal_probability

    if normal:
        oximeter = rng.uniform(95, 100)
        heart_rate = rng.uniform(60, 100)
        temperature = rng.uniform(36.1, 37.2)
        gas_level = rng.uniform(0, 19.9)
        motion = MotionStatus.NORMAL
    else:
        oximeter = rng.uniform(85, 95)
        heart_rate = rng.uniform(50, 150)
        temperature = rng.uniform(35, 39)
        gas_level = rng.uniform(20, 100)
        motion = MotionStatus.WARNING if rng.random() > 0.5 else MotionStatus.FALL_DETECTED

    return VitalSample(
        worker_id=worker_id,
        oximeter=round(oximeter, 1),
        heart_rate=round(heart_rate),
        temperature=round(temperature, 1),
        humidity=round(rng.uniform(40, 60), 1),
        gas_level=round(gas_level, 1),
        accelerometer=Accelerometer(
            x=round(rng.uniform(-1, 1), 3),
            y=round(rng.uniform(-1, 1), 3),
            z=round(rng.uniform(-1, 1), 3),
            status=motion,
        ),
        timestamp=at or datetime.now(UTC),
    )


def generate_vital_history(
    worker_id: str,
    rng: random.Random,
    size: int = HISTORY_SIZE,
    end: Optional[datetime] = None,
) -> List[VitalSample]:
    """Hourly samples ending at `end`, oldest first."""
    end = end or datetime.now(UTC)
    return [
        generate_vital_sample(worker_id, rng, at=end - timedelta(hours=size - 1 - i))
        for i in range(size)
    ]


def generate_helmets(workers: Sequence[Worker], rng: random.Random, now: Optional[datetime] = None) -> List[HelmetData]:
    now = now or datetime.now(UTC)
    return [
        HelmetData(
            id=w.helmet_id,
            worker_id=w.id,
            battery_level=rng.randrange(100),
            status=rng.choice(["active", "active", "active", "warning"]),
            last_connected=now,
        )
        for w in workers
    ]


def generate_events(
    workers: Sequence[Worker],
    rng: random.Random,
    fake: Faker,
    count: int = EVENT_COUNT,
    supervisor: str = "John Supervisor",
    now: Optional[datetime] = None,
) -> List[Event]:
    """Random incidents from the last week, newest first."""
    now = now or datetime.now(UTC)
    events: List[Event] = []
    if not workers:
        return events

    for i in range(count):
        worker = rng.choice(list(workers))
        event_type = rng.choice(list(EventType))
        status = rng.choice(list(EventStatus))
        timestamp = fake.date_time_between(start_date=now - EVENT_LOOKBACK, end_date=now, tzinfo=UTC)

        resolved = status is EventStatus.RESOLVED
        events.append(
            Event(
                id=f"E{i + 1}",
                worker_id=worker.id,
                helmet_id=worker.helmet_id,
                event_type=event_type,
                severity=rng.choice(list(Severity)),
                status=status,
                timestamp=timestamp,
                description=EVENT_DESCRIPTIONS[event_type],
                resolved_at=timestamp + RESOLUTION_DELAY if resolved else None,
                resolved_by=supervisor if resolved else None,
            )
        )

    events.sort(key=lambda e: e.timestamp, reverse=True)
    return events
