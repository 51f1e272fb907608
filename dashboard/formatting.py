"""Display helpers for the dashboard. Kept free of Streamlit calls so they can be tested."""
from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

import pandas as pd

from safety.errors import FeedUnavailableError
from safety.models import Event, EventStatus, EventType, Page, Severity, VitalSample, Worker
from safety.thresholds import ClassificationResult, StatusLevel
from shared.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")

EVENT_TYPE_LABELS: Dict[EventType, str] = {
    EventType.FALL_DETECTED: "Fall Detected",
    EventType.HIGH_CO_LEVEL: "High CO Level",
    EventType.LOW_OXYGEN: "Low Oxygen",
    EventType.HIGH_TEMPERATURE: "High Temperature",
    EventType.BATTERY_LOW: "Battery Low",
    EventType.DISCONNECTED: "Disconnected",
}

# Streamlit markdown color names
SEVERITY_COLORS: Dict[Severity, str] = {
    Severity.LOW: "gray",
    Severity.MEDIUM: "violet",
    Severity.HIGH: "orange",
    Severity.CRITICAL: "red",
}

STATUS_COLORS: Dict[EventStatus, str] = {
    EventStatus.NEW: "blue",
    EventStatus.ACKNOWLEDGED: "orange",
    EventStatus.RESOLVED: "green",
}

LEVEL_COLORS: Dict[StatusLevel, str] = {
    StatusLevel.NORMAL: "green",
    StatusLevel.WARNING: "orange",
    StatusLevel.CRITICAL: "red",
}

VITAL_CARDS: Dict[str, Tuple[str, str]] = {
    "oximeter": ("Oxygen Level", "%"),
    "heart_rate": ("Heart Rate", "bpm"),
    "temperature": ("Temperature", "°C"),
    "humidity": ("Humidity", "%"),
    "gas_level": ("Gas Level", "ppm"),
    "accelerometer": ("Accelerometer", ""),
}

MOTION_HEADLINES = {"normal": "Normal", "warning": "Motion", "fall_detected": "Fall"}


def event_type_label(event_type: EventType | str) -> str:
    try:
        return EVENT_TYPE_LABELS[EventType(event_type)]
    except ValueError:
        return str(event_type)


def badge(text: str, color: str) -> str:
    return f":{color}[**{text}**]"


def severity_badge(severity: Severity) -> str:
    return badge(severity.value.capitalize(), SEVERITY_COLORS[severity])


def status_badge(status: EventStatus) -> str:
    return badge(status.value.capitalize(), STATUS_COLORS[status])


def level_badge(result: ClassificationResult) -> str:
    return badge(result.label, LEVEL_COLORS[result.level])


def card_value(result: ClassificationResult) -> str:
    if result.signal.value == "accelerometer":
        return MOTION_HEADLINES.get(str(result.value), str(result.value))
    _, unit = VITAL_CARDS[result.signal.value]
    return f"{float(result.value):.1f} {unit}".strip()


def history_frame(history: Sequence[VitalSample]) -> pd.DataFrame:
    """Chart rows for the trend plot, indexed by reading time."""
    df = pd.DataFrame(
        [
            {
                "timestamp": s.timestamp,
                "Oxygen (%)": s.oximeter,
                "Heart Rate (bpm)": s.heart_rate,
                "Temperature (°C)": s.temperature,
                "Gas Level (ppm)": s.gas_level,
            }
            for s in history
        ]
    )
    if df.empty:
        return df
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
    return df.set_index("timestamp").sort_index()


def events_frame(events: Iterable[Event], workers: Iterable[Worker]) -> pd.DataFrame:
    names = {w.id: w.name for w in workers}
    return pd.DataFrame(
        [
            {
                "ID": e.id,
                "Worker": names.get(e.worker_id, "Unknown"),
                "Helmet": e.helmet_id,
                "Event": event_type_label(e.event_type),
                "Severity": e.severity.value.capitalize(),
                "Status": e.status.value.capitalize(),
                "Time": e.timestamp.strftime("%b %d, %Y %H:%M"),
                "Resolved By": e.resolved_by or "",
            }
            for e in events
        ]
    )


def page_caption(page: Page) -> str:
    if page.total_items == 0:
        return "No events match the current filters."
    first = (page.page - 1) * page.page_size + 1
    last = first + len(page.items) - 1
    return f"Showing {first}-{last} of {page.total_items} events (page {page.page} of {page.total_pages})"


def accept_reading(selected_worker_id: Optional[str], reading_worker_id: str) -> bool:
    """Whether a reading that just arrived still belongs to the worker on screen."""
    return selected_worker_id is not None and selected_worker_id == reading_worker_id


def next_actions(status: EventStatus) -> List[EventStatus]:
    """Status transitions the events table offers for an event."""
    if status is EventStatus.NEW:
        return [EventStatus.ACKNOWLEDGED, EventStatus.RESOLVED]
    if status is EventStatus.ACKNOWLEDGED:
        return [EventStatus.RESOLVED]
    return []


def fetch_or_keep(fetch: Callable[[], T], fallback: T, *, event: str, **fields) -> Tuple[T, bool]:
    """Run a feed call; when the feed is unavailable log `event` and hand back `fallback`.

    The flag is True when the call succeeded, so the page can show an error otherwise.
    """
    try:
        return fetch(), True
    except FeedUnavailableError as e:
        log.warning(event, extra={**fields, "error": str(e)})
        return fallback, False
