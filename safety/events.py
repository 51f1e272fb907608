"""Client-side filtering and paging of safety events."""
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Iterable, List, Mapping, Optional, Sequence, TypeVar

from safety.models import Event, EventFilter, Page, Worker

EVENT_PAGE_SIZE = 10

T = TypeVar("T")


def _aware(ts: datetime) -> datetime:
    # Naive bounds are taken as UTC so they compare against stored timestamps.
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


def search_text(event: Event, worker_name: str = "") -> str:
    return f"{event.id} {worker_name} {event.helmet_id} {event.event_type.value} {event.description}".lower()


def matches(event: Event, flt: EventFilter, worker_names: Optional[Mapping[str, str]] = None) -> bool:
    if flt.worker_id and event.worker_id != flt.worker_id:
        return False
    if flt.event_type is not None and event.event_type != flt.event_type:
        return False
    if flt.status is not None and event.status != flt.status:
        return False
    if flt.severity is not None and event.severity != flt.severity:
        return False
    if flt.from_date is not None and _aware(event.timestamp) < _aware(flt.from_date):
        return False
    if flt.to_date is not None and _aware(event.timestamp) > _aware(flt.to_date):
        return False
    if flt.search:
        name = (worker_names or {}).get(event.worker_id, "")
        if flt.search.lower() not in search_text(event, name):
            return False
    return True


def filter_events(
    events: Iterable[Event],
    flt: Optional[EventFilter] = None,
    workers: Iterable[Worker] = (),
) -> List[Event]:
    """Keep the events matching every field set on `flt`, preserving order."""
    if flt is None:
        return list(events)
    worker_names = {w.id: w.name for w in workers}
    return [e for e in events if matches(e, flt, worker_names)]


def sort_events_newest_first(events: Iterable[Event]) -> List[Event]:
    return sorted(events, key=lambda e: _aware(e.timestamp), reverse=True)


def total_pages(total_items: int, page_size: int = EVENT_PAGE_SIZE) -> int:
    return max(1, math.ceil(total_items / page_size))


def paginate(items: Sequence[T], page: int = 1, page_size: int = EVENT_PAGE_SIZE) -> Page[T]:
    """Slice one 1-indexed page out of `items`.

    Page numbers outside [1, total_pages] are clamped; callers disable
    navigation with `has_previous` / `has_next` instead of handling errors.
    """
    if page_size < 1:
        raise ValueError("page_size must be >= 1")
    pages = total_pages(len(items), page_size)
    page = min(max(page, 1), pages)
    start = (page - 1) * page_size
    return Page(
        items=list(items[start : start + page_size]),
        page=page,
        page_size=page_size,
        total_items=len(items),
        total_pages=pages,
        has_previous=page > 1,
        has_next=page < pages,
    )
