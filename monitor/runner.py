# ruff: noqa: E402, I001
from __future__ import annotations

import sys
from pathlib import Path

_repo_root = Path(__file__).resolve().parents[1]
if str(_repo_root) not in sys.path:
    sys.path.insert(0, str(_repo_root))

import asyncio
from typing import Optional

from monitor.feeds import build_feed
from monitor.poller import VitalsPoller, VitalsUpdate
from safety.accessors import DataFeed, EventStore
from safety.alerts import highest_severity
from safety.models import EventFilter, EventStatus
from safety.thresholds import StatusLevel
from shared.logging import configure_logging, get_logger
from shared.settings import get_settings

s = get_settings()
configure_logging(service_name="monitor", level=s.LOG_LEVEL)
log = get_logger(__name__)


def log_update(update: VitalsUpdate) -> None:
    flagged = {
        c.signal.value: c.label for c in update.classifications if c.level is not StatusLevel.NORMAL
    }
    if update.alerts:
        log.warning(
            "alerts_raised",
            extra={
                "worker_id": update.worker_id,
                "alerts": [a.kind.value for a in update.alerts],
                "highest_severity": highest_severity(update.alerts).value,
                "flagged": flagged,
                "timestamp": update.sample.timestamp.isoformat(),
            },
        )
    else:
        log.info(
            "vitals_nominal",
            extra={"worker_id": update.worker_id, "flagged": flagged, "timestamp": update.sample.timestamp.isoformat()},
        )


async def resolve_worker_id(feed: DataFeed, wanted: str) -> Optional[str]:
    """Fall back to the first known worker when the configured one does not exist."""
    if await feed.get_worker(wanted) is not None:
        return wanted
    workers = await feed.list_workers()
    if not workers:
        return None
    log.warning("worker_not_found_falling_back", extra={"worker_id": wanted, "fallback": workers[0].id})
    return workers[0].id


async def run(feed: DataFeed, events: EventStore, worker_id: str, interval_s: float) -> None:
    resolved = await resolve_worker_id(feed, worker_id)
    if resolved is None:
        log.warning("no_workers_available")
        return

    try:
        open_events = await events.list_events(EventFilter(worker_id=resolved, status=EventStatus.NEW))
        log.info("open_events", extra={"worker_id": resolved, "count": len(open_events)})
    except Exception as e:
        log.warning("event_store_unavailable", extra={"error": str(e)})

    poller = VitalsPoller(feed, log_update, interval_s=interval_s)
    await poller.watch(resolved)
    try:
        # Runs until cancelled.
        await asyncio.Event().wait()
    finally:
        await poller.stop()


def main():
    feed, events = build_feed(s)
    log.info(
        "monitor_started",
        extra={"feed_backend": s.FEED_BACKEND, "worker_id": s.MONITOR_WORKER_ID, "interval_s": s.POLL_INTERVAL_SECONDS},
    )
    try:
        asyncio.run(run(feed, events, s.MONITOR_WORKER_ID, s.POLL_INTERVAL_SECONDS))
    except KeyboardInterrupt:
        log.info("monitor_stopped_keyboard_interrupt")


if __name__ == "__main__":
    main()
