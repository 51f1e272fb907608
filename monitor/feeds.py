from __future__ import annotations

import asyncio
from typing import List, Optional, Tuple

from producer.mock_feed import MockEventStore, MockHelmetFeed
from producer.repository import HelmetRepository
from safety.accessors import DataFeed, EventStore
from safety.models import Event, EventFilter, EventStatus, HelmetData, VitalSample, Worker
from shared.api_client import HelmetApiClient
from shared.logging import get_logger
from shared.settings import Settings

log = get_logger(__name__)


class HttpHelmetFeed:
    """DataFeed over the helmet API; blocking calls run in a worker thread."""

    def __init__(self, client: HelmetApiClient):
        self.client = client

    async def list_workers(self) -> List[Worker]:
        return await asyncio.to_thread(self.client.list_workers)

    async def get_worker(self, worker_id: str) -> Optional[Worker]:
        return await asyncio.to_thread(self.client.get_worker, worker_id)

    async def get_helmet(self, helmet_id: str) -> Optional[HelmetData]:
        return await asyncio.to_thread(self.client.get_helmet, helmet_id)

    async def get_current_vital(self, worker_id: str) -> VitalSample:
        reading = await asyncio.to_thread(self.client.current_vitals, worker_id)
        return reading.sample

    async def get_vital_history(self, worker_id: str) -> List[VitalSample]:
        return await asyncio.to_thread(self.client.vital_history, worker_id)


class HttpEventStore:
    def __init__(self, client: HelmetApiClient, token: Optional[str] = None):
        self.client = client
        self.token = token

    async def list_events(self, flt: Optional[EventFilter] = None) -> List[Event]:
        return await asyncio.to_thread(self.client.list_events, flt)

    async def update_event_status(
        self, event_id: str, status: EventStatus, actor: Optional[str] = None
    ) -> Event:
        # The API attributes the change to the session owner; `actor` is not sent.
        return await asyncio.to_thread(self.client.update_event_status, event_id, status, self.token)


def build_feed(s: Settings) -> Tuple[DataFeed, EventStore]:
    backend = s.FEED_BACKEND.lower()
    if backend == "http":
        client = HelmetApiClient.from_settings(s)
        log.info("feed_selected", extra={"backend": "http", "api_base_url": s.API_BASE_URL})
        return HttpHelmetFeed(client), HttpEventStore(client)
    if backend == "mock":
        repo = HelmetRepository.seed(
            seed=s.SIMULATOR_SEED,
            history_size=s.VITALS_HISTORY_SIZE,
            event_count=s.EVENT_SEED_COUNT,
            supervisor=s.DEFAULT_SUPERVISOR,
        )
        log.info("feed_selected", extra={"backend": "mock"})
        return (
            MockHelmetFeed(repo, s.SIMULATED_LATENCY_SCALE),
            MockEventStore(repo, s.SIMULATED_LATENCY_SCALE, default_actor=s.DEFAULT_SUPERVISOR),
        )
    raise ValueError(f"Unknown FEED_BACKEND: {s.FEED_BACKEND!r} (expected 'mock' or 'http')")
