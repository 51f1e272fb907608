"""Contracts between the monitoring core and its data sources.

The in-process simulator (`producer.mock_feed`) and the HTTP client
(`monitor.feeds`) both satisfy these, so either can back the poller.
"""
from __future__ import annotations

from typing import List, Optional, Protocol

from safety.models import Event, EventFilter, EventStatus, HelmetData, Session, VitalSample, Worker


class DataFeed(Protocol):
    async def list_workers(self) -> List[Worker]: ...

    async def get_worker(self, worker_id: str) -> Optional[Worker]: ...

    async def get_helmet(self, helmet_id: str) -> Optional[HelmetData]: ...

    async def get_current_vital(self, worker_id: str) -> VitalSample: ...

    async def get_vital_history(self, worker_id: str) -> List[VitalSample]:
        """Fixed-size window of samples, oldest first."""
        ...


class EventStore(Protocol):
    async def list_events(self, flt: Optional[EventFilter] = None) -> List[Event]: ...

    async def update_event_status(
        self, event_id: str, status: EventStatus, actor: Optional[str] = None
    ) -> Event:
        """Raises EventNotFoundError for an unknown id."""
        ...


class SessionStore(Protocol):
    async def login(self, email: str, password: str) -> Session: ...

    async def register(self, name: str, email: str, password: str) -> Session: ...

    async def current_session(self, token: str) -> Optional[Session]: ...

    async def logout(self, token: str) -> None: ...
