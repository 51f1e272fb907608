"""Async accessors over the in-memory repository.

Each call sleeps for a simulated round-trip, scaled by `latency_scale`
(0 turns the delay off, which is what tests use).
"""
from __future__ import annotations

import asyncio
import secrets
from typing import Dict, List, Optional

from producer.helmet_simulator import generate_vital_sample
from producer.repository import HelmetRepository
from safety.errors import InvalidCredentialsError, WorkerNotFoundError
from safety.models import Event, EventFilter, EventStatus, HelmetData, Session, VitalSample, Worker
from shared.logging import get_logger

log = get_logger(__name__)

# Seconds per call at latency_scale=1.0
LATENCY_S: Dict[str, float] = {
    "list_workers": 0.5,
    "get_worker": 0.3,
    "get_helmet": 0.3,
    "get_current_vital": 0.4,
    "get_vital_history": 0.7,
    "list_events": 0.6,
    "update_event_status": 0.5,
    "login": 0.8,
    "register": 0.8,
    "current_session": 0.3,
}


class _Simulated:
    def __init__(self, repo: HelmetRepository, latency_scale: float = 1.0):
        self.repo = repo
        self.latency_scale = latency_scale

    async def _delay(self, op: str) -> None:
        delay = LATENCY_S.get(op, 0.0) * self.latency_scale
        if delay > 0:
            await asyncio.sleep(delay)


class MockHelmetFeed(_Simulated):
    async def list_workers(self) -> List[Worker]:
        await self._delay("list_workers")
        return self.repo.list_workers()

    async def get_worker(self, worker_id: str) -> Optional[Worker]:
        await self._delay("get_worker")
        return self.repo.get_worker(worker_id)

    async def get_helmet(self, helmet_id: str) -> Optional[HelmetData]:
        await self._delay("get_helmet")
        return self.repo.get_helmet(helmet_id)

    async def get_current_vital(self, worker_id: str) -> VitalSample:
        await self._delay("get_current_vital")
        if self.repo.get_worker(worker_id) is None:
            raise WorkerNotFoundError(worker_id)
        sample = generate_vital_sample(worker_id, self.repo.rng, at=self.repo.clock())
        self.repo.append_vital(sample)
        return sample

    async def get_vital_history(self, worker_id: str) -> List[VitalSample]:
        await self._delay("get_vital_history")
        return self.repo.vital_history(worker_id)


class MockEventStore(_Simulated):
    def __init__(self, repo: HelmetRepository, latency_scale: float = 1.0, default_actor: str = "John Supervisor"):
        super().__init__(repo, latency_scale)
        self.default_actor = default_actor

    async def list_events(self, flt: Optional[EventFilter] = None) -> List[Event]:
        await self._delay("list_events")
        return self.repo.list_events(flt)

    async def update_event_status(
        self, event_id: str, status: EventStatus, actor: Optional[str] = None
    ) -> Event:
        await self._delay("update_event_status")
        return self.repo.set_event_status(event_id, status, actor or self.default_actor)


class MockSessionStore(_Simulated):
    """Toy login: credentials checked against seeded users, sessions held in memory."""

    def __init__(self, repo: HelmetRepository, latency_scale: float = 1.0):
        super().__init__(repo, latency_scale)
        self._sessions: Dict[str, Session] = {}

    def _open(self, user) -> Session:
        session = Session(token=secrets.token_urlsafe(24), user=user, created_at=self.repo.clock())
        self._sessions[session.token] = session
        log.info("session_opened", extra={"user_id": user.id})
        return session

    async def login(self, email: str, password: str) -> Session:
        await self._delay("login")
        user = self.repo.find_user(email, password)
        if user is None:
            log.info("login_rejected", extra={"email": email})
            raise InvalidCredentialsError()
        return self._open(user)

    async def register(self, name: str, email: str, password: str) -> Session:
        await self._delay("register")
        return self._open(self.repo.add_user(name, email, password))

    async def current_session(self, token: str) -> Optional[Session]:
        await self._delay("current_session")
        return self._sessions.get(token)

    async def logout(self, token: str) -> None:
        if self._sessions.pop(token, None) is not None:
            log.info("session_closed")
