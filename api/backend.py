from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from producer.mock_feed import MockEventStore, MockHelmetFeed, MockSessionStore
from producer.repository import HelmetRepository
from shared.logging import get_logger
from shared.settings import Settings

log = get_logger(__name__)


@dataclass
class Backend:
    repo: HelmetRepository
    feed: MockHelmetFeed
    events: MockEventStore
    sessions: MockSessionStore


def build_backend(repo: HelmetRepository, *, latency_scale: float = 1.0, default_actor: str = "John Supervisor") -> Backend:
    return Backend(
        repo=repo,
        feed=MockHelmetFeed(repo, latency_scale),
        events=MockEventStore(repo, latency_scale, default_actor=default_actor),
        sessions=MockSessionStore(repo, latency_scale),
    )


def init_backend(s: Settings) -> Backend:
    """Seed the in-memory repository once for the lifetime of the process."""
    repo = HelmetRepository.seed(
        seed=s.SIMULATOR_SEED,
        history_size=s.VITALS_HISTORY_SIZE,
        event_count=s.EVENT_SEED_COUNT,
        supervisor=s.DEFAULT_SUPERVISOR,
    )
    backend = build_backend(repo, latency_scale=s.SIMULATED_LATENCY_SCALE, default_actor=s.DEFAULT_SUPERVISOR)
    log.info("backend_ready", extra={"latency_scale": s.SIMULATED_LATENCY_SCALE})
    return backend


def get_backend(request: Request) -> Backend:
    return request.app.state.backend
