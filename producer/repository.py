from __future__ import annotations

import random
from collections import deque
from datetime import UTC, datetime
from typing import Callable, Deque, Dict, List, Optional, Tuple

from faker import Faker

from producer import helmet_simulator as sim
from safety.errors import EventNotFoundError, UserExistsError
from safety.events import filter_events, sort_events_newest_first
from safety.models import Event, EventFilter, EventStatus, HelmetData, User, VitalSample, Worker
from shared.logging import get_logger

log = get_logger(__name__)


class HelmetRepository:
    """
    In-memory stand-in for the helmet backend's database.

    Build one per process with `seed()` and hand it to whatever needs it;
    nothing here is module-level state.
    """

    def __init__(
        self,
        workers: List[Worker],
        helmets: List[HelmetData],
        histories: Dict[str, List[VitalSample]],
        events: List[Event],
        users: Optional[List[Tuple[User, str]]] = None,
        *,
        history_size: int = sim.HISTORY_SIZE,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
        rng: Optional[random.Random] = None,
    ):
        self._workers: Dict[str, Worker] = {w.id: w for w in workers}
        self._helmets: Dict[str, HelmetData] = {h.id: h for h in helmets}
        self._histories: Dict[str, Deque[VitalSample]] = {
            worker_id: deque(samples, maxlen=history_size) for worker_id, samples in histories.items()
        }
        self._events: Dict[str, Event] = {e.id: e for e in sort_events_newest_first(events)}
        self._users: Dict[str, Tuple[User, str]] = {u.email.lower(): (u, pw) for u, pw in users or []}
        self.history_size = history_size
        self.clock = clock
        self.rng = rng or random.Random()

    @classmethod
    def seed(
        cls,
        *,
        seed: Optional[int] = None,
        workers: Optional[List[Worker]] = None,
        history_size: int = sim.HISTORY_SIZE,
        event_count: int = sim.EVENT_COUNT,
        supervisor: str = "John Supervisor",
    ) -> "HelmetRepository":
        rng = random.Random(seed)
        fake = Faker()
        if seed is not None:
            fake.seed_instance(seed)

        workers = list(workers if workers is not None else sim.SEED_WORKERS)
        now = datetime.now(UTC)
        repo = cls(
            workers=workers,
            helmets=sim.generate_helmets(workers, rng, now=now),
            histories={w.id: sim.generate_vital_history(w.id, rng, size=history_size, end=now) for w in workers},
            events=sim.generate_events(workers, rng, fake, count=event_count, supervisor=supervisor, now=now),
            users=[
                (User(id=uid, name=name, email=email, role=role), password)
                for uid, name, email, password, role in sim.SEED_USERS
            ],
            history_size=history_size,
            rng=rng,
        )
        log.info(
            "repository_seeded",
            extra={"workers": len(workers), "events": event_count, "history_size": history_size, "seed": seed},
        )
        return repo

    # Workers / helmets

    def list_workers(self) -> List[Worker]:
        return list(self._workers.values())

    def get_worker(self, worker_id: str) -> Optional[Worker]:
        return self._workers.get(worker_id)

    def get_helmet(self, helmet_id: str) -> Optional[HelmetData]:
        return self._helmets.get(helmet_id)

    # Vitals

    def vital_history(self, worker_id: str) -> List[VitalSample]:
        return list(self._histories.get(worker_id, ()))

    def append_vital(self, sample: VitalSample) -> None:
        """Record a sample, dropping the oldest once the window is full."""
        history = self._histories.setdefault(sample.worker_id, deque(maxlen=self.history_size))
        if history and sample.timestamp < history[-1].timestamp:
            raise ValueError(
                f"sample for worker {sample.worker_id} is older than the latest recorded reading"
            )
        history.append(sample)

    # Events

    def list_events(self, flt: Optional[EventFilter] = None) -> List[Event]:
        return filter_events(self._events.values(), flt, self._workers.values())

    def get_event(self, event_id: str) -> Event:
        try:
            return self._events[event_id]
        except KeyError:
            raise EventNotFoundError(event_id) from None

    def set_event_status(self, event_id: str, status: EventStatus, actor: str) -> Event:
        current = self.get_event(event_id)
        status = EventStatus(status)

        if status.order < current.status.order:
            log.warning(
                "event_status_moved_backwards",
                extra={"event_id": event_id, "from_status": current.status.value, "to_status": status.value},
            )

        if status is EventStatus.RESOLVED:
            if current.status is EventStatus.RESOLVED:
                resolved_at, resolved_by = current.resolved_at, current.resolved_by
            else:
                resolved_at, resolved_by = self.clock(), actor
        else:
            resolved_at, resolved_by = None, None

        updated = current.model_copy(
            update={"status": status, "resolved_at": resolved_at, "resolved_by": resolved_by}
        )
        self._events[event_id] = updated
        log.info(
            "event_status_updated",
            extra={"event_id": event_id, "status": status.value, "actor": actor},
        )
        return updated

    # Users

    def find_user(self, email: str, password: str) -> Optional[User]:
        entry = self._users.get(email.lower())
        if entry is None or entry[1] != password:
            return None
        return entry[0]

    def add_user(self, name: str, email: str, password: str) -> User:
        if email.lower() in self._users:
            raise UserExistsError(email)
        user = User(id=str(len(self._users) + 1), name=name, email=email, role="supervisor")
        self._users[email.lower()] = (user, password)
        return user
