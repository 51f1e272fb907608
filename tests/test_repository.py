import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from producer.mock_feed import MockEventStore, MockHelmetFeed, MockSessionStore
from producer.repository import HelmetRepository
from safety.errors import EventNotFoundError, InvalidCredentialsError, UserExistsError, WorkerNotFoundError
from safety.models import EventFilter, EventStatus

from tests.factories import make_sample

NOW = datetime(2024, 6, 1, 9, 30, tzinfo=UTC)


def _unresolved(repo):
    return next(e for e in repo.list_events() if e.status is not EventStatus.RESOLVED)


def test_seed_builds_workers_helmets_history_and_events(repo):
    workers = repo.list_workers()
    assert [w.id for w in workers] == ["1", "2", "3", "4"]
    assert repo.get_helmet("H001").worker_id == "1"
    assert len(repo.vital_history("1")) == 24
    assert len(repo.list_events()) == 20


def test_seeded_events_respect_resolution_invariant(repo):
    for event in repo.list_events():
        resolved = event.status is EventStatus.RESOLVED
        assert (event.resolved_at is not None) == resolved
        assert (event.resolved_by is not None) == resolved


def test_seeded_events_are_newest_first(repo):
    stamps = [e.timestamp for e in repo.list_events()]
    assert stamps == sorted(stamps, reverse=True)


def test_history_is_oldest_first_and_hourly(repo):
    history = repo.vital_history("2")
    stamps = [s.timestamp for s in history]
    assert stamps == sorted(stamps)
    assert stamps[1] - stamps[0] == timedelta(hours=1)


def test_unknown_ids(repo):
    assert repo.get_worker("nope") is None
    assert repo.get_helmet("H999") is None
    assert repo.vital_history("nope") == []
    with pytest.raises(EventNotFoundError):
        repo.get_event("E999")


def test_resolving_sets_time_and_actor(repo):
    repo.clock = lambda: NOW
    event = _unresolved(repo)
    updated = repo.set_event_status(event.id, EventStatus.RESOLVED, "Jane Doe")
    assert updated.status is EventStatus.RESOLVED
    assert updated.resolved_at == NOW
    assert updated.resolved_by == "Jane Doe"
    assert repo.get_event(event.id) == updated


def test_re_resolving_keeps_original_resolution(repo):
    repo.clock = lambda: NOW
    event = repo.set_event_status(_unresolved(repo).id, EventStatus.RESOLVED, "Jane Doe")
    repo.clock = lambda: NOW + timedelta(hours=2)
    updated = repo.set_event_status(event.id, EventStatus.RESOLVED, "Someone Else")
    assert updated.resolved_at == NOW
    assert updated.resolved_by == "Jane Doe"


def test_leaving_resolved_clears_resolution(repo):
    event = repo.set_event_status(_unresolved(repo).id, EventStatus.RESOLVED, "Jane Doe")
    updated = repo.set_event_status(event.id, EventStatus.ACKNOWLEDGED, "Jane Doe")
    assert updated.status is EventStatus.ACKNOWLEDGED
    assert updated.resolved_at is None and updated.resolved_by is None


def test_unknown_event_status_update(repo):
    with pytest.raises(EventNotFoundError):
        repo.set_event_status("E999", EventStatus.RESOLVED, "Jane Doe")


def test_append_vital_slides_the_window(repo):
    latest = repo.vital_history("1")[-1]
    sample = make_sample("1", timestamp=latest.timestamp + timedelta(minutes=5))
    repo.append_vital(sample)
    history = repo.vital_history("1")
    assert len(history) == 24
    assert history[-1] == sample


def test_append_vital_rejects_out_of_order_samples(repo):
    first = repo.vital_history("1")[0]
    with pytest.raises(ValueError):
        repo.append_vital(make_sample("1", timestamp=first.timestamp - timedelta(hours=1)))


def test_seed_is_reproducible():
    a = HelmetRepository.seed(seed=3)
    b = HelmetRepository.seed(seed=3)
    def key(repo):
        return sorted((e.id, e.worker_id, e.event_type, e.status) for e in repo.list_events())

    assert key(a) == key(b)


def test_mock_feed_current_vital_extends_history(repo):
    feed = MockHelmetFeed(repo, latency_scale=0)
    sample = asyncio.run(feed.get_current_vital("3"))
    assert sample.worker_id == "3"
    assert repo.vital_history("3")[-1] == sample


def test_mock_feed_unknown_worker(repo):
    feed = MockHelmetFeed(repo, latency_scale=0)
    with pytest.raises(WorkerNotFoundError):
        asyncio.run(feed.get_current_vital("nope"))
    assert asyncio.run(feed.get_worker("nope")) is None


def test_mock_event_store_filters_and_defaults_actor(repo):
    store = MockEventStore(repo, latency_scale=0, default_actor="Night Shift Lead")
    new_events = asyncio.run(store.list_events(EventFilter(status=EventStatus.NEW)))
    assert all(e.status is EventStatus.NEW for e in new_events)

    event = _unresolved(repo)
    updated = asyncio.run(store.update_event_status(event.id, EventStatus.RESOLVED))
    assert updated.resolved_by == "Night Shift Lead"


def test_sessions_login_logout(repo):
    sessions = MockSessionStore(repo, latency_scale=0)
    session = asyncio.run(sessions.login("supervisor@example.com", "password123"))
    assert session.user.name == "John Supervisor"
    assert asyncio.run(sessions.current_session(session.token)) == session

    asyncio.run(sessions.logout(session.token))
    assert asyncio.run(sessions.current_session(session.token)) is None


def test_sessions_reject_bad_credentials(repo):
    sessions = MockSessionStore(repo, latency_scale=0)
    with pytest.raises(InvalidCredentialsError):
        asyncio.run(sessions.login("supervisor@example.com", "wrong"))


def test_register_new_supervisor(repo):
    sessions = MockSessionStore(repo, latency_scale=0)
    session = asyncio.run(sessions.register("Pat Lee", "pat@example.com", "s3cret"))
    assert session.user.role == "supervisor"
    assert asyncio.run(sessions.login("pat@example.com", "s3cret")).user.email == "pat@example.com"
    with pytest.raises(UserExistsError):
        asyncio.run(sessions.register("Pat Again", "PAT@example.com", "x"))
