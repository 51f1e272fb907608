import asyncio
from datetime import UTC, datetime, timedelta

from monitor.poller import VitalsPoller, evaluate
from safety.alerts import AlertKind
from safety.models import MotionStatus

from tests.factories import make_sample

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


class _GatedFeed:
    """Feed whose current-vital calls block until the test opens the gate for that worker."""

    def __init__(self):
        self.gates = {}
        self.calls = []
        self.fail_for = set()

    def gate(self, worker_id):
        return self.gates.setdefault(worker_id, asyncio.Event())

    async def get_vital_history(self, worker_id):
        return [make_sample(worker_id, timestamp=T0 - timedelta(hours=1))]

    async def get_current_vital(self, worker_id):
        self.calls.append(worker_id)
        await self.gate(worker_id).wait()
        if worker_id in self.fail_for:
            raise ConnectionError("helmet gateway unreachable")
        return make_sample(worker_id, oximeter=85, timestamp=T0)


async def _settle():
    for _ in range(5):
        await asyncio.sleep(0)


def test_evaluate_combines_classification_and_alerts():
    update = evaluate(make_sample("4", motion=MotionStatus.FALL_DETECTED))
    assert update.worker_id == "4"
    assert len(update.classifications) == 6
    assert [a.kind for a in update.alerts] == [AlertKind.FALL_DETECTED]


def test_watch_delivers_evaluated_updates():
    async def scenario():
        feed = _GatedFeed()
        updates = []
        poller = VitalsPoller(feed, updates.append, interval_s=3600)
        feed.gate("1").set()
        await poller.watch("1")
        await _settle()
        await poller.stop()
        return updates, poller

    updates, poller = asyncio.run(scenario())
    assert len(updates) == 1
    assert updates[0].worker_id == "1"
    assert [a.kind for a in updates[0].alerts] == [AlertKind.LOW_OXYGEN]
    assert len(updates[0].history) == 1
    assert poller.worker_id is None
    assert not poller.running


def test_late_response_for_previous_worker_is_discarded():
    async def scenario():
        feed = _GatedFeed()
        updates = []
        poller = VitalsPoller(feed, updates.append, interval_s=3600)

        await poller.watch("1")
        await _settle()
        in_flight = asyncio.create_task(poller.refresh())
        await _settle()

        await poller.watch("2")
        feed.gate("2").set()
        await _settle()

        # The refresh issued for worker 1 lands after the switch.
        feed.gate("1").set()
        late = await in_flight
        await _settle()
        await poller.stop()
        return updates, late

    updates, late = asyncio.run(scenario())
    assert late is None
    assert [u.worker_id for u in updates] == ["2"]


def test_switching_workers_cancels_the_old_task():
    async def scenario():
        feed = _GatedFeed()
        poller = VitalsPoller(feed, lambda u: None, interval_s=3600)
        await poller.watch("1")
        await _settle()
        first_task = poller._task
        await poller.watch("2")
        await _settle()
        cancelled = first_task.cancelled()
        await poller.stop()
        return cancelled, feed.calls

    cancelled, calls = asyncio.run(scenario())
    assert cancelled
    assert calls == ["1", "2"]


def test_watching_same_worker_twice_keeps_the_task():
    async def scenario():
        feed = _GatedFeed()
        poller = VitalsPoller(feed, lambda u: None, interval_s=3600)
        await poller.watch("1")
        task = poller._task
        await poller.watch("1")
        same = poller._task is task
        await poller.stop()
        return same

    assert asyncio.run(scenario())


def test_feed_failure_keeps_last_good_update():
    async def scenario():
        feed = _GatedFeed()
        updates = []
        poller = VitalsPoller(feed, updates.append, interval_s=3600)
        feed.gate("1").set()
        await poller.watch("1")
        await _settle()
        good = poller.last_update

        feed.fail_for.add("1")
        result = await poller.refresh()
        still = poller.last_update
        await poller.stop()
        return good, result, still, updates

    good, result, still, updates = asyncio.run(scenario())
    assert good is not None
    assert result is None
    assert still is good
    assert len(updates) == 1


def test_async_callbacks_are_awaited():
    async def scenario():
        feed = _GatedFeed()
        seen = []

        async def on_update(update):
            await asyncio.sleep(0)
            seen.append(update.worker_id)

        poller = VitalsPoller(feed, on_update, interval_s=3600)
        feed.gate("3").set()
        await poller.watch("3")
        await _settle()
        await poller.stop()
        return seen

    assert asyncio.run(scenario()) == ["3"]


def test_refresh_without_watched_worker():
    poller = VitalsPoller(_GatedFeed(), lambda u: None)
    assert asyncio.run(poller.refresh()) is None


def test_failing_callback_does_not_stop_polling():
    async def scenario():
        feed = _GatedFeed()
        feed.gate("1").set()
        feed.gate("2").set()
        calls = []

        def render(update):
            calls.append(update.worker_id)
            raise RuntimeError("render failed")

        poller = VitalsPoller(feed, render, interval_s=0.01)
        await poller.watch("1")
        await asyncio.sleep(0.05)
        still_running = poller.running
        await poller.watch("2")
        await _settle()
        await poller.stop()
        return calls, still_running, poller

    calls, still_running, poller = asyncio.run(scenario())
    assert still_running
    assert calls.count("1") >= 2
    assert "2" in calls
    assert poller.last_update.worker_id == "2"
