from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Sequence, Union

from safety.accessors import DataFeed
from safety.alerts import Alert, evaluate_alerts
from safety.models import VitalSample
from safety.thresholds import ClassificationResult, classify_sample
from shared.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class VitalsUpdate:
    worker_id: str
    sample: VitalSample
    classifications: List[ClassificationResult]
    alerts: List[Alert]
    history: List[VitalSample] = field(default_factory=list)


UpdateCallback = Callable[[VitalsUpdate], Union[None, Awaitable[None]]]


def evaluate(sample: VitalSample, history: Sequence[VitalSample] = ()) -> VitalsUpdate:
    return VitalsUpdate(
        worker_id=sample.worker_id,
        sample=sample,
        classifications=classify_sample(sample),
        alerts=evaluate_alerts(sample),
        history=list(history),
    )


class VitalsPoller:
    """
    Periodically fetch the current reading for one watched worker.

    Only one worker is watched at a time. `watch()` cancels the running poll
    task before starting a new one, and every fetch remembers which worker it
    was issued for: a response that lands after the selection moved on is
    dropped instead of overwriting the newer worker's view.
    """

    def __init__(self, feed: DataFeed, on_update: UpdateCallback, *, interval_s: float = 10.0):
        self._feed = feed
        self._on_update = on_update
        self.interval_s = interval_s
        self._worker_id: Optional[str] = None
        self._task: Optional[asyncio.Task] = None
        self._history: List[VitalSample] = []
        self.last_update: Optional[VitalsUpdate] = None

    @property
    def worker_id(self) -> Optional[str]:
        return self._worker_id

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def is_current(self, worker_id: str) -> bool:
        return worker_id == self._worker_id

    async def watch(self, worker_id: str) -> None:
        if self.is_current(worker_id) and self.running:
            return
        await self._cancel()
        self._worker_id = worker_id
        self._history = []
        self.last_update = None
        self._task = asyncio.create_task(self._run(worker_id), name=f"vitals-poll-{worker_id}")
        log.info("watching_worker", extra={"worker_id": worker_id, "interval_s": self.interval_s})

    async def stop(self) -> None:
        await self._cancel()
        if self._worker_id is not None:
            log.info("stopped_watching_worker", extra={"worker_id": self._worker_id})
        self._worker_id = None

    async def refresh(self) -> Optional[VitalsUpdate]:
        """Fetch a reading for the watched worker right away, outside the schedule."""
        if self._worker_id is None:
            return None
        return await self._poll_once(self._worker_id)

    async def _cancel(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self, worker_id: str) -> None:
        try:
            history = await self._feed.get_vital_history(worker_id)
        except Exception as e:
            log.warning("vitals_history_fetch_failed", extra={"worker_id": worker_id, "error": str(e)})
        else:
            if self.is_current(worker_id):
                self._history = history

        while True:
            await self._poll_once(worker_id)
            await asyncio.sleep(self.interval_s)

    async def _poll_once(self, worker_id: str) -> Optional[VitalsUpdate]:
        try:
            sample = await self._feed.get_current_vital(worker_id)
        except Exception as e:
            # Keep showing the last good reading.
            log.warning("vitals_poll_failed", extra={"worker_id": worker_id, "error": str(e)})
            return None
        return await self._deliver(worker_id, sample)

    async def _deliver(self, requested_for: str, sample: VitalSample) -> Optional[VitalsUpdate]:
        if not self.is_current(requested_for) or sample.worker_id != requested_for:
            log.info(
                "stale_vitals_discarded",
                extra={"requested_for": requested_for, "sample_worker_id": sample.worker_id, "watching": self._worker_id},
            )
            return None

        update = evaluate(sample, self._history)
        self.last_update = update
        try:
            result = self._on_update(update)
            if inspect.isawaitable(result):
                await result
        except Exception:
            log.exception("vitals_update_callback_failed", extra={"worker_id": requested_for})
        return update
