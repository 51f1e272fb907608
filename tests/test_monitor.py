import asyncio
import json
import logging

import pytest

from monitor.feeds import HttpEventStore, HttpHelmetFeed, build_feed
from monitor.poller import evaluate
from monitor.runner import log_update, resolve_worker_id
from producer.mock_feed import MockEventStore, MockHelmetFeed
from producer.repository import HelmetRepository
from safety.models import MotionStatus
from shared.logging import _JsonFormatter
from shared.settings import Settings

from tests.factories import make_sample


def test_resolve_worker_id_falls_back_to_first_worker():
    feed = MockHelmetFeed(HelmetRepository.seed(seed=1), latency_scale=0)
    assert asyncio.run(resolve_worker_id(feed, "3")) == "3"
    assert asyncio.run(resolve_worker_id(feed, "missing")) == "1"


def test_resolve_worker_id_without_workers():
    feed = MockHelmetFeed(HelmetRepository.seed(seed=1, workers=[]), latency_scale=0)
    assert asyncio.run(resolve_worker_id(feed, "1")) is None


def test_log_update_reports_alerts(caplog):
    update = evaluate(make_sample("2", gas_level=80, motion=MotionStatus.FALL_DETECTED))
    with caplog.at_level(logging.INFO, logger="monitor.runner"):
        log_update(update)
    record = caplog.records[-1]
    assert record.getMessage() == "alerts_raised"
    assert record.alerts == ["high_gas_level", "fall_detected"]
    assert record.highest_severity == "critical"
    assert record.flagged == {"gas_level": "Danger", "accelerometer": "Alert"}


def test_log_update_nominal(caplog):
    with caplog.at_level(logging.INFO, logger="monitor.runner"):
        log_update(evaluate(make_sample("2")))
    assert caplog.records[-1].getMessage() == "vitals_nominal"


def test_build_feed_selects_backend():
    feed, events = build_feed(Settings(FEED_BACKEND="mock", SIMULATOR_SEED=5, SIMULATED_LATENCY_SCALE=0))
    assert isinstance(feed, MockHelmetFeed) and isinstance(events, MockEventStore)
    assert feed.repo is events.repo

    feed, events = build_feed(Settings(FEED_BACKEND="http", API_BASE_URL="http://api.test"))
    assert isinstance(feed, HttpHelmetFeed) and isinstance(events, HttpEventStore)
    assert feed.client.base_url == "http://api.test"

    with pytest.raises(ValueError):
        build_feed(Settings(FEED_BACKEND="kafka"))


def test_json_formatter_includes_extra_fields():
    record = logging.LogRecord("monitor.runner", logging.INFO, __file__, 1, "alerts_raised", (), None)
    record.worker_id = "2"
    payload = json.loads(_JsonFormatter("monitor").format(record))
    assert payload["service"] == "monitor"
    assert payload["msg"] == "alerts_raised"
    assert payload["worker_id"] == "2"
