"""Tests for the HTTP ingress, health and admin endpoints."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from pollflow.api.app import create_app
from pollflow.bootstrap import build_pipeline
from pollflow.core.config import AppSettings, PipelineConfig
from pollflow.core.exceptions import DelayStoreError
from pollflow.models.pipeline import JourneyState
from tests.fakes import MemoryDelayStore, MemoryJourneyLog, RecordingHandler, ScriptedReadinessChecker


class BrokenStore(MemoryDelayStore):
    def schedule(self, submission, attempt, delay, *, journey_id):
        raise DelayStoreError("store offline")

    def pending(self):
        raise DelayStoreError("store offline")


@pytest.fixture
def parts():
    checker = ScriptedReadinessChecker(default=False)
    ready = RecordingHandler()
    log = MemoryJourneyLog()
    settings = AppSettings(pipeline=PipelineConfig(schedule_retries=1, poll_interval=60.0))
    pipeline = build_pipeline(
        settings, checker=checker, ready_handler=ready,
        timeout_handler=RecordingHandler(), listener=log,
    )
    return settings, pipeline, checker, ready, log


@pytest.fixture
def client(parts):
    settings, pipeline, *_ = parts
    with TestClient(create_app(settings, pipeline)) as c:
        yield c


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_ready_reports_store(client):
    body = client.get("/ready").json()
    assert body == {"status": "ready", "durable": False, "pending": 0}


def test_submit_is_accepted_and_polled(client, parts):
    _, _, checker, ready, log = parts
    checker.set_script("A", [True])

    resp = client.post("/submissions", json={"submissionId": "A", "description": "hello", "delay": 0})

    assert resp.status_code == 202
    assert resp.json() == {"accepted": True, "submissionId": "A"}
    assert ready.submission_ids() == ["A"]
    assert log.for_submission("A")[-1].target == JourneyState.READY


def test_root_path_accepts_submissions(client, parts):
    resp = client.post("/", json={"submissionId": "B", "description": "", "delay": 1000})
    assert resp.status_code == 202
    assert parts[1].store.pending() == 1


def test_not_ready_submission_is_scheduled(client, parts):
    client.post("/submissions", json={"submissionId": "C", "delay": 60000, "status": "READY"})

    body = client.get("/admin/delay-store").json()
    assert body["backend"] == "MemoryDelayStore"
    assert body["durable"] is False
    assert body["pending"] == 1
    assert body["next_release_at"] is not None


def test_unrecognised_status_is_accepted(client, parts):
    _, _, checker, ready, _ = parts
    checker.set_script("S", [True])

    resp = client.post("/submissions", json={"submissionId": "S", "delay": 0, "status": "PENDING"})

    assert resp.status_code == 202
    assert ready.submission_ids() == ["S"]


def test_invalid_body_rejected(client):
    resp = client.post("/submissions", json={"description": "no id", "delay": -5})
    assert resp.status_code == 422


def test_store_failure_is_not_reported_to_caller(parts):
    settings, _, checker, ready, log = parts
    pipeline = build_pipeline(settings, store=BrokenStore(), checker=checker, ready_handler=ready)
    with TestClient(create_app(settings, pipeline)) as c:
        resp = c.post("/submissions", json={"submissionId": "D", "delay": 0})
        assert resp.status_code == 202
        assert c.get("/ready").status_code == 503
