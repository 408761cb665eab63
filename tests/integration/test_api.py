"""HTTP API tests through the full app lifespan."""

from __future__ import annotations

import asyncio

import pytest
import yaml
from fastapi.testclient import TestClient

from confidence_router.api.app import create_app
from confidence_router.exceptions import UnknownSourceError
from confidence_router.storage.sqlite_trace_store import SQLiteTraceStore


@pytest.fixture
def api_settings(tmp_path, settings, routing_config):
    path = tmp_path / "routing.yaml"
    path.write_text(yaml.safe_dump(routing_config.model_dump(mode="json")), encoding="utf-8")
    return settings.model_copy(update={"routing_config_path": str(path), "log_json": False})


@pytest.fixture
def sources(fake_source):
    return [
        fake_source("kb", 92),
        fake_source("llm", 78),
        fake_source("ms_docs", 85),
        fake_source("web", 50),
    ]


@pytest.fixture
def client(api_settings, sources):
    with TestClient(create_app(api_settings, sources=sources)) as test_client:
        yield test_client


def test_route(client, sources):
    resp = client.post("/route", json={"query": "what time is it"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["answer"] == "answer from kb"
    assert body["confidence"] == 92
    assert body["source"] == "kb"
    assert body["debug"]["strategy"] == "fast"
    assert "EARLY_STOP" in body["reasons"]
    assert resp.headers["X-Request-ID"]
    assert float(resp.headers["X-Duration-MS"]) >= 0
    assert sources[1].calls == 0


def test_request_id_is_echoed(client):
    resp = client.post("/route", json={"query": "what time is it"}, headers={"X-Request-ID": "abc"})
    assert resp.headers["X-Request-ID"] == "abc"


def test_route_with_context_and_override(client, sources):
    resp = client.post(
        "/route",
        json={
            "query": "what time is it",
            "context": {"urgency": "high", "domain": "general"},
            "strategy": "critical",
            "bypass_cache": True,
        },
    )
    assert resp.status_code == 200
    assert resp.json()["debug"]["strategy"] == "critical"
    assert all(s.calls == 1 for s in sources)


def test_empty_query_rejected(client):
    assert client.post("/route", json={"query": ""}).status_code == 422


def test_unknown_strategy_rejected(client):
    resp = client.post("/route", json={"query": "hello", "strategy": "yolo"})
    assert resp.status_code == 422
    assert "yolo" in resp.json()["detail"]


def test_health_and_metrics(client):
    client.post("/route", json={"query": "what time is it"})
    client.post("/route", json={"query": "what time is it"})

    health = client.get("/health").json()
    assert health["status"] == "healthy"
    assert set(health["sources"]) == {"kb", "llm", "ms_docs", "web"}
    assert health["sources"]["kb"]["status"] == "healthy"
    assert health["cache_entries"] == 1

    metrics = client.get("/metrics").json()
    assert metrics["total_queries"] == 2
    assert metrics["cache_hits"] == 1
    assert metrics["strategy_usage"] == {"fast": 1}


def test_feedback(client):
    body = client.post("/route", json={"query": "what time is it"}).json()
    resp = client.post(
        "/feedback", json={"trace_id": body["debug"]["trace_id"], "correct": True}
    )
    assert resp.status_code == 200
    assert resp.json()["accepted"] is True

    missing = client.post("/feedback", json={"trace_id": "nope", "correct": False})
    assert missing.status_code == 404


def test_cache_invalidation(client, sources):
    client.post("/route", json={"query": "what time is it"})
    resp = client.post("/cache/invalidate", json={"pattern": "time"})
    assert resp.json()["removed"] == 1
    client.post("/route", json={"query": "what time is it"})
    assert sources[0].calls == 2

    assert client.post("/cache/invalidate", json={"pattern": "("}).status_code == 400


def test_config_view_and_reload(client, api_settings, routing_config, tmp_path):
    summary = client.get("/config").json()
    assert summary["version"] == 1
    assert summary["strategies"] == ["critical", "default", "fast", "race"]
    assert summary["config"]["sources"]["ms_docs"]["authoritative"] is True

    reloaded = client.post("/config/reload")
    assert reloaded.status_code == 200
    assert reloaded.json()["version"] == 2

    data = routing_config.model_dump(mode="json")
    data["strategies"]["fast"]["sources"][0]["threshold"] = 99
    new_path = tmp_path / "routing-v3.yaml"
    new_path.write_text(yaml.safe_dump(data), encoding="utf-8")
    resp = client.post("/config/reload", json={"path": str(new_path)})
    assert resp.json()["version"] == 3
    assert resp.json()["config"]["strategies"]["fast"]["sources"][0]["threshold"] == 99


def test_bad_reload_keeps_running_config(client, tmp_path):
    resp = client.post("/config/reload", json={"path": str(tmp_path / "missing.yaml")})
    assert resp.status_code == 400
    assert client.get("/config").json()["version"] == 1


def test_traces_are_persisted(api_settings, sources):
    with TestClient(create_app(api_settings, sources=sources)) as client:
        trace_id = client.post("/route", json={"query": "what time is it"}).json()["debug"][
            "trace_id"
        ]

    stored = asyncio.run(SQLiteTraceStore(api_settings.trace_db_path).get_trace(trace_id))
    assert stored is not None
    assert stored.source == "kb"
    assert stored.strategy == "fast"


def test_metrics_warm_up_from_trace_history(api_settings, sources):
    warm = api_settings.model_copy(update={"metrics_warmup_traces": 100})
    with TestClient(create_app(warm, sources=sources)) as client:
        client.post("/route", json={"query": "what time is it"})

    with TestClient(create_app(warm, sources=sources)) as client:
        metrics = client.get("/metrics").json()
    assert metrics["total_queries"] == 1


def test_sqlite_cache_backend(api_settings, sources):
    persistent = api_settings.model_copy(update={"cache_backend": "sqlite"})
    with TestClient(create_app(persistent, sources=sources)) as client:
        client.post("/route", json={"query": "what time is it"})

    with TestClient(create_app(persistent, sources=sources)) as client:
        body = client.post("/route", json={"query": "what time is it"}).json()
    assert body["source"] == "kb"
    assert sources[0].calls == 1


def test_unregistered_source_fails_startup(api_settings, fake_source):
    app = create_app(api_settings, sources=[fake_source("kb")])
    with pytest.raises(UnknownSourceError):
        with TestClient(app):
            pass
