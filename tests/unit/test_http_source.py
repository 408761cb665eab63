"""Tests for the HTTP source adapter using httpx's mock transport."""

from __future__ import annotations

import json

import httpx
import pytest

from confidence_router.exceptions import SourceError, SourceTimeoutError
from confidence_router.models.domain import Query, QueryContext, Urgency
from confidence_router.sources.http_source import HttpSource


def _source(handler, **kwargs):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpSource(name="llm", url="http://llm.test/answer", client=client, **kwargs)


async def test_successful_answer():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(
            200,
            json={
                "answer": "Use managed identities",
                "confidence": 82,
                "reasoning": "model output",
                "metadata": {"model": "small"},
            },
        )

    source = _source(handler, headers={"Authorization": "Bearer t"})
    query = Query(text="auth for functions", context=QueryContext(urgency=Urgency.HIGH))
    result = await source.query(query, timeout=1.0)
    await source.aclose()

    assert result.source == "llm"
    assert result.confidence == 82
    assert result.answer == "Use managed identities"
    assert result.metadata == {"model": "small"}
    assert result.reasoning == "model output"
    assert seen["body"]["query"] == "auth for functions"
    assert seen["body"]["context"]["urgency"] == "high"
    assert seen["auth"] == "Bearer t"


async def test_out_of_range_confidence_is_clamped():
    source = _source(lambda r: httpx.Response(200, json={"answer": "x", "confidence": 130}))
    assert (await source.query(Query(text="q"), timeout=1.0)).confidence == 100


async def test_timeout_maps_to_source_timeout():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(SourceTimeoutError) as exc:
        await _source(handler).query(Query(text="q"), timeout=0.5)
    assert exc.value.source == "llm"


async def test_http_error_status():
    source = _source(lambda r: httpx.Response(503, json={"detail": "busy"}))
    with pytest.raises(SourceError, match="HTTP 503"):
        await source.query(Query(text="q"), timeout=1.0)


async def test_connection_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(SourceError, match="refused"):
        await _source(handler).query(Query(text="q"), timeout=1.0)


async def test_malformed_body():
    source = _source(lambda r: httpx.Response(200, content=b"<html>oops</html>"))
    with pytest.raises(SourceError):
        await source.query(Query(text="q"), timeout=1.0)


async def test_missing_fields():
    source = _source(lambda r: httpx.Response(200, json={"answer": "no confidence"}))
    with pytest.raises(SourceError, match="missing"):
        await source.query(Query(text="q"), timeout=1.0)


def test_domain_filter():
    source = _source(lambda r: httpx.Response(200), domains=["Azure", "microsoft"])
    assert source.can_handle(Query(text="Set up azure ad"))
    assert source.can_handle(Query(text="login", context=QueryContext(domain="azure")))
    assert not source.can_handle(Query(text="kubectl get pods"))
    assert _source(lambda r: httpx.Response(200)).can_handle(Query(text="anything"))
