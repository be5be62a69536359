"""
Token Flex Client Tests
=======================
Tests for the retrying upstream request primitive and typed API calls.
"""

import json

import httpx
import pytest

from flexdash.core.errors import (
    MalformedResponse,
    RetriesExhausted,
    TransientNetworkFailure,
    UpstreamRejected,
    UsageApiError,
)
from flexdash.schemas.usage import QuerySpec
from tests.conftest import ACCESS_TOKEN, ScriptedHandler


class TestRetryingRequest:
    """Tests for backoff and retry classification."""

    async def test_success_returns_json(self, make_client, sleeps):
        """Test that a 2xx answer is returned after one attempt."""
        handler = ScriptedHandler(httpx.Response(200, json={"ok": True}))
        client = make_client(handler)

        data = await client.request("GET", "/contract")

        assert data == {"ok": True}
        assert len(handler.requests) == 1
        assert sleeps == []

    async def test_rate_limited_twice_then_success(self, make_client, sleeps):
        """Test that 429 answers back off 1s then 2s before succeeding."""
        handler = ScriptedHandler(
            httpx.Response(429),
            httpx.Response(429),
            httpx.Response(200, json={"id": "q1"}),
        )
        client = make_client(handler)

        data = await client.request("POST", "/usage/12345/query", json={})

        assert data == {"id": "q1"}
        assert len(handler.requests) == 3
        assert sleeps == [1, 2]

    async def test_always_rate_limited_exhausts_retries(self, make_client, sleeps):
        """Test that three 429 answers raise RetriesExhausted after exactly 3 attempts."""
        handler = ScriptedHandler(httpx.Response(429))
        client = make_client(handler, max_attempts=3)

        with pytest.raises(RetriesExhausted) as exc_info:
            await client.request("GET", "/contract")

        assert len(handler.requests) == 3
        assert exc_info.value.attempts == 3
        assert sleeps == [1, 2]

    async def test_rejected_status_is_not_retried(self, make_client, sleeps):
        """Test that a 403 raises UpstreamRejected on the first attempt."""
        body = {"developerMessage": "The client is not authorized"}
        handler = ScriptedHandler(httpx.Response(403, json=body))
        client = make_client(handler)

        with pytest.raises(UpstreamRejected) as exc_info:
            await client.request("GET", "/contract")

        assert len(handler.requests) == 1
        assert exc_info.value.status_code == 403
        assert exc_info.value.body == body
        assert sleeps == []

    async def test_rejected_with_text_body(self, make_client):
        """Test that a non-JSON error body is kept as text."""
        handler = ScriptedHandler(httpx.Response(502, text="Bad Gateway"))
        client = make_client(handler)

        with pytest.raises(UpstreamRejected) as exc_info:
            await client.request("GET", "/contract")

        assert exc_info.value.body == "Bad Gateway"

    async def test_non_json_success_body(self, make_client, sleeps):
        """Test that a 2xx answer with an HTML body raises MalformedResponse without retrying."""
        handler = ScriptedHandler(httpx.Response(200, text="<html>gateway</html>"))
        client = make_client(handler)

        with pytest.raises(MalformedResponse) as exc_info:
            await client.request("POST", "/usage/12345/query", json={})

        assert isinstance(exc_info.value, UsageApiError)
        assert exc_info.value.url.endswith("/usage/12345/query")
        assert len(handler.requests) == 1
        assert sleeps == []

    async def test_network_failure_retried_without_backoff(self, make_client, sleeps):
        """Test that a connection error is retried immediately."""
        handler = ScriptedHandler(
            httpx.ConnectError("Connection refused"),
            httpx.Response(200, json=[]),
        )
        client = make_client(handler)

        data = await client.request("GET", "/contract")

        assert data == []
        assert len(handler.requests) == 2
        assert sleeps == [0]

    async def test_network_failures_exhaust_retries(self, make_client):
        """Test that persistent network failures end in RetriesExhausted."""
        handler = ScriptedHandler(httpx.ReadTimeout("timed out"))
        client = make_client(handler, max_attempts=2)

        with pytest.raises(RetriesExhausted) as exc_info:
            await client.request("GET", "/contract")

        assert len(handler.requests) == 2
        assert isinstance(exc_info.value.last_error, TransientNetworkFailure)

    async def test_backoff_is_capped(self, make_client, sleeps):
        """Test that a single backoff wait never exceeds the ceiling."""
        handler = ScriptedHandler(httpx.Response(429))
        client = make_client(handler, max_attempts=4, backoff_max=1.5)

        with pytest.raises(RetriesExhausted):
            await client.request("GET", "/contract")

        assert sleeps == [1, 1.5, 1.5]

    async def test_per_call_attempt_override(self, make_client):
        """Test that max_attempts can be set for a single call."""
        handler = ScriptedHandler(httpx.Response(429))
        client = make_client(handler)

        with pytest.raises(RetriesExhausted):
            await client.request("GET", "/contract", max_attempts=1)

        assert len(handler.requests) == 1


class TestTokenFlexCalls:
    """Tests for the typed contract and query calls."""

    async def test_sends_bearer_token(self, make_client):
        """Test that requests are authenticated with the access token."""
        handler = ScriptedHandler(httpx.Response(200, json=[{"contractNumber": "12345"}]))
        client = make_client(handler)

        contracts = await client.list_contracts()

        assert contracts == [{"contractNumber": "12345"}]
        request = handler.requests[0]
        assert request.headers["Authorization"] == f"Bearer {ACCESS_TOKEN}"
        assert request.url.path == "/tokenflex/v1/contract"

    async def test_submit_query_posts_spec(self, make_client):
        """Test that the query spec is the request payload."""
        handler = ScriptedHandler(httpx.Response(200, json={"id": 987}))
        client = make_client(handler)
        spec = QuerySpec(
            name="by-category",
            fields=["usageCategory", "productName"],
            metrics=["tokensConsumed"],
            where="contractYear=1",
        )

        query_id = await client.submit_query("12345", spec)

        assert query_id == "987"
        request = handler.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/tokenflex/v1/usage/12345/query"
        assert json.loads(request.content) == {
            "fields": ["usageCategory", "productName"],
            "metrics": ["tokensConsumed"],
            "where": "contractYear=1",
        }

    async def test_submit_query_without_id(self, make_client):
        """Test that a submission answer lacking an id is an error."""
        handler = ScriptedHandler(httpx.Response(200, json={"status": "QUEUED"}))
        client = make_client(handler)
        spec = QuerySpec(fields=["usageCategory"], metrics=["tokensConsumed"])

        with pytest.raises(MalformedResponse):
            await client.submit_query("12345", spec)

    async def test_ids_are_escaped_in_path(self, make_client):
        """Test that account and query ids cannot add path segments."""
        handler = ScriptedHandler(
            httpx.Response(200, json={"id": "q/1"}),
            httpx.Response(200, json={"status": "DONE", "result": []}),
        )
        client = make_client(handler)
        spec = QuerySpec(fields=["usageCategory"], metrics=["tokensConsumed"])

        query_id = await client.submit_query("12/345", spec)
        await client.get_query("12/345", query_id)

        submit, poll = handler.requests
        assert submit.url.raw_path == b"/tokenflex/v1/usage/12%2F345/query"
        assert poll.url.raw_path.split(b"?")[0] == b"/tokenflex/v1/usage/12%2F345/query/q%2F1"

    async def test_get_query_without_status(self, make_client):
        """Test that a poll answer missing the status raises MalformedResponse."""
        handler = ScriptedHandler(httpx.Response(200, json={"id": "q1"}))
        client = make_client(handler)

        with pytest.raises(MalformedResponse):
            await client.get_query("12345", "q1")

    async def test_get_query_requests_first_page(self, make_client):
        """Test that polls ask for the first result page."""
        handler = ScriptedHandler(
            httpx.Response(200, json={"status": "DONE", "result": [{"value": 1}], "totalCount": 1})
        )
        client = make_client(handler, page_size=25)

        result = await client.get_query("12345", "q1")

        assert result.is_done
        assert result.result == [{"value": 1}]
        assert result.model_dump()["totalCount"] == 1
        params = handler.requests[0].url.params
        assert params["offset"] == "0"
        assert params["limit"] == "25"
