"""
Test Configuration
==================
Pytest fixtures for Token Flex Dashboard tests.
"""

import re
from collections.abc import Callable, Generator
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from flexdash.api.deps import get_pipeline, get_tokenflex_client
from flexdash.clients.tokenflex import TokenFlexClient
from flexdash.core.queries import QueryCatalog
from flexdash.main import app
from flexdash.schemas.usage import QuerySpec
from flexdash.services.batch_store import LatestBatchStore, get_batch_store
from flexdash.services.pipeline import UsageQueryPipeline

BASE_URL = "https://upstream.test/tokenflex/v1"
ACCESS_TOKEN = "test-access-token"


class ScriptedHandler:
    """
    Mock transport handler replaying a fixed list of responses.

    The last item repeats once the script runs out. Exceptions in the
    script are raised instead of returned.
    """

    def __init__(self, *responses: httpx.Response | Exception):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return httpx.Response(item.status_code, headers=item.headers, content=item.content)


class FakeTokenFlexApi:
    """In-memory stand-in for the upstream Token Flex API."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.contracts: list[dict[str, Any]] = [
            {"contractNumber": "12345"},
            {"contractNumber": "67890"},
        ]
        self.contracts_status = 200
        # 1-based index of the submission that answers 500
        self.fail_submission_at: int | None = None
        # Polls per query answered with pending_status before the query is done
        self.pending_polls = 0
        self.pending_status = "RUNNING"
        self.done_status = "DONE"
        self.corrupt_polls = False
        self._submissions = 0
        self._polls: dict[str, int] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/tokenflex/v1")

        if request.method == "GET" and path == "/contract":
            if self.contracts_status != 200:
                return httpx.Response(self.contracts_status, json={"message": "denied"})
            return httpx.Response(200, json=self.contracts)

        if request.method == "POST" and re.fullmatch(r"/usage/[^/]+/query", path):
            self._submissions += 1
            if self._submissions == self.fail_submission_at:
                return httpx.Response(500, json={"developerMessage": "Internal error"})
            return httpx.Response(200, json={"id": f"q{self._submissions}"})

        match = re.fullmatch(r"/usage/[^/]+/query/([^/]+)", path)
        if request.method == "GET" and match:
            query_id = match.group(1)
            polls = self._polls[query_id] = self._polls.get(query_id, 0) + 1
            if self.corrupt_polls:
                return httpx.Response(200, content=b"<html>oops</html>")
            if polls <= self.pending_polls:
                return httpx.Response(200, json={"id": query_id, "status": self.pending_status})
            return httpx.Response(200, json=self.done_payload(query_id))

        return httpx.Response(404, json={"message": f"No route for {path}"})

    def done_payload(self, query_id: str) -> dict[str, Any]:
        return {
            "id": query_id,
            "status": self.done_status,
            "offset": 0,
            "limit": 25,
            "result": [
                {"usageCategory": "Desktop", "productName": f"AutoCAD {query_id}", "value": 1200},
                {"usageCategory": "Cloud", "productName": "Docs", "value": 300},
            ],
        }

    @property
    def submissions(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "POST"]

    @property
    def polls(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "GET" and "/query/" in r.url.path]


@pytest.fixture
def sleeps() -> list[float]:
    """Delays requested by the code under test."""
    return []


@pytest.fixture
def fake_sleep(sleeps: list[float]) -> Callable[[float], Any]:
    """Sleep replacement that records delays instead of waiting."""

    async def _sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return _sleep


@pytest.fixture
def make_client(fake_sleep) -> Callable[..., TokenFlexClient]:
    """Factory for upstream clients over a mock transport."""

    def _make(handler: Callable[[httpx.Request], httpx.Response], **kwargs: Any) -> TokenFlexClient:
        kwargs.setdefault("max_attempts", 3)
        kwargs.setdefault("backoff_multiplier", 1)
        kwargs.setdefault("backoff_max", 60)
        return TokenFlexClient(
            ACCESS_TOKEN,
            base_url=BASE_URL,
            transport=httpx.MockTransport(handler),
            sleep=fake_sleep,
            **kwargs,
        )

    return _make


@pytest.fixture
def fake_api() -> FakeTokenFlexApi:
    return FakeTokenFlexApi()


@pytest.fixture
def upstream(fake_api: FakeTokenFlexApi, make_client) -> TokenFlexClient:
    """Upstream client wired to the fake Token Flex API."""
    return make_client(fake_api)


@pytest.fixture
def default_specs(tmp_path) -> list[QuerySpec]:
    """The built-in six-query batch."""
    return QueryCatalog(config_path=str(tmp_path / "missing.yaml")).specs


@pytest.fixture
def pipeline(upstream: TokenFlexClient, default_specs, fake_sleep) -> UsageQueryPipeline:
    return UsageQueryPipeline(
        upstream,
        default_specs,
        poll_interval=0.5,
        poll_max_attempts=5,
        sleep=fake_sleep,
    )


@pytest.fixture
def batch_store() -> LatestBatchStore:
    return LatestBatchStore()


@pytest.fixture
def client(
    upstream: TokenFlexClient,
    pipeline: UsageQueryPipeline,
    batch_store: LatestBatchStore,
) -> Generator[TestClient, None, None]:
    """Create test client with the upstream API replaced by the fake."""
    app.dependency_overrides[get_tokenflex_client] = lambda: upstream
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    app.dependency_overrides[get_batch_store] = lambda: batch_store

    with TestClient(app, headers={"Authorization": f"Bearer {ACCESS_TOKEN}"}) as c:
        yield c

    app.dependency_overrides.clear()
