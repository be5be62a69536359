"""
Token Flex Client
=================
Async client for the upstream Token Flex usage API.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import quote

import httpx
import structlog
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from flexdash.config import settings
from flexdash.core.errors import (
    MalformedResponse,
    RateLimited,
    RetriesExhausted,
    TransientNetworkFailure,
    UpstreamRejected,
)
from flexdash.core.metrics import UPSTREAM_REQUESTS, UPSTREAM_RETRIES
from flexdash.schemas.usage import QueryResult, QuerySpec

logger = structlog.get_logger()

SleepFunc = Callable[[float], Awaitable[None]]


def _segment(value: str) -> str:
    """Escape an id for use as a single URL path segment."""
    return quote(str(value), safe="")


class TokenFlexClient:
    """
    Client for the Token Flex contract and usage query endpoints.

    Features:
    - Bearer token authentication
    - Exponential backoff when the upstream answers 429
    - Immediate retry on network failures
    - Other error statuses surfaced at once as UpstreamRejected
    """

    def __init__(
        self,
        access_token: str,
        base_url: str | None = None,
        timeout: float | None = None,
        max_attempts: int | None = None,
        backoff_multiplier: float | None = None,
        backoff_max: float | None = None,
        page_size: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        """
        Initialize the Token Flex client.

        Args:
            access_token: OAuth access token sent as a bearer token
            base_url: Upstream API root (defaults to settings)
            timeout: Per-request timeout in seconds
            max_attempts: Attempt budget for each request
            backoff_multiplier: Base wait in seconds for rate-limit backoff
            backoff_max: Ceiling for a single backoff wait
            page_size: Rows requested per query result page
            transport: Custom httpx transport (used by tests)
            sleep: Coroutine used to wait between attempts
        """
        self.base_url = (base_url or settings.aps_base_url).rstrip("/")
        self.max_attempts = max_attempts or settings.retry_max_attempts
        self.page_size = page_size or settings.result_page_size
        self._rate_limit_wait = wait_exponential(
            multiplier=(
                settings.retry_backoff_multiplier
                if backoff_multiplier is None
                else backoff_multiplier
            ),
            max=settings.retry_backoff_max if backoff_max is None else backoff_max,
        )
        self._sleep = sleep

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or settings.request_timeout,
            headers=self._get_headers(access_token),
            transport=transport,
        )

    @staticmethod
    def _get_headers(access_token: str) -> dict[str, str]:
        """Get HTTP headers for API requests."""
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {access_token}",
        }

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        max_attempts: int | None = None,
    ) -> Any:
        """
        Send a request and return the parsed JSON body.

        429 responses wait 1s, 2s, 4s... before the next attempt; network
        failures are retried without waiting. Both consume the attempt budget.

        Raises:
            UpstreamRejected: upstream answered any other non-2xx status
            MalformedResponse: upstream answered 2xx with a non-JSON body
            RetriesExhausted: every attempt was rate limited or failed
        """
        attempts = max_attempts or self.max_attempts
        url = f"{self.base_url}/{path.lstrip('/')}"

        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=self._wait,
            retry=retry_if_exception_type((RateLimited, TransientNetworkFailure)),
            before_sleep=self._log_retry,
            sleep=self._sleep,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    return await self._send(method, path, json=json, params=params)
        except RetryError as e:
            last_error = e.last_attempt.exception()
            logger.error(
                "Failed to complete the API request after retries",
                method=method,
                url=url,
                attempts=attempts,
                error=str(last_error),
            )
            raise RetriesExhausted(url, attempts, last_error) from last_error

    async def _send(
        self,
        method: str,
        path: str,
        json: Any,
        params: dict[str, Any] | None,
    ) -> Any:
        """Single attempt; classifies the outcome into the error taxonomy."""
        try:
            response = await self._client.request(method, path, json=json, params=params)
        except httpx.TransportError as e:
            UPSTREAM_REQUESTS.labels(method=method, outcome="network_error").inc()
            raise TransientNetworkFailure(f"{self.base_url}/{path.lstrip('/')}", e) from e

        url = str(response.url)

        if response.is_success:
            try:
                data = response.json()
            except ValueError as e:
                UPSTREAM_REQUESTS.labels(method=method, outcome="malformed").inc()
                logger.error(
                    "API returned a non-JSON body",
                    method=method,
                    url=url,
                    status_code=response.status_code,
                    content_type=response.headers.get("content-type"),
                )
                raise MalformedResponse(url, "body is not JSON") from e
            UPSTREAM_REQUESTS.labels(method=method, outcome="success").inc()
            return data

        if response.status_code == httpx.codes.TOO_MANY_REQUESTS:
            UPSTREAM_REQUESTS.labels(method=method, outcome="rate_limited").inc()
            raise RateLimited(url)

        UPSTREAM_REQUESTS.labels(method=method, outcome="rejected").inc()
        body = self._error_body(response)
        logger.error(
            "API error",
            method=method,
            url=url,
            status_code=response.status_code,
            reason=response.reason_phrase,
            body=body,
        )
        raise UpstreamRejected(url, response.status_code, body)

    @staticmethod
    def _error_body(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return response.text

    def _wait(self, retry_state: RetryCallState) -> float:
        """Back off exponentially on 429, retry network failures at once."""
        if isinstance(retry_state.outcome.exception(), RateLimited):
            return self._rate_limit_wait(retry_state)
        return 0.0

    def _log_retry(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception()
        wait_seconds = retry_state.next_action.sleep if retry_state.next_action else 0.0

        if isinstance(error, RateLimited):
            UPSTREAM_RETRIES.labels(reason="rate_limited").inc()
            logger.warning(
                "Rate limit hit, backing off",
                url=error.url,
                attempt=retry_state.attempt_number,
                wait_seconds=wait_seconds,
            )
        else:
            UPSTREAM_RETRIES.labels(reason="network").inc()
            logger.warning(
                "Error in API request, retrying",
                attempt=retry_state.attempt_number,
                error=str(error),
            )

    async def list_contracts(self) -> list[dict[str, Any]]:
        """Get the contracts visible to the access token."""
        return await self.request("GET", "/contract")

    async def submit_query(self, account_id: str, spec: QuerySpec) -> str:
        """
        Submit a usage query for an account.

        Returns:
            The upstream query id
        """
        path = f"/usage/{_segment(account_id)}/query"
        data = await self.request("POST", path, json=spec.payload())

        query_id = data.get("id") if isinstance(data, dict) else None
        if query_id is None:
            raise MalformedResponse(
                f"{self.base_url}{path}", f"query submission for {account_id} returned no id"
            )
        return str(query_id)

    async def get_query(self, account_id: str, query_id: str) -> QueryResult:
        """Fetch the status, and results once done, of a submitted query."""
        path = f"/usage/{_segment(account_id)}/query/{_segment(query_id)}"
        data = await self.request(
            "GET",
            path,
            params={"offset": 0, "limit": self.page_size},
        )
        try:
            return QueryResult.model_validate(data)
        except ValidationError as e:
            raise MalformedResponse(
                f"{self.base_url}{path}", f"unexpected query state: {e.error_count()} errors"
            ) from e

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "TokenFlexClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
