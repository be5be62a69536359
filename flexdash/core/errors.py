"""
Usage API Errors
================
Exception hierarchy for upstream usage API calls and the query pipeline.
"""

from typing import Any


class UsageApiError(Exception):
    """Base class for all upstream usage API failures."""


class RateLimited(UsageApiError):
    """Upstream answered 429; retried with backoff."""

    def __init__(self, url: str):
        super().__init__(f"Rate limited by upstream: {url}")
        self.url = url


class TransientNetworkFailure(UsageApiError):
    """The request could not complete (connection error, timeout)."""

    def __init__(self, url: str, cause: Exception):
        super().__init__(f"Network failure calling {url}: {cause}")
        self.url = url
        self.cause = cause


class UpstreamRejected(UsageApiError):
    """Upstream answered with a non-2xx, non-429 status. Never retried."""

    def __init__(self, url: str, status_code: int, body: Any):
        super().__init__(f"API responded with error {status_code}: {body}")
        self.url = url
        self.status_code = status_code
        self.body = body


class MalformedResponse(UsageApiError):
    """Upstream answered 2xx with a body that is not the expected JSON. Never retried."""

    def __init__(self, url: str, detail: str):
        super().__init__(f"Malformed response from {url}: {detail}")
        self.url = url
        self.detail = detail


class RetriesExhausted(UsageApiError):
    """The attempt budget was spent without a successful response."""

    def __init__(self, url: str, attempts: int, last_error: BaseException | None = None):
        super().__init__(
            f"Failed to complete the API request after {attempts} attempts: {url}"
        )
        self.url = url
        self.attempts = attempts
        self.last_error = last_error


class NoResultsAvailable(UsageApiError):
    """A batch finished without a single completed query."""

    def __init__(self, account_id: str):
        super().__init__(f"No data available for account {account_id}")
        self.account_id = account_id


class QueryTimedOut(UsageApiError):
    """A submitted query did not reach DONE within the poll limit."""

    def __init__(self, query_id: str, attempts: int):
        super().__init__(f"Query {query_id} not done after {attempts} polls")
        self.query_id = query_id
        self.attempts = attempts
