"""
Usage Query Pipeline
====================
Submit a batch of usage queries for an account and poll them to completion.
"""

import asyncio
import time
from collections.abc import Sequence
from datetime import datetime, timezone

import structlog

from flexdash.clients.tokenflex import SleepFunc, TokenFlexClient
from flexdash.core.errors import NoResultsAvailable, QueryTimedOut, UsageApiError
from flexdash.core.metrics import BATCH_DURATION, QUERY_POLLS
from flexdash.schemas.usage import QueryResult, QuerySpec, SubmittedQuery, UsageBatch

logger = structlog.get_logger()

PENDING_STATUSES = frozenset({"PENDING", "QUEUED", "RUNNING", "SUBMITTED"})


def poll_status_label(result: QueryResult) -> str:
    """Metric label for a poll outcome: done, pending or other."""
    if result.is_done:
        return "done"
    if result.status.upper() in PENDING_STATUSES:
        return "pending"
    return "other"


class UsageQueryPipeline:
    """
    Runs the fixed query batch for one account selection.

    Submissions and polls are strictly sequential: the next query is only
    submitted (or polled) once the previous one has finished.
    """

    def __init__(
        self,
        client: TokenFlexClient,
        specs: Sequence[QuerySpec],
        poll_interval: float = 1.0,
        poll_max_attempts: int | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        """
        Args:
            client: Upstream usage API client
            specs: Query batch, in submission order
            poll_interval: Seconds to wait between polls of a query
            poll_max_attempts: Polls per query before giving up (None polls forever)
            sleep: Coroutine used to wait between polls
        """
        self.client = client
        self.specs = list(specs)
        self.poll_interval = poll_interval
        self.poll_max_attempts = poll_max_attempts
        self._sleep = sleep

    async def submit_batch(
        self,
        account_id: str,
        specs: Sequence[QuerySpec] | None = None,
    ) -> list[SubmittedQuery]:
        """
        Submit each query in order.

        The first failed submission stops the batch; queries submitted
        before it are kept and later ones are never sent.
        """
        specs = self.specs if specs is None else specs
        submitted: list[SubmittedQuery] = []

        for index, spec in enumerate(specs, start=1):
            logger.info(
                "Submitting usage query",
                account_id=account_id,
                query=spec.name,
                position=index,
            )
            try:
                query_id = await self.client.submit_query(account_id, spec)
            except UsageApiError as e:
                logger.error(
                    "Skipping remaining usage queries",
                    account_id=account_id,
                    query=spec.name,
                    position=index,
                    skipped=len(specs) - index + 1,
                    error=str(e),
                )
                break

            submitted.append(SubmittedQuery(account_id=account_id, query_id=query_id, spec=spec))

        return submitted

    async def collect_results(self, submitted: Sequence[SubmittedQuery]) -> UsageBatch:
        """
        Poll every submitted query until it is done.

        A poll that fails or reports any status other than DONE is repeated
        for the same query id; results are never delivered partially.

        Raises:
            QueryTimedOut: a query was still not done after poll_max_attempts
        """
        account_id = submitted[0].account_id if submitted else ""
        batch = UsageBatch(account_id=account_id)

        for query in submitted:
            attempts = 0
            while True:
                attempts += 1
                try:
                    result = await self.client.get_query(query.account_id, query.query_id)
                except UsageApiError as e:
                    QUERY_POLLS.labels(status="error").inc()
                    logger.warning(
                        "Error fetching usage query, retrying",
                        query_id=query.query_id,
                        attempt=attempts,
                        error=str(e),
                    )
                else:
                    QUERY_POLLS.labels(status=poll_status_label(result)).inc()
                    if result.is_done:
                        batch.results.append(result)
                        logger.info("Usage query done", query_id=query.query_id, polls=attempts)
                        break
                    logger.debug(
                        "Usage query not done yet",
                        query_id=query.query_id,
                        status=result.status,
                        attempt=attempts,
                    )

                if self.poll_max_attempts is not None and attempts >= self.poll_max_attempts:
                    logger.error("Usage query timed out", query_id=query.query_id, polls=attempts)
                    raise QueryTimedOut(query.query_id, attempts)

                await self._sleep(self.poll_interval)

        batch.completed_at = datetime.now(timezone.utc)
        return batch

    async def run(self, account_id: str) -> UsageBatch:
        """
        Submit the configured batch for an account and collect its results.

        Raises:
            NoResultsAvailable: no query was both submitted and completed
            QueryTimedOut: a query never reached DONE within the poll limit
        """
        start = time.perf_counter()

        submitted = await self.submit_batch(account_id)
        batch = await self.collect_results(submitted)
        batch.account_id = account_id

        elapsed = time.perf_counter() - start
        BATCH_DURATION.observe(elapsed)
        logger.info(
            "Usage batch collected",
            account_id=account_id,
            submitted=len(submitted),
            expected=len(self.specs),
            results=len(batch),
            duration_s=round(elapsed, 3),
        )

        if not batch.results:
            raise NoResultsAvailable(account_id)
        return batch
