"""
Latest Batch Store
==================
Process-wide slot for the most recently collected usage batch.
"""

from functools import lru_cache

import structlog

from flexdash.schemas.usage import QueryResult, UsageBatch

logger = structlog.get_logger()


class LatestBatchStore:
    """
    Holds the last usage batch computed by any caller.

    Replacing is last-writer-wins: concurrent selections overwrite each
    other and every reader sees whichever batch finished last.
    """

    def __init__(self) -> None:
        self._batch: UsageBatch | None = None

    def replace(self, batch: UsageBatch) -> None:
        previous = self._batch
        self._batch = batch
        logger.info(
            "Replaced latest usage batch",
            account_id=batch.account_id,
            results=len(batch),
            previous_account_id=previous.account_id if previous else None,
        )

    def get(self) -> UsageBatch | None:
        return self._batch

    @property
    def results(self) -> list[QueryResult]:
        """Results of the latest batch, empty before the first selection."""
        return list(self._batch.results) if self._batch else []


@lru_cache
def get_batch_store() -> LatestBatchStore:
    """Get the process-wide batch store."""
    return LatestBatchStore()
