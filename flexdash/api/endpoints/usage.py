"""
Usage Endpoints
===============
API endpoints that run the usage query batch for a selected contract.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from flexdash.api.deps import get_pipeline
from flexdash.core.errors import NoResultsAvailable, QueryTimedOut
from flexdash.schemas.usage import QueryResult, SubmitSelectionRequest
from flexdash.services.batch_store import LatestBatchStore, get_batch_store
from flexdash.services.pipeline import UsageQueryPipeline

router = APIRouter()
logger = structlog.get_logger()


@router.post(
    "/submit-dropdown",
    response_model=list[QueryResult],
    summary="Run usage queries for a contract",
    description="Submit the query batch for the selected contract and wait for every result",
)
async def submit_dropdown(
    request: SubmitSelectionRequest,
    pipeline: Annotated[UsageQueryPipeline, Depends(get_pipeline)],
    store: Annotated[LatestBatchStore, Depends(get_batch_store)],
) -> list[QueryResult]:
    """
    Run the usage query batch for the selected contract.

    Returns the completed results in batch order. If a submission fails,
    the batch is truncated to the queries submitted before it.
    """
    account_id = (request.selected_value or "").strip()
    if not account_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No selected value provided",
        )

    logger.info("Received selected contract", account_id=account_id)

    try:
        batch = await pipeline.run(account_id)
    except NoResultsAvailable as e:
        logger.warning("No usage data available", account_id=account_id)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No data available for the usecases",
        ) from e
    except QueryTimedOut as e:
        logger.error("Usage query timed out", account_id=account_id, query_id=e.query_id)
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail=f"Usage query {e.query_id} did not complete in time",
        ) from e
    except Exception as e:
        logger.error("Error processing selected contract", account_id=account_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process dropdown value",
        ) from e

    store.replace(batch)
    return batch.results


@router.get(
    "/usecase1",
    response_model=list[QueryResult],
    summary="Get latest usage results",
    description="Get the results of the most recently completed query batch",
)
async def get_latest_results(
    store: Annotated[LatestBatchStore, Depends(get_batch_store)],
) -> list[QueryResult]:
    """
    Get the most recent batch results.

    The batch is shared by every caller of this server; an empty list is
    returned until a contract has been selected.
    """
    return store.results
