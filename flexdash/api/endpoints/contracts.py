"""
Contract Endpoints
==================
Proxy for the contracts visible to the signed-in user.
"""

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from flexdash.api.deps import get_tokenflex_client
from flexdash.clients.tokenflex import TokenFlexClient
from flexdash.core.errors import UsageApiError

router = APIRouter()
logger = structlog.get_logger()


@router.get(
    "/contract",
    response_model=list[dict[str, Any]],
    summary="List contracts",
    description="List the Token Flex contracts available to the caller",
)
async def list_contracts(
    client: Annotated[TokenFlexClient, Depends(get_tokenflex_client)],
) -> list[dict[str, Any]]:
    """Fetch contracts from the upstream API for the dashboard dropdown."""
    try:
        return await client.list_contracts()
    except UsageApiError as e:
        logger.error("Error fetching contracts", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch data",
        ) from e
