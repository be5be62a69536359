"""
API Dependencies
================
FastAPI dependencies shared by the endpoint modules.
"""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from flexdash.clients.tokenflex import TokenFlexClient
from flexdash.config import settings
from flexdash.core.queries import QueryCatalog, get_query_catalog
from flexdash.services.pipeline import UsageQueryPipeline


async def get_access_token(
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    """
    Resolve the upstream access token for this request.

    Uses the caller's bearer token when present, else the configured one.
    """
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token.strip():
            return token.strip()

    if settings.aps_access_token:
        return settings.aps_access_token

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Missing access token",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_tokenflex_client(
    access_token: Annotated[str, Depends(get_access_token)],
) -> AsyncGenerator[TokenFlexClient, None]:
    """Yield an upstream client bound to the request's access token."""
    async with TokenFlexClient(access_token) as client:
        yield client


def get_pipeline(
    client: Annotated[TokenFlexClient, Depends(get_tokenflex_client)],
    catalog: Annotated[QueryCatalog, Depends(get_query_catalog)],
) -> UsageQueryPipeline:
    """Build the query pipeline for the configured batch."""
    return UsageQueryPipeline(
        client,
        catalog.specs,
        poll_interval=settings.poll_interval,
        poll_max_attempts=settings.poll_max_attempts,
    )
