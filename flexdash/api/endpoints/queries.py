"""
Query Catalog Endpoints
=======================
Inspect and reload the usage query batch definitions.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from flexdash.core.queries import QueryCatalog, get_query_catalog
from flexdash.schemas.usage import QueryCatalogResponse, QuerySpecItem

router = APIRouter()
logger = structlog.get_logger()


@router.get(
    "/queries",
    response_model=QueryCatalogResponse,
    summary="List usage queries",
    description="List the queries submitted for every contract selection",
)
async def list_queries(
    catalog: Annotated[QueryCatalog, Depends(get_query_catalog)],
) -> QueryCatalogResponse:
    return QueryCatalogResponse(
        source=catalog.source,
        queries=[
            QuerySpecItem(
                name=spec.name,
                fields=list(spec.fields),
                metrics=list(spec.metrics),
                where=spec.where,
            )
            for spec in catalog.specs
        ],
    )


@router.post(
    "/queries/reload",
    summary="Reload query configuration",
    description="Reload the usage query batch from the YAML file",
)
async def reload_queries(
    catalog: Annotated[QueryCatalog, Depends(get_query_catalog)],
) -> dict[str, str | int]:
    """
    Reload query definitions from the YAML file.

    Useful for changing the batch without restarting the service.
    """
    try:
        catalog.reload()
        return {
            "status": "ok",
            "message": "Query configuration reloaded",
            "queries": len(catalog),
        }
    except Exception as e:
        logger.error("Failed to reload queries", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to reload query configuration",
        ) from e
