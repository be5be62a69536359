"""
Pydantic Schemas
================
Request/Response models for API validation.
"""

from flexdash.schemas.chatbot import ChatRequest, ChatResponse
from flexdash.schemas.usage import (
    QueryCatalogResponse,
    QueryResult,
    QuerySpec,
    QuerySpecItem,
    SubmitSelectionRequest,
    SubmittedQuery,
    UsageBatch,
)

__all__ = [
    "ChatRequest",
    "ChatResponse",
    "QuerySpec",
    "QuerySpecItem",
    "QueryCatalogResponse",
    "QueryResult",
    "SubmittedQuery",
    "SubmitSelectionRequest",
    "UsageBatch",
]
