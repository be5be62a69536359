"""
Chatbot Endpoints
=================
Keyword-matched answers about the latest usage data.
"""

from datetime import datetime, timezone
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from flexdash.api.deps import get_access_token
from flexdash.core.chatbot import ChatResponder, get_chat_responder
from flexdash.schemas.chatbot import ChatRequest, ChatResponse
from flexdash.services.batch_store import LatestBatchStore, get_batch_store

router = APIRouter()
logger = structlog.get_logger()


@router.post(
    "/chatbot",
    response_model=ChatResponse,
    summary="Ask the usage chatbot",
    description="Answer a question about the most recently loaded usage data",
    dependencies=[Depends(get_access_token)],
)
async def chatbot(
    request: ChatRequest,
    responder: Annotated[ChatResponder, Depends(get_chat_responder)],
    store: Annotated[LatestBatchStore, Depends(get_batch_store)],
) -> ChatResponse:
    """Generate a contextual answer from the latest usage batch."""
    if not request.message:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Message is required",
        )

    try:
        answer = responder.respond(request.message, store.results)
    except Exception as e:
        logger.error("Chatbot error", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process chatbot request",
        ) from e

    return ChatResponse(response=answer, timestamp=datetime.now(timezone.utc))
