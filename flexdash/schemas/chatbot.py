"""
Chatbot Schemas
===============
Request/Response models for the dashboard chatbot.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class ChatRequest(BaseModel):
    """Message typed into the dashboard chat widget."""

    message: str | None = None
    context: dict[str, Any] | None = None


class ChatResponse(BaseModel):
    """Generated chatbot answer."""

    response: str
    timestamp: datetime
