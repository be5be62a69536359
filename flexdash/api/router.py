"""
API Router
==========
Main API router combining all endpoint modules.
"""

from fastapi import APIRouter

from flexdash.api.endpoints import chatbot, contracts, health, queries, usage

api_router = APIRouter()

# Include endpoint routers
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(contracts.router, prefix="/api", tags=["Contracts"])
api_router.include_router(usage.router, prefix="/api", tags=["Usage"])
api_router.include_router(queries.router, prefix="/api", tags=["Queries"])
api_router.include_router(chatbot.router, prefix="/api", tags=["Chatbot"])
