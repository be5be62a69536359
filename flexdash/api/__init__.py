"""
REST API
========
HTTP routes for the dashboard server.
"""

from flexdash.api.router import api_router

__all__ = ["api_router"]
