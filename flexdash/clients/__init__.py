"""
Upstream Clients
================
HTTP clients for the Token Flex usage API.
"""

from flexdash.clients.tokenflex import TokenFlexClient

__all__ = ["TokenFlexClient"]
