"""
Core Business Logic
====================
Query catalog, chat responder and the usage API error taxonomy.
"""

from flexdash.core.chatbot import ChatResponder, get_chat_responder
from flexdash.core.queries import QueryCatalog, get_query_catalog

__all__ = ["ChatResponder", "QueryCatalog", "get_chat_responder", "get_query_catalog"]
