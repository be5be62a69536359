"""
Token Flex Dashboard
====================
Dashboard server proxying Token Flex contract and usage data.
"""

__version__ = "1.0.0"
