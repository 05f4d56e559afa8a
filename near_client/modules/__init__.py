"""
Functional modules for NearClient

Provides:
- ViewQuery: read-only contract calls, access keys, accounts, state, blocks
"""

from .view import ViewQuery, convert_result

__all__ = [
    "ViewQuery",
    "convert_result",
]
