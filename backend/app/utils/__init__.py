"""Utilities module for the Walletfolio backend.

This package contains shared helpers used across the application.
"""

from .ttl_cache import TTLCache
from .retry import retry_async
from .address_validation import ChainFamily, detect_chain_family

__all__ = [
    "TTLCache",
    "retry_async",
    "ChainFamily",
    "detect_chain_family",
]
