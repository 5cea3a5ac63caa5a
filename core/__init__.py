#!/usr/bin/env python3
"""
Core Module for the fundraising client

Shared components used by the fundraising service.

COMPONENTS:
    - config/: environment-driven configuration (ledger, relayer, logging)
    - query_cache.py: keyed cache with staleness window and invalidation

USAGE:
    from core.config import get_settings
    from core.query_cache import QueryCache

    settings = get_settings()
    cache = QueryCache("campaigns", stale_after=settings.cache_stale_seconds)
"""

from .query_cache import QueryCache

__all__ = ["QueryCache"]
__version__ = "1.0.0"
