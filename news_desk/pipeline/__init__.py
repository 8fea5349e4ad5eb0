"""
Article loading pipeline.

- freshness: decides when the local cache needs a full refetch
- reconcile: merges scraper, cache and document-store articles
- filters: source, category and keyword filters over loaded articles
"""

from .filters import (
    available_categories,
    available_sources,
    filter_by_category,
    filter_by_keywords,
    filter_by_source,
)
from .freshness import CACHE_DURATION, CacheFreshnessPolicy, CacheStatus
from .reconcile import Reconciler

__all__ = [
    "CACHE_DURATION",
    "CacheFreshnessPolicy",
    "CacheStatus",
    "Reconciler",
    "filter_by_source",
    "filter_by_category",
    "filter_by_keywords",
    "available_sources",
    "available_categories",
]
