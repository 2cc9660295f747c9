"""
Reference data (people, categories, locations) for ticket mutations.

Exports:
    ReferenceDataCache: Session-scoped memoized reference data
    ReferenceSource: Protocol the cache fetches from
    CacheEntry: Collection plus the key it was fetched under
    make_cache_key: Render (api_base, token) as a cache key
    normalize_categories: Filter/reshape raw category payloads
"""

from maintenance_desk.reference.cache import (
    CacheEntry,
    ReferenceDataCache,
    ReferenceSource,
    make_cache_key,
)
from maintenance_desk.reference.categories import normalize_categories

__all__ = [
    "CacheEntry",
    "ReferenceDataCache",
    "ReferenceSource",
    "make_cache_key",
    "normalize_categories",
]
