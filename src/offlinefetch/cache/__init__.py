"""One-file-per-name disk cache for offlinefetch.

This package provides :class:`OfflineCache`, the storage layer behind
:class:`~offlinefetch.fetcher.OfflineFallbackFetcher`. Every cache name maps
to exactly one JSON document at ``<cache_dir>/<name>``; there is no index,
no TTL and no eviction. Existence is decided by the filesystem alone.
"""

from offlinefetch.cache.cache import OfflineCache, validate_cache_name

__all__ = ["OfflineCache", "validate_cache_name"]
