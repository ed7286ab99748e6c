from .cache_refresher import CacheRefresher, RefreshJob

__all__ = ["CacheRefresher", "RefreshJob"]
