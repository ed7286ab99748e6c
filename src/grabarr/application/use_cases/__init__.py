from .discover import DiscoverCacheService
from .metadata_resolution import MetadataResolutionUseCase
from .release_search import ReleaseSearchUseCase
from .rss_match import RssMatchUseCase

__all__ = [
    "DiscoverCacheService",
    "MetadataResolutionUseCase",
    "ReleaseSearchUseCase",
    "RssMatchUseCase",
]
