from .cache import CacheStorePort
from .collection import CollectionStorePort
from .providers import (
    CredentialProviderPort,
    MetadataProviderPort,
    ReleaseIndexerPort,
    StorefrontPort,
)
from .reranker import ReleaseRerankerPort
from .settings import RuntimeSettingsPort

__all__ = [
    "CacheStorePort",
    "CollectionStorePort",
    "CredentialProviderPort",
    "MetadataProviderPort",
    "ReleaseIndexerPort",
    "ReleaseRerankerPort",
    "RuntimeSettingsPort",
    "StorefrontPort",
]
