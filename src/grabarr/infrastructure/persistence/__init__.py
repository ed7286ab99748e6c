from grabarr.infrastructure.persistence.collection_cache import CacheCollectionStore

__all__ = ["CacheCollectionStore"]
