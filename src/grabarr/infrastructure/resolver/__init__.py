from .batch_resolver import BatchMetadataResolver

__all__ = ["BatchMetadataResolver"]
