from .base import GenericRepository, MetadataStore, ModelInfo, RecordCollection
from .disk import DiskCollection, DiskMetadataStore, DiskModelManifest

__all__ = [
    "DiskCollection",
    "DiskMetadataStore",
    "DiskModelManifest",
    "GenericRepository",
    "MetadataStore",
    "ModelInfo",
    "RecordCollection",
]
