"""Protocol interfaces for dependency injection."""
from .embedder import EmbedderProtocol
from .document_index import DocumentIndexProtocol
from .content_provider import ContentProviderProtocol
from .repository_store import RepositoryStoreProtocol

__all__ = [
    "EmbedderProtocol",
    "DocumentIndexProtocol",
    "ContentProviderProtocol",
    "RepositoryStoreProtocol",
]
