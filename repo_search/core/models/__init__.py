"""Domain models."""
from .document import DocumentMetadata, SearchableDocument, SymbolToken, detect_language
from .repository import Repository
from .search import (
    FacetResult,
    SearchFilter,
    SearchQuery,
    SearchResult,
    SearchResults,
    SearchType,
)
from .status import IndexingStatus, IndexStatus

__all__ = [
    "DocumentMetadata",
    "SearchableDocument",
    "SymbolToken",
    "detect_language",
    "Repository",
    "FacetResult",
    "SearchFilter",
    "SearchQuery",
    "SearchResult",
    "SearchResults",
    "SearchType",
    "IndexingStatus",
    "IndexStatus",
]
