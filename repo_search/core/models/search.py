"""Search query and result models."""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from .document import SearchableDocument

SUPPORTED_OPERATORS = ("eq", "ne", "gt", "lt", "contains")


class SearchType(Enum):
    """How a query is matched against the index."""
    SEMANTIC = "semantic"  # vector only
    KEYWORD = "keyword"    # text only
    HYBRID = "hybrid"      # vector + text


@dataclass(frozen=True)
class SearchFilter:
    """Single field condition; filters on a query are AND-ed."""
    field: str
    operator: str = "eq"
    value: Any = ""

    @classmethod
    def equal(cls, field: str, value: Any) -> "SearchFilter":
        return cls(field=field, operator="eq", value=value)

    @classmethod
    def not_equal(cls, field: str, value: Any) -> "SearchFilter":
        return cls(field=field, operator="ne", value=value)

    @classmethod
    def contains(cls, field: str, value: str) -> "SearchFilter":
        return cls(field=field, operator="contains", value=value)

    @classmethod
    def greater_than(cls, field: str, value: Any) -> "SearchFilter":
        return cls(field=field, operator="gt", value=value)

    @classmethod
    def less_than(cls, field: str, value: Any) -> "SearchFilter":
        return cls(field=field, operator="lt", value=value)


@dataclass(frozen=True)
class SearchQuery:
    """Search request with filters and paging."""
    query: str = ""
    search_type: SearchType = SearchType.HYBRID
    filters: tuple[SearchFilter, ...] = ()
    top: int = 50
    skip: int = 0

    @classmethod
    def create(cls, query: str, search_type: SearchType = SearchType.HYBRID) -> "SearchQuery":
        return cls(query=query, search_type=search_type)

    def with_filters(self, *filters: SearchFilter) -> "SearchQuery":
        return replace(self, filters=self.filters + tuple(filters))

    def with_paging(self, top: int, skip: int = 0) -> "SearchQuery":
        return replace(self, top=top, skip=skip)


@dataclass
class SearchResult:
    """Single ranked hit."""
    document_id: str
    score: float
    document: SearchableDocument
    highlights: list[str] = field(default_factory=list)


@dataclass
class FacetResult:
    """Count of documents sharing one field value."""
    value: str
    count: int


@dataclass
class SearchResults:
    """Search response."""
    total_count: int = 0
    results: list[SearchResult] = field(default_factory=list)
    facets: dict[str, list[FacetResult]] = field(default_factory=dict)
    search_duration: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_count": self.total_count,
            "search_duration_ms": round(self.search_duration * 1000, 1),
            "results": [
                {
                    "document_id": r.document_id,
                    "score": r.score,
                    "file_path": r.document.file_path,
                    "repository_name": r.document.metadata.repository_name,
                    "language": r.document.language,
                    "highlights": r.highlights,
                }
                for r in self.results
            ],
            "facets": {
                name: [{"value": f.value, "count": f.count} for f in values]
                for name, values in self.facets.items()
            },
        }
