from typing import Any

from repo_search.core.strategies.scoring import HYBRID_SCORING_PROFILE, ScoringProfile

KEY_FIELD = "document_id"
VECTOR_FIELD = "content_vector"
VECTOR_PROFILE = "default-vector-profile"
HNSW_ALGORITHM = "default-hnsw"

HNSW_PARAMETERS = {"m": 4, "efConstruction": 400, "efSearch": 500, "metric": "cosine"}

FACET_FIELDS = ("language", "file_extension", "repository_name", "branch_name")
HIGHLIGHT_FIELDS = ("content", "file_name", "code_symbols")

# Everything except the vector, which is large and never needed in results.
SELECT_FIELDS = (
    "document_id", "repository_id", "file_path", "file_name", "file_extension",
    "language", "content", "line_count", "size_bytes", "last_modified",
    "branch_name", "repository_name", "repository_owner", "repository_url",
    "code_symbols",
)


def _field(
    name: str,
    type_: str = "Edm.String",
    key: bool = False,
    searchable: bool = False,
    filterable: bool = False,
    sortable: bool = False,
    facetable: bool = False,
) -> dict[str, Any]:
    return {
        "name": name,
        "type": type_,
        "key": key,
        "searchable": searchable,
        "filterable": filterable,
        "sortable": sortable,
        "facetable": facetable,
        "retrievable": True,
    }


def build_fields(dimensions: int) -> list[dict[str, Any]]:
    return [
        _field(KEY_FIELD, key=True, filterable=True),
        _field("repository_id", filterable=True, facetable=True),
        _field("file_path", searchable=True, filterable=True, sortable=True),
        _field("file_name", searchable=True, filterable=True, sortable=True),
        _field("file_extension", filterable=True, facetable=True),
        _field("language", filterable=True, facetable=True),
        _field("content", searchable=True),
        {
            "name": VECTOR_FIELD,
            "type": "Collection(Edm.Single)",
            "searchable": True,
            "retrievable": True,
            "dimensions": dimensions,
            "vectorSearchProfile": VECTOR_PROFILE,
        },
        _field("line_count", "Edm.Int32", filterable=True, sortable=True),
        _field("size_bytes", "Edm.Int64", filterable=True, sortable=True),
        _field("last_modified", "Edm.DateTimeOffset", filterable=True, sortable=True),
        _field("branch_name", filterable=True, facetable=True),
        _field("repository_name", searchable=True, filterable=True, facetable=True),
        _field("repository_owner", searchable=True, filterable=True, facetable=True),
        _field("repository_url"),
        _field(
            "code_symbols",
            "Collection(Edm.String)",
            searchable=True,
            filterable=True,
            facetable=True,
        ),
    ]


def build_index_definition(
    index_name: str,
    dimensions: int,
    scoring_profile: ScoringProfile = HYBRID_SCORING_PROFILE,
) -> dict[str, Any]:
    """Index schema with HNSW vector search and the hybrid scoring profile."""
    return {
        "name": index_name,
        "fields": build_fields(dimensions),
        "vectorSearch": {
            "algorithms": [
                {
                    "name": HNSW_ALGORITHM,
                    "kind": "hnsw",
                    "hnswParameters": dict(HNSW_PARAMETERS),
                }
            ],
            "profiles": [{"name": VECTOR_PROFILE, "algorithm": HNSW_ALGORITHM}],
        },
        "scoringProfiles": [scoring_profile.to_definition()],
    }
