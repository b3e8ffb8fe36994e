import logging
import re
import time
from collections import Counter
from datetime import datetime
from typing import Any, Callable, Optional

import numpy as np

from repo_search.core.models.document import SearchableDocument
from repo_search.core.models.search import (
    FacetResult,
    SearchFilter,
    SearchQuery,
    SearchResult,
    SearchResults,
    SearchType,
)
from repo_search.core.models.status import IndexingStatus, IndexStatus
from repo_search.core.protocols.embedder import EmbedderProtocol
from repo_search.core.strategies.scoring import (
    HYBRID_SCORING_PROFILE,
    ScoringProfile,
    reciprocal_rank_fusion,
    tokenize,
)

from .filters import check_operator
from .schema import FACET_FIELDS, HIGHLIGHT_FIELDS

logger = logging.getLogger(__name__)

MAX_HIGHLIGHTS = 5

Predicate = Callable[[dict[str, Any]], bool]


def _as_comparable(actual: Any, expected: Any) -> tuple[Any, Any]:
    if isinstance(actual, (int, float)) and not isinstance(actual, bool):
        return float(actual), float(expected)
    if isinstance(expected, datetime) or isinstance(actual, datetime):
        return _as_datetime(actual), _as_datetime(expected)
    return str(actual), str(expected)


def _as_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _equals(actual: Any, expected: Any) -> bool:
    if isinstance(actual, (list, tuple)):
        return any(_equals(item, expected) for item in actual)
    if isinstance(expected, bool) or isinstance(actual, bool):
        return str(actual).lower() == str(expected).lower()
    left, right = _as_comparable(actual, expected)
    return left == right


def compile_filter(search_filter: SearchFilter) -> Predicate:
    """Predicate over an index field map matching the OData semantics.

    Raises:
        ValueError: If the operator is not supported.
    """
    check_operator(search_filter)
    field, op, expected = search_filter.field, search_filter.operator, search_filter.value

    if op == "eq":
        return lambda fields: _equals(fields.get(field), expected)
    if op == "ne":
        return lambda fields: not _equals(fields.get(field), expected)
    if op == "contains":
        terms = tokenize(str(expected))

        def contains(fields: dict[str, Any]) -> bool:
            value = fields.get(field)
            if isinstance(value, (list, tuple)):
                value = " ".join(str(v) for v in value)
            present = set(tokenize(str(value or "")))
            return bool(terms) and all(t in present for t in terms)

        return contains

    def compare(fields: dict[str, Any]) -> bool:
        value = fields.get(field)
        if value is None:
            return False
        left, right = _as_comparable(value, expected)
        return left > right if op == "gt" else left < right

    return compare


class InMemoryDocumentIndex:
    """Process-local document index with the same search semantics.

    Keyword relevance uses the weighted scoring profile with freshness,
    vectors are ranked by cosine similarity and hybrid queries fuse both
    rankings with reciprocal-rank fusion.
    """

    def __init__(
        self,
        dimensions: int = 1536,
        embedder: Optional[EmbedderProtocol] = None,
        scoring_profile: ScoringProfile = HYBRID_SCORING_PROFILE,
    ):
        self._dimensions = dimensions
        self._embedder = embedder
        self._scoring_profile = scoring_profile
        self._documents: dict[str, SearchableDocument] = {}

    def __len__(self) -> int:
        return len(self._documents)

    async def create_index(self) -> bool:
        logger.info("Using in-memory search index")
        return True

    async def delete_index(self) -> bool:
        self._documents.clear()
        return True

    async def index_document(self, document: SearchableDocument) -> bool:
        return await self.index_documents([document])

    async def index_documents(self, documents: list[SearchableDocument]) -> bool:
        failures = 0
        for document in documents:
            if not document.has_valid_vector(self._dimensions):
                failures += 1
                logger.warning(
                    f"Document {document.file_path} has invalid vector length "
                    f"{len(document.content_vector)}, expected {self._dimensions}"
                )
                continue
            self._documents[document.document_id] = document

        logger.debug(f"Indexed {len(documents) - failures}/{len(documents)} documents")
        return failures == 0

    async def delete_document(self, document_id: str) -> bool:
        self._documents.pop(document_id, None)
        return True

    async def delete_repository_documents(self, repository_id: str) -> bool:
        doomed = [
            doc_id
            for doc_id, doc in self._documents.items()
            if doc.repository_id == repository_id
        ]
        for doc_id in doomed:
            del self._documents[doc_id]
        logger.info(f"Deleted {len(doomed)} documents for repository {repository_id}")
        return True

    async def get_document(self, document_id: str) -> Optional[SearchableDocument]:
        return self._documents.get(document_id)

    async def get_index_status(self, repository_id: str) -> IndexStatus:
        documents = [d for d in self._documents.values() if d.repository_id == repository_id]
        if not documents:
            return IndexStatus(status=IndexingStatus.NOT_STARTED)
        return IndexStatus(
            status=IndexingStatus.COMPLETED,
            documents_indexed=len(documents),
            total_documents=len(documents),
            last_indexed=max(d.last_modified for d in documents),
        )

    async def search_repository(
        self, repository_id: str, query: SearchQuery
    ) -> SearchResults:
        return await self.search(
            query.with_filters(SearchFilter.equal("repository_id", repository_id))
        )

    async def search(self, query: SearchQuery) -> SearchResults:
        """Filter, rank, facet and page the stored documents.

        Raises:
            ValueError: If a filter uses an unsupported operator.
        """
        start = time.perf_counter()
        predicates = [compile_filter(f) for f in query.filters]

        candidates = []
        for document in self._documents.values():
            fields = document.to_index_document()
            if all(p(fields) for p in predicates):
                candidates.append((document, fields))

        terms = tokenize(query.query)
        vector = None
        if query.search_type != SearchType.KEYWORD:
            vector = await self._query_vector(query.query)

        if vector is None:
            scores = self._keyword_scores(terms, candidates)
        elif query.search_type == SearchType.SEMANTIC:
            scores = self._vector_scores(vector, candidates)
        else:
            keyword = self._keyword_scores(terms, candidates)
            semantic = self._vector_scores(vector, candidates)
            scores = reciprocal_rank_fusion([_ranked(keyword), _ranked(semantic)])

        ranked = _ranked(scores)
        by_id = {doc.document_id: (doc, fields) for doc, fields in candidates}
        page = ranked[query.skip : query.skip + query.top]

        results = [
            SearchResult(
                document_id=doc_id,
                score=scores[doc_id],
                document=by_id[doc_id][0],
                highlights=_highlights(by_id[doc_id][1], terms),
            )
            for doc_id in page
        ]

        return SearchResults(
            total_count=len(ranked),
            results=results,
            facets=_facets(by_id[doc_id][1] for doc_id in ranked),
            search_duration=time.perf_counter() - start,
        )

    async def _query_vector(self, text: str) -> Optional[list[float]]:
        if self._embedder is None or not text.strip():
            return None
        try:
            return await self._embedder.generate_embedding(text)
        except Exception as e:
            logger.warning(f"Query embedding failed, falling back to keyword search: {e}")
            return None

    def _keyword_scores(
        self, terms: list[str], candidates: list[tuple[SearchableDocument, dict[str, Any]]]
    ) -> dict[str, float]:
        scores = {}
        for document, fields in candidates:
            # Match-all queries score every document equally before freshness.
            score = self._scoring_profile.text_score(terms, fields) if terms else 1.0
            if score > 0:
                scores[document.document_id] = self._scoring_profile.apply_freshness(
                    score, document.last_modified
                )
        return scores

    @staticmethod
    def _vector_scores(
        vector: list[float], candidates: list[tuple[SearchableDocument, dict[str, Any]]]
    ) -> dict[str, float]:
        usable = [doc for doc, _ in candidates if len(doc.content_vector) == len(vector)]
        if not usable:
            return {}

        matrix = np.array([doc.content_vector for doc in usable], dtype=float)
        query_vector = np.asarray(vector, dtype=float)
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query_vector)
        similarities = np.divide(
            matrix @ query_vector, norms, out=np.zeros(len(usable)), where=norms > 0
        )
        return {doc.document_id: float(s) for doc, s in zip(usable, similarities)}


def _ranked(scores: dict[str, float]) -> list[str]:
    return sorted(scores, key=lambda doc_id: (-scores[doc_id], doc_id))


def _facets(matches) -> dict[str, list[FacetResult]]:
    counters = {name: Counter() for name in FACET_FIELDS}
    for fields in matches:
        for name, counter in counters.items():
            value = fields.get(name)
            if value:
                counter[str(value)] += 1

    return {
        name: [
            FacetResult(value=value, count=count)
            for value, count in sorted(counter.items(), key=lambda kv: (-kv[1], kv[0]))
        ]
        for name, counter in counters.items()
    }


def _highlights(fields: dict[str, Any], terms: list[str]) -> list[str]:
    """Fragments containing query terms, with matches wrapped in <em>."""
    if not terms:
        return []

    pattern = re.compile(
        r"\b(" + "|".join(re.escape(t) for t in sorted(set(terms), key=len, reverse=True)) + r")\b",
        re.IGNORECASE,
    )

    fragments = []
    for name in HIGHLIGHT_FIELDS:
        value = fields.get(name)
        items = value if isinstance(value, (list, tuple)) else str(value or "").split("\n")
        for item in items:
            if pattern.search(item):
                fragments.append(pattern.sub(r"<em>\1</em>", item.strip()))
                if len(fragments) >= MAX_HIGHLIGHTS:
                    return fragments
    return fragments
