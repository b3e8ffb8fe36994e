import asyncio
import logging
import time
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

import httpx

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
from repo_search.core.strategies.scoring import HYBRID_SCORING_PROFILE, ScoringProfile

from .filters import build_filter_expression
from .schema import (
    FACET_FIELDS,
    HIGHLIGHT_FIELDS,
    KEY_FIELD,
    SELECT_FIELDS,
    VECTOR_FIELD,
    build_index_definition,
)

logger = logging.getLogger(__name__)

DELETE_PAGE_SIZE = 1000
STALE_PAGE_RETRIES = 5
STALE_PAGE_DELAY = 1.0


class AzureSearchIndex:
    """Document index backed by the Azure AI Search REST API."""

    def __init__(
        self,
        service_url: str,
        api_key: str,
        index_name: str = "repository-documents-v1",
        dimensions: int = 1536,
        api_version: str = "2024-07-01",
        max_batch_size: int = 100,
        timeout: float = 10.0,
        embedder: Optional[EmbedderProtocol] = None,
        detailed_logging: bool = False,
        scoring_profile: ScoringProfile = HYBRID_SCORING_PROFILE,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        stale_page_retries: int = STALE_PAGE_RETRIES,
        stale_page_delay: float = STALE_PAGE_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize search index client.

        Args:
            service_url: Search service endpoint.
            api_key: Admin API key.
            index_name: Index name.
            dimensions: Vector length of `content_vector`.
            api_version: REST API version.
            max_batch_size: Documents per upload request.
            timeout: Per-request timeout in seconds.
            embedder: Embeds query text for vector queries.
            detailed_logging: Log request bodies at debug level.
            scoring_profile: Relevance profile used for text queries.
            transport: Custom httpx transport.
            stale_page_retries: Searches allowed to return only deleted keys
                before repository deletion gives up.
            stale_page_delay: Seconds to wait before searching again after
                such a page.
            sleep: Coroutine used to wait between those searches.
        """
        self._index_name = index_name
        self._stale_page_retries = max(0, stale_page_retries)
        self._stale_page_delay = stale_page_delay
        self._sleep = sleep
        self._dimensions = dimensions
        self._max_batch_size = max(1, max_batch_size)
        self._embedder = embedder
        self._detailed_logging = detailed_logging
        self._scoring_profile = scoring_profile
        self._client = httpx.AsyncClient(
            base_url=service_url.rstrip("/"),
            headers={"api-key": api_key, "Content-Type": "application/json"},
            params={"api-version": api_version},
            timeout=timeout,
            transport=transport,
        )

    @property
    def _index_path(self) -> str:
        return f"/indexes/{self._index_name}"

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _post(self, path: str, body: dict[str, Any]) -> httpx.Response:
        if self._detailed_logging:
            logger.debug(f"POST {path}: {_summarize(body)}")
        resp = await self._client.post(path, json=body)
        resp.raise_for_status()
        return resp

    async def create_index(self) -> bool:
        """Create or update the index schema."""
        try:
            logger.info(f"Creating or updating search index: {self._index_name}")
            definition = build_index_definition(
                self._index_name, self._dimensions, self._scoring_profile
            )
            resp = await self._client.put(self._index_path, json=definition)
            resp.raise_for_status()
            logger.info(f"Search index {self._index_name} is ready")
            return True
        except Exception as e:
            logger.error(f"Failed to create search index {self._index_name}: {e}")
            return False

    async def delete_index(self) -> bool:
        """Delete the index. A missing index counts as success."""
        try:
            logger.info(f"Deleting search index: {self._index_name}")
            resp = await self._client.delete(self._index_path)
            if resp.status_code == 404:
                logger.info(f"Search index {self._index_name} does not exist")
                return True
            resp.raise_for_status()
            return True
        except Exception as e:
            logger.error(f"Failed to delete search index {self._index_name}: {e}")
            return False

    async def index_document(self, document: SearchableDocument) -> bool:
        return await self.index_documents([document])

    async def index_documents(self, documents: list[SearchableDocument]) -> bool:
        """Upsert documents in batches.

        Documents whose vector has the wrong length are never sent and count
        as failures.

        Returns:
            True only if every document was accepted.
        """
        if not documents:
            return True

        valid = []
        failures = 0
        for document in documents:
            if document.has_valid_vector(self._dimensions):
                valid.append(document)
            else:
                failures += 1
                logger.warning(
                    f"Document {document.file_path} has invalid vector length "
                    f"{len(document.content_vector)}, expected {self._dimensions}"
                )

        logger.info(f"Indexing {len(valid)} documents in batches of {self._max_batch_size}")

        for i in range(0, len(valid), self._max_batch_size):
            batch = valid[i : i + self._max_batch_size]
            try:
                failures += await self._upload_batch(batch)
            except Exception as e:
                logger.error(f"Failed to upload batch of {len(batch)} documents: {e}")
                failures += len(batch)

        if failures:
            logger.warning(f"{failures} of {len(documents)} documents failed to index")
        else:
            logger.info(f"Successfully indexed {len(documents)} documents")
        return failures == 0

    async def _upload_batch(self, batch: list[SearchableDocument]) -> int:
        """Send one mergeOrUpload request; returns the number of failed documents."""
        actions = [
            {"@search.action": "mergeOrUpload", **doc.to_index_document()} for doc in batch
        ]
        resp = await self._post(f"{self._index_path}/docs/index", {"value": actions})
        return self._count_failures(resp.json())

    @staticmethod
    def _count_failures(payload: dict[str, Any]) -> int:
        failed = 0
        for item in payload.get("value", []):
            if not item.get("status", False):
                failed += 1
                logger.warning(
                    f"Document {item.get('key')} failed: {item.get('errorMessage')}"
                )
        return failed

    async def _delete_keys(self, keys: list[str]) -> int:
        """Delete documents by key; returns the number deleted."""
        actions = [{"@search.action": "delete", KEY_FIELD: key} for key in keys]
        resp = await self._post(f"{self._index_path}/docs/index", {"value": actions})
        return len(keys) - self._count_failures(resp.json())

    async def delete_document(self, document_id: str) -> bool:
        try:
            deleted = await self._delete_keys([document_id])
            logger.debug(f"Deleted document {document_id}")
            return deleted == 1
        except Exception as e:
            logger.error(f"Failed to delete document {document_id}: {e}")
            return False

    async def delete_repository_documents(self, repository_id: str) -> bool:
        """Delete every document of a repository, page by page until none remain.

        Succeeds only once a search for the repository comes back empty.
        """
        try:
            logger.info(f"Deleting all documents for repository: {repository_id}")
            total = 0
            seen: set[str] = set()
            stale_pages = 0

            while True:
                keys = await self._find_repository_keys(repository_id)
                if not keys:
                    break

                # Deletes become visible to search with a short delay.
                if seen.issuperset(keys):
                    stale_pages += 1
                    if stale_pages > self._stale_page_retries:
                        logger.error(
                            f"Search still returns {len(keys)} deleted documents for "
                            f"{repository_id} after {self._stale_page_retries} retries"
                        )
                        return False
                    logger.debug(
                        f"Only already deleted documents returned for {repository_id}, "
                        f"retrying in {self._stale_page_delay}s"
                    )
                    await self._sleep(self._stale_page_delay)
                    continue

                stale_pages = 0
                deleted = await self._delete_keys(keys)
                if deleted == 0:
                    logger.error(
                        f"No documents deleted from page of {len(keys)} for {repository_id}"
                    )
                    return False

                seen.update(keys)
                total += deleted

            logger.info(f"Deleted {total} documents for repository {repository_id}")
            return True
        except Exception as e:
            logger.error(f"Failed to delete documents for repository {repository_id}: {e}")
            return False

    async def _find_repository_keys(self, repository_id: str) -> list[str]:
        body = {
            "search": "*",
            "filter": build_filter_expression([SearchFilter.equal("repository_id", repository_id)]),
            "select": KEY_FIELD,
            "top": DELETE_PAGE_SIZE,
        }
        resp = await self._post(f"{self._index_path}/docs/search", body)
        return [item[KEY_FIELD] for item in resp.json().get("value", [])]

    async def search(self, query: SearchQuery) -> SearchResults:
        """Run a query across all repositories.

        Raises:
            ValueError: If a filter uses an unsupported operator.
        """
        start = time.perf_counter()
        body = await self._build_search_body(query)

        try:
            resp = await self._post(f"{self._index_path}/docs/search", body)
            payload = resp.json()
        except Exception as e:
            logger.error(f"Search failed for query '{query.query}': {e}")
            return SearchResults(search_duration=time.perf_counter() - start)

        results = self._parse_results(payload, time.perf_counter() - start)
        logger.info(
            f"Search '{query.query}' returned {len(results.results)} of "
            f"{results.total_count} results in {results.search_duration * 1000:.0f}ms"
        )
        return results

    async def search_repository(
        self, repository_id: str, query: SearchQuery
    ) -> SearchResults:
        return await self.search(
            query.with_filters(SearchFilter.equal("repository_id", repository_id))
        )

    async def _build_search_body(self, query: SearchQuery) -> dict[str, Any]:
        filter_expression = build_filter_expression(query.filters)

        vector = None
        if query.search_type != SearchType.KEYWORD:
            vector = await self._query_vector(query.query)

        search_text = query.query.strip() or "*"
        if query.search_type == SearchType.SEMANTIC and vector is not None:
            search_text = "*"

        body: dict[str, Any] = {
            "search": search_text,
            "top": query.top,
            "skip": query.skip,
            "count": True,
            "select": ",".join(SELECT_FIELDS),
            "scoringProfile": self._scoring_profile.name,
            "facets": list(FACET_FIELDS),
            "highlight": ",".join(HIGHLIGHT_FIELDS),
        }
        if filter_expression:
            body["filter"] = filter_expression
        if vector is not None:
            body["vectorQueries"] = [
                {
                    "kind": "vector",
                    "vector": vector,
                    "fields": VECTOR_FIELD,
                    "k": query.top + query.skip,
                }
            ]
        return body

    async def _query_vector(self, text: str) -> Optional[list[float]]:
        if self._embedder is None or not text.strip():
            return None
        try:
            return await self._embedder.generate_embedding(text)
        except Exception as e:
            logger.warning(f"Query embedding failed, falling back to keyword search: {e}")
            return None

    @staticmethod
    def _parse_results(payload: dict[str, Any], duration: float) -> SearchResults:
        values = payload.get("value", [])
        results = []
        for item in values:
            highlights = [
                fragment
                for fragments in item.get("@search.highlights", {}).values()
                for fragment in fragments
            ]
            document = SearchableDocument.from_index_document(item)
            results.append(
                SearchResult(
                    document_id=document.document_id,
                    score=float(item.get("@search.score", 0.0)),
                    document=document,
                    highlights=highlights,
                )
            )

        facets = {
            name: [FacetResult(value=str(f.get("value")), count=int(f.get("count", 0))) for f in entries]
            for name, entries in payload.get("@search.facets", {}).items()
        }

        return SearchResults(
            total_count=int(payload.get("@odata.count", len(results))),
            results=results,
            facets=facets,
            search_duration=duration,
        )

    async def get_document(self, document_id: str) -> Optional[SearchableDocument]:
        try:
            resp = await self._client.get(f"{self._index_path}/docs/{document_id}")
            if resp.status_code == 404:
                return None
            resp.raise_for_status()
            return SearchableDocument.from_index_document(resp.json())
        except Exception as e:
            logger.error(f"Failed to get document {document_id}: {e}")
            return None

    async def get_index_status(self, repository_id: str) -> IndexStatus:
        """COMPLETED with the document count if the repository has documents."""
        try:
            body = {
                "search": "*",
                "filter": build_filter_expression(
                    [SearchFilter.equal("repository_id", repository_id)]
                ),
                "select": "last_modified",
                "orderby": "last_modified desc",
                "top": 1,
                "count": True,
            }
            payload = (await self._post(f"{self._index_path}/docs/search", body)).json()
            count = int(payload.get("@odata.count", 0))
            if count == 0:
                return IndexStatus(status=IndexingStatus.NOT_STARTED)

            last_indexed = None
            values = payload.get("value", [])
            if values and values[0].get("last_modified"):
                last_indexed = datetime.fromisoformat(
                    values[0]["last_modified"].replace("Z", "+00:00")
                )

            return IndexStatus(
                status=IndexingStatus.COMPLETED,
                documents_indexed=count,
                total_documents=count,
                last_indexed=last_indexed,
            )
        except Exception as e:
            logger.error(f"Failed to get index status for repository {repository_id}: {e}")
            return IndexStatus.error(f"Failed to get index status: {e}")


def _summarize(body: dict[str, Any]) -> dict[str, Any]:
    """Request body with vectors and document lists reduced to sizes."""
    summary = dict(body)
    if "value" in summary:
        summary["value"] = f"<{len(summary['value'])} actions>"
    if "vectorQueries" in summary:
        summary["vectorQueries"] = f"<{len(summary['vectorQueries'])} vector queries>"
    return summary
