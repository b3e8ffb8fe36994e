"""Document index protocol for dependency injection."""
from typing import Optional, Protocol, runtime_checkable

from ..models.document import SearchableDocument
from ..models.search import SearchQuery, SearchResults
from ..models.status import IndexStatus


@runtime_checkable
class DocumentIndexProtocol(Protocol):
    """Protocol for the search index holding repository documents."""

    async def create_index(self) -> bool:
        """Create or update the index schema."""
        ...

    async def delete_index(self) -> bool:
        """Delete the index. A missing index counts as success."""
        ...

    async def index_document(self, document: SearchableDocument) -> bool:
        """Upsert a single document."""
        ...

    async def index_documents(self, documents: list[SearchableDocument]) -> bool:
        """Upsert documents in batches.

        Returns:
            True only if every document was accepted.
        """
        ...

    async def delete_document(self, document_id: str) -> bool:
        """Delete a document by id."""
        ...

    async def delete_repository_documents(self, repository_id: str) -> bool:
        """Delete every document belonging to a repository."""
        ...

    async def search(self, query: SearchQuery) -> SearchResults:
        """Run a query across all repositories.

        Raises:
            ValueError: If a filter uses an unsupported operator.
        """
        ...

    async def search_repository(
        self, repository_id: str, query: SearchQuery
    ) -> SearchResults:
        """Run a query restricted to one repository."""
        ...

    async def get_document(self, document_id: str) -> Optional[SearchableDocument]:
        """Fetch a document by id, or None if absent."""
        ...

    async def get_index_status(self, repository_id: str) -> IndexStatus:
        """Status derived from the documents stored for a repository."""
        ...
