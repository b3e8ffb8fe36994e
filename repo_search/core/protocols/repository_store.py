"""Repository store protocol for dependency injection."""
from typing import Optional, Protocol, runtime_checkable

from ..models.repository import Repository


@runtime_checkable
class RepositoryStoreProtocol(Protocol):
    """Protocol for repository metadata lookup."""

    async def get_by_id(self, repository_id: str) -> Optional[Repository]:
        """Get repository by id, or None if unknown."""
        ...
