"""Content provider protocol for dependency injection."""
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class ContentProviderProtocol(Protocol):
    """Protocol for reading repository files."""

    async def get_file_tree(
        self, owner: str, repo: str, branch: str, recursive: bool = True
    ) -> list[str]:
        """List file paths in a repository branch.

        Args:
            owner: Repository owner.
            repo: Repository name.
            branch: Branch name.
            recursive: Walk subdirectories.

        Returns:
            File paths relative to the repository root.
        """
        ...

    async def get_file_content(
        self, owner: str, repo: str, path: str, branch: str
    ) -> Optional[str]:
        """Read one file as text.

        Returns:
            File content, or None if the file does not exist.
        """
        ...
