"""Embedder protocol for dependency injection."""
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class EmbedderProtocol(Protocol):
    """Protocol for embedding service."""

    @property
    def dimensions(self) -> int:
        """Length of every vector the model produces."""
        ...

    async def generate_embedding(self, text: str) -> Optional[list[float]]:
        """Embed a single text.

        Args:
            text: Text to embed.

        Returns:
            Embedding vector, or None for blank input.
        """
        ...

    async def generate_embeddings(self, texts: list[str]) -> list[list[float]]:
        """Embed many texts in batches.

        Args:
            texts: Texts to embed. Blank entries are skipped.

        Returns:
            Embedding vectors in submission order.
        """
        ...

    async def validate(self) -> bool:
        """Check that the embedding service is reachable and answering."""
        ...
