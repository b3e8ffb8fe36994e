import logging
from typing import Any, Optional

from openai import AsyncOpenAI

from .rate_limiter import SlidingWindowRateLimiter
from .retry import RetryPolicy

logger = logging.getLogger(__name__)

MAX_INPUT_CHARS = 30000
TRUNCATION_KEEP_RATIO = 0.9
VALIDATION_PROBE = "test embedding generation"


def prepare_text(text: str) -> str:
    """Collapse whitespace and cut overly long input, at a word when cheap."""
    text = " ".join(text.split())
    if len(text) <= MAX_INPUT_CHARS:
        return text

    text = text[:MAX_INPUT_CHARS]
    last_space = text.rfind(" ")
    if last_space > MAX_INPUT_CHARS * TRUNCATION_KEEP_RATIO:
        text = text[:last_space]
    return text


class OpenAIEmbedder:
    """Embedding client for OpenAI-compatible embeddings APIs."""

    def __init__(
        self,
        base_url: str = "https://api.openai.com/v1",
        api_key: str = "",
        model: str = "text-embedding-ada-002",
        dimensions: int = 1536,
        max_batch_size: int = 16,
        retry_attempts: int = 3,
        retry_base_delay: float = 1.0,
        rate_limit_protection: bool = True,
        timeout: float = 10.0,
        client: Optional[Any] = None,
        retry_policy: Optional[RetryPolicy] = None,
        rate_limiter: Optional[SlidingWindowRateLimiter] = None,
    ):
        """Initialize embedder.

        Args:
            base_url: Embeddings API URL.
            api_key: API key.
            model: Embedding model (deployment) name.
            dimensions: Vector length the model produces.
            max_batch_size: Max texts per request, also the rate limiter capacity.
            retry_attempts: Attempts per request.
            retry_base_delay: First backoff delay in seconds.
            rate_limit_protection: Throttle calls in a sliding window.
            timeout: Per-request timeout in seconds.
            client: Preconfigured AsyncOpenAI-like client.
            retry_policy: Custom retry policy.
            rate_limiter: Custom rate limiter.
        """
        # Retries are handled by RetryPolicy, not by the SDK.
        self._client = client or AsyncOpenAI(
            base_url=base_url,
            api_key=api_key or "not-set",
            timeout=timeout,
            max_retries=0,
        )
        self._model = model
        self._dimensions = dimensions
        self._max_batch_size = max(1, max_batch_size)
        self._retry = retry_policy or RetryPolicy(
            attempts=retry_attempts, base_delay=retry_base_delay
        )
        if rate_limiter is None and rate_limit_protection:
            rate_limiter = SlidingWindowRateLimiter(self._max_batch_size)
        self._rate_limiter = rate_limiter

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def _create(self, inputs: list[str]) -> list[list[float]]:
        if self._rate_limiter is not None:
            async with self._rate_limiter:
                response = await self._client.embeddings.create(model=self._model, input=inputs)
        else:
            response = await self._client.embeddings.create(model=self._model, input=inputs)
        data = sorted(response.data, key=lambda item: item.index)
        return [list(item.embedding) for item in data]

    async def _request(self, inputs: list[str]) -> list[list[float]]:
        return await self._retry.run(lambda: self._create(inputs))

    async def generate_embedding(self, text: str) -> Optional[list[float]]:
        """Embed a single text.

        Args:
            text: Text to embed.

        Returns:
            Embedding vector, or None for blank input.
        """
        if not text or not text.strip():
            logger.warning("Empty text provided for embedding generation")
            return None

        prepared = prepare_text(text)
        logger.debug(f"Generating embedding for text of length {len(prepared)}")

        vectors = await self._request([prepared])
        if not vectors:
            logger.warning("Embeddings API returned no vector")
            return None
        return vectors[0]

    async def generate_embeddings(self, texts: list[str]) -> list[list[float]]:
        """Embed many texts, one request per chunk of max batch size.

        Args:
            texts: Texts to embed. Blank entries are dropped.

        Returns:
            Vectors for the non-blank texts, in order.
        """
        valid = [prepare_text(t) for t in texts if t and t.strip()]
        if not valid:
            logger.warning("No valid texts provided for batch embedding generation")
            return []

        logger.info(f"Generating embeddings for {len(valid)} texts")

        vectors: list[list[float]] = []
        for i in range(0, len(valid), self._max_batch_size):
            chunk = valid[i : i + self._max_batch_size]
            chunk_vectors = await self._request(chunk)
            if len(chunk_vectors) != len(chunk):
                logger.warning(
                    f"Embedding count mismatch: sent {len(chunk)} texts, "
                    f"received {len(chunk_vectors)} vectors"
                )
            vectors.extend(chunk_vectors)

        return vectors

    async def validate(self) -> bool:
        """Embed a probe text to check connectivity and credentials."""
        try:
            vector = await self.generate_embedding(VALIDATION_PROBE)
            ok = bool(vector)
            if ok:
                logger.info(f"Embedding service validated, {len(vector)} dimensions")
            else:
                logger.warning("Embedding service validation returned an empty vector")
            return ok
        except Exception as e:
            logger.error(f"Embedding service validation failed: {e}")
            return False
