"""Embedding provider abstraction for model-agnostic vector generation.

Ships an Ollama implementation that talks to a local embedding server over HTTP.
Other providers plug in behind the same protocol through ``create_embedding_provider``
without touching the store or the pipelines. No retries are performed here.
"""

import asyncio
from typing import Protocol

import httpx
from loguru import logger
from pydantic import BaseModel, Field

from knowledge_rag.errors import ProviderError

DEFAULT_DIMENSIONS = 768

MODEL_DIMENSIONS: dict[str, int] = {
    "nomic-embed-text": 768,
    "mxbai-embed-large": 1024,
    "all-minilm": 384,
    "snowflake-arctic-embed": 1024,
}


def dimensions_for_model(model: str) -> int:
    """Return the embedding width of a known model, 768 for unknown models."""
    return MODEL_DIMENSIONS.get(model, DEFAULT_DIMENSIONS)


class EmbeddingConfig(BaseModel):
    """Configuration for embedding generation.

    Attributes:
        provider: Provider identifier (only "ollama" today)
        model: Embedding model name
        base_url: Base URL of the embedding service
        dimensions: Optional explicit width; derived from the model name when unset
        timeout_seconds: Per-request timeout
        probe_timeout_seconds: Timeout for the liveness probe
        max_concurrency: Maximum in-flight requests during batch embedding
    """

    provider: str = "ollama"
    model: str = "nomic-embed-text"
    base_url: str = "http://localhost:11434"
    dimensions: int | None = Field(default=None, ge=64, le=4096)
    timeout_seconds: float = Field(default=60.0, ge=1.0, le=600.0)
    probe_timeout_seconds: float = Field(default=2.0, gt=0.0, le=30.0)
    max_concurrency: int = Field(default=4, ge=1, le=64)


class EmbeddingProvider(Protocol):
    """Protocol for embedding provider implementations."""

    dimensions: int
    base_url: str

    async def embed(self, text: str) -> list[float]:
        """Generate an embedding for a single text.

        Raises:
            ProviderError: If the request fails or the response is malformed
        """
        ...

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for a batch of texts.

        Returns:
            List of embedding vectors (same order as inputs)
        """
        ...

    async def health_check(self) -> bool:
        """Check whether the provider is reachable."""
        ...

    async def aclose(self) -> None:
        """Release network resources."""
        ...


class OllamaEmbedding:
    """Ollama embedding client: one POST to /api/embeddings per text."""

    def __init__(self, config: EmbeddingConfig, client: httpx.AsyncClient | None = None):
        """Initialize the Ollama client.

        Args:
            config: Embedding configuration
            client: Optional pre-built HTTP client (for testing)
        """
        self.config = config
        self.model = config.model
        self.base_url = config.base_url.rstrip("/")
        self.dimensions = config.dimensions or dimensions_for_model(config.model)
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url, timeout=config.timeout_seconds
        )
        self._semaphore = asyncio.Semaphore(config.max_concurrency)

    async def __aenter__(self) -> "OllamaEmbedding":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def embed(self, text: str) -> list[float]:
        """Generate an embedding for a single text.

        Args:
            text: Input text

        Returns:
            Embedding vector of length ``self.dimensions``

        Raises:
            ProviderError: On transport failure, non-2xx status, or a malformed body
        """
        url = f"{self.base_url}/api/embeddings"
        try:
            response = await self._client.post(url, json={"model": self.model, "prompt": text})
        except httpx.HTTPError as e:
            raise ProviderError(f"Ollama embedding request failed: {e}") from e

        if not response.is_success:
            body = response.text
            raise ProviderError(
                f"Ollama embedding failed: {body}", status_code=response.status_code, body=body
            )

        try:
            embedding = [float(v) for v in response.json()["embedding"]]
        except (ValueError, KeyError, TypeError) as e:
            raise ProviderError(
                f"Ollama returned an unexpected payload: {response.text[:200]}",
                status_code=response.status_code,
                body=response.text,
            ) from e

        if len(embedding) != self.dimensions:
            raise ProviderError(
                f"Expected {self.dimensions} dimensions from {self.model}, got {len(embedding)}"
            )
        return embedding

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for a batch of texts.

        Requests run concurrently (bounded by ``max_concurrency``); the returned list
        always follows input order. The first failure propagates.

        Args:
            texts: List of input texts

        Returns:
            List of embedding vectors (same order as inputs)
        """
        if not texts:
            return []

        async def _bounded(text: str) -> list[float]:
            async with self._semaphore:
                return await self.embed(text)

        vectors = await asyncio.gather(*(_bounded(text) for text in texts))
        logger.debug(f"Embedded {len(texts)} texts with {self.model}")
        return list(vectors)

    async def health_check(self) -> bool:
        """Probe the Ollama tags endpoint.

        Returns:
            True if the service answered with a success status
        """
        try:
            response = await self._client.get(
                f"{self.base_url}/api/tags", timeout=self.config.probe_timeout_seconds
            )
            return response.is_success
        except httpx.HTTPError as e:
            logger.debug(f"Ollama liveness probe failed: {e}")
            return False

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()


def create_embedding_provider(config: EmbeddingConfig) -> EmbeddingProvider:
    """Factory function to create an embedding provider from config.

    Args:
        config: Embedding configuration

    Returns:
        Embedding provider implementation

    Example:
        >>> provider = create_embedding_provider(EmbeddingConfig(model="all-minilm"))
        >>> provider.dimensions
        384
    """
    if config.provider == "ollama":
        return OllamaEmbedding(config)
    raise ValueError(f"Unknown embedding provider {config.provider!r}. Expected 'ollama'")
