"""Embedding client: batching and validation over an LLM service."""

import asyncio
import logging

from mockdefense.constants import EMBEDDING_BATCH_DELAY_SECONDS, EMBEDDING_BATCH_SIZE
from mockdefense.errors import ConfigurationError, UpstreamError
from mockdefense.llm.base import LLMService

logger = logging.getLogger(__name__)


class EmbeddingClient:
    """Turns texts into vectors through an injected provider.

    ``embed_many`` sends ``batch_size`` requests concurrently, then pauses for
    ``batch_delay`` seconds before the next batch to stay under the provider's
    rate limit. Failures are never retried here.
    """

    def __init__(
        self,
        provider: LLMService,
        batch_size: int = EMBEDDING_BATCH_SIZE,
        batch_delay: float = EMBEDDING_BATCH_DELAY_SECONDS,
    ) -> None:
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.provider = provider
        self.batch_size = batch_size
        self.batch_delay = batch_delay

    async def embed_one(self, text: str) -> list[float]:
        """Embed a single text.

        Raises:
            ConfigurationError: If the provider has no credential configured
            UpstreamError: If the provider fails or returns an empty vector
        """
        self.provider.ensure_configured()

        try:
            vector = await self.provider.generate_embedding(text)
        except ConfigurationError:
            raise
        except Exception as e:
            raise UpstreamError(f"Failed to generate embedding: {e}") from e

        if not vector:
            raise UpstreamError("No embedding returned by the provider")
        return list(vector)

    async def embed_many(self, texts: list[str]) -> list[list[float]]:
        """Embed texts, preserving input order.

        Returns:
            list[list[float]]: One vector per input text, same order.
        """
        if not texts:
            return []

        self.provider.ensure_configured()

        vectors: list[list[float]] = []
        for start in range(0, len(texts), self.batch_size):
            batch = texts[start:start + self.batch_size]
            vectors.extend(await asyncio.gather(*(self.embed_one(text) for text in batch)))

            if start + self.batch_size < len(texts):
                await asyncio.sleep(self.batch_delay)

        logger.info(f"✅ Generated {len(vectors)} embeddings")
        return vectors
