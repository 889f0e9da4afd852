"""Ollama LLM service implementation."""

import asyncio
import logging

import ollama

from mockdefense.constants import DEFAULT_OLLAMA_HOST, GENERATION_DEFAULTS, get_embedding_model
from mockdefense.errors import ConfigurationError

logger = logging.getLogger(__name__)


class OllamaService:
    """Ollama LLM service implementation.

    This service uses a local Ollama server for completions and embeddings.
    It is the development stand-in for the hosted provider.
    """

    def __init__(
        self,
        host: str = DEFAULT_OLLAMA_HOST,
        model: str = GENERATION_DEFAULTS["ollama"],
        embedding_model: str | None = None,
    ) -> None:
        """Initialize the Ollama service.

        Args:
            host: The Ollama server host URL (e.g., "http://localhost:11434")
            model: The model name to use (e.g., "llama3")
            embedding_model: Embedding model name (default: EMBEDDING_MODEL env
                or "nomic-embed-text")
        """
        self.host = host
        self.model = model
        self.embedding_model = embedding_model or get_embedding_model("ollama")
        logger.info(f"🤖 Initializing OllamaService: host={host}, model={model}")
        self.client = ollama.Client(host=host)

    def ensure_configured(self) -> None:
        if not self.host:
            raise ConfigurationError("Ollama host not configured (set OLLAMA_HOST)")

    async def generate_response(self, prompt: str) -> str:
        """Generate a response using Ollama.

        The prompt is sent as a single user message; Ollama keeps no state
        between calls.

        Args:
            prompt: Fully composed prompt

        Returns:
            str: The generated response content from the model.
        """
        self.ensure_configured()
        logger.info(f"🗣️  Generating response with {self.model}")
        logger.debug(f"Prompt: {len(prompt)} characters")

        try:
            response = await asyncio.to_thread(
                self.client.chat,
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
            )
        except Exception as e:
            logger.error(f"❌ Ollama API error: {e}", exc_info=True)
            raise

        content = response.message.content or ""
        logger.info(f"✅ Response generated: {len(content)} characters")
        return content

    async def generate_embedding(self, text: str) -> list[float]:
        """Embed a single text using Ollama.

        Args:
            text: Text to embed

        Returns:
            list[float]: The embedding vector, empty when Ollama returned none.
        """
        self.ensure_configured()
        response = await asyncio.to_thread(
            self.client.embed, model=self.embedding_model, input=text
        )
        embeddings = response["embeddings"]
        if not embeddings:
            return []
        return list(embeddings[0])
