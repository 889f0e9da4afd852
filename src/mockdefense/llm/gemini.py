"""Google Gemini LLM service implementation."""

import asyncio
import logging

from google import genai

from mockdefense.constants import GENERATION_DEFAULTS, get_embedding_model
from mockdefense.errors import ConfigurationError

logger = logging.getLogger(__name__)


class GeminiService:
    """Google Gemini LLM service implementation.

    This service uses the Google Gemini API for both completions and
    embeddings. The client is built on first use so a missing API key is
    reported as a ConfigurationError before any request is attempted.
    """

    def __init__(
        self,
        model: str = GENERATION_DEFAULTS["gemini"],
        embedding_model: str | None = None,
        api_key: str | None = None,
    ) -> None:
        """Initialize the Gemini service.

        Args:
            model: The model name to use (e.g., "gemini-2.5-flash")
            embedding_model: Embedding model name (default: EMBEDDING_MODEL env
                or "gemini-embedding-001")
            api_key: Gemini API key (typically from GEMINI_API_KEY)
        """
        self.model = model
        self.embedding_model = embedding_model or get_embedding_model("gemini")
        self.api_key = api_key
        self._client: genai.Client | None = None
        logger.info(
            f"🤖 Initializing GeminiService: model={model}, embedding_model={self.embedding_model}"
        )

    def ensure_configured(self) -> None:
        if not self.api_key:
            raise ConfigurationError("Gemini API key not configured (set GEMINI_API_KEY)")

    @property
    def client(self) -> genai.Client:
        """The underlying google-genai client, created on first access."""
        if self._client is None:
            self.ensure_configured()
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def generate_response(self, prompt: str) -> str:
        """Generate a response using Gemini.

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
                self.client.models.generate_content,
                model=self.model,
                contents=prompt,
            )
        except Exception as e:
            logger.error(f"❌ Gemini API error: {e}", exc_info=True)
            raise

        content = response.text or ""
        logger.info(f"✅ Response generated: {len(content)} characters")
        return content

    async def generate_embedding(self, text: str) -> list[float]:
        """Embed a single text with the configured Gemini embedding model.

        Args:
            text: Text to embed

        Returns:
            list[float]: The embedding values, or an empty list when the API
            returned no embedding.
        """
        self.ensure_configured()
        try:
            response = await asyncio.to_thread(
                self.client.models.embed_content,
                model=self.embedding_model,
                contents=text,
            )
        except Exception as e:
            logger.error(f"❌ Gemini embedding error: {e}", exc_info=True)
            raise

        if not response.embeddings:
            return []
        return list(response.embeddings[0].values or [])
