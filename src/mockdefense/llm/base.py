"""Base protocol for LLM services."""

from typing import Protocol


class LLMService(Protocol):
    """Protocol defining the interface for LLM services.

    Providers are stateless: conversational memory lives in the session
    transcript and is folded into each prompt by the conversation engine.
    """

    def ensure_configured(self) -> None:
        """Check that the provider has what it needs to make calls.

        Raises:
            ConfigurationError: If a credential or setting is missing.
        """
        ...

    async def generate_response(self, prompt: str) -> str:
        """Generate a single-shot completion for a fully composed prompt.

        Args:
            prompt: The complete prompt text, persona and context included.

        Returns:
            str: The generated response text (may be empty).
        """
        ...

    async def generate_embedding(self, text: str) -> list[float]:
        """Embed one text.

        Args:
            text: The text to embed

        Returns:
            list[float]: The embedding vector (may be empty if the provider
            returned nothing).
        """
        ...
