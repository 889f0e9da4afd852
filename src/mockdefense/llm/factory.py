"""Factory function for creating LLM service instances."""

import logging
import os

from dotenv import load_dotenv

from mockdefense.constants import DEFAULT_OLLAMA_HOST, GENERATION_DEFAULTS, get_llm_service_name
from mockdefense.llm.base import LLMService
from mockdefense.llm.gemini import GeminiService
from mockdefense.llm.ollama import OllamaService

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def get_llm_service(config: dict | None = None) -> LLMService:
    """Factory function to create an LLM service instance.

    Call once at process start and pass the instance to the components that
    need it.

    Args:
        config: Optional configuration dictionary. If None, uses environment variables.
                Expected keys:
                - 'service': Service type (default: from LLM_SERVICE env, or "gemini")
                - 'host': Ollama host URL (default: from OLLAMA_HOST env)
                - 'model': Generation model name (default: from LLM_MODEL env)
                - 'embedding_model': Embedding model (default: from EMBEDDING_MODEL env)
                - 'api_key': Gemini API key (default: from GEMINI_API_KEY env)

    Returns:
        LLMService: An instance implementing the LLMService protocol.
    """
    if config is None:
        config = {}

    service_type = config.get("service", get_llm_service_name())
    embedding_model = config.get("embedding_model")

    if service_type == "ollama":
        host = config.get("host", os.getenv("OLLAMA_HOST", DEFAULT_OLLAMA_HOST))
        model = config.get("model", os.getenv("LLM_MODEL", GENERATION_DEFAULTS["ollama"]))
        return OllamaService(host=host, model=model, embedding_model=embedding_model)

    if service_type == "gemini":
        model = config.get("model", os.getenv("LLM_MODEL", GENERATION_DEFAULTS["gemini"]))
        api_key = config.get("api_key", os.getenv("GEMINI_API_KEY"))
        return GeminiService(model=model, embedding_model=embedding_model, api_key=api_key)

    raise ValueError(f"Unsupported service type: {service_type}")
