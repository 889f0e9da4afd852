"""LLM service abstraction layer for mockdefense.

This package provides a unified interface for multiple LLM providers:
- GeminiService: Google Gemini API (default)
- OllamaService: Local LLM via Ollama

All services implement the LLMService protocol: single-shot generation from
a composed prompt and single-text embedding.

Usage:
    from mockdefense.llm import get_llm_service, LLMService

    # Create service from environment config
    service = get_llm_service()

    # Or with explicit config
    service = get_llm_service({"service": "ollama", "model": "llama3"})
"""

from mockdefense.llm.base import LLMService
from mockdefense.llm.factory import get_llm_service
from mockdefense.llm.gemini import GeminiService
from mockdefense.llm.ollama import OllamaService

__all__ = [
    "LLMService",
    "OllamaService",
    "GeminiService",
    "get_llm_service",
]
