"""Tests for the LLM provider services and factory."""

import os
from unittest.mock import MagicMock, patch

import pytest

from mockdefense.errors import ConfigurationError
from mockdefense.llm import GeminiService, OllamaService, get_llm_service


class TestOllamaService:
    """Tests for OllamaService class."""

    @pytest.mark.asyncio
    async def test_generate_response_success(self):
        """The composed prompt is sent as a single user message."""
        service = OllamaService(host="http://test:11434", model="test-model")

        mock_response = MagicMock()
        mock_response.message.content = "Explain further."
        service.client.chat = MagicMock(return_value=mock_response)

        response = await service.generate_response("PROMPT")

        assert response == "Explain further."
        service.client.chat.assert_called_once_with(
            model="test-model", messages=[{"role": "user", "content": "PROMPT"}]
        )

    @pytest.mark.asyncio
    async def test_generate_response_empty_content(self):
        service = OllamaService(host="http://test:11434", model="test-model")
        mock_response = MagicMock()
        mock_response.message.content = None
        service.client.chat = MagicMock(return_value=mock_response)

        assert await service.generate_response("PROMPT") == ""

    @pytest.mark.asyncio
    async def test_generate_response_error(self):
        service = OllamaService(host="http://test:11434", model="test-model")
        service.client.chat = MagicMock(side_effect=ConnectionError("refused"))

        with pytest.raises(ConnectionError):
            await service.generate_response("PROMPT")

    @pytest.mark.asyncio
    async def test_generate_embedding(self):
        service = OllamaService(
            host="http://test:11434", model="test-model", embedding_model="embed-model"
        )
        service.client.embed = MagicMock(return_value={"embeddings": [[0.1, 0.2]]})

        assert await service.generate_embedding("text") == [0.1, 0.2]
        service.client.embed.assert_called_once_with(model="embed-model", input="text")

    @pytest.mark.asyncio
    async def test_generate_embedding_empty(self):
        service = OllamaService(host="http://test:11434", model="test-model")
        service.client.embed = MagicMock(return_value={"embeddings": []})

        assert await service.generate_embedding("text") == []


class TestGeminiService:
    """Tests for GeminiService class."""

    def test_missing_api_key(self):
        service = GeminiService(model="gemini-2.5-flash", api_key=None)
        with pytest.raises(ConfigurationError):
            service.ensure_configured()

    @pytest.mark.asyncio
    @patch("mockdefense.llm.gemini.genai.Client")
    async def test_missing_api_key_makes_no_call(self, mock_client_cls):
        service = GeminiService(model="gemini-2.5-flash", api_key=None)

        with pytest.raises(ConfigurationError):
            await service.generate_embedding("text")
        mock_client_cls.assert_not_called()

    @pytest.mark.asyncio
    @patch("mockdefense.llm.gemini.genai.Client")
    async def test_generate_response(self, mock_client_cls):
        mock_client = MagicMock()
        mock_client.models.generate_content.return_value = MagicMock(text="Opening question?")
        mock_client_cls.return_value = mock_client
        service = GeminiService(model="gemini-2.5-flash", api_key="key")

        assert await service.generate_response("PROMPT") == "Opening question?"
        mock_client_cls.assert_called_once_with(api_key="key")
        mock_client.models.generate_content.assert_called_once_with(
            model="gemini-2.5-flash", contents="PROMPT"
        )

    @pytest.mark.asyncio
    @patch("mockdefense.llm.gemini.genai.Client")
    async def test_generate_response_none_text(self, mock_client_cls):
        mock_client_cls.return_value.models.generate_content.return_value = MagicMock(text=None)
        service = GeminiService(api_key="key")

        assert await service.generate_response("PROMPT") == ""

    @pytest.mark.asyncio
    @patch("mockdefense.llm.gemini.genai.Client")
    async def test_generate_embedding(self, mock_client_cls):
        embedding = MagicMock(values=[0.5, 0.25])
        mock_client_cls.return_value.models.embed_content.return_value = MagicMock(
            embeddings=[embedding]
        )
        service = GeminiService(api_key="key", embedding_model="gemini-embedding-001")

        assert await service.generate_embedding("text") == [0.5, 0.25]
        mock_client_cls.return_value.models.embed_content.assert_called_once_with(
            model="gemini-embedding-001", contents="text"
        )

    @pytest.mark.asyncio
    @patch("mockdefense.llm.gemini.genai.Client")
    async def test_generate_embedding_none(self, mock_client_cls):
        mock_client_cls.return_value.models.embed_content.return_value = MagicMock(embeddings=None)
        service = GeminiService(api_key="key")

        assert await service.generate_embedding("text") == []


class TestGetLLMService:
    """Tests for the get_llm_service factory."""

    @patch("mockdefense.llm.factory.OllamaService")
    def test_ollama_from_config(self, mock_ollama):
        get_llm_service({"service": "ollama", "host": "http://h:1", "model": "m"})
        mock_ollama.assert_called_once_with(host="http://h:1", model="m", embedding_model=None)

    @patch("mockdefense.llm.factory.GeminiService")
    def test_gemini_from_env(self, mock_gemini):
        with patch.dict(
            os.environ,
            {"LLM_SERVICE": "gemini", "GEMINI_API_KEY": "secret", "LLM_MODEL": "gemini-x"},
            clear=True,
        ):
            get_llm_service()

        mock_gemini.assert_called_once_with(
            model="gemini-x", embedding_model=None, api_key="secret"
        )

    @patch("mockdefense.llm.factory.GeminiService")
    def test_defaults_to_gemini(self, mock_gemini):
        with patch.dict(os.environ, {}, clear=True):
            get_llm_service()

        assert mock_gemini.call_args.kwargs["model"] == "gemini-2.5-flash"
        assert mock_gemini.call_args.kwargs["api_key"] is None

    def test_unsupported_service(self):
        with pytest.raises(ValueError, match="Unsupported"):
            get_llm_service({"service": "openai"})
