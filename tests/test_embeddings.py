"""Tests for the embedding client."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from mockdefense.errors import ConfigurationError, UpstreamError
from mockdefense.service.embeddings import EmbeddingClient


def _provider(side_effect=None, return_value=None) -> MagicMock:
    provider = MagicMock()
    provider.generate_embedding = AsyncMock(side_effect=side_effect, return_value=return_value)
    return provider


class TestEmbedOne:
    """Tests for EmbeddingClient.embed_one."""

    @pytest.mark.asyncio
    async def test_returns_vector(self):
        client = EmbeddingClient(_provider(return_value=[0.1, 0.2, 0.3]))
        assert await client.embed_one("text") == [0.1, 0.2, 0.3]

    @pytest.mark.asyncio
    async def test_missing_credential_fails_before_call(self):
        provider = _provider(return_value=[1.0])
        provider.ensure_configured.side_effect = ConfigurationError("no key")
        client = EmbeddingClient(provider)

        with pytest.raises(ConfigurationError):
            await client.embed_one("text")
        provider.generate_embedding.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_vector_is_upstream_error(self):
        client = EmbeddingClient(_provider(return_value=[]))
        with pytest.raises(UpstreamError, match="No embedding"):
            await client.embed_one("text")

    @pytest.mark.asyncio
    async def test_provider_failure_is_wrapped(self):
        client = EmbeddingClient(_provider(side_effect=RuntimeError("quota exceeded")))
        with pytest.raises(UpstreamError, match="quota exceeded"):
            await client.embed_one("text")

    @pytest.mark.asyncio
    async def test_no_retry(self):
        provider = _provider(side_effect=RuntimeError("boom"))
        client = EmbeddingClient(provider)
        with pytest.raises(UpstreamError):
            await client.embed_one("text")
        assert provider.generate_embedding.await_count == 1


class TestEmbedMany:
    """Tests for EmbeddingClient.embed_many."""

    @pytest.mark.asyncio
    async def test_empty_input_makes_no_calls(self):
        provider = _provider(return_value=[1.0])
        client = EmbeddingClient(provider)

        assert await client.embed_many([]) == []
        provider.generate_embedding.assert_not_called()
        provider.ensure_configured.assert_not_called()

    @pytest.mark.asyncio
    async def test_preserves_order(self):
        async def embed(text):
            return [float(len(text))]

        client = EmbeddingClient(_provider(side_effect=embed), batch_size=2, batch_delay=0)
        texts = ["a", "bbb", "cc", "dddd", "e"]

        assert await client.embed_many(texts) == [[1.0], [3.0], [2.0], [4.0], [1.0]]

    @pytest.mark.asyncio
    async def test_sleeps_between_batches_only(self):
        client = EmbeddingClient(_provider(return_value=[1.0]), batch_size=5, batch_delay=0.1)

        with patch("mockdefense.service.embeddings.asyncio.sleep", new=AsyncMock()) as sleep:
            await client.embed_many([f"text {i}" for i in range(12)])

        # 12 texts in batches of 5 -> 3 batches -> 2 pauses
        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.1)

    @pytest.mark.asyncio
    async def test_single_batch_does_not_sleep(self):
        client = EmbeddingClient(_provider(return_value=[1.0]), batch_size=5)

        with patch("mockdefense.service.embeddings.asyncio.sleep", new=AsyncMock()) as sleep:
            await client.embed_many(["one", "two"])

        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_propagates(self):
        async def embed(text):
            if text == "bad":
                raise RuntimeError("provider down")
            return [1.0]

        client = EmbeddingClient(_provider(side_effect=embed), batch_delay=0)
        with pytest.raises(UpstreamError):
            await client.embed_many(["good", "bad", "good"])

    def test_invalid_batch_size(self):
        with pytest.raises(ValueError):
            EmbeddingClient(_provider(), batch_size=0)
