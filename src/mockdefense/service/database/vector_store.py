"""Session-scoped vector store for document chunks."""

import asyncio
import logging
from collections.abc import Sequence

from mockdefense.constants import CANDIDATE_MULTIPLIER, DEFAULT_TOP_K, FALLBACK_SCORE
from mockdefense.errors import IndexUnavailableError
from mockdefense.service.chunker import TextChunk
from mockdefense.service.database.base import DataStore
from mockdefense.service.database.models import ChunkRecord, ChunkScope, RetrievalResult
from mockdefense.service.embeddings import EmbeddingClient

logger = logging.getLogger(__name__)


class VectorStore:
    """Stores chunk embeddings and answers top-K queries within one session.

    Every query is filtered on ``session_id`` by the backend itself, so chunks
    of one session can never be returned for another.

    When the similarity index cannot answer (for instance it has not been
    deployed yet), ``query`` degrades to returning the session's chunks in
    document order with ``FALLBACK_SCORE`` instead of raising, so a defense
    can continue in degraded mode.
    """

    def __init__(
        self,
        data_store: DataStore,
        embeddings: EmbeddingClient,
        dimensions: int | None = None,
        candidate_multiplier: int = CANDIDATE_MULTIPLIER,
    ) -> None:
        self.data_store = data_store
        self.embeddings = embeddings
        self.dimensions = dimensions
        self.candidate_multiplier = candidate_multiplier

    def _validate_vectors(self, count: int, vectors: Sequence[Sequence[float]]) -> None:
        if len(vectors) != count:
            raise ValueError(f"Got {count} chunks but {len(vectors)} vectors")

        widths = {len(vector) for vector in vectors}
        if len(widths) > 1:
            raise ValueError(f"Vectors have inconsistent widths: {sorted(widths)}")
        if self.dimensions is not None and widths and widths != {self.dimensions}:
            raise ValueError(
                f"Expected {self.dimensions}-dimensional vectors, got {widths.pop()}"
            )

    async def store(
        self,
        chunks: Sequence[str | TextChunk],
        vectors: Sequence[Sequence[float]],
        scope: ChunkScope,
    ) -> list[str]:
        """Bulk insert chunks with their vectors.

        Args:
            chunks: Chunk texts (or TextChunks with spans) in document order
            vectors: One vector per chunk, same order
            scope: Document, owner and session the chunks belong to

        Returns:
            list[str]: Stored chunk ids in chunk order

        Raises:
            ValueError: On a chunk/vector count mismatch or a wrong vector width
        """
        self._validate_vectors(len(chunks), vectors)
        if not chunks:
            return []

        records = []
        for index, (chunk, vector) in enumerate(zip(chunks, vectors)):
            if isinstance(chunk, TextChunk):
                content, span_start, span_end = chunk.content, chunk.span_start, chunk.span_end
            else:
                content, span_start, span_end = chunk, 0, len(chunk)
            records.append(
                ChunkRecord(
                    document_id=scope.document_id,
                    session_id=scope.session_id,
                    owner_id=scope.owner_id,
                    content=content,
                    chunk_index=index,
                    vector=list(vector),
                    span_start=span_start,
                    span_end=span_end,
                )
            )

        ids = await asyncio.to_thread(
            self.data_store.insert_chunks, [record.to_document() for record in records]
        )
        logger.info(f"💾 Stored {len(ids)} chunks for session {scope.session_id}")
        return ids

    def _try_index_search(
        self, query_vector: list[float], session_id: str, top_k: int
    ) -> list[RetrievalResult] | IndexUnavailableError:
        outcome = self.data_store.vector_search(
            query_vector,
            session_id,
            candidates=top_k * self.candidate_multiplier,
            limit=top_k,
        )
        if isinstance(outcome, IndexUnavailableError):
            return outcome

        results = [
            RetrievalResult.from_hit(document.get("content"), score)
            for document, score in outcome
            if document.get("session_id", session_id) == session_id
        ]
        results.sort(key=lambda result: result.score, reverse=True)
        return results[:top_k]

    def _fallback_scan(self, session_id: str, top_k: int) -> list[RetrievalResult]:
        documents = self.data_store.scan_chunks(session_id, top_k)
        return [
            RetrievalResult.from_hit(document.get("content"), FALLBACK_SCORE)
            for document in documents[:top_k]
        ]

    def _search(self, query_vector: list[float], session_id: str, top_k: int) -> list[RetrievalResult]:
        outcome = self._try_index_search(query_vector, session_id, top_k)
        if isinstance(outcome, IndexUnavailableError):
            logger.warning(f"⚠️ {outcome}; falling back to session scan for {session_id}")
            return self._fallback_scan(session_id, top_k)
        return outcome

    async def query(
        self,
        query_vector: list[float],
        session_id: str,
        top_k: int = DEFAULT_TOP_K,
    ) -> list[RetrievalResult]:
        """Return the ``top_k`` chunks of a session most similar to a vector.

        Args:
            query_vector: Embedded query
            session_id: Session to search (hard filter)
            top_k: Maximum number of results

        Returns:
            list[RetrievalResult]: Ordered by descending score. All of the
            session's chunks when it has fewer than ``top_k``.

        Raises:
            ValueError: If top_k is not positive
        """
        if top_k <= 0:
            raise ValueError(f"top_k must be positive, got {top_k}")

        results = await asyncio.to_thread(self._search, list(query_vector), session_id, top_k)
        logger.debug(f"🔍 Retrieved {len(results)} chunks for session {session_id}")
        return results

    async def query_by_text(
        self,
        text: str,
        session_id: str,
        top_k: int = DEFAULT_TOP_K,
    ) -> list[RetrievalResult]:
        """Embed ``text`` and query the session with it."""
        query_vector = await self.embeddings.embed_one(text)
        return await self.query(query_vector, session_id, top_k)

    async def delete_by_session(self, session_id: str) -> int:
        """Hard-delete all chunks of a session. Safe to call repeatedly.

        Returns:
            int: Number of chunks removed (0 when nothing was left)
        """
        deleted = await asyncio.to_thread(self.data_store.delete_chunks, session_id)
        logger.info(f"🗑️  Deleted {deleted} chunks for session {session_id}")
        return deleted

    async def count_by_session(self, session_id: str) -> int:
        return await asyncio.to_thread(self.data_store.count_chunks, session_id)
