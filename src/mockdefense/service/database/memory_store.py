"""In-memory storage backend for local development and tests.

Similarity search is brute-force cosine similarity over the session's chunks.
A single lock guards every read and write, which makes the transcript append
atomic in the same way a single-document update is on the database server.
"""

import copy
import logging
import threading
from typing import Any

from mockdefense.constants import CHUNKS_COLLECTION, SESSIONS_COLLECTION
from mockdefense.errors import IndexUnavailableError
from mockdefense.service.database.base import ScoredHit
from mockdefense.service.database.utils import cosine_similarity

logger = logging.getLogger(__name__)


class InMemoryDataStore:
    """Dict-backed implementation of the DataStore protocol.

    Args:
        index_ready: When False, vector_search reports the similarity index as
            unavailable, mimicking a database whose vector index has not been
            provisioned yet.
    """

    def __init__(self, index_ready: bool = True) -> None:
        self.index_ready = index_ready
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def _collection(self, name: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(name, {})

    # Chunks

    def insert_chunks(self, documents: list[dict[str, Any]]) -> list[str]:
        with self._lock:
            chunks = self._collection(CHUNKS_COLLECTION)
            for document in documents:
                chunks[document["id"]] = copy.deepcopy(document)
        return [document["id"] for document in documents]

    def _session_chunks(self, session_id: str) -> list[dict[str, Any]]:
        chunks = [
            chunk
            for chunk in self._collection(CHUNKS_COLLECTION).values()
            if chunk.get("session_id") == session_id
        ]
        return sorted(chunks, key=lambda chunk: chunk.get("chunk_index", 0))

    def vector_search(
        self,
        vector: list[float],
        session_id: str,
        candidates: int,
        limit: int,
    ) -> list[ScoredHit] | IndexUnavailableError:
        if not self.index_ready:
            return IndexUnavailableError("in-memory similarity index disabled")

        with self._lock:
            scored = [
                (copy.deepcopy(chunk), cosine_similarity(vector, chunk.get("embedding", [])))
                for chunk in self._session_chunks(session_id)
            ]
        scored.sort(key=lambda hit: hit[1], reverse=True)
        return scored[:candidates][:limit]

    def scan_chunks(self, session_id: str, limit: int) -> list[dict[str, Any]]:
        with self._lock:
            return [copy.deepcopy(chunk) for chunk in self._session_chunks(session_id)[:limit]]

    def count_chunks(self, session_id: str) -> int:
        with self._lock:
            return len(self._session_chunks(session_id))

    def delete_chunks(self, session_id: str) -> int:
        with self._lock:
            chunks = self._collection(CHUNKS_COLLECTION)
            doomed = [key for key, chunk in chunks.items() if chunk.get("session_id") == session_id]
            for key in doomed:
                del chunks[key]
        return len(doomed)

    # Records

    def insert_record(self, collection: str, document: dict[str, Any]) -> str:
        with self._lock:
            self._collection(collection)[document["id"]] = copy.deepcopy(document)
        return document["id"]

    def load_record(self, collection: str, record_id: str) -> dict[str, Any] | None:
        with self._lock:
            document = self._collection(collection).get(record_id)
            return copy.deepcopy(document) if document is not None else None

    def find_records(self, collection: str, field: str, value: Any) -> list[dict[str, Any]]:
        with self._lock:
            return [
                copy.deepcopy(document)
                for document in self._collection(collection).values()
                if document.get(field) == value
            ]

    def update_record(self, collection: str, record_id: str, fields: dict[str, Any]) -> bool:
        with self._lock:
            document = self._collection(collection).get(record_id)
            if document is None:
                return False
            document.update(copy.deepcopy(fields))
            return True

    def append_transcript(
        self,
        session_id: str,
        messages: list[dict[str, Any]],
        status: str,
        updated_at: str,
    ) -> bool:
        with self._lock:
            session = self._collection(SESSIONS_COLLECTION).get(session_id)
            if session is None:
                return False
            session.setdefault("transcript", []).extend(copy.deepcopy(messages))
            if session.get("status") != "completed":
                session["status"] = status
            session["updated_at"] = updated_at
            return True

    def delete_record(self, collection: str, record_id: str) -> bool:
        with self._lock:
            return self._collection(collection).pop(record_id, None) is not None

    def close(self) -> None:
        logger.debug("In-memory data store closed")
