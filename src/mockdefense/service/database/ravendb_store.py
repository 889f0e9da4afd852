"""RavenDB storage backend.

Chunks live in the ``DefenseChunks`` collection and are searched through the
static ``DefenseChunks/ByEmbedding`` vector index with a hard equality filter
on ``session_id``. Record updates and the transcript append are server-side
patches, so each one is a single atomic document update.
"""

import logging
from typing import Any

from ravendb import DocumentStore
from ravendb.documents.operations.patch import PatchOperation, PatchRequest

from mockdefense.constants import (
    CHUNK_VECTOR_INDEX,
    CHUNKS_COLLECTION,
    SESSIONS_COLLECTION,
)
from mockdefense.errors import IndexUnavailableError
from mockdefense.service.database.base import ScoredHit
from mockdefense.service.database.operations import (
    create_document_store,
    ensure_index_exists,
    index_exists,
)
from mockdefense.service.database.utils import cosine_similarity

logger = logging.getLogger(__name__)

UPDATE_FIELDS_SCRIPT = """
for (var key in args.fields) {
    this[key] = args.fields[key];
}
"""

APPEND_TRANSCRIPT_SCRIPT = """
if (!this.transcript) {
    this.transcript = [];
}
for (var i = 0; i < args.messages.length; i++) {
    this.transcript.push(args.messages[i]);
}
if (this.status !== 'completed') {
    this.status = args.status;
}
this.updated_at = args.updated_at;
"""


class StoredDocument:
    """Entity wrapper that lets the session persist a plain dict.

    The session tracks entities by identity, so dicts (unhashable) are wrapped.
    """

    def __init__(self, fields: dict[str, Any]) -> None:
        self.__dict__.update(fields)


def _strip_metadata(document: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in document.items() if key != "@metadata"}


def _document_key(collection: str, record_id: str) -> str:
    return f"{collection}/{record_id}"


class RavenDataStore:
    """DataStore implementation over a RavenDB DocumentStore."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    @classmethod
    def connect(
        cls,
        url: str | None = None,
        database: str | None = None,
        dimensions: int | None = None,
        provision_index: bool = True,
    ) -> "RavenDataStore":
        """Open a DocumentStore and, optionally, deploy the vector index.

        A failure to deploy the index is logged, not raised: searches degrade
        to the fallback scan until the index exists.
        """
        store = create_document_store(url, database)
        if provision_index:
            try:
                ensure_index_exists(store, dimensions)
            except Exception as e:
                logger.warning(f"⚠️ Could not provision vector index {CHUNK_VECTOR_INDEX}: {e}")
        return cls(store)

    def _store_documents(self, collection: str, documents: list[dict[str, Any]]) -> list[str]:
        with self.store.open_session() as session:
            for document in documents:
                entity = StoredDocument(document)
                session.store(entity, _document_key(collection, document["id"]))
                metadata = session.advanced.get_metadata_for(entity)
                metadata["@collection"] = collection
            session.save_changes()
        return [document["id"] for document in documents]

    def _patch(self, collection: str, record_id: str, script: str, values: dict[str, Any]) -> bool:
        request = PatchRequest.for_script(script)
        request.values = values
        operation = PatchOperation(_document_key(collection, record_id), None, request)
        result = self.store.operations.send(operation)
        # The client answers a patch on a missing document with no result
        if result is None:
            return False
        status = getattr(result, "status", None)
        return "DOES_NOT_EXIST" not in str(status).upper()

    # Chunks

    def insert_chunks(self, documents: list[dict[str, Any]]) -> list[str]:
        return self._store_documents(CHUNKS_COLLECTION, documents)

    def vector_search(
        self,
        vector: list[float],
        session_id: str,
        candidates: int,
        limit: int,
    ) -> list[ScoredHit] | IndexUnavailableError:
        try:
            if not index_exists(self.store, CHUNK_VECTOR_INDEX):
                return IndexUnavailableError(f"Vector index {CHUNK_VECTOR_INDEX} is not deployed")

            with self.store.open_session() as session:
                results = list(
                    session.query_index(CHUNK_VECTOR_INDEX, object_type=dict)
                    .where_equals("session_id", session_id)
                    .and_also()
                    .vector_search("embedding", vector, number_of_candidates=candidates)
                    .order_by_score()
                    .take(limit)
                )
        except Exception as e:
            return IndexUnavailableError(f"Vector search failed: {e}")

        hits = []
        for result in results:
            index_score = result.get("@metadata", {}).get("@index-score")
            if index_score is not None:
                score = float(index_score)
            else:
                score = cosine_similarity(vector, result.get("embedding", []))
            hits.append((_strip_metadata(result), score))

        hits.sort(key=lambda hit: hit[1], reverse=True)
        return hits

    def scan_chunks(self, session_id: str, limit: int) -> list[dict[str, Any]]:
        with self.store.open_session() as session:
            results = list(
                session.advanced.raw_query(
                    f"from {CHUNKS_COLLECTION} where session_id = $session_id "
                    "order by chunk_index as long",
                    object_type=dict,
                )
                .add_parameter("session_id", session_id)
                .take(limit)
            )
        return [_strip_metadata(result) for result in results]

    def count_chunks(self, session_id: str) -> int:
        with self.store.open_session() as session:
            results = list(
                session.advanced.raw_query(
                    f"from {CHUNKS_COLLECTION} where session_id = $session_id select id",
                    object_type=dict,
                ).add_parameter("session_id", session_id)
            )
        return len(results)

    def delete_chunks(self, session_id: str) -> int:
        with self.store.open_session() as session:
            results = list(
                session.advanced.raw_query(
                    f"from {CHUNKS_COLLECTION} where session_id = $session_id select id",
                    object_type=dict,
                ).add_parameter("session_id", session_id)
            )
            for result in results:
                session.delete(_document_key(CHUNKS_COLLECTION, result["id"]))
            session.save_changes()
        return len(results)

    # Records

    def insert_record(self, collection: str, document: dict[str, Any]) -> str:
        return self._store_documents(collection, [document])[0]

    def load_record(self, collection: str, record_id: str) -> dict[str, Any] | None:
        with self.store.open_session() as session:
            document = session.load(_document_key(collection, record_id), dict)
        if document is None:
            return None
        return _strip_metadata(document)

    def find_records(self, collection: str, field: str, value: Any) -> list[dict[str, Any]]:
        with self.store.open_session() as session:
            results = list(
                session.advanced.raw_query(
                    f"from {collection} where {field} = $value", object_type=dict
                ).add_parameter("value", value)
            )
        return [_strip_metadata(result) for result in results]

    def update_record(self, collection: str, record_id: str, fields: dict[str, Any]) -> bool:
        return self._patch(collection, record_id, UPDATE_FIELDS_SCRIPT, {"fields": fields})

    def append_transcript(
        self,
        session_id: str,
        messages: list[dict[str, Any]],
        status: str,
        updated_at: str,
    ) -> bool:
        return self._patch(
            SESSIONS_COLLECTION,
            session_id,
            APPEND_TRANSCRIPT_SCRIPT,
            {"messages": messages, "status": status, "updated_at": updated_at},
        )

    def delete_record(self, collection: str, record_id: str) -> bool:
        with self.store.open_session() as session:
            key = _document_key(collection, record_id)
            if session.load(key, dict) is None:
                return False
            session.delete(key)
            session.save_changes()
        return True

    def close(self) -> None:
        self.store.close()
