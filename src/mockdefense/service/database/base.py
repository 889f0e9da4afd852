"""Storage protocol shared by the RavenDB and in-memory backends.

A backend must offer four primitives: bulk insert, nearest-neighbour search
with an equality filter on ``session_id``, an atomic append to a session's
transcript, and bulk delete by ``session_id``. The remaining methods are plain
record CRUD used by the repositories.

Backends are synchronous; the async repositories call them through
``asyncio.to_thread``.
"""

from typing import Any, Protocol

from mockdefense.errors import IndexUnavailableError

# (chunk document, similarity score)
ScoredHit = tuple[dict[str, Any], float]


class DataStore(Protocol):
    """Persistence primitives for chunks, sessions and documents."""

    def insert_chunks(self, documents: list[dict[str, Any]]) -> list[str]:
        """Bulk insert chunk documents and return their ids in input order."""
        ...

    def vector_search(
        self,
        vector: list[float],
        session_id: str,
        candidates: int,
        limit: int,
    ) -> list[ScoredHit] | IndexUnavailableError:
        """Nearest-neighbour search restricted to ``session_id``.

        Returns the hits ordered by descending score, or an
        ``IndexUnavailableError`` value when the similarity index cannot
        answer. Never raises for a missing index.
        """
        ...

    def scan_chunks(self, session_id: str, limit: int) -> list[dict[str, Any]]:
        """Return up to ``limit`` chunks of a session in chunk order."""
        ...

    def count_chunks(self, session_id: str) -> int:
        ...

    def delete_chunks(self, session_id: str) -> int:
        """Delete every chunk of a session and return how many were removed."""
        ...

    def insert_record(self, collection: str, document: dict[str, Any]) -> str:
        ...

    def load_record(self, collection: str, record_id: str) -> dict[str, Any] | None:
        ...

    def find_records(self, collection: str, field: str, value: Any) -> list[dict[str, Any]]:
        ...

    def update_record(self, collection: str, record_id: str, fields: dict[str, Any]) -> bool:
        """Set ``fields`` on a record. Returns False if it does not exist."""
        ...

    def append_transcript(
        self,
        session_id: str,
        messages: list[dict[str, Any]],
        status: str,
        updated_at: str,
    ) -> bool:
        """Atomically append messages to a session transcript.

        In the same update, ``status`` is applied unless the session is already
        completed. Returns False if the session does not exist.
        """
        ...

    def delete_record(self, collection: str, record_id: str) -> bool:
        ...

    def close(self) -> None:
        ...
