"""Data models for defense sessions, documents and chunks.

Every persisted model converts to and from a plain JSON document
(``to_document`` / ``from_document``) so the storage backends only ever
handle dicts. Timestamps are stored as ISO-8601 UTC strings.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from mockdefense.service.database.utils import new_id, parse_timestamp, utc_now


class SessionStatus(str, Enum):
    """Lifecycle of a defense session. Transitions only move forward."""

    PREPARING = "preparing"
    READY = "ready"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    @property
    def rank(self) -> int:
        return _STATUS_ORDER.index(self)

    def can_transition_to(self, target: "SessionStatus") -> bool:
        """Forward-only; ``in_progress`` may be re-entered on every turn."""
        if target is self:
            return self in (SessionStatus.IN_PROGRESS, SessionStatus.COMPLETED)
        return target.rank > self.rank


_STATUS_ORDER = [
    SessionStatus.PREPARING,
    SessionStatus.READY,
    SessionStatus.IN_PROGRESS,
    SessionStatus.COMPLETED,
]


class DocumentStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ConversationMessage:
    """One transcript entry. Transcripts are append-only."""

    role: MessageRole
    content: str
    timestamp: datetime = field(default_factory=utc_now)

    def to_document(self) -> dict[str, Any]:
        return {
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> "ConversationMessage":
        return cls(
            role=MessageRole(data["role"]),
            content=data.get("content", ""),
            timestamp=parse_timestamp(data.get("timestamp")),
        )


@dataclass(frozen=True)
class ChunkScope:
    """Ownership of a batch of chunks being stored."""

    document_id: str
    owner_id: str
    session_id: str


@dataclass(frozen=True)
class ChunkRecord:
    """An embedded chunk of a document. Immutable once stored.

    Attributes:
        id: Storage identifier
        document_id: Source document
        session_id: Defense session the chunk is scoped to
        owner_id: Owning user
        content: Chunk text (overlap prefix included)
        chunk_index: Position of the chunk in its document
        vector: Embedding of ``content``
        span_start: Start offset of the chunk body in the source text
        span_end: End offset of the chunk body in the source text
        created_at: Creation time
    """

    document_id: str
    session_id: str
    owner_id: str
    content: str
    chunk_index: int
    vector: list[float]
    span_start: int = 0
    span_end: int = 0
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utc_now)

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "document_id": self.document_id,
            "session_id": self.session_id,
            "owner_id": self.owner_id,
            "content": self.content,
            "chunk_index": self.chunk_index,
            "embedding": list(self.vector),
            "span_start": self.span_start,
            "span_end": self.span_end,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> "ChunkRecord":
        return cls(
            id=data["id"],
            document_id=data.get("document_id", ""),
            session_id=data.get("session_id", ""),
            owner_id=data.get("owner_id", ""),
            content=data.get("content", ""),
            chunk_index=int(data.get("chunk_index", 0)),
            vector=list(data.get("embedding") or []),
            span_start=int(data.get("span_start", 0)),
            span_end=int(data.get("span_end", 0)),
            created_at=parse_timestamp(data.get("created_at")),
        )


@dataclass(frozen=True)
class RetrievalResult:
    """A single similarity hit. Transient, never persisted."""

    content: str
    score: float

    @classmethod
    def from_hit(cls, content: Any, score: Any) -> "RetrievalResult":
        """Validate a raw backend hit.

        Raises:
            ValueError: If the content is not a string or the score is not numeric
        """
        if not isinstance(content, str):
            raise ValueError(f"Retrieval hit content must be a string, got {type(content).__name__}")
        try:
            value = float(score)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Retrieval hit score must be numeric, got {score!r}") from e
        return cls(content=content, score=value)

    def to_dict(self) -> dict[str, Any]:
        return {"content": self.content, "score": self.score}


@dataclass
class DefenseSession:
    """A mock defense practice run over one uploaded document."""

    owner_id: str
    document_id: str
    title: str
    status: SessionStatus = SessionStatus.PREPARING
    total_chunks: int = 0
    transcript: list[ConversationMessage] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def is_stale(self, now: datetime, sla: timedelta) -> bool:
        """True when the session has been preparing for longer than ``sla``."""
        return self.status is SessionStatus.PREPARING and now - self.created_at > sla

    def with_status(self, status: SessionStatus, total_chunks: int | None = None) -> "DefenseSession":
        changes: dict[str, Any] = {"status": status, "updated_at": utc_now()}
        if total_chunks is not None:
            changes["total_chunks"] = total_chunks
        return replace(self, **changes)

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "document_id": self.document_id,
            "title": self.title,
            "status": self.status.value,
            "total_chunks": self.total_chunks,
            "transcript": [message.to_document() for message in self.transcript],
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> "DefenseSession":
        return cls(
            id=data["id"],
            owner_id=data.get("owner_id", ""),
            document_id=data.get("document_id", ""),
            title=data.get("title", ""),
            status=SessionStatus(data.get("status", SessionStatus.PREPARING.value)),
            total_chunks=int(data.get("total_chunks", 0)),
            transcript=[
                ConversationMessage.from_document(message)
                for message in data.get("transcript") or []
            ],
            created_at=parse_timestamp(data.get("created_at")),
            updated_at=parse_timestamp(data.get("updated_at")),
        )


@dataclass
class DocumentRecord:
    """An uploaded source document and the state of its processing."""

    owner_id: str
    filename: str
    original_name: str
    mime_type: str = "application/pdf"
    size: int = 0
    status: DocumentStatus = DocumentStatus.PROCESSING
    error_message: str | None = None
    extracted_text: str | None = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "filename": self.filename,
            "original_name": self.original_name,
            "mime_type": self.mime_type,
            "size": self.size,
            "status": self.status.value,
            "error_message": self.error_message,
            "extracted_text": self.extracted_text,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> "DocumentRecord":
        return cls(
            id=data["id"],
            owner_id=data.get("owner_id", ""),
            filename=data.get("filename", ""),
            original_name=data.get("original_name", ""),
            mime_type=data.get("mime_type", "application/pdf"),
            size=int(data.get("size", 0)),
            status=DocumentStatus(data.get("status", DocumentStatus.PROCESSING.value)),
            error_message=data.get("error_message"),
            extracted_text=data.get("extracted_text"),
            created_at=parse_timestamp(data.get("created_at")),
            updated_at=parse_timestamp(data.get("updated_at")),
        )
