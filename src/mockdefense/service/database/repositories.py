"""Async repositories for defense sessions and uploaded documents."""

import asyncio
import logging

from mockdefense.constants import DOCUMENTS_COLLECTION, SESSIONS_COLLECTION
from mockdefense.errors import NotFoundError
from mockdefense.service.database.base import DataStore
from mockdefense.service.database.models import (
    ConversationMessage,
    DefenseSession,
    DocumentRecord,
    DocumentStatus,
    SessionStatus,
)
from mockdefense.service.database.utils import utc_now
from mockdefense.service.extraction import UploadedFile

logger = logging.getLogger(__name__)


class SessionRepository:
    """Persistence for DefenseSession records."""

    def __init__(self, data_store: DataStore) -> None:
        self.data_store = data_store

    async def create(self, owner_id: str, document_id: str, title: str) -> DefenseSession:
        session = DefenseSession(owner_id=owner_id, document_id=document_id, title=title)
        await asyncio.to_thread(
            self.data_store.insert_record, SESSIONS_COLLECTION, session.to_document()
        )
        logger.info(f"📝 Created session {session.id} for owner {owner_id}")
        return session

    async def get(self, session_id: str) -> DefenseSession | None:
        document = await asyncio.to_thread(
            self.data_store.load_record, SESSIONS_COLLECTION, session_id
        )
        if document is None:
            return None
        return DefenseSession.from_document(document)

    async def get_owned(self, session_id: str, owner_id: str | None) -> DefenseSession:
        """Load a session and check who owns it.

        Args:
            session_id: Session to load
            owner_id: Expected owner; None skips the check (internal callers)

        Raises:
            NotFoundError: If the session does not exist or belongs to someone else
        """
        session = await self.get(session_id)
        if session is None or (owner_id is not None and session.owner_id != owner_id):
            raise NotFoundError(f"Session {session_id} not found")
        return session

    async def list_for_owner(self, owner_id: str) -> list[DefenseSession]:
        """All sessions of an owner, newest first."""
        documents = await asyncio.to_thread(
            self.data_store.find_records, SESSIONS_COLLECTION, "owner_id", owner_id
        )
        sessions = [DefenseSession.from_document(document) for document in documents]
        sessions.sort(key=lambda session: session.created_at, reverse=True)
        return sessions

    async def set_status(
        self,
        session_id: str,
        status: SessionStatus,
        total_chunks: int | None = None,
    ) -> DefenseSession:
        """Move a session forward in its lifecycle.

        Raises:
            NotFoundError: If the session does not exist
            ValueError: If the transition would move the status backwards
        """
        session = await self.get_owned(session_id, None)
        if session.status is not status and not session.status.can_transition_to(status):
            raise ValueError(
                f"Cannot move session {session_id} from {session.status.value} to {status.value}"
            )

        updated = session.with_status(status, total_chunks)
        fields = {"status": status.value, "updated_at": updated.updated_at.isoformat()}
        if total_chunks is not None:
            fields["total_chunks"] = total_chunks

        found = await asyncio.to_thread(
            self.data_store.update_record, SESSIONS_COLLECTION, session_id, fields
        )
        if not found:
            raise NotFoundError(f"Session {session_id} not found")
        return updated

    async def append_messages(
        self, session_id: str, messages: list[ConversationMessage]
    ) -> None:
        """Atomically append messages and mark the session in progress.

        Both messages of a turn go through one storage update, so a reader
        never observes half a turn. A completed session keeps its status.

        Raises:
            NotFoundError: If the session does not exist
        """
        found = await asyncio.to_thread(
            self.data_store.append_transcript,
            session_id,
            [message.to_document() for message in messages],
            SessionStatus.IN_PROGRESS.value,
            utc_now().isoformat(),
        )
        if not found:
            raise NotFoundError(f"Session {session_id} not found")

    async def delete(self, session_id: str) -> bool:
        return await asyncio.to_thread(
            self.data_store.delete_record, SESSIONS_COLLECTION, session_id
        )


class DocumentRepository:
    """Persistence for uploaded DocumentRecords."""

    def __init__(self, data_store: DataStore) -> None:
        self.data_store = data_store

    async def create(self, owner_id: str, upload: UploadedFile) -> DocumentRecord:
        document = DocumentRecord(
            owner_id=owner_id,
            filename=upload.filename,
            original_name=upload.original_name,
            mime_type=upload.mime_type,
            size=upload.size,
        )
        await asyncio.to_thread(
            self.data_store.insert_record, DOCUMENTS_COLLECTION, document.to_document()
        )
        return document

    async def get(self, document_id: str) -> DocumentRecord | None:
        data = await asyncio.to_thread(
            self.data_store.load_record, DOCUMENTS_COLLECTION, document_id
        )
        return DocumentRecord.from_document(data) if data is not None else None

    async def _update(self, document_id: str, fields: dict) -> None:
        fields["updated_at"] = utc_now().isoformat()
        found = await asyncio.to_thread(
            self.data_store.update_record, DOCUMENTS_COLLECTION, document_id, fields
        )
        if not found:
            raise NotFoundError(f"Document {document_id} not found")

    async def mark_completed(self, document_id: str, extracted_text: str) -> None:
        await self._update(
            document_id,
            {"status": DocumentStatus.COMPLETED.value, "extracted_text": extracted_text},
        )

    async def mark_failed(self, document_id: str, error_message: str) -> None:
        await self._update(
            document_id,
            {"status": DocumentStatus.FAILED.value, "error_message": error_message},
        )
