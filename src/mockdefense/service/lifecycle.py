"""Session lifecycle: preparing a defense from an upload and tearing it down."""

import logging

from mockdefense.constants import DEFAULT_CHUNK_OVERLAP, DEFAULT_CHUNK_SIZE
from mockdefense.service.chunker import split_into_chunks
from mockdefense.service.database.models import (
    ChunkScope,
    DefenseSession,
    DocumentRecord,
    SessionStatus,
)
from mockdefense.service.database.repositories import DocumentRepository, SessionRepository
from mockdefense.service.database.vector_store import VectorStore
from mockdefense.service.embeddings import EmbeddingClient
from mockdefense.service.extraction import TextExtractor, UploadedFile, get_extractor_for_upload

logger = logging.getLogger(__name__)


class SessionLifecycleManager:
    """Creates, prepares and deletes defense sessions.

    Preparation runs in order: document record (processing), session
    (preparing), text extraction, chunking, embedding, vector storage, then
    the document is completed and, last, the session becomes ready. If
    anything after the records exist fails, the document is marked failed
    with the error and the session stays preparing; it is then reported as
    stale once it exceeds the preparation SLA and can be deleted.

    Without an explicit ``extractor``, one is picked per upload from its MIME
    type, or from its file name when the type is generic.
    """

    def __init__(
        self,
        documents: DocumentRepository,
        sessions: SessionRepository,
        vector_store: VectorStore,
        embeddings: EmbeddingClient,
        extractor: TextExtractor | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
    ) -> None:
        self.documents = documents
        self.sessions = sessions
        self.vector_store = vector_store
        self.embeddings = embeddings
        self.extractor = extractor
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    async def start_preparation(
        self,
        upload: UploadedFile,
        owner_id: str,
        title: str | None = None,
    ) -> tuple[DocumentRecord, DefenseSession]:
        """Persist the document and a preparing session for it.

        Args:
            upload: The stored upload
            owner_id: Owning user
            title: Session title (default: original file name without extension)

        Returns:
            tuple: (DocumentRecord, DefenseSession)
        """
        document = await self.documents.create(owner_id, upload)
        session = await self.sessions.create(owner_id, document.id, title or upload.stem)
        logger.info(f"📥 Preparing session {session.id} from {upload.original_name}")
        return document, session

    async def ingest(
        self,
        document: DocumentRecord,
        session: DefenseSession,
        upload: UploadedFile,
    ) -> DefenseSession:
        """Extract, chunk, embed and store the document of a preparing session.

        Never raises for a processing failure: the error is recorded on the
        document and the unchanged preparing session is returned.

        Returns:
            DefenseSession: Ready on success, still preparing on failure
        """
        try:
            extractor = self.extractor or get_extractor_for_upload(upload)
            text = await extractor.extract(upload.path)
            chunks = split_into_chunks(text, self.chunk_size, self.chunk_overlap)
            if not chunks:
                raise ValueError("No extractable text found in document")
            logger.info(f"✂️  Split {upload.original_name} into {len(chunks)} chunks")

            vectors = await self.embeddings.embed_many([chunk.content for chunk in chunks])
            scope = ChunkScope(
                document_id=document.id, owner_id=session.owner_id, session_id=session.id
            )
            await self.vector_store.store(chunks, vectors, scope)

            await self.documents.mark_completed(document.id, text)
            ready = await self.sessions.set_status(session.id, SessionStatus.READY, len(chunks))
        except Exception as e:
            logger.error(f"❌ Preparation failed for session {session.id}: {e}", exc_info=True)
            await self._record_failure(document, e)
            return session

        logger.info(f"✅ Session {session.id} ready with {ready.total_chunks} chunks")
        return ready

    async def _record_failure(self, document: DocumentRecord, error: Exception) -> None:
        try:
            await self.documents.mark_failed(document.id, str(error))
        except Exception as e:
            logger.error(
                f"❌ Could not record failure on document {document.id}: {e}", exc_info=True
            )

    async def prepare(
        self,
        upload: UploadedFile,
        owner_id: str,
        title: str | None = None,
    ) -> DefenseSession:
        """Run the whole preparation and return the resulting session."""
        document, session = await self.start_preparation(upload, owner_id, title)
        return await self.ingest(document, session, upload)

    async def get_session(self, session_id: str, owner_id: str | None = None) -> DefenseSession:
        return await self.sessions.get_owned(session_id, owner_id)

    async def list_sessions(self, owner_id: str) -> list[DefenseSession]:
        return await self.sessions.list_for_owner(owner_id)

    async def teardown(self, session_id: str, owner_id: str | None = None) -> int:
        """Delete a session's chunks, then the session itself.

        Chunks are removed before the session row; a session left behind by
        an interrupted teardown can be deleted again.

        Raises:
            NotFoundError: If the session does not exist or is not owned by the caller

        Returns:
            int: Number of chunks deleted
        """
        await self.sessions.get_owned(session_id, owner_id)
        deleted = await self.vector_store.delete_by_session(session_id)
        await self.sessions.delete(session_id)
        logger.info(f"🗑️  Session {session_id} deleted ({deleted} chunks)")
        return deleted
