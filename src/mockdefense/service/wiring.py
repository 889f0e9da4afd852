"""Construction of the defense pipeline from its collaborators."""

import logging
from dataclasses import dataclass

from mockdefense.constants import get_embedding_dimensions
from mockdefense.llm import LLMService, get_llm_service
from mockdefense.service.conversation import ConversationEngine
from mockdefense.service.database.base import DataStore
from mockdefense.service.database.factory import get_data_store
from mockdefense.service.database.repositories import DocumentRepository, SessionRepository
from mockdefense.service.database.vector_store import VectorStore
from mockdefense.service.embeddings import EmbeddingClient
from mockdefense.service.lifecycle import SessionLifecycleManager

logger = logging.getLogger(__name__)


@dataclass
class DefenseServices:
    """Everything the web app and the CLI need, built once per process."""

    llm_service: LLMService
    data_store: DataStore
    sessions: SessionRepository
    documents: DocumentRepository
    embeddings: EmbeddingClient
    vector_store: VectorStore
    engine: ConversationEngine
    lifecycle: SessionLifecycleManager

    def close(self) -> None:
        self.data_store.close()


def build_services(
    llm_service: LLMService | None = None,
    data_store: DataStore | None = None,
    dimensions: int | None = None,
) -> DefenseServices:
    """Wire the pipeline.

    Args:
        llm_service: Provider for generation and embeddings (default: from env)
        data_store: Storage backend (default: from STORAGE_BACKEND)
        dimensions: Embedding width (default: EMBEDDING_DIMENSIONS or service default)

    Returns:
        DefenseServices: The wired components
    """
    if llm_service is None:
        llm_service = get_llm_service()
    if dimensions is None:
        dimensions = get_embedding_dimensions()
    if data_store is None:
        data_store = get_data_store(dimensions=dimensions)

    sessions = SessionRepository(data_store)
    documents = DocumentRepository(data_store)
    embeddings = EmbeddingClient(llm_service)
    vector_store = VectorStore(data_store, embeddings, dimensions=dimensions)

    logger.info("✅ Defense services initialized")
    return DefenseServices(
        llm_service=llm_service,
        data_store=data_store,
        sessions=sessions,
        documents=documents,
        embeddings=embeddings,
        vector_store=vector_store,
        engine=ConversationEngine(sessions, vector_store, llm_service),
        lifecycle=SessionLifecycleManager(documents, sessions, vector_store, embeddings),
    )
