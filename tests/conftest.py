"""Pytest configuration and shared fixtures for the test suite."""

import re
import zlib
from collections.abc import Callable

import pytest
import requests

from mockdefense.errors import ConfigurationError
from mockdefense.service.conversation import ConversationEngine
from mockdefense.service.database.memory_store import InMemoryDataStore
from mockdefense.service.database.models import ChunkScope, SessionStatus
from mockdefense.service.database.repositories import DocumentRepository, SessionRepository
from mockdefense.service.database.vector_store import VectorStore
from mockdefense.service.embeddings import EmbeddingClient
from mockdefense.service.lifecycle import SessionLifecycleManager
from mockdefense.service.wiring import DefenseServices

EMBEDDING_DIMENSIONS = 64
WORD = re.compile(r"\w+")


def embed_words(text: str, dimensions: int = EMBEDDING_DIMENSIONS) -> list[float]:
    """Deterministic bag-of-words vector: texts sharing words point the same way."""
    vector = [0.0] * dimensions
    for word in WORD.findall(text.lower()):
        vector[zlib.crc32(word.encode()) % dimensions] += 1.0
    return vector


class FakeLLMService:
    """In-process LLMService double with scripted replies and word embeddings."""

    def __init__(self, replies: list[str] | None = None, configured: bool = True) -> None:
        self.replies = list(replies or ["Explain further: what evidence supports your claim?"])
        self.configured = configured
        self.prompts: list[str] = []
        self.embedded: list[str] = []

    def ensure_configured(self) -> None:
        if not self.configured:
            raise ConfigurationError("Fake provider not configured")

    async def generate_response(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if len(self.replies) > 1:
            return self.replies.pop(0)
        return self.replies[0]

    async def generate_embedding(self, text: str) -> list[float]:
        self.embedded.append(text)
        return embed_words(text)


class FakeExtractor:
    """TextExtractor double returning fixed text, or raising."""

    def __init__(self, text: str = "", error: Exception | None = None) -> None:
        self.text = text
        self.error = error

    async def extract(self, source) -> str:
        if self.error is not None:
            raise self.error
        return self.text


# Service availability checks
def ollama_available() -> bool:
    """Check if Ollama server is running and accessible."""
    try:
        response = requests.get("http://localhost:11434/api/tags", timeout=2)
        return response.status_code == 200
    except requests.RequestException:
        return False


def ravendb_available() -> bool:
    """Check if RavenDB server is running and accessible."""
    try:
        response = requests.get("http://localhost:8080/databases", timeout=2)
        return response.status_code in (200, 401)  # Auth required is OK
    except requests.RequestException:
        return False


THESIS_TEXT = (
    "This thesis studies solar panel efficiency in desert climates. "
    "Dust accumulation reduces output significantly.\n\n"
    "The methodology relies on field measurements collected over two years "
    "at three desert sites with identical panels.\n\n"
    "Results show that weekly cleaning restores most of the lost efficiency, "
    "while coatings help only marginally."
)


@pytest.fixture
def thesis_text() -> str:
    return THESIS_TEXT


@pytest.fixture
def fake_llm() -> FakeLLMService:
    return FakeLLMService()


@pytest.fixture
def data_store() -> InMemoryDataStore:
    return InMemoryDataStore()


@pytest.fixture
def embeddings(fake_llm) -> EmbeddingClient:
    return EmbeddingClient(fake_llm, batch_delay=0)


@pytest.fixture
def vector_store(data_store, embeddings) -> VectorStore:
    return VectorStore(data_store, embeddings, dimensions=EMBEDDING_DIMENSIONS)


@pytest.fixture
def sessions(data_store) -> SessionRepository:
    return SessionRepository(data_store)


@pytest.fixture
def documents(data_store) -> DocumentRepository:
    return DocumentRepository(data_store)


@pytest.fixture
def engine(sessions, vector_store, fake_llm) -> ConversationEngine:
    return ConversationEngine(sessions, vector_store, fake_llm)


@pytest.fixture
def make_lifecycle(documents, sessions, vector_store, embeddings) -> Callable:
    """Factory for a SessionLifecycleManager around a given extractor."""

    def _make(extractor=None, chunk_size: int = 200, chunk_overlap: int = 20):
        return SessionLifecycleManager(
            documents,
            sessions,
            vector_store,
            embeddings,
            extractor=extractor,
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
        )

    return _make


@pytest.fixture
def defense_services(
    fake_llm, data_store, sessions, documents, embeddings, vector_store, engine, thesis_text
) -> DefenseServices:
    """Fully wired in-memory pipeline whose extractor returns the sample thesis."""
    lifecycle = SessionLifecycleManager(
        documents,
        sessions,
        vector_store,
        embeddings,
        extractor=FakeExtractor(thesis_text),
        chunk_size=200,
        chunk_overlap=20,
    )
    return DefenseServices(
        llm_service=fake_llm,
        data_store=data_store,
        sessions=sessions,
        documents=documents,
        embeddings=embeddings,
        vector_store=vector_store,
        engine=engine,
        lifecycle=lifecycle,
    )


@pytest.fixture
def make_session(sessions, vector_store) -> Callable:
    """Factory creating a session with stored chunks in the given status."""

    async def _make(
        texts: list[str] | None = None,
        owner_id: str = "owner-1",
        status: SessionStatus = SessionStatus.READY,
    ):
        session = await sessions.create(owner_id, "doc-1", "Thesis")
        texts = texts or []
        if texts:
            vectors = [embed_words(text) for text in texts]
            scope = ChunkScope(document_id="doc-1", owner_id=owner_id, session_id=session.id)
            await vector_store.store(texts, vectors, scope)
        if status is not SessionStatus.PREPARING:
            session = await sessions.set_status(session.id, status, len(texts))
        return session

    return _make
