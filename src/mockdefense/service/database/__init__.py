"""Persistence for defense sessions, documents and chunk embeddings.

This package provides:
- Configuration management (RavenDBConfig, get_storage_backend)
- Storage backends (RavenDataStore, InMemoryDataStore) behind the DataStore protocol
- RavenDB administration (database and vector index provisioning)
- Repositories for sessions and documents
- The session-scoped VectorStore

Usage:
    from mockdefense.service.database import (
        SessionRepository,
        VectorStore,
        get_data_store,
    )
"""

# Re-export public API
from mockdefense.service.database.base import DataStore
from mockdefense.service.database.config import RavenDBConfig, get_storage_backend
from mockdefense.service.database.factory import get_data_store
from mockdefense.service.database.memory_store import InMemoryDataStore
from mockdefense.service.database.operations import (
    count_documents,
    create_database,
    create_document_store,
    database_exists,
    delete_database,
    ensure_index_exists,
)
from mockdefense.service.database.ravendb_store import RavenDataStore
from mockdefense.service.database.repositories import DocumentRepository, SessionRepository
from mockdefense.service.database.utils import cosine_similarity
from mockdefense.service.database.vector_store import VectorStore

__all__ = [
    # Config
    "RavenDBConfig",
    "get_storage_backend",
    # Backends
    "DataStore",
    "InMemoryDataStore",
    "RavenDataStore",
    "get_data_store",
    # Operations
    "create_document_store",
    "ensure_index_exists",
    "database_exists",
    "create_database",
    "delete_database",
    "count_documents",
    # Repositories
    "SessionRepository",
    "DocumentRepository",
    "VectorStore",
    # Utils
    "cosine_similarity",
]
