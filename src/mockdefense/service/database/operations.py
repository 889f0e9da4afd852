"""RavenDB administration: connection, vector index provisioning, database lifecycle."""

import logging

import requests
from ravendb import DocumentStore
from ravendb.documents.indexes.definitions import (
    FieldIndexing,
    FieldStorage,
    IndexDefinition,
    IndexFieldOptions,
)
from ravendb.documents.indexes.vector.options import VectorOptions
from ravendb.documents.operations.indexes import GetIndexNamesOperation, PutIndexesOperation
from ravendb.serverwide.operations.common import DeleteDatabaseOperation

from mockdefense.constants import CHUNK_VECTOR_INDEX, CHUNKS_COLLECTION, get_embedding_dimensions
from mockdefense.service.database.config import RavenDBConfig

logger = logging.getLogger(__name__)


def create_document_store(url: str | None = None, database: str | None = None) -> DocumentStore:
    """Create and initialize a DocumentStore instance.

    Args:
        url: RavenDB server URL (defaults to value from RavenDBConfig.get_url())
        database: Database name (defaults to value from RavenDBConfig.get_database_name())

    Returns:
        DocumentStore: Initialized DocumentStore instance
    """
    if url is None:
        url = RavenDBConfig.get_url()
    if database is None:
        database = RavenDBConfig.get_database_name()

    store = DocumentStore([url], database)
    store.initialize()
    return store


def index_exists(store: DocumentStore, index_name: str = CHUNK_VECTOR_INDEX) -> bool:
    """Check whether a static index has been deployed."""
    existing_indexes = store.maintenance.send(GetIndexNamesOperation(0, 100))
    return index_name in (existing_indexes or [])


def ensure_index_exists(store: DocumentStore, dimensions: int | None = None) -> bool:
    """Ensure the chunk vector index exists in RavenDB.

    Creates a static index named 'DefenseChunks/ByEmbedding' exposing
    ``session_id`` for filtering and ``embedding`` as a vector field.

    Args:
        store: Initialized DocumentStore instance
        dimensions: Vector width (defaults to EMBEDDING_DIMENSIONS or the
            service default)

    Returns:
        bool: True if the index was created, False if it already existed
    """
    if index_exists(store, CHUNK_VECTOR_INDEX):
        return False

    index_definition = IndexDefinition()
    index_definition.name = CHUNK_VECTOR_INDEX

    index_definition.maps = {
        f"""from chunk in docs.{CHUNKS_COLLECTION}
        where chunk.embedding != null
        select new {{
            session_id = chunk.session_id,
            document_id = chunk.document_id,
            chunk_index = chunk.chunk_index,
            content = chunk.content,
            embedding = CreateField("embedding", chunk.embedding, new CreateFieldOptions {{ Storage = FieldStorage.Yes, Indexing = FieldIndexing.No }})
        }}"""
    }

    vector_options = VectorOptions(dimensions=dimensions or get_embedding_dimensions())

    index_definition.fields = {
        "embedding": IndexFieldOptions(
            storage=FieldStorage.YES, indexing=FieldIndexing.NO, vector=vector_options
        )
    }

    store.maintenance.send(PutIndexesOperation(index_definition))
    logger.info(f"🗂️  Created vector index {CHUNK_VECTOR_INDEX}")
    return True


def database_exists(url: str | None = None, database: str | None = None) -> bool:
    """Check if a database exists in RavenDB.

    Args:
        url: RavenDB server URL (defaults to value from RavenDBConfig.get_url())
        database: Database name (defaults to value from RavenDBConfig.get_database_name())

    Returns:
        bool: True if database exists, False otherwise
    """
    if url is None:
        url = RavenDBConfig.get_url()
    if database is None:
        database = RavenDBConfig.get_database_name()

    try:
        store = DocumentStore([url], database)
        store.initialize()
        with store.open_session() as session:
            list(session.query().take(0))
        store.close()
        return True
    except Exception:
        return False


def create_database(url: str | None = None, database: str | None = None) -> None:
    """Create a new database in RavenDB.

    Args:
        url: RavenDB server URL (defaults to value from RavenDBConfig.get_url())
        database: Database name (defaults to value from RavenDBConfig.get_database_name())
    """
    if url is None:
        url = RavenDBConfig.get_url()
    if database is None:
        database = RavenDBConfig.get_database_name()

    api_url = f"{url}/admin/databases"
    payload = {"DatabaseName": database, "Settings": {}, "Disabled": False}

    response = requests.put(api_url, json=payload, timeout=30)
    response.raise_for_status()


def delete_database(url: str | None = None, database: str | None = None) -> None:
    """Delete a database from RavenDB.

    WARNING: This operation is irreversible and will delete all data in the database.

    Args:
        url: RavenDB server URL (defaults to value from RavenDBConfig.get_url())
        database: Database name (defaults to value from RavenDBConfig.get_database_name())
    """
    if url is None:
        url = RavenDBConfig.get_url()
    if database is None:
        database = RavenDBConfig.get_database_name()

    store = DocumentStore([url], database)
    try:
        store.initialize()
        operation = DeleteDatabaseOperation(database_name=database, hard_delete=True)
        store.maintenance.server.send(operation)
    finally:
        store.close()


def count_documents(
    collection: str = CHUNKS_COLLECTION,
    url: str | None = None,
    database: str | None = None,
) -> int:
    """Count the documents of a collection.

    Args:
        collection: Collection name (default: DefenseChunks)
        url: RavenDB server URL (defaults to value from RavenDBConfig.get_url())
        database: Database name (defaults to value from RavenDBConfig.get_database_name())

    Returns:
        int: Number of documents in the collection
    """
    store = create_document_store(url, database)

    try:
        with store.open_session() as session:
            results = list(session.advanced.raw_query(f"from {collection}", object_type=dict))
            return len(results)
    finally:
        store.close()
