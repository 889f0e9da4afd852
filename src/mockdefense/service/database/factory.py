"""Storage backend selection.

Depends on the STORAGE_BACKEND environment variable:
- "ravendb" (default): RavenDB with a static vector index
- "memory": process-local store for development and tests
"""

import logging

from mockdefense.service.database.base import DataStore
from mockdefense.service.database.config import RavenDBConfig, get_storage_backend
from mockdefense.service.database.memory_store import InMemoryDataStore
from mockdefense.service.database.ravendb_store import RavenDataStore

logger = logging.getLogger(__name__)


def get_data_store(backend: str | None = None, dimensions: int | None = None) -> DataStore:
    """Create the configured storage backend.

    Args:
        backend: "ravendb" or "memory" (default: STORAGE_BACKEND env)
        dimensions: Vector width for the RavenDB vector index

    Returns:
        DataStore: Configured backend instance

    Raises:
        ValueError: If the backend name is unknown
    """
    backend = (backend or get_storage_backend()).lower()

    if backend == "memory":
        logger.info("💾 Using in-memory data store (development mode)")
        return InMemoryDataStore()

    if backend == "ravendb":
        url = RavenDBConfig.get_url()
        database = RavenDBConfig.get_database_name()
        logger.info(f"💾 Connecting to RavenDB at {url} (database: {database})")
        return RavenDataStore.connect(url, database, dimensions=dimensions)

    raise ValueError(f"Invalid STORAGE_BACKEND: {backend}. Must be 'ravendb' or 'memory'.")
