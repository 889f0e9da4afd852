"""Configuration for the storage layer."""

import os

from dotenv import load_dotenv

from mockdefense.constants import (
    DEFAULT_RAVENDB_DATABASE,
    DEFAULT_RAVENDB_URL,
    DEFAULT_STORAGE_BACKEND,
)

# Load environment variables
load_dotenv()


class RavenDBConfig:
    """Configuration class for RavenDB connection details."""

    @staticmethod
    def get_url() -> str:
        """Get the RavenDB server URL from environment variables.

        Returns:
            str: RavenDB server URL (default: http://localhost:8080)
        """
        return os.getenv("RAVENDB_URL", DEFAULT_RAVENDB_URL)

    @staticmethod
    def get_database_name() -> str:
        """Get the RavenDB database name from environment variables.

        Returns:
            str: Database name (default: mockdefense)
        """
        return os.getenv("RAVENDB_DATABASE", DEFAULT_RAVENDB_DATABASE)


def get_storage_backend() -> str:
    """Get the storage backend name ("ravendb" or "memory") from STORAGE_BACKEND."""
    return os.getenv("STORAGE_BACKEND", DEFAULT_STORAGE_BACKEND).lower()
