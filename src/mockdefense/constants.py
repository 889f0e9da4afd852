"""Application-wide constants and defaults for mockdefense.

This module provides a single source of truth for configuration defaults,
magic numbers, and other constants used throughout the application.
"""

import os

# =============================================================================
# File Upload Limits
# =============================================================================
MAX_UPLOAD_SIZE_BYTES = 20 * 1024 * 1024  # 20MB, thesis PDFs

# =============================================================================
# Chunking Settings
# =============================================================================
DEFAULT_CHUNK_SIZE = 1000  # Maximum characters per chunk (before overlap)
DEFAULT_CHUNK_OVERLAP = 100  # Trailing characters carried into the next chunk

# =============================================================================
# Embedding Settings
# =============================================================================
EMBEDDING_BATCH_SIZE = 5  # Concurrent requests per batch
EMBEDDING_BATCH_DELAY_SECONDS = 0.1  # Pause between batches (rate limit)

# =============================================================================
# Retrieval Settings
# =============================================================================
DEFAULT_TOP_K = 5  # Excerpts retrieved per chat turn
OPENING_TOP_K = 3  # Excerpts retrieved for the opening question
CANDIDATE_MULTIPLIER = 10  # Candidate pool = top_k * multiplier
FALLBACK_SCORE = 0.5  # Score reported when the vector index is unavailable
OPENING_QUERY = "main topic thesis introduction purpose"

# =============================================================================
# Conversation Settings
# =============================================================================
HISTORY_WINDOW = 6  # Most recent transcript messages included in a prompt
PREPARATION_SLA_SECONDS = 15 * 60  # A session preparing longer than this is stale

# =============================================================================
# Display Settings
# =============================================================================
CONTENT_PREVIEW_LENGTH = 200  # Characters to show in content previews

# =============================================================================
# Default URLs and Hosts
# =============================================================================
DEFAULT_OLLAMA_HOST = "http://localhost:11434"
DEFAULT_RAVENDB_URL = "http://localhost:8080"
DEFAULT_RAVENDB_DATABASE = "mockdefense"
DEFAULT_STORAGE_BACKEND = "ravendb"

# =============================================================================
# Collections and Indexes
# =============================================================================
CHUNKS_COLLECTION = "DefenseChunks"
SESSIONS_COLLECTION = "DefenseSessions"
DOCUMENTS_COLLECTION = "Documents"
CHUNK_VECTOR_INDEX = "DefenseChunks/ByEmbedding"

# =============================================================================
# LLM Model Defaults
# =============================================================================
GENERATION_DEFAULTS = {
    "ollama": "llama3",
    "gemini": "gemini-2.5-flash",
}

EMBEDDING_DEFAULTS = {
    "ollama": "nomic-embed-text",
    "gemini": "gemini-embedding-001",
}

# Vector width per service (defines the RavenDB vector index dimensions)
EMBEDDING_DIMENSION_DEFAULTS = {
    "ollama": 768,
    "gemini": 3072,
}


def get_llm_service_name() -> str:
    """Get the configured LLM service name (LLM_SERVICE, default "gemini")."""
    return os.getenv("LLM_SERVICE", "gemini")


def get_embedding_model(service: str | None = None) -> str:
    """Get the default embedding model for a given LLM service.

    Checks the EMBEDDING_MODEL environment variable first, then falls back
    to service-specific defaults.

    Args:
        service: The LLM service name ("ollama" or "gemini").
                If None, uses LLM_SERVICE env var or defaults to "gemini".

    Returns:
        str: The embedding model name to use.
    """
    env_model = os.getenv("EMBEDDING_MODEL")
    if env_model:
        return env_model

    if service is None:
        service = get_llm_service_name()

    return EMBEDDING_DEFAULTS.get(service, EMBEDDING_DEFAULTS["gemini"])


def get_embedding_dimensions(service: str | None = None) -> int:
    """Get the embedding vector width.

    EMBEDDING_DIMENSIONS overrides the service default. The value is opaque to
    the storage layer: it only fixes the width of stored vectors.
    """
    env_dimensions = os.getenv("EMBEDDING_DIMENSIONS")
    if env_dimensions:
        return int(env_dimensions)

    if service is None:
        service = get_llm_service_name()

    return EMBEDDING_DIMENSION_DEFAULTS.get(service, EMBEDDING_DIMENSION_DEFAULTS["gemini"])
