"""Helper functions for CLI commands."""

import click

from mockdefense.constants import CONTENT_PREVIEW_LENGTH
from mockdefense.service.database import (
    RavenDBConfig,
    count_documents,
    create_database,
    database_exists,
    get_storage_backend,
)
from mockdefense.service.database.models import DefenseSession, RetrievalResult


def ensure_database_exists(create_if_missing: bool = False) -> bool:
    """Check if the RavenDB database exists, optionally create it.

    Does nothing for the in-memory backend.

    Args:
        create_if_missing: If True, attempt to create the database

    Returns:
        True if database exists (or was created)

    Raises:
        click.Abort: If database doesn't exist and can't be created
    """
    if get_storage_backend() != "ravendb":
        return True

    if database_exists():
        return True

    if create_if_missing:
        click.echo("Database does not exist. Creating database...")
        try:
            create_database()
            click.echo("✓ Database created successfully!")
            return True
        except Exception as e:
            click.echo(f"✗ Failed to create database: {e}", err=True)
            click.echo("\nPlease ensure RavenDB is running and accessible.", err=True)
            raise click.Abort()

    click.echo("✗ Error: Database does not exist!", err=True)
    click.echo("\nPlease create the database first using:", err=True)
    click.echo("  mockdefense-setup-db --create-database", err=True)
    raise click.Abort()


def format_search_result(
    index: int, result: RetrievalResult, max_length: int = CONTENT_PREVIEW_LENGTH
) -> str:
    """Format a retrieval hit for display.

    Args:
        index: Result number (1-based)
        result: The hit
        max_length: Maximum content length before truncation

    Returns:
        Formatted string for display
    """
    content = result.content
    display_content = content[:max_length] + "..." if len(content) > max_length else content

    lines = [
        f"{index}. (score: {result.score:.4f})",
        f"   {display_content}",
        "",
    ]
    return "\n".join(lines)


def format_session_line(session: DefenseSession, stale: bool = False) -> str:
    """One-line summary of a session for listings."""
    marker = " ⚠️ stale" if stale else ""
    return (
        f"{session.id}  [{session.status.value}]{marker}  {session.title}  "
        f"({session.total_chunks} chunks, {len(session.transcript)} messages, "
        f"created {session.created_at:%Y-%m-%d %H:%M})"
    )


def get_database_info() -> tuple[str, str, int | None]:
    """Get database connection info and stored chunk count.

    Returns:
        Tuple of (url, database_name, chunk_count or None if unavailable)
    """
    url = RavenDBConfig.get_url()
    db_name = RavenDBConfig.get_database_name()

    try:
        chunk_count = count_documents()
    except Exception:
        chunk_count = None

    return url, db_name, chunk_count
