"""Command-line interface for mockdefense using Click."""

import asyncio
import mimetypes
from datetime import timedelta
from pathlib import Path

import click
from dotenv import load_dotenv

from mockdefense.client.cli_helpers import (
    ensure_database_exists,
    format_search_result,
    format_session_line,
    get_database_info,
)
from mockdefense.constants import DEFAULT_TOP_K, PREPARATION_SLA_SECONDS, get_embedding_dimensions
from mockdefense.errors import MockDefenseError
from mockdefense.service.database import (
    create_document_store,
    database_exists,
    delete_database,
    ensure_index_exists,
    get_storage_backend,
)
from mockdefense.service.database.models import DocumentStatus, SessionStatus
from mockdefense.service.database.utils import utc_now
from mockdefense.service.extraction import UploadedFile
from mockdefense.service.wiring import build_services

# Load environment variables
load_dotenv()

EXIT_WORDS = {"exit", "quit", ":q"}

owner_option = click.option(
    "--owner",
    envvar="MOCKDEFENSE_OWNER",
    required=True,
    help="Owner (user) id the sessions belong to (env: MOCKDEFENSE_OWNER)",
)


@click.command()
@click.option(
    "--create-database",
    "create_database_flag",
    is_flag=True,
    default=False,
    help="Create the RavenDB database if it doesn't exist",
)
@click.option(
    "--dimensions",
    type=int,
    default=None,
    help="Embedding width for the vector index (default: EMBEDDING_DIMENSIONS or service default)",
)
def setup_db(create_database_flag: bool, dimensions: int | None) -> None:
    """Ensure the RavenDB database and the chunk vector index exist.

    Example:
        mockdefense-setup-db --create-database
    """
    if get_storage_backend() != "ravendb":
        click.echo("Nothing to set up: the in-memory backend needs no database.")
        return

    ensure_database_exists(create_if_missing=create_database_flag)

    store = create_document_store()
    try:
        created = ensure_index_exists(store, dimensions or get_embedding_dimensions())
    except Exception as e:
        click.echo(f"✗ Error creating vector index: {e}", err=True)
        raise click.Abort()
    finally:
        store.close()

    if created:
        click.echo("✓ Vector index created.")
    else:
        click.echo("✓ Vector index already exists.")


@click.command()
@click.argument(
    "file",
    type=click.Path(exists=True, file_okay=True, dir_okay=False, path_type=Path),
)
@owner_option
@click.option("--title", type=str, default=None, help="Session title (default: file name)")
def prepare(file: Path, owner: str, title: str | None) -> None:
    """Prepare a defense session from FILE (PDF, TXT or MD).

    Example:
        mockdefense-prepare thesis.pdf --owner alice
    """
    ensure_database_exists()

    upload = UploadedFile(
        filename=file.name,
        original_name=file.name,
        path=file,
        mime_type=mimetypes.guess_type(file.name)[0] or "",
        size=file.stat().st_size,
    )

    click.echo(f"📄 Preparing defense from {file.name}...")
    services = build_services()
    try:
        session = asyncio.run(services.lifecycle.prepare(upload, owner, title))
        document = asyncio.run(services.documents.get(session.document_id))
    finally:
        services.close()

    if session.status is SessionStatus.READY:
        click.echo(f"✓ Session {session.id} is ready ({session.total_chunks} chunks).")
        return

    error = document.error_message if document and document.status is DocumentStatus.FAILED else None
    click.echo(f"✗ Preparation failed: {error or 'unknown error'}", err=True)
    click.echo(f"  Session {session.id} remains in 'preparing'. Delete it and retry.", err=True)
    raise click.Abort()


@click.command()
@owner_option
def sessions(owner: str) -> None:
    """List defense sessions of an owner, newest first.

    Example:
        mockdefense-sessions --owner alice
    """
    ensure_database_exists()

    services = build_services()
    try:
        owned = asyncio.run(services.lifecycle.list_sessions(owner))
    finally:
        services.close()

    if not owned:
        click.echo("No sessions found.")
        return

    now = utc_now()
    sla = timedelta(seconds=PREPARATION_SLA_SECONDS)
    click.echo(f"📚 {len(owned)} session(s):\n")
    for session in owned:
        click.echo(format_session_line(session, stale=session.is_stale(now, sla)))


@click.command()
@click.argument("session_id", type=str)
@click.argument("query", type=str)
@click.option("--top-k", type=int, default=DEFAULT_TOP_K, help="Number of results (default: 5)")
def search(session_id: str, query: str, top_k: int) -> None:
    """Search the chunks of SESSION_ID for QUERY.

    Example:
        mockdefense-search 3f2a... "research methodology" --top-k 3
    """
    ensure_database_exists()

    click.echo(f"🔍 Searching for: '{query}'")
    click.echo(f"   Returning top {top_k} results...\n")

    services = build_services()
    try:
        results = asyncio.run(services.vector_store.query_by_text(query, session_id, top_k))
    except (MockDefenseError, ValueError) as e:
        click.echo(f"✗ Error: {e}", err=True)
        raise click.Abort()
    finally:
        services.close()

    if not results:
        click.echo("No results found.")
        return

    click.echo(f"✅ Found {len(results)} result(s):\n")
    for i, result in enumerate(results, 1):
        click.echo(format_search_result(i, result))


@click.command()
@click.argument("session_id", type=str)
@owner_option
def chat(session_id: str, owner: str) -> None:
    """Hold a mock defense for SESSION_ID in the terminal.

    Type 'exit' or 'quit' to leave.

    Example:
        mockdefense-chat 3f2a... --owner alice
    """
    ensure_database_exists()

    services = build_services()
    try:
        session = asyncio.run(services.lifecycle.get_session(session_id, owner))
        if not session.transcript:
            opening = asyncio.run(services.engine.start_defense(session_id, owner))
            click.echo(f"\n🎓 Professor: {opening.reply}\n")
        else:
            click.echo(f"\n🎓 Professor: {session.transcript[-1].content}\n")

        while True:
            message = click.prompt("🧑 You", prompt_suffix=": ").strip()
            if message.lower() in EXIT_WORDS:
                click.echo("Defense paused. Resume any time with the same session id.")
                break
            if not message:
                continue
            turn = asyncio.run(services.engine.chat(session_id, message, owner))
            click.echo(f"\n🎓 Professor: {turn.reply}\n")
    except MockDefenseError as e:
        click.echo(f"✗ Error: {e}", err=True)
        raise click.Abort()
    finally:
        services.close()


@click.command()
@click.argument("session_id", type=str)
@owner_option
@click.option("--yes", "-y", is_flag=True, default=False, help="Skip confirmation prompt")
def delete(session_id: str, owner: str, yes: bool) -> None:
    """Delete SESSION_ID and all of its chunks.

    Example:
        mockdefense-delete 3f2a... --owner alice --yes
    """
    ensure_database_exists()

    if not yes and not click.confirm(f"Delete session {session_id}?", default=False):
        click.echo("Deletion cancelled.")
        return

    services = build_services()
    try:
        deleted = asyncio.run(services.lifecycle.teardown(session_id, owner))
    except MockDefenseError as e:
        click.echo(f"✗ Error: {e}", err=True)
        raise click.Abort()
    finally:
        services.close()

    click.echo(f"🗑️  Session {session_id} deleted ({deleted} chunks removed).")


@click.command()
@click.option("--yes", "-y", is_flag=True, default=False, help="Skip confirmation prompt")
def delete_db(yes: bool) -> None:
    """Delete the RavenDB database and all its contents.

    WARNING: This is irreversible and deletes all sessions, documents and embeddings.

    Example:
        mockdefense-delete-db          # Will prompt for confirmation
        mockdefense-delete-db --yes    # Skip confirmation
    """
    if get_storage_backend() != "ravendb":
        click.echo("Nothing to delete: the in-memory backend keeps no database.")
        return

    url, db_name, chunk_count = get_database_info()

    if not database_exists():
        click.echo(f"✓ Database '{db_name}' does not exist at {url}")
        return

    if not yes:
        click.echo(f"⚠️  WARNING: You are about to delete the database '{db_name}'")
        click.echo(f"   Location: {url}\n")
        if chunk_count is not None:
            click.echo(f"📊 Current database contains: {chunk_count} chunk(s)\n")

        if not click.confirm("Are you sure you want to proceed?", default=False):
            click.echo("Deletion cancelled.")
            return

    click.echo(f"🗑️  Deleting database '{db_name}'...")
    try:
        delete_database()
        click.echo(f"✓ Database '{db_name}' successfully deleted!")
        click.echo("\nTo create a new database, run:")
        click.echo("  mockdefense-setup-db --create-database")
    except Exception as e:
        click.echo(f"✗ Error deleting database: {e}", err=True)
        raise click.Abort()
