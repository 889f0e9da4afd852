"""Tests for the session and document repositories and the data models."""

from datetime import timedelta
from pathlib import Path

import pytest

from mockdefense.constants import SESSIONS_COLLECTION
from mockdefense.errors import NotFoundError
from mockdefense.service.database.models import (
    ConversationMessage,
    DefenseSession,
    DocumentStatus,
    MessageRole,
    SessionStatus,
)
from mockdefense.service.database.utils import utc_now
from mockdefense.service.extraction import UploadedFile


class TestSessionStatus:
    @pytest.mark.parametrize(
        "current, target, allowed",
        [
            (SessionStatus.PREPARING, SessionStatus.READY, True),
            (SessionStatus.READY, SessionStatus.IN_PROGRESS, True),
            (SessionStatus.IN_PROGRESS, SessionStatus.IN_PROGRESS, True),
            (SessionStatus.IN_PROGRESS, SessionStatus.COMPLETED, True),
            (SessionStatus.READY, SessionStatus.PREPARING, False),
            (SessionStatus.COMPLETED, SessionStatus.IN_PROGRESS, False),
            (SessionStatus.READY, SessionStatus.READY, False),
        ],
    )
    def test_forward_only(self, current, target, allowed):
        assert current.can_transition_to(target) is allowed


class TestDefenseSession:
    def test_document_round_trip(self):
        session = DefenseSession(
            owner_id="u1",
            document_id="d1",
            title="Thesis",
            transcript=[ConversationMessage(MessageRole.ASSISTANT, "Opening question?")],
        )

        restored = DefenseSession.from_document(session.to_document())

        assert restored == session

    def test_is_stale_only_while_preparing(self):
        session = DefenseSession(owner_id="u1", document_id="d1", title="T")
        later = session.created_at + timedelta(minutes=20)
        sla = timedelta(minutes=15)

        assert session.is_stale(later, sla) is True
        assert session.is_stale(session.created_at, sla) is False
        assert session.with_status(SessionStatus.READY).is_stale(later, sla) is False


class TestSessionRepository:
    @pytest.mark.asyncio
    async def test_create_starts_preparing(self, sessions):
        session = await sessions.create("u1", "d1", "Thesis")

        loaded = await sessions.get(session.id)
        assert loaded.status is SessionStatus.PREPARING
        assert loaded.transcript == []

    @pytest.mark.asyncio
    async def test_get_owned_hides_other_owners(self, sessions):
        session = await sessions.create("u1", "d1", "Thesis")

        assert (await sessions.get_owned(session.id, "u1")).id == session.id
        with pytest.raises(NotFoundError):
            await sessions.get_owned(session.id, "u2")
        with pytest.raises(NotFoundError):
            await sessions.get_owned("missing", "u1")

    @pytest.mark.asyncio
    async def test_list_newest_first(self, sessions, data_store):
        first = await sessions.create("u1", "d1", "First")
        second = await sessions.create("u1", "d2", "Second")
        await sessions.create("u2", "d3", "Other owner")
        data_store.update_record(
            SESSIONS_COLLECTION, first.id, {"created_at": "2020-01-01T00:00:00+00:00"}
        )

        listed = await sessions.list_for_owner("u1")

        assert [session.id for session in listed] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_set_status_records_chunk_count(self, sessions):
        session = await sessions.create("u1", "d1", "Thesis")

        await sessions.set_status(session.id, SessionStatus.READY, total_chunks=12)

        loaded = await sessions.get(session.id)
        assert loaded.status is SessionStatus.READY
        assert loaded.total_chunks == 12

    @pytest.mark.asyncio
    async def test_set_status_rejects_regression(self, sessions):
        session = await sessions.create("u1", "d1", "Thesis")
        await sessions.set_status(session.id, SessionStatus.READY)

        with pytest.raises(ValueError):
            await sessions.set_status(session.id, SessionStatus.PREPARING)

    @pytest.mark.asyncio
    async def test_append_messages(self, sessions):
        session = await sessions.create("u1", "d1", "Thesis")
        await sessions.set_status(session.id, SessionStatus.READY)

        await sessions.append_messages(
            session.id,
            [
                ConversationMessage(MessageRole.USER, "My answer"),
                ConversationMessage(MessageRole.ASSISTANT, "Explain further."),
            ],
        )

        loaded = await sessions.get(session.id)
        assert loaded.status is SessionStatus.IN_PROGRESS
        assert [m.role for m in loaded.transcript] == [MessageRole.USER, MessageRole.ASSISTANT]

    @pytest.mark.asyncio
    async def test_append_to_missing_session(self, sessions):
        with pytest.raises(NotFoundError):
            await sessions.append_messages("missing", [])

    @pytest.mark.asyncio
    async def test_delete(self, sessions):
        session = await sessions.create("u1", "d1", "Thesis")

        assert await sessions.delete(session.id) is True
        assert await sessions.get(session.id) is None


class TestDocumentRepository:
    @pytest.fixture
    def upload(self, tmp_path) -> UploadedFile:
        return UploadedFile(
            filename="stored.pdf",
            original_name="My Thesis.pdf",
            path=Path(tmp_path / "stored.pdf"),
            size=1234,
        )

    @pytest.mark.asyncio
    async def test_create_processing(self, documents, upload):
        document = await documents.create("u1", upload)

        loaded = await documents.get(document.id)
        assert loaded.status is DocumentStatus.PROCESSING
        assert loaded.original_name == "My Thesis.pdf"
        assert loaded.size == 1234

    @pytest.mark.asyncio
    async def test_mark_completed(self, documents, upload):
        document = await documents.create("u1", upload)

        await documents.mark_completed(document.id, "full text")

        loaded = await documents.get(document.id)
        assert loaded.status is DocumentStatus.COMPLETED
        assert loaded.extracted_text == "full text"
        assert loaded.updated_at >= document.updated_at

    @pytest.mark.asyncio
    async def test_mark_failed(self, documents, upload):
        document = await documents.create("u1", upload)

        await documents.mark_failed(document.id, "no extractable text")

        loaded = await documents.get(document.id)
        assert loaded.status is DocumentStatus.FAILED
        assert loaded.error_message == "no extractable text"

    @pytest.mark.asyncio
    async def test_mark_missing_document(self, documents):
        with pytest.raises(NotFoundError):
            await documents.mark_failed("missing", "boom")


def test_utc_now_is_aware():
    assert utc_now().tzinfo is not None
