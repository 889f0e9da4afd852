"""Tests for the CLI module."""

import asyncio
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from mockdefense.client.cli import chat, delete, delete_db, prepare, search, sessions, setup_db
from mockdefense.service.database.models import SessionStatus


@pytest.fixture
def runner(monkeypatch):
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    monkeypatch.delenv("MOCKDEFENSE_OWNER", raising=False)
    return CliRunner()


@pytest.fixture
def wired(defense_services):
    """Route every command to the same in-memory pipeline."""
    with patch("mockdefense.client.cli.build_services", return_value=defense_services):
        yield defense_services


@pytest.fixture
def thesis_file(tmp_path):
    path = tmp_path / "thesis.pdf"
    path.write_bytes(b"%PDF-1.4 placeholder")
    return path


def _prepare(runner, thesis_file) -> str:
    result = runner.invoke(prepare, [str(thesis_file), "--owner", "alice"])
    assert result.exit_code == 0, result.output
    return result.output.split("Session ")[1].split(" ")[0]


class TestPrepareCLI:
    def test_prepare_ready(self, runner, wired, thesis_file):
        result = runner.invoke(prepare, [str(thesis_file), "--owner", "alice", "--title", "Draft"])

        assert result.exit_code == 0
        assert "is ready" in result.output
        stored = asyncio.run(wired.lifecycle.list_sessions("alice"))
        assert [s.title for s in stored] == ["Draft"]
        assert stored[0].status is SessionStatus.READY

    def test_owner_from_env(self, runner, wired, thesis_file, monkeypatch):
        monkeypatch.setenv("MOCKDEFENSE_OWNER", "bob")

        result = runner.invoke(prepare, [str(thesis_file)])

        assert result.exit_code == 0
        assert len(asyncio.run(wired.lifecycle.list_sessions("bob"))) == 1

    def test_owner_required(self, runner, wired, thesis_file):
        result = runner.invoke(prepare, [str(thesis_file)])

        assert result.exit_code != 0
        assert "--owner" in result.output

    def test_prepare_failure_aborts(self, runner, wired, thesis_file):
        wired.lifecycle.extractor.error = RuntimeError("corrupt PDF")

        result = runner.invoke(prepare, [str(thesis_file), "--owner", "alice"])

        assert result.exit_code != 0
        assert "corrupt PDF" in result.output

    def test_nonexistent_file(self, runner, wired):
        result = runner.invoke(prepare, ["/nonexistent/thesis.pdf", "--owner", "alice"])

        assert result.exit_code != 0
        assert "does not exist" in result.output.lower()


class TestSessionsCLI:
    def test_no_sessions(self, runner, wired):
        result = runner.invoke(sessions, ["--owner", "alice"])

        assert result.exit_code == 0
        assert "No sessions found" in result.output

    def test_lists_sessions(self, runner, wired, thesis_file):
        session_id = _prepare(runner, thesis_file)

        result = runner.invoke(sessions, ["--owner", "alice"])

        assert result.exit_code == 0
        assert session_id in result.output
        assert "[ready]" in result.output


class TestSearchCLI:
    def test_search_results(self, runner, wired, thesis_file):
        session_id = _prepare(runner, thesis_file)

        result = runner.invoke(search, [session_id, "dust accumulation", "--top-k", "2"])

        assert result.exit_code == 0
        assert "Found 2 result(s)" in result.output
        assert "score:" in result.output

    def test_search_unknown_session(self, runner, wired):
        result = runner.invoke(search, ["missing", "dust"])

        assert result.exit_code == 0
        assert "No results found" in result.output

    def test_invalid_top_k(self, runner, wired):
        result = runner.invoke(search, ["missing", "dust", "--top-k", "0"])

        assert result.exit_code != 0
        assert "Error" in result.output


class TestChatCLI:
    def test_opening_then_exit(self, runner, wired, thesis_file):
        session_id = _prepare(runner, thesis_file)

        result = runner.invoke(
            chat, [session_id, "--owner", "alice"], input="Dust lowers output.\nexit\n"
        )

        assert result.exit_code == 0
        assert result.output.count("Professor:") == 2
        assert "Defense paused" in result.output
        session = asyncio.run(wired.lifecycle.get_session(session_id, "alice"))
        assert len(session.transcript) == 3

    def test_unknown_session(self, runner, wired):
        result = runner.invoke(chat, ["missing", "--owner", "alice"], input="exit\n")

        assert result.exit_code != 0
        assert "Error" in result.output


class TestDeleteCLI:
    def test_delete_with_yes(self, runner, wired, thesis_file):
        session_id = _prepare(runner, thesis_file)

        result = runner.invoke(delete, [session_id, "--owner", "alice", "--yes"])

        assert result.exit_code == 0
        assert "deleted" in result.output
        assert asyncio.run(wired.lifecycle.list_sessions("alice")) == []

    def test_delete_cancelled(self, runner, wired, thesis_file):
        session_id = _prepare(runner, thesis_file)

        result = runner.invoke(delete, [session_id, "--owner", "alice"], input="n\n")

        assert "cancelled" in result.output
        assert len(asyncio.run(wired.lifecycle.list_sessions("alice"))) == 1

    def test_delete_other_owner(self, runner, wired, thesis_file):
        session_id = _prepare(runner, thesis_file)

        result = runner.invoke(delete, [session_id, "--owner", "mallory", "--yes"])

        assert result.exit_code != 0
        assert "not found" in result.output.lower()


class TestDatabaseCommands:
    def test_setup_db_memory_backend(self, runner):
        result = runner.invoke(setup_db, [])

        assert result.exit_code == 0
        assert "Nothing to set up" in result.output

    @patch("mockdefense.client.cli.ensure_index_exists", return_value=True)
    @patch("mockdefense.client.cli.create_document_store")
    @patch("mockdefense.client.cli_helpers.database_exists", return_value=True)
    def test_setup_db_ravendb(self, _, mock_store, mock_ensure, runner, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "ravendb")

        result = runner.invoke(setup_db, ["--dimensions", "768"])

        assert result.exit_code == 0
        assert "Vector index created" in result.output
        mock_ensure.assert_called_once_with(mock_store.return_value, 768)
        mock_store.return_value.close.assert_called_once()

    @patch("mockdefense.client.cli_helpers.database_exists", return_value=False)
    def test_missing_database_aborts(self, _, runner, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "ravendb")

        result = runner.invoke(sessions, ["--owner", "alice"])

        assert result.exit_code != 0
        assert "mockdefense-setup-db --create-database" in result.output

    @patch("mockdefense.client.cli.delete_database")
    @patch("mockdefense.client.cli.database_exists", return_value=True)
    @patch("mockdefense.client.cli.get_database_info")
    def test_delete_db_confirmed(self, mock_info, _, mock_delete, runner, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "ravendb")
        mock_info.return_value = ("http://localhost:8080", "mockdefense", 12)

        result = runner.invoke(delete_db, input="y\n")

        assert result.exit_code == 0
        assert "12 chunk(s)" in result.output
        assert "successfully deleted" in result.output
        mock_delete.assert_called_once()

    def test_delete_db_memory_backend(self, runner):
        with patch("mockdefense.client.cli.delete_database", MagicMock()) as mock_delete:
            result = runner.invoke(delete_db, ["--yes"])

        assert result.exit_code == 0
        mock_delete.assert_not_called()
