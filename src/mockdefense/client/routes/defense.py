"""Mock defense API routes.

Authentication happens upstream; the caller's id arrives in the ``X-User-Id``
header and is used as the owner of sessions and documents.
"""

import logging
import mimetypes
import threading
from datetime import timedelta
from pathlib import Path

from flask import Blueprint, jsonify, request
from werkzeug.utils import secure_filename

from mockdefense.client.routes.config import get_config
from mockdefense.constants import PREPARATION_SLA_SECONDS
from mockdefense.errors import (
    ConfigurationError,
    NotFoundError,
    SessionNotReadyError,
    UpstreamError,
)
from mockdefense.service.async_utils import run_async
from mockdefense.service.database.models import DefenseSession, DocumentRecord
from mockdefense.service.database.utils import new_id, utc_now
from mockdefense.service.extraction import UploadedFile
from mockdefense.service.lifecycle import SessionLifecycleManager

logger = logging.getLogger(__name__)

defense_bp = Blueprint("defense", __name__, url_prefix="/api/defense")

OWNER_HEADER = "X-User-Id"


def allowed_file(filename: str) -> bool:
    """Check if the file extension is allowed."""
    allowed_extensions = get_config().allowed_extensions
    return "." in filename and filename.rsplit(".", 1)[1].lower() in allowed_extensions


def serialize_session(session: DefenseSession, include_transcript: bool = True) -> dict:
    """Convert a session to its JSON representation, with a ``stale`` flag."""
    data = session.to_document()
    if not include_transcript:
        data.pop("transcript")
    data["stale"] = session.is_stale(utc_now(), timedelta(seconds=PREPARATION_SLA_SECONDS))
    return data


def error_response(error: Exception):
    """Map a pipeline exception to a JSON error response and status code."""
    if isinstance(error, NotFoundError):
        status = 404
    elif isinstance(error, SessionNotReadyError):
        status = 409
    elif isinstance(error, ValueError):
        status = 400
    elif isinstance(error, ConfigurationError):
        status = 503
    elif isinstance(error, UpstreamError):
        status = 502
    else:
        status = 500

    if status >= 500:
        logger.error(f"❌ Defense request failed: {error}", exc_info=True)
    else:
        logger.warning(f"⚠️ Defense request rejected: {error}")
    return jsonify({"success": False, "error": str(error)}), status


def _owner_id() -> str | None:
    owner_id = request.headers.get(OWNER_HEADER, "").strip()
    return owner_id or None


def _unauthorized():
    return jsonify({"success": False, "error": f"Missing {OWNER_HEADER} header"}), 401


def _ingest_upload(
    lifecycle: SessionLifecycleManager,
    document: DocumentRecord,
    session: DefenseSession,
    upload: UploadedFile,
) -> None:
    try:
        run_async(lifecycle.ingest(document, session, upload))
    finally:
        upload.path.unlink(missing_ok=True)


@defense_bp.route("/upload", methods=["POST"])
def upload_document():
    """Upload a document and start preparing a defense session for it.

    Expects multipart form data with:
        - file: The document (PDF)
        - title: Optional session title (default: file name without extension)

    Returns:
        202 with the session in ``preparing`` state. Ingestion continues in
        the background; poll the session until it is ``ready``.
    """
    config = get_config()
    owner_id = _owner_id()
    if owner_id is None:
        return _unauthorized()

    logger.info("📤 Received defense upload request")
    file = request.files.get("file")
    if file is None or not file.filename:
        logger.warning("❌ No file in request")
        return jsonify({"success": False, "error": "No file uploaded"}), 400

    if not allowed_file(file.filename):
        return jsonify(
            {"success": False, "error": "Only PDF files are supported for Mock Defense"}
        ), 400

    try:
        filename = f"{new_id()}_{secure_filename(file.filename)}"
        path = Path(config.upload_folder) / filename
        file.save(path)
        logger.info(f"💾 Saved file: {path}")

        upload = UploadedFile(
            filename=filename,
            original_name=file.filename,
            path=path,
            mime_type=file.mimetype or mimetypes.guess_type(file.filename)[0] or "",
            size=path.stat().st_size,
        )
        lifecycle = config.services.lifecycle
        title = request.form.get("title") or None
        document, session = run_async(lifecycle.start_preparation(upload, owner_id, title))

        if config.run_in_background:
            threading.Thread(
                target=_ingest_upload,
                args=(lifecycle, document, session, upload),
                name=f"ingest-{session.id}",
                daemon=True,
            ).start()
        else:
            _ingest_upload(lifecycle, document, session, upload)
    except Exception as e:
        return error_response(e)

    return jsonify(
        {
            "success": True,
            "message": "Document received. Preparing your defense...",
            "data": {"session": serialize_session(session), "document_id": document.id},
        }
    ), 202


@defense_bp.route("/sessions", methods=["GET"])
def list_sessions():
    """List the caller's sessions, newest first, without transcripts."""
    owner_id = _owner_id()
    if owner_id is None:
        return _unauthorized()

    try:
        sessions = run_async(get_config().services.lifecycle.list_sessions(owner_id))
    except Exception as e:
        return error_response(e)

    return jsonify(
        {
            "success": True,
            "data": {
                "sessions": [serialize_session(s, include_transcript=False) for s in sessions]
            },
        }
    )


@defense_bp.route("/sessions/<session_id>", methods=["GET"])
def get_session(session_id: str):
    """Get one session with its transcript."""
    owner_id = _owner_id()
    if owner_id is None:
        return _unauthorized()

    try:
        session = run_async(get_config().services.lifecycle.get_session(session_id, owner_id))
    except Exception as e:
        return error_response(e)

    return jsonify({"success": True, "data": {"session": serialize_session(session)}})


@defense_bp.route("/sessions/<session_id>/start", methods=["POST"])
def start_defense(session_id: str):
    """Ask the opening question of the defense."""
    owner_id = _owner_id()
    if owner_id is None:
        return _unauthorized()

    logger.info(f"🎓 Starting defense for session {session_id}")
    try:
        turn = run_async(get_config().services.engine.start_defense(session_id, owner_id))
    except Exception as e:
        return error_response(e)

    return jsonify(
        {"success": True, "data": {"message": turn.reply, "sessionStatus": "in_progress"}}
    )


@defense_bp.route("/sessions/<session_id>/chat", methods=["POST"])
def chat(session_id: str):
    """Send the student's answer and get the examiner's reply.

    Request:
        {"message": "My thesis argues that..."}

    Response:
        {"success": true, "data": {"message": "...", "retrievedContext": [...]}}

    ``retrievedContext`` is only present when DEFENSE_DEBUG_CONTEXT is enabled.
    """
    config = get_config()
    owner_id = _owner_id()
    if owner_id is None:
        return _unauthorized()

    data = request.get_json(silent=True) or {}
    message = data.get("message")
    if not isinstance(message, str) or not message.strip():
        logger.warning("❌ Missing 'message' field in request")
        return jsonify({"success": False, "error": "Missing 'message' field in request"}), 400

    try:
        turn = run_async(config.services.engine.chat(session_id, message, owner_id))
    except Exception as e:
        return error_response(e)

    payload = {"message": turn.reply}
    if config.debug_context:
        payload["retrievedContext"] = [excerpt.to_dict() for excerpt in turn.excerpts]
    return jsonify({"success": True, "data": payload})


@defense_bp.route("/sessions/<session_id>", methods=["DELETE"])
def delete_session(session_id: str):
    """Delete a session and all of its chunks."""
    owner_id = _owner_id()
    if owner_id is None:
        return _unauthorized()

    try:
        deleted = run_async(get_config().services.lifecycle.teardown(session_id, owner_id))
    except Exception as e:
        return error_response(e)

    return jsonify(
        {"success": True, "message": "Session deleted", "data": {"chunks_deleted": deleted}}
    )
