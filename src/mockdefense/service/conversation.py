"""Conversation engine: retrieval-grounded turns with the defense agent."""

import logging
from dataclasses import dataclass, field

from mockdefense.constants import DEFAULT_TOP_K, HISTORY_WINDOW, OPENING_QUERY, OPENING_TOP_K
from mockdefense.errors import GenerationError, SessionNotReadyError
from mockdefense.llm.base import LLMService
from mockdefense.service.database.models import (
    ConversationMessage,
    DefenseSession,
    MessageRole,
    RetrievalResult,
    SessionStatus,
)
from mockdefense.service.database.repositories import SessionRepository
from mockdefense.service.database.vector_store import VectorStore
from mockdefense.service.prompts import (
    FALLBACK_OPENING_QUESTION,
    compose_opening_prompt,
    compose_turn_prompt,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatTurn:
    """The agent's reply and the excerpts it was grounded on."""

    reply: str
    excerpts: list[RetrievalResult] = field(default_factory=list)


class ConversationEngine:
    """Runs a defense conversation over a prepared session.

    Each turn makes exactly one generation call. The transcript is written
    only after the call succeeds, in a single atomic append, so a failed turn
    leaves it unchanged and the same message can simply be sent again.
    """

    def __init__(
        self,
        sessions: SessionRepository,
        vector_store: VectorStore,
        agent: LLMService,
        top_k: int = DEFAULT_TOP_K,
        history_window: int = HISTORY_WINDOW,
        opening_top_k: int = OPENING_TOP_K,
    ) -> None:
        self.sessions = sessions
        self.vector_store = vector_store
        self.agent = agent
        self.top_k = top_k
        self.history_window = history_window
        self.opening_top_k = opening_top_k

    async def _load_ready(self, session_id: str, owner_id: str | None) -> DefenseSession:
        session = await self.sessions.get_owned(session_id, owner_id)
        if session.status is SessionStatus.PREPARING:
            raise SessionNotReadyError(session_id)
        return session

    async def _generate(self, prompt: str, session_id: str) -> str:
        try:
            return await self.agent.generate_response(prompt)
        except Exception as e:
            logger.error(f"❌ Generation failed for session {session_id}: {e}", exc_info=True)
            raise GenerationError(f"Failed to generate a reply: {e}") from e

    async def chat(
        self,
        session_id: str,
        user_message: str,
        owner_id: str | None = None,
    ) -> ChatTurn:
        """Answer one student message.

        Args:
            session_id: Session to converse in
            user_message: The student's message
            owner_id: Caller's id; None skips the ownership check

        Returns:
            ChatTurn: The reply and the retrieved excerpts

        Raises:
            ValueError: If the message is blank
            NotFoundError: If the session does not exist or is not owned by the caller
            SessionNotReadyError: If the session is still preparing
            GenerationError: If the agent fails or returns an empty reply
        """
        if not user_message or not user_message.strip():
            raise ValueError("Message must not be empty")

        session = await self._load_ready(session_id, owner_id)
        excerpts = await self.vector_store.query_by_text(user_message, session_id, self.top_k)
        logger.info(f"🔍 Session {session_id}: {len(excerpts)} excerpts for this turn")

        prompt = compose_turn_prompt(
            excerpts, session.transcript, user_message, self.history_window
        )
        reply = await self._generate(prompt, session_id)
        if not reply.strip():
            raise GenerationError("The agent returned an empty reply")

        await self.sessions.append_messages(
            session_id,
            [
                ConversationMessage(role=MessageRole.USER, content=user_message),
                ConversationMessage(role=MessageRole.ASSISTANT, content=reply),
            ],
        )
        return ChatTurn(reply=reply, excerpts=excerpts)

    async def start_defense(self, session_id: str, owner_id: str | None = None) -> ChatTurn:
        """Ask the opening question of a defense.

        Only the assistant's message is appended. An empty reply from the
        agent is replaced by a fixed opening question.

        Raises:
            NotFoundError: If the session does not exist or is not owned by the caller
            SessionNotReadyError: If the session is still preparing
            GenerationError: If the agent call fails
        """
        await self._load_ready(session_id, owner_id)
        excerpts = await self.vector_store.query_by_text(
            OPENING_QUERY, session_id, self.opening_top_k
        )

        reply = await self._generate(compose_opening_prompt(excerpts), session_id)
        if not reply.strip():
            logger.warning(f"⚠️ Empty opening question for session {session_id}, using fallback")
            reply = FALLBACK_OPENING_QUESTION

        await self.sessions.append_messages(
            session_id, [ConversationMessage(role=MessageRole.ASSISTANT, content=reply)]
        )
        logger.info(f"🎓 Defense started for session {session_id}")
        return ChatTurn(reply=reply, excerpts=excerpts)
