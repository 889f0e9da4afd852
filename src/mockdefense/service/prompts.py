"""Prompt composition for the strict-examiner defense agent.

Every prompt is the persona followed by the retrieved excerpts for the current
turn. When retrieval returns nothing the excerpt section says so explicitly,
which steers the model towards the deflection phrase instead of answering
from its own knowledge.
"""

from collections.abc import Sequence

from mockdefense.constants import HISTORY_WINDOW
from mockdefense.service.database.models import ConversationMessage, RetrievalResult

DEFLECTION_PHRASE = (
    "That topic is not covered in your submitted document. "
    "Let's focus on what you've written."
)

PERSONA_PROMPT = f"""You are a STRICT PROFESSOR conducting an oral thesis defense examination.

YOUR ROLE:
- You are evaluating a student who has submitted their thesis/report
- Ask probing, challenging questions about their work
- Do NOT accept vague or incomplete answers
- Push the student to demonstrate deep understanding
- Reference specific parts of their document when questioning

YOUR BEHAVIOR:
- Be formal and professional
- Ask ONE focused question at a time
- If the student's answer is weak, point out the weakness and ask for clarification
- Occasionally acknowledge good answers briefly, then move to harder questions
- Use phrases like "Explain further...", "What evidence supports...", "How does this relate to..."

CRITICAL RULES:
- ONLY ask questions about topics that appear in the provided document excerpts
- Never answer using information that is not in the provided document excerpts
- If asked about something NOT in the document, say "{DEFLECTION_PHRASE}"
- Keep responses concise (2-4 sentences max)
- Always end with a question to keep the defense going

LANGUAGE: Respond in the same language the student uses."""

NO_CONTEXT_BLOCK = (
    "RELEVANT DOCUMENT EXCERPTS:\n"
    "NO CONTEXT FOUND: no part of the submitted document matches this turn. "
    f'Do not answer from general knowledge; reply with "{DEFLECTION_PHRASE}"'
)

FALLBACK_OPENING_QUESTION = (
    "Please summarize your thesis and explain why this topic is significant."
)


def format_excerpts(excerpts: Sequence[RetrievalResult]) -> str:
    """Label excerpts ``[1]``, ``[2]``, ... or state that none were found."""
    if not excerpts:
        return NO_CONTEXT_BLOCK

    labelled = "\n\n".join(
        f"[{index}] {excerpt.content}" for index, excerpt in enumerate(excerpts, start=1)
    )
    return f"RELEVANT DOCUMENT EXCERPTS:\n{labelled}"


def format_history(history: Sequence[ConversationMessage], window: int = HISTORY_WINDOW) -> str:
    """Render the last ``window`` messages as ``ROLE: content`` lines.

    Returns an empty string when there is nothing to show.
    """
    if window <= 0 or not history:
        return ""

    lines = [f"{message.role.value.upper()}: {message.content}" for message in history[-window:]]
    return "PREVIOUS CONVERSATION:\n" + "\n".join(lines)


def compose_turn_prompt(
    excerpts: Sequence[RetrievalResult],
    history: Sequence[ConversationMessage],
    user_message: str,
    window: int = HISTORY_WINDOW,
) -> str:
    """Build the prompt for one conversation turn.

    Args:
        excerpts: Chunks retrieved for this turn
        history: Full transcript so far (only the last ``window`` is used)
        user_message: The student's new message
        window: Number of transcript messages to include

    Returns:
        str: Persona, excerpts, recent history and the new message
    """
    sections = [PERSONA_PROMPT, format_excerpts(excerpts)]

    history_text = format_history(history, window)
    if history_text:
        sections.append(history_text)

    sections.append(f"STUDENT'S CURRENT RESPONSE: {user_message}")
    sections.append("YOUR REPLY (as the Strict Professor):")
    return "\n\n".join(sections)


def compose_opening_prompt(excerpts: Sequence[RetrievalResult]) -> str:
    """Build the prompt that asks for the first question of a defense."""
    return "\n\n".join(
        [
            PERSONA_PROMPT,
            format_excerpts(excerpts),
            "Generate an opening question for this oral defense. The question should:\n"
            "1. Be challenging but fair\n"
            "2. Focus on a key aspect of the student's work\n"
            "3. Set the tone for a rigorous academic defense",
            "YOUR OPENING QUESTION:",
        ]
    )
