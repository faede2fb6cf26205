"""
Chat message hook.

Called by the agent integration for each user message. Injects memory
context on the first message of a session and nudges the agent to save a
memory when the user asks it to remember something.
"""

import re
from collections import OrderedDict

from pydantic import BaseModel

from graphiti_memory.models.memory import ConversationMessage
from graphiti_memory.services.memory_service import GraphitiMemory
from graphiti_memory.utils.logger import get_logger

logger = get_logger(__name__)

MAX_TRACKED_SESSIONS = 1000

CODE_BLOCK_PATTERN = re.compile(r"```[\s\S]*?```")
INLINE_CODE_PATTERN = re.compile(r"`[^`]+`")

MEMORY_KEYWORD_PATTERN = re.compile(
    r"\b(remember|memorize|save\s+this|note\s+this|keep\s+in\s+mind|don'?t\s+forget"
    r"|learn\s+this|store\s+this|record\s+this|make\s+a\s+note|take\s+note|jot\s+down"
    r"|commit\s+to\s+memory|remember\s+that|never\s+forget|always\s+remember)\b",
    re.IGNORECASE,
)

MEMORY_NUDGE_MESSAGE = """[MEMORY TRIGGER DETECTED]
The user wants you to remember something. You MUST use the `graphiti` tool with `mode: "add"` to save this information.

Extract the key information the user wants remembered and save it as a concise, searchable memory.
- Use `scope: "project"` for project-specific preferences (e.g., "run lint with tests")
- Use `scope: "user"` for cross-project preferences (e.g., "prefers concise responses")
- Choose an appropriate `type`: "preference", "project-config", "learned-pattern", etc.

DO NOT skip this step. The user explicitly asked you to remember."""


def remove_code(text: str) -> str:
    """Strip fenced and inline code so keywords inside code are ignored."""
    return INLINE_CODE_PATTERN.sub("", CODE_BLOCK_PATTERN.sub("", text))


def detect_memory_keyword(text: str) -> bool:
    return MEMORY_KEYWORD_PATTERN.search(remove_code(text)) is not None


class MessageInjection(BaseModel):
    """Synthetic text the integration should add around a user message."""

    context: str = ""
    nudge: str | None = None


class MessageHook:
    """
    Tracks which sessions already received context.

    At most max_sessions ids are kept; the least recently seen is dropped
    first, so a long idle session may get context again.
    """

    def __init__(self, memory: GraphitiMemory, max_sessions: int = MAX_TRACKED_SESSIONS):
        self.memory = memory
        self.max_sessions = max_sessions
        self._injected_sessions: OrderedDict[str, None] = OrderedDict()

    def end_session(self, session_id: str) -> bool:
        """Forget a closed session. Returns False if it was not tracked."""
        if session_id not in self._injected_sessions:
            return False
        del self._injected_sessions[session_id]
        return True

    def _mark_injected(self, session_id: str) -> bool:
        """Record a session; True if it was not seen before."""
        if session_id in self._injected_sessions:
            self._injected_sessions.move_to_end(session_id)
            return False
        self._injected_sessions[session_id] = None
        while len(self._injected_sessions) > self.max_sessions:
            self._injected_sessions.popitem(last=False)
        return True

    async def on_message(
        self,
        session_id: str,
        text: str,
        history: list[ConversationMessage] | None = None,
    ) -> MessageInjection:
        if not text.strip():
            return MessageInjection()

        injection = MessageInjection()
        if detect_memory_keyword(text):
            logger.info("chat.message: memory keyword detected")
            injection.nudge = MEMORY_NUDGE_MESSAGE

        if self._mark_injected(session_id):
            try:
                injection.context = await self.memory.build_context(text, messages=history)
            except Exception as e:
                logger.error(f"chat.message: context injection failed: {e}")
            else:
                if injection.context:
                    logger.info(f"chat.message: context injected length={len(injection.context)}")

        return injection
