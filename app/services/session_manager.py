"""
Conversation Session Management: in-memory, per-process conversation history
"""
import asyncio
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from app.models.schemas import ChatTurn, ConversationSession
from app.utils.exceptions import NotFoundError
from app.utils.logging_config import get_logger

logger = get_logger(__name__)


class ConversationStore:
    """Holds conversations keyed by id for the lifetime of the process.

    Mutations of one conversation must happen while holding ``lock(id)``;
    different conversations never share a lock. ``max_turns`` caps the
    history kept per conversation (oldest turns are dropped); ``None``
    keeps everything.
    """

    ROLE_USER = "user"
    ROLE_ASSISTANT = "assistant"

    def __init__(self, max_turns: Optional[int] = None):
        self.max_turns = max_turns
        self._sessions: Dict[str, ConversationSession] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def get_or_create(self, conversation_id: Optional[str] = None) -> ConversationSession:
        """Return the conversation, creating it (with a fresh id if none is given)"""
        if not conversation_id:
            conversation_id = str(uuid.uuid4())

        session = self._sessions.get(conversation_id)
        if session is None:
            session = ConversationSession(conversation_id=conversation_id)
            self._sessions[conversation_id] = session
            logger.info(f"Created conversation {conversation_id}")
        return session

    def resolve(self, conversation_id: str) -> ConversationSession:
        """The stored conversation, or a new one that is only registered once
        ``append_turns`` records its first exchange"""
        session = self._sessions.get(conversation_id)
        if session is None:
            session = ConversationSession(conversation_id=conversation_id)
        return session

    def get(self, conversation_id: str) -> ConversationSession:
        session = self._sessions.get(conversation_id)
        if session is None:
            raise NotFoundError(
                f"Conversation {conversation_id} not found",
                resource="conversation",
                resource_id=conversation_id,
            )
        return session

    def get_messages(self, conversation_id: str) -> List[ChatTurn]:
        return list(self.get(conversation_id).messages)

    def lock(self, conversation_id: str) -> asyncio.Lock:
        return self._locks.setdefault(conversation_id, asyncio.Lock())

    def append_turns(self, session: ConversationSession, user_message: str, assistant_message: str) -> int:
        """Append a user turn then an assistant turn; returns the new turn count"""
        if session.conversation_id not in self._sessions:
            self._sessions[session.conversation_id] = session
            logger.info(f"Created conversation {session.conversation_id}")
        session.messages.append(ChatTurn(role=self.ROLE_USER, content=user_message))
        session.messages.append(ChatTurn(role=self.ROLE_ASSISTANT, content=assistant_message))
        if self.max_turns and len(session.messages) > self.max_turns:
            excess = len(session.messages) - self.max_turns
            # drop whole user/assistant pairs
            del session.messages[:excess + excess % 2]
        session.updated_at = datetime.utcnow()
        return len(session.messages)

    def delete(self, conversation_id: str) -> bool:
        session = self._sessions.pop(conversation_id, None)
        self._locks.pop(conversation_id, None)
        if session is None:
            logger.warning(f"Delete requested for unknown conversation {conversation_id}")
            return False
        logger.info(f"Deleted conversation {conversation_id} ({len(session.messages)} turns)")
        return True

    def count(self) -> int:
        return len(self._sessions)
