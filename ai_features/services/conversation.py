"""
Conversation Service
Owns the single chat session of a business and its append-only message log.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from django.db import DatabaseError, IntegrityError, transaction

from ..exceptions import (
    ConversationAccessDenied,
    ConversationPersistenceError,
    InvalidMessageError,
)
from ..models import ChatMessage, ChatSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatTurn:
    """A validated user or assistant utterance"""
    role: str
    text: str

    @classmethod
    def user(cls, text: str) -> 'ChatTurn':
        return cls(ChatMessage.ROLE_USER, text)

    @classmethod
    def assistant(cls, text: str) -> 'ChatTurn':
        return cls(ChatMessage.ROLE_ASSISTANT, text)

    def as_model_message(self) -> Dict[str, str]:
        return {'role': self.role, 'content': self.text}


def _text_from_parts(parts: Any) -> str:
    if not isinstance(parts, list):
        return ''
    return ''.join(
        part.get('text') or ''
        for part in parts
        if isinstance(part, dict) and part.get('type') == 'text' and isinstance(part.get('text', ''), str)
    )


def normalize_turn(raw: Any) -> Optional[ChatTurn]:
    """
    Convert one loosely-shaped client message into a ChatTurn.

    Accepts ``{role, content}`` or ``{role, parts: [{type: 'text', text}]}``.
    Returns None for anything else, including system and tool roles.
    """
    if isinstance(raw, ChatTurn):
        return raw
    if not isinstance(raw, dict):
        return None
    role = raw.get('role')
    if role not in ChatMessage.CONVERSATION_ROLES:
        return None
    content = raw.get('content')
    text = content if isinstance(content, str) else _text_from_parts(raw.get('parts'))
    return ChatTurn(role, text)


def normalize_history(raw_messages: Iterable[Any]) -> List[ChatTurn]:
    turns = []
    for raw in raw_messages or []:
        turn = normalize_turn(raw)
        if turn is not None:
            turns.append(turn)
    return turns


def latest_user_text(turns: Iterable[ChatTurn]) -> str:
    """Text of the most recent user turn, '' when there is none"""
    for turn in reversed(list(turns)):
        if turn.role == ChatMessage.ROLE_USER:
            return turn.text
    return ''


def reconcile_pending(confirmed: Iterable[ChatTurn], pending: Iterable[ChatTurn]) -> List[ChatTurn]:
    """
    Drop optimistic turns that the server has confirmed.

    A pending turn is settled by a confirmed turn with identical role and
    text. Each confirmed turn settles at most one pending turn, so the same
    utterance sent twice stays pending until both copies are confirmed.
    """
    available = list(confirmed)
    remaining = []
    for turn in pending:
        if turn in available:
            available.remove(turn)
        else:
            remaining.append(turn)
    return remaining


class ConversationService:
    """Chat session manager scoped to one business"""

    def __init__(self, business):
        self.business = business

    def _find_session(self) -> Optional[ChatSession]:
        return ChatSession.objects.filter(business_id=self.business.id).first()

    def get_or_create_session(self) -> ChatSession:
        """
        Return the business chat session, creating it on first use.

        Concurrent callers may both miss on the read; the unique business
        column lets exactly one insert win and the loser re-reads it.
        """
        session = self._find_session()
        if session is not None:
            return session

        try:
            with transaction.atomic():
                session = ChatSession.objects.create(business=self.business)
            logger.info(f"Created chat session {session.id} for business {self.business.id}")
            return session
        except IntegrityError:
            logger.info(f"Chat session for business {self.business.id} created concurrently, reusing it")
            return ChatSession.objects.get(business_id=self.business.id)
        except DatabaseError as exc:
            raise ConversationPersistenceError(f"Could not create chat session: {exc}") from exc

    def get_session(self, chat_id) -> ChatSession:
        """Load a session and check it belongs to this business"""
        session = ChatSession.objects.filter(id=chat_id).first()
        if session is None or session.business_id != self.business.id:
            logger.warning(f"Business {self.business.id} denied access to chat {chat_id}")
            raise ConversationAccessDenied("Chat not found for this store")
        return session

    def _resolve(self, session_or_id) -> ChatSession:
        if isinstance(session_or_id, ChatSession):
            if session_or_id.business_id != self.business.id:
                logger.warning(f"Business {self.business.id} denied access to chat {session_or_id.id}")
                raise ConversationAccessDenied("Chat not found for this store")
            return session_or_id
        return self.get_session(session_or_id)

    def append_message(self, session_or_id, role: str, text: str) -> ChatMessage:
        """
        Append one message to the session.

        Raises:
            ConversationAccessDenied: session belongs to another business
            InvalidMessageError: empty text or unsupported role
            ConversationPersistenceError: the database rejected the insert
        """
        session = self._resolve(session_or_id)
        if role not in ChatMessage.CONVERSATION_ROLES:
            raise InvalidMessageError(f"Unsupported role: {role}")
        if not isinstance(text, str) or not text.strip():
            raise InvalidMessageError("Message content must not be empty")

        try:
            return ChatMessage.objects.create(session=session, role=role, content=text)
        except DatabaseError as exc:
            logger.error(f"Failed to persist {role} message in chat {session.id}: {exc}")
            raise ConversationPersistenceError(f"Could not save message: {exc}") from exc

    def load_history(self, session_or_id, limit: Optional[int] = None) -> List[ChatMessage]:
        """
        Messages of the session, oldest first, user and assistant roles only.

        With ``limit`` only the most recent ``limit`` messages are returned,
        still oldest first.
        """
        session = self._resolve(session_or_id)
        queryset = (
            ChatMessage.objects
            .filter(session=session, role__in=ChatMessage.CONVERSATION_ROLES)
        )
        if limit:
            recent = list(queryset.order_by('-created_at', '-id')[:limit])
            recent.reverse()
            return recent
        return list(queryset.order_by('created_at', 'id'))

    def history_turns(self, session_or_id, limit: Optional[int] = None) -> List[ChatTurn]:
        return [ChatTurn(m.role, m.content) for m in self.load_history(session_or_id, limit=limit)]
