"""
Session store: the ordered collection of conversations and their logs.

This is the single writer of conversation state. Presentation code reads it
and subscribes for change notifications; it never mutates turns directly.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional

from ..types.chat import Author, Conversation, Turn, utcnow
from .errors import ConversationNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "New Chat"
TITLE_MAX_LENGTH = 50

ChangeListener = Callable[["SessionStore"], None]


def title_from_message(text: str) -> str:
    text = text.strip()
    if len(text) > TITLE_MAX_LENGTH:
        return text[:TITLE_MAX_LENGTH] + "..."
    return text


class SessionStore:
    """Newest-first conversations with at most one current selection."""

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._clock = clock
        self._conversations: List[Conversation] = []
        self._index: Dict[str, Conversation] = {}
        self.current_id: Optional[str] = None
        self.loading = False
        self._listeners: List[ChangeListener] = []

    # Read access

    @property
    def conversations(self) -> List[Conversation]:
        return list(self._conversations)

    @property
    def current(self) -> Optional[Conversation]:
        if self.current_id is None:
            return None
        return self._index.get(self.current_id)

    def get(self, conversation_id: str) -> Optional[Conversation]:
        return self._index.get(conversation_id)

    def find_turn(self, conversation_id: str, turn_id: str) -> Optional[Turn]:
        conversation = self._index.get(conversation_id)
        if conversation is None:
            return None
        return conversation.get_turn(turn_id)

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a change listener; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Conversation lifecycle

    def create_conversation(self, title: str = DEFAULT_TITLE) -> Conversation:
        now = self._clock()
        conversation = Conversation(title=title, created_at=now, updated_at=now)
        self._conversations.insert(0, conversation)
        self._index[conversation.id] = conversation
        self.current_id = conversation.id
        logger.debug(f"Created conversation {conversation.id}")
        self._notify()
        return conversation

    def select_conversation(self, conversation_id: str) -> Conversation:
        conversation = self._index.get(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        self.current_id = conversation_id
        self._notify()
        return conversation

    def delete_conversation(self, conversation_id: str) -> bool:
        conversation = self._index.pop(conversation_id, None)
        if conversation is None:
            return False
        self._conversations.remove(conversation)
        if self.current_id == conversation_id:
            self.current_id = None
        logger.debug(f"Deleted conversation {conversation_id}")
        self._notify()
        return True

    def rename_conversation(self, conversation_id: str, title: str) -> Conversation:
        conversation = self._index.get(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        conversation.title = title.strip() or conversation.title
        conversation.updated_at = self._clock()
        self._notify()
        return conversation

    # Turns

    def add_user_turn(self, text: str) -> Turn:
        """Append the user's message, creating a conversation if none is current."""
        conversation = self.current
        if conversation is None:
            conversation = self.create_conversation(title_from_message(text))
        elif conversation.is_empty:
            conversation.title = title_from_message(text)
        return self.append_turn(conversation.id, Turn(author=Author.USER, text=text, timestamp=self._clock()))

    def append_turn(self, conversation_id: str, turn: Turn) -> Turn:
        conversation = self._index.get(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        conversation.append(turn, at=self._clock())
        self._notify()
        return turn

    def set_loading(self, loading: bool) -> None:
        if self.loading == loading:
            return
        self.loading = loading
        self._notify()

    def touch(self) -> None:
        """Signal an in-place update (e.g. a transaction status change)."""
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                logger.error(f"Session store listener error: {e}")
