"""
Conversation state models.

Conversations and their turns are plain dataclasses owned by the session
store; only the swap quote travels over the wire and is therefore a pydantic
model (see ``hedron.types.swap``).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Set

from ..core.errors import InvalidTransitionError
from .swap import SwapQuote


def generate_id() -> str:
    return uuid.uuid4().hex[:12]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Author(str, Enum):
    USER = "user"
    AGENT = "agent"
    SYSTEM = "system"


class ConnectionState(str, Enum):
    """Connection lifecycle as seen by the presentation layer."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"

    @property
    def can_send(self) -> bool:
        return self is ConnectionState.AUTHENTICATED


class TransactionStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not TransactionStatus.PENDING


# Status only moves forward: pending -> success | failed
STATUS_TRANSITIONS: Dict[TransactionStatus, Set[TransactionStatus]] = {
    TransactionStatus.PENDING: {TransactionStatus.SUCCESS, TransactionStatus.FAILED},
    TransactionStatus.SUCCESS: set(),
    TransactionStatus.FAILED: set(),
}


@dataclass
class TransactionRequest:
    """A transaction the agent asked the wallet to sign."""

    original_query: str
    payload: bytes
    status: TransactionStatus = TransactionStatus.PENDING
    transaction_id: Optional[str] = None
    failure_reason: Optional[str] = None
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def hex(self) -> str:
        return self.payload.hex()

    def _transition(self, to_status: TransactionStatus) -> None:
        if to_status not in STATUS_TRANSITIONS[self.status]:
            raise InvalidTransitionError(self.status.value, to_status.value, "transaction status")
        self.status = to_status
        self.updated_at = utcnow()

    def mark_success(self, transaction_id: str) -> None:
        self._transition(TransactionStatus.SUCCESS)
        self.transaction_id = transaction_id

    def mark_failed(self, reason: str) -> None:
        self._transition(TransactionStatus.FAILED)
        self.failure_reason = reason


@dataclass(frozen=True)
class Turn:
    """One entry in a conversation log."""

    author: Author
    text: str
    id: str = field(default_factory=generate_id)
    timestamp: datetime = field(default_factory=utcnow)
    transaction: Optional[TransactionRequest] = None
    swap_quote: Optional[SwapQuote] = None
    has_transaction: bool = False


@dataclass
class Conversation:
    """A titled, append-only log of turns."""

    title: str = "New Chat"
    id: str = field(default_factory=generate_id)
    turns: List[Turn] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        self._turn_ids: Set[str] = {turn.id for turn in self.turns}

    def append(self, turn: Turn, *, at: Optional[datetime] = None) -> Turn:
        if turn.id in self._turn_ids:
            raise ValueError(f"Turn {turn.id} already exists in conversation {self.id}")
        self.turns.append(turn)
        self._turn_ids.add(turn.id)
        self.updated_at = at or utcnow()
        return turn

    def get_turn(self, turn_id: str) -> Optional[Turn]:
        if turn_id not in self._turn_ids:
            return None
        for turn in reversed(self.turns):
            if turn.id == turn_id:
                return turn
        return None

    @property
    def is_empty(self) -> bool:
        return not self.turns
