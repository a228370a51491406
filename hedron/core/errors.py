"""
Error Classification

Every failure the client can produce falls into one of a few families:
transport problems (recoverable, trigger reconnection), undecodable inbound
frames (dropped), local authentication gating, signer failures (terminal for
one transaction request) and local state misuse.
"""

from enum import Enum
from typing import Optional


class HedronError(Exception):
    """Base error for the agent client."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TransportError(HedronError):
    """Connection refused, abnormal close or failed write."""
    pass


class NotConnectedError(TransportError):
    """A frame was sent while the channel was not open."""

    def __init__(self, message: str = "Not connected to backend"):
        super().__init__(message)


class DecodeError(HedronError):
    """Inbound frame is not a recognised, well-formed envelope."""

    def __init__(self, message: str, raw: Optional[str] = None):
        super().__init__(message)
        self.raw = raw


class AuthError(HedronError):
    """A message was sent before the connection was authenticated."""

    def __init__(self, message: str = "Connection is not authenticated"):
        super().__init__(message)


class SignerFailure(str, Enum):
    """Why a wallet could not produce a transaction id."""

    REJECTED = "rejected"
    WALLET_UNAVAILABLE = "wallet_unavailable"
    INVALID_PAYLOAD = "invalid_payload"
    UNKNOWN = "unknown"


class SignerError(HedronError):
    """Wallet signing failed; terminal for the transaction request."""

    def __init__(self, message: str, reason: SignerFailure = SignerFailure.UNKNOWN):
        super().__init__(message)
        self.reason = reason

    def __str__(self) -> str:
        return f"{self.reason.value}: {self.message}"


class ConversationNotFoundError(HedronError):
    """No conversation with the given id exists."""

    def __init__(self, conversation_id: str):
        super().__init__(f"Conversation {conversation_id} not found")
        self.conversation_id = conversation_id


class InvalidTransitionError(HedronError):
    """A status change that the monotonic state machines forbid."""

    def __init__(self, from_state: str, to_state: str, subject: str = "state"):
        super().__init__(f"Invalid {subject} transition from {from_state} to {to_state}")
        self.from_state = from_state
        self.to_state = to_state
