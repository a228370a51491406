"""
Wire envelopes exchanged with the agent backend.

Every frame is a JSON object discriminated by ``type``. Inbound envelopes are
the ones the agent sends; outbound envelopes are the ones this client sends.
"""

import time
from typing import Annotated, List, Literal, Union

from pydantic import Field

from .base import WireModel
from .swap import SwapQuote


def now_ms() -> int:
    """Client timestamp in epoch milliseconds."""
    return int(time.time() * 1000)


# Inbound

class AgentResponse(WireModel):
    type: Literal["AGENT_RESPONSE"] = "AGENT_RESPONSE"
    message: str
    has_transaction: bool = False


class SystemMessage(WireModel):
    type: Literal["SYSTEM_MESSAGE"] = "SYSTEM_MESSAGE"
    level: str = "info"
    message: str


class TransactionToSign(WireModel):
    type: Literal["TRANSACTION_TO_SIGN"] = "TRANSACTION_TO_SIGN"
    original_query: str
    transaction_bytes: List[Annotated[int, Field(ge=0, le=255)]]

    @property
    def payload(self) -> bytes:
        return bytes(self.transaction_bytes)


class SwapQuoteMessage(WireModel):
    type: Literal["SWAP_QUOTE"] = "SWAP_QUOTE"
    quote: SwapQuote
    original_message: str = ""


InboundEnvelope = Annotated[
    Union[AgentResponse, SystemMessage, TransactionToSign, SwapQuoteMessage],
    Field(discriminator="type"),
]


# Outbound

class ConnectionAuth(WireModel):
    type: Literal["CONNECTION_AUTH"] = "CONNECTION_AUTH"
    user_account_id: str
    timestamp: int = Field(default_factory=now_ms)


class UserMessage(WireModel):
    type: Literal["USER_MESSAGE"] = "USER_MESSAGE"
    message: str
    user_account_id: str
    timestamp: int = Field(default_factory=now_ms)


class TransactionResult(WireModel):
    type: Literal["TRANSACTION_RESULT"] = "TRANSACTION_RESULT"
    success: bool
    transaction_id: str = ""
    status: str
    timestamp: int = Field(default_factory=now_ms)


OutboundEnvelope = Annotated[
    Union[ConnectionAuth, UserMessage, TransactionResult],
    Field(discriminator="type"),
]
