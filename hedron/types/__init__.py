from .swap import QuoteLeg, SwapQuote
from .chat import (
    Author,
    ConnectionState,
    Conversation,
    TransactionRequest,
    TransactionStatus,
    Turn,
)
from .envelope import (
    AgentResponse,
    ConnectionAuth,
    InboundEnvelope,
    OutboundEnvelope,
    SwapQuoteMessage,
    SystemMessage,
    TransactionResult,
    TransactionToSign,
    UserMessage,
)

__all__ = [
    "QuoteLeg",
    "SwapQuote",
    "Author",
    "ConnectionState",
    "Conversation",
    "TransactionRequest",
    "TransactionStatus",
    "Turn",
    "AgentResponse",
    "ConnectionAuth",
    "InboundEnvelope",
    "OutboundEnvelope",
    "SwapQuoteMessage",
    "SystemMessage",
    "TransactionResult",
    "TransactionToSign",
    "UserMessage",
]
