"""
Event Dispatcher

Applies exactly one state transition per queued event, in arrival order.
Inbound envelopes become turns in the current conversation; signer outcomes
are handed back to the coordinator.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from ..types.chat import Author, TransactionRequest, Turn
from ..types.envelope import (
    AgentResponse,
    InboundEnvelope,
    SwapQuoteMessage,
    SystemMessage,
    TransactionToSign,
)
from .coordinator import PendingTransactionCoordinator, SigningOutcome
from .handshake import AuthHandshake
from .session_store import SessionStore
from .swap.extractor import SwapQuoteExtractor

logger = logging.getLogger(__name__)

QueuedEvent = Union[InboundEnvelope, SigningOutcome]


def format_system_text(notice: SystemMessage) -> str:
    level = (notice.level or "info").upper()
    return f"[{level}] {notice.message}"


class EventDispatcher:
    """Routes decoded envelopes into the session store."""

    def __init__(
        self,
        store: SessionStore,
        coordinator: PendingTransactionCoordinator,
        extractor: SwapQuoteExtractor,
        handshake: AuthHandshake,
    ):
        self.store = store
        self.coordinator = coordinator
        self.extractor = extractor
        self.handshake = handshake
        self.dropped = 0

    async def dispatch(self, event: QueuedEvent) -> Optional[Turn]:
        """Apply one event; returns the appended turn, if any."""
        if isinstance(event, SigningOutcome):
            await self.coordinator.complete(event)
            return None

        if isinstance(event, SystemMessage):
            # Auth acknowledgements arrive before any conversation exists
            self.handshake.observe(event)

        conversation = self.store.current
        if conversation is None:
            self.dropped += 1
            logger.info(f"No conversation selected, dropping {event.type}")
            return None

        if isinstance(event, AgentResponse):
            quote = self.extractor.extract(event.message)
            turn = Turn(
                author=Author.AGENT,
                text=event.message,
                swap_quote=quote,
                has_transaction=event.has_transaction,
            )
            self.store.append_turn(conversation.id, turn)
            self.store.set_loading(False)
            return turn

        if isinstance(event, SystemMessage):
            turn = Turn(author=Author.SYSTEM, text=format_system_text(event))
            return self.store.append_turn(conversation.id, turn)

        if isinstance(event, TransactionToSign):
            request = TransactionRequest(original_query=event.original_query, payload=event.payload)
            turn = Turn(
                author=Author.SYSTEM,
                text=f"Transaction ready to sign: {event.original_query}",
                transaction=request,
                has_transaction=True,
            )
            self.store.append_turn(conversation.id, turn)
            self.coordinator.submit(conversation.id, turn)
            return turn

        if isinstance(event, SwapQuoteMessage):
            quote = event.quote
            if not quote.original_message and event.original_message:
                quote = quote.model_copy(update={"original_message": event.original_message})
            turn = Turn(
                author=Author.AGENT,
                text=event.original_message or quote.original_message,
                swap_quote=quote,
            )
            self.store.append_turn(conversation.id, turn)
            self.store.set_loading(False)
            return turn

        logger.warning(f"Unhandled event {type(event).__name__}")
        return None
