"""
Agent Session

Process-wide owner of the client: wires the transport, handshake, codec,
store, dispatcher and coordinator together and exposes the operations the
presentation layer calls. All state changes run on a single consumer task
that drains one event queue, so the session store only ever has one writer.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, List, Optional

from ..config import Settings, settings as default_settings
from ..logging_config import bind_session_context, clear_session_context
from ..types.chat import ConnectionState, Conversation, Turn
from ..types.envelope import UserMessage
from ..wallet.base import WalletSigner
from . import codec
from .coordinator import PendingTransactionCoordinator
from .dispatcher import EventDispatcher, QueuedEvent
from .errors import DecodeError, TransportError
from .handshake import AuthHandshake
from .session_store import ChangeListener, SessionStore
from .swap.extractor import SwapQuoteExtractor
from .transport import ConnectionTransport

logger = logging.getLogger(__name__)


class AgentSession:
    """
    Client session against the Hedron agent.

    Usage:
        async with AgentSession(wallet) as session:
            session.subscribe(render)
            await session.send_user_message("What is my HBAR balance?")
    """

    def __init__(
        self,
        wallet: WalletSigner,
        *,
        config: Optional[Settings] = None,
        transport: Optional[ConnectionTransport] = None,
        store: Optional[SessionStore] = None,
        extractor: Optional[SwapQuoteExtractor] = None,
    ):
        self.config = config or default_settings
        self.wallet = wallet
        self.transport = transport or ConnectionTransport(
            self.config.agent_ws_url,
            policy=self.config.reconnect_policy(),
        )
        self.store = store or SessionStore()
        self.extractor = extractor or SwapQuoteExtractor(
            self.config.hedera_network,
            default_fee=self.config.default_swap_fee,
        )

        self.handshake = AuthHandshake(self._send_envelope, markers=self.config.auth_success_markers)
        self.coordinator = PendingTransactionCoordinator(
            wallet,
            self.store,
            send=self._send_envelope,
            post=self._post,
        )
        self.dispatcher = EventDispatcher(self.store, self.coordinator, self.extractor, self.handshake)

        self._queue: asyncio.Queue = asyncio.Queue()
        self._consumer: Optional[asyncio.Task] = None
        self._running = False
        self._state_listeners: List[Callable[[ConnectionState], Any]] = []

        self.transport.on_open(self._handle_open)
        self.transport.on_close(self._handle_close)
        self.transport.on_message(self._handle_frame)

    # Lifecycle

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self.coordinator.open()
        bind_session_context(agent_url=self.transport.url, account=self.wallet.identity)
        self._consumer = asyncio.create_task(self._consume())
        logger.info(f"Agent session starting against {self.transport.url}")
        await self.transport.connect()

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        await self.transport.disconnect(graceful=True)
        self.coordinator.close()
        self.handshake.reset()

        consumer = self._consumer
        self._consumer = None
        if consumer is not None:
            consumer.cancel()
            try:
                await consumer
            except asyncio.CancelledError:
                pass
        logger.info("Agent session stopped")
        clear_session_context()

    async def __aenter__(self) -> "AgentSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    # Observable state

    @property
    def connection_state(self) -> ConnectionState:
        if self.handshake.authenticated and self.transport.connected:
            return ConnectionState.AUTHENTICATED
        if self.transport.connected and self.handshake.pending:
            return ConnectionState.AUTHENTICATING
        if self.transport.connected:
            return ConnectionState.CONNECTED
        if self.transport.connecting:
            return ConnectionState.CONNECTING
        return ConnectionState.DISCONNECTED

    @property
    def last_error(self) -> Optional[str]:
        return self.transport.last_error

    @property
    def loading(self) -> bool:
        return self.store.loading

    @property
    def conversations(self) -> List[Conversation]:
        return self.store.conversations

    @property
    def current_conversation(self) -> Optional[Conversation]:
        return self.store.current

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        return self.store.subscribe(listener)

    def on_connection_state(self, callback: Callable[[ConnectionState], Any]) -> None:
        self._state_listeners.append(callback)

    # Presentation API

    async def send_user_message(self, text: str) -> Optional[Turn]:
        """Append the user's turn and send it; raises AuthError before auth."""
        identity = self.handshake.require_authenticated()
        if not text or not text.strip():
            return None

        turn = self.store.add_user_turn(text)
        self.store.set_loading(True)
        try:
            await self._send_envelope(UserMessage(message=text, user_account_id=identity))
        except TransportError:
            self.store.set_loading(False)
            raise
        return turn

    def create_conversation(self) -> Conversation:
        return self.store.create_conversation()

    def select_conversation(self, conversation_id: str) -> Conversation:
        return self.store.select_conversation(conversation_id)

    def delete_conversation(self, conversation_id: str) -> bool:
        return self.store.delete_conversation(conversation_id)

    def rename_conversation(self, conversation_id: str, title: str) -> Conversation:
        return self.store.rename_conversation(conversation_id, title)

    async def wallet_changed(self) -> None:
        """Re-evaluate authentication after the wallet connected, disconnected or switched account."""
        await self.handshake.maybe_authenticate(self.transport.connected, self.wallet.identity)
        self._notify_state()

    async def switch_account(self, account_id: str) -> None:
        """Point the wallet at another account and authenticate as it."""
        logger.info(f"Switching account to {account_id}")
        self.wallet.switch_account(account_id)
        bind_session_context(account=account_id)
        await self.wallet_changed()

    # Transport callbacks

    async def _handle_open(self) -> None:
        self._notify_state()
        await self.wallet_changed()

    def _handle_close(self, code: int, will_reconnect: bool) -> None:
        self.handshake.reset()
        logger.info(f"Connection closed (code {code}, reconnect={will_reconnect})")
        self._notify_state()

    def _handle_frame(self, frame: Any) -> None:
        try:
            envelope = codec.decode(frame)
        except DecodeError as e:
            logger.warning(f"Dropping inbound frame: {e}")
            return
        self._post(envelope)

    # Event queue

    def _post(self, event: QueuedEvent) -> None:
        self._queue.put_nowait(event)

    async def _consume(self) -> None:
        while True:
            event = await self._queue.get()
            was_authenticated = self.handshake.authenticated
            try:
                await self.dispatcher.dispatch(event)
            except Exception as e:
                logger.exception(f"Failed to apply {type(event).__name__}: {e}")
            finally:
                self._queue.task_done()
            if self.handshake.authenticated != was_authenticated:
                self._notify_state()

    async def drain(self) -> None:
        """Wait until every queued event has been applied."""
        await self._queue.join()

    async def _send_envelope(self, envelope: Any) -> None:
        await self.transport.send(codec.encode(envelope))

    def _notify_state(self) -> None:
        state = self.connection_state
        for callback in list(self._state_listeners):
            try:
                callback(state)
            except Exception as e:
                logger.error(f"Connection state listener error: {e}")


__all__ = ["AgentSession"]
