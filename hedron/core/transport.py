"""
WebSocket transport to the agent backend.

Owns a single connection, tracks connected/connecting/last-error signals and
reconnects after abnormal closes using a capped exponential backoff.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional

import websockets
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI

from .errors import NotConnectedError, TransportError

logger = logging.getLogger(__name__)

CLOSE_NORMAL = 1000
CLOSE_GOING_AWAY = 1001
CLOSE_ABNORMAL = 1006

ConnectFactory = Callable[[str], Awaitable[Any]]
SleepFunc = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class ReconnectPolicy:
    """Delay schedule for reconnecting after abnormal closes.

    The first attempt waits ``base_delay``; every further consecutive failure
    multiplies the delay by ``multiplier`` up to ``max_delay`` and adds up to
    ``jitter`` (as a fraction of the delay) of random spread. ``max_attempts``
    bounds consecutive attempts; ``None`` retries forever.
    """

    base_delay: float = 3.0
    multiplier: float = 2.0
    max_delay: float = 60.0
    jitter: float = 0.1
    max_attempts: Optional[int] = None

    def delay_for(self, attempt: int, rng: Callable[[], float] = random.random) -> float:
        """Delay before the given 1-based attempt."""
        if attempt <= 1:
            return self.base_delay
        delay = min(self.base_delay * (self.multiplier ** (attempt - 1)), self.max_delay)
        if self.jitter:
            delay += delay * self.jitter * rng()
        return min(delay, self.max_delay)

    def allows(self, attempt: int) -> bool:
        return self.max_attempts is None or attempt <= self.max_attempts


class ConnectionTransport:
    """
    Full-duplex connection to the agent.

    Usage:
        transport = ConnectionTransport("ws://localhost:8080")
        transport.on_message(handle_frame)
        await transport.connect()
        await transport.send('{"type": "USER_MESSAGE", ...}')
        await transport.disconnect()
    """

    def __init__(
        self,
        url: str,
        *,
        policy: Optional[ReconnectPolicy] = None,
        connect_factory: Optional[ConnectFactory] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.url = url
        self.policy = policy or ReconnectPolicy()
        self._connect_factory = connect_factory or websockets.connect
        self._sleep = sleep

        self._ws: Any = None
        self._reader_task: Optional[asyncio.Task] = None
        self._reconnect_task: Optional[asyncio.Task] = None
        self._attempts = 0
        self._closing = False

        self.connected = False
        self.connecting = False
        self.last_error: Optional[str] = None
        self.last_close_code: Optional[int] = None

        self._open_callbacks: List[Callable] = []
        self._close_callbacks: List[Callable] = []
        self._message_callbacks: List[Callable] = []

    # Listener registration

    def on_open(self, callback: Callable[[], Any]) -> None:
        self._open_callbacks.append(callback)

    def on_close(self, callback: Callable[[int, bool], Any]) -> None:
        """Register ``callback(code, will_reconnect)``."""
        self._close_callbacks.append(callback)

    def on_message(self, callback: Callable[[str], Any]) -> None:
        self._message_callbacks.append(callback)

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_task is not None and not self._reconnect_task.done()

    async def connect(self) -> None:
        """Open the connection; no-op while open or while an attempt is in flight."""
        if self.connected or self.connecting:
            return

        self._closing = False
        self.connecting = True
        self.last_error = None
        logger.info(f"Connecting to agent at {self.url}")

        try:
            ws = await self._connect_factory(self.url)
        except (OSError, InvalidHandshake, InvalidURI, asyncio.TimeoutError) as e:
            self.connecting = False
            self.last_error = f"Connection error. Check if the backend is reachable at {self.url}."
            logger.warning(f"Failed to connect to {self.url}: {e}")
            await self._emit(self._close_callbacks, CLOSE_ABNORMAL, self._schedule_reconnect())
            return

        if self._closing:
            # disconnect() ran while the handshake was in flight
            self.connecting = False
            await ws.close(CLOSE_NORMAL, "Client disconnect")
            return

        self._ws = ws
        self._attempts = 0
        self.connecting = False
        self.connected = True
        self.last_close_code = None
        logger.info(f"Connected to agent at {self.url}")

        self._reader_task = asyncio.create_task(self._listen(ws))
        await self._emit(self._open_callbacks)

    async def disconnect(self, graceful: bool = True) -> None:
        """Close the connection and cancel any scheduled reconnect."""
        self._closing = True
        self._cancel_reconnect()

        ws = self._ws
        self._ws = None
        was_connected = self.connected
        self.connected = False
        self.connecting = False

        if ws is not None:
            code = CLOSE_NORMAL if graceful else CLOSE_GOING_AWAY
            try:
                await ws.close(code, "Client disconnect")
            except ConnectionClosed:
                pass
            self.last_close_code = code

        reader = self._reader_task
        self._reader_task = None
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass

        if was_connected:
            logger.info("Disconnected from agent")
            await self._emit(self._close_callbacks, self.last_close_code or CLOSE_NORMAL, False)

    async def send(self, frame: str) -> None:
        if not self.connected or self._ws is None:
            self.last_error = "Not connected to backend"
            raise NotConnectedError()
        try:
            await self._ws.send(frame)
        except ConnectionClosed as e:
            self.last_error = "Failed to send message"
            raise TransportError(f"Connection closed while sending: {e}") from e
        logger.debug(f"Sent frame: {frame[:200]}")

    async def _listen(self, ws) -> None:
        """Read frames until the socket closes, then decide on reconnection."""
        code = None
        try:
            async for message in ws:
                await self._emit(self._message_callbacks, message)
        except ConnectionClosed as e:
            code = e.rcvd.code if e.rcvd is not None else CLOSE_ABNORMAL
            logger.warning(f"Agent connection closed: {e}")
        except OSError as e:
            code = CLOSE_ABNORMAL
            logger.error(f"Agent connection error: {e}")

        if ws is not self._ws or self._closing:
            return

        if code is None:
            code = getattr(ws, "close_code", None) or CLOSE_ABNORMAL

        self._ws = None
        self._reader_task = None
        self.connected = False
        self.connecting = False
        self.last_close_code = code
        logger.info(f"Agent connection closed with code {code}")

        will_reconnect = False
        if code != CLOSE_NORMAL:
            self.last_error = "Connection lost. Attempting to reconnect..."
            will_reconnect = self._schedule_reconnect()
        await self._emit(self._close_callbacks, code, will_reconnect)

    def _schedule_reconnect(self) -> bool:
        if self._closing or self.reconnect_pending:
            return False

        attempt = self._attempts + 1
        if not self.policy.allows(attempt):
            self.last_error = f"Unable to reach the backend after {self._attempts} attempts"
            logger.error(f"Giving up reconnecting to {self.url} after {self._attempts} attempts")
            return False

        self._attempts = attempt
        delay = self.policy.delay_for(attempt)
        logger.info(f"Reconnecting to {self.url} in {delay:.1f}s (attempt {attempt})")
        self._reconnect_task = asyncio.create_task(self._reconnect_after(delay))
        return True

    async def _reconnect_after(self, delay: float) -> None:
        await self._sleep(delay)
        if self._closing:
            return
        self._reconnect_task = None
        await self.connect()

    def _cancel_reconnect(self) -> None:
        task = self._reconnect_task
        self._reconnect_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _emit(self, callbacks: List[Callable], *args) -> None:
        for callback in list(callbacks):
            try:
                result = callback(*args)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.exception(f"Transport listener error: {e}")
