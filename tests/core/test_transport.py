"""
Tests for the websocket transport.

Uses an in-memory socket and connect factory so no network is involved, and
a recording sleep so reconnect delays can be asserted without waiting.
"""

import asyncio

import pytest

from hedron.core.errors import NotConnectedError
from hedron.core.transport import CLOSE_ABNORMAL, CLOSE_NORMAL, ConnectionTransport, ReconnectPolicy


class FakeSocket:
    def __init__(self):
        self.sent = []
        self.close_code = None
        self.closed_with = None
        self._inbox = asyncio.Queue()

    async def send(self, frame):
        self.sent.append(frame)

    async def close(self, code=CLOSE_NORMAL, reason=""):
        self.closed_with = code
        self.close_code = code
        self._inbox.put_nowait(None)

    def feed(self, frame):
        self._inbox.put_nowait(frame)

    def drop(self, code):
        """Simulate the server closing the connection."""
        self.close_code = code
        self._inbox.put_nowait(None)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._inbox.get()
        if item is None:
            raise StopAsyncIteration
        return item


class FakeConnector:
    def __init__(self, failures=0):
        self.failures = failures
        self.calls = 0
        self.sockets = []

    async def __call__(self, url):
        self.calls += 1
        if self.failures:
            self.failures -= 1
            raise OSError("Connection refused")
        ws = FakeSocket()
        self.sockets.append(ws)
        return ws


class RecordingSleep:
    def __init__(self, block=False):
        self.delays = []
        self.block = block

    async def __call__(self, delay):
        self.delays.append(delay)
        if self.block:
            await asyncio.Event().wait()
        await asyncio.sleep(0)


async def settle(rounds=20):
    for _ in range(rounds):
        await asyncio.sleep(0)


def make_transport(connector=None, sleep=None, **policy):
    policy.setdefault("jitter", 0)
    return ConnectionTransport(
        "ws://agent.test",
        policy=ReconnectPolicy(**policy),
        connect_factory=connector or FakeConnector(),
        sleep=sleep or RecordingSleep(),
    )


class TestReconnectPolicy:
    """Delay schedule for reconnect attempts."""

    def test_first_delay_is_base(self):
        assert ReconnectPolicy().delay_for(1) == 3.0

    def test_exponential_growth_is_capped(self):
        policy = ReconnectPolicy(base_delay=3.0, multiplier=2.0, max_delay=10.0, jitter=0)

        assert [policy.delay_for(n) for n in range(1, 5)] == [3.0, 6.0, 10.0, 10.0]

    def test_jitter_is_proportional(self):
        policy = ReconnectPolicy(jitter=0.1)

        assert policy.delay_for(2, rng=lambda: 1.0) == pytest.approx(6.6)
        assert policy.delay_for(1, rng=lambda: 1.0) == 3.0

    def test_attempt_budget(self):
        policy = ReconnectPolicy(max_attempts=2)

        assert policy.allows(2)
        assert not policy.allows(3)
        assert ReconnectPolicy().allows(1000)


class TestConnect:
    """Opening the connection and exchanging frames."""

    @pytest.mark.asyncio
    async def test_connect_is_idempotent(self):
        connector = FakeConnector()
        transport = make_transport(connector)
        opened = []
        transport.on_open(lambda: opened.append(True))

        await transport.connect()
        await transport.connect()

        assert transport.connected
        assert connector.calls == 1
        assert opened == [True]
        await transport.disconnect()

    @pytest.mark.asyncio
    async def test_frames_reach_listeners_in_order(self):
        connector = FakeConnector()
        transport = make_transport(connector)
        received = []
        transport.on_message(received.append)

        await transport.connect()
        connector.sockets[0].feed("one")
        connector.sockets[0].feed("two")
        await settle()

        assert received == ["one", "two"]
        await transport.disconnect()

    @pytest.mark.asyncio
    async def test_send_while_disconnected(self):
        transport = make_transport()

        with pytest.raises(NotConnectedError):
            await transport.send("{}")
        assert transport.last_error == "Not connected to backend"

    @pytest.mark.asyncio
    async def test_send_writes_to_socket(self):
        connector = FakeConnector()
        transport = make_transport(connector)

        await transport.connect()
        await transport.send('{"type":"USER_MESSAGE"}')

        assert connector.sockets[0].sent == ['{"type":"USER_MESSAGE"}']
        await transport.disconnect()


class TestReconnect:
    """Close handling and reconnect scheduling."""

    @pytest.mark.asyncio
    async def test_clean_close_does_not_reconnect(self):
        connector = FakeConnector()
        sleep = RecordingSleep()
        transport = make_transport(connector, sleep)
        closes = []
        transport.on_close(lambda code, again: closes.append((code, again)))

        await transport.connect()
        connector.sockets[0].drop(CLOSE_NORMAL)
        await settle()

        assert not transport.connected
        assert closes == [(CLOSE_NORMAL, False)]
        assert sleep.delays == []
        assert connector.calls == 1

    @pytest.mark.asyncio
    async def test_abnormal_close_reconnects_once_after_base_delay(self):
        connector = FakeConnector()
        sleep = RecordingSleep()
        transport = make_transport(connector, sleep)
        closes = []
        transport.on_close(lambda code, again: closes.append((code, again)))

        await transport.connect()
        connector.sockets[0].drop(CLOSE_ABNORMAL)
        await settle()

        assert closes == [(CLOSE_ABNORMAL, True)]
        assert sleep.delays == [3.0]
        assert connector.calls == 2
        assert transport.connected
        await transport.disconnect()

    @pytest.mark.asyncio
    async def test_close_sets_error_text(self):
        connector = FakeConnector()
        transport = make_transport(connector, RecordingSleep(block=True))

        await transport.connect()
        connector.sockets[0].drop(CLOSE_ABNORMAL)
        await settle()

        assert transport.last_error == "Connection lost. Attempting to reconnect..."
        assert transport.reconnect_pending
        await transport.disconnect()

    @pytest.mark.asyncio
    async def test_disconnect_cancels_pending_reconnect(self):
        connector = FakeConnector()
        transport = make_transport(connector, RecordingSleep(block=True))

        await transport.connect()
        connector.sockets[0].drop(CLOSE_ABNORMAL)
        await settle()
        await transport.disconnect()
        await settle()

        assert not transport.reconnect_pending
        assert connector.calls == 1

    @pytest.mark.asyncio
    async def test_graceful_disconnect_uses_normal_code(self):
        connector = FakeConnector()
        transport = make_transport(connector)
        closes = []
        transport.on_close(lambda code, again: closes.append((code, again)))

        await transport.connect()
        await transport.disconnect()

        assert connector.sockets[0].closed_with == CLOSE_NORMAL
        assert closes == [(CLOSE_NORMAL, False)]

    @pytest.mark.asyncio
    async def test_failed_connect_backs_off_until_budget_is_spent(self):
        connector = FakeConnector(failures=10)
        sleep = RecordingSleep()
        transport = make_transport(connector, sleep, max_attempts=2)

        await transport.connect()
        await settle()

        assert connector.calls == 3
        assert sleep.delays == [3.0, 6.0]
        assert not transport.connected
        assert transport.last_error == "Unable to reach the backend after 2 attempts"

    @pytest.mark.asyncio
    async def test_successful_reconnect_resets_backoff(self):
        connector = FakeConnector(failures=1)
        sleep = RecordingSleep()
        transport = make_transport(connector, sleep)

        await transport.connect()
        await settle()
        assert transport.connected

        connector.sockets[0].drop(CLOSE_ABNORMAL)
        await settle()

        assert sleep.delays == [3.0, 3.0]
        await transport.disconnect()
