"""Tests for the authentication handshake and its success predicate."""

import pytest

from hedron.core.errors import AuthError
from hedron.core.handshake import AuthHandshake, is_auth_success
from hedron.types.envelope import ConnectionAuth, SystemMessage


class RecordingSend:
    def __init__(self):
        self.sent = []

    async def __call__(self, envelope):
        self.sent.append(envelope)


class TestIsAuthSuccess:
    """The single place where acknowledgement text is recognised."""

    def test_marker_matches_case_insensitively(self):
        assert is_auth_success(SystemMessage(message="authenticated SUCCESSFULLY as 0.0.100"))

    def test_unrelated_notice(self):
        assert not is_auth_success(SystemMessage(message="Processing your request"))

    def test_error_level_never_counts(self):
        notice = SystemMessage(level="error", message="Authenticated successfully? No: bad signature")

        assert not is_auth_success(notice)

    def test_custom_markers(self):
        notice = SystemMessage(message="Welcome back")

        assert is_auth_success(notice, ["welcome"])
        assert not is_auth_success(notice, [])


class TestAuthHandshake:
    """Auth is sent once per connected identity and flipped by the ack."""

    @pytest.mark.asyncio
    async def test_single_auth_then_ack(self):
        send = RecordingSend()
        handshake = AuthHandshake(send)

        assert await handshake.maybe_authenticate(True, "0.0.100")
        assert not await handshake.maybe_authenticate(True, "0.0.100")

        assert len(send.sent) == 1
        assert isinstance(send.sent[0], ConnectionAuth)
        assert send.sent[0].user_account_id == "0.0.100"
        assert handshake.pending

        ack = SystemMessage(message="Authenticated successfully")
        assert handshake.observe(ack)
        assert handshake.authenticated
        assert not handshake.observe(ack)
        assert len(send.sent) == 1
        assert handshake.require_authenticated() == "0.0.100"

    @pytest.mark.asyncio
    async def test_no_auth_without_connection_or_identity(self):
        send = RecordingSend()
        handshake = AuthHandshake(send)

        assert not await handshake.maybe_authenticate(False, "0.0.100")
        assert not await handshake.maybe_authenticate(True, None)
        assert send.sent == []

    def test_ack_without_attempt_is_ignored(self):
        handshake = AuthHandshake(RecordingSend())

        assert not handshake.observe(SystemMessage(message="Authenticated successfully"))
        assert not handshake.authenticated

    @pytest.mark.asyncio
    async def test_identity_change_reauthenticates(self):
        send = RecordingSend()
        handshake = AuthHandshake(send)
        await handshake.maybe_authenticate(True, "0.0.100")
        handshake.observe(SystemMessage(message="Authenticated successfully"))

        assert await handshake.maybe_authenticate(True, "0.0.200")

        assert not handshake.authenticated
        assert [env.user_account_id for env in send.sent] == ["0.0.100", "0.0.200"]

    @pytest.mark.asyncio
    async def test_reset_allows_auth_on_next_connection(self):
        send = RecordingSend()
        handshake = AuthHandshake(send)
        await handshake.maybe_authenticate(True, "0.0.100")
        handshake.observe(SystemMessage(message="Authenticated successfully"))

        handshake.reset()

        assert not handshake.authenticated
        with pytest.raises(AuthError):
            handshake.require_authenticated()
        assert await handshake.maybe_authenticate(True, "0.0.100")
        assert len(send.sent) == 2

    @pytest.mark.asyncio
    async def test_failed_send_can_be_retried(self):
        class FailingSend(RecordingSend):
            async def __call__(self, envelope):
                raise ConnectionError("socket gone")

        handshake = AuthHandshake(FailingSend())

        with pytest.raises(ConnectionError):
            await handshake.maybe_authenticate(True, "0.0.100")
        assert not handshake.pending
