"""Unit tests for conversation state models and wallet helpers."""

import pytest

from hedron.core.errors import InvalidTransitionError, SignerError
from hedron.types.chat import (
    Author,
    ConnectionState,
    Conversation,
    TransactionRequest,
    TransactionStatus,
    Turn,
)
from hedron.wallet import SimulatedWallet, StaticWallet


class TestTransactionRequest:
    def test_starts_pending(self):
        request = TransactionRequest(original_query="swap", payload=b"\x0a\xff")

        assert request.status is TransactionStatus.PENDING
        assert not request.status.is_terminal
        assert request.hex == "0aff"

    def test_success_is_terminal(self):
        request = TransactionRequest(original_query="swap", payload=b"\x01")

        request.mark_success("0.0.555@123.456")

        assert request.status.is_terminal
        assert request.transaction_id == "0.0.555@123.456"
        with pytest.raises(InvalidTransitionError):
            request.mark_success("0.0.555@999.999")
        assert request.transaction_id == "0.0.555@123.456"

    def test_failure_records_reason(self):
        request = TransactionRequest(original_query="swap", payload=b"\x01")

        request.mark_failed("rejected: User rejected")

        assert request.status is TransactionStatus.FAILED
        assert request.failure_reason == "rejected: User rejected"


class TestConversation:
    def test_turn_ids_are_unique(self):
        conversation = Conversation()
        turn = Turn(author=Author.USER, text="hi")

        conversation.append(turn)

        with pytest.raises(ValueError):
            conversation.append(turn)
        assert conversation.get_turn(turn.id) is turn
        assert not conversation.is_empty

    def test_existing_turns_are_indexed(self):
        turn = Turn(author=Author.AGENT, text="hello")
        conversation = Conversation(turns=[turn])

        with pytest.raises(ValueError):
            conversation.append(turn)


def test_only_authenticated_state_can_send():
    assert [state for state in ConnectionState if state.can_send] == [ConnectionState.AUTHENTICATED]


class TestWallets:
    def test_identity_requires_connection(self):
        wallet = StaticWallet("0.0.100", connected=False)

        assert wallet.identity is None
        wallet.set_connected(True)
        assert wallet.identity == "0.0.100"

    def test_switch_account(self):
        wallet = StaticWallet("0.0.100")

        wallet.switch_account("0.0.200")

        assert wallet.identity == "0.0.200"

    @pytest.mark.asyncio
    async def test_static_wallet_without_transaction_id_fails(self):
        with pytest.raises(SignerError):
            await StaticWallet("0.0.100").sign_bytes(b"\x01")

    @pytest.mark.asyncio
    async def test_simulated_wallet_returns_hedera_transaction_id(self):
        wallet = SimulatedWallet("0.0.100", delay=0)

        transaction_id = await wallet.sign_bytes(b"\x01\x02")

        payer, _, valid_start = transaction_id.partition("@")
        seconds, _, nanos = valid_start.partition(".")
        assert payer == "0.0.100"
        assert seconds.isdigit()
        assert len(nanos) == 9
        assert wallet.signed == [b"\x01\x02"]
