"""
Pending-Transaction Coordinator

Tracks sign requests from the agent, hands their payloads to the wallet and
reports the outcome back to the backend. Signing runs as a background task;
its completion is posted back onto the session's event queue so the state
change is applied on the same serialized path as inbound envelopes.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional, Set

from ..types.chat import TransactionRequest, Turn
from ..types.envelope import TransactionResult
from ..wallet.base import WalletSigner
from .errors import InvalidTransitionError, SignerError, SignerFailure, TransportError
from .session_store import SessionStore

logger = logging.getLogger(__name__)

# Receipt-status strings reported in TRANSACTION_RESULT
RESULT_STATUS_SUCCESS = "SUCCESS"
RESULT_STATUS_FAILED = "FAILED"


class SignState(str, Enum):
    RECEIVED = "received"
    AWAITING_SIGNATURE = "awaiting_signature"
    SIGNED = "signed"
    SIGN_FAILED = "sign_failed"


SIGN_TRANSITIONS: Dict[SignState, Set[SignState]] = {
    SignState.RECEIVED: {
        SignState.AWAITING_SIGNATURE,
        SignState.SIGN_FAILED,  # Wallet absent or payload unusable
    },
    SignState.AWAITING_SIGNATURE: {
        SignState.SIGNED,
        SignState.SIGN_FAILED,
    },
    SignState.SIGNED: set(),
    SignState.SIGN_FAILED: set(),
}


@dataclass
class PendingSignRequest:
    conversation_id: str
    turn_id: str
    request: TransactionRequest
    state: SignState = SignState.RECEIVED
    task: Optional[asyncio.Task] = None

    def advance(self, to_state: SignState) -> None:
        if to_state not in SIGN_TRANSITIONS[self.state]:
            raise InvalidTransitionError(self.state.value, to_state.value, "sign request")
        self.state = to_state


@dataclass(frozen=True)
class SigningOutcome:
    """Result of one signer invocation, posted back to the event queue."""

    turn_id: str
    transaction_id: Optional[str] = None
    error: Optional[SignerError] = None

    @property
    def success(self) -> bool:
        return self.error is None and bool(self.transaction_id)


def classify_signer_exception(error: Exception) -> SignerError:
    if isinstance(error, SignerError):
        return error
    text = str(error) or type(error).__name__
    lowered = text.lower()
    if "reject" in lowered or "denied" in lowered or "declined" in lowered:
        reason = SignerFailure.REJECTED
    elif "not connected" in lowered or "no wallet" in lowered or "session" in lowered:
        reason = SignerFailure.WALLET_UNAVAILABLE
    elif isinstance(error, (ValueError, TypeError)):
        reason = SignerFailure.INVALID_PAYLOAD
    else:
        reason = SignerFailure.UNKNOWN
    return SignerError(text, reason)


class PendingTransactionCoordinator:
    """Owns the pending map of in-flight sign requests, keyed by turn id."""

    def __init__(
        self,
        wallet: WalletSigner,
        store: SessionStore,
        *,
        send: Callable[[TransactionResult], Awaitable[None]],
        post: Callable[[SigningOutcome], None],
    ):
        self.wallet = wallet
        self._store = store
        self._send = send
        self._post = post
        self._pending: Dict[str, PendingSignRequest] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False
        self._generation = 0

    @property
    def pending(self) -> Dict[str, PendingSignRequest]:
        return dict(self._pending)

    def submit(self, conversation_id: str, turn: Turn) -> PendingSignRequest:
        """Register a pending request and start the signer without waiting on it."""
        if turn.transaction is None:
            raise ValueError(f"Turn {turn.id} carries no transaction request")

        entry = PendingSignRequest(
            conversation_id=conversation_id,
            turn_id=turn.id,
            request=turn.transaction,
        )
        self._pending[turn.id] = entry
        logger.info(
            f"Sign request {turn.id} received ({len(turn.transaction.payload)} bytes) "
            f"for query: {turn.transaction.original_query!r}"
        )

        failure = self._precheck(turn.transaction)
        if failure is not None:
            logger.warning(f"Sign request {turn.id} cannot be signed: {failure}")
            self._post(SigningOutcome(turn_id=turn.id, error=failure))
            return entry

        entry.advance(SignState.AWAITING_SIGNATURE)
        entry.task = asyncio.create_task(self._sign(turn.id, turn.transaction.payload, self._generation))
        self._tasks.add(entry.task)
        entry.task.add_done_callback(self._tasks.discard)
        return entry

    def _precheck(self, request: TransactionRequest) -> Optional[SignerError]:
        if not self.wallet.is_connected:
            return SignerError("Wallet is not connected", SignerFailure.WALLET_UNAVAILABLE)
        if not request.payload:
            return SignerError("Transaction payload is empty", SignerFailure.INVALID_PAYLOAD)
        return None

    async def _sign(self, turn_id: str, payload: bytes, generation: int) -> None:
        try:
            transaction_id = await self.wallet.sign_bytes(payload)
        except Exception as e:
            outcome = SigningOutcome(turn_id=turn_id, error=classify_signer_exception(e))
        else:
            if transaction_id:
                outcome = SigningOutcome(turn_id=turn_id, transaction_id=str(transaction_id))
            else:
                outcome = SigningOutcome(
                    turn_id=turn_id,
                    error=SignerError("Wallet returned no transaction id", SignerFailure.UNKNOWN),
                )

        if self._closed or generation != self._generation:
            logger.debug(f"Ignoring late signer completion for {turn_id}")
            return
        self._post(outcome)

    async def complete(self, outcome: SigningOutcome) -> Optional[TransactionResult]:
        """Apply a signer outcome: update the turn, report upstream, clear loading."""
        if self._closed:
            return None
        entry = self._pending.pop(outcome.turn_id, None)
        if entry is None:
            logger.warning(f"No pending sign request for turn {outcome.turn_id}")
            return None

        if outcome.success:
            entry.advance(SignState.SIGNED)
            entry.request.mark_success(outcome.transaction_id)
            result = TransactionResult(
                success=True,
                transaction_id=outcome.transaction_id,
                status=RESULT_STATUS_SUCCESS,
            )
            logger.info(f"Transaction {outcome.transaction_id} signed for turn {outcome.turn_id}")
        else:
            error = outcome.error or SignerError("Signing failed")
            entry.advance(SignState.SIGN_FAILED)
            entry.request.mark_failed(str(error))
            result = TransactionResult(
                success=False,
                transaction_id="",
                status=RESULT_STATUS_FAILED,
            )
            logger.warning(f"Signing failed for turn {outcome.turn_id}: {error}")

        self._store.touch()
        self._store.set_loading(False)

        try:
            await self._send(result)
        except TransportError as e:
            logger.error(f"Could not report transaction result for turn {outcome.turn_id}: {e}")
        return result

    def open(self) -> None:
        """Accept requests again after ``close``; completions from before are still ignored."""
        self._closed = False
        self._generation += 1

    def close(self) -> None:
        """Stop tracking requests; in-flight signer calls finish on their own."""
        self._closed = True
        if self._pending:
            logger.info(f"Dropping {len(self._pending)} pending sign request(s)")
        self._pending.clear()
