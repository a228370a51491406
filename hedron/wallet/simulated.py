"""
Development wallets.

``StaticWallet`` holds a fixed account and either returns a preset
transaction id or raises a preset error; it is what tests and scripted
sessions use. ``SimulatedWallet`` mimics a user approving every request after
a short delay and fabricates a transaction id in Hedera's
``<payer>@<seconds>.<nanos>`` format.
"""

import asyncio
import logging
import time
from typing import List, Optional

from ..core.errors import SignerError, SignerFailure
from .base import WalletSigner

logger = logging.getLogger(__name__)


class StaticWallet(WalletSigner):
    def __init__(
        self,
        account_id: Optional[str],
        *,
        transaction_id: str = "",
        error: Optional[Exception] = None,
        connected: bool = True,
    ):
        self._account_id = account_id
        self._connected = connected
        self.transaction_id = transaction_id
        self.error = error
        self.signed: List[bytes] = []

    @property
    def current_address(self) -> Optional[str]:
        return self._account_id

    @property
    def is_connected(self) -> bool:
        return self._connected and bool(self._account_id)

    def switch_account(self, account_id: Optional[str]) -> None:
        self._account_id = account_id

    def set_connected(self, connected: bool) -> None:
        self._connected = connected

    async def sign_bytes(self, payload: bytes) -> str:
        self.signed.append(payload)
        if self.error is not None:
            raise self.error
        if not self.transaction_id:
            raise SignerError("Wallet returned no transaction id", SignerFailure.UNKNOWN)
        return self.transaction_id


class SimulatedWallet(StaticWallet):
    """Approves every request after ``delay`` seconds."""

    def __init__(self, account_id: Optional[str], *, delay: float = 2.0):
        super().__init__(account_id)
        self.delay = delay

    async def sign_bytes(self, payload: bytes) -> str:
        if not self.is_connected:
            raise SignerError("Wallet is not connected", SignerFailure.WALLET_UNAVAILABLE)
        self.signed.append(payload)
        logger.info(f"Simulating signature for {len(payload)} byte transaction")
        await asyncio.sleep(self.delay)
        seconds, nanos = divmod(time.time_ns(), 1_000_000_000)
        return f"{self.current_address}@{seconds}.{nanos:09d}"
