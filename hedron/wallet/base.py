from abc import ABC, abstractmethod
from typing import Optional


class WalletSigner(ABC):
    """External wallet capability: identity plus transaction signing.

    Implementations wrap a real wallet connection (WalletConnect, a hardware
    wallet bridge, ...). ``sign_bytes`` receives the frozen transaction bytes
    produced by the agent and returns the network transaction id once the
    wallet has signed and submitted it. It raises ``SignerError`` (or any
    other exception) when the user rejects or the wallet cannot sign.
    """

    @property
    @abstractmethod
    def current_address(self) -> Optional[str]:
        """Connected account id, e.g. ``0.0.123456``."""
        pass

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        pass

    @abstractmethod
    async def sign_bytes(self, payload: bytes) -> str:
        """Sign and submit ``payload``; return the transaction id."""
        pass

    def switch_account(self, account_id: Optional[str]) -> None:
        """Select another account; wallets without account switching refuse."""
        raise NotImplementedError(f"{type(self).__name__} cannot switch accounts")

    @property
    def identity(self) -> Optional[str]:
        """Account id when the wallet is connected, else None."""
        if not self.is_connected:
            return None
        return self.current_address or None
