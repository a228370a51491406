"""Client-side session and protocol layer for the Hedron agent."""

from .core.session import AgentSession
from .wallet import SimulatedWallet, StaticWallet, WalletSigner

__all__ = ["AgentSession", "WalletSigner", "StaticWallet", "SimulatedWallet"]
