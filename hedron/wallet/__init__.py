from .base import WalletSigner
from .simulated import SimulatedWallet, StaticWallet

__all__ = ["WalletSigner", "StaticWallet", "SimulatedWallet"]
