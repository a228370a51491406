from typing import List, Literal, Optional

from pydantic import Field

from .base import WireModel


class QuoteLeg(WireModel):
    """One side of a swap quote."""

    token: str = Field(description="Token symbol, e.g. HBAR")
    token_id: str = Field(description="Hedera token id (0.0.x) or the symbol for native HBAR")
    amount: str = Field(description="Amount in base units")
    formatted: str = Field(description="Amount in human units")


class SwapQuote(WireModel):
    """Structured swap quote, either sent by the agent or extracted from its reply."""

    operation: Literal["get_amounts_out", "get_amounts_in"] = "get_amounts_out"
    network: Literal["mainnet", "testnet"] = "mainnet"
    input: QuoteLeg
    output: QuoteLeg
    path: List[str] = Field(default_factory=list)
    fees: List[int] = Field(default_factory=list, description="Pool fee tiers (3000 = 0.30%)")
    exchange_rate: str = Field(description="Output units per one input unit")
    gas_estimate: Optional[str] = None
    original_message: str = ""

    @property
    def fee_percentages(self) -> List[str]:
        return [f"{fee / 10000:.2f}%" for fee in self.fees]
