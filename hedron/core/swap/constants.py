"""Constants and token metadata for swap-quote extraction."""

from __future__ import annotations

from typing import Dict, Tuple

# Phrases that mark an agent reply as describing a swap quote.
SWAP_QUOTE_MARKERS: Tuple[str, ...] = (
    'swap quote',
    'you pay',
    'you receive',
    'you will receive',
    "you'll receive",
    'you would receive',
    'exchange rate',
    'amounts out',
    'amounts in',
    'get_amounts_out',
    'get_amounts_in',
    'input amount',
    'output amount',
)

EXACT_OUTPUT_MARKERS: Tuple[str, ...] = (
    'exact output',
    'get_amounts_in',
    'amounts in',
)

# SaucerSwap V2 fee tier in hundredths of a basis point (3000 = 0.30%)
DEFAULT_FEE_TIER = 3000

# Token registry keyed by network → symbol → metadata.
TOKEN_REGISTRY: Dict[str, Dict[str, Dict[str, object]]] = {
    'mainnet': {
        'HBAR': {
            'symbol': 'HBAR',
            'token_id': 'HBAR',
            'decimals': 8,
            'aliases': {'hbar', 'hbars', 'hedera'},
        },
        'WHBAR': {
            'symbol': 'WHBAR',
            'token_id': '0.0.5566986',
            'decimals': 8,
            'aliases': {'whbar', 'wrapped hbar'},
        },
        'SAUCE': {
            'symbol': 'SAUCE',
            'token_id': '0.0.731861',
            'decimals': 6,
            'aliases': {'sauce', 'saucerswap'},
        },
        'USDC': {
            'symbol': 'USDC',
            'token_id': '0.0.456858',
            'decimals': 6,
            'aliases': {'usdc', 'usd coin'},
        },
        'BONZO': {
            'symbol': 'BONZO',
            'token_id': '0.0.123456',
            'decimals': 8,
            'aliases': {'bonzo'},
        },
    },
    'testnet': {
        'HBAR': {
            'symbol': 'HBAR',
            'token_id': 'HBAR',
            'decimals': 8,
            'aliases': {'hbar', 'hbars', 'hedera'},
        },
        'WHBAR': {
            'symbol': 'WHBAR',
            'token_id': '0.0.6499836',
            'decimals': 8,
            'aliases': {'whbar', 'wrapped hbar'},
        },
        'SAUCE': {
            'symbol': 'SAUCE',
            'token_id': '0.0.1183558',
            'decimals': 6,
            'aliases': {'sauce', 'saucerswap'},
        },
        'USDC': {
            'symbol': 'USDC',
            'token_id': '0.0.1418651',
            'decimals': 6,
            'aliases': {'usdc', 'usd coin'},
        },
        'BONZO': {
            'symbol': 'BONZO',
            'token_id': '0.0.2231533',
            'decimals': 8,
            'aliases': {'bonzo'},
        },
    },
}

# Flattened alias map built at import time
TOKEN_ALIAS_MAP: Dict[str, Dict[str, str]] = {}
for network, entries in TOKEN_REGISTRY.items():
    alias_map: Dict[str, str] = {}
    for symbol, metadata in entries.items():
        alias_map[symbol.lower()] = symbol
        for alias in metadata.get('aliases', set()):  # type: ignore[assignment]
            alias_map[str(alias).lower()] = symbol
    TOKEN_ALIAS_MAP[network] = alias_map

# Reverse lookup so a token id quoted by the agent resolves to its symbol
TOKEN_ID_TO_SYMBOL: Dict[str, Dict[str, str]] = {
    network: {str(meta['token_id']): symbol for symbol, meta in entries.items()}
    for network, entries in TOKEN_REGISTRY.items()
}

__all__ = [
    'SWAP_QUOTE_MARKERS',
    'EXACT_OUTPUT_MARKERS',
    'DEFAULT_FEE_TIER',
    'TOKEN_REGISTRY',
    'TOKEN_ALIAS_MAP',
    'TOKEN_ID_TO_SYMBOL',
]
