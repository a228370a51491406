"""
Heuristic swap-quote enrichment.

Agent replies often describe a swap in prose ("You pay 10 HBAR, you receive
0.44 SAUCE ..."). ``SwapQuoteExtractor`` turns such text into a ``SwapQuote``
so the presentation layer can render a quote card. This is best-effort: every
field has an ordered list of pattern alternatives (first match wins) and a
fallback default, and any miss yields ``None`` instead of an exception.
"""

from __future__ import annotations

import logging
import re
from decimal import ROUND_DOWN, Decimal, DivisionByZero, InvalidOperation
from typing import Any, Dict, List, Optional, Pattern, Sequence, Tuple

from ...types.swap import QuoteLeg, SwapQuote
from .constants import (
    DEFAULT_FEE_TIER,
    EXACT_OUTPUT_MARKERS,
    SWAP_QUOTE_MARKERS,
    TOKEN_ALIAS_MAP,
    TOKEN_ID_TO_SYMBOL,
    TOKEN_REGISTRY,
)

_AMOUNT = r'(?P<amount>\d[\d,]*(?:\.\d+)?)'
_TOKEN = r'(?P<token>0\.0\.\d+|[A-Za-z][A-Za-z0-9]{1,9})'
_APPROX = r'(?:~|≈|about|approximately|roughly|around)?\s*'
_RATE = r'(?P<rate>\d[\d,]*(?:\.\d+)?)'
_SYMBOL = r'(?:0\.0\.\d+|[A-Za-z][A-Za-z0-9]{1,9})'

INPUT_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(rf'you (?:pay|send|spend|sell)\s*:?\s*{_APPROX}{_AMOUNT}\s*{_TOKEN}', re.IGNORECASE),
    re.compile(rf'input(?: amount)?\s*:?\s*{_APPROX}{_AMOUNT}\s*{_TOKEN}', re.IGNORECASE),
    re.compile(rf'\b(?:swap|swapping|trade|trading|sell|selling|convert|converting)\s+{_AMOUNT}\s*{_TOKEN}', re.IGNORECASE),
)

OUTPUT_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(rf"you(?:'ll| will| would)? (?:receive|get)\s*:?\s*{_APPROX}{_AMOUNT}\s*{_TOKEN}", re.IGNORECASE),
    re.compile(rf'output(?: amount)?\s*:?\s*{_APPROX}{_AMOUNT}\s*{_TOKEN}', re.IGNORECASE),
    re.compile(rf'\b(?:for|into|receive|get)\s+{_APPROX}{_AMOUNT}\s*{_TOKEN}', re.IGNORECASE),
    re.compile(rf'(?:→|->)\s*{_APPROX}{_AMOUNT}\s*{_TOKEN}', re.IGNORECASE),
)

RATE_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(
        rf'(?<![\d.])1(?:\.0+)?\s*(?P<base>{_SYMBOL})\s*(?:=|≈|~|:)\s*{_RATE}\s*(?P<quote>{_SYMBOL})',
        re.IGNORECASE,
    ),
    re.compile(rf'(?:exchange )?rate\s*(?:of|is|:)?\s*{_RATE}', re.IGNORECASE),
)

FEE_PERCENT_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r'fees?(?: tier)?\s*(?:of|is|:)?\s*(?P<fee>\d+(?:\.\d+)?)\s*%', re.IGNORECASE),
    re.compile(r'(?P<fee>\d+(?:\.\d+)?)\s*%\s*(?:pool )?fee', re.IGNORECASE),
)

FEE_TIER_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r'fee tier\s*(?:of|is|:)?\s*(?P<tier>\d{3,5})\b(?!\s*%)', re.IGNORECASE),
)

PATH_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(
        r'(?:path|route)\s*:?\s*(?P<path>[A-Za-z0-9.]+(?:\s*(?:->|→|>|,)\s*[A-Za-z0-9.]+)+)',
        re.IGNORECASE,
    ),
)

GAS_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(
        r'gas(?: estimate)?\s*:?\s*(?P<gas>~?\d[\d,]*(?:\.\d+)?(?:\s*(?:HBAR|tinybars|gas|units))?)',
        re.IGNORECASE,
    ),
)

_PATH_SPLIT = re.compile(r'\s*(?:->|→|>|,)\s*')


class SwapQuoteExtractor:
    """Best-effort extraction of a swap quote from free-form agent text."""

    def __init__(
        self,
        network: str = 'mainnet',
        *,
        default_fee: int = DEFAULT_FEE_TIER,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.network = network if network in TOKEN_REGISTRY else 'mainnet'
        self.default_fee = default_fee
        self._logger = logger or logging.getLogger(__name__)

    def looks_like_quote(self, text: str) -> bool:
        lowered = text.lower()
        return any(marker in lowered for marker in SWAP_QUOTE_MARKERS)

    def extract(self, text: Optional[str]) -> Optional[SwapQuote]:
        """Return a quote, or None when the text does not describe one."""
        if not text or not self.looks_like_quote(text):
            return None
        try:
            return self._extract(text)
        except Exception as e:
            self._logger.warning(f'Swap quote extraction failed: {e}')
            return None

    def _extract(self, text: str) -> Optional[SwapQuote]:
        network = self._detect_network(text)

        input_match = self._match_leg(INPUT_PATTERNS, text, network)
        output_match = self._match_leg(OUTPUT_PATTERNS, text, network, exclude=input_match)
        if input_match is None or output_match is None:
            self._logger.debug('Swap markers present but input/output legs not found')
            return None

        in_symbol, in_amount = input_match[0], input_match[1]
        out_symbol, out_amount = output_match[0], output_match[1]
        if in_symbol == out_symbol:
            return None

        input_leg = self._build_leg(in_symbol, in_amount, network)
        output_leg = self._build_leg(out_symbol, out_amount, network)

        path = self._extract_path(text, network) or [input_leg.token_id, output_leg.token_id]
        hops = max(len(path) - 1, 1)
        fees = [self._extract_fee(text)] * hops

        exchange_rate = self._extract_rate(text, in_symbol, out_symbol, network)
        if exchange_rate is None:
            exchange_rate = self._computed_rate(in_amount, out_amount)
        if exchange_rate is None:
            return None

        operation = 'get_amounts_out'
        lowered = text.lower()
        if any(marker in lowered for marker in EXACT_OUTPUT_MARKERS):
            operation = 'get_amounts_in'

        return SwapQuote(
            operation=operation,
            network=network,
            input=input_leg,
            output=output_leg,
            path=path,
            fees=fees,
            exchange_rate=exchange_rate,
            gas_estimate=self._first_group(GAS_PATTERNS, text, 'gas'),
            original_message=text,
        )

    # Field extraction

    def _detect_network(self, text: str) -> str:
        lowered = text.lower()
        if 'testnet' in lowered:
            return 'testnet'
        if 'mainnet' in lowered:
            return 'mainnet'
        return self.network

    def _match_leg(
        self,
        patterns: Sequence[Pattern[str]],
        text: str,
        network: str,
        exclude: Optional[Tuple[str, Decimal, int]] = None,
    ) -> Optional[Tuple[str, Decimal, int]]:
        for pattern in patterns:
            for match in pattern.finditer(text):
                if exclude is not None and match.start() == exclude[2]:
                    continue
                symbol = self._resolve_symbol(match.group('token'), network)
                amount = self._to_decimal(match.group('amount'))
                if symbol is None or amount is None or amount <= 0:
                    continue
                return symbol, amount, match.start()
        return None

    def _extract_rate(self, text: str, in_symbol: str, out_symbol: str, network: str) -> Optional[str]:
        for pattern in RATE_PATTERNS:
            match = pattern.search(text)
            if not match:
                continue
            rate = self._to_decimal(match.group('rate'))
            if rate is None or rate <= 0:
                continue
            groups = match.groupdict()
            if groups.get('base') and groups.get('quote'):
                base = self._resolve_symbol(groups['base'], network)
                quote = self._resolve_symbol(groups['quote'], network)
                if base == out_symbol and quote == in_symbol:
                    # Quoted the other way round: 1 OUT = x IN
                    return self._decimal_to_str((Decimal(1) / rate).quantize(Decimal('0.000001'), rounding=ROUND_DOWN))
            return self._decimal_to_str(rate)
        return None

    def _computed_rate(self, in_amount: Decimal, out_amount: Decimal) -> Optional[str]:
        try:
            rate = (out_amount / in_amount).quantize(Decimal('0.000001'), rounding=ROUND_DOWN)
        except (InvalidOperation, DivisionByZero):
            return None
        return self._decimal_to_str(rate)

    def _extract_fee(self, text: str) -> int:
        for pattern in FEE_PERCENT_PATTERNS:
            match = pattern.search(text)
            if match:
                percent = self._to_decimal(match.group('fee'))
                if percent is not None:
                    return int((percent * 10000).to_integral_value(rounding=ROUND_DOWN))
        tier = self._first_group(FEE_TIER_PATTERNS, text, 'tier')
        if tier:
            return int(tier)
        return self.default_fee

    def _extract_path(self, text: str, network: str) -> Optional[List[str]]:
        raw = self._first_group(PATH_PATTERNS, text, 'path')
        if not raw:
            return None
        hops: List[str] = []
        for part in _PATH_SPLIT.split(raw.strip()):
            symbol = self._resolve_symbol(part, network)
            if symbol is None:
                return None
            hops.append(self._token_id(symbol, network))
        return hops if len(hops) >= 2 else None

    def _first_group(self, patterns: Sequence[Pattern[str]], text: str, group: str) -> Optional[str]:
        for pattern in patterns:
            match = pattern.search(text)
            if match:
                return match.group(group).strip()
        return None

    # Token helpers

    def _resolve_symbol(self, raw: Optional[str], network: str) -> Optional[str]:
        """Map a token mention to a symbol, rejecting ordinary words."""
        if not raw:
            return None
        candidate = raw.strip().rstrip('.,;:')
        if re.fullmatch(r'0\.0\.\d+', candidate):
            return TOKEN_ID_TO_SYMBOL.get(network, {}).get(candidate, candidate)
        alias = TOKEN_ALIAS_MAP.get(network, {}).get(candidate.lower())
        if alias:
            return alias
        # Unknown tickers are accepted only when written as tickers
        if candidate.isupper() and candidate.isalnum():
            return candidate
        return None

    def _token_id(self, symbol: str, network: str) -> str:
        meta = TOKEN_REGISTRY.get(network, {}).get(symbol)
        if meta:
            return str(meta['token_id'])
        return symbol

    def _build_leg(self, symbol: str, amount: Decimal, network: str) -> QuoteLeg:
        meta: Dict[str, Any] = TOKEN_REGISTRY.get(network, {}).get(symbol, {})
        decimals = meta.get('decimals')
        formatted = self._decimal_to_str(amount)
        base_units = formatted
        if isinstance(decimals, int):
            scaled = (amount * (Decimal(10) ** decimals)).quantize(Decimal('1'), rounding=ROUND_DOWN)
            base_units = str(int(scaled))
        return QuoteLeg(
            token=symbol,
            token_id=self._token_id(symbol, network),
            amount=base_units,
            formatted=formatted,
        )

    def _to_decimal(self, raw: Any) -> Optional[Decimal]:
        if raw is None:
            return None
        try:
            return Decimal(str(raw).replace(',', ''))
        except (InvalidOperation, ValueError, TypeError):
            return None

    def _decimal_to_str(self, value: Decimal) -> str:
        text = format(value, 'f')
        if '.' in text:
            text = text.rstrip('0').rstrip('.')
        return text or '0'
