"""Aave lending adapter (aToken deposits)."""

import logging

from integrations.defi_protocol import Position, PriceSource, Token
from integrations.exceptions import ProviderError
from integrations.source_protocol import TokenBalanceSource

logger = logging.getLogger(__name__)

A_TOKEN_UNDERLYING: dict[str, str] = {
    "adai": "DAI",
    "ausdc": "USDC",
    "ausdt": "USDT",
    "aweth": "WETH",
    "awbtc": "WBTC",
    "aeth": "ETH",
    "amatic": "MATIC",
}

# Approximate supply APYs (%); unknown underlyings report 0
SUPPLY_APYS: dict[str, float] = {
    "DAI": 3.5,
    "USDC": 3.8,
    "USDT": 4.0,
    "WETH": 1.5,
    "WBTC": 0.5,
    "ETH": 1.5,
}

# Wrapped assets are priced as their native counterpart
_PRICE_ALIASES = {"WETH": "ETH", "WBTC": "BTC"}


# Aave v3 aTokens carry a market prefix: aEthUSDC, aPolWETH, aArbDAI, aOptUSDT
V3_MARKET_PREFIXES = ("aeth", "apol", "aarb", "aopt")


def resolve_underlying(symbol: str) -> str:
    """Map an aToken symbol to its underlying asset."""
    lower = symbol.lower()
    known = A_TOKEN_UNDERLYING.get(lower)
    if known:
        return known
    for prefix in V3_MARKET_PREFIXES:
        if lower.startswith(prefix) and len(symbol) > len(prefix):
            return symbol[len(prefix):].upper()
    if len(symbol) > 1 and symbol[0] in "aA":
        return symbol[1:].upper()
    return symbol


class AaveAdapter:
    """Reports supplied assets held as Aave aTokens."""

    def __init__(self, balances: TokenBalanceSource, prices: PriceSource):
        self._balances = balances
        self._prices = prices

    @property
    def name(self) -> str:
        return "aave"

    @property
    def display_name(self) -> str:
        return "Aave"

    @property
    def protocol_type(self) -> str:
        return "lending"

    @property
    def supported_chains(self) -> list[str]:
        return ["ethereum", "polygon", "arbitrum", "optimism"]

    def get_positions(self, address: str, chain: str) -> list[Position]:
        if chain not in self.supported_chains:
            return []

        a_tokens = [
            b for b in self._balances.get_token_balances(address, chain)
            if b.protocol == self.name
        ]
        if not a_tokens:
            return []

        underlyings = [resolve_underlying(b.symbol) for b in a_tokens]
        price_symbols = sorted({_PRICE_ALIASES.get(u, u) for u in underlyings})
        try:
            prices = self._prices.get_current_prices(price_symbols)
        except ProviderError:
            logger.warning("Aave: price lookup failed, valuing positions at 0", exc_info=True)
            prices = {}

        positions = []
        for balance, underlying in zip(a_tokens, underlyings):
            price = prices.get(_PRICE_ALIASES.get(underlying, underlying), 0.0)
            value = balance.total * price
            positions.append(
                Position(
                    protocol=self.name,
                    protocol_name=self.display_name,
                    type=self.protocol_type,
                    chain=chain,
                    deposit_tokens=[Token(underlying, balance.total, value)],
                    receive_tokens=[Token(balance.symbol, balance.total, value)],
                    value_usd=value,
                    apy=SUPPLY_APYS.get(underlying, 0.0),
                )
            )
        return positions
