"""Compound lending adapter (cToken deposits on Ethereum).

cTokens are not 1:1 with their underlying: each cToken redeems for an
exchange-rate's worth of the supplied asset. Rates here are approximate
snapshots; unknown cTokens fall back to ``DEFAULT_EXCHANGE_RATE``.
"""

import logging
from dataclasses import dataclass

from integrations.defi_protocol import Position, PriceSource, Token
from integrations.exceptions import ProviderError
from integrations.source_protocol import TokenBalanceSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CTokenMarket:
    underlying: str
    exchange_rate: float


C_TOKEN_MARKETS: dict[str, CTokenMarket] = {
    "cdai": CTokenMarket("DAI", 0.0225),
    "cusdc": CTokenMarket("USDC", 0.0228),
    "cusdt": CTokenMarket("USDT", 0.0223),
    "ceth": CTokenMarket("ETH", 0.0204),
    "cwbtc": CTokenMarket("WBTC", 0.0205),
}

DEFAULT_EXCHANGE_RATE = 0.02

SUPPLY_APYS: dict[str, float] = {
    "DAI": 2.5,
    "USDC": 2.8,
    "USDT": 3.0,
    "ETH": 1.0,
    "WBTC": 0.3,
}

_PRICE_ALIASES = {"WBTC": "BTC"}


def resolve_market(symbol: str) -> CTokenMarket:
    """Map a cToken symbol to its underlying asset and exchange rate."""
    known = C_TOKEN_MARKETS.get(symbol.lower())
    if known:
        return known
    if len(symbol) > 1 and symbol[0] in "cC":
        return CTokenMarket(symbol[1:].upper(), DEFAULT_EXCHANGE_RATE)
    return CTokenMarket(symbol, DEFAULT_EXCHANGE_RATE)


class CompoundAdapter:
    """Reports supplied assets held as Compound cTokens."""

    def __init__(self, balances: TokenBalanceSource, prices: PriceSource):
        self._balances = balances
        self._prices = prices

    @property
    def name(self) -> str:
        return "compound"

    @property
    def display_name(self) -> str:
        return "Compound"

    @property
    def protocol_type(self) -> str:
        return "lending"

    @property
    def supported_chains(self) -> list[str]:
        return ["ethereum"]

    def get_positions(self, address: str, chain: str) -> list[Position]:
        if chain not in self.supported_chains:
            return []

        c_tokens = [
            b for b in self._balances.get_token_balances(address, chain)
            if b.protocol == self.name
        ]
        if not c_tokens:
            return []

        markets = [resolve_market(b.symbol) for b in c_tokens]
        price_symbols = sorted({_PRICE_ALIASES.get(m.underlying, m.underlying) for m in markets})
        try:
            prices = self._prices.get_current_prices(price_symbols)
        except ProviderError:
            logger.warning("Compound: price lookup failed, valuing positions at 0", exc_info=True)
            prices = {}

        positions = []
        for balance, market in zip(c_tokens, markets):
            underlying_amount = balance.total * market.exchange_rate
            price = prices.get(_PRICE_ALIASES.get(market.underlying, market.underlying), 0.0)
            value = underlying_amount * price
            positions.append(
                Position(
                    protocol=self.name,
                    protocol_name=self.display_name,
                    type=self.protocol_type,
                    chain=chain,
                    deposit_tokens=[Token(market.underlying, underlying_amount, value)],
                    receive_tokens=[Token(balance.symbol, balance.total, value)],
                    value_usd=value,
                    apy=SUPPLY_APYS.get(market.underlying, 0.0),
                )
            )
        return positions
