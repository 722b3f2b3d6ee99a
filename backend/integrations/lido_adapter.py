"""Lido liquid staking adapter (stETH / wstETH on Ethereum)."""

import logging

from integrations.defi_protocol import Position, PriceSource, Token
from integrations.exceptions import ProviderError
from integrations.source_protocol import TokenBalanceSource

logger = logging.getLogger(__name__)

# Approximate wstETH -> stETH rate; stETH is 1:1 with ETH
WSTETH_RATE = 1.15
LIDO_APY = 3.5


class LidoAdapter:
    """Reports staked ETH held as Lido receipt tokens.

    Positions are discovered from the wallet's token balances: any balance
    tagged with protocol ``lido`` is converted to its ETH equivalent and
    valued at the current ETH price.
    """

    def __init__(self, balances: TokenBalanceSource, prices: PriceSource, apy: float = LIDO_APY):
        self._balances = balances
        self._prices = prices
        self._apy = apy

    @property
    def name(self) -> str:
        return "lido"

    @property
    def display_name(self) -> str:
        return "Lido Finance"

    @property
    def protocol_type(self) -> str:
        return "staking"

    @property
    def supported_chains(self) -> list[str]:
        return ["ethereum"]

    def _eth_price(self) -> float:
        try:
            return self._prices.get_current_prices(["ETH"]).get("ETH", 0.0)
        except ProviderError:
            # Still report the position, just without a value
            logger.warning("Lido: ETH price unavailable, valuing positions at 0", exc_info=True)
            return 0.0

    def get_positions(self, address: str, chain: str) -> list[Position]:
        if chain not in self.supported_chains:
            return []

        receipts = [
            b for b in self._balances.get_token_balances(address, chain)
            if b.protocol == self.name
        ]
        if not receipts:
            return []

        eth_price = self._eth_price()
        positions = []
        for balance in receipts:
            rate = WSTETH_RATE if balance.symbol.lower() == "wsteth" else 1.0
            eth_amount = balance.total * rate
            value = eth_amount * eth_price
            positions.append(
                Position(
                    protocol=self.name,
                    protocol_name=self.display_name,
                    type=self.protocol_type,
                    chain=chain,
                    deposit_tokens=[Token("ETH", eth_amount, value)],
                    receive_tokens=[Token(balance.symbol, balance.total, value)],
                    value_usd=value,
                    apy=self._apy,
                )
            )
        return positions
