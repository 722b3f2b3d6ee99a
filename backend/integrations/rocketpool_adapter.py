"""Rocket Pool liquid staking adapter (rETH on Ethereum)."""

import logging

from integrations.defi_protocol import Position, PriceSource, Token
from integrations.exceptions import ProviderError
from integrations.source_protocol import TokenBalanceSource

logger = logging.getLogger(__name__)

# Approximate rETH -> ETH rate; rETH accrues rewards into its exchange rate
RETH_RATE = 1.10
ROCKETPOOL_APY = 3.2


class RocketPoolAdapter:
    """Reports staked ETH held as rETH."""

    def __init__(self, balances: TokenBalanceSource, prices: PriceSource, apy: float = ROCKETPOOL_APY):
        self._balances = balances
        self._prices = prices
        self._apy = apy

    @property
    def name(self) -> str:
        return "rocketpool"

    @property
    def display_name(self) -> str:
        return "Rocket Pool"

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
            logger.warning("Rocket Pool: ETH price unavailable, valuing positions at 0", exc_info=True)
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
            eth_amount = balance.total * RETH_RATE
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
