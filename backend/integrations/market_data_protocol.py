"""Market data provider protocol definitions.

Defines the interfaces for price feeds (crypto and equity index history,
current spot prices) and for per-chain gas price tiers.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Protocol


@dataclass
class PriceResult:
    """A single closing price for a symbol on a specific date."""

    symbol: str
    price_date: date  # Actual trading date (may differ from requested for weekends/holidays)
    close_price: Decimal
    source: str  # e.g., "yahoo"


@dataclass
class GasPrice:
    """Gas price tiers for one chain, in Gwei."""

    safe: float = 0.0
    normal: float = 0.0
    fast: float = 0.0
    base_fee: float = 0.0

    @property
    def is_empty(self) -> bool:
        return self.normal == 0 and self.safe == 0 and self.fast == 0


class HistoricalReturnProvider(Protocol):
    """Protocol for providers that can report a trailing return.

    Implementations fetch price data from external sources.
    """

    @property
    def provider_name(self) -> str:
        """Return the provider name (e.g., 'yahoo')."""
        ...

    def get_historical_return(self, symbol: str, days: int) -> float:
        """Percent change of ``symbol`` over the trailing ``days``.

        Raises:
            ProviderError: If the history is unavailable or insufficient.
        """
        ...


class SpotPriceProvider(Protocol):
    """Provider of current USD prices."""

    def get_current_prices(self, symbols: list[str]) -> dict[str, float]:
        """Return current prices keyed by uppercase symbol; unknown symbols are omitted."""
        ...


class GasPriceSource(Protocol):
    """One upstream source of gas price tiers (oracle API, JSON-RPC, ...)."""

    @property
    def source_name(self) -> str:
        ...

    def get_gas_price(self, chain: str) -> GasPrice:
        """Fetch current gas tiers for ``chain``.

        Raises:
            ProviderError: If the source is unavailable or does not serve the chain.
        """
        ...
