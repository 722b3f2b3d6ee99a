"""Market data service: thin router over the market data providers."""

import logging
from typing import Optional

from config import settings
from integrations.market_data_protocol import HistoricalReturnProvider, SpotPriceProvider
from integrations.yahoo_finance_client import INDEX_SYMBOLS

logger = logging.getLogger(__name__)


class MarketDataService:
    """Routes market data requests to the right provider.

    Equity index symbols (``SPX``, ``^GSPC``, ...) go to the index provider
    (Yahoo Finance); everything else is treated as crypto and goes to the
    crypto provider (CoinGecko). Spot prices always come from the crypto
    provider.
    """

    def __init__(
        self,
        index_provider: Optional[HistoricalReturnProvider] = None,
        crypto_provider: Optional[HistoricalReturnProvider] = None,
    ):
        """Initialize with optional providers for dependency injection.

        Args:
            index_provider: Equity index provider. If None, a
                            YahooFinanceClient is created on first use.
            crypto_provider: Crypto provider, which must also implement
                             ``get_current_prices``. If None, a
                             CoinGeckoClient is created on first use.
        """
        self._index_provider = index_provider
        self._crypto_provider = crypto_provider

    @property
    def index_provider(self) -> HistoricalReturnProvider:
        """Get the equity index provider, creating if not provided."""
        if self._index_provider is None:
            from integrations.yahoo_finance_client import YahooFinanceClient

            self._index_provider = YahooFinanceClient()
        return self._index_provider

    @property
    def crypto_provider(self):
        """Get the crypto provider, creating if not provided."""
        if self._crypto_provider is None:
            from integrations.coingecko_client import CoinGeckoClient

            self._crypto_provider = CoinGeckoClient(api_key=settings.COINGECKO_API_KEY or None)
        return self._crypto_provider

    @staticmethod
    def is_index(symbol: str) -> bool:
        upper = symbol.upper()
        return upper.startswith("^") or upper in INDEX_SYMBOLS

    def get_historical_return(self, symbol: str, days: int) -> float:
        """Trailing ``days`` return of ``symbol`` in percent.

        Raises:
            ProviderError: The routed provider could not produce a return.
        """
        provider = self.index_provider if self.is_index(symbol) else self.crypto_provider
        logger.debug("Historical return for %s (%dd) via %s", symbol, days, provider.provider_name)
        return provider.get_historical_return(symbol, days)

    def get_current_prices(self, symbols: list[str]) -> dict[str, float]:
        """Current USD prices keyed by uppercase symbol; unknown symbols omitted."""
        if not symbols:
            return {}
        provider: SpotPriceProvider = self.crypto_provider
        return provider.get_current_prices(sorted({s.upper() for s in symbols}))
