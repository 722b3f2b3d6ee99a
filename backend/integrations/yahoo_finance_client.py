"""Yahoo Finance market data provider implementation."""

import logging
from datetime import date, timedelta
from decimal import Decimal

import yfinance as yf

from integrations.exceptions import ProviderDataError
from integrations.market_data_protocol import PriceResult

logger = logging.getLogger(__name__)

# Benchmark aliases to Yahoo index tickers
INDEX_SYMBOLS: dict[str, str] = {
    "SPX": "^GSPC",
    "NDX": "^NDX",
    "DJI": "^DJI",
}


class YahooFinanceClient:
    """Market data provider using Yahoo Finance (yfinance library).

    Serves equity index history for benchmark comparison. Crypto symbols
    are routed to CoinGecko by the MarketDataService.
    """

    @property
    def provider_name(self) -> str:
        return "yahoo"

    @staticmethod
    def yahoo_symbol(symbol: str) -> str:
        upper = symbol.upper()
        return INDEX_SYMBOLS.get(upper, upper)

    def get_price_history(
        self, symbols: list[str], start_date: date, end_date: date
    ) -> dict[str, list[PriceResult]]:
        """Fetch daily closing prices from Yahoo Finance.

        Args:
            symbols: Yahoo ticker symbols (e.g. ``"^GSPC"``).
            start_date: Start date (inclusive).
            end_date: End date (inclusive).

        Returns:
            Dict mapping each symbol to its list of PriceResults. A failed
            download maps every symbol to an empty list.
        """
        if not symbols:
            return {}

        logger.info(
            "Yahoo Finance: fetching prices for %d symbols (%s to %s)",
            len(symbols), start_date, end_date,
        )

        result: dict[str, list[PriceResult]] = {s: [] for s in symbols}

        # yfinance end is exclusive, so add one day
        download_end = end_date + timedelta(days=1)

        try:
            df = yf.download(
                tickers=symbols,
                start=start_date.isoformat(),
                end=download_end.isoformat(),
                auto_adjust=True,
                progress=False,
            )
        except Exception:
            # yfinance surfaces network and parsing failures as assorted types
            logger.warning("yfinance download failed for %s", symbols, exc_info=True)
            return result

        if df is None or df.empty:
            return result

        multi_symbol = len(symbols) > 1

        for symbol in symbols:
            if multi_symbol:
                # MultiIndex columns: (metric, symbol)
                if ("Close", symbol) not in df.columns:
                    continue
                closes = df[("Close", symbol)].dropna()
            else:
                if "Close" not in df.columns:
                    continue
                closes = df["Close"]
                # Recent yfinance returns a one-column frame even for one ticker
                if hasattr(closes, "columns"):
                    closes = closes.iloc[:, 0]
                closes = closes.dropna()

            for ts, price in closes.items():
                result[symbol].append(
                    PriceResult(
                        symbol=symbol,
                        price_date=ts.date(),
                        close_price=Decimal(str(round(float(price), 6))),
                        source="yahoo",
                    )
                )

        return result

    def get_historical_return(self, symbol: str, days: int, today: date | None = None) -> float:
        """Percent change between the first and last close over ``days``.

        Raises:
            ProviderDataError: Fewer than two closes, or a zero first close.
        """
        yahoo_symbol = self.yahoo_symbol(symbol)
        end_date = today or date.today()
        start_date = end_date - timedelta(days=days)

        closes = self.get_price_history([yahoo_symbol], start_date, end_date)[yahoo_symbol]
        if len(closes) < 2:
            raise ProviderDataError(
                f"Yahoo Finance: insufficient history for {yahoo_symbol} ({days}d)",
                self.provider_name,
            )

        first = float(closes[0].close_price)
        last = float(closes[-1].close_price)
        if first <= 0:
            raise ProviderDataError(
                f"Yahoo Finance: zero first close for {yahoo_symbol}", self.provider_name
            )
        return (last - first) / first * 100
