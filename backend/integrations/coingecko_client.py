"""CoinGecko market data provider for cryptocurrency prices."""

import logging
import time as time_module
from typing import Optional

import httpx

from integrations.exceptions import ProviderAPIError, ProviderConnectionError, ProviderDataError

logger = logging.getLogger(__name__)

# Symbols held by typical crypto portfolios, plus the wrapped/staked
# variants the DeFi adapters value positions in.
_KNOWN_COIN_IDS: dict[str, str] = {
    "BTC": "bitcoin",
    "WBTC": "wrapped-bitcoin",
    "ETH": "ethereum",
    "WETH": "weth",
    "STETH": "staked-ether",
    "BNB": "binancecoin",
    "SOL": "solana",
    "MATIC": "matic-network",
    "POL": "matic-network",
    "ARB": "arbitrum",
    "OP": "optimism",
    "AVAX": "avalanche-2",
    "USDT": "tether",
    "USDC": "usd-coin",
    "DAI": "dai",
    "BUSD": "binance-usd",
    "LINK": "chainlink",
    "UNI": "uniswap",
    "AAVE": "aave",
    "LDO": "lido-dao",
    "MKR": "maker",
    "CRV": "curve-dao-token",
    "COMP": "compound-governance-token",
    "SUSHI": "sushi",
    "DOGE": "dogecoin",
    "XRP": "ripple",
    "ADA": "cardano",
    "DOT": "polkadot",
}

# Max retries for rate-limited requests
_MAX_RETRIES = 3
_BASE_DELAY_SECONDS = 1.0


class CoinGeckoClient:
    """Market data provider using the CoinGecko API for crypto prices."""

    def __init__(self, api_key: Optional[str] = None, http_client: Optional[httpx.Client] = None):
        """Initialize with optional API key.

        Args:
            api_key: CoinGecko demo API key. If provided, uses the
                     x-cg-demo-api-key header for higher rate limits.
                     If None, uses the keyless public API.
            http_client: Pre-built client (tests pass one backed by
                         ``httpx.MockTransport``).
        """
        if http_client is None:
            headers: dict[str, str] = {}
            if api_key:
                headers["x-cg-demo-api-key"] = api_key
            http_client = httpx.Client(
                base_url="https://api.coingecko.com/api/v3",
                headers=headers,
                timeout=30.0,
            )
        self._client = http_client

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    @property
    def provider_name(self) -> str:
        return "coingecko"

    @staticmethod
    def coin_id(symbol: str) -> str:
        """Map a ticker to a CoinGecko coin ID, falling back to the lowercase ticker."""
        upper = symbol.upper()
        return _KNOWN_COIN_IDS.get(upper, upper.lower())

    def _request_with_retry(
        self, method: str, path: str, **kwargs
    ) -> httpx.Response:
        """Make an HTTP request with retry on 429 rate limit responses.

        Raises:
            ProviderAPIError: Non-429 HTTP error, or rate limited on every attempt.
            ProviderConnectionError: Transport failure.
        """
        for attempt in range(_MAX_RETRIES):
            try:
                response = self._client.request(method, path, **kwargs)
            except httpx.TransportError as e:
                raise ProviderConnectionError(
                    f"CoinGecko request failed: {e}", self.provider_name
                ) from e

            if response.status_code == 429:
                delay = _BASE_DELAY_SECONDS * (2 ** attempt)
                logger.warning(
                    "CoinGecko: rate limited, retrying in %.1fs (attempt %d/%d)",
                    delay, attempt + 1, _MAX_RETRIES,
                )
                time_module.sleep(delay)
                continue
            if response.status_code >= 400:
                raise ProviderAPIError(
                    f"CoinGecko API error: HTTP {response.status_code}",
                    self.provider_name,
                    status_code=response.status_code,
                )
            return response

        raise ProviderAPIError(
            "CoinGecko: max retries exceeded", self.provider_name, status_code=429
        )

    def get_current_prices(self, symbols: list[str]) -> dict[str, float]:
        """Fetch current USD prices via ``/simple/price``.

        Returns:
            Dict keyed by uppercase symbol. Symbols CoinGecko does not
            know are omitted.
        """
        if not symbols:
            return {}

        id_to_symbols: dict[str, list[str]] = {}
        for symbol in symbols:
            id_to_symbols.setdefault(self.coin_id(symbol), []).append(symbol.upper())

        response = self._request_with_retry(
            "GET",
            "/simple/price",
            params={"ids": ",".join(id_to_symbols), "vs_currencies": "usd"},
        )
        try:
            data = response.json()
        except ValueError as e:
            raise ProviderDataError("CoinGecko: invalid JSON from /simple/price", self.provider_name) from e
        if not isinstance(data, dict):
            raise ProviderDataError("CoinGecko: unexpected /simple/price payload", self.provider_name)

        prices: dict[str, float] = {}
        for coin_id, quote in data.items():
            usd = quote.get("usd") if isinstance(quote, dict) else None
            if usd is None:
                continue
            for symbol in id_to_symbols.get(coin_id, []):
                prices[symbol] = float(usd)
        return prices

    def get_historical_return(self, symbol: str, days: int) -> float:
        """Percent change between the first and last price over ``days``.

        Raises:
            ProviderDataError: Fewer than two price points, or a zero start price.
        """
        coin_id = self.coin_id(symbol)
        response = self._request_with_retry(
            "GET",
            f"/coins/{coin_id}/market_chart",
            params={"vs_currency": "usd", "days": str(days)},
        )
        try:
            prices = response.json().get("prices", [])
        except ValueError as e:
            raise ProviderDataError("CoinGecko: invalid JSON from /market_chart", self.provider_name) from e
        if len(prices) < 2:
            raise ProviderDataError(
                f"CoinGecko: insufficient price history for {symbol} ({days}d)",
                self.provider_name,
            )

        start_price = float(prices[0][1])
        end_price = float(prices[-1][1])
        if start_price <= 0:
            raise ProviderDataError(
                f"CoinGecko: zero start price for {symbol}", self.provider_name
            )
        return (end_price - start_price) / start_price * 100
