"""Binance exchange balance source (spot wallet via the signed account endpoint)."""

import hashlib
import hmac
import logging
import time as time_module
from typing import Optional
from urllib.parse import urlencode

import httpx

from integrations.exceptions import (
    ProviderAPIError,
    ProviderAuthError,
    ProviderConnectionError,
    ProviderDataError,
)
from integrations.source_protocol import Balance

logger = logging.getLogger(__name__)

_MAX_RETRIES = 3
_BASE_DELAY_SECONDS = 1.0
_RECV_WINDOW_MS = 5000

# 418 is Binance's IP ban after ignoring 429s; both mean back off
_RATE_LIMIT_STATUSES = {418, 429}


class BinanceClient:
    """Reads spot balances for the configured Binance API key.

    One key pair serves every exchange account registered with exchange
    ``binance``. Balances carry quantities only; the refresh path prices
    them through market data.
    """

    def __init__(
        self,
        api_key: str = "",
        api_secret: str = "",
        http_client: Optional[httpx.Client] = None,
    ):
        self._api_key = api_key
        self._api_secret = api_secret
        self._client = http_client or httpx.Client(
            base_url="https://api.binance.com", timeout=15.0
        )

    def close(self) -> None:
        self._client.close()

    @property
    def source_name(self) -> str:
        return "binance"

    def _signed_query(self, params: dict[str, str]) -> str:
        query = urlencode(params)
        signature = hmac.new(
            self._api_secret.encode(), query.encode(), hashlib.sha256
        ).hexdigest()
        return f"{query}&signature={signature}"

    def _signed_get(self, path: str, params: Optional[dict[str, str]] = None) -> httpx.Response:
        """Signed GET with retry on rate limiting.

        The timestamp is regenerated per attempt so a backoff never pushes
        the request outside ``recvWindow``.
        """
        if not self._api_key or not self._api_secret:
            raise ProviderAuthError("Binance: API key and secret not configured", self.source_name)

        for attempt in range(_MAX_RETRIES):
            query = self._signed_query({
                **(params or {}),
                "recvWindow": str(_RECV_WINDOW_MS),
                "timestamp": str(int(time_module.time() * 1000)),
            })
            try:
                response = self._client.get(
                    f"{path}?{query}", headers={"X-MBX-APIKEY": self._api_key}
                )
            except httpx.TransportError as e:
                raise ProviderConnectionError(
                    f"Binance request failed: {e}", self.source_name
                ) from e

            if response.status_code in _RATE_LIMIT_STATUSES:
                delay = _BASE_DELAY_SECONDS * (2 ** attempt)
                logger.warning(
                    "Binance: rate limited (HTTP %d), retrying in %.1fs (attempt %d/%d)",
                    response.status_code, delay, attempt + 1, _MAX_RETRIES,
                )
                time_module.sleep(delay)
                continue
            if response.status_code in (401, 403):
                raise ProviderAuthError(
                    f"Binance rejected the API key: HTTP {response.status_code}", self.source_name
                )
            if response.status_code >= 400:
                raise ProviderAPIError(
                    f"Binance API error: HTTP {response.status_code} {_error_message(response)}".rstrip(),
                    self.source_name,
                    status_code=response.status_code,
                )
            return response

        raise ProviderAPIError("Binance: max retries exceeded", self.source_name, status_code=429)

    def get_balances(self, account: str) -> list[Balance]:
        """Non-zero spot balances from ``/api/v3/account``.

        Args:
            account: Exchange account id; unused since the key pair
                     identifies the account.
        """
        response = self._signed_get("/api/v3/account", {"omitZeroBalances": "true"})
        try:
            data = response.json()
        except ValueError as e:
            raise ProviderDataError("Binance: invalid JSON from /api/v3/account", self.source_name) from e
        if not isinstance(data, dict) or not isinstance(data.get("balances"), list):
            raise ProviderDataError("Binance: unexpected /api/v3/account payload", self.source_name)

        balances = []
        for entry in data["balances"]:
            try:
                asset = str(entry["asset"])
                free = float(entry.get("free", 0))
                locked = float(entry.get("locked", 0))
            except (KeyError, TypeError, ValueError) as e:
                raise ProviderDataError(f"Binance: malformed balance entry {entry!r}", self.source_name) from e
            total = free + locked
            if total <= 0:
                continue
            balances.append(
                Balance(
                    symbol=asset,
                    name=asset,
                    total=total,
                    free=free,
                    locked=locked,
                    asset_type="spot",
                )
            )
        logger.debug("Binance: %d non-zero balance(s) for account %s", len(balances), account)
        return balances


def _error_message(response: httpx.Response) -> str:
    """Binance error bodies look like ``{"code": -2015, "msg": "..."}``."""
    try:
        body = response.json()
    except ValueError:
        return ""
    if isinstance(body, dict) and body.get("msg"):
        return str(body["msg"])
    return ""
