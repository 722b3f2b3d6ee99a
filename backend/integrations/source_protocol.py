"""Balance source protocol definitions.

Defines the normalized balance record and the interfaces that exchange
and wallet balance sources implement, plus the structured error type the
fan-out reports for a failed source.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

import httpx

from integrations.exceptions import (
    ProviderAPIError,
    ProviderAuthError,
    ProviderConnectionError,
    ProviderDataError,
)


@dataclass
class Balance:
    """Normalized balance of one asset at one source.

    Exchange sources fill ``value_usd`` themselves; on-chain sources usually
    leave it at 0 and the refresh path prices the balance.
    """

    symbol: str
    total: float
    free: float = 0.0
    locked: float = 0.0
    name: str | None = None
    value_usd: float = 0.0
    protocol: str | None = None  # DeFi protocol that issued the token, e.g. "lido"
    asset_type: str | None = None  # "native", "erc20", "defi"


class BalanceSource(Protocol):
    """Balance source for a centralized exchange account."""

    @property
    def source_name(self) -> str:
        """Return the source name (e.g. 'binance')."""
        ...

    def get_balances(self, account: str) -> list[Balance]:
        """Fetch all non-zero balances for an exchange account id.

        Raises:
            ProviderError: On any upstream failure.
        """
        ...


class TokenBalanceSource(Protocol):
    """Reads token balances for an address on a specific chain."""

    def get_token_balances(self, address: str, chain: str) -> list[Balance]:
        ...


class WalletBalanceSource(Protocol):
    """Reads native plus token balances for an on-chain wallet."""

    def get_wallet_balances(self, address: str, chain: str) -> list[Balance]:
        ...


class ErrorCategory(str, Enum):
    """Category of a per-source failure."""

    CONNECTION = "connection"
    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    DATA = "data"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


@dataclass
class SourceError:
    """Structured, non-fatal error from a single fan-out source."""

    source: str
    message: str
    category: ErrorCategory = ErrorCategory.UNKNOWN
    retriable: bool = False

    def __str__(self) -> str:
        return f"{self.source}: {self.message}"


def classify_error(source: str, exc: BaseException) -> SourceError:
    """Map an exception raised by a source to a SourceError."""
    if isinstance(exc, ProviderAuthError):
        return SourceError(source, str(exc), ErrorCategory.AUTH)
    if isinstance(exc, ProviderAPIError):
        category = ErrorCategory.RATE_LIMIT if exc.status_code == 429 else ErrorCategory.UNKNOWN
        return SourceError(source, str(exc), category, retriable=exc.retriable)
    if isinstance(exc, (ProviderConnectionError, httpx.TransportError, TimeoutError)):
        return SourceError(source, str(exc), ErrorCategory.CONNECTION, retriable=True)
    if isinstance(exc, ProviderDataError):
        return SourceError(source, str(exc), ErrorCategory.DATA)
    return SourceError(source, str(exc) or type(exc).__name__, ErrorCategory.UNKNOWN)
