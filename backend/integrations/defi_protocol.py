"""DeFi protocol adapter definitions.

Every protocol adapter (Lido, Aave, ...) reports positions in this shape
so the aggregator can merge them without knowing the protocol.
"""

from dataclasses import dataclass, field
from typing import Protocol

DEFAULT_CHAIN = "ethereum"


@dataclass
class Token:
    """A token leg of a DeFi position."""

    symbol: str
    amount: float
    value_usd: float = 0.0


@dataclass
class Position:
    """A single position held by a wallet in a DeFi protocol."""

    protocol: str  # Registry key, e.g. "lido"
    protocol_name: str  # Display name, e.g. "Lido"
    type: str  # "lending", "staking", "liquidity", ...
    chain: str
    value_usd: float
    apy: float = 0.0
    deposit_tokens: list[Token] = field(default_factory=list)
    receive_tokens: list[Token] = field(default_factory=list)
    rewards: list[Token] = field(default_factory=list)


@dataclass
class ProtocolInfo:
    """Static description of a registered protocol adapter."""

    name: str
    chains: list[str]
    types: list[str]
    is_active: bool = True


class DeFiProtocol(Protocol):
    """Protocol that all DeFi adapters implement."""

    @property
    def name(self) -> str:
        """Registry key (lowercase, e.g. 'aave')."""
        ...

    @property
    def display_name(self) -> str:
        ...

    @property
    def protocol_type(self) -> str:
        ...

    @property
    def supported_chains(self) -> list[str]:
        ...

    def get_positions(self, address: str, chain: str) -> list[Position]:
        """Return the address's positions on ``chain``.

        Raises:
            ProviderError: On upstream failure.
        """
        ...


class PriceSource(Protocol):
    """Current USD prices by symbol, used by adapters to value positions."""

    def get_current_prices(self, symbols: list[str]) -> dict[str, float]:
        """Return a price for each symbol that could be resolved.

        Unknown symbols are omitted rather than mapped to 0.
        """
        ...
