"""External API integrations.

This package contains:
- Source protocols: balance sources, DeFi protocol adapters, market data
- DeFi registry: owns the protocol adapters and queries them concurrently
- Etherscan client: explorer API for wallet balances and gas oracle
- CoinGecko / Yahoo Finance clients: crypto and index prices
- Lido and Aave adapters: DeFi positions derived from receipt tokens
"""

from integrations.defi_protocol import DeFiProtocol, Position, ProtocolInfo, Token
from integrations.defi_registry import DeFiRegistry
from integrations.source_protocol import Balance, BalanceSource, SourceError

__all__ = [
    "Balance",
    "BalanceSource",
    "DeFiProtocol",
    "DeFiRegistry",
    "Position",
    "ProtocolInfo",
    "SourceError",
    "Token",
]
