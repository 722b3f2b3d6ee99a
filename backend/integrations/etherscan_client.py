"""Etherscan-family explorer client (Etherscan, BscScan, PolygonScan, ...).

One client serves every supported EVM chain; each chain has its own
explorer base URL and API key. Used for wallet balances, DeFi receipt
token discovery and the gas oracle.
"""

import logging
import time as time_module
from dataclasses import dataclass
from typing import Optional

import httpx

from integrations.exceptions import (
    ProviderAPIError,
    ProviderAuthError,
    ProviderConnectionError,
    ProviderDataError,
)
from integrations.market_data_protocol import GasPrice
from integrations.source_protocol import Balance

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChainConfig:
    """Explorer and RPC endpoints for one EVM chain."""

    name: str
    explorer_url: str
    native_symbol: str
    public_rpc: str


SUPPORTED_CHAINS: dict[str, ChainConfig] = {
    "ethereum": ChainConfig("ethereum", "https://api.etherscan.io/api", "ETH", "https://eth.llamarpc.com"),
    "bsc": ChainConfig("bsc", "https://api.bscscan.com/api", "BNB", "https://bsc-dataseed.binance.org"),
    "polygon": ChainConfig("polygon", "https://api.polygonscan.com/api", "MATIC", "https://polygon-rpc.com"),
    "arbitrum": ChainConfig("arbitrum", "https://api.arbiscan.io/api", "ETH", "https://arb1.arbitrum.io/rpc"),
    "optimism": ChainConfig("optimism", "https://api-optimistic.etherscan.io/api", "ETH", "https://mainnet.optimism.io"),
    "base": ChainConfig("base", "https://api.basescan.org/api", "ETH", "https://mainnet.base.org"),
}

# Known DeFi receipt tokens, keyed by (chain, lowercase contract address),
# -> (protocol, asset_type). Balances of these carry the protocol so the
# DeFi adapters can pick them out.
KNOWN_DEFI_TOKENS: dict[tuple[str, str], tuple[str, str]] = {
    # Liquid staking (Ethereum)
    ("ethereum", "0xae7ab96520de3a18e5e111b5eaab095312d7fe84"): ("lido", "staking"),  # stETH
    ("ethereum", "0x7f39c581f595b53c5cb19bd0b3f8da6c935e2ca0"): ("lido", "staking"),  # wstETH
    ("ethereum", "0xae78736cd615f374d3085123a210448e74fc6393"): ("rocketpool", "staking"),  # rETH
    # Aave v2 (Ethereum)
    ("ethereum", "0x028171bca77440897b824ca71d1c56cac55b68a3"): ("aave", "lending"),  # aDAI
    ("ethereum", "0xbcca60bb61934080951369a648fb03df4f96263c"): ("aave", "lending"),  # aUSDC
    ("ethereum", "0x3ed3b47dd13ec9a98b44e6204a523e766b225811"): ("aave", "lending"),  # aUSDT
    ("ethereum", "0x030ba81f1c18d280636f32af80b9aad02cf0854e"): ("aave", "lending"),  # aWETH
    ("ethereum", "0x9ff58f4ffb29fa2266ab25e75e2a8b3503311656"): ("aave", "lending"),  # aWBTC
    # Aave v3 (Ethereum)
    ("ethereum", "0x018008bfb33d285247a21d44e50697654f754e63"): ("aave", "lending"),  # aEthDAI
    ("ethereum", "0x98c23e9d8f34fefb1b7bd6a91b7ff122f4e16f5c"): ("aave", "lending"),  # aEthUSDC
    ("ethereum", "0x23878914efe38d27c4d67ab83ed1b93a74d4086a"): ("aave", "lending"),  # aEthUSDT
    ("ethereum", "0x4d5f47fa6a74757f35c14fd3a6ef8e3c9bc514e8"): ("aave", "lending"),  # aEthWETH
    # Compound v2 cTokens (Ethereum)
    ("ethereum", "0x5d3a536e4d6dbd6114cc1ead35777bab948e3643"): ("compound", "lending"),  # cDAI
    ("ethereum", "0x39aa39c021dfbae8fac545936693ac917d5e7563"): ("compound", "lending"),  # cUSDC
    ("ethereum", "0x4ddc2d193948926d02f9b1fe9e1daa0718270ed5"): ("compound", "lending"),  # cETH
    ("ethereum", "0xf650c3d88d12db855b8bf7d11be6c55a4e07dcc9"): ("compound", "lending"),  # cUSDT
    ("ethereum", "0xccf4429db6322d5c611ee964527d42e5d685dd6a"): ("compound", "lending"),  # cWBTC
}

# Aave v3 uses the same aToken addresses on Polygon, Arbitrum and Optimism
_AAVE_V3_L2_TOKENS = (
    "0x82e64f49ed5ec1bc6e43dad4fc8af9bb3a2312ee",  # aDAI
    "0x625e7708f30ca75bfd92586e17077590c60eb4cd",  # aUSDC
    "0x6ab707aca953edaefbc4fd23ba73294241490620",  # aUSDT
    "0xe50fa9b3c56ffb159cb0fca61f5c9d750e8128c8",  # aWETH
    "0x078f358208685046a11c85e8ad32895ded33a249",  # aWBTC
)
for _chain in ("polygon", "arbitrum", "optimism"):
    for _contract in _AAVE_V3_L2_TOKENS:
        KNOWN_DEFI_TOKENS[(_chain, _contract)] = ("aave", "lending")

# Max distinct token contracts inspected per address
_TOKEN_TX_PAGE_SIZE = 100
_MAX_RETRIES = 3
_BASE_DELAY_SECONDS = 1.0


def lookup_defi_token(contract_address: str, chain: str = "ethereum") -> Optional[tuple[str, str]]:
    """Return (protocol, asset_type) for a known DeFi receipt token on ``chain``."""
    return KNOWN_DEFI_TOKENS.get((chain, contract_address.lower()))


def _scale(raw: str, decimals: int) -> float:
    try:
        return int(raw) / (10 ** decimals)
    except (TypeError, ValueError) as e:
        raise ProviderDataError(f"unparseable integer amount: {raw!r}") from e


class EtherscanClient:
    """Explorer API client covering every chain in SUPPORTED_CHAINS."""

    def __init__(
        self,
        api_keys: Optional[dict[str, str]] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        """Initialize with per-chain API keys.

        Args:
            api_keys: Mapping of chain name to explorer API key. Chains
                      without a key are not queried for the gas oracle and
                      use the keyless rate limit for account endpoints.
            http_client: Pre-built client, for tests.
        """
        self._api_keys = {k: v for k, v in (api_keys or {}).items() if v}
        self._client = http_client or httpx.Client(timeout=15.0)

    def close(self) -> None:
        self._client.close()

    @property
    def source_name(self) -> str:
        return "etherscan"

    def has_key(self, chain: str) -> bool:
        return chain in self._api_keys

    def _chain(self, chain: str) -> ChainConfig:
        config = SUPPORTED_CHAINS.get(chain)
        if config is None:
            raise ProviderAPIError(f"unsupported chain: {chain}", self.source_name)
        return config

    def _get(self, chain: str, params: dict) -> dict:
        """Call the chain's explorer API and return the decoded body.

        Retries on HTTP 429. The body's ``status`` field is checked by callers,
        since "no transactions found" is reported as status 0 too.
        """
        config = self._chain(chain)
        query = dict(params)
        if chain in self._api_keys:
            query["apikey"] = self._api_keys[chain]

        for attempt in range(_MAX_RETRIES):
            try:
                response = self._client.get(config.explorer_url, params=query)
            except httpx.TransportError as e:
                raise ProviderConnectionError(
                    f"{chain} explorer request failed: {e}", self.source_name
                ) from e

            if response.status_code == 429:
                delay = _BASE_DELAY_SECONDS * (2 ** attempt)
                logger.warning(
                    "Etherscan(%s): rate limited, retrying in %.1fs (attempt %d/%d)",
                    chain, delay, attempt + 1, _MAX_RETRIES,
                )
                time_module.sleep(delay)
                continue
            if response.status_code in (401, 403):
                raise ProviderAuthError(
                    f"{chain} explorer rejected API key", self.source_name
                )
            if response.status_code >= 400:
                raise ProviderAPIError(
                    f"{chain} explorer error: HTTP {response.status_code}",
                    self.source_name,
                    status_code=response.status_code,
                )
            try:
                return response.json()
            except ValueError as e:
                raise ProviderDataError(
                    f"{chain} explorer returned invalid JSON", self.source_name
                ) from e

        raise ProviderAPIError(
            f"{chain} explorer: max retries exceeded", self.source_name, status_code=429
        )

    def get_gas_price(self, chain: str) -> GasPrice:
        """Read the chain's gas oracle (``module=gastracker&action=gasoracle``).

        Raises:
            ProviderAuthError: No API key is configured for the chain.
            ProviderAPIError: The oracle reported an error status.
        """
        if not self.has_key(chain):
            raise ProviderAuthError(f"no explorer API key for {chain}", self.source_name)

        body = self._get(chain, {"module": "gastracker", "action": "gasoracle"})
        if body.get("status") != "1":
            raise ProviderAPIError(
                f"{chain} gas oracle error: {body.get('message', '')}", self.source_name
            )

        result = body.get("result") or {}
        try:
            return GasPrice(
                safe=float(result.get("SafeGasPrice") or 0),
                normal=float(result.get("ProposeGasPrice") or 0),
                fast=float(result.get("FastGasPrice") or 0),
                base_fee=float(result.get("suggestBaseFee") or 0),
            )
        except (TypeError, ValueError) as e:
            raise ProviderDataError(f"{chain} gas oracle: malformed result", self.source_name) from e

    def get_native_balance(self, address: str, chain: str) -> float:
        """Native coin balance (ETH, BNB, MATIC, ...) in whole units."""
        body = self._get(
            chain,
            {"module": "account", "action": "balance", "address": address, "tag": "latest"},
        )
        if body.get("status") != "1":
            raise ProviderAPIError(
                f"{chain} balance error: {body.get('message', '')}", self.source_name
            )
        return _scale(body.get("result", "0"), 18)

    def get_token_balances(self, address: str, chain: str) -> list[Balance]:
        """ERC-20 balances for every token the address has transacted.

        Token contracts are discovered from the most recent token transfers,
        then each balance is read individually. A failing per-token read is
        skipped; zero balances are dropped.
        """
        body = self._get(
            chain,
            {
                "module": "account",
                "action": "tokentx",
                "address": address,
                "page": "1",
                "offset": str(_TOKEN_TX_PAGE_SIZE),
                "sort": "desc",
            },
        )
        transfers = body.get("result")
        if not isinstance(transfers, list):
            # "No transactions found" comes back as status 0 with a string result
            return []

        contracts: dict[str, dict] = {}
        for tx in transfers:
            contract = (tx.get("contractAddress") or "").lower()
            if contract and contract not in contracts:
                contracts[contract] = tx

        balances: list[Balance] = []
        for contract, tx in contracts.items():
            try:
                decimals = int(tx.get("tokenDecimal") or 0) or 18
            except ValueError:
                decimals = 18
            try:
                amount = self._get_token_balance(address, contract, decimals, chain)
            except (ProviderAPIError, ProviderConnectionError, ProviderDataError):
                logger.debug(
                    "Etherscan(%s): token balance read failed for %s", chain, contract,
                    exc_info=True,
                )
                continue
            if amount <= 0:
                continue

            balance = Balance(
                symbol=tx.get("tokenSymbol", ""),
                name=tx.get("tokenName"),
                free=amount,
                total=amount,
                asset_type="erc20",
            )
            defi = lookup_defi_token(contract, chain)
            if defi is not None:
                balance.protocol, balance.asset_type = defi
            balances.append(balance)

        return balances

    def _get_token_balance(self, address: str, contract: str, decimals: int, chain: str) -> float:
        body = self._get(
            chain,
            {
                "module": "account",
                "action": "tokenbalance",
                "contractaddress": contract,
                "address": address,
                "tag": "latest",
            },
        )
        if body.get("status") != "1":
            raise ProviderAPIError(
                f"{chain} token balance error: {body.get('message', '')}", self.source_name
            )
        return _scale(body.get("result", "0"), decimals)

    def get_wallet_balances(self, address: str, chain: str) -> list[Balance]:
        """Native plus ERC-20 balances for one wallet on one chain."""
        config = self._chain(chain)
        balances: list[Balance] = []
        native = self.get_native_balance(address, chain)
        if native > 0:
            balances.append(
                Balance(
                    symbol=config.native_symbol,
                    name=config.native_symbol,
                    free=native,
                    total=native,
                    asset_type="native",
                )
            )
        balances.extend(self.get_token_balances(address, chain))
        return balances
