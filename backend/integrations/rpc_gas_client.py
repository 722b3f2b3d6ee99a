"""Keyless gas price source using each chain's public JSON-RPC endpoint."""

import logging
from typing import Optional

import httpx

from integrations.etherscan_client import SUPPORTED_CHAINS
from integrations.exceptions import ProviderAPIError, ProviderConnectionError, ProviderDataError
from integrations.market_data_protocol import GasPrice

logger = logging.getLogger(__name__)

_WEI_PER_GWEI = 1e9


class JsonRpcGasClient:
    """Reads ``eth_gasPrice`` and derives safe/fast tiers from it.

    RPC only returns a single suggested price, so safe is 0.8x (never below
    0.1 Gwei) and fast is 1.3x. Base fee is not available and reads as 0.
    """

    def __init__(
        self,
        endpoints: Optional[dict[str, str]] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self._endpoints = endpoints or {
            name: config.public_rpc for name, config in SUPPORTED_CHAINS.items()
        }
        self._client = http_client or httpx.Client(timeout=15.0)

    def close(self) -> None:
        self._client.close()

    @property
    def source_name(self) -> str:
        return "rpc"

    def get_gas_price(self, chain: str) -> GasPrice:
        url = self._endpoints.get(chain)
        if not url:
            raise ProviderAPIError(f"no public RPC endpoint for {chain}", self.source_name)

        payload = {"jsonrpc": "2.0", "method": "eth_gasPrice", "params": [], "id": 1}
        try:
            response = self._client.post(url, json=payload)
        except httpx.TransportError as e:
            raise ProviderConnectionError(f"{chain} RPC request failed: {e}", self.source_name) from e
        if response.status_code >= 400:
            raise ProviderAPIError(
                f"{chain} RPC error: HTTP {response.status_code}",
                self.source_name,
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise ProviderDataError(f"{chain} RPC returned invalid JSON", self.source_name) from e
        if body.get("error"):
            error = body["error"]
            message = error.get("message", "") if isinstance(error, dict) else str(error)
            raise ProviderAPIError(f"{chain} RPC error: {message}", self.source_name)

        result = body.get("result")
        try:
            wei = int(result, 16)
        except (TypeError, ValueError) as e:
            raise ProviderDataError(f"{chain} RPC: unparseable gas price {result!r}", self.source_name) from e

        normal = wei / _WEI_PER_GWEI
        return GasPrice(
            safe=max(normal * 0.8, 0.1),
            normal=normal,
            fast=normal * 1.3,
            base_fee=0.0,
        )
