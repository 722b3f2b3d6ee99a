"""Alchemy NFT API client (ownership and OpenSea floor prices)."""

import logging
import time as time_module
from typing import Any, Optional

import httpx

from integrations.exceptions import (
    ProviderAPIError,
    ProviderAuthError,
    ProviderConnectionError,
    ProviderDataError,
)
from integrations.nft_protocol import NFT, FloorPrice

logger = logging.getLogger(__name__)

CHAIN_BASE_URLS: dict[str, str] = {
    "ethereum": "https://eth-mainnet.g.alchemy.com",
    "polygon": "https://polygon-mainnet.g.alchemy.com",
}

PAGE_SIZE = 100

_MAX_RETRIES = 3
_BASE_DELAY_SECONDS = 1.0


class AlchemyClient:
    """NFT source backed by Alchemy's NFT API v3.

    The API key is part of the URL path, so requests are never logged with
    their full URL.
    """

    def __init__(self, api_key: str = "", http_client: Optional[httpx.Client] = None):
        self._api_key = api_key
        self._client = http_client or httpx.Client(timeout=30.0)

    def close(self) -> None:
        self._client.close()

    @property
    def source_name(self) -> str:
        return "alchemy"

    @property
    def supported_chains(self) -> list[str]:
        return list(CHAIN_BASE_URLS)

    def _get(self, chain: str, method: str, params: dict[str, Any]) -> Any:
        """GET ``/nft/v3/{key}/{method}`` on the chain's host, with 429 retry.

        Raises:
            ProviderAuthError: No key configured, or the key was rejected.
            ProviderAPIError: Unsupported chain, HTTP error, or rate limited
                on every attempt.
            ProviderConnectionError: Transport failure.
            ProviderDataError: Body is not JSON.
        """
        if not self._api_key:
            raise ProviderAuthError("Alchemy: API key not configured", self.source_name)
        base_url = CHAIN_BASE_URLS.get(chain)
        if base_url is None:
            raise ProviderAPIError(f"Alchemy: unsupported chain {chain}", self.source_name)

        url = f"{base_url}/nft/v3/{self._api_key}/{method}"
        for attempt in range(_MAX_RETRIES):
            try:
                response = self._client.get(url, params=params)
            except httpx.TransportError as e:
                raise ProviderConnectionError(
                    f"Alchemy {method} request failed: {type(e).__name__}", self.source_name
                ) from e

            if response.status_code == 429:
                delay = _BASE_DELAY_SECONDS * (2 ** attempt)
                logger.warning(
                    "Alchemy: rate limited on %s, retrying in %.1fs (attempt %d/%d)",
                    method, delay, attempt + 1, _MAX_RETRIES,
                )
                time_module.sleep(delay)
                continue
            if response.status_code in (401, 403):
                raise ProviderAuthError(
                    f"Alchemy rejected the API key: HTTP {response.status_code}", self.source_name
                )
            if response.status_code >= 400:
                raise ProviderAPIError(
                    f"Alchemy {method} error: HTTP {response.status_code}",
                    self.source_name,
                    status_code=response.status_code,
                )
            try:
                return response.json()
            except ValueError as e:
                raise ProviderDataError(f"Alchemy: invalid JSON from {method}", self.source_name) from e

        raise ProviderAPIError("Alchemy: max retries exceeded", self.source_name, status_code=429)

    def get_nfts(self, owner: str, chain: str) -> list[NFT]:
        """First page (up to 100) of NFTs held by ``owner`` on ``chain``."""
        data = self._get(
            chain,
            "getNFTsForOwner",
            {"owner": owner, "withMetadata": "true", "pageSize": str(PAGE_SIZE)},
        )
        if not isinstance(data, dict) or not isinstance(data.get("ownedNfts", []), list):
            raise ProviderDataError("Alchemy: unexpected getNFTsForOwner payload", self.source_name)
        if data.get("pageKey"):
            logger.info("Alchemy: %s holds more than %d NFTs on %s; extra pages skipped", owner, PAGE_SIZE, chain)

        nfts = []
        for raw in data.get("ownedNfts", []):
            contract = raw.get("contract") or {}
            image = raw.get("image") or {}
            collection = raw.get("collection") or {}
            nfts.append(
                NFT(
                    contract_address=contract.get("address") or "",
                    token_id=str(raw.get("tokenId") or ""),
                    chain=chain,
                    name=raw.get("name") or "",
                    description=raw.get("description") or "",
                    image_url=image.get("cachedUrl") or "",
                    collection=collection.get("name") or contract.get("name") or "",
                    collection_slug=collection.get("slug") or "",
                )
            )
        return nfts

    def get_floor_price(self, contract_address: str, chain: str) -> FloorPrice:
        """OpenSea floor for ``contract_address``; zero when OpenSea has none."""
        data = self._get(chain, "getFloorPrice", {"contractAddress": contract_address})
        if not isinstance(data, dict):
            raise ProviderDataError("Alchemy: unexpected getFloorPrice payload", self.source_name)
        opensea = data.get("openSea") or {}
        try:
            price = float(opensea.get("floorPrice") or 0.0)
        except (TypeError, ValueError) as e:
            raise ProviderDataError(
                f"Alchemy: bad floor price for {contract_address}", self.source_name
            ) from e
        return FloorPrice(price=price, currency=opensea.get("priceCurrency") or "ETH")
