"""NFT source protocol definitions."""

from dataclasses import dataclass
from typing import Protocol


@dataclass
class NFT:
    """One token held by a wallet, with its collection floor once known."""

    contract_address: str
    token_id: str
    chain: str
    name: str = ""
    description: str = ""
    image_url: str = ""
    collection: str = ""
    collection_slug: str = ""
    floor_price: float = 0.0  # in ``floor_currency``
    floor_currency: str = ""
    floor_price_usd: float = 0.0


@dataclass
class FloorPrice:
    price: float
    currency: str  # e.g. "ETH"


class NFTSource(Protocol):
    """Upstream NFT indexer (ownership plus marketplace floor prices)."""

    @property
    def source_name(self) -> str:
        ...

    @property
    def supported_chains(self) -> list[str]:
        ...

    def get_nfts(self, owner: str, chain: str) -> list[NFT]:
        """NFTs held by ``owner`` on ``chain``, floor fields left empty.

        Raises:
            ProviderError: On any upstream failure.
        """
        ...

    def get_floor_price(self, contract_address: str, chain: str) -> FloorPrice:
        """Marketplace floor for a collection contract.

        Raises:
            ProviderError: On any upstream failure.
        """
        ...
