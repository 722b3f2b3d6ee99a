"""NFT holdings across every wallet, valued at collection floor prices."""

import logging
import threading
import time
from dataclasses import dataclass, field
from decimal import Decimal
from functools import partial
from typing import Callable, Optional

from integrations.exceptions import ProviderError
from integrations.market_data_protocol import SpotPriceProvider
from integrations.nft_protocol import NFT, NFTSource
from integrations.source_protocol import SourceError, classify_error
from services.snapshot_store import SqlSnapshotStore
from utils.fan_out import FanOut
from utils.rounding import round_amount, round_money
from utils.rwlock import ReadWriteLock

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600.0

# Floor currencies priced as MATIC; everything else is treated as ETH
_MATIC_CURRENCIES = {"MATIC", "POL", "WMATIC"}


@dataclass
class _CacheEntry:
    nfts: list[NFT]
    fetched_at: float


class NFTCache:
    """Per-wallet NFT lists with a fixed TTL.

    Entries hold every chain's NFTs for one address. Expired entries are
    kept so a failed refresh can still serve the last known holdings.
    """

    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = ReadWriteLock()
        self._entries: dict[str, _CacheEntry] = {}

    def get(self, address: str) -> tuple[Optional[list[NFT]], bool]:
        """Cached NFTs for ``address`` and whether they are still fresh."""
        with self._lock.read_locked():
            entry = self._entries.get(address.lower())
        if entry is None:
            return None, False
        return list(entry.nfts), self._clock() - entry.fetched_at < self._ttl

    def put(self, address: str, nfts: list[NFT]) -> None:
        with self._lock.write_locked():
            self._entries[address.lower()] = _CacheEntry(nfts=list(nfts), fetched_at=self._clock())


@dataclass
class NFTItem:
    contract_address: str
    token_id: str
    name: str
    description: str
    image_url: str
    collection: str
    chain: str
    floor_price: Decimal
    estimated_value: Decimal
    wallet_address: str


@dataclass
class NFTAssetsResult:
    assets: list[NFTItem] = field(default_factory=list)
    total_value: Decimal = Decimal("0.00")
    errors: list[SourceError] = field(default_factory=list)
    cancelled: bool = False


@dataclass
class CollectionSummary:
    collection: str
    chain: str
    count: int
    total_floor_price: Decimal


@dataclass
class CollectionsResult:
    collections: list[CollectionSummary] = field(default_factory=list)
    total_count: int = 0
    total_value: Decimal = Decimal("0.00")
    errors: list[SourceError] = field(default_factory=list)
    cancelled: bool = False


def _matches_collection(nft: NFT, collection: str) -> bool:
    wanted = collection.lower()
    return nft.collection.lower() == wanted or nft.collection_slug.lower() == wanted


class NFTService:
    """Loads NFTs per wallet through the cache and prices them at floor.

    One fan-out task per distinct wallet address. Each task serves the
    cache while fresh, otherwise queries every chain the source supports.
    A wallet whose refresh fails falls back to its expired cache entry;
    with no entry at all it is reported under ``errors``.
    """

    def __init__(
        self,
        store: SqlSnapshotStore,
        source: NFTSource,
        prices: SpotPriceProvider,
        cache: NFTCache,
        fan_out: Optional[FanOut] = None,
    ):
        self._store = store
        self._source = source
        self._prices = prices
        self._cache = cache
        self._fan_out = fan_out or FanOut()

    def _native_prices(self) -> dict[str, float]:
        try:
            return self._prices.get_current_prices(["ETH", "MATIC"])
        except ProviderError:
            logger.warning("NFT floor conversion: price lookup failed, valuing at 0", exc_info=True)
            return {}

    def _enrich_floor_prices(self, nfts: list[NFT]) -> None:
        """Fill floor fields in place; one floor request per contract and chain."""
        floors = {}
        for key in {(n.contract_address.lower(), n.chain) for n in nfts if n.contract_address}:
            contract, chain = key
            try:
                floors[key] = self._source.get_floor_price(contract, chain)
            except ProviderError as e:
                logger.debug("Floor price unavailable for %s on %s: %s", contract, chain, e)

        if not any(f.price > 0 for f in floors.values()):
            return
        native = self._native_prices()
        for nft in nfts:
            floor = floors.get((nft.contract_address.lower(), nft.chain))
            if floor is None or floor.price <= 0:
                continue
            symbol = "MATIC" if floor.currency.upper() in _MATIC_CURRENCIES else "ETH"
            nft.floor_price = floor.price
            nft.floor_currency = floor.currency
            nft.floor_price_usd = floor.price * native.get(symbol, 0.0)

    def _fetch(self, address: str) -> list[NFT]:
        """Every supported chain's NFTs for ``address``.

        Raises:
            ProviderError: When every chain failed.
        """
        nfts: list[NFT] = []
        last_error: Optional[ProviderError] = None
        succeeded = 0
        for chain in self._source.supported_chains:
            try:
                nfts.extend(self._source.get_nfts(address, chain))
                succeeded += 1
            except ProviderError as e:
                logger.warning("NFT fetch from %s failed for %s on %s: %s", self._source.source_name, address, chain, e)
                last_error = e
        if succeeded == 0 and last_error is not None:
            raise last_error
        self._enrich_floor_prices(nfts)
        return nfts

    def _load_wallet(self, address: str) -> list[NFT]:
        cached, fresh = self._cache.get(address)
        if fresh:
            logger.debug("NFT cache hit for %s (%d items)", address, len(cached))
            return cached
        try:
            nfts = self._fetch(address)
        except ProviderError:
            if cached is not None:
                logger.info("NFT refresh failed for %s; serving %d stale item(s)", address, len(cached))
                return cached
            raise
        self._cache.put(address, nfts)
        logger.info("NFT cache updated for %s (%d items)", address, len(nfts))
        return nfts

    def _collect(
        self, user_id: str, cancel_event: Optional[threading.Event]
    ) -> tuple[list[tuple[str, NFT]], list[SourceError], bool]:
        addresses: dict[str, str] = {}
        for wallet in self._store.list_active_wallets(user_id):
            addresses.setdefault(wallet.address.lower(), wallet.address)
        if not addresses:
            return [], [], False

        tasks = {key: partial(self._load_wallet, address) for key, address in addresses.items()}
        outcome = self._fan_out.run(tasks, cancel_event=cancel_event)

        errors = []
        for key, exc in outcome.ordered_errors():
            logger.warning("NFT holdings failed for wallet %s: %s", addresses[key], exc)
            errors.append(classify_error(addresses[key], exc))

        held = [
            (addresses[key], nft)
            for key, nfts in outcome.ordered_results()
            for nft in nfts
        ]
        return held, errors, outcome.cancelled

    def get_nfts(
        self,
        user_id: str,
        chain: Optional[str] = None,
        collection: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> NFTAssetsResult:
        """NFTs held by the user's active wallets.

        Args:
            chain: Only NFTs on this chain.
            collection: Only NFTs whose collection name or slug matches,
                ignoring case.
        """
        held, errors, cancelled = self._collect(user_id, cancel_event)

        assets = []
        raw_total = 0.0
        for wallet_address, nft in held:
            if chain and nft.chain != chain:
                continue
            if collection and not _matches_collection(nft, collection):
                continue
            assets.append(
                NFTItem(
                    contract_address=nft.contract_address,
                    token_id=nft.token_id,
                    name=nft.name,
                    description=nft.description,
                    image_url=nft.image_url,
                    collection=nft.collection,
                    chain=nft.chain,
                    floor_price=round_amount(nft.floor_price),
                    estimated_value=round_money(nft.floor_price_usd),
                    wallet_address=wallet_address,
                )
            )
            raw_total += nft.floor_price_usd

        logger.info("NFT holdings for %s: %d item(s), %d wallet error(s)", user_id, len(assets), len(errors))
        return NFTAssetsResult(
            assets=assets,
            total_value=round_money(raw_total),
            errors=errors,
            cancelled=cancelled,
        )

    def get_collections(
        self, user_id: str, cancel_event: Optional[threading.Event] = None
    ) -> CollectionsResult:
        """NFT counts and floor totals grouped by collection and chain."""
        held, errors, cancelled = self._collect(user_id, cancel_event)

        groups: dict[tuple[str, str], list[float]] = {}
        for _, nft in held:
            groups.setdefault((nft.collection, nft.chain), []).append(nft.floor_price_usd)

        collections = [
            CollectionSummary(
                collection=name,
                chain=chain,
                count=len(values),
                total_floor_price=round_money(sum(values)),
            )
            for (name, chain), values in groups.items()
        ]
        collections.sort(key=lambda c: (-c.total_floor_price, c.collection, c.chain))
        return CollectionsResult(
            collections=collections,
            total_count=len(held),
            total_value=round_money(sum(nft.floor_price_usd for _, nft in held)),
            errors=errors,
            cancelled=cancelled,
        )
