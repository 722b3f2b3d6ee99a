"""Gas price service: per-chain TTL cache over the gas price sources."""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

from integrations.market_data_protocol import GasPrice, GasPriceSource
from models.utils import utc_now
from utils.rounding import round_money
from utils.rwlock import ReadWriteLock

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 15.0
GAS_CHAINS = ("ethereum", "bsc", "polygon")
GAS_UNIT = "Gwei"
INSTANT_MULTIPLIER = 1.2

# Used when no source reports a price for the chain
FALLBACK_GAS = {
    "bsc": GasPrice(safe=1, normal=3, fast=5),
    "polygon": GasPrice(safe=25, normal=30, fast=50),
}


@dataclass
class _CacheEntry:
    price: GasPrice
    fetched_at: float


class GasPriceCache:
    """Per-chain gas prices with a fixed TTL.

    Reads take the shared lock; a refresh takes the exclusive lock only to
    store the new entry, so slow upstream calls never block readers. When
    every source fails the last known entry is served, however old; a chain
    that was never fetched successfully reads as a zero ``GasPrice``.
    """

    def __init__(
        self,
        sources: list[GasPriceSource],
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._sources = list(sources)
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = ReadWriteLock()
        self._entries: dict[str, _CacheEntry] = {}

    def _fresh(self, chain: str) -> tuple[Optional[_CacheEntry], bool]:
        with self._lock.read_locked():
            entry = self._entries.get(chain)
        if entry is None:
            return None, False
        return entry, self._clock() - entry.fetched_at < self._ttl

    def _fetch(self, chain: str) -> Optional[GasPrice]:
        for source in self._sources:
            try:
                price = source.get_gas_price(chain)
            except Exception as e:
                logger.warning("Gas price from %s failed for %s: %s", source.source_name, chain, e)
                continue
            if price is not None and not price.is_empty:
                return price
            logger.debug("Gas price from %s empty for %s", source.source_name, chain)
        return None

    def get(self, chain: str) -> GasPrice:
        entry, fresh = self._fresh(chain)
        if fresh:
            return entry.price

        price = self._fetch(chain)
        if price is None:
            if entry is not None:
                logger.info("Serving stale gas price for %s", chain)
                return entry.price
            return GasPrice()

        with self._lock.write_locked():
            self._entries[chain] = _CacheEntry(price=price, fetched_at=self._clock())
        return price


@dataclass
class ChainGasPrice:
    chain: str
    low: Decimal
    standard: Decimal
    fast: Decimal
    instant: Decimal
    base_fee: Decimal
    unit: str = GAS_UNIT
    level: str = "low"


@dataclass
class GasOverview:
    chains: list[ChainGasPrice] = field(default_factory=list)
    updated_at: Optional[datetime] = None


def gas_level(standard: float) -> str:
    if standard <= 20:
        return "low"
    if standard <= 60:
        return "medium"
    return "high"


class GasPriceService:
    """Gas tiers for every supported chain, read through the shared cache."""

    def __init__(self, cache: GasPriceCache):
        self._cache = cache

    def get_chain(self, chain: str) -> ChainGasPrice:
        price = self._cache.get(chain)
        if price.normal == 0 and chain in FALLBACK_GAS:
            price = FALLBACK_GAS[chain]
        return ChainGasPrice(
            chain=chain,
            low=round_money(price.safe),
            standard=round_money(price.normal),
            fast=round_money(price.fast),
            instant=round_money(price.fast * INSTANT_MULTIPLIER),
            base_fee=round_money(price.base_fee),
            level=gas_level(price.normal),
        )

    def get_all(self) -> GasOverview:
        return GasOverview(chains=[self.get_chain(c) for c in GAS_CHAINS], updated_at=utc_now())
