"""FastAPI dependency providers.

Long-lived collaborators (DeFi registry, gas and NFT caches, market data,
balance and NFT sources, fan-out pool) are built once in
``main.create_app`` and live on ``app.state``. Per-request services are
built from the request's DB session. Tests swap any of these through
``app.dependency_overrides``.
"""

from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from integrations.defi_registry import DeFiRegistry
from integrations.nft_protocol import NFTSource
from integrations.source_protocol import BalanceSource, WalletBalanceSource
from services.asset_refresh_service import AssetRefreshService
from services.attribution_service import AttributionService
from services.benchmark_service import BenchmarkService
from services.forecast_service import ForecastService
from services.gas_price_service import GasPriceCache, GasPriceService
from services.health_score_service import HealthScoreService
from services.market_data_service import MarketDataService
from services.nft_service import NFTCache, NFTService
from services.pnl_service import PnLService
from services.position_aggregator_service import PositionAggregatorService
from services.snapshot_store import SqlSnapshotStore
from services.strategy_service import StrategyService
from utils.fan_out import FanOut


def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Caller's user id from ``X-User-Id``, or the configured default."""
    return (x_user_id or "").strip() or settings.DEFAULT_USER_ID


def get_snapshot_store(db: Session = Depends(get_db)) -> SqlSnapshotStore:
    return SqlSnapshotStore(db)


# Process-wide collaborators


def get_market_data(request: Request) -> MarketDataService:
    return request.app.state.market_data


def get_defi_registry(request: Request) -> DeFiRegistry:
    return request.app.state.defi_registry


def get_gas_cache(request: Request) -> GasPriceCache:
    return request.app.state.gas_cache


def get_fan_out(request: Request) -> FanOut:
    return request.app.state.fan_out


def get_wallet_source(request: Request) -> WalletBalanceSource:
    return request.app.state.wallet_source


def get_exchange_sources(request: Request) -> dict[str, BalanceSource]:
    return request.app.state.exchange_sources


def get_nft_source(request: Request) -> NFTSource:
    return request.app.state.nft_source


def get_nft_cache(request: Request) -> NFTCache:
    return request.app.state.nft_cache


# Per-request services


def get_attribution_service(store: SqlSnapshotStore = Depends(get_snapshot_store)) -> AttributionService:
    return AttributionService(store)


def get_forecast_service(store: SqlSnapshotStore = Depends(get_snapshot_store)) -> ForecastService:
    return ForecastService(store)


def get_pnl_service(store: SqlSnapshotStore = Depends(get_snapshot_store)) -> PnLService:
    return PnLService(store)


def get_health_score_service(
    store: SqlSnapshotStore = Depends(get_snapshot_store),
) -> HealthScoreService:
    return HealthScoreService(store, settings.STABLECOIN_SYMBOLS, settings.BLUECHIP_SYMBOLS)


def get_benchmark_service(
    store: SqlSnapshotStore = Depends(get_snapshot_store),
    market_data: MarketDataService = Depends(get_market_data),
) -> BenchmarkService:
    return BenchmarkService(store, market_data)


def get_position_aggregator(
    registry: DeFiRegistry = Depends(get_defi_registry),
    fan_out: FanOut = Depends(get_fan_out),
) -> PositionAggregatorService:
    return PositionAggregatorService(registry, fan_out)


def get_asset_refresh_service(
    store: SqlSnapshotStore = Depends(get_snapshot_store),
    market_data: MarketDataService = Depends(get_market_data),
    wallet_source: WalletBalanceSource = Depends(get_wallet_source),
    exchange_sources: dict[str, BalanceSource] = Depends(get_exchange_sources),
    fan_out: FanOut = Depends(get_fan_out),
) -> AssetRefreshService:
    return AssetRefreshService(store, market_data, wallet_source, exchange_sources, fan_out)


def get_gas_price_service(cache: GasPriceCache = Depends(get_gas_cache)) -> GasPriceService:
    return GasPriceService(cache)


def get_strategy_service(
    store: SqlSnapshotStore = Depends(get_snapshot_store),
    market_data: MarketDataService = Depends(get_market_data),
) -> StrategyService:
    return StrategyService(store, market_data)


def get_nft_service(
    store: SqlSnapshotStore = Depends(get_snapshot_store),
    source: NFTSource = Depends(get_nft_source),
    market_data: MarketDataService = Depends(get_market_data),
    cache: NFTCache = Depends(get_nft_cache),
    fan_out: FanOut = Depends(get_fan_out),
) -> NFTService:
    return NFTService(store, source, market_data, cache, fan_out)
