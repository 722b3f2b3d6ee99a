"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import analytics, assets, defi, market, nft, strategies
from config import settings
from database import init_db
from integrations.aave_adapter import AaveAdapter
from integrations.alchemy_client import AlchemyClient
from integrations.binance_client import BinanceClient
from integrations.coingecko_client import CoinGeckoClient
from integrations.compound_adapter import CompoundAdapter
from integrations.defi_registry import DeFiRegistry
from integrations.etherscan_client import EtherscanClient
from integrations.lido_adapter import LidoAdapter
from integrations.rocketpool_adapter import RocketPoolAdapter
from integrations.rpc_gas_client import JsonRpcGasClient
from integrations.yahoo_finance_client import YahooFinanceClient
from logging_config import setup_logging
from services.exceptions import StorageError
from services.gas_price_service import GasPriceCache
from services.market_data_service import MarketDataService
from services.nft_service import NFTCache
from utils.fan_out import FanOut

setup_logging()
logger = logging.getLogger(__name__)


def build_state(app: FastAPI) -> None:
    """Construct the long-lived collaborators and attach them to ``app.state``."""
    fan_out = FanOut(
        max_workers=settings.FANOUT_MAX_WORKERS,
        timeout_seconds=settings.FANOUT_TIMEOUT_SECONDS,
    )
    etherscan = EtherscanClient(
        api_keys={
            "ethereum": settings.ETHERSCAN_API_KEY,
            "bsc": settings.BSCSCAN_API_KEY,
            "polygon": settings.POLYGONSCAN_API_KEY,
        }
    )
    coingecko = CoinGeckoClient(api_key=settings.COINGECKO_API_KEY or None)
    rpc_gas = JsonRpcGasClient()
    # Clients without keys raise ProviderAuthError per call; the fan-out reports it
    binance = BinanceClient(api_key=settings.BINANCE_API_KEY, api_secret=settings.BINANCE_API_SECRET)
    alchemy = AlchemyClient(api_key=settings.ALCHEMY_API_KEY)
    market_data = MarketDataService(index_provider=YahooFinanceClient(), crypto_provider=coingecko)

    registry = DeFiRegistry(fan_out=fan_out)
    registry.register(LidoAdapter(etherscan, market_data))
    registry.register(AaveAdapter(etherscan, market_data))
    registry.register(RocketPoolAdapter(etherscan, market_data))
    registry.register(CompoundAdapter(etherscan, market_data))

    app.state.fan_out = fan_out
    app.state.market_data = market_data
    app.state.defi_registry = registry
    app.state.gas_cache = GasPriceCache(
        [etherscan, rpc_gas], ttl_seconds=settings.GAS_CACHE_TTL_SECONDS
    )
    app.state.wallet_source = etherscan
    app.state.exchange_sources = {binance.source_name: binance}
    app.state.nft_source = alchemy
    app.state.nft_cache = NFTCache(ttl_seconds=settings.NFT_CACHE_TTL_SECONDS)
    app.state.http_clients = [etherscan, coingecko, rpc_gas, binance, alchemy]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup; close upstream HTTP clients on shutdown."""
    init_db()
    logger.info(
        "Started with %d DeFi protocol(s), environment=%s",
        len(app.state.defi_registry.list_protocols()), settings.ENVIRONMENT,
    )
    yield
    for client in app.state.http_clients:
        client.close()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Portfolio Analytics",
        description="Portfolio snapshots, DeFi positions and analytics",
        version="0.1.0",
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    # CORS configuration for frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.error("Storage failure in %s (%s): %s", request.url.path, exc.operation, exc, exc_info=exc)
        return JSONResponse(status_code=500, content={"detail": "Storage error"})

    # Include API routers
    app.include_router(analytics.router)
    app.include_router(assets.router)
    app.include_router(defi.router)
    app.include_router(market.router)
    app.include_router(nft.router)
    app.include_router(strategies.router)

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "ok"}

    build_state(app)
    return app


app = create_app()
