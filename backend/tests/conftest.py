"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api.deps import (
    get_defi_registry,
    get_exchange_sources,
    get_fan_out,
    get_gas_cache,
    get_market_data,
    get_nft_cache,
    get_nft_source,
    get_wallet_source,
)
from database import Base, get_db
from integrations.defi_registry import DeFiRegistry
from main import app
from services.gas_price_service import GasPriceCache
from services.market_data_service import MarketDataService
from services.nft_service import NFTCache
from utils.fan_out import FanOut
# Pytest fixtures - imported to make them available to tests
from tests.fixtures import (  # noqa: F401
    exchange_account,
    rebalance_strategy,
    wallet,
)
from tests.fixtures.mocks import (
    MockBalanceSource,
    MockGasSource,
    MockHistoricalReturnProvider,
    MockNFTSource,
    MockTokenBalanceSource,
)


@pytest.fixture(name="db")
def db_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def index_provider():
    return MockHistoricalReturnProvider({"SPX": 4.0}, name="mock-index")


@pytest.fixture
def crypto_provider():
    return MockHistoricalReturnProvider(
        {"BTC": 10.0, "ETH": -5.0},
        prices={"BTC": 50000.0, "ETH": 2500.0, "USDC": 1.0},
        name="mock-crypto",
    )


@pytest.fixture
def market_data(index_provider, crypto_provider):
    return MarketDataService(index_provider=index_provider, crypto_provider=crypto_provider)


@pytest.fixture
def fan_out():
    return FanOut(max_workers=4, timeout_seconds=5)


@pytest.fixture
def defi_registry(fan_out):
    return DeFiRegistry(fan_out=fan_out)


@pytest.fixture
def gas_source():
    return MockGasSource()


@pytest.fixture
def wallet_source():
    return MockTokenBalanceSource()


@pytest.fixture
def exchange_sources():
    return {"mockex": MockBalanceSource()}


@pytest.fixture
def nft_source():
    return MockNFTSource()


@pytest.fixture
def nft_cache():
    return NFTCache(ttl_seconds=3600)


@pytest.fixture(name="client")
def client_fixture(
    db,
    market_data,
    fan_out,
    defi_registry,
    gas_source,
    wallet_source,
    exchange_sources,
    nft_source,
    nft_cache,
):
    """Create a test client with the test database and mocked upstreams."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    gas_cache = GasPriceCache([gas_source])

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_market_data] = lambda: market_data
    app.dependency_overrides[get_fan_out] = lambda: fan_out
    app.dependency_overrides[get_defi_registry] = lambda: defi_registry
    app.dependency_overrides[get_gas_cache] = lambda: gas_cache
    app.dependency_overrides[get_wallet_source] = lambda: wallet_source
    app.dependency_overrides[get_exchange_sources] = lambda: exchange_sources
    app.dependency_overrides[get_nft_source] = lambda: nft_source
    app.dependency_overrides[get_nft_cache] = lambda: nft_cache
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
