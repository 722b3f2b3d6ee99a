"""Unit tests for MarketDataService."""

import pytest

from integrations.exceptions import ProviderDataError
from services.market_data_service import MarketDataService
from tests.fixtures.mocks import MockHistoricalReturnProvider


@pytest.fixture
def index_provider():
    return MockHistoricalReturnProvider(returns={"SPX": 4.0, "^NDX": 6.0}, name="mock-index")


@pytest.fixture
def crypto_provider():
    return MockHistoricalReturnProvider(
        returns={"BTC": 10.0},
        prices={"BTC": 50000.0, "ETH": 2500.0},
        name="mock-crypto",
    )


@pytest.fixture
def service(index_provider, crypto_provider):
    return MarketDataService(index_provider=index_provider, crypto_provider=crypto_provider)


class TestIsIndex:
    @pytest.mark.parametrize("symbol", ["SPX", "spx", "^GSPC", "^NDX", "DJI"])
    def test_index_symbols(self, symbol):
        assert MarketDataService.is_index(symbol)

    @pytest.mark.parametrize("symbol", ["BTC", "ETH", "USDC"])
    def test_crypto_symbols(self, symbol):
        assert not MarketDataService.is_index(symbol)


class TestHistoricalReturn:
    def test_index_routed_to_index_provider(self, service, index_provider, crypto_provider):
        assert service.get_historical_return("SPX", 30) == 4.0
        assert index_provider.return_requests == [("SPX", 30)]
        assert crypto_provider.return_requests == []

    def test_caret_symbol_routed_to_index_provider(self, service, index_provider):
        assert service.get_historical_return("^NDX", 7) == 6.0
        assert index_provider.return_requests == [("^NDX", 7)]

    def test_crypto_routed_to_crypto_provider(self, service, index_provider, crypto_provider):
        assert service.get_historical_return("BTC", 90) == 10.0
        assert crypto_provider.return_requests == [("BTC", 90)]
        assert index_provider.return_requests == []

    def test_provider_error_propagates(self, service):
        with pytest.raises(ProviderDataError):
            service.get_historical_return("DOGE", 30)


class TestCurrentPrices:
    def test_symbols_deduplicated_and_uppercased(self, service, crypto_provider):
        prices = service.get_current_prices(["eth", "BTC", "ETH"])

        assert prices == {"BTC": 50000.0, "ETH": 2500.0}
        assert crypto_provider.requests == [["BTC", "ETH"]]

    def test_empty_symbols_no_request(self, service, crypto_provider):
        assert service.get_current_prices([]) == {}
        assert crypto_provider.requests == []

    def test_unknown_symbols_omitted(self, service):
        assert service.get_current_prices(["NOPE"]) == {}
