"""Unit tests for CoinGeckoClient (mocked httpx)."""

from unittest.mock import MagicMock, patch

import httpx
import pytest

from integrations.coingecko_client import CoinGeckoClient, _KNOWN_COIN_IDS
from integrations.exceptions import ProviderAPIError, ProviderConnectionError, ProviderDataError


@pytest.fixture
def client():
    return CoinGeckoClient()


def _response(payload, status_code: int = 200) -> MagicMock:
    mock_response = MagicMock()
    mock_response.status_code = status_code
    mock_response.json.return_value = payload
    return mock_response


class TestProviderName:
    def test_provider_name(self, client):
        assert client.provider_name == "coingecko"


class TestCoinId:
    def test_common_coins_in_mapping(self):
        assert _KNOWN_COIN_IDS["BTC"] == "bitcoin"
        assert _KNOWN_COIN_IDS["ETH"] == "ethereum"
        assert _KNOWN_COIN_IDS["USDC"] == "usd-coin"
        assert _KNOWN_COIN_IDS["STETH"] == "staked-ether"

    def test_case_insensitive(self, client):
        assert client.coin_id("btc") == "bitcoin"
        assert client.coin_id("Eth") == "ethereum"

    def test_unknown_falls_back_to_lowercase(self, client):
        assert client.coin_id("NEWCOIN") == "newcoin"


class TestApiKeyHeader:
    def test_demo_key_sent(self):
        keyed = CoinGeckoClient(api_key="test-api-key")
        assert keyed._client.headers["x-cg-demo-api-key"] == "test-api-key"

    def test_no_key_header_without_key(self, client):
        assert "x-cg-demo-api-key" not in client._client.headers


class TestGetCurrentPrices:
    def test_prices_keyed_by_requested_symbol(self, client):
        payload = {"bitcoin": {"usd": 50000}, "ethereum": {"usd": 2500.5}}
        with patch.object(client._client, "request", return_value=_response(payload)) as mock_req:
            prices = client.get_current_prices(["btc", "ETH"])

        assert prices == {"BTC": 50000.0, "ETH": 2500.5}
        params = mock_req.call_args.kwargs["params"]
        assert params["ids"] == "bitcoin,ethereum"
        assert params["vs_currencies"] == "usd"

    def test_aliases_sharing_an_id_both_priced(self, client):
        payload = {"matic-network": {"usd": 0.7}}
        with patch.object(client._client, "request", return_value=_response(payload)):
            prices = client.get_current_prices(["MATIC", "POL"])

        assert prices == {"MATIC": 0.7, "POL": 0.7}

    def test_unknown_coins_omitted(self, client):
        payload = {"bitcoin": {"usd": 50000}, "nothing": {}}
        with patch.object(client._client, "request", return_value=_response(payload)):
            prices = client.get_current_prices(["BTC", "NOTHING"])

        assert prices == {"BTC": 50000.0}

    def test_empty_symbols_no_request(self, client):
        with patch.object(client._client, "request") as mock_req:
            assert client.get_current_prices([]) == {}
        mock_req.assert_not_called()

    def test_invalid_json(self, client):
        bad = _response(None)
        bad.json.side_effect = ValueError("not json")
        with patch.object(client._client, "request", return_value=bad):
            with pytest.raises(ProviderDataError):
                client.get_current_prices(["BTC"])

    @pytest.mark.parametrize("payload", [["unexpected"], "error", None])
    def test_non_object_payload(self, client, payload):
        with patch.object(client._client, "request", return_value=_response(payload)):
            with pytest.raises(ProviderDataError, match="unexpected"):
                client.get_current_prices(["BTC"])


class TestGetHistoricalReturn:
    def test_percent_change_first_to_last(self, client):
        payload = {"prices": [[1, 100.0], [2, 90.0], [3, 110.0]]}
        with patch.object(client._client, "request", return_value=_response(payload)) as mock_req:
            result = client.get_historical_return("BTC", 30)

        assert result == pytest.approx(10.0)
        assert mock_req.call_args.args[1] == "/coins/bitcoin/market_chart"
        assert mock_req.call_args.kwargs["params"]["days"] == "30"

    def test_insufficient_history(self, client):
        with patch.object(client._client, "request", return_value=_response({"prices": [[1, 5.0]]})):
            with pytest.raises(ProviderDataError, match="insufficient"):
                client.get_historical_return("BTC", 7)

    def test_zero_start_price(self, client):
        payload = {"prices": [[1, 0.0], [2, 5.0]]}
        with patch.object(client._client, "request", return_value=_response(payload)):
            with pytest.raises(ProviderDataError):
                client.get_historical_return("ETH", 7)


class TestRetry:
    def test_retries_on_429_then_succeeds(self, client):
        responses = [_response({}, 429), _response({"bitcoin": {"usd": 1.0}})]
        with patch.object(client._client, "request", side_effect=responses) as mock_req, \
                patch("integrations.coingecko_client.time_module.sleep") as mock_sleep:
            prices = client.get_current_prices(["BTC"])

        assert prices == {"BTC": 1.0}
        assert mock_req.call_count == 2
        mock_sleep.assert_called_once_with(1.0)

    def test_gives_up_after_max_retries(self, client):
        with patch.object(client._client, "request", return_value=_response({}, 429)) as mock_req, \
                patch("integrations.coingecko_client.time_module.sleep") as mock_sleep:
            with pytest.raises(ProviderAPIError) as exc_info:
                client.get_current_prices(["BTC"])

        assert exc_info.value.status_code == 429
        assert exc_info.value.retriable
        assert mock_req.call_count == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [1.0, 2.0, 4.0]

    def test_http_error_not_retried(self, client):
        with patch.object(client._client, "request", return_value=_response({}, 404)) as mock_req:
            with pytest.raises(ProviderAPIError) as exc_info:
                client.get_current_prices(["BTC"])

        assert exc_info.value.status_code == 404
        assert not exc_info.value.retriable
        mock_req.assert_called_once()

    def test_transport_error_wrapped(self, client):
        with patch.object(client._client, "request", side_effect=httpx.ConnectError("refused")):
            with pytest.raises(ProviderConnectionError) as exc_info:
                client.get_current_prices(["BTC"])

        assert exc_info.value.provider_name == "coingecko"
        assert exc_info.value.retriable
