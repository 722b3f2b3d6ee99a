"""Unit tests for AlchemyClient (httpx.MockTransport)."""

from unittest.mock import patch

import httpx
import pytest

from integrations.alchemy_client import AlchemyClient
from integrations.exceptions import (
    ProviderAPIError,
    ProviderAuthError,
    ProviderConnectionError,
    ProviderDataError,
)

OWNER = "0xowner"

OWNED_PAYLOAD = {
    "ownedNfts": [
        {
            "contract": {"address": "0xbc4ca0eda7647a8ab7c2061c2e118a18a936f13d", "name": "BoredApeYachtClub"},
            "tokenId": "7495",
            "name": "Bored Ape #7495",
            "description": "An ape",
            "image": {"cachedUrl": "https://cdn.example/7495.png", "thumbnailUrl": "https://cdn.example/t.png"},
            "collection": {"name": "Bored Ape Yacht Club", "slug": "boredapeyachtclub"},
        },
        {
            "contract": {"address": "0xnameless", "name": "Untitled"},
            "tokenId": "3",
            "image": {},
        },
    ],
    "totalCount": 2,
    "pageKey": None,
}


def _client(handler, api_key="alchemy-key") -> AlchemyClient:
    return AlchemyClient(api_key=api_key, http_client=httpx.Client(transport=httpx.MockTransport(handler)))


def _recording(response_factory):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return response_factory(request)

    handler.seen = seen
    return handler


class TestGetNFTs:
    def test_parses_owned_nfts(self):
        handler = _recording(lambda request: httpx.Response(200, json=OWNED_PAYLOAD))

        nfts = _client(handler).get_nfts(OWNER, "ethereum")

        ape, untitled = nfts
        assert ape.contract_address == "0xbc4ca0eda7647a8ab7c2061c2e118a18a936f13d"
        assert ape.token_id == "7495"
        assert ape.image_url == "https://cdn.example/7495.png"
        assert ape.collection == "Bored Ape Yacht Club"
        assert ape.collection_slug == "boredapeyachtclub"
        assert ape.chain == "ethereum"
        assert ape.floor_price_usd == 0.0
        # falls back to the contract name when no collection is reported
        assert untitled.collection == "Untitled"
        assert untitled.name == ""

    def test_request_shape(self):
        handler = _recording(lambda request: httpx.Response(200, json={"ownedNfts": []}))

        _client(handler).get_nfts(OWNER, "polygon")

        url = handler.seen[0].url
        assert url.host == "polygon-mainnet.g.alchemy.com"
        assert url.path == "/nft/v3/alchemy-key/getNFTsForOwner"
        assert dict(url.params) == {"owner": OWNER, "withMetadata": "true", "pageSize": "100"}

    def test_missing_key(self):
        handler = _recording(lambda request: httpx.Response(200, json=OWNED_PAYLOAD))
        with pytest.raises(ProviderAuthError):
            _client(handler, api_key="").get_nfts(OWNER, "ethereum")
        assert handler.seen == []

    def test_unsupported_chain(self):
        with pytest.raises(ProviderAPIError, match="unsupported chain"):
            _client(lambda request: httpx.Response(200)).get_nfts(OWNER, "bsc")

    def test_rejected_key(self):
        with pytest.raises(ProviderAuthError):
            _client(lambda request: httpx.Response(401)).get_nfts(OWNER, "ethereum")

    def test_rate_limit_retried(self):
        responses = iter([httpx.Response(429), httpx.Response(200, json=OWNED_PAYLOAD)])
        client = _client(lambda request: next(responses))

        with patch("integrations.alchemy_client.time_module.sleep") as mock_sleep:
            assert len(client.get_nfts(OWNER, "ethereum")) == 2
        mock_sleep.assert_called_once()

    def test_transport_error_hides_key(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out")

        with pytest.raises(ProviderConnectionError) as exc_info:
            _client(handler).get_nfts(OWNER, "ethereum")
        assert "alchemy-key" not in str(exc_info.value)

    @pytest.mark.parametrize("payload", [["nope"], {"ownedNfts": "nope"}])
    def test_unexpected_payload(self, payload):
        with pytest.raises(ProviderDataError):
            _client(lambda request: httpx.Response(200, json=payload)).get_nfts(OWNER, "ethereum")


class TestGetFloorPrice:
    def test_opensea_floor(self):
        payload = {
            "openSea": {"floorPrice": 12.5, "priceCurrency": "ETH", "retrievedAt": "2024-01-01T00:00:00Z"},
            "looksRare": {"floorPrice": 12.1, "priceCurrency": "ETH"},
        }
        handler = _recording(lambda request: httpx.Response(200, json=payload))

        floor = _client(handler).get_floor_price("0xbayc", "ethereum")

        assert (floor.price, floor.currency) == (12.5, "ETH")
        assert dict(handler.seen[0].url.params) == {"contractAddress": "0xbayc"}
        assert handler.seen[0].url.path.endswith("/getFloorPrice")

    def test_no_opensea_listing_is_zero(self):
        payload = {"openSea": {"error": "unable to fetch floor price"}}
        floor = _client(lambda request: httpx.Response(200, json=payload)).get_floor_price("0x1", "ethereum")
        assert floor.price == 0.0

    def test_server_error(self):
        client = _client(lambda request: httpx.Response(503))
        with pytest.raises(ProviderAPIError) as exc_info:
            client.get_floor_price("0x1", "ethereum")
        assert exc_info.value.retriable


def test_supported_chains():
    assert AlchemyClient().supported_chains == ["ethereum", "polygon"]
