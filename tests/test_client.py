"""
Tests for the BittrexClient facade.
"""
import inspect
import json
from unittest.mock import AsyncMock, Mock
from urllib.parse import parse_qsl, urlsplit

import httpx
import pytest
import pytest_asyncio

from bittrex_api import BittrexClient
from bittrex_api.auth.signer import compute_signature
from bittrex_api.fetchers.public import PublicClient
from bittrex_api.fetchers.trading import TradingClient
from bittrex_api.streaming.session import SUBSCRIBE_MARKET
from tests.conftest import FakeTransportFactory, make_settings, mock_http_client, settle


class Recorder:
    def __init__(self):
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(200, text=json.dumps({"success": True, "result": []}))


@pytest.fixture
def recorder():
    return Recorder()


@pytest_asyncio.fixture
async def client(recorder):
    http_client = mock_http_client(recorder)
    factory = FakeTransportFactory()
    client = BittrexClient(
        settings=make_settings(),
        http_client=http_client,
        transport_factory=factory,
    )
    client.session.bootstrap = AsyncMock(return_value={"cookie": "", "User-Agent": "test-agent"})
    client.factory = factory
    yield client
    await client.aclose()
    await http_client.aclose()


class TestRest:

    @pytest.mark.asyncio
    async def test_public_method_forwarded(self, client, recorder):
        result = await client.get_markets()

        assert result.ok
        assert recorder.requests[0].url.path == "/api/v1.1/public/getmarkets"

    @pytest.mark.asyncio
    async def test_trading_method_forwarded(self, client, recorder):
        await client.get_balance({"currency": "BTC"})

        assert recorder.requests[0].url.path == "/api/v1.1/account/getbalance"
        assert "apisign" in recorder.requests[0].headers

    def test_every_endpoint_is_a_real_method(self):
        for endpoint_client in (PublicClient, TradingClient):
            for name, _ in inspect.getmembers(endpoint_client, inspect.iscoroutinefunction):
                if name.startswith("_"):
                    continue
                assert inspect.iscoroutinefunction(vars(BittrexClient).get(name)), name

    @pytest.mark.asyncio
    async def test_wrapper_passes_params_and_callback(self, client, recorder):
        callback = Mock()

        await client.get_order_book({"market": "BTC-LTC", "type": "both"}, callback)

        assert recorder.requests[0].url.path == "/api/v1.1/public/getorderbook"
        assert dict(parse_qsl(urlsplit(str(recorder.requests[0].url)).query)) == {
            "market": "BTC-LTC",
            "type": "both",
        }
        callback.assert_called_once()

    def test_unknown_attribute(self, client):
        with pytest.raises(AttributeError):
            client.get_everything

    @pytest.mark.asyncio
    async def test_custom_request_without_credentials(self, client, recorder):
        callback = Mock()

        await client.send_custom_request("https://bittrex.com/api/v1.1/public/getmarkets", callback)

        request = recorder.requests[0]
        assert "apisign" not in request.headers
        assert urlsplit(str(request.url)).query == ""
        callback.assert_called_once_with({"success": True, "result": []}, None)

    @pytest.mark.asyncio
    async def test_custom_request_with_credentials(self, client, recorder):
        uri = "https://bittrex.com/api/v1.1/account/getbalances?currency=BTC"

        await client.send_custom_request(uri, credentials=True)

        request = recorder.requests[0]
        keys = [k for k, _ in parse_qsl(urlsplit(str(request.url)).query)]
        assert keys == ["currency", "apikey", "nonce"]
        assert request.headers["apisign"] == compute_signature(str(request.url), "SECRET")

    @pytest.mark.asyncio
    async def test_options_apply_to_later_calls(self, client, recorder):
        client.options(api_key="OTHER", inverse_callback_arguments=True)
        callback = Mock()

        await client.get_balances(callback=callback)

        assert dict(parse_qsl(urlsplit(str(recorder.requests[0].url)).query))["apikey"] == "OTHER"
        callback.assert_called_once_with(None, {"success": True, "result": []})

    def test_clients_do_not_share_state(self):
        first = BittrexClient(settings=make_settings())
        second = BittrexClient(settings=make_settings(), api_key="SECOND")

        assert first.nonces is not second.nonces
        assert first.registry is not second.registry
        assert second.settings.api_key == "SECOND"
        assert first.settings.api_key == "KEY"


class TestStreaming:

    @pytest.mark.asyncio
    async def test_subscribe_and_replay(self, client):
        session = await client.subscribe(["BTC-ETH"], lambda message, s: None)
        transport = client.factory.latest

        await transport.bind_and_connect()
        await settle(session)

        assert transport.methods() == [(SUBSCRIBE_MARKET, ("BTC-ETH",))]

    @pytest.mark.asyncio
    async def test_websocket_client_hands_back_session(self, client):
        callback = Mock()

        session = await client.websocket_client(callback)

        callback.assert_called_once_with(session)
        assert session.has_handle

    @pytest.mark.asyncio
    async def test_reset_subscriptions(self, client):
        await client.listen(lambda message, s: None)
        client.reset_subscriptions()

        assert client.registry.snapshot().global_feed is False
