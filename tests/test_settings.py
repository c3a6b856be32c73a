"""
Tests for Settings loading and validation.
"""
import pytest
from pydantic import ValidationError

from bittrex_api.config import Settings, WebsocketOptions
from tests.conftest import make_settings


class TestDefaults:

    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.base_url == "https://bittrex.com/api/v1.1"
        assert settings.base_url_v2 == "https://bittrex.com/Api/v2.0"
        assert settings.websockets_base_url == "wss://socket.bittrex.com/signalr"
        assert settings.websockets_hubs == ["CoreHub"]
        assert settings.api_key == "APIKEY"
        assert settings.api_secret == "APISECRET"
        assert settings.verbose is False
        assert settings.cleartext is False
        assert settings.inverse_callback_arguments is False
        assert settings.request_timeout_seconds == 15

    def test_websocket_defaults(self):
        options = WebsocketOptions()
        assert options.auto_reconnect is True
        assert options.on_connect is None
        assert options.watchdog_interval_seconds == 5
        assert options.stale_after_seconds == 60


class TestEnvironment:

    def test_reads_prefixed_variables(self, monkeypatch):
        monkeypatch.setenv("BITTREX_API_KEY", "env-key")
        monkeypatch.setenv("BITTREX_VERBOSE", "true")
        monkeypatch.setenv("BITTREX_WEBSOCKETS__AUTO_RECONNECT", "false")

        settings = Settings(_env_file=None)

        assert settings.api_key == "env-key"
        assert settings.verbose is True
        assert settings.websockets.auto_reconnect is False

    def test_constructor_wins_over_environment(self, monkeypatch):
        monkeypatch.setenv("BITTREX_API_KEY", "env-key")
        assert Settings(_env_file=None, api_key="explicit").api_key == "explicit"


class TestValidation:

    def test_trailing_slash_stripped(self):
        settings = make_settings(base_url="https://example.test/api/v1.1/")
        assert settings.base_url == "https://example.test/api/v1.1"

    @pytest.mark.parametrize("field,value", [
        ("base_url", "ftp://bittrex.com/api"),
        ("base_url_v2", "bittrex.com"),
        ("websockets_base_url", "https://socket.bittrex.com/signalr"),
        ("bootstrap_url", "wss://bittrex.com/"),
        ("request_timeout_seconds", 0),
        ("websockets_hubs", []),
    ])
    def test_rejects_bad_values(self, field, value):
        with pytest.raises(ValidationError):
            make_settings(**{field: value})

    def test_rejects_bad_watchdog_interval(self):
        with pytest.raises(ValidationError):
            make_settings(websockets={"watchdog_interval_seconds": -1})


class TestMerged:

    def test_overrides_apply_and_rest_is_kept(self):
        hook = lambda: None  # noqa: E731
        base = make_settings(websockets={"on_connect": hook})

        merged = base.merged(verbose=True)

        assert merged.verbose is True
        assert merged.api_key == "KEY"
        assert merged.websockets.on_connect is hook
        assert base.verbose is False

    def test_invalid_override_raises(self):
        with pytest.raises(ValidationError):
            make_settings().merged(base_url="nope")
