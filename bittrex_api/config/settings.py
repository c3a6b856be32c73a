"""
Client configuration using Pydantic Settings.

Every recognized option is declared here with its default. Values can come
from the constructor, from environment variables (prefix ``BITTREX_``) or
from a ``.env`` file, and are validated once at construction time.
"""

from functools import lru_cache
from typing import Any, Callable, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

Hook = Callable[[], Any]


class WebsocketOptions(BaseModel):
    """Options for the streaming session and its watchdog."""

    auto_reconnect: bool = True
    on_connect: Optional[Hook] = None
    on_disconnect: Optional[Hook] = None

    # Watchdog
    watchdog_interval_seconds: float = Field(default=5.0, gt=0)
    stale_after_seconds: float = Field(default=60.0, gt=0)


class Settings(BaseSettings):
    """Exchange client settings."""

    model_config = SettingsConfigDict(
        env_prefix="BITTREX_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # ===========================================
    # REST
    # ===========================================
    base_url: str = "https://bittrex.com/api/v1.1"
    base_url_v2: str = "https://bittrex.com/Api/v2.0"
    request_timeout_seconds: float = Field(default=15.0, gt=0)

    # ===========================================
    # Streaming
    # ===========================================
    websockets_base_url: str = "wss://socket.bittrex.com/signalr"
    websockets_hubs: list[str] = Field(default_factory=lambda: ["CoreHub"], min_length=1)
    bootstrap_url: str = "https://bittrex.com/"
    bootstrap_headers: dict[str, str] = Field(default_factory=dict)
    websockets: WebsocketOptions = Field(default_factory=WebsocketOptions)

    # ===========================================
    # Credentials
    # ===========================================
    api_key: str = "APIKEY"
    api_secret: str = "APISECRET"

    # ===========================================
    # Behaviour
    # ===========================================
    verbose: bool = False
    cleartext: bool = False  # Hand back the raw body instead of decoded JSON
    inverse_callback_arguments: bool = False  # (error, result) instead of (result, error)

    @field_validator("base_url", "base_url_v2")
    @classmethod
    def _check_rest_url(cls, value: str) -> str:
        if urlparse(value).scheme not in ("http", "https"):
            raise ValueError(f"expected an http(s) URL, got {value!r}")
        return value.rstrip("/")

    @field_validator("bootstrap_url")
    @classmethod
    def _check_bootstrap_url(cls, value: str) -> str:
        if urlparse(value).scheme not in ("http", "https"):
            raise ValueError(f"expected an http(s) URL, got {value!r}")
        return value

    @field_validator("websockets_base_url")
    @classmethod
    def _check_ws_url(cls, value: str) -> str:
        if urlparse(value).scheme not in ("ws", "wss"):
            raise ValueError(f"expected a ws(s) URL, got {value!r}")
        return value.rstrip("/")

    def merged(self, **overrides: Any) -> "Settings":
        """Return a validated copy with ``overrides`` applied on top."""
        values = self.model_dump()
        values["websockets"] = self.websockets
        values.update(overrides)
        return type(self)(**values)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
