from bittrex_api.config.settings import Settings, WebsocketOptions, get_settings

__all__ = ["Settings", "WebsocketOptions", "get_settings"]
