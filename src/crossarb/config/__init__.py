"""Configuration management for the hedging bot."""

from .settings import (
    KalshiSettings,
    PolymarketSettings,
    Settings,
    StatusApiSettings,
    TradingSettings,
    get_settings,
)

__all__ = [
    "KalshiSettings",
    "PolymarketSettings",
    "Settings",
    "StatusApiSettings",
    "TradingSettings",
    "get_settings",
]
