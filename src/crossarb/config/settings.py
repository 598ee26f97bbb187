"""Configuration models and loading utilities for the hedging bot."""

from __future__ import annotations

import os
from dataclasses import dataclass

import structlog
from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger(__name__)


class TradingSettings(BaseSettings):
    """Scan cadence, thresholds and trade sizing consumed by the core."""

    scan_interval: int = Field(5000, gt=0, description="Milliseconds between scan ticks.")
    redeem_check_interval: int = Field(
        60000,
        gt=0,
        description="Milliseconds between resolution/redemption polls.",
    )
    summary_interval: int = Field(
        300000,
        gt=0,
        description="Milliseconds between positions summary log lines.",
    )
    take_profit: float = Field(
        90.0,
        gt=0,
        le=100,
        description="Combined cost threshold (0-100 scale) below which a leg combination is eligible.",
    )
    min_trade_amount: float = Field(10.0, gt=0, description="Smallest allowed trade amount.")
    max_trade_amount: float = Field(1000.0, gt=0, description="Largest allowed trade amount.")
    trade_percentage: float = Field(
        0.1,
        gt=0,
        le=1,
        description="Fraction of available balance committed per hedge.",
    )
    available_balance: float = Field(1000.0, ge=0, description="Balance used for sizing.")
    price_change_tolerance: float = Field(
        2.0,
        gt=0,
        description="Leg price move (absolute, 0-100 scale) that invalidates a detected opportunity.",
    )
    match_tolerance_seconds: float = Field(
        60.0,
        gt=0,
        description="Maximum close-time difference for two markets to be considered equivalent.",
    )
    series_tag: str = Field("BTC-15M", description="Series marker shared by matched markets.")
    order_timeout_seconds: float = Field(
        10.0,
        gt=0,
        description="Per-call timeout applied to each order placement.",
    )
    unwind_partial_fills: bool = Field(
        True,
        description="Flatten the surviving leg when only one side of a hedge fills.",
    )
    dry_run: bool = Field(False, description="Log intended orders without placing them.")
    expire_after_seconds: float | None = Field(
        default=None,
        description="Mark open positions expired this long after market end without resolution.",
    )


class KalshiSettings(BaseSettings):
    """Kalshi trading API endpoints and credentials."""

    model_config = SettingsConfigDict(env_prefix="KALSHI_")

    base_url: str = Field(
        "https://api.elections.kalshi.com/trade-api/v2",
        description="Primary Kalshi trading API base URL.",
    )
    demo_base_url: str = Field(
        "https://demo-api.kalshi.co/trade-api/v2",
        description="Demo Kalshi trading API base URL for sandbox testing.",
    )
    use_demo: bool = Field(False, description="Route API requests to the demo environment.")
    api_key: str | None = Field(default=None, description="Kalshi API key.")
    series_ticker: str = Field("KXBTC15M", description="Series ticker for 15-minute BTC markets.")
    time_in_force: str = Field(
        "good_till_canceled",
        description="Time-in-force applied to limit orders.",
    )
    request_timeout: float = Field(10.0, gt=0, description="HTTP timeout in seconds.")

    @property
    def active_base_url(self) -> str:
        return self.demo_base_url if self.use_demo else self.base_url


class PolymarketSettings(BaseSettings):
    """Polymarket CLOB and Gamma API configuration."""

    model_config = SettingsConfigDict(env_prefix="POLYMARKET_")

    clob_url: str = Field("https://clob.polymarket.com", description="Polymarket CLOB API base URL.")
    gamma_url: str = Field(
        "https://gamma-api.polymarket.com",
        description="Polymarket Gamma API base URL used for market metadata.",
    )
    chain_id: int = Field(137, description="EVM chain id for order signing (Polygon mainnet).")
    private_key: str | None = Field(default=None, description="Signing key for CLOB orders.")
    api_key: str | None = Field(default=None, description="CLOB API key.")
    api_secret: str | None = Field(default=None, description="CLOB API secret.")
    api_passphrase: str | None = Field(default=None, description="CLOB API passphrase.")
    proxy_address: str | None = Field(default=None, description="Proxy/funder wallet address.")
    signature_type: int | None = Field(
        default=None,
        description="0=EOA, 1=POLY_PROXY, 2=POLY_GNOSIS_SAFE. Defaults to 2 when a proxy is set.",
    )
    tick_size: str = Field("0.01", description="Order tick size.")
    request_timeout: float = Field(10.0, gt=0, description="HTTP timeout in seconds.")

    @property
    def resolved_signature_type(self) -> int:
        if self.signature_type is not None:
            return self.signature_type
        return 2 if self.proxy_address else 1


class StatusApiSettings(BaseSettings):
    """Optional read-only HTTP status API."""

    model_config = SettingsConfigDict(env_prefix="STATUS_API_")

    enabled: bool = Field(False, description="Serve the status API alongside the bot.")
    host: str = Field("127.0.0.1", description="Bind address for the status API.")
    port: int = Field(8000, description="Bind port for the status API.")


@dataclass(slots=True)
class Settings:
    """Aggregated application settings loaded from environment variables."""

    trading: TradingSettings
    kalshi: KalshiSettings
    polymarket: PolymarketSettings
    status_api: StatusApiSettings
    log_level: str = "INFO"
    log_format: str = "json"

    @classmethod
    def from_env(cls) -> Settings:
        """Hydrate the composed settings model from environment variables and `.env`."""

        load_dotenv(override=False)

        trading = TradingSettings()
        if trading.min_trade_amount > trading.max_trade_amount:
            logger.warning(
                "trade_amount_band_inverted",
                min_trade_amount=trading.min_trade_amount,
                max_trade_amount=trading.max_trade_amount,
            )

        log_format = os.getenv("LOG_FORMAT", "json").lower()
        if log_format not in {"json", "console"}:
            logger.warning("invalid_log_format", raw_value=log_format, default="json")
            log_format = "json"

        return cls(
            trading=trading,
            kalshi=KalshiSettings(),
            polymarket=PolymarketSettings(),
            status_api=StatusApiSettings(),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=log_format,
        )


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create singleton settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


__all__ = [
    "KalshiSettings",
    "PolymarketSettings",
    "Settings",
    "StatusApiSettings",
    "TradingSettings",
    "get_settings",
]
