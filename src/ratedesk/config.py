"""Configuration system using pydantic-settings with environment variable loading."""

from decimal import Decimal
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ProviderName = Literal["coingecko", "coindesk", "cryptocompare", "exchange"]


class ProviderSettings(BaseSettings):
    """Upstream rate source connection settings."""

    model_config = SettingsConfigDict(env_prefix="PROVIDER_")

    timeout_seconds: float = 5.0  # per attempt, never retried by the source itself
    user_agent: str = "ratedesk/0.1"
    coingecko_asset_id: str = "bitcoin"
    exchange_id: str = "kraken"  # ccxt exchange used by the "exchange" source


class RateSettings(BaseSettings):
    """Currency pair, source priority and cache policy."""

    model_config = SettingsConfigDict(env_prefix="RATES_")

    quote_currency: str = "CAD"
    asset: str = "BTC"
    # Priority order, first success wins. Env value is a JSON list.
    providers: list[ProviderName] = ["coingecko", "coindesk", "cryptocompare"]
    refresh_interval_seconds: float = 30.0
    # Synthetic last-resort price served only when nothing is cached and every
    # source failed. None means callers get RateUnavailableError instead.
    fallback_price: Decimal | None = None

    @field_validator("quote_currency", "asset")
    @classmethod
    def _upper(cls, value: str) -> str:
        return value.upper()

    @field_validator("fallback_price")
    @classmethod
    def _positive_fallback(cls, value: Decimal | None) -> Decimal | None:
        if value is not None and value <= 0:
            raise ValueError("fallback_price must be positive")
        return value


class TradingSettings(BaseSettings):
    """Trade execution parameters."""

    model_config = SettingsConfigDict(env_prefix="TRADING_")

    processing_fee_percent: Decimal = Decimal("0")  # e.g. 0.5 means 0.5%
    min_trade_primary: Decimal | None = None  # notional limits in primary currency
    max_trade_primary: Decimal | None = None
    primary_precision: int = 2  # decimal places, fiat
    secondary_precision: int = 8  # decimal places, asset

    @field_validator("processing_fee_percent")
    @classmethod
    def _fee_in_range(cls, value: Decimal) -> Decimal:
        if not Decimal("0") <= value < Decimal("100"):
            raise ValueError("processing_fee_percent must be in [0, 100)")
        return value


class LedgerSettings(BaseSettings):
    """Account storage and bootstrap admin account."""

    model_config = SettingsConfigDict(env_prefix="LEDGER_")

    db_path: str | None = None  # None keeps accounts in memory
    admin_account_id: str = "admin"
    admin_username: str = "admin"
    admin_primary_balance: Decimal = Decimal("0")
    admin_secondary_balance: Decimal = Decimal("0")


class ServerSettings(BaseSettings):
    """HTTP server configuration."""

    model_config = SettingsConfigDict(env_prefix="SERVER_")

    host: str = "0.0.0.0"
    port: int = 8080


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"
    providers: ProviderSettings = ProviderSettings()
    rates: RateSettings = RateSettings()
    trading: TradingSettings = TradingSettings()
    ledger: LedgerSettings = LedgerSettings()
    server: ServerSettings = ServerSettings()
