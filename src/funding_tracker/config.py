"""Configuration system using pydantic-settings with environment variable loading."""

from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class TrackerSettings(BaseSettings):
    """Polling loop timing."""

    model_config = SettingsConfigDict(env_prefix="TRACKER_")

    update_interval: float = 60.0  # seconds between fetch cycles
    housekeeping_interval: float = 3600.0  # seconds between housekeeping ticks


class DatabaseSettings(BaseSettings):
    """SQLite storage location."""

    model_config = SettingsConfigDict(env_prefix="DB_")

    path: str = "data/funding.db"


class ServerSettings(BaseSettings):
    """HTTP server configuration."""

    model_config = SettingsConfigDict(env_prefix="SERVER_")

    host: str = "0.0.0.0"
    port: int = 8080


class VenueSettings(BaseSettings):
    """Connection settings shared by every HTTP exchange adapter.

    Each venue subclasses this with its own env prefix and defaults.
    """

    base_url: str = ""
    active: bool = True
    timeout_seconds: float = 30.0


class PacificaSettings(VenueSettings):
    model_config = SettingsConfigDict(env_prefix="PACIFICA_")

    base_url: str = "https://api.pacifica.fi/api"


class LighterSettings(VenueSettings):
    model_config = SettingsConfigDict(env_prefix="LIGHTER_")

    base_url: str = "https://mainnet.zklighter.elliot.ai/api"


class ExtendedSettings(VenueSettings):
    model_config = SettingsConfigDict(env_prefix="EXTENDED_")

    base_url: str = "https://api.starknet.extended.exchange/api"


class HibachiSettings(VenueSettings):
    model_config = SettingsConfigDict(env_prefix="HIBACHI_")

    base_url: str = "https://data-api.hibachi.xyz"


class BackpackSettings(VenueSettings):
    model_config = SettingsConfigDict(env_prefix="BACKPACK_")

    base_url: str = "https://api.backpack.exchange/api"
    active: bool = False
    timeout_seconds: float = 5.0


class CcxtSettings(BaseSettings):
    """Centralized venues polled through ccxt's unified funding rate API."""

    model_config = SettingsConfigDict(env_prefix="CCXT_")

    exchange_ids: list[str] = ["bybit"]
    settle: str = "USDT"  # settlement currency of tracked perpetuals
    active: bool = False
    timeout_seconds: float = 30.0
    markets_refresh_seconds: float = 3600.0  # market list reload, picks up new listings


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"
    proxy: SecretStr | None = None  # outbound proxy, may embed credentials
    tracker: TrackerSettings = TrackerSettings()
    database: DatabaseSettings = DatabaseSettings()
    server: ServerSettings = ServerSettings()
    pacifica: PacificaSettings = PacificaSettings()
    lighter: LighterSettings = LighterSettings()
    extended: ExtendedSettings = ExtendedSettings()
    hibachi: HibachiSettings = HibachiSettings()
    backpack: BackpackSettings = BackpackSettings()
    ccxt: CcxtSettings = CcxtSettings()
