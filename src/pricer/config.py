"""Configuration system using pydantic-settings with environment variable loading."""

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class BirdeyeSettings(BaseSettings):
    """Birdeye (primary price source) connection and pacing settings."""

    model_config = SettingsConfigDict(env_prefix="BIRDEYE_")

    api_key: SecretStr = SecretStr("")
    base_url: str = "https://public-api.birdeye.so"
    min_gap_seconds: float = 5.0  # 0.2 RPS, free tier
    rate_limit_backoff_seconds: float = 30.0
    warmup_backoff_seconds: float = 30.0
    request_timeout: float = 30.0
    window_resolution: str = "1H"
    warmup_resolution: str = "1D"
    warmup_lookback_days: int = 365


class CoinGeckoSettings(BaseSettings):
    """CoinGecko (secondary price source) connection and pacing settings."""

    model_config = SettingsConfigDict(env_prefix="COINGECKO_")

    api_key: SecretStr = SecretStr("")  # optional demo key
    base_url: str = "https://api.coingecko.com/api/v3"
    min_gap_seconds: float = 4.0  # 15 requests per minute
    rate_limit_backoff_seconds: float = 15.0
    warmup_backoff_seconds: float = 60.0
    request_timeout: float = 30.0
    horizon_days: int = 365  # free tier data horizon
    warmup_lookback_days: int = 364


class WindowSettings(BaseSettings):
    """Symmetric search radii (seconds) around a transaction timestamp.

    Read from SHORT_RANGE, MEDIUM_RANGE and LONG_RANGE without a prefix.
    """

    model_config = SettingsConfigDict(env_prefix="")

    short_range: int = 2 * 60 * 60
    medium_range: int = 24 * 60 * 60
    long_range: int = 10 * 24 * 60 * 60


class ResolverSettings(BaseSettings):
    """Fallback resolver policy."""

    model_config = SettingsConfigDict(env_prefix="RESOLVER_")

    retry_budget: int = 2
    # None accepts the nearest cached sample however far away it is
    max_cache_distance_seconds: int | None = None


class LedgerSettings(BaseSettings):
    """Input/output locations for the transaction ledger and candle caches."""

    model_config = SettingsConfigDict(env_prefix="LEDGER_")

    input_path: str = "transactions.csv"
    output_path: str = "transactions-updated.csv"
    cache_dir: str = ".cache"
    warmup_enabled: bool = True


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: str = "console"  # "console" or "json"; env LOG_FORMAT
    birdeye: BirdeyeSettings = BirdeyeSettings()
    coingecko: CoinGeckoSettings = CoinGeckoSettings()
    windows: WindowSettings = WindowSettings()
    resolver: ResolverSettings = ResolverSettings()
    ledger: LedgerSettings = LedgerSettings()
