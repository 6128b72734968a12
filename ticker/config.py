"""Application configuration."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from signal_core.models import StrategyConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Watched assets; defaults to five large caps when the file is missing
    watchlist_path: str = "watchlist.yaml"

    # Strategy
    timeframes: list[str] = ["1h", "4h", "1d"]
    rsi_period: int = 14
    macd_fast: int = 12
    macd_slow: int = 26
    trend_ema_period: int = 20

    # Refresh loop
    refresh_interval_seconds: float = Field(default=30.0, gt=0)
    market_context_every: int = 10  # cycles between macro refreshes, 0 = never
    auto_log: bool = False

    # Trade log
    trade_log_capacity: int = Field(default=50, ge=1)

    # CoinGecko API
    coingecko_base_url: str = "https://api.coingecko.com/api/v3"
    coingecko_api_key: str = ""
    fear_greed_url: str = "https://api.alternative.me/fng/"
    request_timeout: float = 15.0
    calls_per_minute: int = 30

    # Logging
    log_level: str = "INFO"

    def strategy_config(self) -> StrategyConfig:
        """Build the core strategy config from these settings."""
        return StrategyConfig(
            rsi_period=self.rsi_period,
            macd_fast=self.macd_fast,
            macd_slow=self.macd_slow,
            trend_ema_period=self.trend_ema_period,
            timeframes=self.timeframes,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
