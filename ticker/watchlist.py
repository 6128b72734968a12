"""Watchlist loaded from watchlist.yaml.

Supports:
- A list of assets, each a CoinGecko id with its display symbol
- Backward compatible: no YAML file = the default five coins
"""

import logging
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

logger = logging.getLogger(__name__)


class AssetEntry(BaseModel):
    """A single watched asset."""

    id: str  # CoinGecko id, e.g. "bitcoin"
    symbol: str  # Display symbol, e.g. "BTC"
    enabled: bool = True

    @field_validator("symbol")
    @classmethod
    def _csv_safe(cls, v: str) -> str:
        if "," in v:
            raise ValueError(f"symbol must not contain commas: {v!r}")
        return v.upper()


DEFAULT_ASSETS: list[AssetEntry] = [
    AssetEntry(id="bitcoin", symbol="BTC"),
    AssetEntry(id="ethereum", symbol="ETH"),
    AssetEntry(id="binancecoin", symbol="BNB"),
    AssetEntry(id="cardano", symbol="ADA"),
    AssetEntry(id="ripple", symbol="XRP"),
]


class Watchlist(BaseModel):
    """Top-level watchlist.yaml configuration."""

    assets: list[AssetEntry] = list(DEFAULT_ASSETS)

    @field_validator("assets")
    @classmethod
    def _unique(cls, v: list[AssetEntry]) -> list[AssetEntry]:
        symbols = [a.symbol for a in v]
        duplicates = sorted({s for s in symbols if symbols.count(s) > 1})
        if duplicates:
            raise ValueError(f"duplicate symbols in watchlist: {duplicates}")
        return v

    def enabled_assets(self) -> list[AssetEntry]:
        return [a for a in self.assets if a.enabled]

    def select(self, symbols: list[str]) -> "Watchlist":
        """Restrict the watchlist to the given symbols (case-insensitive)."""
        wanted = {s.strip().upper() for s in symbols if s.strip()}
        unknown = wanted - {a.symbol for a in self.assets}
        if unknown:
            raise ValueError(f"unknown symbols: {sorted(unknown)}")
        return Watchlist(assets=[a for a in self.assets if a.symbol in wanted])


def load_watchlist(path: Path | str | None = None) -> Watchlist:
    """Load the watchlist from YAML.

    Falls back to the default coins if the file doesn't exist.
    """
    config_path = Path(path or "watchlist.yaml")

    # Load .env so settings read later in the same process see it
    load_dotenv(config_path.parent / ".env", override=False)

    if not config_path.exists():
        logger.info("No watchlist found at %s, using defaults", config_path)
        return Watchlist()

    with open(config_path, encoding="utf-8") as f:
        try:
            raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"invalid watchlist {config_path}: {e}") from e

    if not isinstance(raw, dict):
        raise ValueError(f"invalid watchlist {config_path}: expected a mapping")

    watchlist = Watchlist(**raw)
    logger.info(
        "Loaded watchlist: %d assets (%d enabled)",
        len(watchlist.assets),
        len(watchlist.enabled_assets()),
    )
    return watchlist
