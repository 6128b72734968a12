"""In-memory storage."""

from ticker.storage.trade_log import CSV_HEADER, DEFAULT_CAPACITY, TradeLog

__all__ = [
    "CSV_HEADER",
    "DEFAULT_CAPACITY",
    "TradeLog",
]
