"""Trade log entry model."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from signal_core.models.signal import ConfluenceSignal, SignalLabel


def generate_entry_id() -> str:
    """Generate an opaque unique identifier for a trade log entry."""
    return uuid.uuid4().hex


class TradeLogEntry(BaseModel):
    """A signal decision the user chose to record."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=generate_entry_id)
    asset: str
    signal: SignalLabel
    confidence: int = Field(ge=1, le=4)
    timestamp: datetime
    price: float = 0.0

    @field_validator("asset")
    @classmethod
    def _no_commas(cls, v: str) -> str:
        # CSV rows are written unquoted
        if "," in v:
            raise ValueError(f"asset must not contain commas: {v!r}")
        return v

    @classmethod
    def from_signal(cls, signal: ConfluenceSignal) -> "TradeLogEntry":
        """Build an entry from an aggregated signal."""
        return cls(
            asset=signal.asset,
            signal=signal.label,
            confidence=signal.confidence,
            timestamp=signal.timestamp,
            price=signal.price,
        )
