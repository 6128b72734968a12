"""In-memory trade log of user-logged signals.

Entries are kept newest first. When the capacity is exceeded the oldest
entry is evicted. Mutations are serialized by a single asyncio lock;
reads return snapshots and never block.

CSV schema (UTF-8, unquoted):
    Asset,Signal,Timestamp,Confidence
Timestamp is local time, ISO-8601 without offset.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from pathlib import Path

from signal_core.models import ConfluenceSignal, TradeLogEntry

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 50
CSV_HEADER = ("Asset", "Signal", "Timestamp", "Confidence")


def format_timestamp(ts: datetime) -> str:
    """Format as local-time ISO-8601 without offset (naive input is taken as local)."""
    if ts.tzinfo is not None:
        ts = ts.astimezone().replace(tzinfo=None)
    return ts.isoformat(timespec="seconds")


def entry_to_row(entry: TradeLogEntry) -> tuple[str, str, str, str]:
    """Get the CSV fields of one entry, in header order."""
    return (
        entry.asset,
        entry.signal.value,
        format_timestamp(entry.timestamp),
        str(entry.confidence),
    )


class TradeLog:
    """Capacity-bounded, newest-first log of signal decisions."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self._entries: list[TradeLogEntry] = []
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> list[TradeLogEntry]:
        """Snapshot of the entries, newest first."""
        return list(self._entries)

    def get(self, entry_id: str) -> TradeLogEntry | None:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    async def append(self, entry: TradeLogEntry) -> None:
        """Insert an entry at the front, evicting the oldest beyond capacity."""
        async with self._lock:
            self._entries.insert(0, entry)
            if len(self._entries) > self.capacity:
                evicted = self._entries[self.capacity:]
                del self._entries[self.capacity:]
                logger.debug(f"Evicted {len(evicted)} oldest trade log entries")

    async def log_signal(self, signal: ConfluenceSignal) -> TradeLogEntry:
        """Record a signal decision. Returns the new entry."""
        entry = TradeLogEntry.from_signal(signal)
        await self.append(entry)
        logger.info(
            f"Logged {entry.signal.value} for {entry.asset} "
            f"(confidence {entry.confidence}/4)"
        )
        return entry

    async def delete(self, entry_id: str) -> bool:
        """Remove the entry with ``entry_id``. Unknown ids are ignored.

        Returns:
            True if an entry was removed
        """
        async with self._lock:
            for i, entry in enumerate(self._entries):
                if entry.id == entry_id:
                    del self._entries[i]
                    return True
        return False

    async def clear(self) -> None:
        """Remove every entry."""
        async with self._lock:
            self._entries.clear()

    def serialize(self) -> str:
        """Render the log as CSV text: header, then one row per entry newest first."""
        lines = [",".join(CSV_HEADER)]
        lines.extend(",".join(entry_to_row(e)) for e in self._entries)
        return "\n".join(lines)

    def write_csv(self, path: Path | str) -> Path:
        """Write the serialized log to ``path`` as UTF-8."""
        path = Path(path)
        if not path.parent.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.serialize() + "\n", encoding="utf-8")
        logger.info(f"Exported {len(self)} trade log entries to {path}")
        return path
