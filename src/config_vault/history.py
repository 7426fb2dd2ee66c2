from __future__ import annotations

import datetime
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class JournalEntry:
    timestamp: datetime.datetime
    operation: str
    name: str
    tiers: tuple
    detail: str = ""


class SyncJournal:
    """Thread-safe in-memory record of operations that touched a storage tier.

    Only successful steps are recorded, so a ``write`` whose file step failed
    shows up as a lone ``write_to_active`` entry.
    """

    def __init__(self, max_entries: Optional[int] = None) -> None:
        self._lock = threading.RLock()
        self._entries: List[JournalEntry] = []
        self._max_entries = max_entries

    def record(self, operation: str, name: str, tiers: tuple, detail: str = "") -> None:
        entry = JournalEntry(
            timestamp=datetime.datetime.now(tz=datetime.timezone.utc),
            operation=operation,
            name=name,
            tiers=tuple(tiers),
            detail=detail,
        )
        with self._lock:
            self._entries.append(entry)
            if self._max_entries is not None and len(self._entries) > self._max_entries:
                # drop oldest
                del self._entries[0 : len(self._entries) - self._max_entries]

    def all_entries(self) -> List[JournalEntry]:
        with self._lock:
            return list(self._entries)

    def entries_for(self, name: str) -> List[JournalEntry]:
        with self._lock:
            return [e for e in self._entries if e.name == name]

    @property
    def last_entry(self) -> Optional[JournalEntry]:
        with self._lock:
            return self._entries[-1] if self._entries else None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def formatted_entries(self) -> List[Dict[str, Any]]:
        """Return entries as plain dicts with ISO timestamps."""
        with self._lock:
            return [
                {
                    "timestamp": e.timestamp.isoformat(),
                    "operation": e.operation,
                    "name": e.name,
                    "tiers": list(e.tiers),
                    "detail": e.detail,
                }
                for e in self._entries
            ]
