from __future__ import annotations

import threading
from typing import Dict, Iterable, Optional, Protocol, Set

from typing_extensions import runtime_checkable


@runtime_checkable
class PrimaryStoreProtocol(Protocol):
    """Queryable backend holding one JSON text record per config name."""

    def get(self, name: str) -> Optional[str]: ...

    def put(self, name: str, data: str) -> None: ...

    def list_names_with_prefix(self, prefix: str) -> Iterable[str]: ...


class InMemoryPrimaryStore:
    def __init__(self, records: Optional[Dict[str, str]] = None) -> None:
        self._lock = threading.Lock()
        self._records: Dict[str, str] = dict(records or {})

    def get(self, name: str) -> Optional[str]:
        with self._lock:
            return self._records.get(name)

    def put(self, name: str, data: str) -> None:
        with self._lock:
            self._records[name] = data

    def list_names_with_prefix(self, prefix: str) -> Set[str]:
        with self._lock:
            return {n for n in self._records if n.startswith(prefix)}
