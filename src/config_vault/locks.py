from __future__ import annotations

from .exceptions import ConfigLockedError


class LockGuard:
    def __init__(self, name: str) -> None:
        self._name = name
        self._locked = False

    def lock(self) -> None:
        self._locked = True

    def unlock(self) -> None:
        self._locked = False

    def ensure_unlocked(self, operation: str) -> None:
        if self._locked:
            raise ConfigLockedError(f"Config {self._name!r} is locked; {operation} refused")

    def is_locked(self) -> bool:
        return self._locked
