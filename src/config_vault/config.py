from __future__ import annotations

import json
import logging
import threading
from functools import wraps
from types import MappingProxyType
from typing import Any, Callable, Dict, FrozenSet, Iterator, KeysView, Optional, Set, TypeVar, cast

from .exceptions import ConfigDecodeError
from .locks import LockGuard
from .overrides import OverrideSet
from .store.manager import VerifiedStorage
from .utils import _json_copy

logger = logging.getLogger("config_vault.config")
logger.addHandler(logging.NullHandler())


F = TypeVar("F", bound=Callable[..., Any])


def requires_unlocked(func: F) -> F:
    """
    Decorator refusing mutation while the config object is locked.
    Raises ConfigLockedError if locked.
    """

    @wraps(func)
    def wrapper(self: "ConfigObject", *args: Any, **kwargs: Any) -> Any:
        self._ConfigObject__lock_guard.ensure_unlocked(func.__name__)  # type: ignore[attr-defined]
        return func(self, *args, **kwargs)

    return cast(F, wrapper)


def _decode_document(name: str, data: Optional[str]) -> Dict[str, Any]:
    if data is None:
        return {}
    try:
        decoded = json.loads(data)
    except ValueError as e:
        logger.error("Stored document %r is not valid JSON: %s", name, e)
        raise ConfigDecodeError(f"Stored document {name!r} is not valid JSON") from e
    if not isinstance(decoded, dict):
        logger.error("Stored document %r is not a JSON object", name)
        raise ConfigDecodeError(f"Stored document {name!r} must be a JSON object")
    return decoded


class ConfigObject:
    """
    Materialized configuration: the stored document with overrides applied on top.

    Fields are held in an explicit ordered mapping (stored keys first, then keys
    that only exist in the overrides). Which keys came from overrides is tracked
    in memory and never written as data.

    Use get()/set()/update() or item access; there is no attribute access to fields.
    """

    def __init__(
        self,
        name: str,
        storage: VerifiedStorage,
        overrides: Optional[OverrideSet] = None,
    ) -> None:
        if name != storage.name:
            raise ValueError(f"Config name {name!r} does not match storage {storage.name!r}")
        self.__lock = threading.RLock()
        self.__lock_guard = LockGuard(name)
        self.__name = name
        self.__storage = storage
        self.__overrides = overrides if overrides is not None else OverrideSet()
        self.__stored: Dict[str, Any] = {}
        self.__fields: Dict[str, Any] = {}
        self.__overridden: FrozenSet[str] = frozenset()
        self.__reassigned: Set[str] = set()
        self.reload()

    @property
    def name(self) -> str:
        return self.__name

    @property
    def storage(self) -> VerifiedStorage:
        return self.__storage

    def reload(self) -> None:
        """Rebuild all fields from storage and the override entry, discarding local edits."""
        with self.__lock:
            stored = _decode_document(self.__name, self.__storage.read())
            entry = self.__overrides.for_config(self.__name)
            fields = {k: _json_copy(v) for k, v in stored.items()}
            for k, v in entry.items():
                fields[k] = _json_copy(v)
            self.__stored = stored
            self.__fields = fields
            self.__overridden = frozenset(entry)
            self.__reassigned = set()
            logger.debug(
                "Config %r materialized keys=%d overridden=%s",
                self.__name,
                len(fields),
                sorted(self.__overridden),
            )

    def is_overridden(self, key: str) -> bool:
        return key in self.__overridden

    def overridden_keys(self) -> FrozenSet[str]:
        return self.__overridden

    # locking
    def lock(self) -> None:
        with self.__lock:
            self.__lock_guard.lock()
            logger.info("Config %r locked.", self.__name)

    def unlock(self) -> None:
        with self.__lock:
            self.__lock_guard.unlock()
            logger.info("Config %r unlocked.", self.__name)

    def is_locked(self) -> bool:
        with self.__lock:
            return self.__lock_guard.is_locked()

    # access
    def get(self, key: str, default: Any = None) -> Any:
        with self.__lock:
            if key not in self.__fields:
                return default
            return _json_copy(self.__fields[key])

    @requires_unlocked
    def set(self, key: str, value: Any) -> None:
        if not isinstance(key, str):
            raise TypeError("Config field names must be str")
        with self.__lock:
            self.__fields[key] = _json_copy(value)
            if key in self.__overridden:
                self.__reassigned.add(key)

    @requires_unlocked
    def update(self, **kwargs: Any) -> None:
        with self.__lock:
            for key, value in kwargs.items():
                self.set(key, value)

    @requires_unlocked
    def remove(self, key: str) -> None:
        with self.__lock:
            del self.__fields[key]
            self.__reassigned.discard(key)

    def keys(self) -> KeysView[str]:
        with self.__lock:
            return dict.fromkeys(self.__fields).keys()

    def snapshot(self) -> MappingProxyType[str, Any]:
        """Read-only copy of the current fields, overrides included."""
        with self.__lock:
            return MappingProxyType({k: _json_copy(v) for k, v in self.__fields.items()})

    def as_dict(self) -> Dict[str, Any]:
        with self.__lock:
            return {k: _json_copy(v) for k, v in self.__fields.items()}

    def _persistable(self, include_overrides: bool) -> Dict[str, Any]:
        if include_overrides:
            return self.as_dict()
        out: Dict[str, Any] = {}
        for key, value in self.__fields.items():
            if key in self.__overridden and key not in self.__reassigned:
                # write back what was stored, not the override
                if key in self.__stored:
                    out[key] = _json_copy(self.__stored[key])
                continue
            out[key] = _json_copy(value)
        return out

    @requires_unlocked
    def save(self, include_overrides: bool = False) -> None:
        """
        Serialize the fields to JSON and write them through VerifiedStorage.

        Overridden keys keep their stored value unless the caller assigned them
        after construction; pass ``include_overrides=True`` to persist the merged
        state as-is. Storage errors propagate; a failed file step leaves the
        primary store updated (see VerifiedStorage.write).
        """
        with self.__lock:
            document = self._persistable(include_overrides)
            try:
                data = json.dumps(document)
            except (TypeError, ValueError) as e:
                logger.error("Config %r is not JSON serializable: %s", self.__name, e)
                raise ConfigDecodeError(f"Config {self.__name!r} is not JSON serializable") from e
            self.__storage.write(data)
            self.__stored = json.loads(data)
            logger.info(
                "Config %r saved keys=%s include_overrides=%s",
                self.__name,
                list(document),
                include_overrides,
            )

    # mapping protocol
    def __getitem__(self, key: str) -> Any:
        with self.__lock:
            if key not in self.__fields:
                raise KeyError(key)
            return _json_copy(self.__fields[key])

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __delitem__(self, key: str) -> None:
        self.remove(key)

    def __contains__(self, key: object) -> bool:
        with self.__lock:
            return key in self.__fields

    def __iter__(self) -> Iterator[str]:
        with self.__lock:
            return iter(tuple(self.__fields))

    def __len__(self) -> int:
        with self.__lock:
            return len(self.__fields)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ConfigObject):
            return NotImplemented
        return self.__name == other.__name and self.as_dict() == other.as_dict()

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        with self.__lock:
            return (
                f"<ConfigObject name={self.__name!r} keys={len(self.__fields)} "
                f"overridden={sorted(self.__overridden)} locked={self.__lock_guard.is_locked()}>"
            )
