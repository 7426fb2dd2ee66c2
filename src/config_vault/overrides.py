from __future__ import annotations

import json
import logging
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional

from .exceptions import ConfigDecodeError, ConfigNotFoundError
from .store.signed import SignedFileStore
from .utils import _immutable_copy, validate_config_name

logger = logging.getLogger("config_vault.overrides")
logger.addHandler(logging.NullHandler())

LOCAL_DOCUMENT = "local"

_EMPTY: Mapping[str, Any] = MappingProxyType({})


class OverrideSet:
    """
    Process-scoped override values, keyed by config name.

    Build one at process start (usually with :meth:`load`) and pass it to every
    ConfigObject. The set never changes after construction; a changed ``local``
    document is only seen by a new OverrideSet.
    """

    def __init__(self, entries: Optional[Mapping[str, Mapping[str, Any]]] = None) -> None:
        frozen: Dict[str, Mapping[str, Any]] = {}
        for name, fields in (entries or {}).items():
            validate_config_name(name)
            if not isinstance(fields, Mapping):
                raise ConfigDecodeError(f"Overrides for {name!r} must be an object")
            frozen[name] = _immutable_copy(dict(fields))
        self._entries: Mapping[str, Mapping[str, Any]] = MappingProxyType(frozen)

    @classmethod
    def load(
        cls, files: SignedFileStore, name: str = LOCAL_DOCUMENT, missing_ok: bool = False
    ) -> "OverrideSet":
        """
        Read and decode the signed override document ``name``.

        Raises the signed-read errors (not found, malformed, mismatch) and
        ConfigDecodeError if the payload is not a JSON object of objects.
        """
        try:
            payload = files.read(name)
        except ConfigNotFoundError:
            if not missing_ok:
                raise
            logger.info("No override document %r; using no overrides", name)
            return cls()

        try:
            decoded = json.loads(payload.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            logger.error("Override document %r is not valid JSON: %s", name, e)
            raise ConfigDecodeError(f"Override document {name!r} is not valid JSON") from e
        if not isinstance(decoded, dict):
            logger.error("Override document %r is not a JSON object", name)
            raise ConfigDecodeError(f"Override document {name!r} must be a JSON object")

        overrides = cls(decoded)
        logger.info("Loaded overrides for %d config(s) from %r", len(overrides), name)
        return overrides

    def for_config(self, name: str) -> Mapping[str, Any]:
        return self._entries.get(name, _EMPTY)

    def names(self) -> frozenset:
        return frozenset(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(tuple(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"<OverrideSet configs={sorted(self._entries)}>"
