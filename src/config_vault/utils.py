from __future__ import annotations

import logging
import os
import re
import tempfile
from copy import deepcopy
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Union

from .exceptions import ConfigValidationError, WriteFailureError

__all__ = [
    "RootLike",
    "is_config_name",
    "validate_config_name",
    "resolve_root",
    "atomic_write",
    "store_root_from_env",
    "hash_algorithm_from_env",
    "_immutable_copy",
    "_json_copy",
]

logger = logging.getLogger("config_vault.utils")
logger.addHandler(logging.NullHandler())

RootLike = Union[str, "os.PathLike[str]", Callable[[], Union[str, "os.PathLike[str]"]]]

_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9._-]*$")
_NAME_MAX = 200

ROOT_ENV = "CONFIG_VAULT_ROOT"
HASH_ENV = "CONFIG_VAULT_HASH"


def is_config_name(name: object) -> bool:
    return isinstance(name, str) and len(name) <= _NAME_MAX and bool(_NAME_RE.match(name))


def validate_config_name(name: str) -> str:
    """Return ``name`` unchanged if it is a lowercase, filesystem-safe identifier."""
    if not isinstance(name, str):
        raise ConfigValidationError({str(name): "Config name must be a str."})
    if len(name) > _NAME_MAX:
        raise ConfigValidationError({name[:32]: f"Config name longer than {_NAME_MAX} chars."})
    if not _NAME_RE.match(name):
        raise ConfigValidationError(
            {name: "Config name must be lowercase letters, digits, '.', '_' or '-'."}
        )
    return name


def resolve_root(root: RootLike) -> Path:
    # a callable root is resolved on every use so callers can relocate the store
    if callable(root):
        root = root()
    return Path(root)


def atomic_write(path: Path, data: bytes) -> None:
    """
    Replace ``path`` with ``data`` via a temp file in the same directory.

    Readers never observe a half-written file. Raises WriteFailureError on any OSError.
    """
    tmp_name: Optional[str] = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as e:
        logger.error("Write to %s failed: %s", path, e)
        raise WriteFailureError(f"Could not write {path}: {e}") from e
    finally:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except OSError:
                logger.debug("Temp file %s already gone", tmp_name)


def store_root_from_env(default: Optional[str] = None) -> Path:
    value = os.getenv(ROOT_ENV, "") or default
    if not value:
        raise RuntimeError(f"{ROOT_ENV} is not set and no default root was given")
    return Path(value)


def hash_algorithm_from_env(default: str = "sha512") -> str:
    return os.getenv(HASH_ENV, "") or default


def _immutable_copy(value: Any) -> Any:
    try:
        return _recursive_immutable_copy(value)
    except Exception as e:
        raise ValueError("Value is not deepcopy-able") from e


def _recursive_immutable_copy(value: Any) -> Any:
    if isinstance(value, list):
        return tuple(_recursive_immutable_copy(v) for v in value)
    if isinstance(value, dict):
        return MappingProxyType({k: _recursive_immutable_copy(v) for k, v in value.items()})
    return deepcopy(value)


def _json_copy(value: Any) -> Any:
    """Deep copy ``value`` back into plain JSON containers (dict and list)."""
    if isinstance(value, (list, tuple)):
        return [_json_copy(v) for v in value]
    if isinstance(value, Mapping):
        return {k: _json_copy(v) for k, v in value.items()}
    return deepcopy(value)
