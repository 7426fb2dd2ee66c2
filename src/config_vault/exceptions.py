from __future__ import annotations

from typing import Dict


class ConfigError(Exception):
    """Base config exception."""


class ConfigValidationError(ConfigError):
    """Raised when a config name or value fails validation."""

    def __init__(
        self, errors: Dict[str, str], key: str | None = None, value: object | None = None
    ) -> None:
        self.errors = errors
        self.key = key
        self.value = value
        msg = f"Validation errors: {errors}"
        if key is not None and value is not None:
            msg += f" (key: {key}, value: {value})"
        super().__init__(msg)


class ConfigNotFoundError(ConfigError):
    """Raised when a requested document is not stored."""


class KeyFileMissingError(ConfigError):
    """Raised when signing is attempted without a usable key file."""


class ConfigIntegrityError(ConfigError):
    """Base for signed documents that fail verification."""

    def __init__(self, name: str, detail: str) -> None:
        self.name = name
        self.detail = detail
        super().__init__(f"Signed document {name!r}: {detail}")


class MalformedHeaderError(ConfigIntegrityError):
    """Raised when a signed document header is not `<guard> <format> <signature>`."""


class SignatureMismatchError(ConfigIntegrityError):
    """Raised when the stored signature does not match the payload."""


class WriteFailureError(ConfigError):
    """Raised when a key or document write cannot be completed."""


class ConfigDecodeError(ConfigError):
    """Raised when a stored payload is not the JSON document expected."""


class ConfigLockedError(ConfigError):
    """Raised when attempting mutation while a config object is locked."""
