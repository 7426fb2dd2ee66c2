"""
config_vault: named configuration documents kept in a primary store and a signed file mirror.

- KeySigner owns a locally generated secret and computes HMAC signatures.
- SignedFileStore writes and verifies one signed file per document.
- VerifiedStorage pairs a primary store with the signed mirror and reports drift.
- ConfigObject materializes a document with process-scoped overrides applied.
- Integrity only: payloads are signed, never encrypted.
"""

from __future__ import annotations

from config_vault.config import ConfigObject
from config_vault.exceptions import (
    ConfigDecodeError,
    ConfigError,
    ConfigIntegrityError,
    ConfigLockedError,
    ConfigNotFoundError,
    ConfigValidationError,
    KeyFileMissingError,
    MalformedHeaderError,
    SignatureMismatchError,
    WriteFailureError,
)
from config_vault.history import SyncJournal
from config_vault.integrity import GUARD_TOKEN, KeySigner
from config_vault.overrides import LOCAL_DOCUMENT, OverrideSet
from config_vault.store import (
    InMemoryPrimaryStore,
    PrimaryStoreProtocol,
    SignedFileStore,
    SqlitePrimaryStore,
    VerifiedStorage,
)

__all__ = [
    "ConfigObject",
    "OverrideSet",
    "LOCAL_DOCUMENT",
    "KeySigner",
    "GUARD_TOKEN",
    "SignedFileStore",
    "VerifiedStorage",
    "PrimaryStoreProtocol",
    "InMemoryPrimaryStore",
    "SqlitePrimaryStore",
    "SyncJournal",
    "ConfigError",
    "ConfigNotFoundError",
    "KeyFileMissingError",
    "ConfigIntegrityError",
    "MalformedHeaderError",
    "SignatureMismatchError",
    "WriteFailureError",
    "ConfigDecodeError",
    "ConfigValidationError",
    "ConfigLockedError",
]
