from __future__ import annotations

import hashlib
import hmac
import logging
import os
import secrets
from pathlib import Path
from typing import Union

from .exceptions import KeyFileMissingError
from .utils import atomic_write, hash_algorithm_from_env

logger = logging.getLogger("config_vault.integrity")
logger.addHandler(logging.NullHandler())

# Valid PHP that halts before any following bytes are emitted; no whitespace so
# the header line still splits into exactly three tokens.
GUARD_TOKEN = "<?php/*signed-config*/exit;?>"

KEY_BYTES = 64


class KeySigner:
    """
    Owns the signing secret stored at ``key_path`` and computes HMACs with it.

    The key is read from disk on every call to :meth:`sign`, so a rotation done
    by another process is picked up immediately.
    """

    def __init__(
        self,
        key_path: Union[str, "os.PathLike[str]"],
        hash_algorithm: str = "sha512",
        guard_token: str = GUARD_TOKEN,
    ) -> None:
        if hash_algorithm not in hashlib.algorithms_available:
            raise ValueError(f"Unknown hash algorithm: {hash_algorithm}")
        if not guard_token or any(c.isspace() for c in guard_token):
            raise ValueError("Guard token must be non-empty and contain no whitespace")
        self._key_path = Path(key_path)
        self._algo = hash_algorithm
        self._guard = guard_token

    @classmethod
    def from_env(cls, key_path: Union[str, "os.PathLike[str]"]) -> "KeySigner":
        return cls(key_path, hash_algorithm=hash_algorithm_from_env())

    @property
    def key_path(self) -> Path:
        return self._key_path

    @property
    def guard_token(self) -> str:
        return self._guard

    @property
    def format_tag(self) -> str:
        return f"hmac-{self._algo}.v1"

    def has_key(self) -> bool:
        return self._key_path.is_file()

    def ensure_key(self, force_rotate: bool = False) -> bool:
        """
        Create the key file if absent, or replace it when ``force_rotate`` is set.

        Returns True if a new key was written. Documents signed with the old key
        stop verifying until they are re-signed.

        Raises:
        - WriteFailureError: If the key file cannot be written.
        """
        if self.has_key() and not force_rotate:
            return False
        token = secrets.token_urlsafe(KEY_BYTES)
        atomic_write(self._key_path, f"{self._guard} {token}\n".encode("ascii"))
        if force_rotate:
            logger.info("Signing key rotated at %s", self._key_path)
        else:
            logger.info("Signing key created at %s", self._key_path)
        return True

    def _read_key(self) -> bytes:
        try:
            raw = self._key_path.read_text(encoding="ascii")
        except FileNotFoundError as e:
            logger.error("Signing key missing at %s", self._key_path)
            raise KeyFileMissingError(f"No signing key at {self._key_path}") from e
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Signing key unreadable at %s: %s", self._key_path, e)
            raise KeyFileMissingError(f"Unreadable signing key at {self._key_path}") from e

        parts = raw.split()
        if len(parts) != 2 or parts[0] != self._guard:
            logger.error("Signing key at %s is not in the expected format", self._key_path)
            raise KeyFileMissingError(f"Malformed signing key at {self._key_path}")
        return parts[1].encode("ascii")

    def sign(self, payload: bytes) -> str:
        """Return the lowercase hex HMAC of ``payload`` under the current key."""
        if not isinstance(payload, (bytes, bytearray)):
            raise TypeError("Payload must be bytes")
        key = self._read_key()
        return hmac.new(key, bytes(payload), self._algo).hexdigest()

    def __repr__(self) -> str:
        return f"<KeySigner algo={self._algo} key_path={str(self._key_path)!r}>"
