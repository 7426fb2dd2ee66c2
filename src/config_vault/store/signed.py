from __future__ import annotations

import hmac
import logging
from pathlib import Path
from typing import Set, Tuple, Union

from config_vault.exceptions import (
    ConfigIntegrityError,
    ConfigNotFoundError,
    MalformedHeaderError,
    SignatureMismatchError,
    WriteFailureError,
)
from config_vault.integrity import KeySigner
from config_vault.utils import (
    RootLike,
    atomic_write,
    is_config_name,
    resolve_root,
    validate_config_name,
)

logger = logging.getLogger("config_vault.store")
logger.addHandler(logging.NullHandler())


class SignedFileStore:
    """
    One signed file per document under a root directory.

    File layout: ``<guard-token> <format-tag> <signature-hex>\\n<payload>``. The
    signature covers the payload bytes exactly as stored.
    """

    def __init__(self, root: RootLike, signer: KeySigner, extension: str = ".php") -> None:
        if not extension.startswith("."):
            raise ValueError("Extension must start with '.'")
        self._root = root
        self._signer = signer
        self._ext = extension

    @property
    def root(self) -> Path:
        return resolve_root(self._root)

    @property
    def signer(self) -> KeySigner:
        return self._signer

    def path_for(self, name: str) -> Path:
        return self.root / f"{validate_config_name(name)}{self._ext}"

    def exists(self, name: str) -> bool:
        return self.path_for(name).is_file()

    def write(self, name: str, payload: bytes) -> None:
        path = self.path_for(name)
        signature = self._signer.sign(payload)
        header = f"{self._signer.guard_token} {self._signer.format_tag} {signature}\n"
        atomic_write(path, header.encode("ascii") + bytes(payload))
        logger.info("Signed document written name=%r bytes=%d", name, len(payload))

    def _load(self, name: str) -> Tuple[str, bytes]:
        path = self.path_for(name)
        try:
            raw = path.read_bytes()
        except FileNotFoundError as e:
            logger.error("Signed document %r not found at %s", name, path)
            raise ConfigNotFoundError(f"No signed document named {name!r}") from e

        head, sep, payload = raw.partition(b"\n")
        if not sep:
            logger.error("Signed document %r has no header line", name)
            raise MalformedHeaderError(name, "missing header line")
        try:
            tokens = head.decode("ascii").split()
        except UnicodeDecodeError as e:
            raise MalformedHeaderError(name, "header is not ASCII") from e
        if len(tokens) != 3:
            logger.error("Signed document %r header has %d tokens", name, len(tokens))
            raise MalformedHeaderError(name, f"expected 3 header tokens, got {len(tokens)}")
        return tokens[2], payload

    def read(self, name: str) -> bytes:
        """
        Return the payload of ``name`` after checking its signature.

        Raises:
        - ConfigNotFoundError: If the document does not exist.
        - MalformedHeaderError: If the header is not exactly three tokens.
        - SignatureMismatchError: If the payload or signature was altered.
        - KeyFileMissingError: If there is no signing key.

        Tampering that puts whitespace into the signature changes the token count
        and is reported as MalformedHeaderError; non-ASCII bytes in the header
        are reported the same way.
        """
        stored, payload = self._load(name)
        expected = self._signer.sign(payload)
        if not hmac.compare_digest(stored, expected):
            logger.error("Signature mismatch for signed document %r", name)
            raise SignatureMismatchError(name, "signature does not match payload")
        logger.debug("Signed document verified name=%r", name)
        return payload

    def verify(self, name: str, return_payload: bool = False) -> Union[bool, bytes]:
        """
        Non-raising integrity check. Returns False for missing, malformed or tampered documents.

        With ``return_payload`` a valid empty document returns ``b""``, which is
        falsy; compare against ``False`` with ``is`` rather than testing truthiness.
        KeyFileMissingError still propagates.
        """
        try:
            payload = self.read(name)
        except ConfigNotFoundError:
            return False
        except ConfigIntegrityError as exc:
            logger.warning("Verification failed for %r: %s", name, exc.detail)
            return False
        return payload if return_payload else True

    def resign(self, name: str) -> bool:
        """Re-sign the stored payload with the current key. Returns False if absent."""
        try:
            _, payload = self._load(name)
        except ConfigNotFoundError:
            return False
        self.write(name, payload)
        logger.info("Signed document re-signed name=%r", name)
        return True

    def resign_all(self, prefix: str = "") -> Set[str]:
        return {name for name in self.list_names(prefix) if self.resign(name)}

    def delete(self, name: str) -> bool:
        path = self.path_for(name)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error("Could not delete %s: %s", path, e)
            raise WriteFailureError(f"Could not delete {path}: {e}") from e
        logger.info("Signed document deleted name=%r", name)
        return True

    def list_names(self, prefix: str = "") -> Set[str]:
        root = self.root
        if not root.is_dir():
            return set()
        names: Set[str] = set()
        for entry in root.iterdir():
            if not entry.is_file() or not entry.name.endswith(self._ext):
                continue
            name = entry.name[: -len(self._ext)]
            # the key file and anything else that is not a config name
            if not is_config_name(name) or not name.startswith(prefix):
                continue
            names.add(name)
        return names

    def __repr__(self) -> str:
        return f"<SignedFileStore root={str(self.root)!r} ext={self._ext!r}>"
