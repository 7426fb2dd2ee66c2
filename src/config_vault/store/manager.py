from __future__ import annotations

import logging
from typing import Optional, Set

from config_vault.exceptions import ConfigDecodeError, ConfigNotFoundError
from config_vault.history import SyncJournal
from config_vault.store.adaptors import PrimaryStoreProtocol
from config_vault.store.signed import SignedFileStore
from config_vault.utils import validate_config_name

logger = logging.getLogger("config_vault.store")
logger.addHandler(logging.NullHandler())

PRIMARY = "primary"
FILE = "file"


class VerifiedStorage:
    """
    Keeps one named document in a primary store and a signed file mirror.

    ``write`` updates the primary store first and the file second. The two steps
    are not transactional: if the file step fails the primary already holds the
    new value and the tiers stay out of sync until the caller runs
    ``copy_to_file`` or ``copy_from_file``. ``is_out_of_sync`` is the only
    detection mechanism.
    """

    def __init__(
        self,
        name: str,
        primary: PrimaryStoreProtocol,
        files: SignedFileStore,
        journal: Optional[SyncJournal] = None,
    ) -> None:
        if not isinstance(primary, PrimaryStoreProtocol):
            raise TypeError("primary must implement get(), put() and list_names_with_prefix()")
        self._name = validate_config_name(name)
        self._primary = primary
        self._files = files
        self._journal = journal
        logger.debug("VerifiedStorage init name=%r", self._name)

    @property
    def name(self) -> str:
        return self._name

    @property
    def files(self) -> SignedFileStore:
        return self._files

    def _record(self, operation: str, *tiers: str) -> None:
        if self._journal is not None:
            self._journal.record(operation, self._name, tiers)

    def read(self) -> Optional[str]:
        return self._primary.get(self._name)

    def read_from_file(self) -> str:
        payload = self._files.read(self._name)
        try:
            return payload.decode("utf-8")
        except UnicodeDecodeError as e:
            logger.error("File payload for %r is not UTF-8", self._name)
            raise ConfigDecodeError(f"File payload for {self._name!r} is not UTF-8") from e

    def write_to_active(self, data: str) -> None:
        """Update the primary store only; the file mirror is left as is."""
        self._primary.put(self._name, data)
        self._record("write_to_active", PRIMARY)
        logger.debug("Primary record written name=%r", self._name)

    def copy_to_file(self) -> None:
        data = self.read()
        if data is None:
            logger.error("Nothing stored in primary for %r; cannot copy to file", self._name)
            raise ConfigNotFoundError(f"No primary record named {self._name!r}")
        self._files.write(self._name, data.encode("utf-8"))
        self._record("copy_to_file", FILE)

    def copy_from_file(self) -> None:
        self.write_to_active(self.read_from_file())
        self._record("copy_from_file", PRIMARY)

    def is_out_of_sync(self) -> bool:
        """
        True if the primary value differs from the verified file payload.

        A missing file counts as a difference unless the primary is empty too.
        Tampered or malformed files raise instead of reporting a difference.
        """
        current = self.read()
        try:
            mirrored: Optional[str] = self.read_from_file()
        except ConfigNotFoundError:
            mirrored = None
        out_of_sync = current != mirrored
        if out_of_sync:
            logger.warning("Config %r is out of sync between primary and file", self._name)
        return out_of_sync

    def write(self, data: str) -> None:
        """
        Write ``data`` to the primary store, then mirror it to the signed file.

        A failure in the second step propagates without rolling back the first.
        """
        self.write_to_active(data)
        try:
            self.copy_to_file()
        except Exception:
            logger.error(
                "File mirror write failed for %r after primary write; tiers now out of sync",
                self._name,
            )
            raise
        logger.info("Config %r written to primary and file", self._name)

    def get_names_with_prefix(self, prefix: str) -> Set[str]:
        return set(self._primary.list_names_with_prefix(prefix))

    def __repr__(self) -> str:
        return f"<VerifiedStorage name={self._name!r}>"
