from config_vault.store.adaptors import InMemoryPrimaryStore, PrimaryStoreProtocol
from config_vault.store.manager import VerifiedStorage
from config_vault.store.signed import SignedFileStore
from config_vault.store.sqlite import SqlitePrimaryStore

__all__ = [
    "InMemoryPrimaryStore",
    "PrimaryStoreProtocol",
    "SignedFileStore",
    "SqlitePrimaryStore",
    "VerifiedStorage",
]
