# python
import pytest

from config_vault.integrity import KeySigner
from config_vault.store import InMemoryPrimaryStore, SignedFileStore, VerifiedStorage

KEY_FILENAME = ".signing-key.php"


@pytest.fixture
def store_root(tmp_path):
    root = tmp_path / "configs"
    root.mkdir()
    return root


@pytest.fixture
def signer(store_root):
    s = KeySigner(store_root / KEY_FILENAME)
    s.ensure_key()
    return s


@pytest.fixture
def files(store_root, signer):
    return SignedFileStore(store_root, signer)


@pytest.fixture
def primary():
    return InMemoryPrimaryStore()


@pytest.fixture
def make_storage(primary, files):
    def _make(name, journal=None):
        return VerifiedStorage(name, primary, files, journal=journal)

    return _make
