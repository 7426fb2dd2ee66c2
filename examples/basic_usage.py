# python
import json
import logging
import tempfile
from pathlib import Path

from config_vault import (
    ConfigObject,
    KeySigner,
    OverrideSet,
    SignedFileStore,
    SqlitePrimaryStore,
    VerifiedStorage,
)

if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)

    root = Path(tempfile.mkdtemp())
    signer = KeySigner(root / ".signing-key.php")
    signer.ensure_key()
    files = SignedFileStore(root, signer)
    files.write("local", json.dumps({"site.main": {"debug": True}}).encode())

    overrides = OverrideSet.load(files)
    with SqlitePrimaryStore(root / "config.db") as primary:
        storage = VerifiedStorage("site.main", primary, files)
        storage.write(json.dumps({"title": "Example", "debug": False}))

        config = ConfigObject("site.main", storage, overrides)
        print("debug:", config["debug"], "overridden:", config.is_overridden("debug"))
        config["title"] = "Renamed"
        config.save()
        print("Out of sync:", storage.is_out_of_sync())
