import json
from types import MappingProxyType

import pytest

from config_vault import ConfigObject, OverrideSet
from config_vault.exceptions import ConfigDecodeError, ConfigLockedError, WriteFailureError


@pytest.fixture
def stored_app(make_storage):
    storage = make_storage("app")
    storage.write(json.dumps({"a": 1, "b": 2}))
    return storage


def test_override_precedence(stored_app):
    cfg = ConfigObject("app", stored_app, OverrideSet({"app": {"b": 99}}))
    assert cfg["a"] == 1
    assert cfg["b"] == 99
    assert cfg.is_overridden("a") is False
    assert cfg.is_overridden("b") is True
    assert list(cfg) == ["a", "b"]


def test_override_only_keys_are_added_last(stored_app):
    cfg = ConfigObject("app", stored_app, OverrideSet({"app": {"c": [1, 2]}, "other": {"a": 0}}))
    assert list(cfg.keys()) == ["a", "b", "c"]
    assert cfg.get("c") == [1, 2]
    assert cfg.is_overridden("a") is False
    assert cfg.overridden_keys() == frozenset({"c"})


def test_absent_record_is_empty(make_storage):
    cfg = ConfigObject("fresh", make_storage("fresh"))
    assert len(cfg) == 0
    assert cfg.as_dict() == {}
    assert cfg.get("missing", "dflt") == "dflt"
    with pytest.raises(KeyError):
        cfg["missing"]


def test_invalid_json_raises_decode_error(make_storage, primary):
    primary.put("app", "{not json")
    with pytest.raises(ConfigDecodeError):
        ConfigObject("app", make_storage("app"))


def test_non_object_json_raises_decode_error(make_storage, primary):
    primary.put("app", "[1, 2, 3]")
    with pytest.raises(ConfigDecodeError):
        ConfigObject("app", make_storage("app"))


def test_name_must_match_storage(stored_app):
    with pytest.raises(ValueError):
        ConfigObject("other", stored_app)


def test_set_and_save_round_trip(stored_app, primary, files):
    cfg = ConfigObject("app", stored_app)
    cfg["a"] = 10
    cfg.update(c={"nested": True})
    cfg.save()

    assert json.loads(primary.get("app")) == {"a": 10, "b": 2, "c": {"nested": True}}
    assert files.read("app").decode() == primary.get("app")
    assert stored_app.is_out_of_sync() is False


def test_save_keeps_stored_value_for_overridden_keys(stored_app, primary):
    cfg = ConfigObject("app", stored_app, OverrideSet({"app": {"b": 99, "env": "prod"}}))
    cfg.save()
    assert json.loads(primary.get("app")) == {"a": 1, "b": 2}


def test_save_persists_reassigned_override(stored_app, primary):
    cfg = ConfigObject("app", stored_app, OverrideSet({"app": {"b": 99}}))
    cfg["b"] = 5
    cfg.save()
    assert json.loads(primary.get("app")) == {"a": 1, "b": 5}
    assert cfg.is_overridden("b") is True


def test_save_include_overrides_persists_merged_state(stored_app, primary):
    cfg = ConfigObject("app", stored_app, OverrideSet({"app": {"b": 99, "env": "prod"}}))
    cfg.save(include_overrides=True)
    assert json.loads(primary.get("app")) == {"a": 1, "b": 99, "env": "prod"}


def test_remove_and_delitem(stored_app, primary):
    cfg = ConfigObject("app", stored_app)
    del cfg["a"]
    assert "a" not in cfg
    with pytest.raises(KeyError):
        cfg.remove("a")
    cfg.save()
    assert json.loads(primary.get("app")) == {"b": 2}


def test_values_are_copied(stored_app):
    cfg = ConfigObject("app", stored_app)
    items = [1, 2]
    cfg["items"] = items
    items.append(3)
    assert cfg["items"] == [1, 2]
    cfg.get("items").append(4)
    assert cfg["items"] == [1, 2]


def test_snapshot_is_read_only(stored_app):
    cfg = ConfigObject("app", stored_app)
    snap = cfg.snapshot()
    assert isinstance(snap, MappingProxyType)
    with pytest.raises(TypeError):
        snap["a"] = 5  # type: ignore[index]


def test_reload_discards_local_edits(stored_app):
    cfg = ConfigObject("app", stored_app)
    cfg["a"] = 100
    cfg.reload()
    assert cfg["a"] == 1


def test_lock_blocks_mutation(stored_app):
    cfg = ConfigObject("app", stored_app)
    cfg.lock()
    assert cfg.is_locked() is True
    with pytest.raises(ConfigLockedError):
        cfg["a"] = 2
    with pytest.raises(ConfigLockedError):
        cfg.update(a=2)
    with pytest.raises(ConfigLockedError):
        del cfg["a"]
    with pytest.raises(ConfigLockedError):
        cfg.save()
    assert cfg["a"] == 1
    cfg.unlock()
    cfg["a"] = 2
    assert cfg["a"] == 2


def test_unserializable_value_raises_on_save(stored_app, primary):
    cfg = ConfigObject("app", stored_app)
    cfg["bad"] = object()
    with pytest.raises(ConfigDecodeError):
        cfg.save()
    assert json.loads(primary.get("app")) == {"a": 1, "b": 2}


def test_save_failure_propagates_and_leaves_primary_ahead(stored_app, files, monkeypatch):
    cfg = ConfigObject("app", stored_app)
    cfg["a"] = 7

    def broken_write(name, payload):
        raise WriteFailureError("read-only filesystem")

    monkeypatch.setattr(files, "write", broken_write)
    with pytest.raises(WriteFailureError):
        cfg.save()
    monkeypatch.undo()
    assert stored_app.is_out_of_sync() is True


def test_equality(stored_app):
    first = ConfigObject("app", stored_app)
    second = ConfigObject("app", stored_app)
    assert first == second
    second["a"] = 3
    assert first != second
