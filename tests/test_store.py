"""Tests for the SQLite configuration store."""

import pytest

from homeconfig.configservice.store import ConfigurationNotFound, ConfigurationStore


@pytest.fixture
def store(tmp_path):
    store = ConfigurationStore(str(tmp_path / "nested" / "configurations.db"))
    yield store
    store.close()


def test_create_returns_record(store, sample_config):
    record = store.create("alice", sample_config)

    assert record.schema_version == 1
    assert record.data == sample_config
    assert record.updated_at.endswith("Z")
    assert record.to_dict() == {
        "id": record.id,
        "schemaVersion": 1,
        "updatedAt": record.updated_at,
        "data": sample_config,
    }


def test_get_requires_owner(store, sample_config):
    record = store.create("alice", sample_config)

    assert store.get(record.id, "alice") == record
    assert store.get(record.id, "bob") is None
    assert store.get("missing", "alice") is None


def test_list_is_scoped_to_owner(store, sample_config):
    a1 = store.create("alice", sample_config)
    a2 = store.create("alice", sample_config)
    store.create("bob", sample_config)

    assert [r.id for r in store.list_for_owner("alice")] == [a2.id, a1.id]
    assert len(store.list_for_owner("bob")) == 1
    assert store.list_for_owner("carol") == []


def test_update_replaces_data(store, sample_config):
    record = store.create("alice", sample_config)
    changed = {**sample_config, "cta": {**sample_config["cta"], "label": "Shop"}}

    updated = store.update(record.id, "alice", changed)

    assert updated.data["cta"]["label"] == "Shop"
    assert store.get(record.id, "alice").data["cta"]["label"] == "Shop"


def test_update_other_owner_raises(store, sample_config):
    record = store.create("alice", sample_config)

    with pytest.raises(ConfigurationNotFound) as exc_info:
        store.update(record.id, "bob", sample_config)

    assert exc_info.value.config_id == record.id
    assert store.get(record.id, "alice").data == sample_config


def test_delete(store, sample_config):
    record = store.create("alice", sample_config)

    assert store.delete(record.id, "bob") is False
    assert store.delete(record.id, "alice") is True
    assert store.delete(record.id, "alice") is False


def test_data_survives_reopen(tmp_path, sample_config):
    path = str(tmp_path / "configurations.db")
    first = ConfigurationStore(path)
    record = first.create("alice", sample_config)
    first.close()

    second = ConfigurationStore(path)
    try:
        assert second.get(record.id, "alice").data == sample_config
    finally:
        second.close()
