"""
Key-value store tests, run against every backend.

Run: pytest backend/test_kv_store.py -v
"""

import pytest

from backend.kv_store import InMemoryKVStore, SqlAlchemyKVStore, SqliteKVStore, create_kv_store


@pytest.fixture(params=["memory", "sqlite", "sqlalchemy"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryKVStore()
    if request.param == "sqlite":
        return SqliteKVStore(str(tmp_path / "kv.db"))
    return SqlAlchemyKVStore(f"sqlite:///{tmp_path / 'kv_sa.db'}")


def test_get_missing_is_none(store):
    assert store.get("nope") is None


def test_set_get_overwrite(store):
    store.set("k", {"a": 1})
    assert store.get("k") == {"a": 1}
    store.set("k", {"a": 2})
    assert store.get("k") == {"a": 2}


def test_delete_is_idempotent(store):
    store.set("k", 1)
    store.delete("k")
    store.delete("k")
    assert store.get("k") is None


def test_prefix_scan_is_scoped(store):
    store.set("user:a:projects:proj_2", {"id": "proj_2"})
    store.set("user:a:projects:proj_1", {"id": "proj_1"})
    store.set("user:a:preferences", {"theme": "dark"})
    store.set("user:ab:projects:proj_3", {"id": "proj_3"})

    values = store.get_by_prefix("user:a:projects:")
    assert [v["id"] for v in values] == ["proj_1", "proj_2"]


def test_prefix_treats_like_wildcards_literally(store):
    store.set("user:a_b:projects:1", {"id": "1"})
    store.set("user:aXb:projects:2", {"id": "2"})
    store.set("user:100%:projects:3", {"id": "3"})
    assert [v["id"] for v in store.get_by_prefix("user:a_b:")] == ["1"]
    assert [v["id"] for v in store.get_by_prefix("user:100%:")] == ["3"]


def test_multi_key_operations(store):
    store.mset(["a", "b", "c"], [1, 2, 3])
    assert store.mget(["c", "missing", "a"]) == [3, 1]
    store.mdel(["a", "b"])
    assert store.mget(["a", "b", "c"]) == [3]


def test_mset_length_mismatch(store):
    with pytest.raises(ValueError):
        store.mset(["a", "b"], [1])


def test_values_are_copies():
    store = InMemoryKVStore()
    doc = {"tags": ["x"]}
    store.set("k", doc)
    doc["tags"].append("y")
    fetched = store.get("k")
    fetched["tags"].append("z")
    assert store.get("k") == {"tags": ["x"]}


def test_sqlite_persists_across_instances(tmp_path):
    path = str(tmp_path / "kv.db")
    SqliteKVStore(path).set("k", "v")
    assert SqliteKVStore(path).get("k") == "v"


def test_create_kv_store_selection(tmp_path):
    assert isinstance(create_kv_store(), InMemoryKVStore)
    assert isinstance(create_kv_store(database_path=str(tmp_path / "x.db")), SqliteKVStore)
    assert isinstance(create_kv_store(database_url=f"sqlite:///{tmp_path / 'y.db'}"), SqlAlchemyKVStore)
