# tests/test_storage.py
import json

from songsearch.storage import (
    Creator,
    InMemoryKeyValueStore,
    SQLiteKeyValueStore,
    build_catalog_document,
    build_history_store,
    load_catalog,
    parse_songs,
)


def test_parse_songs_maps_catalog_keys(catalog_doc):
    songs = parse_songs(catalog_doc)
    canon = songs[0]

    assert canon.id == "canon_in_d"
    assert canon.primary_title == "Canon in D"
    assert canon.creators[0] == Creator(name="Johann Pachelbel", aliases=("Pachelbel", "帕赫贝尔"))
    assert canon.related_info == ("古典音乐",)
    assert canon.audio_path == "/file_storage/music/canon.mp3"
    assert songs[1].extra_info == "崩坏3动画短片主题曲"


def test_load_catalog_from_json(tmp_path, catalog_doc):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(catalog_doc, ensure_ascii=False), encoding="utf-8")

    assert load_catalog(path) == catalog_doc


def test_load_catalog_missing_or_broken(tmp_path):
    assert load_catalog(tmp_path / "missing.json") is None

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    assert load_catalog(broken) is None


def test_sqlite_store_roundtrip(tmp_path):
    path = tmp_path / "sub" / "history.db"
    store = SQLiteKeyValueStore(path)

    assert store.get("k") is None
    store.set("k", ["卡农", "moon"])
    store.set("k", ["moon"])
    assert store.get("k") == ["moon"]

    reopened = SQLiteKeyValueStore(path)
    assert reopened.get("k") == ["moon"]

    reopened.remove("k")
    assert reopened.get("k") is None
    reopened.set("a", 1)
    reopened.clear()
    assert reopened.get("a") is None


def test_in_memory_store():
    store = InMemoryKeyValueStore()
    store.set("k", [1])
    assert store.get("k") == [1]
    store.remove("k")
    store.remove("k")
    assert store.get("k") is None


def test_factories_from_env(monkeypatch, tmp_path, catalog_doc):
    monkeypatch.setenv("HISTORY_STORAGE", "sqlite")
    monkeypatch.setenv("HISTORY_SQLITE_PATH", str(tmp_path / "h.db"))
    assert isinstance(build_history_store(), SQLiteKeyValueStore)

    monkeypatch.setenv("HISTORY_STORAGE", "memory")
    assert isinstance(build_history_store(), InMemoryKeyValueStore)

    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(catalog_doc), encoding="utf-8")
    monkeypatch.setenv("CATALOG_PATH", str(path))
    assert build_catalog_document() == catalog_doc
