# tests/test_history.py
import logging

import pytest

from songsearch.history import HISTORY_KEY, SearchHistory


def test_capped_most_recent_first(store):
    history = SearchHistory(store=store, limit=3)
    for q in ["alpha", "bravo", "charlie", "delta", "echo"]:
        history.append(q)

    assert history.entries() == ["echo", "delta", "charlie"]
    assert store.get(HISTORY_KEY) == ["echo", "delta", "charlie"]


def test_reappend_moves_to_front_without_growing(store):
    history = SearchHistory(store=store, limit=3)
    for q in ["alpha", "bravo", "charlie"]:
        history.append(q)
    history.append("alpha")

    assert history.entries() == ["alpha", "charlie", "bravo"]
    assert len(history) == 3


def test_short_queries_and_disabled_history_are_ignored(store):
    history = SearchHistory(store=store)
    history.append("a")
    history.append("")
    assert history.entries() == []

    disabled = SearchHistory(store=store, enabled=False)
    disabled.append("canon")
    assert disabled.entries() == []
    assert store.get(HISTORY_KEY) is None


def test_load_restores_persisted_entries(store):
    store.set(HISTORY_KEY, ["moon", "canon", "moon", 42, "halo"])
    history = SearchHistory(store=store, limit=2)

    assert history.load() == ["moon", "canon"]


def test_load_ignores_malformed_value(store):
    store.set(HISTORY_KEY, {"not": "a list"})
    history = SearchHistory(store=store)
    assert history.load() == []


def test_clear_removes_persisted_value(store):
    history = SearchHistory(store=store)
    history.append("canon")
    history.clear()

    assert history.entries() == []
    assert store.get(HISTORY_KEY) is None


def test_failing_store_is_best_effort(failing_store, caplog):
    history = SearchHistory(store=failing_store, limit=2)
    with caplog.at_level(logging.WARNING, logger="songsearch.history"):
        assert history.load() == []
        history.append("canon")
        history.append("moon")
        history.append("halo")
        history.clear()
        history.append("again")

    assert history.entries() == ["again"]
    assert "no se pudo guardar el historial" in caplog.text


def test_invalid_limit():
    with pytest.raises(ValueError):
        SearchHistory(limit=0)


def test_unexpected_store_errors_are_logged_with_traceback(quota_store, caplog):
    history = SearchHistory(store=quota_store)
    with caplog.at_level(logging.WARNING, logger="songsearch.history"):
        assert history.load() == []
        history.append("canon")
        history.clear()

    assert history.entries() == []
    messages = [r.getMessage() for r in caplog.records]
    assert messages == [
        "no se pudo leer el historial",
        "no se pudo guardar el historial",
        "no se pudo borrar el historial persistido",
    ]
    assert all(r.exc_info and r.exc_info[0] is RuntimeError for r in caplog.records)
