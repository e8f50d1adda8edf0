"""Tests for the bounded history store."""

import json

from curlbridge.history import HistoryStore
from curlbridge.models import HistoryEntry, Request


def _entry(url="https://x/y", method="GET", name="", status=200):
    return HistoryEntry(
        Request(url=url, method=method, name=name),
        {"status": status, "statusText": "OK", "headers": {}, "data": None, "time": 1},
    )


class TestHistoryStore:
    def test_newest_first(self):
        store = HistoryStore()
        store.add(_entry(url="https://a"))
        store.add(_entry(url="https://b"))
        assert [e.request.url for e in store.entries()] == ["https://b", "https://a"]

    def test_bounded(self):
        store = HistoryStore(max_items=3)
        for i in range(5):
            store.add(_entry(url=f"https://x/{i}"))
        assert len(store) == 3
        assert store.entries()[0].request.url == "https://x/4"

    def test_get_out_of_range(self):
        store = HistoryStore()
        store.add(_entry())
        assert store.get(0) is not None
        assert store.get(1) is None
        assert store.get(-1) is None

    def test_delete_and_clear(self):
        store = HistoryStore()
        a = store.add(_entry(url="https://a"))
        store.add(_entry(url="https://b"))
        store.delete(a.id)
        assert [e.request.url for e in store.entries()] == ["https://b"]
        store.clear()
        assert store.entries() == []

    def test_search(self):
        store = HistoryStore()
        store.add(_entry(url="https://api.x.com/users", method="GET"))
        store.add(_entry(url="https://api.x.com/orders", method="POST", name="Create order"))
        assert len(store.search("USERS")) == 1
        assert len(store.search("post")) == 1
        assert len(store.search("create")) == 1
        assert len(store.search("api.x.com")) == 2

    def test_persists_to_file(self, tmp_path):
        path = tmp_path / "hist" / "history.json"
        store = HistoryStore(path)
        entry = store.add(_entry(url="https://persisted"))
        data = json.loads(path.read_text())
        assert data[0]["id"] == entry.id
        assert data[0]["request"]["url"] == "https://persisted"

        reloaded = HistoryStore(path)
        assert reloaded.entries()[0].id == entry.id
        assert reloaded.entries()[0].request.url == "https://persisted"
        assert reloaded.entries()[0].timestamp == entry.timestamp

    def test_unreadable_file_loads_empty(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text("{not json")
        assert HistoryStore(path).entries() == []

    def test_memory_only_writes_nothing(self, tmp_path):
        store = HistoryStore()
        store.add(_entry())
        assert list(tmp_path.iterdir()) == []
