"""Tests for the file-backed draft store."""

import os
import stat

import pytest

from avrodesk.drafts import DraftStore
from core.errors.exceptions import DraftStoreError


@pytest.fixture
def store(tmp_path):
    return DraftStore(tmp_path / "events")


class TestSave:
    def test_named_draft(self, store, tmp_path):
        path = store.save("orders", 42, '{"id": 1}', "first")

        assert path == tmp_path / "events" / "orders" / "first.json"
        assert stat.S_IMODE(path.stat().st_mode) == 0o600
        draft = store.load("orders", "first.json")
        assert draft.payload == '{"id": 1}'
        assert draft.schema_id == 42
        assert draft.topic == "orders"
        assert draft.name == "first.json"
        assert draft.timestamp.tzinfo is not None

    def test_existing_name_gets_suffix(self, store):
        assert store.save("orders", 1, "{}", "draft.json").name == "draft.json"
        assert store.save("orders", 1, "{}", "draft").name == "draft_1.json"
        assert store.save("orders", 1, "{}", "draft").name == "draft_2.json"

    def test_default_name_is_timestamp(self, store):
        path = store.save("orders", 1, "{}")
        assert path.name[:4].isdigit()
        assert path.suffix == ".json"

    def test_blank_name_uses_timestamp(self, store):
        assert store.save("orders", 1, "{}", "   ").name[:4].isdigit()

    def test_payload_kept_verbatim(self, store):
        text = '{\n  "invalid": \n'
        store.save("orders", 1, text, "broken")
        assert store.load("orders", "broken.json").payload == text

    @pytest.mark.parametrize("name", ["../escape", "a/b", ".."])
    def test_rejects_path_names(self, store, name):
        with pytest.raises(DraftStoreError, match="invalid draft name"):
            store.save("orders", 1, "{}", name)

    def test_rejects_path_topic(self, store):
        with pytest.raises(DraftStoreError, match="invalid topic"):
            store.save("../orders", 1, "{}", "x")


class TestList:
    def test_newest_first(self, store):
        older = store.save("orders", 1, "{}", "older")
        newer = store.save("orders", 1, "{}", "newer")
        os.utime(older, (1_000_000, 1_000_000))
        os.utime(newer, (2_000_000, 2_000_000))
        assert store.list("orders") == ["newer.json", "older.json"]

    def test_per_topic(self, store):
        store.save("orders", 1, "{}", "a")
        store.save("users", 1, "{}", "b")
        assert store.list("users") == ["b.json"]

    def test_unknown_topic_is_empty(self, store):
        assert store.list("nothing") == []

    def test_ignores_other_files(self, store, tmp_path):
        store.save("orders", 1, "{}", "a")
        (tmp_path / "events" / "orders" / "notes.txt").write_text("x")
        assert store.list("orders") == ["a.json"]


class TestLoad:
    def test_missing_file(self, store):
        with pytest.raises(DraftStoreError, match="cannot read draft"):
            store.load("orders", "missing.json")

    def test_invalid_file(self, store, tmp_path):
        directory = tmp_path / "events" / "orders"
        directory.mkdir(parents=True)
        (directory / "bad.json").write_text('{"payload": 1}')
        with pytest.raises(DraftStoreError, match="not a valid draft file"):
            store.load("orders", "bad.json")
