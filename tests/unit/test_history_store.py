"""Unit tests for the persistent history store."""

import json

import pytest
from pathlib import Path

from aicompose.models.dialog_status import DialogStatus
from aicompose.services.history_store import HistoryStore, history_key


S0 = DialogStatus(prompt="Summarize", response="Short")
S1 = DialogStatus(prompt="Shorten", response="Shorter")


class TestHistoryKey:
    """Test identification of the edited field."""

    def test_component_path_with_field(self):
        key = history_key(Path("teaser.txt"), "/content/site/en/jcr:content/teaser", "text")
        assert key == "/content/site/en/jcr:content/teaser#text"

    def test_file_path_is_resolved(self, tmp_path):
        field_file = tmp_path / "teaser.txt"
        assert history_key(field_file) == str(field_file.resolve())

    def test_same_file_same_key(self, tmp_path, monkeypatch):
        """Test relative and absolute spellings of a file share a history."""
        monkeypatch.chdir(tmp_path)
        assert history_key(Path("teaser.txt")) == history_key(tmp_path / "teaser.txt")

    def test_neither_file_nor_component(self):
        with pytest.raises(ValueError):
            history_key(None)


class TestHistoryStore:
    """Test HistoryStore persistence."""

    def test_new_store_is_empty(self, tmp_path):
        store = HistoryStore(tmp_path / "history.json")
        assert store.keys() == []
        assert store.entries("field") == []

    def test_save_and_load(self, tmp_path):
        """Test histories survive a save/load cycle in order."""
        path = tmp_path / "cache" / "history.json"
        store = HistoryStore(path)
        store.entries("field").extend([S0, S1])
        store.save()

        reloaded = HistoryStore(path)

        assert reloaded.entries("field") == [S0, S1]
        assert not path.with_suffix(".tmp").exists()

    def test_entries_returns_live_list(self, tmp_path):
        """Test changes to the returned list are saved."""
        store = HistoryStore(tmp_path / "history.json")
        entries = store.entries("field")
        entries.append(S0)

        assert store.entries("field") is entries

        store.save()
        assert HistoryStore(tmp_path / "history.json").entries("field") == [S0]

    def test_empty_histories_are_not_saved(self, tmp_path):
        path = tmp_path / "history.json"
        store = HistoryStore(path)
        store.entries("empty")
        store.entries("full").append(S0)
        store.save()

        assert list(json.loads(path.read_text())) == ["full"]

    def test_clear_one_key_in_place(self, tmp_path):
        """Test clearing empties the list a dialog may still hold."""
        store = HistoryStore(tmp_path / "history.json")
        entries = store.entries("a")
        entries.append(S0)
        store.entries("b").append(S1)

        store.clear("a")

        assert entries == []
        assert store.keys() == ["b"]

    def test_clear_unknown_key(self, tmp_path):
        store = HistoryStore(tmp_path / "history.json")
        store.clear("missing")
        assert store.keys() == []

    def test_clear_all(self, tmp_path):
        store = HistoryStore(tmp_path / "history.json")
        store.entries("a").append(S0)
        store.entries("b").append(S1)

        store.clear()

        assert store.keys() == []

    @pytest.mark.parametrize("content", [
        "{not json",
        "[1, 2, 3]",
        '{"field": [{"content_selector": "clipboard"}]}',
        '{"field": 42}',
    ])
    def test_malformed_file_raises_value_error(self, tmp_path, content):
        path = tmp_path / "history.json"
        path.write_text(content)

        with pytest.raises(ValueError, match="Malformed history file"):
            HistoryStore(path)
