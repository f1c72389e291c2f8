"""Unit tests for CLI module."""

import os

import pytest
from click.testing import CliRunner
from unittest.mock import patch

from aicompose.cli import cli
from aicompose.models.dialog_status import DialogStatus
from aicompose.services.history_store import HistoryStore, default_history_path


CONFIG_YAML = """\
llm:
  endpoint: http://localhost:11434/v1
  api_key: ollama
  model: llama3.2
"""


@pytest.fixture
def home(tmp_path, monkeypatch):
    """Isolated home directory for config, history and logs."""
    monkeypatch.setenv("HOME", str(tmp_path))
    return tmp_path


@pytest.fixture
def stored_history(home):
    store = HistoryStore(default_history_path())
    store.entries("/content/a#text").extend([
        DialogStatus(prompt="Summarize the text", response="Short"),
        DialogStatus(prompt="Shorten", response="Shorter"),
    ])
    store.entries("/content/b#title").append(DialogStatus(prompt="Improve"))
    store.save()
    return store


@pytest.fixture
def config_file(home):
    path = home / "config.yaml"
    path.write_text(CONFIG_YAML)
    os.chmod(path, 0o600)
    return path


class TestHistoryCommand:
    """Test the history command."""

    def test_no_history(self, home):
        result = CliRunner().invoke(cli, ["history"])

        assert result.exit_code == 0
        assert "No stored history." in result.output

    def test_list_fields(self, stored_history):
        result = CliRunner().invoke(cli, ["history"])

        assert result.exit_code == 0
        assert "/content/a#text  (2 entries)" in result.output
        assert "/content/b#title  (1 entries)" in result.output

    def test_show_field_history(self, stored_history):
        result = CliRunner().invoke(cli, ["history", "--component-path", "/content/a", "--field", "text"])

        assert result.exit_code == 0
        assert "Summarize the text" in result.output
        assert "Shorter" in result.output

    def test_show_unknown_field(self, stored_history):
        result = CliRunner().invoke(cli, ["history", "--component-path", "/content/c"])

        assert result.exit_code == 0
        assert "No stored history for /content/c" in result.output

    def test_clear_field(self, stored_history):
        """Test --clear removes one field's history and keeps the others."""
        result = CliRunner().invoke(
            cli, ["history", "--component-path", "/content/a", "--field", "text", "--clear"]
        )

        assert result.exit_code == 0
        assert HistoryStore(default_history_path()).keys() == ["/content/b#title"]

    def test_clear_all(self, stored_history):
        result = CliRunner().invoke(cli, ["history", "--clear-all"])

        assert result.exit_code == 0
        assert not default_history_path().exists()

    def test_malformed_history_file(self, home):
        """Test a corrupt history file is reported instead of crashing."""
        path = default_history_path()
        path.parent.mkdir(parents=True)
        path.write_text("{broken")

        result = CliRunner().invoke(cli, ["history"])

        assert result.exit_code != 0
        assert "Malformed history file" in result.output

    def test_clear_all_discards_malformed_file(self, home):
        path = default_history_path()
        path.parent.mkdir(parents=True)
        path.write_text("{broken")

        result = CliRunner().invoke(cli, ["history", "--clear-all"])

        assert result.exit_code == 0
        assert not path.exists()


class TestEditCommand:
    """Test the edit command with the dialog replaced by a stub."""

    def test_accepted_text_and_history_saved(self, home, config_file):
        """Test the history the dialog recorded is persisted after it closes."""
        field_file = home / "teaser.txt"
        field_file.write_text("Original teaser")

        class FakeApp:
            def __init__(self, **kwargs):
                self.history = kwargs["history"]

            def run(self):
                self.history.append(DialogStatus(prompt="Shorten", response="Short teaser"))
                return "Short teaser"

        with patch("aicompose.tui.app.AIComposeApp", FakeApp):
            result = CliRunner().invoke(
                cli,
                ["edit", str(field_file), "--config", str(config_file), "--component-path", "/content/t"],
            )

        assert result.exit_code == 0, result.output
        assert "Wrote 12 characters" in result.output
        assert HistoryStore(default_history_path()).entries("/content/t") == [
            DialogStatus(prompt="Shorten", response="Short teaser")
        ]

    def test_cancelled(self, home, config_file):
        class FakeApp:
            def __init__(self, **kwargs):
                pass

            def run(self):
                return None

        with patch("aicompose.tui.app.AIComposeApp", FakeApp):
            result = CliRunner().invoke(cli, ["edit", str(home / "teaser.txt"), "--config", str(config_file)])

        assert result.exit_code == 0, result.output
        assert "Cancelled, field unchanged." in result.output

    def test_permissive_config_rejected(self, home, config_file):
        os.chmod(config_file, 0o644)

        result = CliRunner().invoke(cli, ["edit", str(home / "teaser.txt"), "--config", str(config_file)])

        assert result.exit_code != 0
        assert "chmod 600" in result.output
