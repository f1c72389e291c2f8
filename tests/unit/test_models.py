"""Unit tests for data models."""

import pytest
from pydantic import ValidationError

from aicompose.models.background_task import BackgroundTask
from aicompose.models.dialog_status import DialogStatus
from aicompose.models.llm_chunks import CompletionChunk


class TestDialogStatus:
    """Test DialogStatus snapshot model."""

    def test_defaults_are_empty_dialog(self):
        """Test the default instance represents an empty dialog."""
        status = DialogStatus()

        assert status.prompt == ""
        assert status.predefined_prompt == "-"
        assert status.content_selector == "-"
        assert status.source_content == ""
        assert status.text_length == ""
        assert status.response == ""

    def test_structural_equality(self):
        """Test independently built snapshots with equal fields are equal."""
        a = DialogStatus(prompt="Summarize", source_content="Text", content_selector="widget")
        b = DialogStatus(content_selector="widget", source_content="Text", prompt="Summarize")

        assert a == b
        assert a is not b

    def test_any_field_difference_breaks_equality(self):
        base = DialogStatus(prompt="Summarize")
        assert base != base.model_copy(update={"response": "Short"})
        assert base != base.model_copy(update={"text_length": "20|One short sentence"})

    def test_frozen(self):
        """Test snapshots are immutable."""
        status = DialogStatus()
        with pytest.raises(ValidationError):
            status.prompt = "changed"

    def test_invalid_content_selector(self):
        with pytest.raises(ValidationError):
            DialogStatus(content_selector="clipboard")

    def test_json_round_trip(self):
        """Test a snapshot survives persistence as JSON."""
        status = DialogStatus(prompt="Improve", predefined_prompt="Improve it", response="Better")
        assert DialogStatus.model_validate_json(status.model_dump_json()) == status


class TestCompletionChunk:
    """Test CompletionChunk model."""

    def test_intermediate_chunk(self):
        chunk = CompletionChunk(text="Hello")
        assert chunk.finish_reason is None
        assert chunk.truncated is False

    def test_length_finish_reason_is_truncated(self):
        assert CompletionChunk(text="Hello", finish_reason="length").truncated is True

    def test_stop_finish_reason_is_not_truncated(self):
        assert CompletionChunk(text="Hello", finish_reason="stop").truncated is False


class TestBackgroundTask:
    """Test BackgroundTask model."""

    def test_defaults(self):
        task = BackgroundTask(task_type="generation")
        assert task.status == "running"
        assert task.progress_current is None
        assert task.error_message is None

    def test_mutable_progress(self):
        """Test task state can be updated as the task progresses."""
        task = BackgroundTask(task_type="content_retrieval")
        task.status = "failed"
        task.error_message = "/content/site"
        assert task.status == "failed"

    def test_invalid_task_type(self):
        with pytest.raises(ValidationError):
            BackgroundTask(task_type="indexing")


class TestStatusPanelDescribe:
    """Test the status line text for background tasks."""

    def test_running_generation_with_progress(self):
        from aicompose.tui.widgets.status_panel import StatusPanel

        task = BackgroundTask(task_type="generation", progress_current=42)
        assert StatusPanel.describe(task) == "Generating... (42 characters)"

    def test_failed_retrieval(self):
        from aicompose.tui.widgets.status_panel import StatusPanel

        task = BackgroundTask(task_type="content_retrieval", status="failed", error_message="/content/site")
        assert StatusPanel.describe(task) == "⚠ Loading source content failed: /content/site"
