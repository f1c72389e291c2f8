"""StatusPanel widget: one-line state of the dialog's background work.

Shows streaming progress of a generation and the state of content retrieval
for the component/page source selectors.
"""

from typing import Dict
from textual.widgets import Static
from aicompose.models.background_task import BackgroundTask


TASK_LABELS = {
    "generation": "Generating",
    "content_retrieval": "Loading source content",
}


class StatusPanel(Static):
    """Status line rendered from the screen's background task dict."""

    def __init__(
        self,
        background_tasks: Dict[str, BackgroundTask],
        *args,
        **kwargs
    ):
        """Initialize StatusPanel.

        Args:
            background_tasks: Task state by task type, shared with the screen
        """
        super().__init__("", *args, id="status-panel", **kwargs)
        self.background_tasks = background_tasks

    def on_mount(self) -> None:
        self.update_status()

    def update_status(self) -> None:
        """Re-render from the current background tasks ("Ready" when idle)."""
        parts = [
            self.describe(task)
            for task in self.background_tasks.values()
            if task.status in ("running", "failed")
        ]
        self.update(" | ".join(parts) if parts else "Ready")

    @staticmethod
    def describe(task: BackgroundTask) -> str:
        label = TASK_LABELS.get(task.task_type, task.task_type)

        if task.status == "failed":
            detail = f": {task.error_message}" if task.error_message else ""
            return f"⚠ {label} failed{detail}"

        if task.progress_current:
            return f"{label}... ({task.progress_current} characters)"
        return f"{label}..."

    def get_task_status(self, task_type: str) -> str:
        """Status of one task type, or "not_found" if it is not tracked."""
        task = self.background_tasks.get(task_type)
        return task.status if task else "not_found"
