"""Custom widgets for the aicompose TUI."""

from aicompose.tui.widgets.content_editor import ContentEditor
from aicompose.tui.widgets.status_panel import StatusPanel

__all__ = ["ContentEditor", "StatusPanel"]
