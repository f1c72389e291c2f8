"""Textual screen components."""

from aicompose.tui.screens.content_creation import ContentCreationScreen

__all__ = [
    "ContentCreationScreen",
]
