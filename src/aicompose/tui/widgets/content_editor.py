"""ContentEditor widget for the text areas of the content creation dialog."""

from textual.widgets import TextArea
from textual.reactive import reactive


class ContentEditor(TextArea):
    """Soft-wrapping editor used for the prompt, the source and the response."""

    editor_has_focus = reactive(False)

    def __init__(self, text: str = "", *args, **kwargs):
        super().__init__(text, *args, soft_wrap=True, **kwargs)
        self.show_line_numbers = False

    def watch_editor_has_focus(self, focused: bool) -> None:
        self.styles.border = ("heavy", "blue") if focused else ("solid", "white")

    def on_focus(self) -> None:
        self.editor_has_focus = True

    def on_blur(self) -> None:
        self.editor_has_focus = False

    def load_content(self, content: str) -> None:
        """Replace the whole text (the dialog's setter path, not a user edit)."""
        self.text = content

    def get_content(self) -> str:
        return self.text
