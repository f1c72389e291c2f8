"""Main aicompose TUI Application.

Hosts the content creation dialog for one field file. The app owns the
hand-off to the hosting document: the text accepted in the dialog is written
back to the field file, guarded against concurrent modification.
"""

from pathlib import Path
from typing import List, Optional

from textual.app import App
from textual.binding import Binding
import structlog

from aicompose.models.config import Config
from aicompose.models.dialog_status import DialogStatus
from aicompose.services.content_retrieval import ContentRetriever
from aicompose.services.file_operations import FieldFile
from aicompose.services.generation import ContentGenerator
from aicompose.tui.screens import ContentCreationScreen

logger = structlog.get_logger()


class AIComposeApp(App[Optional[str]]):
    """Content creation dialog application.

    Exits with the accepted text, or None if the dialog was cancelled.
    """

    CSS = """
    Screen {
        background: $surface;
    }
    """

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit", show=True, priority=True),
    ]

    def __init__(
        self,
        field_file: Path,
        config: Config,
        history: List[DialogStatus],
        generator: Optional[ContentGenerator] = None,
        retriever: Optional[ContentRetriever] = None,
        component_path: Optional[str] = None,
        richtext: bool = False,
    ):
        """Initialize the app.

        Args:
            field_file: File holding the field content (read now, written on accept)
            config: Application configuration
            history: Dialog history of this field (modified in place)
            generator: Text generation service
            retriever: Content retrieval service (None if not configured)
            component_path: Content path of the edited component
            richtext: Whether the field holds HTML
        """
        super().__init__()
        self.field_file = field_file
        self.config = config
        self.history = history
        self.generator = generator
        self.retriever = retriever
        self.field = FieldFile(field_file)
        self.component_path = component_path
        self.richtext = richtext

        self.original_content = self.field.read()

        logger.info(
            "app_initialized",
            field_file=str(field_file),
            content_length=len(self.original_content),
            history_length=len(history),
        )

    def on_mount(self) -> None:
        """Open the content creation dialog."""
        screen = ContentCreationScreen(
            original_content=self.original_content,
            dialog_config=self.config.dialog,
            history=self.history,
            generate_fn=self.generator.generate if self.generator else None,
            retrieve_fn=self.retriever.retrieve if self.retriever else None,
            writeback_fn=self.write_back,
            component_path=self.component_path,
            richtext=self.richtext,
            name="content_creation",
        )
        self.push_screen(screen, callback=self._on_dialog_closed)

    def write_back(self, text: str) -> None:
        """Write the accepted text into the field file.

        Raises:
            FieldFileChangedError: If the file changed since the dialog opened
            OSError: On file I/O errors
        """
        self.field.write(text)
        logger.info("field_written", field_file=str(self.field_file), size=len(text))

    def _on_dialog_closed(self, result: Optional[str]) -> None:
        logger.info("dialog_closed", accepted=result is not None)
        self.exit(result)
