"""Content Creation Screen.

The dialog for generating replacement text for one content field. The user
writes (or picks) a prompt, chooses the source text the prompt operates on,
generates a response via the LLM and accepts it into the field. A back/forward
history over the dialog states lets the user return to earlier prompts and
responses without losing the current one.
"""

from typing import AsyncIterator, Awaitable, Callable, Dict, List, Optional
import asyncio

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal, Vertical
from textual.screen import Screen
from textual.reactive import reactive
from textual.widgets import Button, Footer, Label, Select, TextArea
from textual.worker import Worker
import structlog

from aicompose.models.background_task import BackgroundTask
from aicompose.models.config import DialogConfig
from aicompose.models.dialog_status import DialogStatus
from aicompose.models.llm_chunks import CompletionChunk
from aicompose.services.content_retrieval import page_path
from aicompose.services.dialog_history import DialogHistory
from aicompose.services.exceptions import FieldFileChangedError
from aicompose.services.generation import GenerationRequest
from aicompose.tui.widgets.content_editor import ContentEditor
from aicompose.tui.widgets.status_panel import StatusPanel

logger = structlog.get_logger()

GenerateFn = Callable[[GenerationRequest], AsyncIterator[CompletionChunk]]
RetrieveFn = Callable[[str], Awaitable[Optional[str]]]

CONTENT_SOURCES = [
    ("Text of this field", "widget"),
    ("Text of the component", "component"),
    ("Text of the page", "page"),
    ("Last generated output", "lastoutput"),
    ("Edited source text", "-"),
]

TRUNCATION_WARNING = "The generated content stopped because of the length restriction."


class ContentCreationScreen(Screen[Optional[str]]):
    """Content creation dialog for one field.

    Dismissed with the accepted text, or with None on cancel.
    """

    DEFAULT_CSS = """
    ContentCreationScreen {
        layout: vertical;
    }

    #dialog-container {
        height: 1fr;
        layout: vertical;
    }

    #history-bar, #generation-bar, #action-bar {
        height: auto;
    }

    #history-bar Button, #generation-bar Button, #action-bar Button {
        margin: 0 1 0 0;
    }

    #error-banner {
        height: auto;
        padding: 0 1;
        background: $error;
        color: $text;
        display: none;
    }

    #error-banner.visible {
        display: block;
    }

    #input-panels {
        height: 1fr;
    }

    #prompt-panel, #source-panel {
        width: 1fr;
        border: solid $accent;
        border-title-align: center;
    }

    #response-panel {
        height: 1fr;
        border: solid $accent;
        border-title-align: center;
    }

    #text-length {
        width: 40;
    }

    ContentEditor {
        height: 1fr;
    }
    """

    BINDINGS = [
        Binding("ctrl+g", "generate", "Generate", priority=True),
        Binding("ctrl+s", "accept", "Accept", priority=True),
        Binding("escape", "stop", "Stop"),
        Binding("alt+left", "history_back", "History back"),
        Binding("alt+right", "history_forward", "History forward"),
    ]

    generating = reactive(False, init=False)

    def __init__(
        self,
        original_content: str,
        dialog_config: Optional[DialogConfig] = None,
        history: Optional[List[DialogStatus]] = None,
        generate_fn: Optional[GenerateFn] = None,
        retrieve_fn: Optional[RetrieveFn] = None,
        writeback_fn: Optional[Callable[[str], None]] = None,
        component_path: Optional[str] = None,
        richtext: bool = False,
        **kwargs
    ):
        """Initialize the content creation screen.

        Args:
            original_content: Current value of the edited field
            dialog_config: Predefined prompts and text length options
            history: Dialog states from earlier sessions on this field (modified in place)
            generate_fn: Streams generated text for a request (None disables generation)
            retrieve_fn: Fetches approximate text for a content path (None disables
                component/page sources)
            writeback_fn: Receives the accepted text; may raise FieldFileChangedError/OSError
            component_path: Content path of the edited component
            richtext: Whether the field holds HTML
        """
        super().__init__(**kwargs)
        self.original_content = original_content
        self.dialog_config = dialog_config or DialogConfig()
        self.generate_fn = generate_fn
        self.retrieve_fn = retrieve_fn
        self.writeback_fn = writeback_fn
        self.component_path = component_path
        self.richtext = richtext

        self.history = DialogHistory(self.get_status, self.set_status, history)
        self.background_tasks: Dict[str, BackgroundTask] = {}
        self._generation_worker: Optional[Worker] = None
        self.error_message: Optional[str] = None

        self._predefined_options = [("Predefined prompts", "-")] + [
            (label, prompt) for label, prompt in self.dialog_config.predefined_prompts.items()
        ]
        self._text_length_options = [("Any length", "")] + [
            (option.split("|", 1)[-1].strip(), option) for option in self.dialog_config.text_lengths
        ]

        # Last value written to each selector/editor by the screen itself. Change
        # messages carrying exactly that value are not user edits.
        self._applied: Dict[str, str] = {
            "predefined-prompts": "-",
            "content-selector": "widget",
            "text-length": "",
            "prompt-area": "",
            "source-area": original_content,
            "response-area": "",
        }

    def compose(self) -> ComposeResult:
        """Compose the dialog layout."""
        with Container(id="dialog-container"):
            with Horizontal(id="history-bar"):
                yield Button("◀ Back", id="history-back")
                yield Button("Forward ▶", id="history-forward")
                yield Button("Reset history", id="history-reset", variant="warning")

            yield Label("", id="error-banner")

            with Horizontal(id="input-panels"):
                with Vertical(id="prompt-panel"):
                    yield Select(
                        self._predefined_options,
                        value="-",
                        allow_blank=False,
                        id="predefined-prompts",
                    )
                    yield ContentEditor(id="prompt-area")

                with Vertical(id="source-panel"):
                    yield Select(
                        CONTENT_SOURCES,
                        value="widget",
                        allow_blank=False,
                        id="content-selector",
                    )
                    yield ContentEditor(self.original_content, id="source-area")

            with Horizontal(id="generation-bar"):
                yield Select(
                    self._text_length_options,
                    value="",
                    allow_blank=False,
                    id="text-length",
                )
                yield Button("Generate", id="generate", variant="primary")
                yield Button("Stop", id="stop", disabled=True)
                yield Button("Reset", id="reset-form")

            with Container(id="response-panel"):
                yield ContentEditor(id="response-area")

            with Horizontal(id="action-bar"):
                yield Button("Accept", id="accept", variant="success")
                yield Button("Cancel", id="cancel", variant="error")

        yield StatusPanel(background_tasks=self.background_tasks)
        yield Footer()

    def on_mount(self) -> None:
        """Handle screen mount event."""
        self.query_one("#prompt-panel").border_title = "Prompt"
        self.query_one("#source-panel").border_title = "Source"
        self.query_one("#response-panel").border_title = "Response"

        self._refresh_history_buttons()

        logger.info(
            "content_creation_dialog_opened",
            component_path=self.component_path,
            history_length=len(self.history.history),
            richtext=self.richtext,
        )

    # Dialog status accessors

    def get_status(self) -> DialogStatus:
        """Current state of the dialog as a snapshot."""
        return DialogStatus(
            prompt=self.query_one("#prompt-area", ContentEditor).get_content(),
            predefined_prompt=self.query_one("#predefined-prompts", Select).value,
            content_selector=self.query_one("#content-selector", Select).value,
            source_content=self.query_one("#source-area", ContentEditor).get_content(),
            text_length=self.query_one("#text-length", Select).value,
            response=self.query_one("#response-area", ContentEditor).get_content(),
        )

    def set_status(self, status: DialogStatus) -> None:
        """Make the dialog show the given snapshot."""
        with self.prevent(Select.Changed, TextArea.Changed):
            self._set_select("predefined-prompts", status.predefined_prompt, self._predefined_options)
            self._set_select("content-selector", status.content_selector, CONTENT_SOURCES)
            self._set_select("text-length", status.text_length, self._text_length_options)
            self._set_text("prompt-area", status.prompt)
            self._set_text("source-area", status.source_content)
            self._set_text("response-area", status.response)

        logger.debug("dialog_status_applied", status=status.model_dump())

    def _set_select(self, select_id: str, value: str, options: list) -> None:
        select = self.query_one(f"#{select_id}", Select)
        if value not in {option_value for _, option_value in options}:
            # Recorded under a configuration that no longer offers this option
            options.append((self._restored_option_label(select_id, value), value))
            select.set_options(options)
            logger.info("dialog_option_restored", select=select_id, value=value)
        self._applied[select_id] = value
        select.value = value

    @staticmethod
    def _restored_option_label(select_id: str, value: str) -> str:
        if select_id == "text-length":
            return value.split("|", 1)[-1].strip() or value
        return value if len(value) <= 40 else value[:39] + "…"

    def _set_text(self, editor_id: str, text: str) -> None:
        self._applied[editor_id] = text
        with self.prevent(TextArea.Changed):
            self.query_one(f"#{editor_id}", ContentEditor).load_content(text)

    # User edits

    def on_select_changed(self, event: Select.Changed) -> None:
        """React to a selector choice made by the user."""
        select_id = event.select.id
        # Superseded by a later value (e.g. set_options resetting the selection)
        if event.value != event.select.value:
            return
        if event.value == self._applied.get(select_id):
            return
        self._applied[select_id] = event.value

        if select_id == "predefined-prompts":
            if event.value != "-":
                self._set_text("prompt-area", event.value)
        elif select_id == "content-selector":
            self._apply_content_selector(event.value)

    def on_text_area_changed(self, event: TextArea.Changed) -> None:
        """Typing a prompt or source by hand deselects the matching selector."""
        editor_id = event.text_area.id
        if event.text_area.text == self._applied.get(editor_id):
            return
        self._applied[editor_id] = event.text_area.text

        if editor_id == "prompt-area":
            self._deselect("predefined-prompts")
        elif editor_id == "source-area":
            self._deselect("content-selector")

    def _deselect(self, select_id: str) -> None:
        with self.prevent(Select.Changed):
            self._applied[select_id] = "-"
            self.query_one(f"#{select_id}", Select).value = "-"

    def _apply_content_selector(self, key: str) -> None:
        """Pull the source text from the origin the content selector names."""
        logger.info("content_selector_changed", selector=key)

        if key == "lastoutput":
            self._set_source_content(self.query_one("#response-area", ContentEditor).get_content())
        elif key == "widget":
            self._set_source_content(self.original_content)
        elif key == "component":
            self._start_retrieval(self.component_path)
        elif key == "page":
            self._start_retrieval(page_path(self.component_path) if self.component_path else None)

    def _set_source_content(self, text: str) -> None:
        self._set_text("source-area", text)
        self.history.checkpoint()
        self._refresh_history_buttons()

    def _start_retrieval(self, path: Optional[str]) -> None:
        if not path or not self.retrieve_fn:
            logger.warning(
                "content_retrieval_unavailable",
                component_path=self.component_path,
                retrieval_configured=self.retrieve_fn is not None,
            )
            self.show_error("No component path or content repository configured.")
            return
        self.run_worker(self._retrieval_worker(path), name="content_retrieval", exclusive=True, group="retrieval")

    async def _retrieval_worker(self, path: str) -> None:
        """Worker: load the approximate text of a component or page into the source."""
        self.background_tasks["content_retrieval"] = BackgroundTask(task_type="content_retrieval")
        status_panel = self.query_one(StatusPanel)
        status_panel.update_status()

        text = await self.retrieve_fn(path)

        if text is None:
            self.background_tasks["content_retrieval"].status = "failed"
            self.background_tasks["content_retrieval"].error_message = path
            status_panel.update_status()
            return

        del self.background_tasks["content_retrieval"]
        status_panel.update_status()
        self._set_source_content(text)

    # Generation

    def action_generate(self) -> None:
        """Start generating a response (Generate button or ctrl+g)."""
        if self.generating:
            return
        if not self.generate_fn:
            self.show_error("No text generation service configured.")
            return

        status = self.get_status()
        if not status.prompt.strip():
            self.show_error("Please enter a prompt.")
            return

        self.show_error(None)
        request = GenerationRequest(
            prompt=status.prompt,
            source=status.source_content,
            text_length=status.text_length,
            richtext=self.richtext,
        )
        self.generating = True
        self._generation_worker = self.run_worker(
            self._generate(request), name="generation", exclusive=True, group="generation"
        )
        logger.info("user_action_generate", prompt_length=len(request.prompt))

    async def _generate(self, request: GenerationRequest) -> None:
        """Worker: stream the generated text into the response area."""
        self.background_tasks["generation"] = BackgroundTask(task_type="generation", progress_current=0)
        status_panel = self.query_one(StatusPanel)
        status_panel.update_status()

        try:
            last_chunk: Optional[CompletionChunk] = None
            async for chunk in self.generate_fn(request):
                self._set_text("response-area", chunk.text)
                self.background_tasks["generation"].progress_current = len(chunk.text)
                status_panel.update_status()
                last_chunk = chunk

            del self.background_tasks["generation"]
            status_panel.update_status()

            if last_chunk is not None and last_chunk.truncated:
                self.show_error(TRUNCATION_WARNING)

            logger.info(
                "generation_completed",
                response_length=len(last_chunk.text) if last_chunk else 0,
                finish_reason=last_chunk.finish_reason if last_chunk else None,
            )

        except asyncio.CancelledError:
            # action_stop already restored the controls; the screen may be gone
            logger.info("generation_aborted")
            self.background_tasks.pop("generation", None)
            raise

        except Exception as e:
            self.background_tasks["generation"].status = "failed"
            self.background_tasks["generation"].error_message = str(e)
            status_panel.update_status()
            self.show_error(f"Generation failed: {e}")

            logger.error(
                "generation_error",
                error=str(e),
                exc_info=True
            )

        self.generating = False

    def action_stop(self) -> None:
        """Abort a running generation (Stop button or escape)."""
        if not self.generating:
            return
        if self._generation_worker is not None:
            self._generation_worker.cancel()
        self.background_tasks.pop("generation", None)
        self.query_one(StatusPanel).update_status()
        self.generating = False
        logger.info("user_action_stop")

    def watch_generating(self, generating: bool) -> None:
        self.query_one("#generate", Button).disabled = generating
        self.query_one("#stop", Button).disabled = not generating

    def action_reset_form(self) -> None:
        """Clear prompt and response and restore the source to the field text."""
        self._set_text("prompt-area", "")
        self._set_text("source-area", self.original_content)
        self._set_text("response-area", "")
        self.show_error(None)

        predefined = self.query_one("#predefined-prompts", Select).value
        if predefined != "-":
            self._set_text("prompt-area", predefined)
        self._apply_content_selector(self.query_one("#content-selector", Select).value)

        logger.info("user_action_reset_form")

    # History

    def action_history_back(self) -> None:
        self.history.back()
        self._refresh_history_buttons()

    def action_history_forward(self) -> None:
        self.history.forward()
        self._refresh_history_buttons()

    def action_history_reset(self) -> None:
        if not self.history.can_reset:
            return
        self.history.reset()
        self._refresh_history_buttons()

    def _refresh_history_buttons(self) -> None:
        buttons = self.history.buttons
        self.query_one("#history-back", Button).disabled = not buttons.back
        self.query_one("#history-forward", Button).disabled = not buttons.forward
        self.query_one("#history-reset", Button).disabled = not buttons.reset

    # Accept / cancel

    def action_accept(self) -> None:
        """Hand the response over to the field and close the dialog."""
        self.history.checkpoint()
        self._refresh_history_buttons()

        response = self.query_one("#response-area", ContentEditor).get_content()

        if self.writeback_fn is not None:
            try:
                self.writeback_fn(response)
            except (FieldFileChangedError, OSError) as e:
                logger.error("writeback_failed", error=str(e))
                self.show_error(f"Could not write the text back: {e}")
                return

        logger.info("user_action_accept", response_length=len(response))
        self.dismiss(response)

    def action_cancel(self) -> None:
        """Close the dialog without changing the field."""
        if self.generating:
            self.action_stop()
        logger.info("user_action_cancel")
        self.dismiss(None)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        """Dispatch button presses to the matching actions."""
        actions = {
            "history-back": self.action_history_back,
            "history-forward": self.action_history_forward,
            "history-reset": self.action_history_reset,
            "generate": self.action_generate,
            "stop": self.action_stop,
            "reset-form": self.action_reset_form,
            "accept": self.action_accept,
            "cancel": self.action_cancel,
        }
        action = actions.get(event.button.id)
        if action is not None:
            action()

    def show_error(self, message: Optional[str]) -> None:
        """Show the message in the error banner, or hide the banner for None."""
        banner = self.query_one("#error-banner", Label)
        self.error_message = message or None
        if message:
            banner.update(message)
            banner.add_class("visible")
            logger.info("dialog_error_shown", message=message)
        else:
            banner.update("")
            banner.remove_class("visible")
