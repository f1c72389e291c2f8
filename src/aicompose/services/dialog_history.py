"""Back/forward history over content creation dialog states.

The dialog keeps a linear list of DialogStatus snapshots per field. Navigating
never loses unsaved work: before moving, the live dialog state is appended to
the end of the list if it differs from what is recorded at the current
position. The list is only ever appended to or cleared as a whole.

Cursor semantics:

    index == -1        viewing the live (unsaved) state; history may be seeded
    0 <= index < len   viewing history[index]

Example:
    >>> history = DialogHistory(screen.get_status, screen.set_status, seed)
    >>> history.back()
    >>> history.buttons
    HistoryButtons(back=False, forward=True, reset=True)
"""

from typing import Callable, List, NamedTuple, Optional

import structlog

from aicompose.models.dialog_status import DialogStatus

logger = structlog.get_logger()


class HistoryButtons(NamedTuple):
    """Enablement of the three history buttons."""

    back: bool
    forward: bool
    reset: bool


class DialogHistory:
    """Linear undo/redo over dialog snapshots with duplicate suppression."""

    def __init__(
        self,
        get_status: Callable[[], DialogStatus],
        set_status: Callable[[DialogStatus], None],
        history: Optional[List[DialogStatus]] = None,
    ):
        """Initialize the navigator.

        Args:
            get_status: Returns the live dialog state
            set_status: Makes the dialog show the given state (synchronously)
            history: Entries from a prior session for the same field. The list
                is used as-is and modified in place.
        """
        self._get_status = get_status
        self._set_status = set_status
        self.history: List[DialogStatus] = history if history is not None else []
        self.index = -1

    @property
    def can_go_back(self) -> bool:
        if self.index < 0:
            return bool(self.history)
        return self.index > 0

    @property
    def can_go_forward(self) -> bool:
        # From the live state (-1) forward moves to the oldest entry
        return self.index < len(self.history) - 1

    @property
    def can_reset(self) -> bool:
        return self.index >= 0

    @property
    def buttons(self) -> HistoryButtons:
        """Current enablement of the back, forward and reset buttons."""
        return HistoryButtons(
            back=self.can_go_back,
            forward=self.can_go_forward,
            reset=self.can_reset,
        )

    def back(self) -> bool:
        """Show the previous snapshot.

        Returns:
            True if the dialog state was replaced, False for a no-op
        """
        if not self.can_go_back:
            return False

        if self.index < 0:
            # The live state becomes (or already is) the newest entry
            self._capture_if_changed(pin_cursor=False)
            self.index = max(len(self.history) - 2, 0)
        else:
            self._capture_if_changed(pin_cursor=True)
            self.index -= 1

        self._show_current()
        logger.info("history_back", index=self.index, history_length=len(self.history))
        return True

    def forward(self) -> bool:
        """Show the next snapshot.

        From the live state this is the oldest entry. The live state is
        recorded first (unless it equals the newest entry) so a later
        forward to the end brings it back.

        Returns:
            True if the dialog state was replaced, False for a no-op
        """
        if not self.can_go_forward:
            return False

        self._capture_if_changed(pin_cursor=True)
        self.index += 1

        self._show_current()
        logger.info("history_forward", index=self.index, history_length=len(self.history))
        return True

    def reset(self) -> None:
        """Discard all history and empty the dialog. Nothing is captured."""
        discarded = len(self.history)
        del self.history[:]
        self.index = -1
        self._set_status(DialogStatus())
        logger.info("history_reset", discarded=discarded)

    def checkpoint(self) -> bool:
        """Record the live state as a history point.

        Used at accept and after a content source was pulled in. An empty
        history always records; otherwise the usual change detection applies.
        When something is recorded the cursor moves to it.

        Returns:
            True if a new entry was appended
        """
        return self._capture_if_changed(pin_cursor=False)

    def _reference_entries(self) -> List[DialogStatus]:
        # Only the entry after the cursor is consulted, never the one before.
        if self.index < 0:
            return self.history[-1:]
        return self.history[self.index:self.index + 2]

    def _capture_if_changed(self, pin_cursor: bool) -> bool:
        """Append the live state if it differs from the reference entries.

        Args:
            pin_cursor: Leave the cursor where it is (the new entry ends up
                ahead of the displayed one) instead of moving it to the new entry

        Returns:
            True if a new entry was appended
        """
        status = self._get_status()
        if any(status == entry for entry in self._reference_entries()):
            return False

        self.history.append(status)
        if not pin_cursor:
            self.index = len(self.history) - 1

        logger.debug(
            "history_captured",
            index=self.index,
            history_length=len(self.history),
            pin_cursor=pin_cursor,
        )
        return True

    def _show_current(self) -> None:
        self._set_status(self.history[self.index])
