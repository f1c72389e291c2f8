"""Reading and writing the field file edited by the dialog."""

import os
import structlog
from pathlib import Path
from typing import Callable, Optional
from aicompose.services.exceptions import FieldFileChangedError

logger = structlog.get_logger()


class FieldFile:
    """
    The file holding one field's content, guarded against outside edits.

    The modification time seen when the field is read is remembered. Writing
    the accepted text refuses to replace a file whose modification time has
    moved on since, so a change made elsewhere while the dialog was open is
    not lost.

    Example:
        >>> field = FieldFile(Path("teaser.txt"))
        >>> text = field.read()
        >>> field.write("A shorter teaser.")  # may raise FieldFileChangedError
    """

    def __init__(self, path: Path):
        self.path = path
        self.read_mtime: Optional[float] = None

    def read(self) -> str:
        """Return the field content ("" for a missing file) and remember its mtime."""
        # Stat first: an edit racing the read then shows up as a change
        self.read_mtime = self._current_mtime()
        if self.read_mtime is None:
            return ""
        return self.path.read_text(encoding="utf-8")

    def changed_externally(self) -> bool:
        """Whether the file was modified or created since it was read.

        A file deleted in the meantime is not a conflict; writing recreates it.
        """
        current = self._current_mtime()
        return current is not None and current != self.read_mtime

    def write(self, text: str) -> None:
        """
        Replace the field content with the accepted text.

        Raises:
            FieldFileChangedError: If the file changed since it was read
            OSError: On file I/O errors
        """
        atomic_write(self.path, text, check=self._ensure_unchanged)
        self.read_mtime = self._current_mtime()

    def _ensure_unchanged(self, stage: str) -> None:
        if not self.changed_externally():
            return
        current = self._current_mtime()
        logger.warning(
            "field_file_modified",
            path=str(self.path),
            stage=stage,
            read_mtime=self.read_mtime,
            current_mtime=current,
        )
        raise FieldFileChangedError(self.path, self.read_mtime, current)

    def _current_mtime(self) -> Optional[float]:
        try:
            return self.path.stat().st_mtime
        except FileNotFoundError:
            return None


def atomic_write(
    path: Path,
    content: str,
    check: Optional[Callable[[str], None]] = None
) -> None:
    """
    Replace a file's content through a temp file and a rename.

    The text goes to a hidden temp file next to the target, is fsynced, and
    is renamed over the target.

    Args:
        path: Target file
        content: New content
        check: Called with "before write" and again with "before rename";
            raising from it aborts the write and leaves the target untouched

    Raises:
        OSError: On file I/O errors, plus whatever ``check`` raises
    """
    if check:
        check("before write")

    temp_path = path.parent / f".{path.name}.tmp.{os.getpid()}"
    try:
        with open(temp_path, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())

        if check:
            check("before rename")
        temp_path.replace(path)
    except Exception as e:
        if temp_path.exists():
            temp_path.unlink()
        if not isinstance(e, FieldFileChangedError):
            logger.error("atomic_write_failed", path=str(path), error=str(e))
        raise

    logger.debug("atomic_write_success", path=str(path), size=len(content))
