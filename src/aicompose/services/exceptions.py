"""Exceptions raised by aicompose services."""

from pathlib import Path
from typing import Optional


class FieldFileChangedError(Exception):
    """The field file changed outside the dialog after it was read.

    The accepted text is not written; the dialog stays open so it is not lost.
    ``current_mtime`` is None if the file disappeared during the write.
    """

    def __init__(self, path: Path, read_mtime: Optional[float], current_mtime: Optional[float]):
        self.path = path
        self.read_mtime = read_mtime
        self.current_mtime = current_mtime
        super().__init__(f"{path} was changed outside the dialog since it was opened")
