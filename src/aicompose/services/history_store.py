"""Persistent dialog history per content field.

The store keeps one list of DialogStatus snapshots per field so a new dialog
session on the same field starts with the history of the previous ones.
Stored as JSON:

    {
        "/content/site/en/jcr:content/teaser#text": [
            {"prompt": "...", "source_content": "...", "response": "...", ...},
            ...
        ],
        ...
    }
"""

import json
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError

from aicompose.models.dialog_status import DialogStatus


def default_history_path() -> Path:
    return Path.home() / ".cache" / "aicompose" / "history.json"


def history_key(
    field_file: Optional[Path],
    component_path: Optional[str] = None,
    field_name: Optional[str] = None,
) -> str:
    """
    Key identifying the logical document/field a history belongs to.

    The component path identifies the document when given; otherwise the
    resolved path of the field file does.

    Raises:
        ValueError: If neither a field file nor a component path is given

    Example:
        >>> history_key(Path("teaser.txt"), "/content/site/en/jcr:content/teaser", "text")
        '/content/site/en/jcr:content/teaser#text'
    """
    if component_path:
        key = component_path
    elif field_file is not None:
        key = str(field_file.expanduser().resolve())
    else:
        raise ValueError("Either a field file or a component path is required")
    if field_name:
        key = f"{key}#{field_name}"
    return key


class HistoryStore:
    """JSON file holding the dialog histories of all fields."""

    def __init__(self, store_path: Path):
        """Initialize history store.

        Args:
            store_path: Path to the JSON file (loaded if it exists)
        """
        self.store_path = store_path
        self.histories: Dict[str, List[DialogStatus]] = {}

        if store_path.exists():
            self.load()

    def load(self) -> None:
        """Load histories from disk.

        Raises:
            ValueError: If the history file is malformed
        """
        try:
            data = json.loads(self.store_path.read_text(encoding="utf-8"))
            self.histories = {
                key: [DialogStatus.model_validate(entry) for entry in entries]
                for key, entries in data.items()
            }
        except (json.JSONDecodeError, AttributeError, TypeError, ValidationError) as e:
            raise ValueError(f"Malformed history file {self.store_path}: {e}") from e

    def save(self) -> None:
        """Save histories to disk.

        Creates parent directories if needed. Empty histories are dropped.
        """
        self.store_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            key: [entry.model_dump() for entry in entries]
            for key, entries in self.histories.items()
            if entries
        }

        temp_path = self.store_path.with_suffix(".tmp")
        try:
            temp_path.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
            temp_path.replace(self.store_path)
        except Exception as e:
            if temp_path.exists():
                temp_path.unlink()
            raise IOError(f"Failed to save history: {e}") from e

    def entries(self, key: str) -> List[DialogStatus]:
        """Live history list for a field, created if missing.

        The returned list is owned by the store; changes to it are saved with
        the next ``save()``.
        """
        return self.histories.setdefault(key, [])

    def keys(self) -> list[str]:
        return [key for key, entries in self.histories.items() if entries]

    def clear(self, key: Optional[str] = None) -> None:
        """Clear the history of one field, or of all fields."""
        if key is None:
            self.histories = {}
        elif key in self.histories:
            # In place, so a navigator holding the list sees it empty
            del self.histories[key][:]
