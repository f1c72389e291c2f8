"""Pydantic data models for aicompose."""

from aicompose.models.dialog_status import DialogStatus
from aicompose.models.llm_chunks import CompletionChunk

__all__ = ["DialogStatus", "CompletionChunk"]
