"""Pydantic models for streamed generation results."""

from pydantic import BaseModel, Field
from typing import Optional


class CompletionChunk(BaseModel):
    """
    One increment of a streamed text generation.

    ``text`` always carries the complete response received so far, so a
    consumer replaces the displayed response instead of appending to it.
    ``finish_reason`` is only set on the last chunk of a stream.
    """

    text: str = Field(
        ...,
        description="Accumulated response text"
    )

    finish_reason: Optional[str] = Field(
        default=None,
        description="Why generation stopped ('stop', 'length', ...) if it did"
    )

    @property
    def truncated(self) -> bool:
        """Whether generation stopped because of the length restriction."""
        return self.finish_reason == "length"
