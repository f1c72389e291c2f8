"""DialogStatus model: one snapshot of the content creation dialog."""

from pydantic import BaseModel, Field
from typing import Literal


ContentSelector = Literal["widget", "component", "page", "lastoutput", "-"]


class DialogStatus(BaseModel):
    """Full editable state of the content creation dialog at one moment.

    Snapshots are compared structurally (field by field), so two independently
    constructed instances with the same values are equal. ``DialogStatus()``
    is the empty dialog.
    """

    prompt: str = Field(
        default="",
        description="Instructions for the generation service"
    )

    predefined_prompt: str = Field(
        default="-",
        description="Selected predefined prompt, '-' if the prompt was typed"
    )

    content_selector: ContentSelector = Field(
        default="-",
        description="Origin of the source content ('-' if edited by hand)"
    )

    source_content: str = Field(
        default="",
        description="Text the prompt operates on"
    )

    text_length: str = Field(
        default="",
        description="Text length option, optionally '<max tokens>|<instruction>'"
    )

    response: str = Field(
        default="",
        description="Generated (or hand-edited) replacement text"
    )

    model_config = {"frozen": True}
