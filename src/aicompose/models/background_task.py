"""BackgroundTask model for async operations."""

from pydantic import BaseModel, Field
from typing import Literal, Optional


class BackgroundTask(BaseModel):
    """Background task state for async operations."""

    task_type: Literal[
        "generation",
        "content_retrieval",
    ] = Field(
        ...,
        description="Type of background task"
    )

    status: Literal["running", "completed", "failed"] = Field(
        default="running",
        description="Current task status"
    )

    progress_current: Optional[int] = Field(
        default=None,
        description="Current item count (e.g., characters received so far)"
    )

    error_message: Optional[str] = Field(
        default=None,
        description="Error details if status is 'failed'"
    )

    model_config = {"frozen": False}  # Allow mutation as task progresses
