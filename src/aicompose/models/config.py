"""Configuration models for aicompose."""

from pydantic import BaseModel, Field, HttpUrl, field_validator
from pathlib import Path
from typing import Dict, List, Optional
import yaml
import os
import stat


class LLMConfig(BaseModel):
    """Configuration for LLM API connection."""

    endpoint: HttpUrl = Field(
        ...,
        description="LLM API endpoint URL (OpenAI or Ollama compatible)"
    )

    api_key: str = Field(
        ...,
        description="API key for authentication"
    )

    model: str = Field(
        ...,
        description="Model identifier (e.g., 'gpt-4o-mini', 'llama3')"
    )

    num_ctx: int = Field(
        default=32768,
        ge=1024,
        description="Context window size (Ollama-specific, controls VRAM usage)"
    )

    model_config = {"frozen": True}


class ContentConfig(BaseModel):
    """Configuration for retrieving approximate text of components and pages."""

    base_url: HttpUrl = Field(
        ...,
        description="Base URL of the content repository (e.g., http://localhost:4502)"
    )

    servlet_path: str = Field(
        default="/bin/cpm/ai/approximated.markdown.md",
        description="Path of the servlet that renders approximate markdown for a content path"
    )

    timeout: float = Field(
        default=20.0,
        gt=0.0,
        description="Request timeout in seconds"
    )

    @field_validator('servlet_path')
    @classmethod
    def validate_servlet_path(cls, v: str) -> str:
        """Servlet path must be absolute."""
        if not v.startswith("/"):
            raise ValueError(f"servlet_path must start with '/': {v}")
        return v.rstrip("/")

    model_config = {"frozen": True}


class DialogConfig(BaseModel):
    """Options offered by the content creation dialog."""

    predefined_prompts: Dict[str, str] = Field(
        default_factory=lambda: {
            "Summarize": "Summarize the following text.",
            "Improve": "Improve the following text: fix grammar and make it easier to read.",
            "Shorten": "Make the following text shorter while keeping its meaning.",
        },
        description="Predefined prompts by label"
    )

    text_lengths: List[str] = Field(
        default_factory=lambda: [
            "20|One short sentence",
            "50|Two or three sentences",
            "200|One paragraph",
            "600|Several paragraphs",
        ],
        description="Text length options; '<max tokens>|<instruction>' limits the response"
    )

    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for generation"
    )

    model_config = {"frozen": True}


class Config(BaseModel):
    """Root configuration for aicompose."""

    llm: LLMConfig = Field(..., description="LLM API settings")
    content: Optional[ContentConfig] = Field(
        default=None,
        description="Content repository settings (needed for component/page sources)"
    )
    dialog: DialogConfig = Field(default_factory=DialogConfig, description="Dialog options")

    @classmethod
    def load(cls, path: Path) -> "Config":
        """
        Load configuration from YAML file.

        Validates file permissions before loading.
        Raises PermissionError if file is group/world readable.

        Args:
            path: Path to config.yaml file

        Returns:
            Validated Config instance

        Raises:
            PermissionError: If file permissions are too open
            FileNotFoundError: If config file doesn't exist
            ValueError: If YAML is invalid or validation fails
        """
        if not path.exists():
            raise FileNotFoundError(
                f"Configuration file not found at {path}\n\n"
                f"Please create the file with the following format:\n\n"
                f"llm:\n"
                f"  endpoint: https://api.openai.com/v1\n"
                f"  api_key: YOUR_API_KEY_HERE\n"
                f"  model: gpt-4o-mini\n\n"
                f"content:\n"
                f"  base_url: http://localhost:4502\n"
            )

        # Check file permissions (must be 600)
        mode = os.stat(path).st_mode
        if mode & (stat.S_IRWXG | stat.S_IRWXO):
            raise PermissionError(
                f"Config file has overly permissive permissions: {oct(mode)}\n"
                f"Run: chmod 600 {path}"
            )

        with open(path) as f:
            data = yaml.safe_load(f)

        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a YAML mapping")

        return cls(**data)

    model_config = {"frozen": True}
