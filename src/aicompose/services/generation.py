"""Content generation: turns dialog input into a streamed LLM completion."""

import re
from typing import AsyncIterator, Dict, List, Optional

from pydantic import BaseModel, Field
import structlog

from aicompose.models.llm_chunks import CompletionChunk
from aicompose.services.llm_client import LLMClient

logger = structlog.get_logger()

DEFAULT_MAX_TOKENS = 400

RICHTEXT_INSTRUCTION = "Create HTML and begin the text with <p>"

SYSTEM_PROMPT = (
    "You are a professional content writer. Follow the instructions exactly and "
    "answer only with the requested text, without any introduction or commentary."
)

_TEXT_LENGTH_PATTERN = re.compile(r"\s*(\d+)\s*\|\s*(.*)", re.DOTALL)


class GenerationRequest(BaseModel):
    """Input for one generation run."""

    prompt: str = Field(..., description="User instructions")
    source: str = Field(default="", description="Text the instructions operate on")
    text_length: str = Field(default="", description="Text length option")
    richtext: bool = Field(default=False, description="Whether the target field holds HTML")

    model_config = {"frozen": True}


def parse_text_length(text_length: Optional[str]) -> tuple[int, str]:
    """
    Split a text length option into a token limit and an instruction.

    ``"50|Two or three sentences"`` limits the response to 50 tokens and asks
    for two or three sentences. Anything without a numeric prefix is passed on
    as instruction with the default limit.

    Args:
        text_length: Text length option (may be empty)

    Returns:
        Tuple of (max_tokens, instruction)
    """
    if not text_length or not text_length.strip():
        return DEFAULT_MAX_TOKENS, ""

    match = _TEXT_LENGTH_PATTERN.fullmatch(text_length)
    if match:
        return int(match.group(1)), match.group(2).strip()
    return DEFAULT_MAX_TOKENS, text_length.strip()


def build_prompt(request: GenerationRequest) -> str:
    """Combine text length instruction, prompt and richtext hint."""
    _, instruction = parse_text_length(request.text_length)
    full_prompt = request.prompt
    if instruction:
        full_prompt = instruction + "\n\n" + full_prompt
    if request.richtext:
        full_prompt = full_prompt + "\n\n" + RICHTEXT_INSTRUCTION
    return full_prompt


def build_messages(request: GenerationRequest) -> List[Dict[str, str]]:
    """Build the chat messages for a request.

    The source text, if any, goes into its own message before the instructions.
    """
    messages = [{"role": "system", "content": SYSTEM_PROMPT}]
    if request.source.strip():
        messages.append({
            "role": "user",
            "content": "Here is the text to work on:\n\n" + request.source,
        })
    messages.append({"role": "user", "content": build_prompt(request)})
    return messages


class ContentGenerator:
    """Generates replacement text for a field via the LLM client."""

    def __init__(self, llm_client: LLMClient, temperature: float = 0.7):
        self.llm_client = llm_client
        self.temperature = temperature

    async def generate(self, request: GenerationRequest) -> AsyncIterator[CompletionChunk]:
        """
        Stream the generated text for a request.

        Args:
            request: Prompt, source text and options

        Yields:
            CompletionChunk instances with the accumulated text

        Raises:
            ValueError: If the prompt is blank
            httpx.HTTPError: On network or HTTP errors
        """
        if not request.prompt.strip():
            raise ValueError("No prompt given")

        max_tokens, _ = parse_text_length(request.text_length)
        messages = build_messages(request)

        logger.info(
            "generation_started",
            prompt_length=len(request.prompt),
            source_length=len(request.source),
            max_tokens=max_tokens,
            richtext=request.richtext,
        )

        async for chunk in self.llm_client.stream_completion(
            messages=messages,
            max_tokens=max_tokens,
            temperature=self.temperature,
            request_id="generation",
        ):
            yield chunk
