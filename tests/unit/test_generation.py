"""Unit tests for content generation."""

import pytest
from unittest.mock import Mock

from aicompose.models.llm_chunks import CompletionChunk
from aicompose.services.generation import (
    DEFAULT_MAX_TOKENS,
    RICHTEXT_INSTRUCTION,
    SYSTEM_PROMPT,
    ContentGenerator,
    GenerationRequest,
    build_messages,
    build_prompt,
    parse_text_length,
)


class TestParseTextLength:
    """Test splitting text length options."""

    def test_empty_option(self):
        assert parse_text_length("") == (DEFAULT_MAX_TOKENS, "")
        assert parse_text_length(None) == (DEFAULT_MAX_TOKENS, "")

    def test_limit_and_instruction(self):
        assert parse_text_length("50|Two or three sentences") == (50, "Two or three sentences")

    def test_whitespace_around_separator(self):
        assert parse_text_length(" 200 | One paragraph ") == (200, "One paragraph")

    def test_instruction_without_limit(self):
        assert parse_text_length("Very brief") == (DEFAULT_MAX_TOKENS, "Very brief")

    def test_non_numeric_prefix_is_instruction(self):
        assert parse_text_length("short|text") == (DEFAULT_MAX_TOKENS, "short|text")


class TestBuildPrompt:
    """Test assembling the instruction message."""

    def test_plain_prompt(self):
        assert build_prompt(GenerationRequest(prompt="Write a teaser")) == "Write a teaser"

    def test_text_length_instruction_precedes_prompt(self):
        request = GenerationRequest(prompt="Write a teaser", text_length="20|One short sentence")
        assert build_prompt(request) == "One short sentence\n\nWrite a teaser"

    def test_richtext_hint_is_appended(self):
        request = GenerationRequest(prompt="Write a teaser", richtext=True)
        assert build_prompt(request) == "Write a teaser\n\n" + RICHTEXT_INSTRUCTION

    def test_prompt_appears_once(self):
        request = GenerationRequest(prompt="Summarize", text_length="50|Brief")
        assert build_prompt(request).count("Summarize") == 1


class TestBuildMessages:
    """Test the chat messages sent to the LLM."""

    def test_without_source(self):
        messages = build_messages(GenerationRequest(prompt="Write a teaser"))

        assert messages == [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": "Write a teaser"},
        ]

    def test_source_goes_before_instructions(self):
        messages = build_messages(GenerationRequest(prompt="Summarize", source="Long text"))

        assert len(messages) == 3
        assert messages[1]["content"].endswith("Long text")
        assert messages[2]["content"] == "Summarize"

    def test_blank_source_is_omitted(self):
        messages = build_messages(GenerationRequest(prompt="Summarize", source="  \n"))
        assert len(messages) == 2


class TestContentGenerator:
    """Test ContentGenerator streaming."""

    @pytest.fixture
    def llm_client(self):
        async def fake_stream(**kwargs):
            yield CompletionChunk(text="Short")
            yield CompletionChunk(text="Short text", finish_reason="stop")

        client = Mock()
        client.stream_completion = Mock(side_effect=fake_stream)
        return client

    @pytest.mark.asyncio
    async def test_generate_streams_chunks(self, llm_client):
        """Test chunks from the client are passed through."""
        generator = ContentGenerator(llm_client, temperature=0.3)
        request = GenerationRequest(prompt="Shorten", source="Some text", text_length="50|Brief")

        chunks = [chunk async for chunk in generator.generate(request)]

        assert [chunk.text for chunk in chunks] == ["Short", "Short text"]
        kwargs = llm_client.stream_completion.call_args.kwargs
        assert kwargs["max_tokens"] == 50
        assert kwargs["temperature"] == 0.3
        assert kwargs["messages"] == build_messages(request)

    @pytest.mark.asyncio
    async def test_blank_prompt_raises(self, llm_client):
        """Test a blank prompt is rejected before calling the LLM."""
        generator = ContentGenerator(llm_client)

        with pytest.raises(ValueError, match="No prompt"):
            async for _ in generator.generate(GenerationRequest(prompt="   ")):
                pass

        llm_client.stream_completion.assert_not_called()
