"""LLM client with streaming text completion support."""

import httpx
import json
from typing import AsyncIterator, Dict, Any, List, Optional
import asyncio

from aicompose.utils.logging import get_logger
from aicompose.models.config import LLMConfig
from aicompose.models.llm_chunks import CompletionChunk


logger = get_logger(__name__)


def _extract_from_openai_chunk(data: Dict[str, Any]) -> tuple[str | None, str | None]:
    """
    Extract content and finish reason from an OpenAI-style streaming chunk.

    OpenAI (and Ollama's /v1 endpoint) return chunks like:
    {
        "choices": [{
            "delta": {"content": "..."},
            "finish_reason": null
        }]
    }

    Args:
        data: Parsed JSON chunk from OpenAI API

    Returns:
        Tuple of (content fragment or None, finish reason or None)
    """
    try:
        if "choices" in data and len(data["choices"]) > 0:
            choice = data["choices"][0]
            content = None
            if "delta" in choice and choice["delta"]:
                content = choice["delta"].get("content")
            elif "message" in choice:
                content = choice["message"].get("content")
            return content, choice.get("finish_reason")
    except (KeyError, IndexError, TypeError, AttributeError):
        pass
    return None, None


def _extract_from_ollama_chunk(data: Dict[str, Any]) -> tuple[str | None, str | None]:
    """
    Extract content and finish reason from an Ollama native streaming chunk.

    Ollama's /api/chat returns chunks like:
    {
        "model": "...",
        "message": {"role": "assistant", "content": "..."},
        "done": false
    }

    The final chunk has ``"done": true`` and a ``done_reason`` ("stop" or "length").

    Args:
        data: Parsed JSON chunk from Ollama /api/chat

    Returns:
        Tuple of (content fragment or None, finish reason or None)
    """
    try:
        content = None
        if "message" in data and data["message"]:
            content = data["message"].get("content")
        finish_reason = None
        if data.get("done"):
            finish_reason = data.get("done_reason", "stop")
        return content, finish_reason
    except (KeyError, TypeError, AttributeError):
        pass
    return None, None


class LLMClient:
    """
    HTTP client for chat completion APIs with streaming support.

    Supports OpenAI-compatible APIs (including Ollama) with automatic retry
    on transient errors.
    """

    def __init__(self, config: LLMConfig):
        """
        Initialize LLM client.

        Args:
            config: LLM configuration (endpoint, API key, model)
        """
        self.config = config
        self.timeout = httpx.Timeout(
            connect=10.0,
            read=60.0,  # Per-read timeout for streaming
            write=10.0,
            pool=10.0
        )
        self._is_ollama: bool | None = None  # Cached provider detection

    def _base_url(self) -> str:
        base_url = str(self.config.endpoint).rstrip("/")
        if base_url.endswith("/v1"):
            base_url = base_url[:-3]
        return base_url

    async def _detect_ollama(self) -> bool:
        """
        Detect if the LLM endpoint is Ollama by probing /api/version.

        This detection is cached after the first call.

        Returns:
            True if Ollama detected, False otherwise
        """
        if self._is_ollama is not None:
            return self._is_ollama

        version_url = f"{self._base_url()}/api/version"
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(5.0)) as client:
                logger.debug("llm_provider_detection", version_url=version_url)

                response = await client.get(version_url)

                if response.status_code == 200:
                    logger.info(
                        "llm_provider_detected",
                        provider="ollama",
                        version_url=version_url,
                    )
                    self._is_ollama = True
                    return True

        except httpx.HTTPError as e:
            logger.debug(
                "llm_provider_detection_failed",
                error=str(e),
                assumed_provider="openai",
            )

        logger.info("llm_provider_detected", provider="openai")
        self._is_ollama = False
        return False

    def _build_payload(
        self,
        messages: List[Dict[str, str]],
        is_ollama: bool,
        max_tokens: Optional[int],
        temperature: float,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.config.model,
            "messages": messages,
            "stream": True,
        }

        if is_ollama:
            options: Dict[str, Any] = {"temperature": temperature}
            if self.config.num_ctx:
                options["num_ctx"] = self.config.num_ctx
            if max_tokens:
                options["num_predict"] = max_tokens
            payload["options"] = options
        else:
            payload["temperature"] = temperature
            if max_tokens:
                payload["max_tokens"] = max_tokens

        return payload

    async def stream_completion(
        self,
        messages: List[Dict[str, str]],
        max_tokens: Optional[int] = None,
        temperature: float = 0.7,
        max_retries: int = 1,
        retry_delay: float = 2.0,
        request_id: Optional[str] = None
    ) -> AsyncIterator[CompletionChunk]:
        """
        Stream a chat completion from the LLM API.

        Supports SSE (``data: ...`` lines, OpenAI style) and plain NDJSON
        (Ollama native). Every yielded chunk carries the accumulated response
        text, so consumers replace their display instead of appending.

        Args:
            messages: Chat messages (role/content dicts)
            max_tokens: Upper bound for generated tokens (None for provider default)
            temperature: Sampling temperature (default: 0.7)
            max_retries: Number of automatic retries on transient errors (default: 1)
            retry_delay: Delay in seconds between retries (default: 2.0)
            request_id: Optional identifier for this request (for logging/tracing)

        Yields:
            CompletionChunk with the text so far; the last one carries finish_reason

        Raises:
            httpx.HTTPError: On network or HTTP errors after retries exhausted

        Example:
            >>> async for chunk in client.stream_completion(
            ...     messages=[{"role": "user", "content": "Write a teaser"}],
            ...     max_tokens=200,
            ... ):
            ...     response_area.text = chunk.text
        """
        if not request_id:
            current_task = asyncio.current_task()
            task_name = current_task.get_name() if current_task else None
            if task_name and task_name != "None":
                request_id = task_name
            else:
                request_id = "unknown"

        is_ollama = await self._detect_ollama()
        payload = self._build_payload(messages, is_ollama, max_tokens, temperature)

        logger.info(
            "llm_request_started",
            request_id=request_id,
            model=self.config.model,
            endpoint=str(self.config.endpoint),
            provider="ollama" if is_ollama else "openai",
            message_count=len(messages),
            max_tokens=max_tokens,
            temperature=temperature,
        )

        logger.debug(
            "llm_request_payload",
            request_id=request_id,
            payload=payload,
        )

        if is_ollama:
            url = self._base_url() + "/api/chat"
        else:
            url = str(self.config.endpoint).rstrip("/") + "/chat/completions"

        attempt = 0

        while attempt <= max_retries:
            accumulated = ""
            finish_reason = None
            chunk_count = 0
            try:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    headers = {"Authorization": f"Bearer {self.config.api_key}"}

                    async with client.stream("POST", url, json=payload, headers=headers) as response:
                        response.raise_for_status()

                        async for line in response.aiter_lines():
                            if not line.strip():
                                continue

                            json_line = line
                            if line.startswith("data: "):
                                json_line = line[6:]
                                if json_line.strip() == "[DONE]":
                                    logger.debug("llm_response_sse_done", request_id=request_id)
                                    continue

                            try:
                                data = json.loads(json_line)
                            except json.JSONDecodeError as e:
                                logger.error(
                                    "llm_malformed_json",
                                    request_id=request_id,
                                    line=line,
                                    error=str(e)
                                )
                                continue

                            if is_ollama:
                                fragment, reason = _extract_from_ollama_chunk(data)
                            else:
                                fragment, reason = _extract_from_openai_chunk(data)

                            if reason:
                                finish_reason = reason

                            if fragment:
                                accumulated += fragment
                                chunk_count += 1
                                yield CompletionChunk(text=accumulated)

                    logger.info(
                        "llm_request_completed",
                        request_id=request_id,
                        chunk_count=chunk_count,
                        response_length=len(accumulated),
                        finish_reason=finish_reason,
                    )

                    yield CompletionChunk(text=accumulated, finish_reason=finish_reason or "stop")
                    return

            except (httpx.ConnectError, httpx.ReadTimeout, httpx.ConnectTimeout) as e:
                attempt += 1

                logger.warning(
                    "llm_request_retry",
                    request_id=request_id,
                    attempt=attempt,
                    max_retries=max_retries,
                    error=str(e),
                    retry_delay=retry_delay
                )

                # A stream that already produced text is not restarted
                if attempt <= max_retries and chunk_count == 0:
                    await asyncio.sleep(retry_delay)
                else:
                    logger.error(
                        "llm_request_failed",
                        request_id=request_id,
                        attempts=attempt,
                        error=str(e)
                    )
                    raise

            except httpx.HTTPStatusError as e:
                # Don't retry on 4xx/5xx (bad request, auth, etc.)
                logger.error(
                    "llm_http_error",
                    request_id=request_id,
                    status_code=e.response.status_code,
                    error=str(e)
                )
                raise
