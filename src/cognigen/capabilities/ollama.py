"""Ollama-backed capabilities.

:class:`OllamaClient` wraps the ``/api/generate`` endpoint with timeouts and
exponential-backoff retries. :class:`OllamaCodeGenerator` and
:class:`OllamaAnalyzer` adapt it to the code generation and analysis
capability protocols.

Example usage:
    >>> from cognigen.config import OllamaConfig
    >>> async with OllamaClient(OllamaConfig()) as client:
    ...     generator = OllamaCodeGenerator(client)
    ...     code = await generator.generate(prompt, "typescript", "react", context)
"""

from __future__ import annotations

import asyncio
import json
import re
from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from cognigen.capabilities.base import AnalysisOutput
from cognigen.config import OllamaConfig
from cognigen.pipeline.models import GenerationContext, GenerationRequest

logger = structlog.get_logger(__name__)


class OllamaClientError(Exception):
    """Base exception for Ollama client errors."""


class OllamaTimeoutError(OllamaClientError):
    """Raised when an Ollama request times out."""


class OllamaConnectionError(OllamaClientError):
    """Raised when unable to connect to the Ollama service."""


class OllamaAPIError(OllamaClientError):
    """Raised when the Ollama API returns an error response."""


class OllamaClient:
    """Async client for the Ollama text generation API.

    Attributes:
        config: Ollama configuration containing URL, model, and timeout settings
    """

    def __init__(self, config: OllamaConfig) -> None:
        self.config = config
        self._client: httpx.AsyncClient | None = None
        logger.info(
            "ollama_client_initialized",
            url=config.url,
            model=config.model,
            timeout=config.timeout_seconds,
        )

    async def __aenter__(self) -> OllamaClient:
        await self.open()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def open(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.url,
                timeout=httpx.Timeout(self.config.timeout_seconds),
            )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("OllamaClient must be opened before use")
        return self._client

    async def generate(
        self,
        prompt: str,
        *,
        temperature: float = 0.3,
        max_tokens: int = 4000,
        json_format: bool = False,
        initial_backoff: float = 1.0,
    ) -> str:
        """Generate a completion for ``prompt``.

        Retries on connection errors, timeouts and 5xx responses with
        exponential backoff.

        Args:
            prompt: Prompt text
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
            json_format: Ask Ollama to constrain output to JSON
            initial_backoff: Initial backoff delay in seconds

        Returns:
            The generated text

        Raises:
            OllamaTimeoutError: If the request times out after all retries
            OllamaConnectionError: If unable to connect after all retries
            OllamaAPIError: If the API returns an error response
        """
        client = self._get_client()
        max_retries = self.config.max_retries
        payload: dict[str, Any] = {
            "model": self.config.model,
            "prompt": prompt,
            "stream": False,
            "options": {"temperature": temperature, "num_predict": max_tokens},
        }
        if json_format:
            payload["format"] = "json"

        for attempt in range(max_retries + 1):
            backoff = initial_backoff * (2**attempt)
            try:
                logger.debug(
                    "ollama_generate_request",
                    attempt=attempt + 1,
                    max_attempts=max_retries + 1,
                    prompt_length=len(prompt),
                )
                response = await client.post("/api/generate", json=payload)

                if response.status_code == 200:
                    text = response.json().get("response")
                    if not isinstance(text, str):
                        raise OllamaAPIError(
                            "Invalid response format: missing or invalid 'response' field"
                        )
                    logger.info(
                        "ollama_generate_completed",
                        response_length=len(text),
                        attempt=attempt + 1,
                    )
                    return text

                error_msg = f"API error: HTTP {response.status_code}: {response.text}"
                if 500 <= response.status_code < 600 and attempt < max_retries:
                    logger.warning(
                        "ollama_server_error_retry",
                        status_code=response.status_code,
                        attempt=attempt + 1,
                        backoff_seconds=backoff,
                    )
                    await asyncio.sleep(backoff)
                    continue
                raise OllamaAPIError(error_msg)

            except httpx.TimeoutException as e:
                if attempt < max_retries:
                    logger.warning(
                        "ollama_timeout_retry",
                        attempt=attempt + 1,
                        backoff_seconds=backoff,
                        error=str(e),
                    )
                    await asyncio.sleep(backoff)
                    continue
                logger.error(
                    "ollama_timeout_exhausted",
                    max_retries=max_retries,
                    timeout_seconds=self.config.timeout_seconds,
                )
                raise OllamaTimeoutError(
                    f"Request timed out after {max_retries} retries"
                ) from e

            except httpx.TransportError as e:
                if attempt < max_retries:
                    logger.warning(
                        "ollama_connection_error_retry",
                        attempt=attempt + 1,
                        backoff_seconds=backoff,
                        error=str(e),
                    )
                    await asyncio.sleep(backoff)
                    continue
                logger.error(
                    "ollama_connection_exhausted",
                    url=self.config.url,
                    max_retries=max_retries,
                )
                raise OllamaConnectionError(
                    f"Failed to connect to Ollama at {self.config.url}"
                ) from e

        raise OllamaClientError("Unexpected retry loop exit")

    async def health_check(self) -> bool:
        """Return True if the Ollama server answers the tags endpoint."""
        client = self._get_client()
        try:
            response = await client.get("/api/tags")
        except httpx.TransportError as e:
            logger.warning("ollama_health_check_error", url=self.config.url, error=str(e))
            return False
        if response.status_code != 200:
            logger.warning(
                "ollama_health_check_failed",
                url=self.config.url,
                status_code=response.status_code,
            )
            return False
        return True


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


def extract_json(text: str) -> str | None:
    """Extract a JSON object from text that may contain markdown or prose.

    Tries a ```json fenced block first, then the outermost braces.
    """
    fenced = re.search(r"```json\s*\n(.*?)\n```", text, re.DOTALL | re.IGNORECASE)
    if fenced:
        return fenced.group(1).strip()
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        return text[start : end + 1]
    return None


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------


class OllamaCodeGenerator:
    """Code generation capability that asks an Ollama model for source."""

    def __init__(
        self, client: OllamaClient, temperature: float = 0.3, max_tokens: int = 4000
    ) -> None:
        self._client = client
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def generate(
        self,
        prompt: str,
        language: str,
        framework: str | None,
        context: GenerationContext,
    ) -> str:
        return await self._client.generate(
            prompt, temperature=self._temperature, max_tokens=self._max_tokens
        )


ANALYSIS_PROMPT = """You are a software architect. Analyze the request below and answer
with a single JSON object with the keys "components" (list of objects with
"name", "type", "purpose", "responsibilities"), "architecture" (object with
"style", "layers", "patterns", "justification"), "technologies" (object with
"frontend", "backend", "database", "infrastructure", "tools") and
"data_model" (list of objects with "name" and "fields").

Domain: {domain}
Language: {language}
Framework: {framework}

Request:
{prompt}
"""


class OllamaAnalyzer:
    """Analysis capability that asks an Ollama model for a JSON specification.

    Output that is not valid JSON or does not match :class:`AnalysisOutput`
    yields None, which the pipeline treats as a failed call.
    """

    def __init__(self, client: OllamaClient) -> None:
        self._client = client
        self._logger = logger.bind(component="OllamaAnalyzer")

    async def analyze(self, request: GenerationRequest) -> AnalysisOutput | None:
        prompt = ANALYSIS_PROMPT.format(
            domain=request.context.domain,
            language=request.language,
            framework=request.framework or "none",
            prompt=request.prompt or "",
        )
        raw = await self._client.generate(prompt, temperature=0.1, json_format=True)
        json_str = extract_json(raw)
        if json_str is None:
            self._logger.warning("analysis_no_json", response_length=len(raw))
            return None
        try:
            return AnalysisOutput.model_validate(json.loads(json_str))
        except (json.JSONDecodeError, ValidationError) as e:
            self._logger.warning("analysis_unparseable", error=str(e))
            return None
