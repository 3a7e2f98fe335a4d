"""Request validation, fingerprinting and cache lookup.

The fingerprint is a SHA-256 over the request's mode, target, language,
framework and its authoritative input. The authoritative input is matched
literally: two prompts that differ only in whitespace or casing produce
different fingerprints. Request identity (request, user and project ids) and
timestamps never participate.
"""

from __future__ import annotations

import hashlib
import json

import structlog

from cognigen.pipeline.errors import GenerationValidationError
from cognigen.pipeline.models import GenerationMode, GenerationRequest, GenerationResult
from cognigen.store.base import GenerationStore

logger = structlog.get_logger(__name__)


def validate_request(request: GenerationRequest) -> None:
    """Reject requests whose authoritative input is missing or empty.

    Raises:
        GenerationValidationError: If the input selected by ``mode`` is unusable
    """
    mode = request.mode
    if mode == GenerationMode.FROM_PROMPT:
        if not request.prompt or not request.prompt.strip():
            raise GenerationValidationError("Prompt is required for from-prompt mode", "prompt")
    elif mode == GenerationMode.FROM_BLUEPRINT:
        if not request.blueprint_id or not request.blueprint_id.strip():
            raise GenerationValidationError(
                "Blueprint id is required for from-blueprint mode", "blueprint_id"
            )
    elif mode == GenerationMode.FROM_SPECIFICATION:
        if request.specification is None:
            raise GenerationValidationError(
                "Specification is required for from-specification mode", "specification"
            )
    elif mode == GenerationMode.FROM_EXAMPLE:
        if not request.example_code or not request.example_code.strip():
            raise GenerationValidationError(
                "Example code is required for from-example mode", "example_code"
            )
    else:
        raise GenerationValidationError(f"Unsupported generation mode: {mode}", "mode")


def authoritative_input(request: GenerationRequest) -> str:
    """Return the literal input selected by the request's mode.

    An explicit specification is serialized to canonical JSON so that two
    different specifications never share a fingerprint.
    """
    if request.mode == GenerationMode.FROM_PROMPT:
        return request.prompt or ""
    if request.mode == GenerationMode.FROM_BLUEPRINT:
        return request.blueprint_id or ""
    if request.mode == GenerationMode.FROM_SPECIFICATION:
        if request.specification is None:
            return ""
        return json.dumps(request.specification.model_dump(mode="json"), sort_keys=True)
    return request.example_code or ""


def fingerprint(request: GenerationRequest) -> str:
    """Compute the cache key of a request.

    Example:
        >>> a = GenerationRequest(mode="from-prompt", prompt="todo app", user_id="u1")
        >>> b = GenerationRequest(mode="from-prompt", prompt="todo app", user_id="u2")
        >>> fingerprint(a) == fingerprint(b)
        True
    """
    payload = {
        "mode": request.mode.value,
        "target": request.target.value,
        "language": request.language,
        "framework": request.framework,
        "input": authoritative_input(request),
    }
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class RequestNormalizer:
    """Validates requests and serves cached results.

    Attributes:
        store: Generation store holding cached results
        enabled: Whether cache lookups and writes happen at all
    """

    def __init__(self, store: GenerationStore, enabled: bool = True) -> None:
        self.store = store
        self.enabled = enabled
        self._logger = logger.bind(component="RequestNormalizer")

    def normalize(self, request: GenerationRequest) -> str:
        """Validate the request and return its fingerprint."""
        validate_request(request)
        return fingerprint(request)

    async def lookup(self, key: str) -> GenerationResult | None:
        """Return the cached result for ``key`` when caching is enabled."""
        if not self.enabled:
            return None
        cached = await self.store.get_cached(key)
        self._logger.debug("cache_lookup", fingerprint=key, hit=cached is not None)
        return cached

    async def remember(self, key: str, result: GenerationResult) -> None:
        """Cache a completed result; the later writer wins."""
        if not self.enabled:
            return
        await self.store.put_cached(key, result)
        self._logger.debug("cache_written", fingerprint=key)
