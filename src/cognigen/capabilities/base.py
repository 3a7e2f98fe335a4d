"""Capability protocols and the explicit capability result type.

Capabilities are the pluggable services the pipeline consumes: analysis,
architectural reasoning, code generation, validation, learning and blueprint
lookup. The pipeline never calls them directly. It goes through
:func:`call_capability`, which applies a timeout and turns exceptions,
timeouts and empty payloads into a :class:`CapabilityFailure`, so every stage
handles one success type and one failure type.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import Any, Generic, Protocol, TypeVar, runtime_checkable

import structlog
from pydantic import BaseModel, Field

from cognigen.pipeline.cancellation import CancellationToken
from cognigen.pipeline.errors import CapabilityUnavailableError
from cognigen.pipeline.models import (
    ArchitectureSpec,
    ComponentDescriptor,
    DataEntity,
    GenerationContext,
    GenerationRequest,
    QualityPolicy,
    TechnicalSpecification,
    TechnologyChoices,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Capability payloads
# ---------------------------------------------------------------------------


class AnalysisOutput(BaseModel):
    """What an analysis capability extracts from a prompt.

    Any missing part is filled with defaults by the analyzer.
    """

    architecture: ArchitectureSpec | None = None
    components: list[ComponentDescriptor] = Field(default_factory=list)
    data_model: list[DataEntity] = Field(default_factory=list)
    technologies: TechnologyChoices | None = None
    quality: QualityPolicy | None = None


class ArchitectureSuggestion(BaseModel):
    """Architecture proposed by an architecture capability."""

    style: str = ""
    layers: list[str] = Field(default_factory=list)
    patterns: list[str] = Field(default_factory=list)
    justification: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=100.0)
    reasoning: list[str] = Field(default_factory=list)


class GeneratedFile(BaseModel):
    """A file handed to the validation capability."""

    path: str
    content: str
    language: str


class ValidationReport(BaseModel):
    """Compliance verdict returned by a validation capability.

    Attributes:
        compliance_score: Overall compliance (0-100)
        errors: Blocking problems
        warnings: Non-blocking problems
    """

    compliance_score: float = Field(ge=0.0, le=100.0)
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class BlueprintMetadata(BaseModel):
    """Stored blueprint a request can reference by id.

    Attributes:
        blueprint_id: Identifier of the blueprint
        name: Human-readable blueprint name
        architecture: Declared architecture, if any
        technology: Declared technology choices, if any
        components: Declared components
        data_model: Declared data entities
    """

    blueprint_id: str
    name: str = ""
    architecture: ArchitectureSpec | None = None
    technology: TechnologyChoices | None = None
    components: list[ComponentDescriptor] = Field(default_factory=list)
    data_model: list[DataEntity] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class AnalysisCapability(Protocol):
    """Extracts a structured specification from a natural-language request."""

    async def analyze(self, request: GenerationRequest) -> AnalysisOutput | None:
        ...


@runtime_checkable
class ArchitectureCapability(Protocol):
    """Suggests an architecture for a specification."""

    async def process(
        self,
        specification: TechnicalSpecification,
        context: GenerationContext,
    ) -> ArchitectureSuggestion | None:
        ...


@runtime_checkable
class CodeGenerationCapability(Protocol):
    """Turns a prompt into source text."""

    async def generate(
        self,
        prompt: str,
        language: str,
        framework: str | None,
        context: GenerationContext,
    ) -> str:
        ...


@runtime_checkable
class ValidationCapability(Protocol):
    """Judges a set of generated files."""

    async def validate(self, files: list[GeneratedFile]) -> ValidationReport | None:
        ...


@runtime_checkable
class LearningCapability(Protocol):
    """Receives learning events after completed runs."""

    async def record(
        self,
        source: str,
        pattern_type: str,
        input: dict[str, Any],
        output: dict[str, Any],
        success: bool,
        metadata: dict[str, Any],
    ) -> None:
        ...


@runtime_checkable
class BlueprintResolver(Protocol):
    """Looks up stored blueprints by id."""

    async def resolve(self, blueprint_id: str) -> BlueprintMetadata | None:
        ...


# ---------------------------------------------------------------------------
# Result type
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CapabilitySuccess(Generic[T]):
    """A capability call that produced a usable value."""

    value: T
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class CapabilityFailure:
    """A capability call that failed, timed out or returned nothing.

    Attributes:
        capability: Name of the capability
        reason: Short machine-friendly reason (timeout, empty, error)
        detail: Human-readable detail
    """

    capability: str
    reason: str
    detail: str = ""
    duration_ms: int = 0
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return False

    def describe(self) -> str:
        return f"{self.reason}: {self.detail}" if self.detail else self.reason

    def to_error(self) -> CapabilityUnavailableError:
        return CapabilityUnavailableError(self.capability, self.describe())


CapabilityResult = CapabilitySuccess[T] | CapabilityFailure


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


async def call_capability(
    name: str,
    call: Awaitable[T],
    timeout_seconds: float,
    cancel_token: CancellationToken | None = None,
) -> CapabilityResult[T]:
    """Await a capability call and classify its outcome.

    Cancellation is checked before the call starts. Errors raised by the call
    are never propagated; they become a CapabilityFailure. Cancellation of
    the surrounding task is propagated.

    Args:
        name: Capability name used in logs and failures
        call: The awaitable returned by the capability method
        timeout_seconds: Maximum time to wait
        cancel_token: Optional token checked before the call

    Returns:
        CapabilitySuccess with the value, or CapabilityFailure
    """
    if cancel_token is not None and cancel_token.cancelled:
        if asyncio.iscoroutine(call):
            call.close()
        cancel_token.raise_if_cancelled(f"before_{name}")

    started = time.perf_counter()
    try:
        value = await asyncio.wait_for(call, timeout=timeout_seconds)
    except asyncio.TimeoutError:
        elapsed = int((time.perf_counter() - started) * 1000)
        logger.warning(
            "capability_timeout",
            capability=name,
            timeout_seconds=timeout_seconds,
        )
        return CapabilityFailure(
            capability=name,
            reason="timeout",
            detail=f"no response within {timeout_seconds}s",
            duration_ms=elapsed,
        )
    except asyncio.CancelledError:
        raise
    except Exception as e:
        elapsed = int((time.perf_counter() - started) * 1000)
        logger.warning(
            "capability_error",
            capability=name,
            error=str(e),
            error_type=type(e).__name__,
        )
        return CapabilityFailure(
            capability=name,
            reason="error",
            detail=str(e) or type(e).__name__,
            duration_ms=elapsed,
        )

    elapsed = int((time.perf_counter() - started) * 1000)
    if _is_empty(value):
        logger.warning("capability_empty_response", capability=name)
        return CapabilityFailure(
            capability=name,
            reason="empty",
            detail="capability returned no data",
            duration_ms=elapsed,
        )

    logger.debug("capability_succeeded", capability=name, duration_ms=elapsed)
    return CapabilitySuccess(value=value, duration_ms=elapsed)
