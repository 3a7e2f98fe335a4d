"""Architecture enhancement: merge overrides, analysis and capability suggestions.

Precedence per field (style, layers, patterns, justification):

1. explicit request override
2. non-empty value from the analyzed specification
3. non-empty value from the architecture capability
4. neutral default (``layered`` with presentation/business/data layers)
"""

from __future__ import annotations

from typing import Any

import structlog

from cognigen.capabilities.base import (
    ArchitectureCapability,
    ArchitectureSuggestion,
    CapabilityFailure,
    call_capability,
)
from cognigen.pipeline.analyzer import DEFAULT_LAYERS
from cognigen.pipeline.cancellation import CancellationToken
from cognigen.pipeline.models import (
    ArchitectureOverrides,
    ArchitectureSpec,
    GenerationRequest,
    TechnicalSpecification,
)

logger = structlog.get_logger(__name__)

_NEUTRAL: dict[str, Any] = {
    "style": "layered",
    "layers": DEFAULT_LAYERS,
    "patterns": [],
    "justification": "",
}


def _first_non_empty(*values: Any) -> Any:
    for value in values:
        if value:
            return value
    return None


def merge_architecture(
    overrides: ArchitectureOverrides | None,
    analyzed: ArchitectureSpec,
    suggested: ArchitectureSuggestion | None,
) -> ArchitectureSpec:
    """Merge architecture sources field by field.

    Request overrides win even when empty (an explicit ``[]`` for patterns
    means no patterns). Confidence and reasoning come from the suggestion
    when it supplied anything, otherwise from the analyzed specification.

    Example:
        >>> merged = merge_architecture(
        ...     ArchitectureOverrides(style="hexagonal"),
        ...     ArchitectureSpec(style="layered", patterns=["repository"]),
        ...     ArchitectureSuggestion(style="mvc", layers=["ui", "domain"]),
        ... )
        >>> (merged.style, merged.layers, merged.patterns)
        ('hexagonal', ['ui', 'domain'], ['repository'])
    """
    merged: dict[str, Any] = {}
    for name, neutral in _NEUTRAL.items():
        override = getattr(overrides, name, None) if overrides is not None else None
        if override is not None:
            merged[name] = override
            continue
        value = _first_non_empty(
            getattr(analyzed, name),
            getattr(suggested, name) if suggested is not None else None,
        )
        merged[name] = value if value is not None else neutral

    if suggested is not None and suggested.confidence:
        confidence = suggested.confidence
        reasoning = list(suggested.reasoning)
    else:
        confidence = analyzed.confidence
        reasoning = list(analyzed.reasoning)

    return ArchitectureSpec(
        style=merged["style"],
        layers=list(merged["layers"]),
        patterns=list(merged["patterns"]),
        justification=merged["justification"],
        confidence=confidence,
        reasoning=reasoning,
    )


class ArchitectureEnhancer:
    """Replaces the specification's architecture with the merged one.

    Attributes:
        capability: Architecture capability, or None when disabled
        timeout_seconds: Timeout applied to the capability
    """

    def __init__(
        self,
        capability: ArchitectureCapability | None,
        timeout_seconds: float = 30.0,
    ) -> None:
        self.capability = capability
        self.timeout_seconds = timeout_seconds
        self._logger = logger.bind(component="ArchitectureEnhancer")

    async def enhance(
        self,
        request: GenerationRequest,
        specification: TechnicalSpecification,
        cancel_token: CancellationToken | None = None,
    ) -> list[str]:
        """Merge the architecture into ``specification`` in place.

        Returns:
            Degradation reasons, empty when the capability answered or is disabled
        """
        degradations: list[str] = []
        suggested: ArchitectureSuggestion | None = None

        if self.capability is not None:
            outcome = await call_capability(
                "architecture",
                self.capability.process(specification, request.context),
                self.timeout_seconds,
                cancel_token,
            )
            if isinstance(outcome, CapabilityFailure):
                error = outcome.to_error()
                self._logger.warning(
                    "capability_fallback",
                    capability=error.capability,
                    error_code=error.code.value,
                    reason=error.reason,
                    fallback="analyzed_or_neutral_architecture",
                )
                degradations.append(f"architecture_fallback: {outcome.describe()}")
            else:
                suggested = outcome.value

        specification.architecture = merge_architecture(
            request.architecture, specification.architecture, suggested
        )
        self._logger.info(
            "architecture_enhanced",
            style=specification.architecture.style,
            layers=specification.architecture.layers,
            patterns=specification.architecture.patterns,
        )
        return degradations
