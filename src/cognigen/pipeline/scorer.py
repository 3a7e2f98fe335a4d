"""Validation and scoring of synthesized components.

Scoring uses a single weighted blend:

    quality = clamp(round(0.7 * compliance + 0.3 * inverse_complexity), 0, 100)
    inverse_complexity = max(0, 100 - 5 * average component complexity)

With no components the inverse-complexity term is 0. When validation is
disabled compliance is 100; when the validation capability fails compliance
is 50 and a single ``validation failed`` error is recorded.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from cognigen.capabilities.base import (
    CapabilityFailure,
    GeneratedFile,
    ValidationCapability,
    call_capability,
)
from cognigen.pipeline.cancellation import CancellationToken
from cognigen.pipeline.models import GeneratedComponent, TechnicalSpecification

logger = structlog.get_logger(__name__)

COMPLIANCE_WEIGHT = 0.7
COMPLEXITY_WEIGHT = 0.3
DISABLED_COMPLIANCE = 100
DEGRADED_COMPLIANCE = 50


@dataclass
class ScoreCard:
    """Validation verdict and derived scores for one run."""

    compliance_score: int
    quality_score: int
    confidence: int
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    degradations: list[str] = field(default_factory=list)

    @property
    def validated(self) -> bool:
        return not self.errors


def clamp_score(value: float) -> int:
    return max(0, min(100, int(round(value))))


def inverse_complexity(components: list[GeneratedComponent]) -> float:
    if not components:
        return 0.0
    average = sum(c.metadata.complexity for c in components) / len(components)
    return max(0.0, 100.0 - average * 5)


def quality_score(compliance: float, components: list[GeneratedComponent]) -> int:
    """Blend compliance with inverse complexity and clamp to [0, 100]."""
    return clamp_score(
        COMPLIANCE_WEIGHT * compliance + COMPLEXITY_WEIGHT * inverse_complexity(components)
    )


def confidence_score(
    specification: TechnicalSpecification, components: list[GeneratedComponent]
) -> int:
    """30 for an architecture, 30 for declared components, 40 for generated output."""
    score = 0
    if specification.architecture.style:
        score += 30
    if specification.components:
        score += 30
    if components:
        score += 40
    return score


def files_for_validation(components: list[GeneratedComponent]) -> list[GeneratedFile]:
    files: list[GeneratedFile] = []
    for component in components:
        files.append(
            GeneratedFile(path=component.file_path, content=component.source, language=component.language)
        )
        if component.test_source and component.test_path:
            files.append(
                GeneratedFile(
                    path=component.test_path,
                    content=component.test_source,
                    language=component.language,
                )
            )
    return files


class ValidatorScorer:
    """Runs the validation capability and computes the scores.

    Attributes:
        capability: Validation capability, or None when validation is disabled
        timeout_seconds: Timeout applied to the capability
    """

    def __init__(
        self,
        capability: ValidationCapability | None,
        timeout_seconds: float = 60.0,
    ) -> None:
        self.capability = capability
        self.timeout_seconds = timeout_seconds
        self._logger = logger.bind(component="ValidatorScorer")

    async def validate(
        self,
        components: list[GeneratedComponent],
        cancel_token: CancellationToken | None = None,
    ) -> tuple[int, list[str], list[str], list[str]]:
        """Return (compliance, errors, warnings, degradations)."""
        if self.capability is None:
            return DISABLED_COMPLIANCE, [], [], []

        outcome = await call_capability(
            "validation",
            self.capability.validate(files_for_validation(components)),
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
                fallback="degraded_compliance",
            )
            return (
                DEGRADED_COMPLIANCE,
                [f"validation failed: {outcome.describe()}"],
                [],
                [f"validation_fallback: {outcome.describe()}"],
            )

        report = outcome.value
        return clamp_score(report.compliance_score), list(report.errors), list(report.warnings), []

    def score(
        self,
        specification: TechnicalSpecification,
        components: list[GeneratedComponent],
        compliance: int,
        errors: list[str],
        warnings: list[str],
        degradations: list[str],
    ) -> ScoreCard:
        card = ScoreCard(
            compliance_score=compliance,
            quality_score=quality_score(compliance, components),
            confidence=confidence_score(specification, components),
            errors=errors,
            warnings=warnings,
            degradations=degradations,
        )
        self._logger.info(
            "components_scored",
            compliance=card.compliance_score,
            quality=card.quality_score,
            confidence=card.confidence,
            errors=len(card.errors),
            warnings=len(card.warnings),
        )
        return card
