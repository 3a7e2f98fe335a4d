"""Specification analysis: turn a request into a TechnicalSpecification.

Each mode has its own strategy. Prompt analysis falls back to a minimal
default specification when the analysis capability is unavailable, so the
pipeline always proceeds with at least one component.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from cognigen.capabilities.base import (
    AnalysisCapability,
    BlueprintMetadata,
    BlueprintResolver,
    CapabilityFailure,
    call_capability,
)
from cognigen.capabilities.local import component_name_from_prompt
from cognigen.pipeline.cancellation import CancellationToken
from cognigen.pipeline.errors import GenerationValidationError
from cognigen.pipeline.models import (
    ArchitectureSpec,
    ComponentDescriptor,
    GenerationMode,
    GenerationRequest,
    QualityPolicy,
    TechnicalSpecification,
)

logger = structlog.get_logger(__name__)

DEFAULT_LAYERS = ["presentation", "business", "data"]


def default_architecture() -> ArchitectureSpec:
    """Neutral layered architecture with zero confidence."""
    return ArchitectureSpec(style="layered", layers=list(DEFAULT_LAYERS), confidence=0.0)


def root_component(request: GenerationRequest) -> ComponentDescriptor:
    """Build the single root component used when nothing else is declared."""
    name = component_name_from_prompt(request.prompt) if request.prompt else "Component"
    return ComponentDescriptor(
        name=name,
        type="component",
        purpose=(request.prompt or "").strip() or f"Root {request.target.value}",
        responsibilities=[],
        priority=0,
    )


def default_specification(request: GenerationRequest) -> TechnicalSpecification:
    """Minimal specification: one root component, layered architecture, standard testing."""
    return TechnicalSpecification(
        architecture=default_architecture(),
        components=[root_component(request)],
        quality=QualityPolicy(testing_strategy="standard"),
    )


def blueprint_to_specification(blueprint: BlueprintMetadata) -> TechnicalSpecification:
    """Map blueprint metadata onto a specification, defaulting missing parts."""
    spec = TechnicalSpecification(
        architecture=blueprint.architecture or ArchitectureSpec(),
        components=list(blueprint.components),
        data_model=list(blueprint.data_model),
    )
    if blueprint.technology is not None:
        spec.technologies = blueprint.technology
    return spec


@dataclass
class AnalysisResult:
    """Specification produced by the analyzer plus how it was obtained.

    Attributes:
        specification: The analyzed specification
        degradations: Fallback reasons recorded while analyzing
    """

    specification: TechnicalSpecification
    degradations: list[str] = field(default_factory=list)


class SpecificationAnalyzer:
    """Builds the technical specification for a request.

    Attributes:
        analysis: Capability used for from-prompt requests
        blueprints: Resolver used for from-blueprint requests
        timeout_seconds: Timeout applied to the analysis capability
    """

    def __init__(
        self,
        analysis: AnalysisCapability,
        blueprints: BlueprintResolver,
        timeout_seconds: float = 30.0,
    ) -> None:
        self.analysis = analysis
        self.blueprints = blueprints
        self.timeout_seconds = timeout_seconds
        self._logger = logger.bind(component="SpecificationAnalyzer")

    async def analyze(
        self,
        request: GenerationRequest,
        cancel_token: CancellationToken | None = None,
    ) -> AnalysisResult:
        """Produce a specification whose component list is never empty.

        Raises:
            GenerationValidationError: For unknown modes or unresolvable blueprints
            GenerationCancelledError: If the token is cancelled before a call
        """
        if request.mode == GenerationMode.FROM_PROMPT:
            result = await self._from_prompt(request, cancel_token)
        elif request.mode == GenerationMode.FROM_BLUEPRINT:
            result = AnalysisResult(await self._from_blueprint(request, cancel_token))
        elif request.mode == GenerationMode.FROM_SPECIFICATION:
            if request.specification is None:
                raise GenerationValidationError("Specification is missing", "specification")
            result = AnalysisResult(request.specification.model_copy(deep=True))
        elif request.mode == GenerationMode.FROM_EXAMPLE:
            result = AnalysisResult(
                TechnicalSpecification(
                    architecture=ArchitectureSpec(style="inferred-from-example"),
                    components=[],
                    needs_enrichment=True,
                )
            )
        else:
            raise GenerationValidationError(f"Unsupported generation mode: {request.mode}", "mode")

        spec = result.specification
        if not spec.components:
            spec.components.append(root_component(request))
            self._logger.info("root_component_inserted", component=spec.components[0].name)
        if request.include_tests is not None:
            spec.quality.include_tests = request.include_tests

        self._logger.info(
            "specification_analyzed",
            mode=request.mode.value,
            components=len(spec.components),
            architecture_style=spec.architecture.style,
            degraded=bool(result.degradations),
        )
        return result

    async def _from_prompt(
        self,
        request: GenerationRequest,
        cancel_token: CancellationToken | None,
    ) -> AnalysisResult:
        outcome = await call_capability(
            "analysis",
            self.analysis.analyze(request),
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
                fallback="default_specification",
            )
            return AnalysisResult(
                default_specification(request),
                degradations=[f"analysis_fallback: {outcome.describe()}"],
            )

        output = outcome.value
        spec = TechnicalSpecification(
            architecture=output.architecture or ArchitectureSpec(),
            components=list(output.components),
            data_model=list(output.data_model),
        )
        if output.technologies is not None:
            spec.technologies = output.technologies
        if output.quality is not None:
            spec.quality = output.quality
        return AnalysisResult(spec)

    async def _from_blueprint(
        self,
        request: GenerationRequest,
        cancel_token: CancellationToken | None,
    ) -> TechnicalSpecification:
        blueprint_id = request.blueprint_id or ""
        outcome = await call_capability(
            "blueprint",
            self.blueprints.resolve(blueprint_id),
            self.timeout_seconds,
            cancel_token,
        )
        if isinstance(outcome, CapabilityFailure):
            raise GenerationValidationError(
                f"Blueprint '{blueprint_id}' could not be resolved: {outcome.describe()}",
                "blueprint_id",
            )
        return blueprint_to_specification(outcome.value)
