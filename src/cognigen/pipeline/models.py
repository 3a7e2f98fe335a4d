"""Data model for the generation pipeline.

Requests, specifications, generated components and results are Pydantic
models. Requests and generated components are frozen; the technical
specification is built once by the analyzer and only its architecture is
replaced by the enhancer.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class GenerationMode(str, Enum):
    """How the authoritative input of a request is interpreted."""

    FROM_PROMPT = "from-prompt"
    FROM_BLUEPRINT = "from-blueprint"
    FROM_SPECIFICATION = "from-specification"
    FROM_EXAMPLE = "from-example"


class GenerationTarget(str, Enum):
    """Scope of the artifacts a request asks for."""

    COMPONENT = "component"
    FEATURE = "feature"
    MODULE = "module"
    FULL_PROJECT = "full-project"


class CodeStyle(str, Enum):
    """Preferred programming style for generated code."""

    FUNCTIONAL = "functional"
    OOP = "oop"
    MIXED = "mixed"


class ComplexityLevel(str, Enum):
    """Requested richness of the generated application."""

    SIMPLE = "simple"
    STANDARD = "standard"
    FEATURE_RICH = "feature-rich"


class GenerationStatus(str, Enum):
    """Terminal status of a generation run."""

    COMPLETED = "completed"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------

DOMAIN_PERSONALITIES: dict[str, str] = {
    "fitness": "motivational",
    "ecommerce": "persuasive",
    "dashboard": "analytical",
    "social": "engaging",
    "education": "encouraging",
    "healthcare": "caring",
    "finance": "trustworthy",
}

DOMAIN_PALETTES: dict[str, list[str]] = {
    "fitness": ["#00D084", "#0A84FF", "#FF9500"],
    "ecommerce": ["#007AFF", "#FF3B30", "#FFD60A"],
    "dashboard": ["#5856D6", "#34C759", "#FF9500"],
    "social": ["#5E5CE6", "#FF2D55", "#30D158"],
    "education": ["#007AFF", "#34C759", "#FFD60A"],
    "healthcare": ["#32ADE6", "#34C759", "#FF9500"],
    "finance": ["#5856D6", "#34C759", "#FFD60A"],
}

DEFAULT_PERSONALITY = "professional"
DEFAULT_PALETTE = ["#007AFF", "#5856D6", "#34C759"]


class GenerationContext(BaseModel):
    """Closed set of hints that steer generation.

    Personality and palette default from the domain when omitted.

    Attributes:
        domain: Application domain (fitness, ecommerce, dashboard, ...)
        complexity: Requested richness of the output
        personality: Tone used in copy and naming
        color_palette: Hex colors used by UI components
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    domain: str = "generic"
    complexity: ComplexityLevel = ComplexityLevel.STANDARD
    personality: str | None = None
    color_palette: list[str] | None = None

    @model_validator(mode="before")
    @classmethod
    def _fill_domain_defaults(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        domain = str(data.get("domain") or "generic").lower()
        data = {**data, "domain": domain}
        if not data.get("personality"):
            data["personality"] = DOMAIN_PERSONALITIES.get(domain, DEFAULT_PERSONALITY)
        if not data.get("color_palette"):
            data["color_palette"] = list(DOMAIN_PALETTES.get(domain, DEFAULT_PALETTE))
        return data


class ArchitectureOverrides(BaseModel):
    """Architecture fields the requester pins explicitly.

    Any field left as None is resolved by the analyzer or the architecture
    capability.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    style: str | None = None
    layers: list[str] | None = None
    patterns: list[str] | None = None
    justification: str | None = None


class GenerationRequest(BaseModel):
    """A single request to generate code.

    Exactly one input field is authoritative, chosen by ``mode``. The other
    input fields are ignored for generation and fingerprinting.

    Attributes:
        request_id: Unique identifier of this request
        user_id: Requesting user
        project_id: Project the output belongs to, if any
        mode: Selects the authoritative input
        target: Scope of the requested artifacts
        prompt: Natural-language description (from-prompt)
        blueprint_id: Identifier of a stored blueprint (from-blueprint)
        specification: Explicit technical specification (from-specification)
        example_code: Source code to learn from (from-example)
        language: Output programming language
        framework: Output framework, if any
        style: Preferred programming style
        include_tests: Overrides the quality policy's test switch when set
        min_quality_score: Threshold for recording a run as successful
        architecture: Explicit architecture overrides
        context: Domain and personality hints
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    request_id: str = Field(default_factory=_new_id)
    user_id: str = "anonymous"
    project_id: str | None = None
    mode: GenerationMode
    target: GenerationTarget = GenerationTarget.COMPONENT
    prompt: str | None = None
    blueprint_id: str | None = None
    specification: TechnicalSpecification | None = None
    example_code: str | None = None
    language: str = "typescript"
    framework: str | None = None
    style: CodeStyle = CodeStyle.FUNCTIONAL
    include_tests: bool | None = None
    min_quality_score: int | None = Field(default=None, ge=0, le=100)
    architecture: ArchitectureOverrides | None = None
    context: GenerationContext = Field(default_factory=GenerationContext)


# ---------------------------------------------------------------------------
# Specification
# ---------------------------------------------------------------------------


class ArchitectureSpec(BaseModel):
    """Architectural shape of the generated system.

    Attributes:
        style: Architecture style name (layered, hexagonal, ...)
        layers: Ordered layer names
        patterns: Design patterns to apply
        justification: Why this shape fits the request
        confidence: Confidence of the suggestion (0-100)
        reasoning: Free-form reasoning steps from the capability
    """

    style: str = ""
    layers: list[str] = Field(default_factory=list)
    patterns: list[str] = Field(default_factory=list)
    justification: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=100.0)
    reasoning: list[str] = Field(default_factory=list)


class ComponentDescriptor(BaseModel):
    """A unit of code the specification declares.

    Attributes:
        name: Component name (PascalCase for UI components)
        type: Component kind (component, service, util, model, hook, page)
        purpose: One-line purpose
        responsibilities: Responsibilities the code must cover
        priority: Lower numbers are more important
    """

    name: str = Field(min_length=1)
    type: str = "component"
    purpose: str = ""
    responsibilities: list[str] = Field(default_factory=list)
    priority: int = Field(default=1, ge=0)


class DataEntity(BaseModel):
    """A data model entity and its fields."""

    name: str
    fields: dict[str, str] = Field(default_factory=dict)


class TechnologyChoices(BaseModel):
    """Technologies grouped by tier."""

    frontend: list[str] = Field(default_factory=list)
    backend: list[str] = Field(default_factory=list)
    database: list[str] = Field(default_factory=list)
    infrastructure: list[str] = Field(default_factory=list)
    tools: list[str] = Field(default_factory=list)


class QualityPolicy(BaseModel):
    """Testing and non-functional targets.

    Attributes:
        include_tests: Whether test files are generated per component
        testing_strategy: Named strategy (standard, tdd, minimal, ...)
        security_targets: Security requirements to honour
        performance_targets: Performance requirements to honour
    """

    include_tests: bool = True
    testing_strategy: str = "standard"
    security_targets: list[str] = Field(default_factory=list)
    performance_targets: list[str] = Field(default_factory=list)


class TechnicalSpecification(BaseModel):
    """Structured plan derived from a request.

    Attributes:
        architecture: Architectural shape, replaced by the enhancer
        components: Ordered component declarations
        data_model: Data entities
        technologies: Technology choices
        quality: Testing and non-functional policy
        needs_enrichment: True when the specification was inferred from an example
    """

    architecture: ArchitectureSpec = Field(default_factory=ArchitectureSpec)
    components: list[ComponentDescriptor] = Field(default_factory=list)
    data_model: list[DataEntity] = Field(default_factory=list)
    technologies: TechnologyChoices = Field(default_factory=TechnologyChoices)
    quality: QualityPolicy = Field(default_factory=QualityPolicy)
    needs_enrichment: bool = False


GenerationRequest.model_rebuild()


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


class ComponentMetadata(BaseModel):
    """Derived metrics for one generated component."""

    model_config = ConfigDict(frozen=True)

    line_count: int = Field(ge=1)
    complexity: int = Field(ge=1)
    coverage_estimate: int = Field(default=0, ge=0, le=100)
    quality_score: int = Field(default=0, ge=0, le=100)
    declaration_index: int = Field(default=0, ge=0)


class GeneratedComponent(BaseModel):
    """A synthesized source file, optionally with its test file.

    Attributes:
        name: Component name from the specification
        type: Component kind from the specification
        file_path: Relative path of the source file
        file_name: Base name of the source file
        language: Language of the source
        source: Generated source text
        test_source: Generated test text, if tests were requested
        test_path: Relative path of the test file
        dependencies: External package names the source imports
        metadata: Derived metrics
    """

    model_config = ConfigDict(frozen=True)

    name: str
    type: str
    file_path: str
    file_name: str
    language: str
    source: str = Field(min_length=1)
    test_source: str | None = None
    test_path: str | None = None
    dependencies: list[str] = Field(default_factory=list)
    metadata: ComponentMetadata


class GenerationMetrics(BaseModel):
    """Aggregate metrics of a completed run."""

    total_components: int = 0
    declared_components: int = 0
    failed_components: int = 0
    total_lines: int = 0
    generation_time_ms: int = 0
    tests_generated: int = 0


class GenerationResult(BaseModel):
    """Outcome of a successful run.

    The serialized form of a cached result is returned byte-for-byte on a
    cache hit, so nothing here is recomputed after assembly.
    """

    generation_id: str = Field(default_factory=_new_id)
    request_id: str
    user_id: str
    project_id: str | None = None
    fingerprint: str
    status: GenerationStatus = GenerationStatus.COMPLETED
    mode: GenerationMode
    target: GenerationTarget
    components: list[GeneratedComponent] = Field(default_factory=list)
    architecture: ArchitectureSpec
    package_manifest: dict[str, Any] = Field(default_factory=dict)
    readme: str = ""
    quality_score: int = Field(ge=0, le=100)
    compliance_score: int = Field(ge=0, le=100)
    confidence: int = Field(default=0, ge=0, le=100)
    validated: bool
    validation_errors: list[str] = Field(default_factory=list)
    validation_warnings: list[str] = Field(default_factory=list)
    skipped_components: list[str] = Field(default_factory=list)
    degraded: bool = False
    degradations: list[str] = Field(default_factory=list)
    metrics: GenerationMetrics = Field(default_factory=GenerationMetrics)
    created_at: datetime = Field(default_factory=_utcnow)


class GenerationFailure(BaseModel):
    """Structured outcome of a failed run.

    Attributes:
        request_id: Identifier of the failed request
        error_code: Stable machine-readable error code
        message: English message
        messages: Localized messages keyed by locale
        details: Additional context (offending field, stage, cause)
        failed_stage: Pipeline state in which the failure happened
    """

    request_id: str
    status: GenerationStatus = GenerationStatus.FAILED
    error_code: str
    message: str
    messages: dict[str, str] = Field(default_factory=dict)
    details: dict[str, Any] = Field(default_factory=dict)
    failed_stage: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)


class HistoryRecord(BaseModel):
    """Append-only summary of one generation run."""

    generation_id: str = Field(default_factory=_new_id)
    request_id: str
    user_id: str
    project_id: str | None = None
    fingerprint: str | None = None
    mode: GenerationMode
    target: GenerationTarget
    status: GenerationStatus
    error_code: str | None = None
    quality_score: int | None = None
    validated: bool = False
    total_components: int = 0
    total_lines: int = 0
    generation_time_ms: int = 0
    architecture_style: str | None = None
    component_names: list[str] = Field(default_factory=list)
    domain: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
