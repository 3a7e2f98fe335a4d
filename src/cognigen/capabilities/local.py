"""In-process capability implementations.

These run without any external service so the pipeline works end to end out
of the box: a keyword-driven prompt analyzer, a rule-based architect, a
template code generator, a static validator, an in-memory blueprint registry
and an in-memory learning sink.
"""

from __future__ import annotations

import re
from typing import Any

import structlog

from cognigen.capabilities.base import (
    AnalysisOutput,
    ArchitectureSuggestion,
    BlueprintMetadata,
    GeneratedFile,
    ValidationReport,
)
from cognigen.pipeline.models import (
    ComplexityLevel,
    ComponentDescriptor,
    GenerationContext,
    GenerationRequest,
    GenerationTarget,
    QualityPolicy,
    TechnicalSpecification,
    TechnologyChoices,
)
from cognigen.prompts import PromptRenderer

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------

# keyword -> (component name, type, responsibility)
FEATURE_KEYWORDS: dict[str, tuple[str, str, str]] = {
    "login": ("AuthService", "service", "Authenticate users"),
    "auth": ("AuthService", "service", "Authenticate users"),
    "signup": ("AuthService", "service", "Register new users"),
    "dashboard": ("Dashboard", "component", "Summarize key metrics"),
    "chart": ("ChartPanel", "component", "Render charts"),
    "list": ("ItemList", "component", "List items"),
    "form": ("EntryForm", "component", "Collect user input"),
    "cart": ("CartService", "service", "Manage cart items"),
    "checkout": ("CheckoutFlow", "component", "Complete purchases"),
    "payment": ("PaymentService", "service", "Process payments"),
    "search": ("SearchBar", "component", "Search content"),
    "profile": ("UserProfile", "component", "Show user profile"),
    "notification": ("NotificationService", "service", "Send notifications"),
    "api": ("ApiClient", "service", "Call backend endpoints"),
    "storage": ("StorageService", "service", "Persist data"),
}

STOP_WORDS = {
    "a", "an", "the", "create", "build", "make", "generate", "with", "for",
    "and", "of", "to", "that", "app", "application", "please", "me", "i",
    "want", "need", "simple", "new",
}

_WORD_RE = re.compile(r"[A-Za-z0-9]+")


def component_name_from_prompt(prompt: str, max_words: int = 3) -> str:
    """Derive a PascalCase component name from a prompt.

    Stop words are dropped and at most ``max_words`` words are kept.

    Example:
        >>> component_name_from_prompt("Create a workout tracker")
        'WorkoutTracker'
    """
    words = [w for w in _WORD_RE.findall(prompt) if w.lower() not in STOP_WORDS]
    name = "".join(w[:1].upper() + w[1:].lower() for w in words[:max_words])
    if not name or not name[0].isalpha():
        return "Component"
    return name


class HeuristicAnalyzer:
    """Keyword-driven analysis capability.

    The prompt's leading words name the root component; feature keywords add
    supporting components in order of first mention.
    """

    def __init__(self) -> None:
        self._logger = logger.bind(component="HeuristicAnalyzer")

    async def analyze(self, request: GenerationRequest) -> AnalysisOutput | None:
        prompt = (request.prompt or "").strip()
        if not prompt:
            return None

        root = ComponentDescriptor(
            name=component_name_from_prompt(prompt),
            type="component",
            purpose=prompt,
            responsibilities=[f"Provide the main {request.context.domain} experience"],
            priority=0,
        )
        components = [root]
        seen = {root.name}
        lowered = prompt.lower()
        matches = sorted(
            (lowered.find(keyword), keyword)
            for keyword in FEATURE_KEYWORDS
            if keyword in lowered
        )
        for _, keyword in matches:
            name, kind, responsibility = FEATURE_KEYWORDS[keyword]
            if name in seen:
                continue
            seen.add(name)
            components.append(
                ComponentDescriptor(
                    name=name,
                    type=kind,
                    purpose=f"{responsibility} for {root.name}",
                    responsibilities=[responsibility],
                    priority=len(components),
                )
            )

        if request.target == GenerationTarget.COMPONENT:
            components = components[:1]

        self._logger.debug(
            "prompt_analyzed",
            components=[c.name for c in components],
            keywords=[k for _, k in matches],
        )
        frontend = [request.framework] if request.framework else []
        return AnalysisOutput(
            components=components,
            technologies=TechnologyChoices(frontend=frontend, tools=[request.language]),
            quality=QualityPolicy(
                include_tests=request.context.complexity != ComplexityLevel.SIMPLE,
            ),
        )


# ---------------------------------------------------------------------------
# Architecture
# ---------------------------------------------------------------------------


class RuleBasedArchitect:
    """Architecture capability that derives patterns from component types."""

    async def process(
        self,
        specification: TechnicalSpecification,
        context: GenerationContext,
    ) -> ArchitectureSuggestion | None:
        kinds = {c.type for c in specification.components}
        patterns: list[str] = []
        if "service" in kinds:
            patterns += ["service-layer", "dependency-injection"]
        if "component" in kinds:
            patterns.append("container-presentational")
        if len(specification.components) > 3:
            patterns.append("feature-modules")

        style = "component-based" if kinds <= {"component", "hook", "page"} else "layered"
        layers = (
            ["presentation", "state", "services"]
            if style == "component-based"
            else ["presentation", "business", "data"]
        )
        return ArchitectureSuggestion(
            style=style,
            layers=layers,
            patterns=patterns,
            justification=(
                f"{len(specification.components)} components for a "
                f"{context.complexity.value} {context.domain} application"
            ),
            confidence=70.0,
            reasoning=[f"component types: {', '.join(sorted(kinds)) or 'none'}"],
        )


# ---------------------------------------------------------------------------
# Code generation
# ---------------------------------------------------------------------------

_HEADER_RE = re.compile(r"^(Task|Component|Type|Purpose):\s*(.*)$", re.MULTILINE)
_RESPONSIBILITY_RE = re.compile(r"^Responsibilities:\n((?:- .*\n?)*)", re.MULTILINE)


def parse_prompt_header(prompt: str) -> dict[str, Any]:
    """Read the structured header the prompt templates start with."""
    header: dict[str, Any] = {}
    # first occurrence wins; embedded source may repeat a key
    for key, value in _HEADER_RE.findall(prompt):
        header.setdefault(key.lower(), value.strip())
    match = _RESPONSIBILITY_RE.search(prompt)
    header["responsibilities"] = (
        [line[2:].strip() for line in match.group(1).splitlines() if line.startswith("- ")]
        if match
        else []
    )
    return header


class TemplateCodeGenerator:
    """Code generation capability backed by Jinja2 source skeletons.

    Reads the component header from the rendered prompt and fills the
    matching skeleton. Prompts without a component header yield an empty
    string, which the pipeline treats as a failed call.
    """

    def __init__(self, renderer: PromptRenderer | None = None) -> None:
        self._renderer = renderer or PromptRenderer()

    async def generate(
        self,
        prompt: str,
        language: str,
        framework: str | None,
        context: GenerationContext,
    ) -> str:
        header = parse_prompt_header(prompt)
        name = header.get("component")
        if not name:
            return ""
        component = ComponentDescriptor(
            name=name,
            type=header.get("type") or "component",
            purpose=header.get("purpose", ""),
            responsibilities=header["responsibilities"],
        )

        if header.get("task") == "unit-tests":
            module_path = name if language == "python" else f"./{name}"
            return self._renderer.fallback_test(
                component, language=language, module_path=module_path
            )
        if language == "python":
            return self._renderer.render("code/python_component.j2", component=component)

        typescript = language == "typescript"
        if framework == "react" and component.type in ("component", "page"):
            return self._renderer.render(
                "code/react_component.j2",
                component=component,
                typescript=typescript,
                palette=context.color_palette or ["#007AFF"],
            )
        return self._renderer.render(
            "code/class_component.j2", component=component, typescript=typescript
        )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

_PAIRS = {")": "(", "]": "[", "}": "{"}


def _brackets_balanced(source: str) -> bool:
    stack: list[str] = []
    for char in source:
        if char in "([{":
            stack.append(char)
        elif char in _PAIRS:
            if not stack or stack.pop() != _PAIRS[char]:
                return False
    return not stack


class StaticValidator:
    """Validation capability based on static checks.

    Python files must compile; other files must have balanced brackets.
    Each error costs 20 points of compliance and each warning 5.

    Attributes:
        max_lines: Files longer than this get a warning
    """

    def __init__(self, max_lines: int = 400) -> None:
        self.max_lines = max_lines

    async def validate(self, files: list[GeneratedFile]) -> ValidationReport | None:
        errors: list[str] = []
        warnings: list[str] = []
        for file in files:
            if not file.content.strip():
                errors.append(f"{file.path}: file is empty")
                continue
            if file.language == "python":
                try:
                    compile(file.content, file.path, "exec")
                except SyntaxError as e:
                    errors.append(f"{file.path}:{e.lineno}: syntax error: {e.msg}")
            elif not _brackets_balanced(file.content):
                errors.append(f"{file.path}: unbalanced brackets")
            if "TODO" in file.content:
                warnings.append(f"{file.path}: contains TODO markers")
            if file.content.count("\n") + 1 > self.max_lines:
                warnings.append(f"{file.path}: longer than {self.max_lines} lines")

        score = max(0.0, 100.0 - 20 * len(errors) - 5 * len(warnings))
        return ValidationReport(compliance_score=score, errors=errors, warnings=warnings)


# ---------------------------------------------------------------------------
# Blueprints and learning
# ---------------------------------------------------------------------------


class InMemoryBlueprintRegistry:
    """Blueprint resolver over a dict of registered blueprints."""

    def __init__(self, blueprints: list[BlueprintMetadata] | None = None) -> None:
        self._blueprints = {b.blueprint_id: b for b in blueprints or []}

    def register(self, blueprint: BlueprintMetadata) -> None:
        self._blueprints[blueprint.blueprint_id] = blueprint

    async def resolve(self, blueprint_id: str) -> BlueprintMetadata | None:
        return self._blueprints.get(blueprint_id)


class InMemoryLearningCapability:
    """Learning capability that keeps events in a list."""

    def __init__(self) -> None:
        self.events: list[dict[str, Any]] = []

    async def record(
        self,
        source: str,
        pattern_type: str,
        input: dict[str, Any],
        output: dict[str, Any],
        success: bool,
        metadata: dict[str, Any],
    ) -> None:
        self.events.append(
            {
                "source": source,
                "pattern_type": pattern_type,
                "input": input,
                "output": output,
                "success": success,
                "metadata": metadata,
            }
        )
        logger.debug("learning_event_stored", pattern_type=pattern_type, success=success)
