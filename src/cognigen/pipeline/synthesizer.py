"""Component synthesis: generate source, tests and metadata per component.

Components are synthesized concurrently under a semaphore. Every task
resolves to a tagged outcome (:class:`SynthesisSuccess` or
:class:`SynthesisFailure`); a failing component never cancels its siblings,
and outcomes are put back into declaration order before they are returned.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field

import structlog

from cognigen.capabilities.base import (
    CapabilityFailure,
    CodeGenerationCapability,
    call_capability,
)
from cognigen.pipeline.cancellation import CancellationToken
from cognigen.pipeline.errors import ComponentSynthesisError, GenerationCancelledError
from cognigen.pipeline.models import (
    ComponentDescriptor,
    ComponentMetadata,
    GeneratedComponent,
    GenerationRequest,
    TechnicalSpecification,
)
from cognigen.prompts import PromptRenderer, snake_case

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Source analysis helpers
# ---------------------------------------------------------------------------

_FENCE_RE = re.compile(r"```[^\n]*\n(.*?)```", re.DOTALL)
_BLANK_RUN_RE = re.compile(r"\n{3,}")


def clean_source(text: str) -> str:
    """Take the first fenced block (if any) and collapse runs of blank lines."""
    match = _FENCE_RE.search(text)
    code = match.group(1) if match else text
    return _BLANK_RUN_RE.sub("\n\n", code).strip()


_JS_IMPORT_PATTERNS = [
    re.compile(r"""\bimport\s+(?:[\w*${}\s,]+?\s+from\s+)?['"]([^'"]+)['"]"""),
    re.compile(r"""\bexport\s+[\w*${}\s,]+?\s+from\s+['"]([^'"]+)['"]"""),
    re.compile(r"""\brequire\(\s*['"]([^'"]+)['"]\s*\)"""),
    re.compile(r"""\bimport\(\s*['"]([^'"]+)['"]\s*\)"""),
]
_PY_IMPORT_RE = re.compile(r"^\s*import\s+([\w.]+(?:\s*,\s*[\w.]+)*)", re.MULTILINE)
_PY_FROM_RE = re.compile(r"^\s*from\s+([\w.]+)\s+import\b", re.MULTILINE)

_LOCAL_PREFIXES = (".", "/", "@/", "~/")


def _package_root(specifier: str, language: str) -> str:
    if language == "python":
        return specifier.split(".")[0]
    parts = specifier.split("/")
    if specifier.startswith("@") and len(parts) > 1:
        return "/".join(parts[:2])
    return parts[0]


def extract_dependencies(source: str, language: str) -> list[str]:
    """Return external package names imported by ``source``.

    Relative, absolute and alias paths are excluded. Names are reduced to
    their package root and kept in first-seen order.

    Example:
        >>> extract_dependencies("import { map } from 'lodash/fp';\\nimport x from './x';", "typescript")
        ['lodash']
    """
    specifiers: list[tuple[int, str]] = []
    if language == "python":
        for match in _PY_IMPORT_RE.finditer(source):
            for name in match.group(1).split(","):
                specifiers.append((match.start(), name.strip()))
        for match in _PY_FROM_RE.finditer(source):
            specifiers.append((match.start(), match.group(1)))
    else:
        for pattern in _JS_IMPORT_PATTERNS:
            specifiers.extend((m.start(), m.group(1)) for m in pattern.finditer(source))

    seen: dict[str, None] = {}
    for _, specifier in sorted(specifiers):
        if not specifier or specifier.startswith(_LOCAL_PREFIXES):
            continue
        seen.setdefault(_package_root(specifier, language), None)
    return list(seen)


_BRANCH_RE = re.compile(r"\b(?:if|elif|for|while|case|catch|except)\b")
_JS_LOGICAL_RE = re.compile(r"&&|\|\|")
_PY_LOGICAL_RE = re.compile(r"\b(?:and|or)\b")
_TERNARY_RE = re.compile(r" \? ")


def estimate_complexity(source: str, language: str) -> int:
    """McCabe-style approximation: 1 plus one per branching token."""
    count = len(_BRANCH_RE.findall(source))
    if language == "python":
        count += len(_PY_LOGICAL_RE.findall(source))
    else:
        count += len(_JS_LOGICAL_RE.findall(source)) + len(_TERNARY_RE.findall(source))
    return 1 + count


_JS_TEST_CASE_RE = re.compile(r"\b(?:it|test)\s*\(")
_PY_TEST_CASE_RE = re.compile(r"^\s*(?:async\s+)?def\s+test_", re.MULTILINE)


def estimate_coverage(test_source: str | None, language: str) -> int:
    """Coverage estimate from the number of test cases; 0 without tests."""
    if not test_source:
        return 0
    pattern = _PY_TEST_CASE_RE if language == "python" else _JS_TEST_CASE_RE
    return min(95, 50 + 5 * len(pattern.findall(test_source)))


def estimate_quality(complexity: int, coverage: int) -> int:
    """Per-component score: 0.6 * inverse complexity + 0.4 * coverage estimate."""
    inverse = max(0, 100 - 5 * complexity)
    return max(0, min(100, round(0.6 * inverse + 0.4 * coverage)))


def line_count(source: str) -> int:
    return source.count("\n") + 1


_TYPE_DIRECTORIES = {
    "component": "components",
    "page": "pages",
    "hook": "hooks",
    "service": "services",
    "util": "utils",
    "model": "models",
}


def file_layout(
    descriptor: ComponentDescriptor, language: str, framework: str | None
) -> tuple[str, str, str]:
    """Return (source path, test path, import path used by fallback tests)."""
    directory = _TYPE_DIRECTORIES.get(descriptor.type, "components")
    if language == "python":
        module = snake_case(descriptor.name)
        return (
            f"src/{directory}/{module}.py",
            f"tests/test_{module}.py",
            f"{directory}.{module}",
        )

    ui = framework == "react" and descriptor.type in ("component", "page")
    if language == "typescript":
        ext = "tsx" if ui else "ts"
    else:
        ext = "jsx" if ui else "js"
    return (
        f"src/{directory}/{descriptor.name}.{ext}",
        f"src/__tests__/{descriptor.name}.test.{ext}",
        f"../{directory}/{descriptor.name}",
    )


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SynthesisSuccess:
    index: int
    component: GeneratedComponent
    used_fallback_tests: bool = False


@dataclass(frozen=True)
class SynthesisFailure:
    index: int
    name: str
    reason: str


SynthesisOutcome = SynthesisSuccess | SynthesisFailure


@dataclass
class SynthesisReport:
    """Components in declaration order plus the ones that were skipped."""

    components: list[GeneratedComponent] = field(default_factory=list)
    failures: list[SynthesisFailure] = field(default_factory=list)
    fallback_tests: list[str] = field(default_factory=list)

    @property
    def tests_generated(self) -> int:
        return sum(1 for c in self.components if c.test_source)


# ---------------------------------------------------------------------------
# Synthesizer
# ---------------------------------------------------------------------------


class ComponentSynthesizer:
    """Generates every declared component with bounded concurrency.

    Attributes:
        generator: Code generation capability
        renderer: Prompt renderer
        max_concurrent: Maximum components generated at the same time
        timeout_seconds: Timeout applied to each generation call
    """

    def __init__(
        self,
        generator: CodeGenerationCapability,
        renderer: PromptRenderer | None = None,
        max_concurrent: int = 4,
        timeout_seconds: float = 120.0,
    ) -> None:
        self.generator = generator
        self.renderer = renderer or PromptRenderer()
        self.max_concurrent = max_concurrent
        self.timeout_seconds = timeout_seconds
        self._logger = logger.bind(component="ComponentSynthesizer")

    async def synthesize(
        self,
        request: GenerationRequest,
        specification: TechnicalSpecification,
        hints: list[str] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> SynthesisReport:
        """Synthesize all components of ``specification``.

        Raises:
            GenerationCancelledError: If the run is cancelled mid-synthesis
        """
        semaphore = asyncio.Semaphore(self.max_concurrent)
        tasks = [
            self._synthesize_one(
                index, descriptor, request, specification, hints or [], semaphore, cancel_token
            )
            for index, descriptor in enumerate(specification.components)
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        report = SynthesisReport()
        outcomes: list[SynthesisOutcome] = []
        for index, result in enumerate(results):
            if isinstance(result, GenerationCancelledError):
                raise result
            if isinstance(result, BaseException):
                name = specification.components[index].name
                self._logger.error(
                    "component_task_crashed",
                    component_name=name,
                    error=str(result),
                    error_type=type(result).__name__,
                )
                outcomes.append(SynthesisFailure(index, name, str(result)))
            else:
                outcomes.append(result)

        for outcome in sorted(outcomes, key=lambda o: o.index):
            if isinstance(outcome, SynthesisSuccess):
                report.components.append(outcome.component)
                if outcome.used_fallback_tests:
                    report.fallback_tests.append(outcome.component.name)
            else:
                report.failures.append(outcome)

        self._logger.info(
            "synthesis_completed",
            declared=len(specification.components),
            generated=len(report.components),
            failed=len(report.failures),
        )
        return report

    async def _synthesize_one(
        self,
        index: int,
        descriptor: ComponentDescriptor,
        request: GenerationRequest,
        specification: TechnicalSpecification,
        hints: list[str],
        semaphore: asyncio.Semaphore,
        cancel_token: CancellationToken | None,
    ) -> SynthesisOutcome:
        async with semaphore:
            try:
                return await self._generate(
                    index, descriptor, request, specification, hints, cancel_token
                )
            except ComponentSynthesisError as e:
                self._logger.warning(
                    "component_synthesis_failed",
                    component_name=descriptor.name,
                    reason=e.reason,
                )
                return SynthesisFailure(index, descriptor.name, e.reason)

    async def _generate(
        self,
        index: int,
        descriptor: ComponentDescriptor,
        request: GenerationRequest,
        specification: TechnicalSpecification,
        hints: list[str],
        cancel_token: CancellationToken | None,
    ) -> SynthesisSuccess:
        language = request.language
        framework = request.framework
        technologies = [
            *specification.technologies.frontend,
            *specification.technologies.backend,
            *specification.technologies.database,
        ]
        prompt = self.renderer.component_prompt(
            descriptor,
            language=language,
            framework=framework,
            style=request.style.value,
            context=request.context,
            architecture=specification.architecture,
            technologies=technologies,
            hints=hints,
        )
        outcome = await call_capability(
            "code_generation",
            self.generator.generate(prompt, language, framework, request.context),
            self.timeout_seconds,
            cancel_token,
        )
        if isinstance(outcome, CapabilityFailure):
            raise ComponentSynthesisError(descriptor.name, outcome.describe())
        source = clean_source(outcome.value)
        if not source:
            raise ComponentSynthesisError(descriptor.name, "empty source after cleanup")

        source_path, test_path, import_path = file_layout(descriptor, language, framework)

        test_source: str | None = None
        used_fallback = False
        if specification.quality.include_tests:
            test_prompt = self.renderer.test_prompt(
                descriptor,
                source=source,
                language=language,
                framework=framework,
                testing_strategy=specification.quality.testing_strategy,
            )
            test_outcome = await call_capability(
                "test_generation",
                self.generator.generate(test_prompt, language, framework, request.context),
                self.timeout_seconds,
                cancel_token,
            )
            if isinstance(test_outcome, CapabilityFailure) or not clean_source(test_outcome.value):
                self._logger.info("test_fallback_used", component_name=descriptor.name)
                test_source = self.renderer.fallback_test(
                    descriptor, language=language, module_path=import_path
                ).strip()
                used_fallback = True
            else:
                test_source = clean_source(test_outcome.value)

        complexity = estimate_complexity(source, language)
        coverage = estimate_coverage(test_source, language)
        component = GeneratedComponent(
            name=descriptor.name,
            type=descriptor.type,
            file_path=source_path,
            file_name=source_path.rsplit("/", 1)[-1],
            language=language,
            source=source,
            test_source=test_source,
            test_path=test_path if test_source else None,
            dependencies=extract_dependencies(source, language),
            metadata=ComponentMetadata(
                line_count=line_count(source),
                complexity=complexity,
                coverage_estimate=coverage,
                quality_score=estimate_quality(complexity, coverage),
                declaration_index=index,
            ),
        )
        self._logger.debug(
            "component_synthesized",
            component_name=descriptor.name,
            lines=component.metadata.line_count,
            complexity=component.metadata.complexity,
            quality_score=component.metadata.quality_score,
            has_tests=test_source is not None,
        )
        return SynthesisSuccess(index, component, used_fallback)
