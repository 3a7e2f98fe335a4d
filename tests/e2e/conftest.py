"""Pytest fixtures for E2E tests.

Provides capability doubles for full pipeline runs: a generator that can be
told to fail for chosen components, a generator whose output differs on
every call, and counting wrappers around the in-process capabilities.
"""

from __future__ import annotations

import uuid
from collections import Counter
from collections.abc import Callable

import pytest

from cognigen.capabilities.base import GeneratedFile, ValidationReport
from cognigen.capabilities.local import TemplateCodeGenerator, parse_prompt_header
from cognigen.config import PipelineConfig
from cognigen.pipeline.engine import GenerationEngine
from cognigen.pipeline.models import GenerationContext


class ScriptedGenerator:
    """Template generator that raises for the named components.

    Attributes:
        failing: Component names whose generation raises
        calls: Number of generate calls per component name
    """

    def __init__(self, failing: set[str] | None = None, salted: bool = False) -> None:
        self.failing = failing or set()
        self.salted = salted
        self.calls: Counter[str] = Counter()
        self._inner = TemplateCodeGenerator()

    async def generate(
        self,
        prompt: str,
        language: str,
        framework: str | None,
        context: GenerationContext,
    ) -> str:
        name = parse_prompt_header(prompt).get("component", "")
        self.calls[name] += 1
        if name in self.failing:
            raise RuntimeError(f"model refused {name}")
        source = await self._inner.generate(prompt, language, framework, context)
        if self.salted:
            source += f"\n// run {uuid.uuid4().hex}\n"
        return source

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())


class CleanValidator:
    """Validation capability that reports every file set as compliant."""

    def __init__(self) -> None:
        self.seen: list[list[GeneratedFile]] = []

    async def validate(self, files: list[GeneratedFile]) -> ValidationReport:
        self.seen.append(files)
        return ValidationReport(compliance_score=100)


@pytest.fixture
def scripted_generator() -> Callable[..., ScriptedGenerator]:
    return ScriptedGenerator


@pytest.fixture
def clean_validator() -> CleanValidator:
    return CleanValidator()


@pytest.fixture
def uncached_config() -> PipelineConfig:
    return PipelineConfig(enable_caching=False)


@pytest.fixture
def e2e_engine(
    make_engine: Callable[..., GenerationEngine],
    clean_validator: CleanValidator,
) -> Callable[..., GenerationEngine]:
    """Engine factory defaulting to the compliant validator."""

    def _make(**overrides) -> GenerationEngine:
        overrides.setdefault("validation", clean_validator)
        return make_engine(**overrides)

    return _make
