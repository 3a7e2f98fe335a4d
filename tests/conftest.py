"""Shared pytest fixtures.

Engines are built from the in-process capabilities so runs are
deterministic; individual tests swap single capabilities for AsyncMocks to
simulate failures.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from cognigen.capabilities.base import BlueprintMetadata
from cognigen.capabilities.local import (
    HeuristicAnalyzer,
    InMemoryBlueprintRegistry,
    InMemoryLearningCapability,
    RuleBasedArchitect,
    StaticValidator,
    TemplateCodeGenerator,
)
from cognigen.config import PipelineConfig
from cognigen.pipeline.engine import GenerationEngine
from cognigen.pipeline.models import (
    ArchitectureSpec,
    ComponentDescriptor,
    ComponentMetadata,
    GeneratedComponent,
    GenerationContext,
    GenerationMode,
    GenerationRequest,
    GenerationResult,
    GenerationTarget,
    TechnicalSpecification,
    TechnologyChoices,
)
from cognigen.store.memory import InMemoryGenerationStore


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def memory_store() -> InMemoryGenerationStore:
    return InMemoryGenerationStore(max_entries=16)


@pytest.fixture
def learning_sink() -> InMemoryLearningCapability:
    return InMemoryLearningCapability()


@pytest.fixture
def blueprint_registry() -> InMemoryBlueprintRegistry:
    """Registry holding one e-commerce blueprint with two components."""
    return InMemoryBlueprintRegistry(
        [
            BlueprintMetadata(
                blueprint_id="bp-shop",
                name="Shop",
                architecture=ArchitectureSpec(
                    style="hexagonal", layers=["adapters", "domain", "ports"]
                ),
                technology=TechnologyChoices(frontend=["react"], backend=["node"]),
                components=[
                    ComponentDescriptor(
                        name="ProductCatalog",
                        type="component",
                        purpose="Browse products",
                        responsibilities=["List products", "Filter by category"],
                    ),
                    ComponentDescriptor(
                        name="CartService",
                        type="service",
                        purpose="Manage the cart",
                        responsibilities=["Add item", "Remove item"],
                    ),
                ],
            )
        ]
    )


@pytest.fixture
def make_engine(
    memory_store: InMemoryGenerationStore,
    learning_sink: InMemoryLearningCapability,
    blueprint_registry: InMemoryBlueprintRegistry,
) -> Callable[..., GenerationEngine]:
    """Factory for engines wired with in-process capabilities.

    Keyword arguments replace individual constructor arguments.
    """

    def _make(**overrides: Any) -> GenerationEngine:
        kwargs: dict[str, Any] = {
            "analysis": HeuristicAnalyzer(),
            "architecture": RuleBasedArchitect(),
            "generator": TemplateCodeGenerator(),
            "validation": StaticValidator(),
            "learning": learning_sink,
            "blueprints": blueprint_registry,
            "store": memory_store,
            "config": PipelineConfig(),
        }
        kwargs.update(overrides)
        return GenerationEngine(**kwargs)

    return _make


@pytest.fixture
def prompt_request() -> Callable[..., GenerationRequest]:
    """Factory for from-prompt requests with sensible defaults."""

    def _make(prompt: str = "Create a workout tracker", **fields: Any) -> GenerationRequest:
        fields.setdefault("context", GenerationContext(domain="fitness"))
        return GenerationRequest(mode=GenerationMode.FROM_PROMPT, prompt=prompt, **fields)

    return _make


@pytest.fixture
def sample_specification() -> TechnicalSpecification:
    """Three-component specification in declaration order."""
    return TechnicalSpecification(
        architecture=ArchitectureSpec(style="layered", layers=["ui", "domain", "data"]),
        components=[
            ComponentDescriptor(
                name="OrderForm",
                type="component",
                purpose="Collect order details",
                responsibilities=["Validate input", "Submit order"],
            ),
            ComponentDescriptor(
                name="OrderService",
                type="service",
                purpose="Place orders",
                responsibilities=["Create order", "Cancel order"],
            ),
            ComponentDescriptor(
                name="OrderModel",
                type="model",
                purpose="Order entity",
                responsibilities=["Hold order fields"],
            ),
        ],
    )


@pytest.fixture
def make_component() -> Callable[..., GeneratedComponent]:
    """Factory for generated TypeScript components."""

    def _make(name: str = "OrderForm", **fields: Any) -> GeneratedComponent:
        complexity = fields.pop("complexity", 2)
        kwargs: dict[str, Any] = {
            "name": name,
            "type": "component",
            "file_path": f"src/components/{name}.ts",
            "file_name": f"{name}.ts",
            "language": "typescript",
            "source": f"export class {name} {{}}\n",
            "metadata": ComponentMetadata(line_count=2, complexity=complexity),
        }
        kwargs.update(fields)
        return GeneratedComponent(**kwargs)

    return _make


@pytest.fixture
def make_result(
    make_component: Callable[..., GeneratedComponent],
) -> Callable[..., GenerationResult]:
    """Factory for completed results holding one component."""

    def _make(**fields: Any) -> GenerationResult:
        kwargs: dict[str, Any] = {
            "request_id": "req-1",
            "user_id": "u1",
            "fingerprint": "f" * 64,
            "mode": GenerationMode.FROM_PROMPT,
            "target": GenerationTarget.COMPONENT,
            "components": [make_component()],
            "architecture": ArchitectureSpec(style="layered"),
            "quality_score": 80,
            "compliance_score": 90,
            "validated": True,
        }
        kwargs.update(fields)
        return GenerationResult(**kwargs)

    return _make
