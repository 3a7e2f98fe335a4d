"""Package manifest and readme rendering for a generation result."""

from __future__ import annotations

import re
from typing import Any

from cognigen.pipeline.models import (
    GeneratedComponent,
    GenerationRequest,
    TechnicalSpecification,
)

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def package_name(request: GenerationRequest, specification: TechnicalSpecification) -> str:
    base = request.project_id or (
        specification.components[0].name if specification.components else "generated-app"
    )
    slug = _SLUG_RE.sub("-", re.sub(r"(?<!^)(?=[A-Z])", "-", base).lower()).strip("-")
    return slug or "generated-app"


def collect_dependencies(components: list[GeneratedComponent]) -> list[str]:
    seen: dict[str, None] = {}
    for component in components:
        for dependency in component.dependencies:
            seen.setdefault(dependency, None)
    return list(seen)


def build_manifest(
    request: GenerationRequest,
    specification: TechnicalSpecification,
    components: list[GeneratedComponent],
) -> dict[str, Any]:
    """Build a package manifest for the generated components.

    JavaScript and TypeScript output get a package.json-shaped manifest with
    every dependency pinned to ``latest``; Python output gets a
    pyproject-shaped one.
    """
    name = package_name(request, specification)
    dependencies = collect_dependencies(components)
    has_tests = any(c.test_source for c in components)

    if request.language == "python":
        return {
            "project": {
                "name": name,
                "version": "0.1.0",
                "description": specification.architecture.justification or f"Generated {name}",
                "dependencies": dependencies,
                "optional-dependencies": {"test": ["pytest"]} if has_tests else {},
            }
        }

    manifest: dict[str, Any] = {
        "name": name,
        "version": "1.0.0",
        "private": True,
        "scripts": {"build": "tsc" if request.language == "typescript" else "echo build"},
        "dependencies": {dep: "latest" for dep in dependencies},
        "devDependencies": {},
    }
    if request.language == "typescript":
        manifest["devDependencies"]["typescript"] = "latest"
    if has_tests:
        manifest["scripts"]["test"] = "jest"
        manifest["devDependencies"]["jest"] = "latest"
    return manifest


def build_readme(
    request: GenerationRequest,
    specification: TechnicalSpecification,
    components: list[GeneratedComponent],
) -> str:
    """Render a markdown readme listing architecture and components."""
    architecture = specification.architecture
    lines = [
        f"# {package_name(request, specification)}",
        "",
        f"Generated {request.target.value} in {request.language}"
        + (f" with {request.framework}" if request.framework else "")
        + ".",
        "",
        "## Architecture",
        "",
        f"- Style: {architecture.style}",
    ]
    if architecture.layers:
        lines.append(f"- Layers: {', '.join(architecture.layers)}")
    if architecture.patterns:
        lines.append(f"- Patterns: {', '.join(architecture.patterns)}")
    lines += ["", "## Components", ""]
    for component in components:
        descriptor = next(
            (d for d in specification.components if d.name == component.name), None
        )
        purpose = f": {descriptor.purpose}" if descriptor and descriptor.purpose else ""
        lines.append(f"- **{component.name}** (`{component.file_path}`){purpose}")
    if not components:
        lines.append("_No components were generated._")
    return "\n".join(lines) + "\n"
