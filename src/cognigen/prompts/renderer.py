"""Jinja2 rendering of generation prompts and template sources.

Templates live next to this module under ``templates/``:

- ``component.j2`` / ``test.j2``: prompts sent to a code generation capability
- ``test_fallback.j2``: deterministic test source used when test generation fails
- ``code/*.j2``: source skeletons used by the template code generator
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import TYPE_CHECKING, Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined

if TYPE_CHECKING:
    from jinja2 import Template

    from cognigen.pipeline.models import (
        ArchitectureSpec,
        ComponentDescriptor,
        GenerationContext,
    )

TEMPLATE_DIR = Path(__file__).parent / "templates"

_NON_WORD = re.compile(r"[^a-z0-9\s]")
# CamelCase boundaries: "WorkoutLog" and "HTTPServer"
_CASE_BOUNDARY = re.compile(r"(?<=[a-z])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def _words(text: str) -> list[str]:
    spaced = _CASE_BOUNDARY.sub(" ", text)
    return _NON_WORD.sub(" ", spaced.lower()).split()


def camel_case(text: str) -> str:
    """Turn a responsibility sentence into a method name.

    Example:
        >>> camel_case("Track workout progress!")
        'trackWorkoutProgress'
    """
    words = _words(text)
    if not words:
        return "handle"
    name = words[0] + "".join(w.capitalize() for w in words[1:])
    return name if name[0].isalpha() else f"do{name}"


def snake_case(text: str) -> str:
    """Turn a responsibility sentence into a snake_case identifier."""
    words = _words(text)
    if not words:
        return "handle"
    name = "_".join(words)
    return name if name[0].isalpha() else f"do_{name}"


class PromptRenderer:
    """Loads and renders the bundled Jinja2 templates.

    Autoescaping is off because every template renders source code or plain
    prompt text.

    Attributes:
        env: Jinja2 environment bound to the template directory
    """

    def __init__(self, template_dir: Path | None = None) -> None:
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir or TEMPLATE_DIR)),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=False,
            undefined=StrictUndefined,
            cache_size=50,
            auto_reload=False,
        )
        self.env.filters["camel_case"] = camel_case
        self.env.filters["snake_case"] = snake_case

    def load_template(self, template_name: str) -> Template:
        """Load a template by name.

        Raises:
            jinja2.TemplateNotFound: If the template does not exist
        """
        return self.env.get_template(template_name)

    def render(self, template_name: str, **variables: Any) -> str:
        return self.load_template(template_name).render(**variables).strip() + "\n"

    def component_prompt(
        self,
        component: ComponentDescriptor,
        *,
        language: str,
        framework: str | None,
        style: str,
        context: GenerationContext,
        architecture: ArchitectureSpec,
        technologies: list[str],
        hints: list[str],
    ) -> str:
        """Render the code generation prompt for one component."""
        return self.render(
            "component.j2",
            component=component,
            language=language,
            framework=framework,
            style=style,
            context=context,
            architecture=architecture,
            technologies=technologies,
            hints=hints,
        )

    def test_prompt(
        self,
        component: ComponentDescriptor,
        *,
        source: str,
        language: str,
        framework: str | None,
        testing_strategy: str,
    ) -> str:
        """Render the test generation prompt for one component."""
        return self.render(
            "test.j2",
            component=component,
            source=source,
            language=language,
            framework=framework,
            test_framework=framework_for_tests(language),
            testing_strategy=testing_strategy,
        )

    def fallback_test(
        self, component: ComponentDescriptor, *, language: str, module_path: str
    ) -> str:
        """Render the deterministic test used when test generation fails."""
        return self.render(
            "test_fallback.j2",
            component=component,
            language=language,
            module_path=module_path,
        )


def framework_for_tests(language: str) -> str:
    return "pytest" if language == "python" else "Jest"
