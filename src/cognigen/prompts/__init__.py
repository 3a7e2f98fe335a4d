"""Prompt and source templates rendered with Jinja2."""

from cognigen.prompts.renderer import PromptRenderer, camel_case, snake_case

__all__ = ["PromptRenderer", "camel_case", "snake_case"]
