"""Pluggable capabilities consumed by the generation pipeline.

Example:
    ```python
    from cognigen.capabilities import HeuristicAnalyzer, TemplateCodeGenerator

    analyzer = HeuristicAnalyzer()
    generator = TemplateCodeGenerator()
    ```
"""

from cognigen.capabilities.base import (
    AnalysisCapability,
    AnalysisOutput,
    ArchitectureCapability,
    ArchitectureSuggestion,
    BlueprintMetadata,
    BlueprintResolver,
    CapabilityFailure,
    CapabilityResult,
    CapabilitySuccess,
    CodeGenerationCapability,
    GeneratedFile,
    LearningCapability,
    ValidationCapability,
    ValidationReport,
    call_capability,
)
from cognigen.capabilities.local import (
    HeuristicAnalyzer,
    InMemoryBlueprintRegistry,
    InMemoryLearningCapability,
    RuleBasedArchitect,
    StaticValidator,
    TemplateCodeGenerator,
)

__all__ = [
    "AnalysisCapability",
    "AnalysisOutput",
    "ArchitectureCapability",
    "ArchitectureSuggestion",
    "BlueprintMetadata",
    "BlueprintResolver",
    "CapabilityFailure",
    "CapabilityResult",
    "CapabilitySuccess",
    "CodeGenerationCapability",
    "GeneratedFile",
    "HeuristicAnalyzer",
    "InMemoryBlueprintRegistry",
    "InMemoryLearningCapability",
    "LearningCapability",
    "RuleBasedArchitect",
    "StaticValidator",
    "TemplateCodeGenerator",
    "ValidationCapability",
    "ValidationReport",
    "call_capability",
]
