"""Error taxonomy for the generation pipeline.

Every pipeline error carries a stable :class:`ErrorCode`. Only
:class:`GenerationValidationError`, :class:`PipelineSystemError` and
:class:`GenerationCancelledError` end a run; capability and component errors
are recovered inside their stage.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Stable, machine-readable failure codes."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    CAPABILITY_UNAVAILABLE = "CAPABILITY_UNAVAILABLE"
    COMPONENT_SYNTHESIS_ERROR = "COMPONENT_SYNTHESIS_ERROR"
    SYSTEM_ERROR = "SYSTEM_ERROR"
    CANCELLED = "CANCELLED"


# Localized user-facing messages keyed by error code and locale.
LOCALIZED_MESSAGES: dict[ErrorCode, dict[str, str]] = {
    ErrorCode.VALIDATION_ERROR: {
        "en": "The generation request is invalid",
        "pt_BR": "A solicitação de geração é inválida",
        "es": "La solicitud de generación no es válida",
    },
    ErrorCode.CAPABILITY_UNAVAILABLE: {
        "en": "A generation capability is unavailable",
        "pt_BR": "Uma capacidade de geração está indisponível",
        "es": "Una capacidad de generación no está disponible",
    },
    ErrorCode.COMPONENT_SYNTHESIS_ERROR: {
        "en": "Component generation failed",
        "pt_BR": "Geração de componente falhou",
        "es": "Generación de componente falló",
    },
    ErrorCode.SYSTEM_ERROR: {
        "en": "Code generation failed",
        "pt_BR": "Geração de código falhou",
        "es": "Generación de código falló",
    },
    ErrorCode.CANCELLED: {
        "en": "Code generation was cancelled",
        "pt_BR": "Geração de código foi cancelada",
        "es": "Generación de código fue cancelada",
    },
}


def localized_messages(code: ErrorCode) -> dict[str, str]:
    """Return a copy of the localized messages for an error code."""
    return dict(LOCALIZED_MESSAGES[code])


class GenerationError(Exception):
    """Base class for all pipeline errors.

    Attributes:
        code: Stable error code
        details: Extra context safe to return to callers
    """

    code: ErrorCode = ErrorCode.SYSTEM_ERROR

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class GenerationValidationError(GenerationError):
    """Raised when a request is missing or has malformed input."""

    code = ErrorCode.VALIDATION_ERROR

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, {"field": field} if field else None)
        self.field = field


class CapabilityUnavailableError(GenerationError):
    """Raised when a capability fails, times out or returns nothing.

    Attributes:
        capability: Name of the capability that failed
    """

    code = ErrorCode.CAPABILITY_UNAVAILABLE

    def __init__(self, capability: str, reason: str) -> None:
        self.capability = capability
        self.reason = reason
        super().__init__(
            f"Capability '{capability}' unavailable: {reason}",
            {"capability": capability, "reason": reason},
        )


class ComponentSynthesisError(GenerationError):
    """Raised when a single component cannot be synthesized."""

    code = ErrorCode.COMPONENT_SYNTHESIS_ERROR

    def __init__(self, component: str, reason: str) -> None:
        self.component = component
        self.reason = reason
        super().__init__(
            f"Failed to synthesize component '{component}': {reason}",
            {"component": component, "reason": reason},
        )


class PipelineSystemError(GenerationError):
    """Raised for unexpected internal faults."""

    code = ErrorCode.SYSTEM_ERROR


class GenerationCancelledError(GenerationError):
    """Raised when a run observes its cancellation token."""

    code = ErrorCode.CANCELLED
