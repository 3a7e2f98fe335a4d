"""Per-request lifecycle state machine.

A generation run moves through:
    RECEIVED -> ANALYZED -> ENHANCED -> SYNTHESIZING -> VALIDATED -> SCORED -> COMPLETED

or short-circuits RECEIVED -> CACHE_HIT -> COMPLETED. Any non-terminal state
can transition to FAILED.
"""

from __future__ import annotations

from enum import Enum

import structlog

logger = structlog.get_logger(__name__)


class PipelineState(str, Enum):
    """Lifecycle states of one generation run."""

    RECEIVED = "received"
    CACHE_HIT = "cache_hit"
    ANALYZED = "analyzed"
    ENHANCED = "enhanced"
    SYNTHESIZING = "synthesizing"
    VALIDATED = "validated"
    SCORED = "scored"
    COMPLETED = "completed"
    FAILED = "failed"


VALID_PIPELINE_TRANSITIONS: dict[PipelineState, set[PipelineState]] = {
    PipelineState.RECEIVED: {
        PipelineState.CACHE_HIT,
        PipelineState.ANALYZED,
        PipelineState.FAILED,
    },
    PipelineState.CACHE_HIT: {PipelineState.COMPLETED, PipelineState.FAILED},
    PipelineState.ANALYZED: {PipelineState.ENHANCED, PipelineState.FAILED},
    PipelineState.ENHANCED: {PipelineState.SYNTHESIZING, PipelineState.FAILED},
    PipelineState.SYNTHESIZING: {PipelineState.VALIDATED, PipelineState.FAILED},
    PipelineState.VALIDATED: {PipelineState.SCORED, PipelineState.FAILED},
    PipelineState.SCORED: {PipelineState.COMPLETED, PipelineState.FAILED},
    PipelineState.COMPLETED: set(),
    PipelineState.FAILED: set(),
}


class InvalidPipelineTransitionError(Exception):
    """Raised when a run attempts a transition outside the table.

    Attributes:
        current: The current state.
        target: The attempted target state.
        request_id: The request whose run failed to transition.
    """

    def __init__(
        self,
        current: PipelineState,
        target: PipelineState,
        request_id: str | None = None,
    ) -> None:
        self.current = current
        self.target = target
        self.request_id = request_id
        msg = f"Invalid pipeline transition from {current.value} to {target.value}"
        if request_id:
            msg += f" for request {request_id}"
        super().__init__(msg)


def validate_pipeline_transition(current: PipelineState, target: PipelineState) -> bool:
    """Return True if the transition is allowed by VALID_PIPELINE_TRANSITIONS."""
    return target in VALID_PIPELINE_TRANSITIONS.get(current, set())


class PipelineRun:
    """Tracks the state of a single run and the states it passed through.

    Attributes:
        request_id: Request being processed.
        state: Current state.
        history: States visited, in order, starting with RECEIVED.
    """

    def __init__(self, request_id: str) -> None:
        self.request_id = request_id
        self.state = PipelineState.RECEIVED
        self.history: list[PipelineState] = [PipelineState.RECEIVED]
        self._logger = logger.bind(component="PipelineRun", request_id=request_id)

    @property
    def is_terminal(self) -> bool:
        return self.state in (PipelineState.COMPLETED, PipelineState.FAILED)

    def transition(self, target: PipelineState) -> None:
        """Move to ``target``.

        Raises:
            InvalidPipelineTransitionError: If the transition is not allowed.
        """
        if not validate_pipeline_transition(self.state, target):
            raise InvalidPipelineTransitionError(self.state, target, self.request_id)
        self._logger.debug(
            "pipeline_transition",
            from_state=self.state.value,
            to_state=target.value,
        )
        self.state = target
        self.history.append(target)
