"""Generation engine: sequences the pipeline stages for one request.

The engine is built from its dependencies (capabilities, store, config) and
holds no module-level state. :meth:`GenerationEngine.generate` never raises
for a request; it returns a :class:`GenerationResult` or a
:class:`GenerationFailure`.

Lifecycle per request::

    RECEIVED -> CACHE_HIT -> COMPLETED
    RECEIVED -> ANALYZED -> ENHANCED -> SYNTHESIZING -> VALIDATED -> SCORED -> COMPLETED
    (any non-terminal state) -> FAILED
"""

from __future__ import annotations

import asyncio
import time

import structlog
from pydantic import BaseModel

from cognigen.capabilities.base import (
    AnalysisCapability,
    ArchitectureCapability,
    BlueprintResolver,
    CodeGenerationCapability,
    LearningCapability,
    ValidationCapability,
)
from cognigen.config import PipelineConfig, TimeoutConfig
from cognigen.logging import bind_request_context, clear_request_context
from cognigen.pipeline.analyzer import SpecificationAnalyzer
from cognigen.pipeline.cancellation import CancellationToken
from cognigen.pipeline.enhancer import ArchitectureEnhancer
from cognigen.pipeline.errors import (
    GenerationError,
    PipelineSystemError,
    localized_messages,
)
from cognigen.pipeline.learning import LearningRecorder
from cognigen.pipeline.models import (
    GenerationFailure,
    GenerationMetrics,
    GenerationRequest,
    GenerationResult,
    GenerationStatus,
    HistoryRecord,
)
from cognigen.pipeline.normalizer import RequestNormalizer
from cognigen.pipeline.packaging import build_manifest, build_readme
from cognigen.pipeline.scorer import ValidatorScorer
from cognigen.pipeline.state_machine import PipelineRun, PipelineState
from cognigen.pipeline.synthesizer import ComponentSynthesizer
from cognigen.prompts import PromptRenderer
from cognigen.store.base import GenerationStore

logger = structlog.get_logger(__name__)

GenerationOutcome = GenerationResult | GenerationFailure


class EngineMetrics(BaseModel):
    """Aggregate engine statistics.

    Attributes:
        total_generations: Runs recorded in history
        completed: Completed runs in history
        failed: Failed runs in history
        cache_hits: Requests served from cache by this engine instance
        requests: Requests received by this engine instance
        cache_hit_rate: cache_hits / requests (0 when no requests)
        average_generation_time_ms: Mean duration of completed runs
        average_quality_score: Mean quality of completed runs
        zero_error_rate: Share of completed runs with no validation errors
        total_lines: Lines generated across completed runs
    """

    total_generations: int = 0
    completed: int = 0
    failed: int = 0
    cache_hits: int = 0
    requests: int = 0
    cache_hit_rate: float = 0.0
    average_generation_time_ms: float = 0.0
    average_quality_score: float = 0.0
    zero_error_rate: float = 0.0
    total_lines: int = 0


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class GenerationEngine:
    """Orchestrates normalizer, analyzer, enhancer, synthesizer, scorer and learning.

    Attributes:
        config: Pipeline switches and limits
        store: Generation store for cache and history
    """

    def __init__(
        self,
        *,
        analysis: AnalysisCapability,
        architecture: ArchitectureCapability | None,
        generator: CodeGenerationCapability,
        validation: ValidationCapability | None,
        learning: LearningCapability | None,
        blueprints: BlueprintResolver,
        store: GenerationStore,
        config: PipelineConfig | None = None,
        timeouts: TimeoutConfig | None = None,
        renderer: PromptRenderer | None = None,
    ) -> None:
        self.config = config or PipelineConfig()
        timeouts = timeouts or TimeoutConfig()
        self.store = store

        self.normalizer = RequestNormalizer(store, enabled=self.config.enable_caching)
        self.analyzer = SpecificationAnalyzer(
            analysis, blueprints, timeout_seconds=timeouts.analysis_seconds
        )
        self.enhancer = ArchitectureEnhancer(
            architecture if self.config.enable_architecture else None,
            timeout_seconds=timeouts.architecture_seconds,
        )
        self.synthesizer = ComponentSynthesizer(
            generator,
            renderer=renderer,
            max_concurrent=self.config.max_concurrent_components,
            timeout_seconds=timeouts.generation_seconds,
        )
        self.scorer = ValidatorScorer(
            validation if self.config.enable_validation else None,
            timeout_seconds=timeouts.validation_seconds,
        )
        self.learning = LearningRecorder(
            learning if self.config.enable_learning else None,
            store,
            timeout_seconds=timeouts.learning_seconds,
            hint_limit=self.config.learned_hint_limit,
        )

        self._inflight: dict[str, asyncio.Future[GenerationOutcome | None]] = {}
        self._requests = 0
        self._cache_hits = 0
        self._logger = logger.bind(component="GenerationEngine")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def generate(
        self,
        request: GenerationRequest,
        cancel_token: CancellationToken | None = None,
    ) -> GenerationOutcome:
        """Run the pipeline for ``request``.

        Args:
            request: The generation request
            cancel_token: Optional cooperative cancellation token

        Returns:
            GenerationResult on completion, GenerationFailure otherwise
        """
        token = cancel_token or CancellationToken()
        run = PipelineRun(request.request_id)
        started = time.perf_counter()
        self._requests += 1
        bind_request_context(request.request_id, request.user_id)
        self._logger.info(
            "generation_started",
            mode=request.mode.value,
            target=request.target.value,
            language=request.language,
            framework=request.framework,
        )
        try:
            try:
                key = self.normalizer.normalize(request)
                cached = await self.normalizer.lookup(key)
            except GenerationError as e:
                return await self._fail(run, request, e, None, started)
            except Exception as e:
                return await self._fail(run, request, self._system_error(run, e), None, started)

            if cached is not None:
                run.transition(PipelineState.CACHE_HIT)
                run.transition(PipelineState.COMPLETED)
                self._cache_hits += 1
                self._logger.info(
                    "generation_cache_hit",
                    fingerprint=key,
                    generation_id=cached.generation_id,
                )
                return cached

            if not self.config.coalesce_concurrent_requests:
                return await self._run(request, key, run, token, started)
            return await self._run_coalesced(request, key, run, token, started)
        finally:
            clear_request_context()

    async def get_metrics(self, history_limit: int = 10_000) -> EngineMetrics:
        """Compute metrics from stored history and this instance's counters."""
        records = await self.store.list_history(limit=history_limit)
        completed = [r for r in records if r.status == GenerationStatus.COMPLETED]
        failed = len(records) - len(completed)

        def _mean(values: list[int]) -> float:
            return round(sum(values) / len(values), 2) if values else 0.0

        return EngineMetrics(
            total_generations=len(records),
            completed=len(completed),
            failed=failed,
            cache_hits=self._cache_hits,
            requests=self._requests,
            cache_hit_rate=round(self._cache_hits / self._requests, 4) if self._requests else 0.0,
            average_generation_time_ms=_mean([r.generation_time_ms for r in completed]),
            average_quality_score=_mean([r.quality_score or 0 for r in completed]),
            zero_error_rate=(
                round(sum(1 for r in completed if r.validated) / len(completed), 4)
                if completed
                else 0.0
            ),
            total_lines=sum(r.total_lines for r in completed),
        )

    async def shutdown(self) -> None:
        """Wait for background learning tasks."""
        await self.learning.drain()

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def _run_coalesced(
        self,
        request: GenerationRequest,
        key: str,
        run: PipelineRun,
        token: CancellationToken,
        started: float,
    ) -> GenerationOutcome:
        existing = self._inflight.get(key)
        if existing is not None:
            self._logger.info("generation_coalesced", fingerprint=key)
            shared = await asyncio.shield(existing)
            if shared is not None:
                return shared
            # leader cancelled before producing an outcome; run it here instead
            self._logger.info("coalesced_leader_cancelled", fingerprint=key)
            return await self._run_coalesced(request, key, run, token, started)

        future: asyncio.Future[GenerationOutcome | None] = (
            asyncio.get_running_loop().create_future()
        )
        self._inflight[key] = future
        try:
            outcome = await self._run(request, key, run, token, started)
            future.set_result(outcome)
            return outcome
        finally:
            if not future.done():
                future.set_result(None)
            self._inflight.pop(key, None)

    async def _run(
        self,
        request: GenerationRequest,
        key: str,
        run: PipelineRun,
        token: CancellationToken,
        started: float,
    ) -> GenerationOutcome:
        try:
            token.raise_if_cancelled("analysis")
            analysis = await self.analyzer.analyze(request, token)
            run.transition(PipelineState.ANALYZED)
            specification = analysis.specification
            degradations = list(analysis.degradations)

            token.raise_if_cancelled("enhancement")
            degradations += await self.enhancer.enhance(request, specification, token)
            run.transition(PipelineState.ENHANCED)

            hints = await self.learning.recall_hints(
                request, specification.architecture.style
            )
            token.raise_if_cancelled("synthesis")
            run.transition(PipelineState.SYNTHESIZING)
            report = await self.synthesizer.synthesize(request, specification, hints, token)

            token.raise_if_cancelled("validation")
            compliance, errors, warnings, validation_degradations = await self.scorer.validate(
                report.components, token
            )
            degradations += validation_degradations
            run.transition(PipelineState.VALIDATED)

            card = self.scorer.score(
                specification, report.components, compliance, errors, warnings, degradations
            )
            run.transition(PipelineState.SCORED)

            skipped = [f.name for f in report.failures]
            result = GenerationResult(
                request_id=request.request_id,
                user_id=request.user_id,
                project_id=request.project_id,
                fingerprint=key,
                mode=request.mode,
                target=request.target,
                components=report.components,
                architecture=specification.architecture,
                package_manifest=build_manifest(request, specification, report.components),
                readme=build_readme(request, specification, report.components),
                quality_score=card.quality_score,
                compliance_score=card.compliance_score,
                confidence=card.confidence,
                validated=card.validated,
                validation_errors=card.errors,
                validation_warnings=card.warnings,
                skipped_components=skipped,
                degraded=bool(card.degradations or skipped),
                degradations=card.degradations,
                metrics=GenerationMetrics(
                    total_components=len(report.components),
                    declared_components=len(specification.components),
                    failed_components=len(report.failures),
                    total_lines=sum(c.metadata.line_count for c in report.components),
                    generation_time_ms=_elapsed_ms(started),
                    tests_generated=report.tests_generated,
                ),
            )

            await self.store.append_history(self._history_from_result(request, result))
            await self.normalizer.remember(key, result)
            run.transition(PipelineState.COMPLETED)
        except GenerationError as e:
            return await self._fail(run, request, e, key, started)
        except Exception as e:
            return await self._fail(run, request, self._system_error(run, e), key, started)

        self.learning.schedule(request, result, self._min_quality(request))
        self._logger.info(
            "generation_completed",
            generation_id=result.generation_id,
            components=result.metrics.total_components,
            skipped=len(result.skipped_components),
            quality_score=result.quality_score,
            validated=result.validated,
            degraded=result.degraded,
            duration_ms=result.metrics.generation_time_ms,
        )
        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _min_quality(self, request: GenerationRequest) -> int:
        if request.min_quality_score is not None:
            return request.min_quality_score
        return self.config.default_min_quality_score

    def _system_error(self, run: PipelineRun, error: Exception) -> PipelineSystemError:
        self._logger.exception(
            "generation_system_error",
            state=run.state.value,
            error_type=type(error).__name__,
        )
        return PipelineSystemError(
            f"Unexpected error during {run.state.value}: {error}",
            {"error_type": type(error).__name__},
        )

    async def _fail(
        self,
        run: PipelineRun,
        request: GenerationRequest,
        error: GenerationError,
        key: str | None,
        started: float,
    ) -> GenerationFailure:
        failed_stage = run.state.value
        if not run.is_terminal:
            run.transition(PipelineState.FAILED)

        failure = GenerationFailure(
            request_id=request.request_id,
            error_code=error.code.value,
            message=str(error),
            messages=localized_messages(error.code),
            details=error.details,
            failed_stage=failed_stage,
        )
        record = HistoryRecord(
            request_id=request.request_id,
            user_id=request.user_id,
            project_id=request.project_id,
            fingerprint=key,
            mode=request.mode,
            target=request.target,
            status=GenerationStatus.FAILED,
            error_code=failure.error_code,
            generation_time_ms=_elapsed_ms(started),
            domain=request.context.domain,
        )
        try:
            await self.store.append_history(record)
        except Exception as e:
            self._logger.error("history_append_failed", error=str(e))

        self._logger.warning(
            "generation_failed",
            error_code=failure.error_code,
            failed_stage=failed_stage,
            message=failure.message,
        )
        return failure

    @staticmethod
    def _history_from_result(
        request: GenerationRequest, result: GenerationResult
    ) -> HistoryRecord:
        return HistoryRecord(
            generation_id=result.generation_id,
            request_id=result.request_id,
            user_id=result.user_id,
            project_id=result.project_id,
            fingerprint=result.fingerprint,
            mode=result.mode,
            target=result.target,
            status=GenerationStatus.COMPLETED,
            quality_score=result.quality_score,
            validated=result.validated,
            total_components=result.metrics.total_components,
            total_lines=result.metrics.total_lines,
            generation_time_ms=result.metrics.generation_time_ms,
            architecture_style=result.architecture.style,
            component_names=[c.name for c in result.components],
            domain=request.context.domain,
            created_at=result.created_at,
        )

