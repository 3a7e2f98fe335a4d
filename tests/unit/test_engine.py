"""Unit tests for the generation engine."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from cognigen.capabilities.local import InMemoryLearningCapability, TemplateCodeGenerator
from cognigen.config import PipelineConfig
from cognigen.pipeline.cancellation import CancellationToken
from cognigen.pipeline.engine import GenerationEngine
from cognigen.pipeline.models import (
    GenerationContext,
    GenerationFailure,
    GenerationRequest,
    GenerationResult,
    GenerationStatus,
)
from cognigen.store.memory import InMemoryGenerationStore


class CountingGenerator:
    """Template generator that counts calls and can pause or run a hook."""

    def __init__(
        self,
        delay: float = 0.0,
        on_call: Callable[[int], None] | None = None,
    ) -> None:
        self._inner = TemplateCodeGenerator()
        self._delay = delay
        self._on_call = on_call
        self.calls = 0

    async def generate(
        self, prompt: str, language: str, framework: str | None, context: GenerationContext
    ) -> str:
        self.calls += 1
        if self._on_call is not None:
            self._on_call(self.calls)
        if self._delay:
            await asyncio.sleep(self._delay)
        return await self._inner.generate(prompt, language, framework, context)


class TestCompletedRun:
    @pytest.mark.asyncio
    async def test_prompt_request_completes(
        self,
        make_engine: Callable[..., GenerationEngine],
        prompt_request: Callable[..., GenerationRequest],
        memory_store: InMemoryGenerationStore,
        learning_sink: InMemoryLearningCapability,
    ) -> None:
        engine = make_engine()
        request = prompt_request(
            "Create a workout tracker with login and dashboard", target="feature"
        )

        outcome = await engine.generate(request)
        await engine.shutdown()

        assert isinstance(outcome, GenerationResult)
        assert outcome.status == GenerationStatus.COMPLETED
        assert [c.name for c in outcome.components] == [
            "WorkoutTrackerLogin",
            "AuthService",
            "Dashboard",
        ]
        assert outcome.validated is True
        assert 0 <= outcome.quality_score <= 100
        assert outcome.confidence == 100
        assert outcome.degraded is False
        assert outcome.metrics.total_components == 3
        assert outcome.metrics.tests_generated == 3
        assert outcome.package_manifest["name"] == "workout-tracker-login"
        assert outcome.readme.startswith("# workout-tracker-login")

        history = await memory_store.list_history()
        assert len(history) == 1
        assert history[0].status == GenerationStatus.COMPLETED
        assert history[0].component_names == ["WorkoutTrackerLogin", "AuthService", "Dashboard"]
        assert history[0].domain == "fitness"

        assert len(learning_sink.events) == 1
        assert learning_sink.events[0]["metadata"]["generation_id"] == outcome.generation_id

    @pytest.mark.asyncio
    async def test_partial_failure_skips_components(
        self,
        make_engine: Callable[..., GenerationEngine],
        prompt_request: Callable[..., GenerationRequest],
    ) -> None:
        inner = TemplateCodeGenerator()

        async def _generate(
            prompt: str, language: str, framework: str | None, context: GenerationContext
        ) -> str:
            if "Component: AuthService" in prompt:
                raise RuntimeError("model overloaded")
            return await inner.generate(prompt, language, framework, context)

        generator = MagicMock()
        generator.generate = _generate
        engine = make_engine(generator=generator)

        outcome = await engine.generate(prompt_request("Dashboard with login", target="feature"))

        assert isinstance(outcome, GenerationResult)
        assert [c.name for c in outcome.components] == ["DashboardLogin", "Dashboard"]
        assert outcome.skipped_components == ["AuthService"]
        assert outcome.degraded is True
        assert outcome.metrics.declared_components == 3
        assert outcome.metrics.failed_components == 1

    @pytest.mark.asyncio
    async def test_all_components_failing_still_completes(
        self,
        make_engine: Callable[..., GenerationEngine],
        prompt_request: Callable[..., GenerationRequest],
    ) -> None:
        generator = MagicMock()
        generator.generate = AsyncMock(return_value="")
        engine = make_engine(generator=generator)

        outcome = await engine.generate(prompt_request())

        assert isinstance(outcome, GenerationResult)
        assert outcome.components == []
        assert outcome.skipped_components == ["WorkoutTracker"]
        assert outcome.quality_score == 70
        assert outcome.confidence == 60
        assert "_No components were generated._" in outcome.readme

    @pytest.mark.asyncio
    async def test_analysis_failure_degrades(
        self,
        make_engine: Callable[..., GenerationEngine],
        prompt_request: Callable[..., GenerationRequest],
    ) -> None:
        analysis = MagicMock()
        analysis.analyze = AsyncMock(side_effect=ConnectionError("analysis offline"))
        engine = make_engine(analysis=analysis)

        outcome = await engine.generate(prompt_request())

        assert isinstance(outcome, GenerationResult)
        assert len(outcome.components) >= 1
        assert outcome.degraded is True
        assert outcome.degradations[0] == "analysis_fallback: error: analysis offline"

    @pytest.mark.asyncio
    async def test_disabled_features(
        self,
        make_engine: Callable[..., GenerationEngine],
        prompt_request: Callable[..., GenerationRequest],
        learning_sink: InMemoryLearningCapability,
    ) -> None:
        generator = CountingGenerator()
        engine = make_engine(
            generator=generator,
            config=PipelineConfig(
                enable_caching=False,
                enable_validation=False,
                enable_architecture=False,
                enable_learning=False,
            ),
        )

        first = await engine.generate(prompt_request())
        calls_after_first = generator.calls
        second = await engine.generate(prompt_request())
        await engine.shutdown()

        assert isinstance(first, GenerationResult)
        assert isinstance(second, GenerationResult)
        assert first.compliance_score == 100
        assert first.generation_id != second.generation_id
        assert generator.calls == 2 * calls_after_first
        assert learning_sink.events == []


class TestCache:
    @pytest.mark.asyncio
    async def test_cache_hit_is_identical_and_generates_once(
        self,
        make_engine: Callable[..., GenerationEngine],
        prompt_request: Callable[..., GenerationRequest],
        memory_store: InMemoryGenerationStore,
    ) -> None:
        generator = CountingGenerator()
        engine = make_engine(generator=generator)

        first = await engine.generate(prompt_request(user_id="alice"))
        calls_after_first = generator.calls
        second = await engine.generate(prompt_request(user_id="bob"))

        assert isinstance(first, GenerationResult)
        assert isinstance(second, GenerationResult)
        assert second.model_dump_json() == first.model_dump_json()
        assert generator.calls == calls_after_first
        assert len(await memory_store.list_history()) == 1

        metrics = await engine.get_metrics()
        assert metrics.requests == 2
        assert metrics.cache_hits == 1
        assert metrics.cache_hit_rate == 0.5
        assert metrics.completed == 1

    @pytest.mark.asyncio
    async def test_different_language_misses(
        self,
        make_engine: Callable[..., GenerationEngine],
        prompt_request: Callable[..., GenerationRequest],
    ) -> None:
        engine = make_engine()

        first = await engine.generate(prompt_request())
        second = await engine.generate(prompt_request(language="python"))

        assert isinstance(first, GenerationResult)
        assert isinstance(second, GenerationResult)
        assert first.fingerprint != second.fingerprint
        assert second.components[0].file_path == "src/components/workout_tracker.py"

    @pytest.mark.asyncio
    async def test_coalesced_requests_share_one_run(
        self,
        make_engine: Callable[..., GenerationEngine],
        prompt_request: Callable[..., GenerationRequest],
    ) -> None:
        generator = CountingGenerator(delay=0.02)
        engine = make_engine(
            generator=generator,
            config=PipelineConfig(coalesce_concurrent_requests=True, enable_caching=False),
        )

        first, second = await asyncio.gather(
            engine.generate(prompt_request()), engine.generate(prompt_request())
        )

        assert isinstance(first, GenerationResult)
        assert isinstance(second, GenerationResult)
        assert first.generation_id == second.generation_id
        # one source and one test call for the single component
        assert generator.calls == 2

    @pytest.mark.asyncio
    async def test_follower_survives_cancelled_leader(
        self,
        make_engine: Callable[..., GenerationEngine],
        prompt_request: Callable[..., GenerationRequest],
    ) -> None:
        generator = CountingGenerator(delay=0.2)
        engine = make_engine(
            generator=generator,
            config=PipelineConfig(coalesce_concurrent_requests=True, enable_caching=False),
        )

        leader = asyncio.create_task(engine.generate(prompt_request()))
        await asyncio.sleep(0.05)
        follower = asyncio.create_task(engine.generate(prompt_request()))
        await asyncio.sleep(0.05)
        leader.cancel()

        outcome = await follower

        assert leader.cancelled()
        assert isinstance(outcome, GenerationResult)
        assert outcome.components
        assert engine._inflight == {}


class TestFailures:
    @pytest.mark.asyncio
    async def test_missing_prompt_is_validation_failure(
        self,
        make_engine: Callable[..., GenerationEngine],
        memory_store: InMemoryGenerationStore,
    ) -> None:
        engine = make_engine()

        outcome = await engine.generate(GenerationRequest(mode="from-prompt", prompt="  "))

        assert isinstance(outcome, GenerationFailure)
        assert outcome.error_code == "VALIDATION_ERROR"
        assert outcome.failed_stage == "received"
        assert outcome.details == {"field": "prompt"}
        assert set(outcome.messages) == {"en", "pt_BR", "es"}

        history = await memory_store.list_history(status=GenerationStatus.FAILED)
        assert len(history) == 1
        assert history[0].error_code == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_unknown_blueprint_fails_validation(
        self, make_engine: Callable[..., GenerationEngine]
    ) -> None:
        engine = make_engine()

        outcome = await engine.generate(
            GenerationRequest(mode="from-blueprint", blueprint_id="missing")
        )

        assert isinstance(outcome, GenerationFailure)
        assert outcome.error_code == "VALIDATION_ERROR"
        assert outcome.details == {"field": "blueprint_id"}

    @pytest.mark.asyncio
    async def test_unexpected_error_is_system_failure(
        self,
        make_engine: Callable[..., GenerationEngine],
        prompt_request: Callable[..., GenerationRequest],
    ) -> None:
        engine = make_engine()
        engine.synthesizer.synthesize = AsyncMock(side_effect=KeyError("slot"))

        outcome = await engine.generate(prompt_request())

        assert isinstance(outcome, GenerationFailure)
        assert outcome.error_code == "SYSTEM_ERROR"
        assert outcome.failed_stage == "synthesizing"
        assert outcome.details == {"error_type": "KeyError"}

    @pytest.mark.asyncio
    async def test_store_failure_is_system_failure(
        self,
        make_engine: Callable[..., GenerationEngine],
        prompt_request: Callable[..., GenerationRequest],
    ) -> None:
        store = MagicMock()
        store.get_cached = AsyncMock(side_effect=RuntimeError("db gone"))
        store.append_history = AsyncMock(side_effect=RuntimeError("db gone"))
        engine = make_engine(store=store)

        outcome = await engine.generate(prompt_request())

        assert isinstance(outcome, GenerationFailure)
        assert outcome.error_code == "SYSTEM_ERROR"
        assert outcome.failed_stage == "received"

    @pytest.mark.asyncio
    async def test_history_failure_leaves_cache_empty(
        self,
        make_engine: Callable[..., GenerationEngine],
        memory_store: InMemoryGenerationStore,
        prompt_request: Callable[..., GenerationRequest],
    ) -> None:
        memory_store.append_history = AsyncMock(side_effect=RuntimeError("history table locked"))
        engine = make_engine(store=memory_store)

        outcome = await engine.generate(prompt_request())

        assert isinstance(outcome, GenerationFailure)
        assert outcome.error_code == "SYSTEM_ERROR"
        assert outcome.failed_stage == "scored"
        assert await memory_store.clear_cache() == 0

    @pytest.mark.asyncio
    async def test_cancelled_before_start(
        self,
        make_engine: Callable[..., GenerationEngine],
        prompt_request: Callable[..., GenerationRequest],
    ) -> None:
        engine = make_engine()
        token = CancellationToken()
        token.cancel("user aborted")

        outcome = await engine.generate(prompt_request(), token)

        assert isinstance(outcome, GenerationFailure)
        assert outcome.error_code == "CANCELLED"
        assert outcome.message == "user aborted"
        assert outcome.details == {"checkpoint": "analysis"}

    @pytest.mark.asyncio
    async def test_cancelled_during_synthesis(
        self,
        make_engine: Callable[..., GenerationEngine],
        prompt_request: Callable[..., GenerationRequest],
    ) -> None:
        token = CancellationToken()
        generator = CountingGenerator(on_call=lambda _: token.cancel("stop now"))
        engine = make_engine(generator=generator)

        outcome = await engine.generate(prompt_request(), token)

        assert isinstance(outcome, GenerationFailure)
        assert outcome.error_code == "CANCELLED"
        assert outcome.failed_stage == "synthesizing"
        assert generator.calls == 1


class TestMetrics:
    @pytest.mark.asyncio
    async def test_empty_metrics(self, make_engine: Callable[..., GenerationEngine]) -> None:
        metrics = await make_engine().get_metrics()
        assert metrics.total_generations == 0
        assert metrics.cache_hit_rate == 0.0
        assert metrics.average_quality_score == 0.0

    @pytest.mark.asyncio
    async def test_metrics_from_history(
        self,
        make_engine: Callable[..., GenerationEngine],
        prompt_request: Callable[..., GenerationRequest],
    ) -> None:
        engine = make_engine()
        completed = await engine.generate(prompt_request())
        await engine.generate(GenerationRequest(mode="from-prompt"))

        metrics = await engine.get_metrics()

        assert isinstance(completed, GenerationResult)
        assert metrics.total_generations == 2
        assert metrics.completed == 1
        assert metrics.failed == 1
        assert metrics.average_quality_score == completed.quality_score
        assert metrics.zero_error_rate == 1.0
        assert metrics.total_lines == completed.metrics.total_lines
