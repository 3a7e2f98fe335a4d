"""Build a GenerationEngine and its resources from configuration."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import AsyncExitStack, asynccontextmanager

import structlog

from cognigen.capabilities.base import (
    AnalysisCapability,
    BlueprintResolver,
    CodeGenerationCapability,
    LearningCapability,
)
from cognigen.capabilities.local import (
    HeuristicAnalyzer,
    InMemoryBlueprintRegistry,
    InMemoryLearningCapability,
    RuleBasedArchitect,
    StaticValidator,
    TemplateCodeGenerator,
)
from cognigen.capabilities.ollama import OllamaAnalyzer, OllamaClient, OllamaCodeGenerator
from cognigen.config import CognigenConfig
from cognigen.pipeline.engine import GenerationEngine
from cognigen.store.base import GenerationStore
from cognigen.store.database import create_tables, get_engine, get_session_factory
from cognigen.store.memory import InMemoryGenerationStore
from cognigen.store.sql import SqlGenerationStore

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def engine_from_config(
    config: CognigenConfig,
    *,
    store: GenerationStore | None = None,
    blueprints: BlueprintResolver | None = None,
    learning: LearningCapability | None = None,
) -> AsyncIterator[GenerationEngine]:
    """Yield a fully wired engine and release its resources on exit.

    Opens the Ollama client when the ``ollama`` provider is selected and the
    database engine when the ``sql`` store backend is selected. Pending
    learning tasks are drained before resources close.

    Args:
        config: Root configuration
        store: Store override, mainly for tests
        blueprints: Blueprint resolver; defaults to an empty in-memory registry
        learning: Learning capability; defaults to the in-memory sink
    """
    async with AsyncExitStack() as stack:
        if store is None:
            if config.store.backend == "sql":
                db_engine = get_engine(config.database)
                stack.push_async_callback(db_engine.dispose)
                await create_tables(db_engine)
                store = SqlGenerationStore(get_session_factory(db_engine))
            else:
                store = InMemoryGenerationStore(max_entries=config.pipeline.cache_max_entries)

        analysis: AnalysisCapability
        generator: CodeGenerationCapability
        if config.generation.provider == "ollama":
            client = OllamaClient(config.ollama)
            await client.open()
            stack.push_async_callback(client.close)
            analysis = OllamaAnalyzer(client)
            generator = OllamaCodeGenerator(
                client,
                temperature=config.generation.temperature,
                max_tokens=config.generation.max_tokens,
            )
        else:
            analysis = HeuristicAnalyzer()
            generator = TemplateCodeGenerator()

        engine = GenerationEngine(
            analysis=analysis,
            architecture=RuleBasedArchitect(),
            generator=generator,
            validation=StaticValidator(),
            learning=learning or InMemoryLearningCapability(),
            blueprints=blueprints or InMemoryBlueprintRegistry(),
            store=store,
            config=config.pipeline,
            timeouts=config.timeouts,
        )
        stack.push_async_callback(engine.shutdown)
        logger.info(
            "engine_built",
            provider=config.generation.provider,
            store_backend=config.store.backend,
            caching=config.pipeline.enable_caching,
        )
        yield engine
