"""
Engine Assembly

Wires providers, competitor resolution, the analysis pipeline and run state
into a ready-to-use RunLauncher.

Usage:
    engine = create_engine()
    run = await engine.launcher.submit("https://acme-hvac.com", Scope.LOCAL)
    task = engine.launcher.select(run.run_id, run.token, run.candidates[0].domain)
    await task
    await engine.close()
"""

import logging
from dataclasses import dataclass
from typing import Optional

from aeo_engine.analyzer.launcher import RunLauncher
from aeo_engine.analyzer.pipeline import AnalysisPipeline
from aeo_engine.context.business_profiler import BusinessProfiler
from aeo_engine.context.competitor_discovery import CompetitorResolver
from aeo_engine.integrations.config import ProviderRegistry
from aeo_engine.persistence.runs import RunStateStore
from aeo_engine.persistence.storage import FileRunStorage, RunStorage
from aeo_engine.utils.config import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass
class Engine:
    """Assembled engine components."""
    registry: ProviderRegistry
    store: RunStateStore
    launcher: RunLauncher
    storage: Optional[RunStorage] = None

    async def close(self):
        await self.registry.close()


def create_engine(
    settings: Optional[Settings] = None,
    store: Optional[RunStateStore] = None,
    storage: Optional[RunStorage] = None,
) -> Engine:
    """
    Factory function to create a fully wired engine.

    Args:
        settings: Application settings (defaults to get_settings())
        store: Run state store (defaults to an in-memory store)
        storage: Durable run storage (defaults to FileRunStorage at STORAGE_PATH
                 when configured, otherwise none)

    Returns:
        Engine instance
    """
    settings = settings or get_settings()
    registry = ProviderRegistry(settings)
    registry.log_status()

    if storage is None and settings.STORAGE_PATH:
        storage = FileRunStorage(base_path=settings.STORAGE_PATH)

    store = store or RunStateStore()
    fetcher = registry.content_fetcher

    resolver = CompetitorResolver(
        validator=registry.validator,
        text_completion=registry.claude,
        keywords=registry.dataforseo,
        target=settings.MAX_COMPETITORS,
    )
    pipeline = AnalysisPipeline(
        fetcher=fetcher,
        keywords=registry.dataforseo,
        performance=registry.pagespeed,
        text_completion=registry.claude,
    )
    launcher = RunLauncher(
        store=store,
        profiler=BusinessProfiler(registry.claude),
        resolver=resolver,
        pipeline=pipeline,
        fetcher=fetcher,
        storage=storage,
        max_run_age=settings.RUN_MAX_AGE_SECONDS,
    )

    logger.info(f"Engine ready (environment={settings.ENVIRONMENT})")
    return Engine(registry=registry, store=store, launcher=launcher, storage=storage)
