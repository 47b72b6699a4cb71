"""
Tests for RunLauncher run lifecycle
"""

import asyncio
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from aeo_engine.analyzer.launcher import CANCELLED, NO_COMPETITORS_FOUND, UNEXPECTED_FAILURE, RunLauncher
from aeo_engine.analyzer.pipeline import BOTH_FETCHES_FAILED, AnalysisPipeline
from aeo_engine.context.business_profiler import BusinessProfiler
from aeo_engine.context.competitor_discovery import CompetitorResolver
from aeo_engine.context.models import Scope
from aeo_engine.errors import InvalidTransition
from aeo_engine.integrations.base import ContentRenderer, PageContent
from aeo_engine.integrations.content import ContentFetcher
from aeo_engine.persistence.runs import RunStateStore, RunStatus
from aeo_engine.persistence.storage import FileRunStorage

from conftest import StubRenderer, make_page, make_validator


def site_renderer(*hosts, name="http") -> StubRenderer:
    return StubRenderer({host: make_page(f"https://{host}") for host in hosts}, name=name)


def build_launcher(
    fetcher=None,
    pipeline=None,
    resolver=None,
    storage=None,
    max_run_age=3600,
) -> RunLauncher:
    fetcher = fetcher or ContentFetcher(plain=site_renderer("acme-hvac.com", "rival-hvac.com", "carrier.com"))
    return RunLauncher(
        store=RunStateStore(),
        profiler=BusinessProfiler(),
        resolver=resolver or CompetitorResolver(validator=make_validator({"*"})),
        pipeline=pipeline or AnalysisPipeline(fetcher=fetcher),
        fetcher=fetcher,
        storage=storage,
        max_run_age=max_run_age,
    )


class GatedRenderer(ContentRenderer):
    """Serves pages at once except for the competitor, which waits for `release`."""

    name = "http"

    def __init__(self):
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    def is_available(self) -> bool:
        return True

    async def fetch(self, url: str) -> PageContent:
        if "rival-hvac.com" in url:
            self.started.set()
            await self.release.wait()
        return make_page(url)


class RecordingPipeline:
    """Pipeline stand-in that reports progress and records run states between reports."""

    def __init__(self, launcher_ref, stages, error=None):
        self.launcher_ref = launcher_ref
        self.stages = stages
        self.error = error
        self.observed = []

    async def run(self, subject_url, competitor_url, run_id, on_progress=None, ledger=None):
        launcher = self.launcher_ref()
        for stage, percent in self.stages:
            on_progress(stage, percent, stage)
            run = launcher.store.backend.load(run_id)
            self.observed.append((stage, run.status, run.progress))
        if self.error is not None:
            raise self.error
        raise AssertionError("RecordingPipeline needs an error to stop")


class TestSubmitAndSelect:
    """Test the discover, select and analyze flow."""

    @pytest.mark.asyncio
    async def test_full_flow(self, tmp_path):
        storage = FileRunStorage(base_path=str(tmp_path))
        launcher = build_launcher(storage=storage)

        run = await launcher.submit("Acme-HVAC.com", Scope.NATIONAL)

        assert run.status == RunStatus.SELECTING_COMPETITOR
        assert run.subject_url == "https://acme-hvac.com"
        assert run.business_profile.name == "Acme HVAC"
        assert [c.domain for c in run.candidates] == ["carrier.com", "trane.com", "lennox.com", "daikin.com"]

        task = launcher.select(run.run_id, run.token, "rival-hvac.com")
        final = await task

        assert final.status == RunStatus.COMPLETE
        assert final.progress == 100
        assert final.competitor_url == "https://rival-hvac.com"
        assert final.result["competitor_url"] == "https://rival-hvac.com"
        assert len(final.result["categories"]) == 7

        stored = await storage.load_run(run.run_id)
        assert stored.status == RunStatus.COMPLETE

    @pytest.mark.asyncio
    async def test_preselected_competitor(self):
        launcher = build_launcher()

        run = await launcher.submit("acme-hvac.com", competitor_url="rival-hvac.com")

        assert run.status == RunStatus.CRAWLING
        assert run.candidates == []
        final = await launcher.task_for(run.run_id)
        assert final.status == RunStatus.COMPLETE

    @pytest.mark.asyncio
    async def test_subject_fetch_costs_recorded(self):
        fetcher = ContentFetcher(rich=site_renderer("acme-hvac.com", name="firecrawl"))
        launcher = build_launcher(fetcher=fetcher)

        run = await launcher.submit("acme-hvac.com", Scope.NATIONAL)

        assert run.costs == [{"provider": "firecrawl", "operation": "scrape_your_site", "cost_cents": 1}]
        assert run.total_cost_cents == 1

    @pytest.mark.asyncio
    async def test_subject_unreachable_still_offers_candidates(self):
        launcher = build_launcher(fetcher=ContentFetcher(plain=StubRenderer({})))

        run = await launcher.submit("acme-hvac.com", Scope.LOCAL)

        assert run.status == RunStatus.SELECTING_COMPETITOR
        assert run.business_profile.name == "Acme Hvac"
        assert run.candidates

    @pytest.mark.asyncio
    async def test_invalid_url(self):
        launcher = build_launcher()
        with pytest.raises(ValueError):
            await launcher.submit("not a url")
        assert len(launcher.store) == 0


class TestTokenGating:
    """Test run access by token."""

    @pytest.mark.asyncio
    async def test_wrong_token(self):
        launcher = build_launcher()
        run = await launcher.submit("acme-hvac.com", Scope.NATIONAL)

        assert launcher.select(run.run_id, "wrong", "rival-hvac.com") is None
        assert launcher.get(run.run_id, "wrong") is None
        assert launcher.get(run.run_id, run.token).status == RunStatus.SELECTING_COMPETITOR

    @pytest.mark.asyncio
    async def test_select_twice(self):
        launcher = build_launcher()
        run = await launcher.submit("acme-hvac.com", Scope.NATIONAL)
        task = launcher.select(run.run_id, run.token, "rival-hvac.com")

        with pytest.raises(InvalidTransition):
            launcher.select(run.run_id, run.token, "carrier.com")

        final = await task
        assert final.competitor_url == "https://rival-hvac.com"


class TestFailures:
    """Test failure handling."""

    @pytest.mark.asyncio
    async def test_no_candidates(self):
        resolver = MagicMock()
        resolver.resolve = AsyncMock(return_value=[])
        launcher = build_launcher(resolver=resolver)

        run = await launcher.submit("acme-hvac.com")

        assert run.status == RunStatus.FAILED
        assert run.status_message == NO_COMPETITORS_FOUND

    @pytest.mark.asyncio
    async def test_discovery_crash(self):
        resolver = MagicMock()
        resolver.resolve = AsyncMock(side_effect=RuntimeError("resolver exploded"))
        launcher = build_launcher(resolver=resolver)

        run = await launcher.submit("acme-hvac.com")

        assert run.status == RunStatus.FAILED
        assert run.status_message == UNEXPECTED_FAILURE
        assert run.error_message == "resolver exploded"

    @pytest.mark.asyncio
    async def test_both_sites_unreachable(self):
        pipeline = AnalysisPipeline(fetcher=ContentFetcher(plain=StubRenderer({})))
        launcher = build_launcher(pipeline=pipeline)

        run = await launcher.submit("acme-hvac.com", competitor_url="rival-hvac.com")
        final = await launcher.task_for(run.run_id)

        assert final.status == RunStatus.FAILED
        assert final.status_message == BOTH_FETCHES_FAILED
        assert final.result is None

    @pytest.mark.asyncio
    async def test_pipeline_crash(self):
        pipeline = MagicMock()
        pipeline.run = AsyncMock(side_effect=KeyError("scores"))
        launcher = build_launcher(pipeline=pipeline)

        run = await launcher.submit("acme-hvac.com", competitor_url="rival-hvac.com")
        final = await launcher.task_for(run.run_id)

        assert final.status == RunStatus.FAILED
        assert final.status_message == UNEXPECTED_FAILURE
        assert final.error_message.startswith("KeyError")

    @pytest.mark.asyncio
    async def test_cancelled(self):
        started = asyncio.Event()

        async def hang(*args, **kwargs):
            started.set()
            await asyncio.sleep(60)

        pipeline = MagicMock()
        pipeline.run = hang
        launcher = build_launcher(pipeline=pipeline)

        run = await launcher.submit("acme-hvac.com", competitor_url="rival-hvac.com")
        task = launcher.task_for(run.run_id)
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        stored = launcher.get(run.run_id, run.token)
        assert stored.status == RunStatus.FAILED
        assert stored.status_message == CANCELLED


class TestProgressReporting:
    """Test how pipeline progress moves the run."""

    @pytest.mark.asyncio
    async def test_status_follows_stages(self):
        launcher = None
        pipeline = RecordingPipeline(
            lambda: launcher,
            stages=[("crawling", 5), ("crawling", 20), ("analyzing_content", 35), ("complete", 100)],
            error=RuntimeError("stop"),
        )
        launcher = build_launcher(pipeline=pipeline)

        run = await launcher.submit("acme-hvac.com", competitor_url="rival-hvac.com")
        final = await launcher.task_for(run.run_id)

        assert pipeline.observed == [
            ("crawling", RunStatus.CRAWLING, 5),
            ("crawling", RunStatus.CRAWLING, 20),
            ("analyzing_content", RunStatus.ANALYZING, 35),
            ("complete", RunStatus.ANALYZING, 35),
        ]
        assert final.status == RunStatus.FAILED


class TestEviction:
    """Test stale run eviction."""

    @pytest.mark.asyncio
    async def test_evict_stale(self):
        launcher = build_launcher()
        run = await launcher.submit("acme-hvac.com", competitor_url="rival-hvac.com")
        await launcher.task_for(run.run_id)

        assert launcher.evict_stale(0) == 1
        assert launcher.get(run.run_id, run.token) is None

    @pytest.mark.asyncio
    async def test_running_run_survives_eviction(self):
        renderer = GatedRenderer()
        launcher = build_launcher(fetcher=ContentFetcher(plain=renderer))

        run = await launcher.submit("acme-hvac.com", competitor_url="rival-hvac.com")
        await renderer.started.wait()

        assert launcher.evict_stale(0) == 0

        renderer.release.set()
        final = await launcher.task_for(run.run_id)

        assert final.status == RunStatus.COMPLETE
        assert launcher.get(run.run_id, run.token).result is not None
        assert launcher.evict_stale(0) == 1

    @pytest.mark.asyncio
    async def test_submit_evicts_runs_past_max_age(self):
        launcher = build_launcher(max_run_age=60)
        old = await launcher.submit("acme-hvac.com", Scope.NATIONAL)
        old.created_at = datetime.now() - timedelta(minutes=5)

        fresh = await launcher.submit("acme-hvac.com", Scope.NATIONAL)

        assert launcher.get(old.run_id, old.token) is None
        assert launcher.get(fresh.run_id, fresh.token) is not None
