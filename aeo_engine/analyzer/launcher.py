"""
Run Launcher

Owns the lifecycle of analysis runs:

    submit()  -> profile the subject, resolve competitors  (selecting_competitor)
    select()  -> record the pick, start the pipeline task   (crawling -> analyzing)
    task end  -> attach the result or a short failure message (complete / failed)

Each run is driven by exactly one asyncio.Task, the only writer of that run's
state. Callers decide how to await, poll or time out the returned task.
"""

import asyncio
import logging
from typing import Dict, Optional

from aeo_engine.context.business_profiler import BusinessProfiler
from aeo_engine.context.competitor_discovery import CompetitorResolver
from aeo_engine.context.models import Scope
from aeo_engine.errors import PipelineFatal, ProviderCallFailed
from aeo_engine.integrations.base import PageContent
from aeo_engine.integrations.content import ContentFetcher
from aeo_engine.persistence.costs import CostLedger
from aeo_engine.persistence.runs import AnalysisRun, RunStateStore, RunStatus
from aeo_engine.persistence.storage import RunStorage
from aeo_engine.utils.domain_filter import normalize_domain, normalize_url
from .pipeline import AnalysisPipeline

logger = logging.getLogger(__name__)


NO_COMPETITORS_FOUND = "We couldn't find competitors for this website. Try entering one yourself."
UNEXPECTED_FAILURE = "Something went wrong during the analysis. Please try again."
CANCELLED = "The analysis was cancelled."


class RunLauncher:
    """
    Creates runs and launches their pipeline tasks.

    Usage:
        launcher = RunLauncher(store, profiler, resolver, pipeline, fetcher)
        run = await launcher.submit("https://acme-hvac.com", Scope.LOCAL)
        task = launcher.select(run.run_id, run.token, run.candidates[0].domain)
        await task
    """

    def __init__(
        self,
        store: RunStateStore,
        profiler: BusinessProfiler,
        resolver: CompetitorResolver,
        pipeline: AnalysisPipeline,
        fetcher: ContentFetcher,
        storage: Optional[RunStorage] = None,
        max_run_age: float = 3600,
    ):
        self.store = store
        self.profiler = profiler
        self.resolver = resolver
        self.pipeline = pipeline
        self.fetcher = fetcher
        self.storage = storage
        self.max_run_age = max_run_age

        self._ledgers: Dict[str, CostLedger] = {}
        self._tasks: Dict[str, asyncio.Task] = {}

    async def submit(
        self,
        url: str,
        scope: Scope = Scope.LOCAL,
        competitor_url: Optional[str] = None,
        lead_id: Optional[str] = None,
    ) -> AnalysisRun:
        """
        Create a run for a subject URL.

        Without a competitor the subject is profiled and competitors resolved;
        the run waits in selecting_competitor. With a competitor the pipeline
        starts immediately.

        Raises:
            ValueError: If a URL is not valid
        """
        subject_url = normalize_url(url)
        competitor_url = normalize_url(competitor_url) if competitor_url else None

        self.evict_stale()

        run = AnalysisRun.create(subject_url, Scope(scope), competitor_url=competitor_url, lead_id=lead_id)
        ledger = self._ledgers[run.run_id] = CostLedger()
        self.store.put(run)
        logger.info(f"Run {run.run_id} submitted for {subject_url} (scope={run.scope.value})")

        if competitor_url:
            def start(r: AnalysisRun):
                r.transition(RunStatus.SELECTING_COMPETITOR)
                r.transition(RunStatus.CRAWLING)

            self.store.touch(run.run_id, run.token, start)
            self._launch(run)
            return run

        try:
            page = await self._fetch_subject(subject_url, ledger)
            profile = await self.profiler.profile(subject_url, page, ledger)
            candidates = await self.resolver.resolve(normalize_domain(subject_url), profile, run.scope, ledger)
        except Exception as e:
            logger.error(f"Run {run.run_id} failed during competitor discovery: {e}", exc_info=True)
            self._fail(run, UNEXPECTED_FAILURE, str(e), ledger)
            await self._persist(run, ledger)
            return run

        if not candidates:
            logger.warning(f"Run {run.run_id}: no competitors found for {subject_url}")
            self._fail(run, NO_COMPETITORS_FOUND, "Competitor resolution returned no candidates", ledger)
            await self._persist(run, ledger)
            return run

        def offer(r: AnalysisRun):
            r.business_profile = profile
            r.candidates = candidates
            r.costs = ledger.to_list()
            r.transition(RunStatus.SELECTING_COMPETITOR)

        self.store.touch(run.run_id, run.token, offer)
        logger.info(f"Run {run.run_id}: {len(candidates)} competitors offered")
        return run

    def select(self, run_id: str, token: str, competitor_url: str) -> Optional[asyncio.Task]:
        """
        Record the chosen competitor and start the pipeline.

        Returns:
            The run's task, or None if the run is missing or the token is wrong

        Raises:
            InvalidTransition: If the run is not waiting for a selection
            ValueError: If the competitor URL is not valid
        """
        competitor_url = normalize_url(competitor_url)

        def choose(r: AnalysisRun):
            r.transition(RunStatus.CRAWLING)
            r.competitor_url = competitor_url

        run = self.store.touch(run_id, token, choose)
        if run is None:
            return None

        logger.info(f"Run {run_id}: competitor selected {competitor_url}")
        return self._launch(run)

    def get(self, run_id: str, token: str) -> Optional[AnalysisRun]:
        return self.store.get(run_id, token)

    def task_for(self, run_id: str) -> Optional[asyncio.Task]:
        return self._tasks.get(run_id)

    def evict_stale(self, max_age: Optional[float] = None) -> int:
        """Evict runs older than `max_age` (default max_run_age), keeping those still executing."""
        if max_age is None:
            max_age = self.max_run_age
        evicted = self.store.evict_older_than(max_age, keep=self._tasks)
        for run_id in [r for r in self._ledgers if r not in self._tasks]:
            if self.store.backend.load(run_id) is None:
                del self._ledgers[run_id]
        return evicted

    # =========================================================================
    # EXECUTION
    # =========================================================================

    def _launch(self, run: AnalysisRun) -> asyncio.Task:
        task = asyncio.ensure_future(self._execute(run))
        self._tasks[run.run_id] = task
        task.add_done_callback(lambda _: self._tasks.pop(run.run_id, None))
        return task

    async def _execute(self, run: AnalysisRun) -> AnalysisRun:
        ledger = self._ledgers.setdefault(run.run_id, CostLedger())

        def on_progress(stage: str, percent: int, message: str):
            # Completion is recorded only once the result is attached
            if stage == "complete":
                return

            def advance(r: AnalysisRun):
                if stage != "crawling" and r.status == RunStatus.CRAWLING:
                    r.transition(RunStatus.ANALYZING)
                r.update_progress(percent, message)
                r.costs = ledger.to_list()

            self.store.touch(run.run_id, run.token, advance)

        try:
            result = await self.pipeline.run(
                run.subject_url,
                run.competitor_url,
                run.run_id,
                on_progress=on_progress,
                ledger=ledger,
            )
        except PipelineFatal as e:
            logger.warning(f"Run {run.run_id} failed: {e}")
            self._fail(run, e.user_message, str(e), ledger)
        except asyncio.CancelledError:
            logger.warning(f"Run {run.run_id} cancelled")
            self._fail(run, CANCELLED, "Task cancelled", ledger)
            await self._persist(run, ledger)
            raise
        except Exception as e:
            logger.error(f"Run {run.run_id} crashed: {e}", exc_info=True)
            self._fail(run, UNEXPECTED_FAILURE, f"{type(e).__name__}: {e}", ledger)
        else:
            def finish(r: AnalysisRun):
                r.result = result.to_dict()
                r.costs = ledger.to_list()
                if r.status == RunStatus.CRAWLING:
                    r.transition(RunStatus.ANALYZING)
                r.transition(RunStatus.COMPLETE)

            self.store.touch(run.run_id, run.token, finish)
            logger.info(
                f"Run {run.run_id} complete: {result.subject_score} vs {result.competitor_score}, "
                f"cost {ledger.total_cents}c"
            )

        await self._persist(run, ledger)
        return self.store.get(run.run_id, run.token) or run

    async def _fetch_subject(self, url: str, ledger: CostLedger) -> Optional[PageContent]:
        try:
            page = await self.fetcher.fetch(url)
        except ProviderCallFailed as e:
            logger.warning(f"Could not fetch {url} for profiling: {e}")
            return None
        if page.renderer == "firecrawl":
            ledger.record("firecrawl", "scrape_your_site")
        return page

    def _fail(self, run: AnalysisRun, user_message: str, detail: str, ledger: CostLedger):
        def fail(r: AnalysisRun):
            r.costs = ledger.to_list()
            if not r.is_terminal:
                r.fail(user_message, detail=detail)

        self.store.touch(run.run_id, run.token, fail)

    async def _persist(self, run: AnalysisRun, ledger: CostLedger):
        if self.storage is None:
            return
        current = self.store.get(run.run_id, run.token) or run
        try:
            await self.storage.save_run(current)
            await self.storage.save_costs(run.run_id, ledger.to_list())
        except OSError as e:
            logger.error(f"Failed to persist run {run.run_id}: {e}")
