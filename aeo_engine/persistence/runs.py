"""
Analysis Run Tracking

Lifecycle of one subject/competitor analysis, from submission to a terminal
state, and the token-gated store that holds runs while they are in flight.

State machine:
    pending -> selecting_competitor -> crawling -> analyzing -> complete
    failed is reachable from every non-terminal state.
    A competitor chosen up front passes through selecting_competitor at once.
"""

import hmac
import logging
import secrets
import time
import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from aeo_engine.context.models import BusinessProfile, CompetitorCandidate, Scope
from aeo_engine.errors import InvalidTransition

logger = logging.getLogger(__name__)


class RunStatus(str, Enum):
    """Run status states."""
    PENDING = "pending"                            # Submitted, nothing done yet
    SELECTING_COMPETITOR = "selecting_competitor"  # Candidates offered, waiting for a pick
    CRAWLING = "crawling"                          # Fetching both sites
    ANALYZING = "analyzing"                        # Scoring and aggregation
    COMPLETE = "complete"                          # Result attached
    FAILED = "failed"                              # Terminal failure


TERMINAL_STATUSES = frozenset({RunStatus.COMPLETE, RunStatus.FAILED})

ALLOWED_TRANSITIONS: Dict[RunStatus, frozenset] = {
    RunStatus.PENDING: frozenset({RunStatus.SELECTING_COMPETITOR, RunStatus.FAILED}),
    RunStatus.SELECTING_COMPETITOR: frozenset({RunStatus.CRAWLING, RunStatus.FAILED}),
    RunStatus.CRAWLING: frozenset({RunStatus.ANALYZING, RunStatus.FAILED}),
    RunStatus.ANALYZING: frozenset({RunStatus.COMPLETE, RunStatus.FAILED}),
    RunStatus.COMPLETE: frozenset(),
    RunStatus.FAILED: frozenset(),
}

STATUS_MESSAGES: Dict[RunStatus, str] = {
    RunStatus.PENDING: "Queued",
    RunStatus.SELECTING_COMPETITOR: "Waiting for competitor selection",
    RunStatus.CRAWLING: "Crawling both sites...",
    RunStatus.ANALYZING: "Analyzing and comparing...",
    RunStatus.COMPLETE: "Analysis complete",
    RunStatus.FAILED: "Analysis failed",
}


def _base36(number: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    out = ""
    while number:
        number, rem = divmod(number, 36)
        out = digits[rem] + out
    return out or "0"


def new_run_id() -> str:
    """Sortable, collision-resistant run id ("free_lx3k9a2b_1f0c9e7d")."""
    return f"free_{_base36(int(time.time() * 1000))}_{uuid.uuid4().hex[:8]}"


def new_token() -> str:
    """Opaque access token for a run."""
    return secrets.token_hex(32)


@dataclass
class AnalysisRun:
    """Analysis run data model."""
    run_id: str
    token: str
    subject_url: str
    scope: Scope
    status: RunStatus = RunStatus.PENDING
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    # Set after selection
    competitor_url: Optional[str] = None

    # Progress tracking
    progress: int = 0
    status_message: str = STATUS_MESSAGES[RunStatus.PENDING]

    # Context
    business_profile: Optional[BusinessProfile] = None
    candidates: List[CompetitorCandidate] = field(default_factory=list)

    # Results
    result: Optional[Dict[str, Any]] = None

    # Costs (CostEntry dicts, append-only)
    costs: List[Dict[str, Any]] = field(default_factory=list)

    # External lead/business record
    lead_id: Optional[str] = None

    # Errors (internal detail, never shown to users)
    error_message: Optional[str] = None

    @classmethod
    def create(
        cls,
        subject_url: str,
        scope: Scope,
        competitor_url: Optional[str] = None,
        lead_id: Optional[str] = None,
    ) -> "AnalysisRun":
        """Create a new pending run with a fresh id and token."""
        return cls(
            run_id=new_run_id(),
            token=new_token(),
            subject_url=subject_url,
            scope=Scope(scope),
            competitor_url=competitor_url,
            lead_id=lead_id,
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def total_cost_cents(self) -> int:
        return sum(entry.get("cost_cents", 0) for entry in self.costs)

    def can_transition(self, status: RunStatus) -> bool:
        return RunStatus(status) in ALLOWED_TRANSITIONS[self.status]

    def transition(
        self,
        status: RunStatus,
        message: Optional[str] = None,
        progress: Optional[int] = None,
    ):
        """
        Move the run to a new status.

        Args:
            status: Target status
            message: Status message (defaults to the status' standard message)
            progress: Progress percentage

        Raises:
            InvalidTransition: If the edge is not allowed, or when completing
                without a result
        """
        status = RunStatus(status)
        if status not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransition(self.status, status)
        if status == RunStatus.COMPLETE and self.result is None:
            raise InvalidTransition(
                self.status, status, reason="Cannot complete a run without a result"
            )

        logger.debug(f"Run {self.run_id}: {self.status.value} -> {status.value}")
        self.status = status
        self.status_message = message or STATUS_MESSAGES[status]
        if status == RunStatus.COMPLETE:
            self.progress = 100
        elif progress is not None:
            self.update_progress(progress)
        self.updated_at = datetime.now()

    def update_progress(self, progress: int, message: Optional[str] = None):
        """Update progress within the current status. Progress never goes backwards."""
        self.progress = max(self.progress, max(0, min(100, int(progress))))
        if message:
            self.status_message = message
        self.updated_at = datetime.now()

    def fail(self, user_message: str, detail: Optional[str] = None):
        """Move to failed with a short user-facing message."""
        self.error_message = detail or user_message
        self.transition(RunStatus.FAILED, message=user_message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data = asdict(self)
        data["scope"] = self.scope.value
        data["status"] = self.status.value
        data["created_at"] = self.created_at.isoformat()
        data["updated_at"] = self.updated_at.isoformat()
        data["business_profile"] = self.business_profile.to_dict() if self.business_profile else None
        data["candidates"] = [c.to_dict() for c in self.candidates]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisRun":
        """Create from dictionary."""
        data = dict(data)
        data["scope"] = Scope(data["scope"])
        data["status"] = RunStatus(data["status"])
        data["created_at"] = datetime.fromisoformat(data["created_at"])
        data["updated_at"] = datetime.fromisoformat(data["updated_at"])
        if data.get("business_profile"):
            data["business_profile"] = BusinessProfile.from_dict(data["business_profile"])
        data["candidates"] = [CompetitorCandidate.from_dict(c) for c in data.get("candidates") or []]
        return cls(**data)

    def public_view(self) -> Dict[str, Any]:
        """Snapshot safe to return to a polling caller (no token, no internal errors)."""
        return {
            "run_id": self.run_id,
            "status": self.status.value,
            "progress": self.progress,
            "status_message": self.status_message,
            "subject_url": self.subject_url,
            "competitor_url": self.competitor_url,
            "scope": self.scope.value,
            "candidates": [c.to_dict() for c in self.candidates],
            "result": self.result if self.status == RunStatus.COMPLETE else None,
        }


# =============================================================================
# RUN STATE STORE
# =============================================================================


class InMemoryRunBackend:
    """Process-local backing for RunStateStore."""

    def __init__(self):
        self._runs: Dict[str, AnalysisRun] = {}

    def load(self, run_id: str) -> Optional[AnalysisRun]:
        return self._runs.get(run_id)

    def save(self, run: AnalysisRun):
        self._runs[run.run_id] = run

    def delete(self, run_id: str) -> bool:
        return self._runs.pop(run_id, None) is not None

    def items(self) -> Iterable[Tuple[str, AnalysisRun]]:
        return list(self._runs.items())


class RunStateStore:
    """
    Token-gated store of in-flight and recently finished runs.

    A read with the wrong token behaves exactly like a missing run.
    The backing is injected; anything with load/save/delete/items works.
    """

    def __init__(self, backend=None):
        self.backend = backend if backend is not None else InMemoryRunBackend()

    def put(self, run: AnalysisRun) -> AnalysisRun:
        self.backend.save(run)
        return run

    def get(self, run_id: str, token: str) -> Optional[AnalysisRun]:
        run = self.backend.load(run_id)
        if run is None or not token:
            return None
        if not hmac.compare_digest(run.token.encode(), str(token).encode()):
            return None
        return run

    def touch(
        self,
        run_id: str,
        token: str,
        mutator: Callable[[AnalysisRun], None],
    ) -> Optional[AnalysisRun]:
        """
        Apply `mutator` to a run and save it.

        Returns:
            The updated run, or None if missing or the token is wrong
        """
        run = self.get(run_id, token)
        if run is None:
            return None
        mutator(run)
        self.backend.save(run)
        return run

    def evict(self, run_id: str) -> bool:
        return self.backend.delete(run_id)

    def evict_older_than(self, max_age: float, keep: Iterable[str] = ()) -> int:
        """
        Remove runs created more than `max_age` seconds ago.

        Args:
            max_age: Age in seconds
            keep: Run ids to leave in place regardless of age

        Returns:
            Number of evicted runs
        """
        cutoff = datetime.now() - timedelta(seconds=max_age)
        keep = set(keep)
        stale = [
            run_id for run_id, run in self.backend.items()
            if run.created_at < cutoff and run_id not in keep
        ]
        for run_id in stale:
            self.backend.delete(run_id)
        if stale:
            logger.info(f"Evicted {len(stale)} runs older than {max_age}s")
        return len(stale)

    def __len__(self) -> int:
        return len(list(self.backend.items()))
