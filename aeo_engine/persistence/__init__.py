"""
Persistence Module

Run lifecycle, token-gated run state, cost ledger and durable run storage.

Usage:
    from aeo_engine.persistence import RunStateStore, AnalysisRun, CostLedger

    store = RunStateStore()
    run = store.put(AnalysisRun.create("https://acme-hvac.com", Scope.LOCAL))
    same = store.get(run.run_id, run.token)
"""

from .costs import CostEntry, CostLedger, DEFAULT_COSTS
from .runs import (
    RunStatus,
    AnalysisRun,
    InMemoryRunBackend,
    RunStateStore,
    ALLOWED_TRANSITIONS,
    STATUS_MESSAGES,
    TERMINAL_STATUSES,
    new_run_id,
    new_token,
)
from .storage import RunStorage, FileRunStorage

__all__ = [
    # Costs
    "CostEntry",
    "CostLedger",
    "DEFAULT_COSTS",
    # Runs
    "RunStatus",
    "AnalysisRun",
    "InMemoryRunBackend",
    "RunStateStore",
    "ALLOWED_TRANSITIONS",
    "STATUS_MESSAGES",
    "TERMINAL_STATUSES",
    "new_run_id",
    "new_token",
    # Storage
    "RunStorage",
    "FileRunStorage",
]
