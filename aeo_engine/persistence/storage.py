"""
Run Storage

Durable storage collaborator for finished analysis runs and their cost
entries. The engine only needs save/load by run id; FileRunStorage keeps
everything as JSON on the local filesystem.
"""

import os
import json
import gzip
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

from .runs import AnalysisRun

logger = logging.getLogger(__name__)


class RunStorage(ABC):
    """Abstract base class for run storage backends."""

    @abstractmethod
    async def save_run(self, run: AnalysisRun) -> str:
        """Create or update a run record. Returns the storage key."""
        pass

    @abstractmethod
    async def load_run(self, run_id: str) -> Optional[AnalysisRun]:
        """Load a run by id."""
        pass

    @abstractmethod
    async def save_costs(self, run_id: str, entries: List[Dict[str, Any]]) -> str:
        """Store the cost entries of a run. Returns the storage key."""
        pass


class FileRunStorage(RunStorage):
    """
    File system storage backend.

    Layout:
        {base_path}/runs/{run_id}.json[.gz]
        {base_path}/costs/{run_id}.json[.gz]
    """

    def __init__(
        self,
        base_path: Optional[str] = None,
        compress: bool = False
    ):
        """
        Initialize file storage.

        Args:
            base_path: Root directory for storage.
                      Defaults to AEO_STORAGE_PATH or ~/.aeo_engine/storage/
            compress: Whether to gzip JSON data
        """
        if base_path is None:
            base_path = os.getenv(
                "AEO_STORAGE_PATH",
                str(Path.home() / ".aeo_engine" / "storage")
            )

        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.compress = compress

        logger.info(f"FileRunStorage initialized at {self.base_path}")

    def _get_path(self, folder: str, run_id: str) -> Path:
        """Get full path for a run id, without suffix."""
        safe_id = run_id.replace("..", "").replace("/", "_").lstrip(".")
        return self.base_path / folder / safe_id

    def _write_json(self, path: Path, data: Any) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        json_str = json.dumps(data, indent=2, default=str)

        if self.compress:
            path = path.with_name(path.name + ".json.gz")
            with gzip.open(path, "wt", encoding="utf-8") as f:
                f.write(json_str)
        else:
            path = path.with_name(path.name + ".json")
            with open(path, "w", encoding="utf-8") as f:
                f.write(json_str)

        logger.debug(f"Saved JSON to {path}")
        return path

    def _read_json(self, path: Path) -> Optional[Any]:
        compressed = path.with_name(path.name + ".json.gz")
        if compressed.exists():
            with gzip.open(compressed, "rt", encoding="utf-8") as f:
                return json.load(f)

        plain = path.with_name(path.name + ".json")
        if plain.exists():
            with open(plain, "r", encoding="utf-8") as f:
                return json.load(f)

        return None

    async def save_run(self, run: AnalysisRun) -> str:
        path = self._write_json(self._get_path("runs", run.run_id), run.to_dict())
        return str(path.relative_to(self.base_path))

    async def load_run(self, run_id: str) -> Optional[AnalysisRun]:
        data = self._read_json(self._get_path("runs", run_id))
        if data is None:
            return None
        return AnalysisRun.from_dict(data)

    async def save_costs(self, run_id: str, entries: List[Dict[str, Any]]) -> str:
        path = self._write_json(self._get_path("costs", run_id), entries)
        return str(path.relative_to(self.base_path))

    async def load_costs(self, run_id: str) -> List[Dict[str, Any]]:
        return self._read_json(self._get_path("costs", run_id)) or []
