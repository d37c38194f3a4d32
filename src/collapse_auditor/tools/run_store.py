"""
Audit Run Store
JSON-file key-record store for completed analyses, one file per run id.

The audit pipeline never touches this store; callers that want to keep
results pass them in explicitly.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from collapse_auditor.exceptions import OutputWriteError, SchemaValidationError
from collapse_auditor.schemas.audit_output import PortfolioAnalysis

logger = logging.getLogger(__name__)

DEFAULT_STORE_DIR = "output/runs"

_RUN_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,127}$")


class AuditRunStore:
    """
    put/get store for PortfolioAnalysis snapshots.

    Files are written as `<run_id>.json` under `root`, using
    model_dump_json / model_validate_json for the round trip.
    """

    def __init__(self, root: str | Path = DEFAULT_STORE_DIR):
        self.root = Path(root)

    def _path(self, run_id: str) -> Path:
        if not _RUN_ID_PATTERN.match(run_id):
            raise ValueError(f"Invalid run id {run_id!r}")
        return self.root / f"{run_id}.json"

    def put(self, run_id: str, analysis: PortfolioAnalysis) -> Path:
        """Save (or overwrite) the analysis for `run_id`."""
        filepath = self._path(run_id)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            filepath.write_text(analysis.model_dump_json(indent=2), encoding="utf-8")
        except OSError as e:
            raise OutputWriteError(f"Cannot write {filepath}: {e}") from e
        logger.info(f"[snapshot] Saved run {run_id} -> {filepath}")
        return filepath

    def get(self, run_id: str) -> Optional[PortfolioAnalysis]:
        """Load the analysis for `run_id`, or None if no snapshot exists."""
        filepath = self._path(run_id)
        if not filepath.exists():
            return None
        json_str = filepath.read_text(encoding="utf-8")
        try:
            return PortfolioAnalysis.model_validate_json(json_str)
        except PydanticValidationError as e:
            raise SchemaValidationError(f"Snapshot {filepath} does not match PortfolioAnalysis: {e}") from e

    def list_runs(self) -> list[str]:
        """Stored run ids, sorted."""
        if not self.root.exists():
            return []
        return sorted(p.stem for p in self.root.glob("*.json"))
