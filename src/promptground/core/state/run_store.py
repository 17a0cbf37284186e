"""Optimization run persistence."""

import json
from pathlib import Path
from typing import List, Optional

from loguru import logger
from pydantic import ValidationError

from ...models import OptimizationRun, RunsFile

RUNS_FILENAME = "runs.json"


class RunStore:
    """JSON-file log of optimization runs, upserted by run id.

    Every write rewrites the whole file (read-modify-write); two writers on
    the same file can lose updates.
    """

    def __init__(self, data_dir: Path):
        """Initialize store rooted at the data directory."""
        self.data_dir = Path(data_dir)

    @property
    def path(self) -> Path:
        return self.data_dir / RUNS_FILENAME

    def run_dir(self, run_id: str) -> Path:
        """Directory for per-run artifacts (logs, plots)."""
        return self.data_dir / "runs" / run_id

    def load(self) -> RunsFile:
        """Load all runs; a missing or malformed file yields an empty log."""
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return RunsFile()
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read {self.path}: {e}")
            return RunsFile()

        if isinstance(raw, list):
            raw = {"runs": raw}
        if not isinstance(raw, dict):
            return RunsFile()

        runs: List[OptimizationRun] = []
        for item in raw.get("runs") or []:
            try:
                runs.append(OptimizationRun.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping malformed run entry: {e.error_count()} errors")
        return RunsFile(runs=runs)

    def save(self, run: OptimizationRun) -> None:
        """Insert or replace the run with the same id."""
        data = self.load()
        for index, existing in enumerate(data.runs):
            if existing.id == run.id:
                data.runs[index] = run
                break
        else:
            data.runs.append(run)
        self._write(data)
        logger.debug(f"Saved run {run.id} ({run.status})")

    def get(self, run_id: str) -> Optional[OptimizationRun]:
        for run in self.load().runs:
            if run.id == run_id:
                return run
        return None

    def list_runs(self) -> List[OptimizationRun]:
        """All runs, newest first."""
        return sorted(self.load().runs, key=lambda r: r.timestamp, reverse=True)

    def delete(self, run_id: str) -> bool:
        """Remove a run; returns False when it did not exist."""
        data = self.load()
        remaining = [run for run in data.runs if run.id != run_id]
        if len(remaining) == len(data.runs):
            return False
        self._write(RunsFile(runs=remaining))
        return True

    def mark_error(self, run_id: str, message: Optional[str] = None) -> bool:
        """Flag a running run as failed; returns False if there was nothing to mark."""
        run = self.get(run_id)
        if run is None or run.status != "running":
            return False
        run.status = "error"
        run.error = message
        self.save(run)
        return True

    def _write(self, data: RunsFile) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(data.to_json_dict(), indent=2, ensure_ascii=False)
        self.path.write_text(payload, encoding="utf-8")
