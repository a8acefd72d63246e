"""
Running cost accounting.

A CostTracker is handed to each GenerationSession instead of living in a
module global, so every session (and every test) can own its accumulator.
Totals only ever grow; ``reset_session`` is the one explicit reset.
"""

from __future__ import annotations

import json
from pathlib import Path

from draftsmith.logging import get_logger

logger = get_logger("cost")

COST_FILE = ".ai_cost.json"


class ProjectCostStore:
    """Persists a project's lifetime spend as ``{"total": x}`` in the project root."""

    def __init__(self, root: Path | str, filename: str = COST_FILE) -> None:
        self.path = Path(root) / filename

    def load(self) -> float:
        """Read the stored total. Missing or unreadable files count as zero."""
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return 0.0
        except (OSError, ValueError) as e:
            logger.warning("Could not read project cost from %s: %s", self.path, e)
            return 0.0
        total = data.get("total", 0) if isinstance(data, dict) else 0
        return float(total) if isinstance(total, (int, float)) else 0.0

    def save(self, total: float) -> None:
        """Write the total. Failures are logged, never raised."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps({"total": total}, indent=2), encoding="utf-8")
        except OSError as e:
            logger.warning("Failed to save project cost to %s: %s", self.path, e)


class CostTracker:
    """
    Session and project spend accumulator.

    Example:
        tracker = CostTracker(ProjectCostStore(project_root))
        tracker.add_cost(0.0123)
        tracker.current_total   # spend this session
        tracker.project_total   # lifetime spend, persisted after every add
    """

    def __init__(self, store: ProjectCostStore | None = None) -> None:
        self._store = store
        self._session_total = 0.0
        self._project_total = store.load() if store is not None else 0.0

    def add_cost(self, amount: float) -> float:
        """Add ``amount`` dollars to both totals and return the new session total."""
        if amount < 0:
            raise ValueError(f"Cost must be non-negative, got {amount}")
        self._session_total += amount
        self._project_total += amount
        if self._store is not None:
            self._store.save(self._project_total)
        logger.debug("Added $%.6f (session $%.6f)", amount, self._session_total)
        return self._session_total

    @property
    def current_total(self) -> float:
        return self._session_total

    @property
    def project_total(self) -> float:
        return self._project_total

    def reset_session(self) -> None:
        """Zero the session total. The project total is untouched."""
        self._session_total = 0.0
