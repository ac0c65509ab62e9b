"""Run history: persists the summary of each sync pass to JSON."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from catalog_sync.models import SyncResult

logger = logging.getLogger(__name__)

# Runs kept per game
HISTORY_LIMIT = 20


class RunHistory:
    """Append-only log of pass summaries, newest last, backed by a JSON file.

    This is a report, not a checkpoint: an interrupted pass always starts
    over from the first record.
    """

    def __init__(self, history_file: str) -> None:
        self._path = Path(history_file)
        self._runs: Optional[Dict[str, List[Dict[str, Any]]]] = None

    @property
    def runs(self) -> Dict[str, List[Dict[str, Any]]]:
        if self._runs is None:
            self._runs = self._load()
        return self._runs

    def record(self, result: SyncResult) -> None:
        """Add a finished pass and persist the file."""
        game_runs = self.runs.setdefault(result.game, [])
        game_runs.append(result.to_dict())
        del game_runs[:-HISTORY_LIMIT]
        self.save()

    def last_run(self, game: str) -> Optional[Dict[str, Any]]:
        game_runs = self.runs.get(game)
        return game_runs[-1] if game_runs else None

    def save(self) -> None:
        """Persist current history to disk."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            json.dumps({"games": self.runs}, indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
        logger.debug("Run history saved to %s", self._path)

    def delete(self) -> None:
        """Remove the history file."""
        if self._path.exists():
            self._path.unlink()
            logger.info("Deleted run history %s", self._path)
        self._runs = {}

    def summary(self) -> Dict[str, Dict[str, Any]]:
        """Return the latest run per game plus how many runs are on record."""
        return {
            game: {**game_runs[-1], "runs": len(game_runs)}
            for game, game_runs in self.runs.items()
            if game_runs
        }

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _load(self) -> Dict[str, List[Dict[str, Any]]]:
        if not self._path.exists():
            logger.info("No run history at %s, starting fresh", self._path)
            return {}

        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            games = raw["games"]
            if not isinstance(games, dict):
                raise TypeError("'games' is not a mapping")
            return {str(game): list(runs) for game, runs in games.items()}
        except (json.JSONDecodeError, KeyError, TypeError) as exc:
            logger.warning("Corrupt run history %s: %s, starting fresh", self._path, exc)
            return {}
