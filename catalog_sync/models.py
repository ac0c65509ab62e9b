"""Base data models for canonical card records and sync results.

Game-specific records extend CardRecord in their respective game
packages (e.g., games/mtg/models.py, games/pokemon/models.py).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, ClassVar, Dict, List, Optional, Union

from catalog_sync.errors import NormalizationError

CardId = Union[str, int]

# Failures beyond this are counted but not kept individually.
MAX_RECORDED_FAILURES = 100


@dataclass
class CardRecord:
    """Canonical, storage-ready card shared by every game.

    Subclasses add the game's attribute payload and set the ``game`` and
    ``table`` tags. ``last_updated`` is never supplied by a source; the
    sink stamps it at write time.
    """

    game: ClassVar[str] = ""
    table: ClassVar[str] = ""
    # Dataclass field name -> storage column name, where they differ.
    column_names: ClassVar[Dict[str, str]] = {}

    id: CardId
    name: str
    last_updated: Optional[str] = None

    def to_row(self) -> Dict[str, Any]:
        """Return the full storage row, one entry per column."""
        return {
            self.column_names.get(key, key): value
            for key, value in asdict(self).items()
        }


@dataclass
class RecordFailure:
    """One record that was skipped during a pass."""

    card_id: Optional[CardId]
    name: Optional[str]
    error: str


@dataclass
class SyncResult:
    """Tally of a single sync pass."""

    game: str
    source: str
    table: str
    started_at: str
    finished_at: Optional[str] = None
    fetched: int = 0
    synced: int = 0
    failed: int = 0
    failures: List[RecordFailure] = field(default_factory=list)
    stale_ids: List[CardId] = field(default_factory=list)
    pruned: int = 0
    aborted: Optional[str] = None  # reason, when the pass did not finish

    @property
    def complete(self) -> bool:
        return self.aborted is None

    def add_failure(self, card_id: Optional[CardId], name: Optional[str], error: str) -> None:
        self.failed += 1
        if len(self.failures) < MAX_RECORDED_FAILURES:
            self.failures.append(RecordFailure(card_id=card_id, name=name, error=error))

    def summary_line(self) -> str:
        line = f"Synced {self.synced} {self.game} cards to '{self.table}' ({self.failed} failed)"
        if self.aborted:
            line += f"; aborted: {self.aborted}"
        return line

    def to_dict(self) -> Dict[str, Any]:
        return {
            "game": self.game,
            "source": self.source,
            "table": self.table,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "fetched": self.fetched,
            "synced": self.synced,
            "failed": self.failed,
            "stale": len(self.stale_ids),
            "pruned": self.pruned,
            "aborted": self.aborted,
        }


def require_field(raw: Dict[str, Any], key: str) -> Any:
    """Return a required upstream value, rejecting missing or empty ones."""
    value = raw.get(key)
    if value is None or value == "":
        card_id = raw.get("id")
        raise NormalizationError(
            f"record is missing required field '{key}'",
            card_id=str(card_id) if card_id not in (None, "") else None,
        )
    return value


def list_or_empty(value: Any) -> list:
    """Absent collections become an empty list so readers see a stable schema."""
    if value is None:
        return []
    return list(value)
