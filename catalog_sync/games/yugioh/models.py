"""Yu-Gi-Oh! canonical card record."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Optional

from catalog_sync.models import CardRecord


@dataclass
class YugiohCardRecord(CardRecord):
    """Row of the ``yugioh_cards`` table, keyed by the integer passcode."""

    game: ClassVar[str] = "yugioh"
    table: ClassVar[str] = "yugioh_cards"
    column_names: ClassVar[Dict[str, str]] = {"defense": "def"}

    type: Optional[str] = None
    frame_type: Optional[str] = None
    desc: Optional[str] = None
    atk: Optional[int] = None
    defense: Optional[int] = None
    level: Optional[int] = None
    race: Optional[str] = None
    attribute: Optional[str] = None
    archetype: Optional[str] = None
    scale: Optional[int] = None
    linkval: Optional[int] = None
    linkmarkers: list[str] = field(default_factory=list)
    card_sets: list[Dict[str, Any]] = field(default_factory=list)
    card_images: list[Dict[str, Any]] = field(default_factory=list)
    card_prices: list[Dict[str, Any]] = field(default_factory=list)
