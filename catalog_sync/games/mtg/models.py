"""Magic: The Gathering canonical card record."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Optional

from catalog_sync.models import CardRecord


@dataclass
class MTGCardRecord(CardRecord):
    """Row of the ``cards`` table, keyed by Scryfall UUID."""

    game: ClassVar[str] = "mtg"
    table: ClassVar[str] = "cards"
    column_names: ClassVar[Dict[str, str]] = {"set_code": "set"}

    set_code: Optional[str] = None
    collector_number: Optional[str] = None
    rarity: Optional[str] = None
    type_line: Optional[str] = None
    oracle_text: Optional[str] = None
    layout: Optional[str] = None
    foil: bool = False
    mana_cost: Optional[str] = None
    cmc: Optional[float] = None
    power: Optional[str] = None  # String: can be *, X, 1+*, etc.
    toughness: Optional[str] = None
    colors: list[str] = field(default_factory=list)
    image_uri: Optional[str] = None
    prices: Optional[Dict[str, Any]] = None
