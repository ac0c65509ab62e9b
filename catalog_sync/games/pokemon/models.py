"""Pokémon TCG canonical card record."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Optional

from catalog_sync.models import CardRecord


@dataclass
class PokemonCardRecord(CardRecord):
    """Row of the ``pokemon_cards`` table, keyed by pokemontcg.io id (e.g. "base1-4")."""

    game: ClassVar[str] = "pokemon"
    table: ClassVar[str] = "pokemon_cards"

    supertype: Optional[str] = None
    subtypes: list[str] = field(default_factory=list)
    level: Optional[str] = None
    hp: Optional[str] = None
    types: list[str] = field(default_factory=list)
    evolves_from: Optional[str] = None
    rules: list[str] = field(default_factory=list)
    abilities: list[Dict[str, Any]] = field(default_factory=list)
    attacks: list[Dict[str, Any]] = field(default_factory=list)
    weaknesses: list[Dict[str, Any]] = field(default_factory=list)
    resistances: list[Dict[str, Any]] = field(default_factory=list)
    retreat_cost: int = 0  # number of energy symbols, not the list itself
    converted_retreat_cost: Optional[int] = None
    set_name: Optional[str] = None
    set_series: Optional[str] = None
    set_code: Optional[str] = None
    set_release_date: Optional[str] = None
    rarity: Optional[str] = None
    artist: Optional[str] = None
    image_small: Optional[str] = None
    image_large: Optional[str] = None
    prices: Optional[Dict[str, Any]] = None
