"""Adapter for the Pokémon TCG API (pokemontcg.io v2)."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from catalog_sync.errors import FetchError
from catalog_sync.games.pokemon.models import PokemonCardRecord
from catalog_sync.models import CardId, list_or_empty, require_field
from catalog_sync.sources import PaginatedSource

logger = logging.getLogger(__name__)

BASE_URL = "https://api.pokemontcg.io/v2"
CARDS_URL = f"{BASE_URL}/cards"


class PokemonTcgApiAdapter(PaginatedSource):
    """Walks /v2/cards 250 at a time.

    The API key is optional; with one the API grants a higher rate limit.
    """

    game = PokemonCardRecord.game
    table = PokemonCardRecord.table
    endpoint = CARDS_URL

    @property
    def name(self) -> str:
        return "pokemontcg-api"

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        if self._api_key:
            headers["X-Api-Key"] = self._api_key
        return headers

    def normalize(self, raw: Dict[str, Any]) -> PokemonCardRecord:
        return normalize_pokemontcg_card(raw)

    async def fetch_card(self, card_id: CardId) -> Dict[str, Any]:
        """Fetch one card from GET /v2/cards/{id}."""
        url = f"{CARDS_URL}/{card_id}"
        data = await self._get_json(url)
        card = data.get("data") if isinstance(data, dict) else None
        if not isinstance(card, dict):
            raise FetchError(f"Unexpected payload from {url}", url=url)
        return card


def _nested(raw: Dict[str, Any], key: str) -> Dict[str, Any]:
    value: Optional[Dict[str, Any]] = raw.get(key)
    return value if isinstance(value, dict) else {}


def normalize_pokemontcg_card(raw: Dict[str, Any]) -> PokemonCardRecord:
    """Map a pokemontcg.io card object to a PokemonCardRecord."""
    card_set = _nested(raw, "set")
    images = _nested(raw, "images")
    tcgplayer = _nested(raw, "tcgplayer")

    return PokemonCardRecord(
        id=str(require_field(raw, "id")),
        name=require_field(raw, "name"),
        supertype=raw.get("supertype"),
        subtypes=list_or_empty(raw.get("subtypes")),
        level=raw.get("level"),
        hp=raw.get("hp"),
        types=list_or_empty(raw.get("types")),
        evolves_from=raw.get("evolvesFrom"),
        rules=list_or_empty(raw.get("rules")),
        abilities=list_or_empty(raw.get("abilities")),
        attacks=list_or_empty(raw.get("attacks")),
        weaknesses=list_or_empty(raw.get("weaknesses")),
        resistances=list_or_empty(raw.get("resistances")),
        retreat_cost=len(raw.get("retreatCost") or []),
        converted_retreat_cost=raw.get("convertedRetreatCost"),
        set_name=card_set.get("name"),
        set_series=card_set.get("series"),
        set_code=card_set.get("id"),
        set_release_date=card_set.get("releaseDate"),
        rarity=raw.get("rarity"),
        artist=raw.get("artist"),
        image_small=images.get("small"),
        image_large=images.get("large"),
        prices=tcgplayer.get("prices"),
    )
