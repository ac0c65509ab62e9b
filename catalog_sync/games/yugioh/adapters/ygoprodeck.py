"""Adapter for the YGOPRODeck card database API (v7)."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from catalog_sync.errors import FetchError, NormalizationError
from catalog_sync.games.yugioh.models import YugiohCardRecord
from catalog_sync.models import CardId, list_or_empty, require_field
from catalog_sync.sources import BulkSource, expect_list

logger = logging.getLogger(__name__)

CARDINFO_URL = "https://db.ygoprodeck.com/api/v7/cardinfo.php"


class YgoprodeckAdapter(BulkSource):
    """The whole catalog comes back from a single cardinfo.php call."""

    game = YugiohCardRecord.game
    table = YugiohCardRecord.table

    @property
    def name(self) -> str:
        return "ygoprodeck"

    async def _fetch_bulk(self) -> List[Dict[str, Any]]:
        logger.info("Fetching full card list from YGOPRODeck...")
        data = await self._get_json(CARDINFO_URL)
        return expect_list(data, "data", CARDINFO_URL)

    def normalize(self, raw: Dict[str, Any]) -> YugiohCardRecord:
        return normalize_ygoprodeck_card(raw)

    async def fetch_card(self, card_id: CardId) -> Dict[str, Any]:
        """Fetch one card via cardinfo.php?id=<passcode>."""
        data = await self._get_json(CARDINFO_URL, params={"id": card_id})
        cards = expect_list(data, "data", CARDINFO_URL)
        if not cards:
            raise FetchError(f"No YGOPRODeck card with id {card_id}", url=CARDINFO_URL)
        return cards[0]


def _int_or_none(val: Any) -> Optional[int]:
    if val is None or val == "":
        return None
    try:
        return int(val)
    except (ValueError, TypeError):
        return None


def normalize_ygoprodeck_card(raw: Dict[str, Any]) -> YugiohCardRecord:
    """Map a YGOPRODeck card object to a YugiohCardRecord."""
    raw_id = require_field(raw, "id")
    card_id = _int_or_none(raw_id)
    if card_id is None:
        raise NormalizationError(f"non-integer card id {raw_id!r}", card_id=str(raw_id))

    return YugiohCardRecord(
        id=card_id,
        name=require_field(raw, "name"),
        type=raw.get("type"),
        frame_type=raw.get("frameType"),
        desc=raw.get("desc"),
        atk=_int_or_none(raw.get("atk")),
        defense=_int_or_none(raw.get("def")),
        level=_int_or_none(raw.get("level")),
        race=raw.get("race"),
        attribute=raw.get("attribute"),
        archetype=raw.get("archetype"),
        scale=_int_or_none(raw.get("scale")),
        linkval=_int_or_none(raw.get("linkval")),
        linkmarkers=list_or_empty(raw.get("linkmarkers")),
        card_sets=list_or_empty(raw.get("card_sets")),
        card_images=list_or_empty(raw.get("card_images")),
        card_prices=list_or_empty(raw.get("card_prices")),
    )
