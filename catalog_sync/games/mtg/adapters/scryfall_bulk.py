"""Scryfall Bulk Data adapter, the MTG catalog source.

Looks up the Default Cards bulk file in Scryfall's bulk-data index and
downloads it in one request. No rate limiting needed for bulk data access.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from catalog_sync.errors import FetchError, NormalizationError
from catalog_sync.games.mtg.models import MTGCardRecord
from catalog_sync.models import CardId, list_or_empty, require_field
from catalog_sync.sources import BulkSource, expect_list

logger = logging.getLogger(__name__)

BASE_URL = "https://api.scryfall.com"
BULK_DATA_URL = f"{BASE_URL}/bulk-data"
DEFAULT_BULK_TYPE = "default_cards"
BULK_DOWNLOAD_TIMEOUT = 300.0  # the default cards file is several hundred MB

# First size present wins.
IMAGE_SIZE_PREFERENCE = ("normal", "large", "small")


class ScryfallBulkAdapter(BulkSource):
    """MTG adapter using Scryfall bulk data downloads.

    One metadata request finds the download location for ``bulk_type``,
    a second fetches the whole card array.
    """

    game = MTGCardRecord.game
    table = MTGCardRecord.table

    def __init__(
        self,
        bulk_type: str = DEFAULT_BULK_TYPE,
        download_timeout: float = BULK_DOWNLOAD_TIMEOUT,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._bulk_type = bulk_type
        self._download_timeout = download_timeout

    @property
    def name(self) -> str:
        return "scryfall-bulk"

    async def _discover_download_url(self) -> str:
        logger.info("Fetching bulk data download URL from Scryfall...")
        index = await self._get_json(BULK_DATA_URL)
        for entry in expect_list(index, "data", BULK_DATA_URL):
            if entry.get("type") == self._bulk_type and entry.get("download_uri"):
                return entry["download_uri"]
        raise FetchError(
            f"Could not find '{self._bulk_type}' bulk data entry from Scryfall",
            url=BULK_DATA_URL,
        )

    async def _fetch_bulk(self) -> List[Dict[str, Any]]:
        download_url = await self._discover_download_url()
        logger.info("Downloading bulk data from %s ...", download_url)
        data = await self._get_json(download_url, timeout=self._download_timeout)
        return expect_list(data, None, download_url)

    def normalize(self, raw: Dict[str, Any]) -> MTGCardRecord:
        return normalize_scryfall_card(raw)

    async def fetch_card(self, card_id: CardId) -> Dict[str, Any]:
        """Fetch one card from GET /cards/{id}."""
        url = f"{BASE_URL}/cards/{card_id}"
        data = await self._get_json(url)
        if not isinstance(data, dict):
            raise FetchError(f"Unexpected payload from {url}", url=url)
        return data


def _pick_image(image_uris: Optional[Dict[str, Any]]) -> Optional[str]:
    if not image_uris:
        return None
    for size in IMAGE_SIZE_PREFERENCE:
        if image_uris.get(size):
            return image_uris[size]
    return None


def normalize_scryfall_card(raw: Dict[str, Any]) -> MTGCardRecord:
    """Map a Scryfall card object to an MTGCardRecord."""
    card_id = str(require_field(raw, "id"))
    name = require_field(raw, "name")

    # Double-faced cards carry their images on the faces instead.
    image_uri = _pick_image(raw.get("image_uris"))
    if image_uri is None and raw.get("card_faces"):
        image_uri = _pick_image(raw["card_faces"][0].get("image_uris"))

    cmc = raw.get("cmc")
    if cmc is not None:
        try:
            cmc = float(cmc)
        except (TypeError, ValueError) as exc:
            raise NormalizationError(f"invalid cmc {cmc!r}", card_id=card_id) from exc

    return MTGCardRecord(
        id=card_id,
        name=name,
        set_code=raw.get("set"),
        collector_number=raw.get("collector_number"),
        rarity=raw.get("rarity"),
        type_line=raw.get("type_line"),
        oracle_text=raw.get("oracle_text"),
        layout=raw.get("layout"),
        foil=bool(raw.get("foil")),
        mana_cost=raw.get("mana_cost"),
        cmc=cmc,
        power=raw.get("power"),
        toughness=raw.get("toughness"),
        colors=list_or_empty(raw.get("colors")),
        image_uri=image_uri,
        prices=raw.get("prices"),
    )
