"""Tests for the YGOPRODeck adapter."""

import httpx
import pytest
import respx

from catalog_sync.errors import FetchError, NormalizationError
from catalog_sync.games.yugioh.adapters.ygoprodeck import (
    CARDINFO_URL,
    YgoprodeckAdapter,
    normalize_ygoprodeck_card,
)


DARK_MAGICIAN = {
    "id": 46986414,
    "name": "Dark Magician",
    "type": "Normal Monster",
    "frameType": "normal",
    "desc": "The ultimate wizard in terms of attack and defense.",
    "atk": 2500,
    "def": 2100,
    "level": 7,
    "race": "Spellcaster",
    "attribute": "DARK",
    "archetype": "Dark Magician",
    "card_sets": [{"set_name": "Legend of Blue Eyes White Dragon", "set_code": "LOB-005"}],
    "card_images": [{"id": 46986414, "image_url": "https://images.ygoprodeck.com/images/cards/46986414.jpg"}],
    "card_prices": [{"tcgplayer_price": "0.24"}],
}

LINK_MONSTER = {
    "id": "1861629",
    "name": "Decode Talker",
    "type": "Link Monster",
    "frameType": "link",
    "atk": 2300,
    "race": "Cyberse",
    "attribute": "DARK",
    "linkval": 3,
    "linkmarkers": ["Top", "Bottom-Left", "Bottom-Right"],
}

POT_OF_GREED = {
    "id": 55144522,
    "name": "Pot of Greed",
    "type": "Spell Card",
    "frameType": "spell",
    "desc": "Draw 2 cards.",
    "race": "Normal",
}


class TestNormalizeYgoprodeckCard:
    def test_monster(self):
        card = normalize_ygoprodeck_card(DARK_MAGICIAN)
        assert card.id == 46986414
        assert card.frame_type == "normal"
        assert card.atk == 2500
        assert card.defense == 2100
        assert card.level == 7
        assert card.archetype == "Dark Magician"
        assert card.card_sets[0]["set_code"] == "LOB-005"

    def test_row_uses_def_column(self):
        row = normalize_ygoprodeck_card(DARK_MAGICIAN).to_row()
        assert row["def"] == 2100
        assert "defense" not in row
        assert row["frame_type"] == "normal"

    def test_string_id_becomes_int(self):
        card = normalize_ygoprodeck_card(LINK_MONSTER)
        assert card.id == 1861629
        assert card.linkval == 3
        assert card.defense is None

    def test_spell_defaults(self):
        row = normalize_ygoprodeck_card(POT_OF_GREED).to_row()
        assert row["atk"] is None
        assert row["def"] is None
        assert row["linkmarkers"] == []
        assert row["card_images"] == []
        assert row["card_prices"] == []

    def test_non_integer_id_is_rejected(self):
        with pytest.raises(NormalizationError):
            normalize_ygoprodeck_card(dict(POT_OF_GREED, id="abc"))


@pytest.fixture
def adapter():
    return YgoprodeckAdapter(max_attempts=1)


@respx.mock
async def test_iter_records_single_request(respx_mock, adapter):
    route = respx_mock.get(CARDINFO_URL).mock(
        return_value=httpx.Response(200, json={"data": [DARK_MAGICIAN, POT_OF_GREED]})
    )
    records = [raw async for raw in adapter.iter_records()]
    assert len(records) == 2
    assert route.call_count == 1
    await adapter.close()


@respx.mock
async def test_unexpected_payload_raises(respx_mock, adapter):
    respx_mock.get(CARDINFO_URL).mock(
        return_value=httpx.Response(200, json={"error": "maintenance"})
    )
    with pytest.raises(FetchError, match="Unexpected payload"):
        [raw async for raw in adapter.iter_records()]
    await adapter.close()


@respx.mock
async def test_fetch_card(respx_mock, adapter):
    route = respx_mock.get(host="db.ygoprodeck.com", path="/api/v7/cardinfo.php").mock(
        return_value=httpx.Response(200, json={"data": [DARK_MAGICIAN]})
    )
    raw = await adapter.fetch_card(46986414)
    assert raw["name"] == "Dark Magician"
    assert route.calls.last.request.url.params["id"] == "46986414"
    await adapter.close()


@respx.mock
async def test_fetch_unknown_card(respx_mock, adapter):
    respx_mock.get(host="db.ygoprodeck.com", path="/api/v7/cardinfo.php").mock(
        return_value=httpx.Response(400, json={"error": "No card matching your query was found"})
    )
    with pytest.raises(FetchError):
        await adapter.fetch_card(1)
    await adapter.close()


def test_adapter_tags(adapter):
    assert adapter.name == "ygoprodeck"
    assert adapter.table == "yugioh_cards"
