"""Tests for base and game-specific record models."""

import pytest

from catalog_sync.errors import NormalizationError
from catalog_sync.games.mtg.models import MTGCardRecord
from catalog_sync.games.pokemon.models import PokemonCardRecord
from catalog_sync.games.yugioh.models import YugiohCardRecord
from catalog_sync.models import (
    MAX_RECORDED_FAILURES,
    SyncResult,
    list_or_empty,
    require_field,
)


def test_record_tags():
    assert (MTGCardRecord.game, MTGCardRecord.table) == ("mtg", "cards")
    assert (PokemonCardRecord.game, PokemonCardRecord.table) == ("pokemon", "pokemon_cards")
    assert (YugiohCardRecord.game, YugiohCardRecord.table) == ("yugioh", "yugioh_cards")


def test_tags_are_not_columns():
    row = PokemonCardRecord(id="base1-4", name="Charizard").to_row()
    assert "game" not in row
    assert "table" not in row
    assert row["id"] == "base1-4"
    assert row["retreat_cost"] == 0
    assert row["last_updated"] is None


def test_row_is_a_copy():
    record = MTGCardRecord(id="a", name="A", colors=["W"])
    row = record.to_row()
    row["colors"].append("U")
    assert record.colors == ["W"]


def test_mtg_defaults():
    row = MTGCardRecord(id="a", name="A").to_row()
    assert row["foil"] is False
    assert row["colors"] == []
    assert row["set"] is None


def test_require_field():
    assert require_field({"name": "x"}, "name") == "x"
    with pytest.raises(NormalizationError):
        require_field({"name": ""}, "name")
    with pytest.raises(NormalizationError):
        require_field({}, "id")


def test_list_or_empty():
    assert list_or_empty(None) == []
    assert list_or_empty(("a",)) == ["a"]


def test_sync_result_summary():
    result = SyncResult(game="yugioh", source="ygoprodeck", table="yugioh_cards", started_at="t")
    result.synced = 12000
    result.add_failure(1, "Bad", "storage: rejected")
    assert result.complete
    assert result.summary_line() == "Synced 12000 yugioh cards to 'yugioh_cards' (1 failed)"


def test_sync_result_failure_cap():
    result = SyncResult(game="mtg", source="s", table="cards", started_at="t")
    for i in range(MAX_RECORDED_FAILURES + 10):
        result.add_failure(str(i), None, "boom")
    assert result.failed == MAX_RECORDED_FAILURES + 10
    assert len(result.failures) == MAX_RECORDED_FAILURES


def test_sync_result_to_dict():
    result = SyncResult(game="mtg", source="s", table="cards", started_at="t")
    result.stale_ids = ["x", "y"]
    data = result.to_dict()
    assert data["stale"] == 2
    assert data["aborted"] is None
