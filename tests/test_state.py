"""Tests for the run history file."""

import json

from catalog_sync.models import SyncResult
from catalog_sync.state import HISTORY_LIMIT, RunHistory


def _result(game="mtg", synced=10, failed=0, aborted=None):
    return SyncResult(
        game=game,
        source="scryfall-bulk",
        table="cards",
        started_at="2024-10-19T00:00:00+00:00",
        finished_at="2024-10-19T00:05:00+00:00",
        fetched=synced + failed,
        synced=synced,
        failed=failed,
        aborted=aborted,
    )


def test_history_fresh(tmp_path):
    history = RunHistory(str(tmp_path / "history.json"))
    assert history.runs == {}
    assert history.last_run("mtg") is None


def test_record_and_reload(tmp_path):
    path = str(tmp_path / "state" / "history.json")
    RunHistory(path).record(_result(synced=5, failed=1))

    reloaded = RunHistory(path)
    last = reloaded.last_run("mtg")
    assert last["synced"] == 5
    assert last["failed"] == 1
    assert last["aborted"] is None


def test_history_is_capped(tmp_path):
    history = RunHistory(str(tmp_path / "history.json"))
    for i in range(HISTORY_LIMIT + 5):
        history.record(_result(synced=i))
    assert len(history.runs["mtg"]) == HISTORY_LIMIT
    assert history.last_run("mtg")["synced"] == HISTORY_LIMIT + 4


def test_summary_per_game(tmp_path):
    history = RunHistory(str(tmp_path / "history.json"))
    history.record(_result(game="mtg", synced=1))
    history.record(_result(game="mtg", synced=2))
    history.record(_result(game="yugioh", aborted="fetch failed"))
    summary = history.summary()
    assert summary["mtg"]["synced"] == 2
    assert summary["mtg"]["runs"] == 2
    assert summary["yugioh"]["aborted"] == "fetch failed"


def test_delete(tmp_path):
    path = tmp_path / "history.json"
    history = RunHistory(str(path))
    history.record(_result())
    assert path.exists()
    history.delete()
    assert not path.exists()
    assert history.runs == {}


def test_corrupt_file(tmp_path):
    path = tmp_path / "history.json"
    path.write_text("not valid json!!!")
    assert RunHistory(str(path)).runs == {}


def test_wrong_shape(tmp_path):
    path = tmp_path / "history.json"
    path.write_text(json.dumps({"games": ["mtg"]}))
    assert RunHistory(str(path)).runs == {}


def test_file_is_human_readable(tmp_path):
    path = tmp_path / "history.json"
    RunHistory(str(path)).record(_result())
    data = json.loads(path.read_text())
    assert data["games"]["mtg"][0]["table"] == "cards"
