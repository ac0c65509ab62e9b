"""Tests for the shared HTTP fetch behaviour (retries, errors)."""

import httpx
import pytest
import respx

from catalog_sync.errors import FetchError
from catalog_sync.games.yugioh.adapters.ygoprodeck import CARDINFO_URL, YgoprodeckAdapter
from catalog_sync.sources import BulkSource, PaginatedSource, expect_list


def _adapter(attempts=3):
    return YgoprodeckAdapter(max_attempts=attempts, backoff_s=0)


@respx.mock
async def test_retries_server_errors(respx_mock):
    adapter = _adapter()
    route = respx_mock.get(CARDINFO_URL).mock(side_effect=[
        httpx.Response(503),
        httpx.Response(429),
        httpx.Response(200, json={"data": [{"id": 1, "name": "A"}]}),
    ])
    records = [raw async for raw in adapter.iter_records()]
    assert len(records) == 1
    assert route.call_count == 3
    await adapter.close()


@respx.mock
async def test_retries_transport_errors(respx_mock):
    adapter = _adapter()
    route = respx_mock.get(CARDINFO_URL).mock(side_effect=[
        httpx.ConnectError("connection refused"),
        httpx.Response(200, json={"data": []}),
    ])
    assert [raw async for raw in adapter.iter_records()] == []
    assert route.call_count == 2
    await adapter.close()


@respx.mock
async def test_gives_up_after_max_attempts(respx_mock):
    adapter = _adapter(attempts=2)
    route = respx_mock.get(CARDINFO_URL).mock(side_effect=httpx.ReadTimeout("too slow"))
    with pytest.raises(FetchError, match="2 attempt"):
        [raw async for raw in adapter.iter_records()]
    assert route.call_count == 2
    await adapter.close()


@respx.mock
async def test_client_errors_are_not_retried(respx_mock):
    adapter = _adapter()
    route = respx_mock.get(CARDINFO_URL).mock(return_value=httpx.Response(403))
    with pytest.raises(FetchError) as excinfo:
        [raw async for raw in adapter.iter_records()]
    assert excinfo.value.status == 403
    assert route.call_count == 1
    await adapter.close()


@respx.mock
async def test_invalid_json(respx_mock):
    adapter = _adapter()
    respx_mock.get(CARDINFO_URL).mock(return_value=httpx.Response(200, content=b"<html>"))
    with pytest.raises(FetchError, match="invalid JSON"):
        [raw async for raw in adapter.iter_records()]
    await adapter.close()


def test_expect_list():
    assert expect_list({"data": [1, 2]}, "data", "u") == [1, 2]
    assert expect_list([3], None, "u") == [3]
    with pytest.raises(FetchError):
        expect_list({"data": None}, "data", "u")
    with pytest.raises(FetchError):
        expect_list("nope", "data", "u")


def test_source_without_hooks_cannot_be_built():
    class HalfSource(BulkSource):
        @property
        def name(self):
            return "half"

    with pytest.raises(TypeError, match="_fetch_bulk"):
        HalfSource()


def test_paginated_source_requires_normalizer():
    class NoNormalizer(PaginatedSource):
        endpoint = "https://cards.example/v1/cards"

        @property
        def name(self):
            return "no-normalizer"

        async def fetch_card(self, card_id):
            return {}

    with pytest.raises(TypeError, match="normalize"):
        NoNormalizer(page_size=10)
