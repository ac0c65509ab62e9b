"""Upsert sinks: where canonical records are written.

``SupabaseSink`` talks to a Supabase project's PostgREST endpoint;
``MemorySink`` keeps rows in process (dry runs and tests). Both stamp
``last_updated`` at write time and replace existing rows in full.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, runtime_checkable

import httpx

from catalog_sync.config import StorageConfig
from catalog_sync.errors import StorageError
from catalog_sync.models import CardId, CardRecord
from catalog_sync.sources import USER_AGENT

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_LIMIT = 20
ID_PAGE_SIZE = 1000
DELETE_CHUNK_SIZE = 200


@runtime_checkable
class CardSink(Protocol):
    """Storage operations the syncer and CLI rely on."""

    async def upsert(self, table: str, record: CardRecord) -> None:
        ...

    async def get_card(self, table: str, card_id: CardId) -> Optional[Dict[str, Any]]:
        ...

    async def search_by_name(
        self, table: str, name: str, limit: int = DEFAULT_SEARCH_LIMIT
    ) -> List[Dict[str, Any]]:
        ...

    async def get_cards(self, table: str, card_ids: Sequence[CardId]) -> List[Dict[str, Any]]:
        ...

    async def list_ids(self, table: str) -> List[CardId]:
        ...

    async def delete_cards(self, table: str, card_ids: Sequence[CardId]) -> int:
        ...

    async def close(self) -> None:
        ...


def stamp(record: CardRecord) -> Dict[str, Any]:
    """Set ``last_updated`` to now (UTC) and return the record's full row."""
    record.last_updated = datetime.now(timezone.utc).isoformat()
    return record.to_row()


class SupabaseSink:
    """Writes rows through PostgREST (``/rest/v1``) with a service-role key.

    Upserts use ``Prefer: resolution=merge-duplicates`` on the ``id``
    conflict target. Every column is always sent, so an upsert replaces
    the stored row rather than patching it.
    """

    def __init__(self, url: str, key: str, timeout: float = 30.0) -> None:
        self._base_url = url.rstrip("/") + "/rest/v1"
        self._key = key
        self._timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers={
                    "apikey": self._key,
                    "Authorization": f"Bearer {self._key}",
                    "User-Agent": USER_AGENT,
                },
            )
        return self._client

    async def _request(
        self,
        method: str,
        table: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        client = self._get_client()
        try:
            resp = await client.request(
                method, f"/{table}", params=params, json=json, headers=headers
            )
        except httpx.HTTPError as exc:
            raise StorageError(f"{method} {table} failed: {exc}", table=table) from exc
        if resp.is_error:
            raise StorageError(
                f"{method} {table} rejected with HTTP {resp.status_code}: {_error_detail(resp)}",
                table=table,
                status=resp.status_code,
            )
        return resp

    async def upsert(self, table: str, record: CardRecord) -> None:
        row = stamp(record)
        await self._request(
            "POST",
            table,
            params={"on_conflict": "id"},
            json=row,
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )

    async def get_card(self, table: str, card_id: CardId) -> Optional[Dict[str, Any]]:
        resp = await self._request(
            "GET", table, params={"select": "*", "id": f"eq.{card_id}"}
        )
        rows = resp.json()
        return rows[0] if rows else None

    async def search_by_name(
        self, table: str, name: str, limit: int = DEFAULT_SEARCH_LIMIT
    ) -> List[Dict[str, Any]]:
        resp = await self._request(
            "GET",
            table,
            params={
                "select": "*",
                "name": f"ilike.*{name}*",
                "order": "name",
                "limit": limit,
            },
        )
        return resp.json()

    async def get_cards(self, table: str, card_ids: Sequence[CardId]) -> List[Dict[str, Any]]:
        if not card_ids:
            return []
        resp = await self._request(
            "GET", table, params={"select": "*", "id": _in_filter(card_ids)}
        )
        return resp.json()

    async def list_ids(self, table: str) -> List[CardId]:
        ids: List[CardId] = []
        offset = 0
        while True:
            resp = await self._request(
                "GET",
                table,
                params={"select": "id", "order": "id", "limit": ID_PAGE_SIZE, "offset": offset},
            )
            rows = resp.json()
            ids.extend(row["id"] for row in rows)
            if len(rows) < ID_PAGE_SIZE:
                return ids
            offset += ID_PAGE_SIZE

    async def delete_cards(self, table: str, card_ids: Sequence[CardId]) -> int:
        deleted = 0
        for start in range(0, len(card_ids), DELETE_CHUNK_SIZE):
            chunk = card_ids[start:start + DELETE_CHUNK_SIZE]
            await self._request(
                "DELETE",
                table,
                params={"id": _in_filter(chunk)},
                headers={"Prefer": "return=minimal"},
            )
            deleted += len(chunk)
        logger.info("Deleted %d rows from %s", deleted, table)
        return deleted

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()


class MemorySink:
    """In-process table store with the same upsert semantics."""

    def __init__(self) -> None:
        self.tables: Dict[str, Dict[CardId, Dict[str, Any]]] = {}

    def rows(self, table: str) -> Dict[CardId, Dict[str, Any]]:
        return self.tables.setdefault(table, {})

    async def upsert(self, table: str, record: CardRecord) -> None:
        row = stamp(record)
        self.rows(table)[row["id"]] = row

    async def get_card(self, table: str, card_id: CardId) -> Optional[Dict[str, Any]]:
        row = self.rows(table).get(card_id)
        if row is None and isinstance(card_id, str) and card_id.isdigit():
            row = self.rows(table).get(int(card_id))
        return dict(row) if row is not None else None

    async def search_by_name(
        self, table: str, name: str, limit: int = DEFAULT_SEARCH_LIMIT
    ) -> List[Dict[str, Any]]:
        needle = name.lower()
        matches = [
            dict(row) for row in self.rows(table).values()
            if needle in str(row.get("name", "")).lower()
        ]
        matches.sort(key=lambda r: r["name"])
        return matches[:limit]

    async def get_cards(self, table: str, card_ids: Sequence[CardId]) -> List[Dict[str, Any]]:
        stored = self.rows(table)
        return [dict(stored[cid]) for cid in card_ids if cid in stored]

    async def list_ids(self, table: str) -> List[CardId]:
        return sorted(self.rows(table).keys(), key=str)

    async def delete_cards(self, table: str, card_ids: Sequence[CardId]) -> int:
        stored = self.rows(table)
        deleted = 0
        for cid in card_ids:
            if stored.pop(cid, None) is not None:
                deleted += 1
        return deleted

    async def close(self) -> None:
        pass


def _in_filter(card_ids: Iterable[CardId]) -> str:
    """Build a PostgREST ``in.(...)`` filter, quoting string ids."""
    parts = []
    for cid in card_ids:
        if isinstance(cid, int):
            parts.append(str(cid))
        else:
            escaped = str(cid).replace("\\", "\\\\").replace('"', '\\"')
            parts.append(f'"{escaped}"')
    return f"in.({','.join(parts)})"


def _error_detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(body, dict):
        return str(body.get("message") or body.get("hint") or body)
    return str(body)[:200]


def create_sink(storage: StorageConfig, environ: Optional[Mapping[str, str]] = None) -> CardSink:
    """Build the configured sink; raises ConfigError when credentials are missing."""
    if storage.backend == "memory":
        return MemorySink()
    url, key = storage.credentials(environ)
    return SupabaseSink(url, key, timeout=storage.timeout)
