"""Shared HTTP plumbing and the two retrieval strategies used by adapters.

``BulkSource`` pulls a whole catalog in one payload; ``PaginatedSource``
walks fixed-size pages until a short page comes back. Game adapters pick
one, point it at their endpoint and supply a normalizer.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, AsyncGenerator, Dict, List, Optional

import httpx

from catalog_sync.errors import FetchError
from catalog_sync.models import CardId, CardRecord

logger = logging.getLogger(__name__)

USER_AGENT = "CatalogSync/0.3"

DEFAULT_TIMEOUT = 60.0
MAX_ATTEMPTS = 3
BACKOFF_BASE = 1.0  # seconds: exponential backoff 1, 2, 4


class HttpSource(ABC):
    """Base for adapters that read JSON over HTTP GET.

    Transport errors, 429 and 5xx responses are retried with exponential
    backoff; any other non-success status fails immediately.
    """

    game: str = ""
    table: str = ""

    def __init__(
        self,
        rate_limit_ms: int = 0,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int = MAX_ATTEMPTS,
        backoff_s: float = BACKOFF_BASE,
        api_key: Optional[str] = None,
    ) -> None:
        self._rate_limit = rate_limit_ms / 1000.0
        self._timeout = timeout
        self._max_attempts = max(1, max_attempts)
        self._backoff = backoff_s
        self._api_key = api_key
        self._client: Optional[httpx.AsyncClient] = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Source name used in config and logs."""

    @abstractmethod
    def normalize(self, raw: Dict[str, Any]) -> CardRecord:
        """Map one raw record to the game's canonical record."""

    @abstractmethod
    async def fetch_card(self, card_id: CardId) -> Dict[str, Any]:
        """Fetch a single raw record by its upstream identifier."""

    def _headers(self) -> Dict[str, str]:
        return {"User-Agent": USER_AGENT}

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
                headers=self._headers(),
            )
        return self._client

    async def _throttle(self) -> None:
        if self._rate_limit > 0:
            await asyncio.sleep(self._rate_limit)

    async def _get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        client = self._get_client()
        await self._throttle()
        extra: Dict[str, Any] = {}
        if timeout is not None:
            extra["timeout"] = timeout

        reason = ""
        status: Optional[int] = None
        for attempt in range(1, self._max_attempts + 1):
            try:
                resp = await client.get(url, params=params, **extra)
            except httpx.TransportError as exc:
                reason = str(exc) or type(exc).__name__
                status = None
            else:
                status = resp.status_code
                if status == 429 or status >= 500:
                    reason = f"HTTP {status}"
                elif resp.is_error:
                    raise FetchError(f"GET {url} returned HTTP {status}", url=url, status=status)
                else:
                    try:
                        return resp.json()
                    except ValueError as exc:
                        raise FetchError(f"GET {url} returned invalid JSON: {exc}", url=url) from exc

            if attempt < self._max_attempts:
                delay = self._backoff * (2 ** (attempt - 1))
                logger.warning(
                    "%s: GET %s failed (%s), retry %d/%d in %.1fs",
                    self.name, url, reason, attempt, self._max_attempts - 1, delay,
                )
                await asyncio.sleep(delay)

        raise FetchError(
            f"GET {url} failed after {self._max_attempts} attempt(s): {reason}",
            url=url,
            status=status,
        )

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()


class BulkSource(HttpSource):
    """Fetches the entire catalog in one shot, then yields it."""

    @abstractmethod
    async def _fetch_bulk(self) -> List[Dict[str, Any]]:
        """Return every raw record of the catalog."""

    async def iter_records(self) -> AsyncGenerator[Dict[str, Any], None]:
        records = await self._fetch_bulk()
        logger.info("%s: fetched %d records", self.name, len(records))
        for raw in records:
            yield raw


class PaginatedSource(HttpSource):
    """Requests numbered pages until one comes back short.

    Pages are 1-based. Records are yielded page by page, so a failure on
    page N leaves pages 1..N-1 already handed to the caller.
    """

    endpoint: str = ""
    DEFAULT_PAGE_SIZE = 250

    def __init__(self, page_size: int = DEFAULT_PAGE_SIZE, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._page_size = page_size

    @property
    def page_size(self) -> int:
        return self._page_size

    def _page_params(self, page: int) -> Dict[str, Any]:
        return {"page": page, "pageSize": self._page_size}

    def _page_records(self, data: Any) -> List[Dict[str, Any]]:
        return expect_list(data, "data", self.endpoint)

    async def iter_records(self) -> AsyncGenerator[Dict[str, Any], None]:
        page = 1
        total = 0
        while True:
            data = await self._get_json(self.endpoint, params=self._page_params(page))
            records = self._page_records(data)
            total += len(records)
            logger.info("%s: page %d -> %d records", self.name, page, len(records))
            for raw in records:
                yield raw
            if len(records) != self._page_size:
                break
            page += 1
        logger.info("%s: fetched %d records over %d page(s)", self.name, total, page)


def expect_list(data: Any, key: Optional[str], url: str) -> List[Dict[str, Any]]:
    """Pull the record list out of a response payload or raise FetchError."""
    payload = data.get(key) if key is not None and isinstance(data, dict) else data
    if not isinstance(payload, list):
        raise FetchError(f"Unexpected payload from {url}: expected a list under '{key}'", url=url)
    return payload
