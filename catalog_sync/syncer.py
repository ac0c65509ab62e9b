"""Core sync orchestrator. Drives one adapter and one sink through a full pass."""

from __future__ import annotations

import inspect
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Set

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from catalog_sync.adapters import CardSourceAdapter, get_adapter_class
from catalog_sync.config import AppConfig, SourceConfig
from catalog_sync.errors import FetchError, StorageError
from catalog_sync.models import CardId, CardRecord, SyncResult
from catalog_sync.sink import CardSink, create_sink

logger = logging.getLogger(__name__)
console = Console()


class Syncer:
    """Orchestrates one sync pass for the configured game:
    1. Pull every raw record from the game's source
    2. Normalize each record
    3. Upsert it into the game's table
    4. Tally successes and failures
    5. Optionally report or prune rows that vanished upstream

    Records are handled one at a time; a write finishes before the next
    record is fetched or normalized.
    """

    def __init__(
        self,
        config: AppConfig,
        sink: Optional[CardSink] = None,
        adapter: Optional[CardSourceAdapter] = None,
        show_progress: bool = False,
    ) -> None:
        self._config = config
        self._game = config.game
        self._game_cfg = config.active_game
        self._sink = sink
        self._adapter = adapter
        self._show_progress = show_progress

    @property
    def adapter(self) -> CardSourceAdapter:
        if self._adapter is None:
            raise RuntimeError("Syncer.setup() has not been called")
        return self._adapter

    @property
    def sink(self) -> CardSink:
        if self._sink is None:
            raise RuntimeError("Syncer.setup() has not been called")
        return self._sink

    @property
    def table(self) -> str:
        return self._game_cfg.table or self.adapter.table

    async def setup(self) -> None:
        """Initialize the adapter and sink from config.

        Raises ConfigError when a required storage credential is missing.
        """
        if self._sink is None:
            self._sink = create_sink(self._config.storage)
        if self._adapter is None:
            src_cfg = self._game_cfg.source
            cls = get_adapter_class(self._game, src_cfg.name)
            self._adapter = _instantiate_adapter(cls, src_cfg)
        logger.info("Loaded adapter: %s -> table %s", self.adapter.name, self.table)

    async def teardown(self) -> None:
        """Close the adapter and the sink."""
        for resource in (self._adapter, self._sink):
            if resource is None:
                continue
            try:
                await resource.close()
            except Exception as exc:
                logger.warning("Error while closing %s: %s", type(resource).__name__, exc)

    async def run(self, limit: Optional[int] = None) -> SyncResult:
        """Execute one pass. Never raises for upstream or storage failures.

        A FetchError ends the pass early and is reported through
        ``SyncResult.aborted``; records written before it stay written.
        """
        adapter = self.adapter
        result = SyncResult(
            game=self._game,
            source=adapter.name,
            table=self.table,
            started_at=_now(),
        )
        seen: Set[CardId] = set()
        abort_on_error = self._game_cfg.on_record_error == "abort"

        progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            TextColumn("{task.completed} records"),
            TimeElapsedColumn(),
            console=console,
            disable=not self._show_progress,
        )
        records = adapter.iter_records()
        try:
            with progress:
                task = progress.add_task(f"[cyan]{self._game}", total=None)
                if limit is None or limit > 0:
                    async for raw in records:
                        result.fetched += 1
                        error = await self._sync_record(raw, result, seen)
                        progress.advance(task)
                        if error and abort_on_error:
                            result.aborted = f"record failed: {error}"
                            break
                        # Stop before the source is asked for another page
                        if limit is not None and result.fetched >= limit:
                            logger.info("Reached limit of %d records", limit)
                            break
        except FetchError as exc:
            logger.error("%s: fetch failed, pass aborted: %s", adapter.name, exc)
            result.aborted = f"fetch failed: {exc}"
        finally:
            await records.aclose()

        if result.complete and limit is None:
            await self._apply_stale_policy(seen, result)

        result.finished_at = _now()
        if result.complete:
            logger.info(result.summary_line())
        else:
            logger.error(result.summary_line())
        return result

    async def sync_card(self, card_id: CardId) -> CardRecord:
        """Fetch one card from the source, normalize it and upsert it."""
        raw = await self.adapter.fetch_card(card_id)
        record = self.adapter.normalize(raw)
        await self.sink.upsert(self.table, record)
        logger.info("Saved %s '%s' to %s", record.id, record.name, self.table)
        return record

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _sync_record(
        self, raw: Dict[str, Any], result: SyncResult, seen: Set[CardId]
    ) -> Optional[str]:
        """Normalize and write one record; return an error message on failure."""
        raw_id = raw.get("id") if isinstance(raw, dict) else None
        raw_name = raw.get("name") if isinstance(raw, dict) else None
        try:
            record = self.adapter.normalize(raw)
        except Exception as exc:
            logger.warning("Failed to normalize card %s (%s): %s", raw_id, raw_name or "?", exc)
            result.add_failure(raw_id, raw_name, f"normalize: {exc}")
            return str(exc)

        seen.add(record.id)
        try:
            await self.sink.upsert(self.table, record)
        except StorageError as exc:
            logger.warning("Error upserting %s (%s): %s", record.id, record.name, exc)
            result.add_failure(record.id, record.name, f"storage: {exc}")
            return str(exc)

        result.synced += 1
        return None

    async def _apply_stale_policy(self, seen: Set[CardId], result: SyncResult) -> None:
        policy = self._game_cfg.stale_policy
        if policy == "ignore":
            return

        try:
            stored = await self.sink.list_ids(self.table)
        except StorageError as exc:
            logger.error("Could not list stored ids for stale check: %s", exc)
            return

        result.stale_ids = [cid for cid in stored if cid not in seen]
        if not result.stale_ids:
            return
        logger.warning(
            "%d row(s) in %s no longer appear upstream", len(result.stale_ids), self.table
        )

        if policy != "prune":
            return
        if result.failed:
            # Failed normalizations hide ids that do exist upstream
            logger.warning("Skipping prune: %d record(s) failed this pass", result.failed)
            return
        try:
            result.pruned = await self.sink.delete_cards(self.table, result.stale_ids)
        except StorageError as exc:
            logger.error("Pruning stale rows failed: %s", exc)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _instantiate_adapter(cls: type, cfg: SourceConfig) -> CardSourceAdapter:
    """Create an adapter instance with config-appropriate kwargs."""
    kwargs: Dict[str, Any] = {
        "rate_limit_ms": cfg.rate_limit_ms,
        "timeout": cfg.timeout,
        "max_attempts": cfg.max_attempts,
        "backoff_s": cfg.backoff_s,
        "api_key": cfg.api_key(),
    }
    params = inspect.signature(cls.__init__).parameters
    if "page_size" in params:
        kwargs["page_size"] = cfg.page_size
    if "bulk_type" in params:
        kwargs["bulk_type"] = cfg.bulk_type
    return cls(**kwargs)
