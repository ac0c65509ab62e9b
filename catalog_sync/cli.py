"""CLI interface for the multi-game catalog sync."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from catalog_sync.adapters import get_adapter_class, known_games
from catalog_sync.config import AppConfig, load_config
from catalog_sync.errors import ConfigError, SyncError
from catalog_sync.models import CardRecord, SyncResult
from catalog_sync.sink import create_sink
from catalog_sync.state import RunHistory
from catalog_sync.syncer import Syncer

console = Console()


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the CLI."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    # Set up logging
    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose >= 2:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )

    if not hasattr(args, "func"):
        parser.print_help()
        return

    try:
        code = args.func(args)
    except ConfigError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        sys.exit(1)
    except SyncError as exc:
        console.print(f"[red]Error: {escape(str(exc))}[/red]")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted; rerun to start a fresh pass[/yellow]")
        sys.exit(130)
    if code:
        sys.exit(code)


def sync_magic() -> None:
    """``sync-magic``: one MTG pass."""
    _game_job("mtg", sys.argv[1:])


def sync_pokemon() -> None:
    """``sync-pokemon``: one Pokémon pass."""
    _game_job("pokemon", sys.argv[1:])


def sync_yugioh() -> None:
    """``sync-yugioh``: one Yu-Gi-Oh! pass."""
    _game_job("yugioh", sys.argv[1:])


def _game_job(game: str, argv: List[str]) -> None:
    """Run ``sync`` for one game, moving global options ahead of the subcommand."""
    pre = argparse.ArgumentParser(prog="catalog-sync", add_help=False)
    pre.add_argument("-c", "--config")
    pre.add_argument("-v", "--verbose", action="count", default=0)
    known, sync_args = pre.parse_known_args(argv)

    global_args = ["-v"] * (1 + known.verbose)
    if known.config:
        global_args += ["-c", known.config]
    main([*global_args, "--game", game, "sync", *sync_args])


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="catalog-sync",
        description="Sync MTG, Pokémon and Yu-Gi-Oh! card catalogs into Supabase",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v info, -vv debug)",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to config.yaml (default: config.yaml)",
    )
    parser.add_argument(
        "--game",
        type=str,
        default=None,
        choices=known_games(),
        help="Game to sync (overrides config default)",
    )

    subparsers = parser.add_subparsers(title="commands", dest="command")

    # sync
    sync_parser = subparsers.add_parser("sync", help="Run one full sync pass")
    sync_parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Stop after this many upstream records",
    )
    sync_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Fetch and normalize, but write to an in-memory store",
    )
    sync_parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit non-zero if any record failed",
    )
    sync_parser.set_defaults(func=_cmd_sync)

    # status
    status_parser = subparsers.add_parser("status", help="Show the last pass per game")
    status_parser.set_defaults(func=_cmd_status)

    # lookup
    lookup_parser = subparsers.add_parser("lookup", help="Show a stored card by id")
    lookup_parser.add_argument("card_id", help="Card id (Scryfall UUID, pokemontcg id or passcode)")
    lookup_parser.set_defaults(func=_cmd_lookup)

    # search
    search_parser = subparsers.add_parser("search", help="Search stored cards by name")
    search_parser.add_argument("name", help="Case-insensitive name fragment")
    search_parser.add_argument("--limit", type=int, default=20)
    search_parser.set_defaults(func=_cmd_search)

    # fetch
    fetch_parser = subparsers.add_parser(
        "fetch", help="Fetch one card from the upstream API and store it"
    )
    fetch_parser.add_argument("card_id", help="Upstream card id")
    fetch_parser.set_defaults(func=_cmd_fetch)

    return parser


def _load_app_config(args: argparse.Namespace) -> AppConfig:
    """Load config, applying CLI overrides."""
    game = getattr(args, "game", None)
    config = load_config(args.config, game=game)
    if getattr(args, "dry_run", False):
        config.storage.backend = "memory"
    return config


def _table_for(config: AppConfig) -> str:
    return config.active_game.table or get_adapter_class(config.game, config.source.name).table


def _coerce_id(config: AppConfig, card_id: str) -> Any:
    # Yu-Gi-Oh! tables are keyed by integer passcode
    if config.game == "yugioh" and card_id.isdigit():
        return int(card_id)
    return card_id


# ------------------------------------------------------------------
# Command handlers
# ------------------------------------------------------------------


def _cmd_sync(args: argparse.Namespace) -> int:
    config = _load_app_config(args)
    console.print(f"[bold]Game: {config.game}[/bold]")
    if config.storage.backend == "memory":
        console.print("[yellow]Dry run: nothing will be written to storage[/yellow]")

    result = asyncio.run(_run_sync(config, limit=args.limit))
    if config.storage.backend != "memory":
        RunHistory(config.state.history_file).record(result)
    _print_result(result)

    if not result.complete:
        return 1
    if args.strict and result.failed:
        return 1
    return 0


async def _run_sync(config: AppConfig, limit: Optional[int] = None) -> SyncResult:
    syncer = Syncer(config, show_progress=True)
    try:
        await syncer.setup()
        return await syncer.run(limit=limit)
    finally:
        await syncer.teardown()


def _print_result(result: SyncResult) -> None:
    style = "green" if result.complete and not result.failed else "yellow"
    if not result.complete:
        style = "red"
    console.print(f"[bold {style}]{escape(result.summary_line())}[/bold {style}]")
    if result.stale_ids:
        console.print(
            f"{len(result.stale_ids)} stored card(s) no longer upstream"
            + (f", {result.pruned} pruned" if result.pruned else "")
        )
    for failure in result.failures[:10]:
        console.print(f"  [red]FAILED[/red] {failure.card_id} {escape(failure.name or '')}: {escape(failure.error)}")
    if result.failed > 10:
        console.print(f"  ... and {result.failed - 10} more")


def _cmd_status(args: argparse.Namespace) -> int:
    config = _load_app_config(args)
    history = RunHistory(config.state.history_file)
    summary = history.summary()

    if not summary:
        console.print("No sync runs recorded yet")
        return 0

    table = Table(title="Last Sync Per Game")
    table.add_column("Game", style="cyan")
    table.add_column("Table")
    table.add_column("Synced", justify="right", style="green")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("Stale", justify="right")
    table.add_column("Finished")
    table.add_column("Result")
    for game, run in sorted(summary.items()):
        table.add_row(
            game,
            run["table"],
            str(run["synced"]),
            str(run["failed"]),
            str(run.get("stale", 0)),
            run.get("finished_at") or "never",
            "aborted" if run.get("aborted") else "ok",
        )
    console.print(table)
    return 0


def _cmd_lookup(args: argparse.Namespace) -> int:
    config = _load_app_config(args)
    row = asyncio.run(_with_sink(config, "get_card", _table_for(config), _coerce_id(config, args.card_id)))
    if row is None:
        console.print(f"[yellow]No {config.game} card with id {args.card_id}[/yellow]")
        return 1
    console.print_json(json.dumps(row, ensure_ascii=False))
    return 0


def _cmd_search(args: argparse.Namespace) -> int:
    config = _load_app_config(args)
    rows = asyncio.run(
        _with_sink(config, "search_by_name", _table_for(config), args.name, args.limit)
    )
    table = Table(title=f"{config.game} cards matching '{args.name}'")
    table.add_column("Id", style="cyan")
    table.add_column("Name")
    table.add_column("Updated")
    for row in rows:
        table.add_row(str(row.get("id")), str(row.get("name")), str(row.get("last_updated") or ""))
    console.print(table)
    return 0


def _cmd_fetch(args: argparse.Namespace) -> int:
    config = _load_app_config(args)
    record = asyncio.run(_fetch_one(config, _coerce_id(config, args.card_id)))
    console.print(f"[green]Saved[/green] {record.id} {record.name}")
    return 0


async def _fetch_one(config: AppConfig, card_id: Any) -> CardRecord:
    syncer = Syncer(config)
    try:
        await syncer.setup()
        return await syncer.sync_card(card_id)
    finally:
        await syncer.teardown()


async def _with_sink(config: AppConfig, method: str, *call_args: Any) -> Any:
    sink = create_sink(config.storage)
    try:
        return await getattr(sink, method)(*call_args)
    finally:
        await sink.close()
