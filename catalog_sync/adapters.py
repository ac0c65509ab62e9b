"""Base protocol for card source adapters and adapter registry."""

from __future__ import annotations

import importlib
from typing import Any, AsyncGenerator, Dict, Protocol, Type, runtime_checkable

from catalog_sync.models import CardId, CardRecord


@runtime_checkable
class CardSourceAdapter(Protocol):
    """Protocol that all card source adapters must satisfy.

    Adapters are discovered by name from YAML config and instantiated
    by the sync orchestrator.  Each adapter knows how to pull the full
    catalog of one game from one external source and how to normalize
    that source's raw records into the game's CardRecord subclass.
    """

    game: str
    table: str

    @property
    def name(self) -> str:
        """Human-readable adapter name for logging."""
        ...

    def iter_records(self) -> AsyncGenerator[Dict[str, Any], None]:
        """Yield every raw upstream record of the current catalog."""
        ...

    def normalize(self, raw: Dict[str, Any]) -> CardRecord:
        """Map one raw record to its canonical record. Pure."""
        ...

    async def fetch_card(self, card_id: CardId) -> Dict[str, Any]:
        """Fetch a single raw record by its upstream identifier."""
        ...

    async def close(self) -> None:
        """Clean up any resources (HTTP clients, etc.)."""
        ...


# Unified adapter registry: game -> { adapter_name -> qualified class name }
_ADAPTER_REGISTRY: Dict[str, Dict[str, str]] = {
    "mtg": {
        "scryfall-bulk": "catalog_sync.games.mtg.adapters.scryfall_bulk.ScryfallBulkAdapter",
    },
    "pokemon": {
        "pokemontcg-api": "catalog_sync.games.pokemon.adapters.pokemontcg_api.PokemonTcgApiAdapter",
    },
    "yugioh": {
        "ygoprodeck": "catalog_sync.games.yugioh.adapters.ygoprodeck.YgoprodeckAdapter",
    },
}

# Source used for a game when the config does not name one
DEFAULT_SOURCES: Dict[str, str] = {
    "mtg": "scryfall-bulk",
    "pokemon": "pokemontcg-api",
    "yugioh": "ygoprodeck",
}


def get_adapter_class(game: str, name: str) -> Type[CardSourceAdapter]:
    """Import and return the adapter class for a game and source name."""
    game_adapters = _ADAPTER_REGISTRY.get(game)
    if game_adapters is None:
        raise ValueError(
            f"Unknown game '{game}'. Available: {list(_ADAPTER_REGISTRY.keys())}"
        )
    qualified = game_adapters.get(name)
    if qualified is None:
        raise ValueError(
            f"Unknown adapter '{name}' for game '{game}'. "
            f"Available: {list(game_adapters.keys())}"
        )
    module_path, class_name = qualified.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)


def known_games() -> list[str]:
    return list(_ADAPTER_REGISTRY.keys())


def known_adapters(game: str) -> set[str]:
    """Return the set of known adapter names for a game."""
    game_adapters = _ADAPTER_REGISTRY.get(game, {})
    return set(game_adapters.keys())
