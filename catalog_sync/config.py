"""Multi-game YAML configuration loader and validation."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from catalog_sync.adapters import DEFAULT_SOURCES, known_adapters, known_games
from catalog_sync.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config.yaml")

RECORD_ERROR_POLICIES = ("continue", "abort")
STALE_POLICIES = ("ignore", "report", "prune")
STORAGE_BACKENDS = ("supabase", "memory")


@dataclass
class SourceConfig:
    """Configuration for the upstream source of one game."""

    name: str
    rate_limit_ms: int = 0
    timeout: float = 60.0
    max_attempts: int = 3
    backoff_s: float = 1.0
    page_size: int = 250  # paginated sources only
    bulk_type: str = "default_cards"  # Scryfall only
    api_key_env: Optional[str] = None

    def api_key(self, environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
        """Return the upstream API key from the environment, if one is configured."""
        if not self.api_key_env:
            return None
        env = os.environ if environ is None else environ
        return env.get(self.api_key_env) or None


@dataclass
class GameConfig:
    """Configuration for a single game's sync job."""

    source: SourceConfig
    table: Optional[str] = None  # None: the record type's default table
    on_record_error: str = "continue"  # "continue" or "abort"
    stale_policy: str = "ignore"  # "ignore", "report" or "prune"


@dataclass
class StorageConfig:
    """Where normalized records are written."""

    backend: str = "supabase"
    url_env: str = "SUPABASE_URL"
    key_env: str = "SUPABASE_SERVICE_ROLE_KEY"
    timeout: float = 30.0

    def credentials(self, environ: Optional[Mapping[str, str]] = None) -> Tuple[str, str]:
        """Return (url, key) or raise ConfigError naming what is missing."""
        env = os.environ if environ is None else environ
        url = env.get(self.url_env, "")
        key = env.get(self.key_env, "")
        missing = [name for name, value in ((self.url_env, url), (self.key_env, key)) if not value]
        if missing:
            raise ConfigError(
                f"Missing required environment variable(s): {', '.join(missing)}"
            )
        return url, key


@dataclass
class StateConfig:
    """Run history persistence settings."""

    history_file: str = "./state/sync-history.json"


def default_games() -> Dict[str, GameConfig]:
    return {
        "mtg": GameConfig(source=SourceConfig(name="scryfall-bulk")),
        "pokemon": GameConfig(
            source=SourceConfig(name="pokemontcg-api", api_key_env="POKEMON_TCG_API_KEY"),
        ),
        "yugioh": GameConfig(source=SourceConfig(name="ygoprodeck")),
    }


@dataclass
class AppConfig:
    """Top-level application configuration."""

    game: str = "mtg"  # Default game to sync
    games: Dict[str, GameConfig] = field(default_factory=dict)
    storage: StorageConfig = field(default_factory=StorageConfig)
    state: StateConfig = field(default_factory=StateConfig)

    def __post_init__(self) -> None:
        if not self.games:
            self.games = default_games()

    @property
    def active_game(self) -> GameConfig:
        """Return the GameConfig for the currently selected game."""
        return self.games[self.game]

    @property
    def source(self) -> SourceConfig:
        return self.active_game.source


def load_config(path: Optional[Path] = None, game: Optional[str] = None) -> AppConfig:
    """Load configuration from a YAML file, falling back to defaults."""
    config_path = path or DEFAULT_CONFIG_PATH
    if not config_path.exists():
        logger.info("No config file at %s, using defaults", config_path)
        config = AppConfig()
    else:
        logger.info("Loading config from %s", config_path)
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Config error: cannot parse {config_path}: {exc}") from exc
        if raw is not None and not isinstance(raw, dict):
            raise ConfigError(f"Config error: {config_path} must contain a mapping")
        config = _parse_config(raw) if raw else AppConfig()

    # CLI game override
    if game:
        config.game = game

    _validate_config(config)
    return config


def _parse_config(raw: Dict[str, Any]) -> AppConfig:
    """Parse raw YAML dict into AppConfig.

    Malformed values (wrong types, non-numeric numbers) raise ConfigError
    naming the block they came from.
    """
    config = AppConfig()

    if "game" in raw:
        config.game = str(raw["game"])

    # Per-game blocks override the built-in defaults game by game
    games_raw = raw.get("games") or {}
    if not isinstance(games_raw, dict):
        raise ConfigError("Config error: 'games' must be a mapping of game name to settings")
    for game_name, game_raw in games_raw.items():
        try:
            config.games[game_name] = _parse_game_config(game_name, game_raw or {})
        except (TypeError, ValueError, AttributeError) as exc:
            raise ConfigError(f"Config error: invalid settings for game '{game_name}': {exc}") from exc

    try:
        if "storage" in raw:
            st = raw["storage"] or {}
            config.storage = StorageConfig(
                backend=str(st.get("backend", config.storage.backend)),
                url_env=st.get("url_env", config.storage.url_env),
                key_env=st.get("key_env", config.storage.key_env),
                timeout=float(st.get("timeout", config.storage.timeout)),
            )

        if "state" in raw:
            st = raw["state"] or {}
            config.state = StateConfig(
                history_file=st.get("history_file", config.state.history_file),
            )
    except (TypeError, ValueError, AttributeError) as exc:
        raise ConfigError(f"Config error: invalid storage or state settings: {exc}") from exc

    return config


def _parse_game_config(game: str, raw: Dict[str, Any]) -> GameConfig:
    """Parse a game-specific config block."""
    base = default_games().get(game)
    src_raw = raw.get("source") or {}
    if isinstance(src_raw, str):
        src_raw = {"name": src_raw}

    default_src = base.source if base else SourceConfig(name=DEFAULT_SOURCES.get(game, ""))
    source = SourceConfig(
        name=src_raw.get("name", default_src.name),
        rate_limit_ms=int(src_raw.get("rate_limit_ms", default_src.rate_limit_ms)),
        timeout=float(src_raw.get("timeout", default_src.timeout)),
        max_attempts=int(src_raw.get("max_attempts", default_src.max_attempts)),
        backoff_s=float(src_raw.get("backoff_s", default_src.backoff_s)),
        page_size=int(src_raw.get("page_size", default_src.page_size)),
        bulk_type=src_raw.get("bulk_type", default_src.bulk_type),
        api_key_env=src_raw.get("api_key_env", default_src.api_key_env),
    )

    return GameConfig(
        source=source,
        table=raw.get("table"),
        on_record_error=str(raw.get("on_record_error", "continue")),
        stale_policy=str(raw.get("stale_policy", "ignore")),
    )


def _validate_config(config: AppConfig) -> None:
    """Validate config and raise on errors."""
    if config.game not in config.games:
        raise ConfigError(
            f"Config error: active game '{config.game}' not found in games config. "
            f"Available: {list(config.games.keys())}"
        )
    if config.game not in known_games():
        raise ConfigError(
            f"Config error: unsupported game '{config.game}'. Known: {known_games()}"
        )

    game_cfg = config.active_game
    known = known_adapters(config.game)
    if game_cfg.source.name not in known:
        raise ConfigError(
            f"Config error: unknown source '{game_cfg.source.name}' for game '{config.game}'. "
            f"Known: {known}"
        )

    if game_cfg.on_record_error not in RECORD_ERROR_POLICIES:
        raise ConfigError(
            f"Config error: on_record_error must be one of {RECORD_ERROR_POLICIES}, "
            f"got '{game_cfg.on_record_error}'"
        )
    if game_cfg.stale_policy not in STALE_POLICIES:
        raise ConfigError(
            f"Config error: stale_policy must be one of {STALE_POLICIES}, "
            f"got '{game_cfg.stale_policy}'"
        )
    if game_cfg.source.page_size <= 0:
        raise ConfigError("Config error: page_size must be positive")
    if config.storage.backend not in STORAGE_BACKENDS:
        raise ConfigError(
            f"Config error: storage backend must be one of {STORAGE_BACKENDS}, "
            f"got '{config.storage.backend}'"
        )

    logger.info(
        "Config validated: game=%s, source=%s, storage=%s",
        config.game,
        game_cfg.source.name,
        config.storage.backend,
    )
