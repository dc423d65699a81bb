import logging
import os
from typing import Any
from rich.logging import RichHandler
from sipdice.game.models import GameSessionConfig

# Fallback for every session setting that is not given explicitly
DEFAULT_GAME_CONFIG = GameSessionConfig(name="New Game", randomize_turn_order=False)

DATA_DIR = os.environ.get("SIPDICE_DATA_DIR", "data")
LOG_LEVEL = os.environ.get("SIPDICE_LOG_LEVEL", "WARNING")

def resolve_session_config(
    overrides: dict[str, Any] | None = None,
    base: GameSessionConfig | None = None
) -> GameSessionConfig:
    """
    Builds a session config field by field: explicit (non-None) overrides
    first, then the base config, then DEFAULT_GAME_CONFIG.
    """
    base = base or DEFAULT_GAME_CONFIG
    overrides = overrides or {}

    unknown = set(overrides) - set(GameSessionConfig.model_fields)
    if unknown:
        raise ValueError(f"Unknown session config fields: {', '.join(sorted(unknown))}")

    values = {}
    for field in GameSessionConfig.model_fields:
        value = overrides.get(field)
        values[field] = value if value is not None else getattr(base, field)
    return GameSessionConfig(**values)

def resolve_randomize_turn_order(
    override: bool | None,
    session_config: GameSessionConfig | None
) -> bool:
    """
    Precedence: per-call override > session config > default (False).
    """
    if override is not None:
        return override
    if session_config is not None:
        return session_config.randomize_turn_order
    return DEFAULT_GAME_CONFIG.randomize_turn_order

def setup_logging(level: str = LOG_LEVEL) -> None:
    level = level.upper()
    if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ValueError(f"Invalid log level: '{level}'")

    logging.basicConfig(
        level=level,
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)],
        force=True,
    )
