"""
SQL Intel Engine - Runtime Configuration
========================================

Settings are read from the process environment (optionally seeded from a
.env file via python-dotenv), the same way the backend reads DATABASE_URL.

ENVIRONMENT VARIABLES:
    SQLINTEL_LOG_LEVEL        Logging level for configure_logging() (WARNING)
    SQLINTEL_DEFAULT_SCHEMA   Schema assumed for unqualified names (dbo)
    SQLINTEL_MAX_SUGGESTIONS  Cap on completion items, 0 = unlimited (0)
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_LOG_LEVEL = "WARNING"
DEFAULT_SCHEMA = "dbo"
DEFAULT_MAX_SUGGESTIONS = 0

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass(frozen=True)
class EngineSettings:
    """
    Engine-wide settings.

    Attributes:
        log_level: Level name passed to logging.basicConfig
        default_schema: Schema used for unqualified names and hidden in display names
        max_suggestions: Maximum completion items returned (0 = no cap)
    """
    log_level: str = DEFAULT_LOG_LEVEL
    default_schema: str = DEFAULT_SCHEMA
    max_suggestions: int = DEFAULT_MAX_SUGGESTIONS


def _read_non_negative_int(var_name: str, default: int) -> int:
    raw = os.getenv(var_name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        logger.warning(f"[CONFIG] {var_name}={raw!r} is not an integer - using {default}")
        return default
    if value < 0:
        logger.warning(f"[CONFIG] {var_name}={value} is negative - using {default}")
        return default
    return value


def load_settings() -> EngineSettings:
    """Build settings from the environment (after loading .env, if present)."""
    load_dotenv()

    log_level = (os.getenv("SQLINTEL_LOG_LEVEL") or DEFAULT_LOG_LEVEL).strip().upper()
    default_schema = (os.getenv("SQLINTEL_DEFAULT_SCHEMA") or DEFAULT_SCHEMA).strip()
    max_suggestions = _read_non_negative_int("SQLINTEL_MAX_SUGGESTIONS", DEFAULT_MAX_SUGGESTIONS)

    settings = EngineSettings(
        log_level=log_level or DEFAULT_LOG_LEVEL,
        default_schema=default_schema or DEFAULT_SCHEMA,
        max_suggestions=max_suggestions,
    )
    logger.debug(f"[CONFIG] Loaded settings: {settings}")
    return settings


# Singleton instance
_settings: Optional[EngineSettings] = None


def get_settings() -> EngineSettings:
    """Get singleton settings instance"""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Forget cached settings so the next get_settings() re-reads the environment."""
    global _settings
    _settings = None


def configure_logging(level: Optional[str] = None) -> None:
    """
    Install a root handler for hosts that do not configure logging themselves.

    Args:
        level: Level name; defaults to the configured SQLINTEL_LOG_LEVEL
    """
    level_name = (level or get_settings().log_level).upper()
    numeric_level = logging.getLevelName(level_name)
    if not isinstance(numeric_level, int):
        logger.warning(f"[CONFIG] Unknown log level {level_name!r} - using {DEFAULT_LOG_LEVEL}")
        numeric_level = logging.getLevelName(DEFAULT_LOG_LEVEL)

    logging.basicConfig(level=numeric_level, format=LOG_FORMAT)
