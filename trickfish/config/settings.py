"""
Settings Configuration

Centralized runtime configuration for the tournament engine.
All settings are loaded from environment variables (a local .env is honoured).
"""
import os
import logging

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

RULER_DRAW_MODES = ("sequential", "random")


def get_bool_env(key: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ('true', '1', 'yes', 'on', 'enabled')


def get_choice_env(key: str, choices: tuple, default: str) -> str:
    """Get a value restricted to `choices`, falling back to `default`."""
    value = os.getenv(key, default).strip().lower()
    if value not in choices:
        logger.warning(f"Unsupported {key}={value!r}, using default {default!r}")
        return default
    return value


class Settings:
    """
    Runtime settings for the application.

    DATABASE_URL       async SQLAlchemy URL
    DB_ECHO            echo SQL statements
    LOG_LEVEL          DEBUG|INFO|WARNING|ERROR
    RULER_DRAW_MODE    sequential|random
    """

    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./trickfish.db")
    DB_ECHO: bool = get_bool_env("DB_ECHO", False)
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    RULER_DRAW_MODE: str = get_choice_env("RULER_DRAW_MODE", RULER_DRAW_MODES, "sequential")

    @classmethod
    def as_dict(cls) -> dict:
        """Snapshot of the current settings (for diagnostics)."""
        return {
            "DATABASE_URL": cls.DATABASE_URL,
            "DB_ECHO": cls.DB_ECHO,
            "LOG_LEVEL": cls.LOG_LEVEL,
            "RULER_DRAW_MODE": cls.RULER_DRAW_MODE,
        }


settings = Settings
