"""
Shared configuration for PartLink core.
"""

from __future__ import annotations

import logging
import os

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("partlink")


def _get_bool(env_name: str, default: bool) -> bool:
    value = os.environ.get(env_name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(env_name: str, default: int) -> int:
    value = os.environ.get(env_name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


# Database settings
DB_BACKEND = os.environ.get("DB_BACKEND", "postgres").strip().lower()
SQLITE_PATH = os.environ.get("SQLITE_PATH", "/data/partlink.db")
DATABASE_URL = os.environ.get("DATABASE_URL")

# Database initialization controls
AUTO_MIGRATE_ON_STARTUP = _get_bool("AUTO_MIGRATE_ON_STARTUP", True)

# Request/input limits
MAX_RESULT_LIMIT = _get_int("PARTLINK_MAX_RESULT_LIMIT", 100)
MAX_TEXT_LENGTH = _get_int("PARTLINK_MAX_TEXT_LENGTH", 8000)
# other_type and part names are varchar(255) columns
MAX_SHORT_TEXT_LENGTH = _get_int("PARTLINK_MAX_SHORT_TEXT_LENGTH", 255)

# Display label used for OTHER associations that lack an override
UNKNOWN_LABEL = os.environ.get("PARTLINK_UNKNOWN_LABEL", "Unknown")

AUDIT_ENABLED = _get_bool("AUDIT_ENABLED", True)


def validate_and_prepare_config() -> None:
    """Validate configuration and apply derived settings at startup."""
    global DATABASE_URL

    errors = []
    if DB_BACKEND not in {"postgres", "sqlite"}:
        errors.append("DB_BACKEND must be 'postgres' or 'sqlite'")

    if not DATABASE_URL:
        if DB_BACKEND == "sqlite":
            if not SQLITE_PATH:
                errors.append("SQLITE_PATH environment variable is required for sqlite")
            else:
                DATABASE_URL = f"sqlite:///{SQLITE_PATH}"
        else:
            errors.append("DATABASE_URL environment variable is required")
    else:
        is_sqlite_url = DATABASE_URL.lower().startswith("sqlite")
        if DB_BACKEND == "sqlite" and not is_sqlite_url:
            errors.append("DATABASE_URL must be a sqlite URL when DB_BACKEND=sqlite")
        if DB_BACKEND == "postgres" and is_sqlite_url:
            errors.append("DATABASE_URL must be a postgres URL when DB_BACKEND=postgres")

    if MAX_RESULT_LIMIT <= 0:
        errors.append("PARTLINK_MAX_RESULT_LIMIT must be positive")
    if MAX_SHORT_TEXT_LENGTH > 255:
        logger.warning(
            "PARTLINK_MAX_SHORT_TEXT_LENGTH exceeds the 255 character column width"
        )

    if errors:
        raise RuntimeError("Configuration invalid: " + "; ".join(errors))
