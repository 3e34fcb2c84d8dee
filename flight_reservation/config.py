"""Environment driven settings for the reservation core."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_DB_URL = "sqlite+pysqlite:///flights.db"
DEFAULT_LOG_LEVEL = "WARNING"
DEFAULT_BUSY_TIMEOUT = 30.0

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    """Runtime configuration resolved from ``FLIGHTS_*`` variables."""

    db_url: str = DEFAULT_DB_URL
    echo_sql: bool = False
    log_level: str = DEFAULT_LOG_LEVEL
    busy_timeout: float = DEFAULT_BUSY_TIMEOUT


def _as_bool(value: Optional[str]) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if environ is None else environ
    try:
        busy_timeout = float(env.get("FLIGHTS_BUSY_TIMEOUT", DEFAULT_BUSY_TIMEOUT))
    except ValueError as exc:
        raise ValueError("FLIGHTS_BUSY_TIMEOUT must be a number of seconds") from exc
    return Settings(
        db_url=env.get("FLIGHTS_DB_URL", DEFAULT_DB_URL),
        echo_sql=_as_bool(env.get("FLIGHTS_ECHO_SQL")),
        log_level=env.get("FLIGHTS_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
        busy_timeout=busy_timeout,
    )


def configure_logging(level: str = DEFAULT_LOG_LEVEL) -> None:
    """Install a root handler; used by the command line entry point."""

    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level '{level}'.")
    logging.basicConfig(level=numeric, format=_LOG_FORMAT)
