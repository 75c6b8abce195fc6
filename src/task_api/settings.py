from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import List, Tuple

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite://tasks.db"
DEFAULT_SQLITE_PATH = "tasks.db"


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - DATABASE_URL: 'sqlite://tasks.db' (default), 'sqlite://<path>', 'sqlite:///<absolute path>',
      'sqlite://:memory:' or 'memory://'
    - DB_POOL_SIZE: number of pooled SQLite connections. Default 5
    - HOST: bind address. Default '127.0.0.1'
    - PORT: bind port. Default 3000
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - LOG_LEVEL: root logging level. Default 'INFO'
    """

    database_url: str
    persistence_backend: str
    sqlite_db_path: str
    pool_size: int
    host: str
    port: int
    cors_allow_origins: List[str]
    log_level: str


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_int(value: str, default: int, minimum: int = 0) -> int:
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed >= minimum else default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def parse_database_url(url: str) -> Tuple[str, str]:
    """
    Split a connection URL into (backend, sqlite path).

    - 'memory://' or 'memory' -> ('memory', '')
    - 'sqlite://tasks.db' -> ('sqlite', 'tasks.db')
    - 'sqlite:///var/lib/tasks.db' -> ('sqlite', '/var/lib/tasks.db')
    - 'sqlite://:memory:' -> ('sqlite', ':memory:')

    Query strings are ignored. Unsupported schemes fall back to memory.
    """
    raw = url.strip()
    scheme, sep, rest = raw.partition(":")
    scheme = scheme.lower()

    if scheme == "memory":
        return "memory", ""

    if scheme == "sqlite" and sep:
        path = rest[2:] if rest.startswith("//") else rest
        path = path.split("?", 1)[0]
        return "sqlite", path or DEFAULT_SQLITE_PATH

    logger.warning("Unsupported DATABASE_URL %r; falling back to in-memory storage", raw)
    return "memory", ""


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    database_url = _get_env("DATABASE_URL", DEFAULT_DATABASE_URL).strip()
    backend, sqlite_path = parse_database_url(database_url)

    return Settings(
        database_url=database_url,
        persistence_backend=backend,
        sqlite_db_path=sqlite_path,
        pool_size=_parse_int(_get_env("DB_POOL_SIZE", "5"), 5, minimum=1),
        host=_get_env("HOST", "127.0.0.1").strip(),
        port=_parse_int(_get_env("PORT", "3000"), 3000),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
    )
