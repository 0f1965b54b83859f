"""Runtime configuration from the environment."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

DB_FILENAME = "everest-data.db"
DISABLED_DB_VALUES = {"none", "off", ""}
TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class AppConfig:
    """Resolved application settings."""

    db_path: Path | str | None
    debug_unlock_all: bool = False
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AppConfig:
        """Read configuration from environment variables."""
        env = os.environ if environ is None else environ
        return cls(
            db_path=parse_db_path(env.get("EVEREST_DB"), env),
            debug_unlock_all=env.get("EVEREST_DEBUG_UNLOCK_ALL", "").strip().lower() in TRUE_VALUES,
            log_level=env.get("EVEREST_LOG_LEVEL", "WARNING").strip().upper() or "WARNING",
        )


def parse_db_path(value: str | None, environ: Mapping[str, str] | None = None) -> Path | str | None:
    """Interpret a database setting: a path, `:memory:`, or a value disabling persistence."""
    if value is None:
        return default_db_path(environ)
    stripped = value.strip()
    if stripped.lower() in DISABLED_DB_VALUES:
        return None
    if stripped == ":memory:":
        return stripped
    return Path(stripped).expanduser()


def default_db_path(environ: Mapping[str, str] | None = None) -> Path:
    """Return the per-user data location of the progress database."""
    env = os.environ if environ is None else environ
    data_home = env.get("XDG_DATA_HOME", "").strip()
    base = Path(data_home) if data_home else Path.home() / ".local" / "share"
    return base / "everest" / DB_FILENAME
