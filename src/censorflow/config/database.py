"""Where the review store keeps its database."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import env_bool, optional_env_var

REVIEW_DB_FILENAME: Final[str] = "reviews.db"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    """Connection settings for the SQL review store."""

    uri: str
    echo: bool = False

    @property
    def is_sqlite(self) -> bool:
        return self.uri.startswith("sqlite")

    @classmethod
    def from_environment(cls) -> DatabaseConfig:
        return get_database_config()


def review_data_dir() -> Path:
    """``CENSORFLOW_DATA_DIR``, else ``censorflow`` under the XDG data home."""

    explicit = optional_env_var("CENSORFLOW_DATA_DIR")
    if explicit:
        return Path(explicit).expanduser().resolve()
    base = optional_env_var("XDG_DATA_HOME")
    base_path = Path(base) if base else Path.home() / ".local" / "share"
    return (base_path / "censorflow").expanduser().resolve()


def sqlite_review_uri(data_dir: Path | None = None) -> str:
    directory = data_dir or review_data_dir()
    directory.mkdir(parents=True, exist_ok=True)
    return f"sqlite+pysqlite:///{directory / REVIEW_DB_FILENAME}"


def get_database_config() -> DatabaseConfig:
    """``DATABASE_URI`` wins; otherwise reviews live in a sqlite file in the data dir."""

    return DatabaseConfig(
        uri=optional_env_var("DATABASE_URI") or sqlite_review_uri(),
        echo=env_bool("CENSORFLOW_DATABASE_ECHO", False),
    )


def get_database_uri() -> str:
    return get_database_config().uri
