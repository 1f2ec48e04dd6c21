"""On-disk locations of the local document store and the blob listing cache."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import optional_env_var

DOCUMENT_STORE_FILENAME: Final[str] = "documents.db"
LISTING_CACHE_FILENAME: Final[str] = "listing_cache.db"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path

    def _file(self, name: str) -> Path:
        root = self.data_dir.expanduser().resolve()
        root.mkdir(parents=True, exist_ok=True)
        return root / name

    def database_path(self) -> Path:
        return self._file(DOCUMENT_STORE_FILENAME)

    def http_cache_path(self) -> Path:
        return self._file(LISTING_CACHE_FILENAME)


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def get_storage_config() -> StorageConfig:
    """Data dir from ``DRIVERVERIFY_DATA_DIR``, else ``$XDG_DATA_HOME/driververify``."""

    configured = optional_env_var("DRIVERVERIFY_DATA_DIR")
    if configured:
        return StorageConfig(data_dir=Path(configured))
    xdg_home = os.getenv("XDG_DATA_HOME")
    base = Path(xdg_home) if xdg_home else Path.home() / ".local" / "share"
    return StorageConfig(data_dir=base / "driververify")


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    """``DATABASE_URI`` when set, else a SQLite file in the data dir."""

    uri = optional_env_var("DATABASE_URI")
    if uri is None:
        uri = f"sqlite+pysqlite:///{(storage or get_storage_config()).database_path()}"
    return DatabaseConfig(uri=uri)
