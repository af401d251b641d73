"""Where catalogsync keeps its replica database and HTTP response cache.

``DATABASE_URI`` wins when set. Otherwise both files live in one data
directory: ``CATALOGSYNC_DATA_DIR`` or ``$XDG_DATA_HOME/catalogsync``.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import optional_env_var

DATA_DIR_NAME: Final[str] = "catalogsync"
REPLICA_FILENAME: Final[str] = "catalogsync.db"
HTTP_CACHE_FILENAME: Final[str] = "catalog_http_cache.db"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path

    def _file(self, filename: str) -> Path:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        return self.data_dir / filename

    def replica_uri(self) -> str:
        return f"sqlite+pysqlite:///{self._file(REPLICA_FILENAME)}"

    def http_cache_path(self) -> Path:
        return self._file(HTTP_CACHE_FILENAME)


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def get_storage_config() -> StorageConfig:
    configured = optional_env_var("CATALOGSYNC_DATA_DIR")
    if configured is not None:
        data_dir = Path(configured)
    else:
        xdg_data_home = optional_env_var("XDG_DATA_HOME")
        base = Path(xdg_data_home) if xdg_data_home else Path.home() / ".local" / "share"
        data_dir = base / DATA_DIR_NAME
    return StorageConfig(data_dir=data_dir.expanduser().resolve())


def get_database_config() -> DatabaseConfig:
    uri = optional_env_var("DATABASE_URI")
    return DatabaseConfig(uri=uri or get_storage_config().replica_uri())
