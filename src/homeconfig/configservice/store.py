"""SQLite-backed storage for home screen configurations."""

from __future__ import annotations

import json
import sqlite3
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from homeconfig.common.logging import get_logger

logger = get_logger(__name__)

SCHEMA_VERSION = 1


class ConfigurationNotFound(Exception):
    """Configuration does not exist or belongs to another caller."""

    def __init__(self, config_id: str):
        super().__init__(f"Configuration not found or access denied: {config_id}")
        self.config_id = config_id


@dataclass(frozen=True)
class ConfigurationRecord:
    """A stored configuration as exposed over the API."""

    id: str
    schema_version: int
    updated_at: str
    data: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "schemaVersion": self.schema_version,
            "updatedAt": self.updated_at,
            "data": self.data,
        }


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ConfigurationStore:
    """Per-owner configuration storage in a single SQLite file."""

    def __init__(self, path: str) -> None:
        self._path = Path(path)
        if str(path) != ":memory:":
            self._path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(path), check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode = WAL")
        self._conn.execute(
            "CREATE TABLE IF NOT EXISTS configurations ("
            "id TEXT PRIMARY KEY,"
            "schema_version INTEGER NOT NULL DEFAULT 1,"
            "created_at TEXT NOT NULL,"
            "updated_at TEXT NOT NULL,"
            "created_by TEXT NOT NULL,"
            "updated_by TEXT NOT NULL,"
            "data TEXT NOT NULL"
            ")"
        )
        self._conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_owner_updated "
            "ON configurations (created_by, updated_at)"
        )
        self._conn.commit()
        logger.info("Configuration store ready", path=str(path))

    def close(self) -> None:
        self._conn.close()

    @staticmethod
    def _row_to_record(row: tuple[Any, ...]) -> ConfigurationRecord:
        config_id, schema_version, updated_at, data_json = row
        return ConfigurationRecord(
            id=config_id,
            schema_version=schema_version,
            updated_at=updated_at,
            data=json.loads(data_json),
        )

    def list_for_owner(self, owner: str) -> list[ConfigurationRecord]:
        """All configurations created by ``owner``, newest first."""
        rows = self._conn.execute(
            "SELECT id, schema_version, updated_at, data FROM configurations "
            "WHERE created_by = ? ORDER BY updated_at DESC, rowid DESC",
            (owner,),
        ).fetchall()
        return [self._row_to_record(row) for row in rows]

    def get(self, config_id: str, owner: str) -> ConfigurationRecord | None:
        row = self._conn.execute(
            "SELECT id, schema_version, updated_at, data FROM configurations "
            "WHERE id = ? AND created_by = ?",
            (config_id, owner),
        ).fetchone()
        if not row:
            return None
        return self._row_to_record(row)

    def create(self, owner: str, data: dict[str, Any]) -> ConfigurationRecord:
        config_id = str(uuid.uuid4())
        now = _utc_now()
        self._conn.execute(
            "INSERT INTO configurations "
            "(id, schema_version, created_at, updated_at, created_by, updated_by, data) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (config_id, SCHEMA_VERSION, now, now, owner, owner, json.dumps(data)),
        )
        self._conn.commit()
        return ConfigurationRecord(
            id=config_id,
            schema_version=SCHEMA_VERSION,
            updated_at=now,
            data=data,
        )

    def update(self, config_id: str, owner: str, data: dict[str, Any]) -> ConfigurationRecord:
        """Replace the data of an owned configuration.

        Raises:
            ConfigurationNotFound: If no configuration with this id is owned by ``owner``
        """
        now = _utc_now()
        cursor = self._conn.execute(
            "UPDATE configurations SET data = ?, updated_at = ?, updated_by = ? "
            "WHERE id = ? AND created_by = ?",
            (json.dumps(data), now, owner, config_id, owner),
        )
        self._conn.commit()
        if cursor.rowcount == 0:
            raise ConfigurationNotFound(config_id)
        return ConfigurationRecord(
            id=config_id,
            schema_version=SCHEMA_VERSION,
            updated_at=now,
            data=data,
        )

    def delete(self, config_id: str, owner: str) -> bool:
        cursor = self._conn.execute(
            "DELETE FROM configurations WHERE id = ? AND created_by = ?",
            (config_id, owner),
        )
        self._conn.commit()
        return cursor.rowcount > 0
