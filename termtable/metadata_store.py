"""Durable key/value store for the non-secret half of connection profiles."""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from pydantic import TypeAdapter, ValidationError

from .errors import CorruptRecordError, StoreIOError, StoreNotFoundError
from .models import MetadataRecord

LOG = logging.getLogger(__name__)

TABLE_NAME = "connections_v1"

# Field order is fixed by the table version: host, port, database.
_RECORD_ADAPTER: TypeAdapter[tuple[str, str, str]] = TypeAdapter(tuple[str, str, str])


def encode_record(record: MetadataRecord) -> str:
    """Serialize a record into the stored JSON array form."""

    return _RECORD_ADAPTER.dump_json((record.host, record.port, record.database)).decode("utf-8")


def decode_record(value: str) -> MetadataRecord:
    """Parse a stored value; anything but exactly three strings is corrupt."""

    try:
        host, port, database = _RECORD_ADAPTER.validate_json(value, strict=True)
    except ValidationError as exc:
        raise CorruptRecordError(f"Malformed metadata value: {value!r}") from exc
    return MetadataRecord(host=host, port=port, database=database)


class MetadataStore:
    """Single-table SQLite store mapping connection name to metadata."""

    def __init__(self, path: Path, *, timeout: float = 5.0) -> None:
        self._path = Path(path)
        self._timeout = timeout
        self._write_lock = threading.Lock()
        try:
            self._path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
            self._path.touch(mode=0o600, exist_ok=True)
            with self._connect() as conn:
                self._ensure_table(conn)
        except (OSError, sqlite3.Error) as exc:
            raise StoreIOError(f"Could not open metadata store at {self._path}: {exc}") from exc

    @property
    def path(self) -> Path:
        return self._path

    def put(self, name: str, record: MetadataRecord) -> None:
        """Upsert ``record`` under ``name`` in a single transaction."""

        self.put_raw(name, encode_record(record))

    def put_raw(self, name: str, value: str) -> None:
        """Store an already-encoded value (maintenance and test helper)."""

        with self._write_lock:
            try:
                with self._connect() as conn:
                    conn.execute("BEGIN IMMEDIATE")
                    try:
                        self._ensure_table(conn)
                        conn.execute(
                            f"INSERT INTO {TABLE_NAME} (name, value) VALUES (?, ?) "
                            "ON CONFLICT(name) DO UPDATE SET value = excluded.value",
                            (name, value),
                        )
                    except sqlite3.Error:
                        conn.execute("ROLLBACK")
                        raise
                    conn.execute("COMMIT")
            except sqlite3.Error as exc:
                raise StoreIOError(f"Failed to write metadata for '{name}': {exc}") from exc

    def get(self, name: str) -> MetadataRecord:
        try:
            with self._connect() as conn:
                row = conn.execute(f"SELECT value FROM {TABLE_NAME} WHERE name = ?", (name,)).fetchone()
        except sqlite3.Error as exc:
            raise StoreIOError(f"Failed to read metadata for '{name}': {exc}") from exc
        if row is None:
            raise StoreNotFoundError(f"No metadata stored for '{name}'")
        return decode_record(row[0])

    def delete(self, name: str) -> None:
        """Remove ``name``; deleting an absent key succeeds."""

        with self._write_lock:
            try:
                with self._connect() as conn:
                    conn.execute("BEGIN IMMEDIATE")
                    conn.execute(f"DELETE FROM {TABLE_NAME} WHERE name = ?", (name,))
                    conn.execute("COMMIT")
            except sqlite3.Error as exc:
                raise StoreIOError(f"Failed to delete metadata for '{name}': {exc}") from exc

    def list_all(self) -> list[tuple[str, MetadataRecord]]:
        """Scan every record in key order, skipping malformed values."""

        try:
            with self._connect() as conn:
                rows = conn.execute(f"SELECT name, value FROM {TABLE_NAME} ORDER BY name").fetchall()
        except sqlite3.Error as exc:
            raise StoreIOError(f"Failed to list metadata: {exc}") from exc
        records: list[tuple[str, MetadataRecord]] = []
        for name, value in rows:
            try:
                records.append((name, decode_record(value)))
            except CorruptRecordError:
                LOG.warning("Skipping malformed metadata record", extra={"connection": name})
        return records

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._path, timeout=self._timeout, isolation_level=None)
        try:
            yield conn
        finally:
            conn.close()

    @staticmethod
    def _ensure_table(conn: sqlite3.Connection) -> None:
        conn.execute(f"CREATE TABLE IF NOT EXISTS {TABLE_NAME} (name TEXT PRIMARY KEY, value TEXT NOT NULL)")


__all__ = ["MetadataStore", "TABLE_NAME", "decode_record", "encode_record"]
