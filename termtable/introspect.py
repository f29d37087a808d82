"""Table listing and content fetching for the table browser."""

from __future__ import annotations

import logging
from datetime import date, datetime, time
from typing import Any, Iterable, Sequence

import asyncpg
from sqlglot import exp

from .errors import QueryConnectionError, QueryExecutionError
from .models import ConnectionProfile, TabularResult
from .prober import connect_kwargs

LOG = logging.getLogger(__name__)


class TableIntrospector:
    """Runs the catalog and select-everything queries via asyncpg."""

    _TABLES_QUERY = """
        SELECT table_name
        FROM information_schema.tables
        WHERE table_schema = current_schema()
        ORDER BY table_name
    """

    def __init__(self, *, connect_timeout: float = 5.0, row_limit: int | None = 1000) -> None:
        self._connect_timeout = connect_timeout
        self._row_limit = row_limit

    async def list_tables(self, profile: ConnectionProfile) -> tuple[str, ...]:
        """Names of tables in the profile's default schema."""

        conn = await self._connect(profile)
        try:
            rows = await conn.fetch(self._TABLES_QUERY)
        except Exception as exc:
            raise QueryExecutionError(f"Failed to list tables for '{profile.name}': {exc}") from exc
        finally:
            await _close_quietly(conn)
        return tuple(str(row["table_name"]) for row in rows)

    async def fetch_all(self, profile: ConnectionProfile, table_name: str) -> TabularResult:
        """Select every row of ``table_name`` with all cells stringified.

        ``table_name`` is only quoted, not validated: pass names returned by
        ``list_tables``.
        """

        statement = build_select_all(table_name, limit=self._row_limit)
        conn = await self._connect(profile)
        try:
            prepared = await conn.prepare(statement)
            columns = tuple(str(attribute.name) for attribute in prepared.get_attributes())
            records = await prepared.fetch()
        except Exception as exc:
            LOG.warning("Table fetch failed", extra={"connection": profile.name, "table": table_name})
            raise QueryExecutionError(f"Failed to read table '{table_name}': {exc}") from exc
        finally:
            await _close_quietly(conn)
        return TabularResult(columns=columns, rows=_stringify_rows(records, len(columns)))

    async def _connect(self, profile: ConnectionProfile) -> Any:
        try:
            return await asyncpg.connect(**connect_kwargs(profile, timeout=self._connect_timeout))
        except Exception as exc:
            raise QueryConnectionError(f"Failed to connect to '{profile.name}': {exc}") from exc


def build_select_all(table_name: str, *, limit: int | None = None) -> str:
    """Render ``SELECT * FROM "<table_name>"`` for PostgreSQL."""

    query = exp.select("*").from_(exp.table_(table_name, quoted=True))
    if limit is not None:
        query = query.limit(limit)
    return query.sql(dialect="postgres")


def format_cell(value: object) -> str:
    """Canonical string form for a single cell value."""

    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (bytes, bytearray, memoryview)):
        return "\\x" + bytes(value).hex()
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


def _stringify_rows(records: Iterable[Sequence[object]], width: int) -> tuple[tuple[str, ...], ...]:
    return tuple(tuple(format_cell(record[idx]) for idx in range(width)) for record in records)


async def _close_quietly(conn: Any) -> None:
    try:
        await conn.close()
    except Exception:  # pragma: no cover - best effort cleanup
        LOG.debug("Failed to close connection cleanly")


__all__ = ["TableIntrospector", "build_select_all", "format_cell"]
