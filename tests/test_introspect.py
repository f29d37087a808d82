"""Tests for table listing and content fetching."""

from __future__ import annotations

from datetime import date, datetime
from types import SimpleNamespace

import pytest

from termtable import introspect as introspect_module
from termtable.errors import QueryConnectionError, QueryExecutionError
from termtable.introspect import TableIntrospector, build_select_all, format_cell
from termtable.models import ConnectionProfile, TabularResult


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class _FakePrepared:
    def __init__(self, columns: list[str], rows: list[tuple[object, ...]], error: Exception | None) -> None:
        self._columns = columns
        self._rows = rows
        self._error = error

    def get_attributes(self) -> tuple[SimpleNamespace, ...]:
        return tuple(SimpleNamespace(name=name) for name in self._columns)

    async def fetch(self) -> list[tuple[object, ...]]:
        if self._error is not None:
            raise self._error
        return self._rows


class _FakeConnection:
    def __init__(self, database: _FakeDatabase) -> None:
        self._database = database

    async def fetch(self, query: str) -> list[dict[str, str]]:
        self._database.queries.append(query)
        if self._database.error is not None:
            raise self._database.error
        return [{"table_name": name} for name in self._database.tables]

    async def prepare(self, query: str) -> _FakePrepared:
        self._database.queries.append(query)
        return _FakePrepared(self._database.columns, self._database.rows, self._database.error)

    async def close(self) -> None:
        self._database.open_connections -= 1


class _FakeDatabase:
    def __init__(self) -> None:
        self.tables: list[str] = []
        self.columns: list[str] = []
        self.rows: list[tuple[object, ...]] = []
        self.error: Exception | None = None
        self.refuse = False
        self.open_connections = 0
        self.queries: list[str] = []

    async def connect(self, **kwargs):  # type: ignore[no-untyped-def]
        if self.refuse:
            raise ConnectionRefusedError("refused")
        self.open_connections += 1
        return _FakeConnection(self)


@pytest.fixture
def database(monkeypatch: pytest.MonkeyPatch) -> _FakeDatabase:
    fake = _FakeDatabase()
    monkeypatch.setattr(introspect_module.asyncpg, "connect", fake.connect)
    return fake


PROFILE = ConnectionProfile(name="local", host="db", port="5432", database="app", user="u", password="p")


@pytest.mark.anyio
async def test_list_tables_returns_names(database: _FakeDatabase) -> None:
    database.tables = ["orders", "users"]

    tables = await TableIntrospector().list_tables(PROFILE)

    assert tables == ("orders", "users")
    assert "information_schema.tables" in database.queries[0]
    assert database.open_connections == 0


@pytest.mark.anyio
async def test_list_tables_empty_database(database: _FakeDatabase) -> None:
    assert await TableIntrospector().list_tables(PROFILE) == ()


@pytest.mark.anyio
async def test_fetch_all_stringifies_rows(database: _FakeDatabase) -> None:
    database.columns = ["id", "name"]
    database.rows = [(1, "alice"), (2, "bob")]

    result = await TableIntrospector().fetch_all(PROFILE, "users")

    assert result == TabularResult(columns=("id", "name"), rows=(("1", "alice"), ("2", "bob")))
    assert database.queries == ['SELECT * FROM "users" LIMIT 1000']
    assert database.open_connections == 0


@pytest.mark.anyio
async def test_fetch_all_empty_table_keeps_columns(database: _FakeDatabase) -> None:
    database.columns = ["id"]

    result = await TableIntrospector(row_limit=None).fetch_all(PROFILE, "empty")

    assert result.columns == ("id",)
    assert result.row_count == 0
    assert database.queries == ['SELECT * FROM "empty"']


@pytest.mark.anyio
async def test_fetch_all_execution_error(database: _FakeDatabase) -> None:
    database.columns = ["id"]
    database.error = RuntimeError("permission denied")

    with pytest.raises(QueryExecutionError):
        await TableIntrospector().fetch_all(PROFILE, "secret")

    assert database.open_connections == 0


@pytest.mark.anyio
async def test_connection_error_is_distinct(database: _FakeDatabase) -> None:
    database.refuse = True
    introspector = TableIntrospector()

    with pytest.raises(QueryConnectionError):
        await introspector.list_tables(PROFILE)
    with pytest.raises(QueryConnectionError):
        await introspector.fetch_all(PROFILE, "users")


def test_build_select_all_quotes_identifier() -> None:
    assert build_select_all("Order Items") == 'SELECT * FROM "Order Items"'
    assert build_select_all("users", limit=5) == 'SELECT * FROM "users" LIMIT 5'


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, "NULL"),
        (True, "true"),
        (False, "false"),
        (b"\x01\xff", "\\x01ff"),
        (date(2024, 1, 2), "2024-01-02"),
        (datetime(2024, 1, 2, 3, 4, 5), "2024-01-02T03:04:05"),
        (42, "42"),
        ("text", "text"),
    ],
)
def test_format_cell(value: object, expected: str) -> None:
    assert format_cell(value) == expected
