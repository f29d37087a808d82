"""Shared dataclasses used across the registry, database helpers, and screens."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum


class ConnectionStatus(str, Enum):
    """Reachability of a profile, derived by probing and never persisted."""

    UNKNOWN = "unknown"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class TestOutcome(str, Enum):
    """Result of a connectivity probe."""

    __test__ = False

    PASSED = "passed"
    FAILED = "failed"
    NA = "na"


@dataclass(frozen=True, slots=True)
class MetadataRecord:
    """Non-secret fields persisted in the metadata store."""

    host: str
    port: str
    database: str


@dataclass(frozen=True, slots=True)
class Credentials:
    """Secret fields persisted in the OS secret store."""

    user: str
    password: str


@dataclass(frozen=True, slots=True)
class ConnectionProfile:
    """Runtime representation of a connection profile."""

    name: str
    host: str = ""
    port: str = ""
    database: str = ""
    user: str = ""
    password: str = ""
    status: ConnectionStatus = ConnectionStatus.UNKNOWN

    @property
    def metadata(self) -> MetadataRecord:
        return MetadataRecord(host=self.host, port=self.port, database=self.database)

    @property
    def credentials(self) -> Credentials:
        return Credentials(user=self.user, password=self.password)

    def with_status(self, status: ConnectionStatus) -> ConnectionProfile:
        return replace(self, status=status)

    def with_outcome(self, outcome: TestOutcome) -> ConnectionProfile:
        """Return a copy whose status reflects a probe outcome."""

        if outcome is TestOutcome.PASSED:
            return self.with_status(ConnectionStatus.CONNECTED)
        return self.with_status(ConnectionStatus.DISCONNECTED)

    def with_credentials(self, credentials: Credentials) -> ConnectionProfile:
        return replace(self, user=credentials.user, password=credentials.password)

    @classmethod
    def from_record(cls, name: str, record: MetadataRecord) -> ConnectionProfile:
        return cls(name=name, host=record.host, port=record.port, database=record.database)


@dataclass(frozen=True, slots=True)
class TabularResult:
    """Generic string-typed table used to render arbitrary query output."""

    columns: tuple[str, ...] = ()
    rows: tuple[tuple[str, ...], ...] = ()

    @property
    def row_count(self) -> int:
        return len(self.rows)


__all__ = [
    "ConnectionProfile",
    "ConnectionStatus",
    "Credentials",
    "MetadataRecord",
    "TabularResult",
    "TestOutcome",
]
