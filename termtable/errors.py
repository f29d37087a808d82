"""Exception taxonomy shared by the stores, registry, and database helpers."""

from __future__ import annotations


class TermtableError(Exception):
    """Base exception for termtable."""


class StoreError(TermtableError):
    """Raised by the secret or metadata store."""


class StoreNotFoundError(StoreError):
    """Raised when a key is absent from a store."""


class StoreIOError(StoreError):
    """Raised when a store cannot read or commit its backing file."""


class StoreUnavailableError(StoreError):
    """Raised when the OS secret store cannot be reached."""


class SecretNotFoundError(StoreNotFoundError):
    """Raised when no secret exists for a realm/account pair."""


class CorruptRecordError(StoreError):
    """Raised when a stored value does not decode into the expected fields."""


class RegistryError(TermtableError):
    """Raised by the connection registry."""


class InvalidProfileError(RegistryError):
    """Raised when a profile cannot be saved as given."""


class ProfileNotFoundError(RegistryError):
    """Raised when no metadata exists for a connection name."""


class CredentialsMissingError(RegistryError):
    """Raised when a connection has no stored credentials."""


class CredentialsCorruptError(RegistryError):
    """Raised when stored credentials cannot be split into user and password."""


class RegistryStorageError(RegistryError):
    """Wraps a store failure surfaced through the registry.

    ``secret_written`` is true when ``save`` stored the secret before the
    metadata write failed, leaving an orphaned secret behind.
    """

    def __init__(self, message: str, store_error: StoreError, *, secret_written: bool = False) -> None:
        super().__init__(message)
        self.store_error = store_error
        self.secret_written = secret_written


class QueryError(TermtableError):
    """Raised when talking to the database fails."""


class QueryConnectionError(QueryError):
    """Raised when a connection to the database cannot be opened."""


class QueryExecutionError(QueryError):
    """Raised when a statement fails to execute."""


__all__ = [
    "CorruptRecordError",
    "CredentialsCorruptError",
    "CredentialsMissingError",
    "InvalidProfileError",
    "ProfileNotFoundError",
    "QueryConnectionError",
    "QueryError",
    "QueryExecutionError",
    "RegistryError",
    "RegistryStorageError",
    "SecretNotFoundError",
    "StoreError",
    "StoreIOError",
    "StoreNotFoundError",
    "StoreUnavailableError",
    "TermtableError",
]
