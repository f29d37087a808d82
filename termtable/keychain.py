"""Secret store adapters keyed by (realm, account)."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from .errors import SecretNotFoundError, StoreUnavailableError

LOG = logging.getLogger(__name__)

SECRET_REALM = "termtable-app"


@runtime_checkable
class SecretStore(Protocol):
    """Opaque key/value capability backed by an OS-level secret store."""

    def set_secret(self, realm: str, account: str, value: str) -> None:
        """Store ``value`` under (realm, account), replacing any previous value."""

    def get_secret(self, realm: str, account: str) -> str:
        """Return the secret or raise ``SecretNotFoundError``."""

    def delete_secret(self, realm: str, account: str) -> None:
        """Remove the secret; absent entries are not an error."""


class KeyringSecretStore:
    """Secret store backed by the ``keyring`` package."""

    def set_secret(self, realm: str, account: str, value: str) -> None:
        try:
            keyring.set_password(realm, account, value)
        except KeyringError as exc:
            raise StoreUnavailableError(f"Secret store rejected write for '{account}': {exc}") from exc

    def get_secret(self, realm: str, account: str) -> str:
        try:
            value = keyring.get_password(realm, account)
        except KeyringError as exc:
            raise StoreUnavailableError(f"Secret store unavailable while reading '{account}': {exc}") from exc
        if value is None:
            raise SecretNotFoundError(f"No secret stored for '{account}'")
        return value

    def delete_secret(self, realm: str, account: str) -> None:
        try:
            keyring.delete_password(realm, account)
        except PasswordDeleteError:
            LOG.debug("Secret already absent", extra={"account": account})
        except KeyringError as exc:
            raise StoreUnavailableError(f"Secret store rejected delete for '{account}': {exc}") from exc


class MemorySecretStore:
    """In-process secret store used by tests and the sample database script."""

    def __init__(self) -> None:
        self._secrets: dict[tuple[str, str], str] = {}

    def set_secret(self, realm: str, account: str, value: str) -> None:
        self._secrets[(realm, account)] = value

    def get_secret(self, realm: str, account: str) -> str:
        try:
            return self._secrets[(realm, account)]
        except KeyError:
            raise SecretNotFoundError(f"No secret stored for '{account}'") from None

    def delete_secret(self, realm: str, account: str) -> None:
        self._secrets.pop((realm, account), None)

    def __contains__(self, key: object) -> bool:
        return key in self._secrets


__all__ = ["KeyringSecretStore", "MemorySecretStore", "SECRET_REALM", "SecretStore"]
