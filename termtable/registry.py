"""Connection registry joining the secret store and the metadata store."""

from __future__ import annotations

import logging

from pydantic import TypeAdapter, ValidationError

from .errors import (
    CorruptRecordError,
    CredentialsCorruptError,
    CredentialsMissingError,
    InvalidProfileError,
    ProfileNotFoundError,
    RegistryStorageError,
    SecretNotFoundError,
    StoreError,
    StoreNotFoundError,
)
from .keychain import SECRET_REALM, SecretStore
from .metadata_store import MetadataStore
from .models import ConnectionProfile, Credentials

LOG = logging.getLogger(__name__)

LEGACY_SECRET_DELIMITER = ":"

_SECRET_ADAPTER: TypeAdapter[tuple[str, str]] = TypeAdapter(tuple[str, str])


def encode_credentials(credentials: Credentials) -> str:
    return _SECRET_ADAPTER.dump_json((credentials.user, credentials.password)).decode("utf-8")


def decode_credentials(value: str) -> Credentials:
    """Split a stored secret into user and password.

    Values written as ``user:password`` by earlier releases are still read
    when they split into exactly two parts.
    """

    try:
        user, password = _SECRET_ADAPTER.validate_json(value, strict=True)
    except ValidationError:
        parts = value.split(LEGACY_SECRET_DELIMITER)
        if len(parts) != 2:
            raise CredentialsCorruptError("Expected saved credentials to contain 2 components") from None
        user, password = parts
    return Credentials(user=user, password=password)


class ConnectionRegistry:
    """Owns the durable representation of connection profiles.

    Profiles are split across two stores keyed by the connection name: the
    user/password pair goes to the secret store, host/port/database to the
    metadata store. Reads join the two by explicit lookup every time.
    """

    def __init__(
        self,
        secret_store: SecretStore,
        metadata_store: MetadataStore,
        *,
        realm: str = SECRET_REALM,
    ) -> None:
        self._secrets = secret_store
        self._metadata = metadata_store
        self._realm = realm

    def save(self, profile: ConnectionProfile) -> None:
        """Persist both halves of ``profile``; secrets are written first.

        A metadata failure after a successful secret write is reported with
        ``secret_written=True`` and is not rolled back. Saving again or
        deleting the name repairs it.
        """

        name = profile.name.strip()
        if not name:
            raise InvalidProfileError("Connection name must not be empty.")
        secret = encode_credentials(profile.credentials)
        try:
            self._secrets.set_secret(self._realm, name, secret)
        except StoreError as exc:
            raise RegistryStorageError(f"Could not store credentials for '{name}': {exc}", exc) from exc
        try:
            self._metadata.put(name, profile.metadata)
        except StoreError as exc:
            LOG.error("Metadata write failed after storing credentials", extra={"connection": name})
            raise RegistryStorageError(
                f"Could not store connection '{name}': {exc}",
                exc,
                secret_written=True,
            ) from exc
        LOG.info("Saved connection", extra={"connection": name})

    def list(self) -> list[ConnectionProfile]:
        """Return saved profiles without credentials, ordered by name."""

        try:
            records = self._metadata.list_all()
        except StoreError as exc:
            raise RegistryStorageError(f"Could not list connections: {exc}", exc) from exc
        return [ConnectionProfile.from_record(name, record) for name, record in records]

    def get(self, name: str) -> ConnectionProfile:
        try:
            record = self._metadata.get(name)
        except StoreNotFoundError:
            raise ProfileNotFoundError(f"Connection '{name}' not found.") from None
        except CorruptRecordError as exc:
            raise RegistryStorageError(f"Connection '{name}' is corrupt: {exc}", exc) from exc
        except StoreError as exc:
            raise RegistryStorageError(f"Could not read connection '{name}': {exc}", exc) from exc
        return ConnectionProfile.from_record(name, record)

    def resolve_credentials(self, name: str) -> Credentials:
        try:
            value = self._secrets.get_secret(self._realm, name)
        except SecretNotFoundError:
            raise CredentialsMissingError(f"No credentials saved for '{name}'.") from None
        except StoreError as exc:
            raise RegistryStorageError(f"Could not read credentials for '{name}': {exc}", exc) from exc
        try:
            return decode_credentials(value)
        except CredentialsCorruptError:
            LOG.error("Stored credentials are malformed", extra={"connection": name})
            raise

    def load(self, name: str) -> ConnectionProfile:
        """Return the profile for ``name`` with credentials resolved."""

        return self.get(name).with_credentials(self.resolve_credentials(name))

    def delete(self, name: str) -> None:
        """Best-effort removal from both stores; absent entries are fine."""

        failures: list[StoreError] = []
        for remove in (self._secrets_delete, self._metadata.delete):
            try:
                remove(name)
            except StoreError as exc:
                LOG.warning("Partial delete", extra={"connection": name, "error": str(exc)})
                failures.append(exc)
        if failures:
            first = failures[0]
            raise RegistryStorageError(f"Could not delete connection '{name}': {first}", first) from first
        LOG.info("Deleted connection", extra={"connection": name})

    def _secrets_delete(self, name: str) -> None:
        self._secrets.delete_secret(self._realm, name)


__all__ = ["ConnectionRegistry", "decode_credentials", "encode_credentials"]
