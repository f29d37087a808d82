"""Shared fixtures for registry and store tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from termtable.keychain import MemorySecretStore
from termtable.metadata_store import MetadataStore
from termtable.registry import ConnectionRegistry


@pytest.fixture
def metadata_store(tmp_path: Path) -> MetadataStore:
    return MetadataStore(tmp_path / "termtable" / "connections.db")


@pytest.fixture
def secret_store() -> MemorySecretStore:
    return MemorySecretStore()


@pytest.fixture
def registry(secret_store: MemorySecretStore, metadata_store: MetadataStore) -> ConnectionRegistry:
    return ConnectionRegistry(secret_store, metadata_store)
