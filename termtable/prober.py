"""Connectivity checks for connection profiles."""

from __future__ import annotations

import logging

import asyncpg

from .models import ConnectionProfile, TestOutcome

LOG = logging.getLogger(__name__)


def connect_kwargs(profile: ConnectionProfile, *, timeout: float) -> dict[str, object]:
    """Translate a profile into ``asyncpg.connect`` keyword arguments.

    Raises ``ValueError`` when the port is not numeric.
    """

    kwargs: dict[str, object] = {"host": profile.host or "localhost"}
    port = profile.port.strip()
    if port:
        kwargs["port"] = int(port)
    if profile.user:
        kwargs["user"] = profile.user
    if profile.password:
        kwargs["password"] = profile.password
    if profile.database:
        kwargs["database"] = profile.database
    kwargs["timeout"] = timeout
    return kwargs


class ConnectivityProber:
    """Opens and immediately closes a connection to test reachability."""

    def __init__(self, *, connect_timeout: float = 5.0) -> None:
        self._connect_timeout = connect_timeout

    async def probe(self, profile: ConnectionProfile) -> TestOutcome:
        """Return PASSED when a connection opens; any failure is FAILED."""

        try:
            conn = await asyncpg.connect(**connect_kwargs(profile, timeout=self._connect_timeout))
        except Exception as exc:
            LOG.debug("Probe failed", extra={"connection": profile.name, "error": str(exc)})
            return TestOutcome.FAILED
        try:
            await conn.close()
        except Exception as exc:
            LOG.debug("Probe close failed", extra={"connection": profile.name, "error": str(exc)})
            conn.terminate()
        return TestOutcome.PASSED

    async def check(self, profile: ConnectionProfile) -> ConnectionProfile:
        """Probe ``profile`` and return a copy with its status updated."""

        return profile.with_outcome(await self.probe(profile))


__all__ = ["ConnectivityProber", "connect_kwargs"]
