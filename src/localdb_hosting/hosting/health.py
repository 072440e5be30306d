"""
localdb_hosting.hosting.health

Named health checks used to gate resource readiness.

Responsibilities:
- Register async checks under string keys.
- Run a check with a timeout and report Healthy/Unhealthy.
- Provide the SQL Server check (`SELECT 1` through SQLAlchemy + aioodbc).
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass

from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from localdb_hosting.errors import ConfigurationError
from localdb_hosting.model.connection import ConnectionDescriptor
from localdb_hosting.model.state import HealthStatus

HealthCheck = Callable[[], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class HealthReport:
    key: str
    status: HealthStatus
    description: str | None = None


class HealthCheckService:
    def __init__(self, *, timeout: float = 5.0) -> None:
        self._timeout = timeout
        self._checks: dict[str, HealthCheck] = {}

    def add(self, key: str, check: HealthCheck) -> None:
        if key in self._checks:
            raise ConfigurationError(f"Health check {key!r} is already registered")
        self._checks[key] = check

    def __contains__(self, key: str) -> bool:
        return key in self._checks

    async def check(self, key: str) -> HealthReport:
        check = self._checks.get(key)
        if check is None:
            return HealthReport(key, HealthStatus.unhealthy, f"No health check registered as {key!r}")
        try:
            await asyncio.wait_for(check(), timeout=self._timeout)
        except Exception as e:
            return HealthReport(key, HealthStatus.unhealthy, str(e) or type(e).__name__)
        return HealthReport(key, HealthStatus.healthy)

    async def check_all(self, keys: Iterable[str]) -> list[HealthReport]:
        return list(await asyncio.gather(*(self.check(key) for key in keys)))


def sqlserver_check(
    descriptor_factory: Callable[[], ConnectionDescriptor | None],
    *,
    driver: str,
) -> HealthCheck:
    """
    Build a check that opens a connection and runs `SELECT 1`.

    The descriptor is looked up on every run; until it exists the check fails.
    """

    async def _check() -> None:
        descriptor = descriptor_factory()
        if descriptor is None:
            raise ConfigurationError("Connection string is unavailable")
        # NullPool: every probe opens a fresh connection and nothing lingers between probes.
        engine = create_async_engine(descriptor.to_url(driver), poolclass=NullPool)
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        finally:
            await engine.dispose()

    return _check


# --- Module Notes -----------------------------------------------------------
# Readiness gating lives in `hosting.application`; this module only answers
# "is it healthy right now".
