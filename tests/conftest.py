"""
tests.conftest

Shared fixtures: fake engine clients and a builder wired to them.

Responsibilities:
- Replace SqlLocalDB / sqlpackage / MSBuild with in-memory fakes.
- Replace the SQLAlchemy engine used by the SQL Server health check.
- Record lifecycle state transitions published by the services.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from localdb_hosting.engines.sqllocaldb import InstanceInfo
from localdb_hosting.engines.sqlpackage import DacDeployOptions
from localdb_hosting.errors import CommandFailedError
from localdb_hosting.hosting.builder import DistributedApplicationBuilder
from localdb_hosting.hosting.services import AppServices, create_services
from localdb_hosting.model.resources import StopMode
from localdb_hosting.model.state import ResourceState
from localdb_hosting.settings import Settings


class FakeLocalDbApi:
    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.instances: dict[str, InstanceInfo] = {}
        self.fail_start = False
        self.start_gate: asyncio.Event | None = None
        self.fail_stop = False

    async def get_or_create_instance(self, name: str, version: str | None = None) -> InstanceInfo:
        self.calls.append(("get_or_create", name, version))
        return self.instances.setdefault(name, InstanceInfo(name=name, state="Stopped"))

    async def start_instance(self, name: str) -> InstanceInfo:
        self.calls.append(("start", name))
        if self.start_gate is not None:
            await self.start_gate.wait()
        if self.fail_start:
            raise CommandFailedError(["SqlLocalDB", "start", name], 1, "engine unreachable")
        info = InstanceInfo(
            name=name, state="Running", pipe_name=f"np:\\\\.\\pipe\\LOCALDB#{name}\\tsql\\query"
        )
        self.instances[name] = info
        return info

    async def stop_instance(
        self, name: str, *, mode: StopMode = StopMode.shutdown, timeout: float | None = None
    ) -> None:
        self.calls.append(("stop", name, mode))
        if self.fail_stop:
            raise CommandFailedError(["SqlLocalDB", "stop", name], 1, "stop timed out")

    async def delete_instance(self, name: str) -> None:
        self.calls.append(("delete", name))
        self.instances.pop(name, None)


class FakeDeployer:
    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.error: Exception | None = None
        self.gate: asyncio.Event | None = None

    async def publish(
        self,
        dacpac_path: str,
        *,
        connection_string: str,
        database_name: str,
        upgrade_existing: bool = True,
        options: DacDeployOptions | None = None,
        on_message: Callable[[str], None] | None = None,
    ) -> None:
        self.calls.append(
            {
                "dacpac_path": dacpac_path,
                "connection_string": connection_string,
                "database_name": database_name,
                "upgrade_existing": upgrade_existing,
                "options": options,
            }
        )
        if on_message is not None:
            on_message(f"Publishing to database '{database_name}'")
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error


class FakeProjectEvaluator:
    def __init__(self, properties: dict[tuple[str, str], str] | None = None) -> None:
        self.properties = dict(properties or {})
        self.error: Exception | None = None
        self.calls: list[tuple[str, str]] = []

    def get_property(self, project_path: str, name: str) -> str:
        self.calls.append((project_path, name))
        if self.error is not None:
            raise self.error
        return self.properties.get((project_path, name), "")


class _FakeConnection:
    def __init__(self, engine: FakeSqlEngine) -> None:
        self._engine = engine

    async def __aenter__(self) -> _FakeConnection:
        if not self._engine.healthy:
            raise ConnectionError("login failed")
        return self

    async def __aexit__(self, *exc: object) -> None:
        return None

    async def execute(self, statement: Any) -> None:
        self._engine.statements.append(str(statement))


class FakeSqlEngine:
    def __init__(self, url: str, healthy: bool) -> None:
        self.url = url
        self.healthy = healthy
        self.statements: list[str] = []
        self.disposed = False

    def connect(self) -> _FakeConnection:
        return _FakeConnection(self)

    async def dispose(self) -> None:
        self.disposed = True


class SqlEngineFactory:
    def __init__(self) -> None:
        self.healthy = True
        self.engines: list[FakeSqlEngine] = []

    def __call__(self, url: str, **_: Any) -> FakeSqlEngine:
        engine = FakeSqlEngine(url, self.healthy)
        self.engines.append(engine)
        return engine


@pytest.fixture
def settings() -> Settings:
    return Settings(
        env="test",
        health_check_interval_seconds=0.01,
        health_check_timeout_seconds=1.0,
    )


@pytest.fixture
def localdb_api() -> FakeLocalDbApi:
    return FakeLocalDbApi()


@pytest.fixture
def deployer() -> FakeDeployer:
    return FakeDeployer()


@pytest.fixture
def project_evaluator() -> FakeProjectEvaluator:
    return FakeProjectEvaluator()


@pytest.fixture
def sql_engines(monkeypatch: pytest.MonkeyPatch) -> SqlEngineFactory:
    factory = SqlEngineFactory()
    monkeypatch.setattr("localdb_hosting.hosting.health.create_async_engine", factory)
    return factory


@pytest.fixture
def services(
    settings: Settings,
    localdb_api: FakeLocalDbApi,
    deployer: FakeDeployer,
    project_evaluator: FakeProjectEvaluator,
) -> AppServices:
    return create_services(
        settings,
        localdb_api=localdb_api,
        deployer=deployer,
        project_evaluator=project_evaluator,
    )


@pytest.fixture
def builder(
    settings: Settings, services: AppServices, sql_engines: SqlEngineFactory
) -> DistributedApplicationBuilder:
    return DistributedApplicationBuilder(settings, services=services)


class StateLog:
    def __init__(self) -> None:
        self.entries: list[tuple[str, ResourceState]] = []

    def transitions(self, name: str) -> list[ResourceState]:
        # Consecutive repeats (e.g. health-only updates) are collapsed.
        states: list[ResourceState] = []
        for resource_name, state in self.entries:
            if resource_name == name and (not states or states[-1] is not state):
                states.append(state)
        return states


@pytest.fixture
def state_log(services: AppServices) -> StateLog:
    log = StateLog()
    publish = services.notifications.publish_update

    async def _recording(resource, update):
        snapshot = await publish(resource, update)
        log.entries.append((resource.name, snapshot.state))
        return snapshot

    services.notifications.publish_update = _recording  # type: ignore[method-assign]
    return log
