"""
tests.test_application

End-to-end lifecycle against fake engines: an instance `TestDb` hosting
database `Database1`, with a SQL project deployed into it.
"""

from __future__ import annotations

import asyncio

import pytest

from localdb_hosting.hosting.commands import CommandState, ExecuteCommandResult, ResourceCommand
from localdb_hosting.hosting.eventing import ConnectionStringAvailableEvent
from localdb_hosting.hosting.sqllocaldb import (
    REDEPLOY_COMMAND,
    add_database,
    add_sql_project,
    add_sqllocaldb,
    with_dacpac,
    with_options,
    with_reference,
)
from localdb_hosting.model.resources import StopMode
from localdb_hosting.model.state import HealthStatus, ResourceState

PROJECT = "Database1/Database1.sqlproj"
DACPAC = "Database1/bin/Debug/Database1.dacpac"
SETTLED = (ResourceState.running, ResourceState.failed_to_start)


@pytest.fixture
def model(builder, project_evaluator):
    project_evaluator.properties = {(PROJECT, "SqlTargetPath"): DACPAC}
    instance = add_sqllocaldb(builder, "TestDb")
    database = add_database(instance, "Database", "Database1")
    project = add_sql_project(builder, "Database1", project_path=PROJECT)
    with_reference(project, database)
    return instance, database, project


async def _settled(services, resource, *states: ResourceState):
    return await asyncio.wait_for(
        services.notifications.wait_for_state(resource, *(states or SETTLED)), timeout=5
    )


@pytest.mark.asyncio
async def test_instance_database_and_project_come_up(
    builder, model, services, deployer, sql_engines, state_log
) -> None:
    instance, database, project = model
    announced: list[str] = []

    async def _on_connection(event: ConnectionStringAvailableEvent) -> None:
        announced.append(await event.resource.get_connection_string())

    builder.eventing.subscribe(
        ConnectionStringAvailableEvent, _on_connection, resource=database.resource
    )
    app = builder.build()
    try:
        await app.start()
        await _settled(services, project.resource)

        assert await instance.resource.get_connection_string() == "Data Source=(LocalDb)\\TestDb"
        assert announced == ["Data Source=(LocalDb)\\TestDb;Database=Database1"]

        instance_snapshot = services.notifications.get_snapshot(instance.resource)
        assert instance_snapshot.state is ResourceState.running
        assert instance_snapshot.health_status is HealthStatus.healthy
        assert sql_engines.engines[0].statements == ["SELECT 1"]
        assert sql_engines.engines[0].disposed

        assert [c["dacpac_path"] for c in deployer.calls] == [DACPAC]
        assert deployer.calls[0]["connection_string"] == (
            "Data Source=(LocalDb)\\TestDb;Database=Database1"
        )
        assert state_log.transitions("TestDb") == [ResourceState.starting, ResourceState.running]
        assert state_log.transitions("Database") == [ResourceState.starting, ResourceState.running]
        assert state_log.transitions("Database1") == [ResourceState.waiting, ResourceState.running]
    finally:
        await app.stop()


@pytest.mark.asyncio
async def test_deploy_waits_for_healthy_instance(builder, model, services, deployer, sql_engines) -> None:
    instance, database, _ = model
    sql_engines.healthy = False
    app = builder.build()
    try:
        await app.start()
        await _settled(services, instance.resource)
        await asyncio.sleep(0.05)

        snapshot = services.notifications.get_snapshot(instance.resource)
        assert snapshot.state is ResourceState.running
        assert snapshot.health_status is HealthStatus.unhealthy
        assert deployer.calls == []

        sql_engines.healthy = True
        await _settled(services, database.resource)
        assert len(deployer.calls) == 1
    finally:
        await app.stop()


@pytest.mark.asyncio
async def test_provisioning_failure_skips_deployment(
    builder, model, services, localdb_api, deployer
) -> None:
    instance, database, project = model
    localdb_api.fail_start = True
    app = builder.build()
    try:
        await app.start()
        snapshot = await _settled(services, instance.resource)
        await asyncio.sleep(0.05)

        assert snapshot.state is ResourceState.failed_to_start
        assert deployer.calls == []
        assert services.notifications.get_snapshot(database.resource).state is (
            ResourceState.not_started
        )
        assert services.notifications.get_snapshot(project.resource).state is ResourceState.waiting
    finally:
        await app.stop()


@pytest.mark.asyncio
async def test_redeploy_command_is_gated_on_running(builder, model, services, deployer) -> None:
    _, database, project = model
    app = builder.build()

    result = await app.execute_command("Database", REDEPLOY_COMMAND)
    assert result.success is False
    assert "disabled" in result.error_message

    try:
        await app.start()
        await _settled(services, project.resource)

        result = await app.execute_command("Database", REDEPLOY_COMMAND)
        assert result == ExecuteCommandResult(success=True)
        assert len(deployer.calls) == 2

        deployer.error = RuntimeError("deploy failed")
        result = await app.execute_command("Database", REDEPLOY_COMMAND)
        assert result.success is False
        assert result.error_message == "Dacpac deployment failed"
        snapshot = services.notifications.get_snapshot(database.resource)
        assert snapshot.state is ResourceState.failed_to_start
    finally:
        await app.stop()


@pytest.mark.asyncio
async def test_unknown_commands_and_resources_raise(builder, model) -> None:
    app = builder.build()

    with pytest.raises(KeyError):
        await app.execute_command("Database", "vacuum")
    with pytest.raises(KeyError):
        await app.execute_command("Nope", REDEPLOY_COMMAND)


@pytest.mark.asyncio
async def test_failing_command_reports_error(builder) -> None:
    async def _explode(context) -> ExecuteCommandResult:
        raise RuntimeError("kaboom")

    add_sqllocaldb(builder, "TestDb").with_command("explode", "Explode", _explode)
    app = builder.build()

    result = await app.execute_command("TestDb", "explode")

    assert result == ExecuteCommandResult(success=False, error_message="kaboom")


@pytest.mark.asyncio
async def test_start_twice_is_rejected(builder, model) -> None:
    app = builder.build()
    try:
        await app.start()
        with pytest.raises(RuntimeError):
            await app.start()
    finally:
        await app.stop()


@pytest.mark.asyncio
@pytest.mark.parametrize("stop_on_shutdown", [True, False])
async def test_shutdown_stops_instances_when_configured(
    builder, services, localdb_api, stop_on_shutdown: bool
) -> None:
    instance = add_sqllocaldb(builder, "TestDb")

    def _configure(options) -> None:
        options.stop_on_shutdown = stop_on_shutdown
        options.stop_mode = StopMode.kill

    with_options(instance, _configure)
    app = builder.build()
    await app.start()
    await _settled(services, instance.resource)
    await app.stop()

    stops = [c for c in localdb_api.calls if c[0] == "stop"]
    assert stops == ([("stop", "TestDb", StopMode.kill)] if stop_on_shutdown else [])


@pytest.mark.asyncio
async def test_second_dacpac_replaces_the_first(builder, services, deployer) -> None:
    database = add_database(add_sqllocaldb(builder, "TestDb"), "Database", "Database1")
    with_dacpac(database, "old/Database1.dacpac")
    with_dacpac(database, "new/Database1.dacpac")
    app = builder.build()
    try:
        await app.start()
        await _settled(services, database.resource)
        await asyncio.sleep(0.05)

        assert [c["dacpac_path"] for c in deployer.calls] == ["new/Database1.dacpac"]
        commands = database.resource.annotations_of(ResourceCommand)
        assert [c.name for c in commands] == [REDEPLOY_COMMAND]
        snapshot = services.notifications.get_snapshot(database.resource)
        assert snapshot.property("DacpacPath") == "new/Database1.dacpac"
    finally:
        await app.stop()


def test_commands_default_to_enabled(builder) -> None:
    async def _noop(context) -> ExecuteCommandResult:
        return ExecuteCommandResult(success=True)

    instance = add_sqllocaldb(builder, "TestDb").with_command("noop", "No-op", _noop)
    [command] = instance.resource.annotations_of(ResourceCommand)

    assert command.update_state.__name__ == "_always_enabled"
    assert command.state_for(instance.resource, None) is CommandState.enabled


# --- Module Notes -----------------------------------------------------------
# Every test that starts the application stops it in `finally` so background
# readiness/wait tasks never outlive the event loop.
