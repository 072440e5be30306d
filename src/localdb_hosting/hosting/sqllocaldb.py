"""
localdb_hosting.hosting.sqllocaldb

Registration functions for LocalDB instances, databases and dacpac deployment.

Responsibilities:
- add_sqllocaldb / with_options: declare an instance, its health check and the
  provisioning callback that runs before the application starts.
- add_database: declare a database under an instance and forward the
  instance's connection-string-available signal to it.
- with_dacpac / with_reference: deploy a package when the instance is ready and
  expose a "redeploy" command.
- resolve_dacpac_path: locate the package produced by a SQL database project.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from localdb_hosting.engines.msbuild import ProjectEvaluator
from localdb_hosting.engines.sqlpackage import DacDeployOptions
from localdb_hosting.errors import PackagePathNotFoundError
from localdb_hosting.hosting.builder import DistributedApplicationBuilder, ResourceBuilder
from localdb_hosting.hosting.commands import (
    CommandState,
    ExecuteCommandContext,
    ExecuteCommandResult,
    IconVariant,
    UpdateCommandStateContext,
)
from localdb_hosting.hosting.eventing import (
    BeforeStartEvent,
    ConnectionStringAvailableEvent,
    ResourceReadyEvent,
    Subscription,
)
from localdb_hosting.hosting.health import sqlserver_check
from localdb_hosting.hosting.services import AppServices
from localdb_hosting.model.connection import ConnectionDescriptor
from localdb_hosting.model.resources import (
    DacpacMetadata,
    ProjectMetadata,
    SqlLocalDbDatabaseResource,
    SqlLocalDbInstanceResource,
    SqlLocalDbOptions,
    SqlProjectResource,
)
from localdb_hosting.model.state import ResourceSnapshot, ResourceState
from localdb_hosting.observability.logging import get_logger

log = get_logger(__name__)

REDEPLOY_COMMAND = "redeploy"


def add_sqllocaldb(
    builder: DistributedApplicationBuilder,
    name: str,
    options: SqlLocalDbOptions | None = None,
) -> ResourceBuilder[SqlLocalDbInstanceResource]:
    """
    Add a named LocalDB instance to the application model.

    The instance is created (if missing) and started when the application
    starts. Its health check stays unhealthy until provisioning succeeds.
    """

    instance = SqlLocalDbInstanceResource(name, options=options or SqlLocalDbOptions())
    instance_builder = builder.add_resource(
        instance, initial_state=ResourceSnapshot(SqlLocalDbInstanceResource.resource_type)
    )

    health_check_key = f"{name}_check"
    descriptor: ConnectionDescriptor | None = None

    builder.services.health.add(
        health_check_key,
        sqlserver_check(lambda: descriptor, driver=builder.settings.odbc_driver),
    )

    async def _before_start(event: BeforeStartEvent) -> None:
        nonlocal descriptor
        state = await event.services.localdb.provision_instance(instance)
        if state is not ResourceState.running:
            return
        descriptor = instance.connection_descriptor
        await builder.eventing.publish(
            ConnectionStringAvailableEvent(resource=instance, services=event.services)
        )

    builder.eventing.subscribe(BeforeStartEvent, _before_start)
    return instance_builder.with_health_check(health_check_key)


def with_options(
    builder: ResourceBuilder[SqlLocalDbInstanceResource],
    configure: Callable[[SqlLocalDbOptions], None],
) -> ResourceBuilder[SqlLocalDbInstanceResource]:
    configure(builder.resource.options)
    return builder


def add_database(
    builder: ResourceBuilder[SqlLocalDbInstanceResource],
    name: str,
    database_name: str | None = None,
) -> ResourceBuilder[SqlLocalDbDatabaseResource]:
    """
    Add a database hosted by the instance; `database_name` defaults to `name`.
    """

    if database_name is None:
        database_name = name
    instance = builder.resource
    app = builder.application_builder

    database = SqlLocalDbDatabaseResource(name, database_name=database_name, parent=instance)
    database_builder = app.add_resource(
        database,
        initial_state=ResourceSnapshot(
            SqlLocalDbDatabaseResource.resource_type,
            properties=(("DatabaseName", database_name),),
        ),
    )

    async def _forward(event: ConnectionStringAvailableEvent) -> None:
        await app.eventing.publish(
            ConnectionStringAvailableEvent(resource=database, services=event.services)
        )

    app.eventing.subscribe(ConnectionStringAvailableEvent, _forward, resource=instance)
    instance.add_database(name, database_name)
    return database_builder


@dataclass(frozen=True, slots=True)
class _DacpacDeployment:
    dacpac_path: str
    subscription: Subscription


def _enabled_when_running(context: UpdateCommandStateContext) -> CommandState:
    snapshot = context.snapshot
    if snapshot is not None and snapshot.state is ResourceState.running:
        return CommandState.enabled
    return CommandState.disabled


def with_dacpac(
    builder: ResourceBuilder[SqlLocalDbDatabaseResource],
    dacpac_path: str,
    options: DacDeployOptions | None = None,
) -> ResourceBuilder[SqlLocalDbDatabaseResource]:
    """
    Deploy `dacpac_path` to the database once its instance is ready.
    """

    database = builder.resource
    app = builder.application_builder

    async def _deploy(services: AppServices) -> ResourceState:
        return await services.dacpac.deploy(dacpac_path, database, options)

    async def _on_instance_ready(event: ResourceReadyEvent) -> None:
        await _deploy(event.services)

    async def _redeploy(context: ExecuteCommandContext) -> ExecuteCommandResult:
        state = await _deploy(context.services)
        if state is ResourceState.running:
            return ExecuteCommandResult(success=True)
        return ExecuteCommandResult(success=False, error_message="Dacpac deployment failed")

    # A later call replaces the earlier package.
    for previous in database.annotations_of(_DacpacDeployment):
        app.eventing.unsubscribe(previous.subscription)
        database.annotations.remove(previous)

    subscription = app.eventing.subscribe(
        ResourceReadyEvent, _on_instance_ready, resource=database.parent
    )
    database.annotate(_DacpacDeployment(dacpac_path, subscription))
    app.services.notifications.initialize(
        database,
        (
            app.services.notifications.get_snapshot(database)
            or ResourceSnapshot(SqlLocalDbDatabaseResource.resource_type)
        ).with_property("DacpacPath", dacpac_path),
    )

    return builder.with_command(
        REDEPLOY_COMMAND,
        "Redeploy",
        _redeploy,
        update_state=_enabled_when_running,
        display_description="Redeploys the associated dacpac to the target database.",
        icon_name="ArrowReset",
        icon_variant=IconVariant.filled,
        is_highlighted=True,
    )


def add_sql_project(
    builder: DistributedApplicationBuilder,
    name: str,
    *,
    project_path: str | None = None,
    dacpac_path: str | None = None,
) -> ResourceBuilder[SqlProjectResource]:
    """
    Add a SQL database project, identified by its project file and/or a prebuilt dacpac.
    """

    project = SqlProjectResource(name)
    if project_path is not None:
        project.annotate(ProjectMetadata(project_path))
    if dacpac_path is not None:
        project.annotate(DacpacMetadata(dacpac_path))
    return builder.add_resource(
        project, initial_state=ResourceSnapshot(SqlProjectResource.resource_type)
    )


def with_reference(
    builder: ResourceBuilder[SqlProjectResource],
    target: ResourceBuilder[SqlLocalDbDatabaseResource],
    options: DacDeployOptions | None = None,
) -> ResourceBuilder[SqlProjectResource]:
    """
    Publish the project's dacpac to `target`; raises PackagePathNotFoundError
    right away if no package path can be determined.
    """

    evaluator = builder.application_builder.services.project_evaluator
    path = resolve_dacpac_path(builder.resource, evaluator)
    with_dacpac(target, path, options)
    return builder.wait_for(target)


def resolve_dacpac_path(project: SqlProjectResource, evaluator: ProjectEvaluator) -> str:
    """
    Locate the dacpac for a SQL project.

    Precedence:
    1. `SqlTargetPath` of the project file (.sqlprojx projects)
    2. `TargetPath` of the project file
    3. an explicit `DacpacMetadata` annotation
    """

    metadata = project.last_annotation(ProjectMetadata)
    if metadata is not None:
        try:
            target_path = evaluator.get_property(metadata.project_path, "SqlTargetPath").strip()
            if not target_path:
                target_path = evaluator.get_property(metadata.project_path, "TargetPath").strip()
        except Exception:
            log.warning(
                "project_evaluation_failed",
                resource=project.name,
                project_path=metadata.project_path,
                exc_info=True,
            )
            target_path = ""
        if target_path:
            return target_path

    dacpac = project.last_annotation(DacpacMetadata)
    if dacpac is not None and dacpac.dacpac_path.strip():
        return dacpac.dacpac_path

    raise PackagePathNotFoundError(project.name)


# --- Module Notes -----------------------------------------------------------
# Typical wiring:
#   db = add_database(add_sqllocaldb(builder, "TestDb"), "Database", "Database1")
#   with_reference(add_sql_project(builder, "Database1", project_path=...), db)
