"""
localdb_hosting.hosting.services

Composition root for the host's singleton services.

Responsibilities:
- Construct engine clients and services once per application run.
- Allow tests to substitute fake engine clients.
"""

from __future__ import annotations

from dataclasses import dataclass

from localdb_hosting.engines.msbuild import MsBuildProjectEvaluator, ProjectEvaluator
from localdb_hosting.engines.sqllocaldb import SqlLocalDbApi
from localdb_hosting.engines.sqlpackage import SqlPackageDeployer
from localdb_hosting.hosting.health import HealthCheckService
from localdb_hosting.hosting.notifications import (
    ResourceLoggerService,
    ResourceNotificationService,
)
from localdb_hosting.services.dacpac_service import DacpacService, Deployer
from localdb_hosting.services.localdb_service import LocalDbApi, SqlLocalDbService
from localdb_hosting.settings import Settings


@dataclass(frozen=True, slots=True)
class AppServices:
    settings: Settings
    notifications: ResourceNotificationService
    loggers: ResourceLoggerService
    health: HealthCheckService
    localdb: SqlLocalDbService
    dacpac: DacpacService
    project_evaluator: ProjectEvaluator


def create_services(
    settings: Settings,
    *,
    localdb_api: LocalDbApi | None = None,
    deployer: Deployer | None = None,
    project_evaluator: ProjectEvaluator | None = None,
) -> AppServices:
    notifications = ResourceNotificationService()
    loggers = ResourceLoggerService()
    timeout = settings.command_timeout_seconds

    api = localdb_api or SqlLocalDbApi(executable=settings.sqllocaldb_path, timeout=timeout)
    deployer = deployer or SqlPackageDeployer(executable=settings.sqlpackage_path)

    return AppServices(
        settings=settings,
        notifications=notifications,
        loggers=loggers,
        health=HealthCheckService(timeout=settings.health_check_timeout_seconds),
        localdb=SqlLocalDbService(api=api, loggers=loggers, notifications=notifications),
        dacpac=DacpacService(deployer=deployer, loggers=loggers, notifications=notifications),
        project_evaluator=project_evaluator
        or MsBuildProjectEvaluator(dotnet=settings.dotnet_path, timeout=timeout),
    )


# --- Module Notes -----------------------------------------------------------
# Deployments run without a timeout: large dacpacs can legitimately take minutes,
# and the caller can always cancel the awaiting task.
