"""
localdb_hosting.hosting.application

Runtime for a built application model.

Responsibilities:
- Publish `BeforeStartEvent` so registered resources provision themselves.
- Gate readiness: Running + all health checks Healthy -> `ResourceReadyEvent` (once).
- Drive dependency waits (Waiting -> Running/FailedToStart).
- Execute resource commands and stop instances on shutdown.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import replace

import structlog

from localdb_hosting.hosting.commands import (
    CommandState,
    ExecuteCommandContext,
    ExecuteCommandResult,
    ResourceCommand,
)
from localdb_hosting.hosting.eventing import BeforeStartEvent, EventBus, ResourceReadyEvent
from localdb_hosting.hosting.services import AppServices
from localdb_hosting.model.resources import (
    HealthCheckAnnotation,
    Resource,
    SqlLocalDbInstanceResource,
    WaitAnnotation,
)
from localdb_hosting.model.state import TERMINAL_STATES, HealthStatus, ResourceState, utcnow
from localdb_hosting.observability.logging import get_logger

log = get_logger(__name__)


class DistributedApplication:
    def __init__(
        self,
        *,
        resources: Iterable[Resource],
        eventing: EventBus,
        services: AppServices,
    ) -> None:
        self._resources = {r.name: r for r in resources}
        self._eventing = eventing
        self._services = services
        self._tasks: list[asyncio.Task[None]] = []
        self._started = False

    @property
    def services(self) -> AppServices:
        return self._services

    @property
    def resources(self) -> list[Resource]:
        return list(self._resources.values())

    def get_resource(self, name: str) -> Resource:
        return self._resources[name]

    async def start(self) -> None:
        if self._started:
            raise RuntimeError("Application has already been started")
        self._started = True
        log.info("application_starting", resources=len(self._resources))

        # Monitors are scheduled first so they observe every transition published below.
        for resource in self._resources.values():
            dependencies = [a.resource for a in resource.annotations_of(WaitAnnotation)]
            if dependencies:
                self._spawn(self._wait_for_dependencies(resource, dependencies), resource)
            self._spawn(self._monitor_readiness(resource), resource)

        await self._eventing.publish(BeforeStartEvent(services=self._services))
        log.info("application_started")

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

        for resource in self._resources.values():
            if not isinstance(resource, SqlLocalDbInstanceResource):
                continue
            if not resource.options.stop_on_shutdown or resource.instance_info is None:
                continue
            try:
                await self._services.localdb.stop_instance(resource)
            except Exception:
                # Keep shutting down the remaining instances.
                log.exception("instance_stop_failed", instance=resource.name)
        log.info("application_stopped")

    async def run(self) -> None:
        await self.start()
        try:
            await asyncio.Event().wait()
        finally:
            await self.stop()

    async def execute_command(self, resource_name: str, command_name: str) -> ExecuteCommandResult:
        """
        Run a resource command; raises KeyError for unknown resources/commands.
        """

        resource = self._resources[resource_name]
        command = _find_command(resource, command_name)
        snapshot = self._services.notifications.get_snapshot(resource)

        state = command.state_for(resource, snapshot)
        if state is not CommandState.enabled:
            return ExecuteCommandResult(
                success=False,
                error_message=f"Command {command_name!r} is {state.lower()} for {resource_name}",
            )

        with structlog.contextvars.bound_contextvars(resource=resource_name, command=command_name):
            log.info("command_executing")
            try:
                result = await command.execute(
                    ExecuteCommandContext(resource=resource, services=self._services)
                )
            except Exception as e:
                log.exception("command_failed")
                return ExecuteCommandResult(success=False, error_message=str(e))
            log.info("command_executed", success=result.success)
            return result

    def _spawn(self, coro, resource: Resource) -> None:
        task = asyncio.create_task(coro, name=f"{resource.name}:{coro.__name__}")
        self._tasks.append(task)

    async def _monitor_readiness(self, resource: Resource) -> None:
        notifications = self._services.notifications
        snapshot = await notifications.wait_for_state(resource, *TERMINAL_STATES)
        if snapshot.state is ResourceState.failed_to_start:
            return

        keys = [a.key for a in resource.annotations_of(HealthCheckAnnotation)]
        interval = self._services.settings.health_check_interval_seconds
        while keys:
            reports = await self._services.health.check_all(keys)
            status = (
                HealthStatus.healthy
                if all(r.status is HealthStatus.healthy for r in reports)
                else HealthStatus.unhealthy
            )
            await notifications.publish_update(resource, lambda s: replace(s, health_status=status))
            if status is HealthStatus.healthy:
                break
            for report in reports:
                if report.status is not HealthStatus.healthy:
                    log.debug(
                        "health_check_unhealthy",
                        resource=resource.name,
                        key=report.key,
                        description=report.description,
                    )
            await asyncio.sleep(interval)

        log.info("resource_ready", resource=resource.name)
        await self._eventing.publish(ResourceReadyEvent(resource=resource, services=self._services))

    async def _wait_for_dependencies(self, resource: Resource, dependencies: list[Resource]) -> None:
        notifications = self._services.notifications
        await notifications.publish_update(resource, lambda s: s.with_state(ResourceState.waiting))

        for dependency in dependencies:
            snapshot = await notifications.wait_for_state(dependency, *TERMINAL_STATES)
            if snapshot.state is ResourceState.failed_to_start:
                log.error("dependency_failed", resource=resource.name, dependency=dependency.name)
                await notifications.publish_update(
                    resource, lambda s: s.with_state(ResourceState.failed_to_start)
                )
                return

        await notifications.publish_update(
            resource, lambda s: s.with_state(ResourceState.running, start_timestamp=utcnow())
        )


def _find_command(resource: Resource, name: str) -> ResourceCommand:
    for command in resource.annotations_of(ResourceCommand):
        if command.name == name:
            return command
    raise KeyError(name)


# --- Module Notes -----------------------------------------------------------
# Each readiness monitor publishes `ResourceReadyEvent` at most once per run;
# later redeploys do not re-trigger it.
