"""
localdb_hosting.services.localdb_service

LocalDB instance provisioning service.

Responsibilities:
- Get or create a named instance and start it (Starting -> Running/FailedToStart).
- Record engine-assigned instance details on the resource once it runs.
- Stop instances on shutdown and manage throwaway temporary instances.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Protocol

from localdb_hosting.engines.sqllocaldb import InstanceInfo, validate_instance_name
from localdb_hosting.hosting.notifications import (
    ResourceLoggerService,
    ResourceNotificationService,
)
from localdb_hosting.model.resources import SqlLocalDbInstanceResource, StopMode
from localdb_hosting.model.state import ResourceState, utcnow


class LocalDbApi(Protocol):
    async def get_or_create_instance(
        self, name: str, version: str | None = None
    ) -> InstanceInfo: ...

    async def start_instance(self, name: str) -> InstanceInfo: ...

    async def stop_instance(
        self, name: str, *, mode: StopMode = ..., timeout: float | None = None
    ) -> None: ...

    async def delete_instance(self, name: str) -> None: ...


class SqlLocalDbService:
    def __init__(
        self,
        *,
        api: LocalDbApi,
        loggers: ResourceLoggerService,
        notifications: ResourceNotificationService,
    ) -> None:
        self._api = api
        self._loggers = loggers
        self._notifications = notifications

    async def get_instance(self, name: str, version: str | None = None) -> InstanceInfo:
        validate_instance_name(name)
        return await self._api.get_or_create_instance(name, version)

    @asynccontextmanager
    async def temporary_instance(self, *, delete_files: bool = True) -> AsyncIterator[InstanceInfo]:
        """
        Create and start a uniquely named instance; stop and delete it on exit.

        Cleanup also runs when the start itself fails.
        """

        name = f"tmp-{uuid.uuid4().hex[:16]}"
        await self.get_instance(name)
        try:
            yield await self._api.start_instance(name)
        finally:
            try:
                await self._api.stop_instance(name, mode=StopMode.kill)
            finally:
                if delete_files:
                    await self._api.delete_instance(name)

    async def provision_instance(self, resource: SqlLocalDbInstanceResource) -> ResourceState:
        logger = self._loggers.get_logger(resource)

        logger.info("creating_instance", instance=resource.name)
        await self._notifications.publish_update(
            resource, lambda s: s.with_state(ResourceState.starting)
        )

        try:
            await self.get_instance(resource.name, resource.options.version)
            info = await self._api.start_instance(resource.name)
        except asyncio.CancelledError:
            logger.warning("instance_start_cancelled", instance=resource.name)
            await self._notifications.publish_update(
                resource, lambda s: s.with_state(ResourceState.failed_to_start)
            )
            raise
        except Exception:
            # No retry: re-provisioning requires an explicit re-run.
            logger.exception("instance_start_failed", instance=resource.name)
            await self._notifications.publish_update(
                resource, lambda s: s.with_state(ResourceState.failed_to_start)
            )
            return ResourceState.failed_to_start

        resource.instance_info = info
        await self._notifications.publish_update(
            resource,
            lambda s: s.with_state(ResourceState.running, start_timestamp=utcnow()),
        )
        logger.info("instance_running", instance=resource.name, pipe_name=info.pipe_name)
        return ResourceState.running

    async def stop_instance(self, resource: SqlLocalDbInstanceResource) -> None:
        logger = self._loggers.get_logger(resource)
        options = resource.options
        logger.info("stopping_instance", instance=resource.name, mode=str(options.stop_mode))
        await self._api.stop_instance(
            resource.name, mode=options.stop_mode, timeout=options.stop_timeout
        )
        if options.auto_delete_files:
            logger.info("deleting_instance", instance=resource.name)
            await self._api.delete_instance(resource.name)


# --- Module Notes -----------------------------------------------------------
# `provision_instance` only raises on cancellation, after publishing FailedToStart.
# Otherwise the state it returns is the terminal state it publishes.
