"""
localdb_hosting.hosting.notifications

Resource state publication and per-resource logging.

Responsibilities:
- Hold the latest `ResourceSnapshot` of every resource.
- Apply `snapshot -> snapshot` updates and fan them out to watchers.
- Let callers wait for a resource to reach a given state.
- Hand out structlog loggers bound to a resource.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass

import structlog

from localdb_hosting.model.resources import Resource
from localdb_hosting.model.state import ResourceSnapshot, ResourceState
from localdb_hosting.observability.logging import get_logger

SnapshotUpdate = Callable[[ResourceSnapshot], ResourceSnapshot]

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ResourceEvent:
    resource: Resource
    snapshot: ResourceSnapshot


class ResourceNotificationService:
    def __init__(self) -> None:
        self._snapshots: dict[str, ResourceSnapshot] = {}
        self._watchers: set[asyncio.Queue[ResourceEvent]] = set()
        self._changed = asyncio.Condition()

    def initialize(self, resource: Resource, snapshot: ResourceSnapshot) -> None:
        self._snapshots[resource.name] = snapshot

    def get_snapshot(self, resource: Resource) -> ResourceSnapshot | None:
        return self._snapshots.get(resource.name)

    async def publish_update(self, resource: Resource, update: SnapshotUpdate) -> ResourceSnapshot:
        current = self._snapshots.get(resource.name) or ResourceSnapshot(resource.resource_type)
        snapshot = update(current)
        self._snapshots[resource.name] = snapshot

        if snapshot.state != current.state:
            log.debug(
                "resource_state_changed",
                resource=resource.name,
                previous=str(current.state),
                state=str(snapshot.state),
            )

        event = ResourceEvent(resource=resource, snapshot=snapshot)
        for queue in list(self._watchers):
            queue.put_nowait(event)
        async with self._changed:
            self._changed.notify_all()
        return snapshot

    async def wait_for_state(self, resource: Resource, *states: ResourceState) -> ResourceSnapshot:
        def _reached() -> bool:
            snapshot = self._snapshots.get(resource.name)
            return snapshot is not None and snapshot.state in states

        async with self._changed:
            await self._changed.wait_for(_reached)
        return self._snapshots[resource.name]

    async def watch(self) -> AsyncIterator[ResourceEvent]:
        queue: asyncio.Queue[ResourceEvent] = asyncio.Queue()
        self._watchers.add(queue)
        try:
            while True:
                yield await queue.get()
        finally:
            self._watchers.discard(queue)


class ResourceLoggerService:
    """
    Loggers bound to a resource so every line carries its name and type.
    """

    def __init__(self, *, logger_name: str = "localdb_hosting.resources") -> None:
        self._logger_name = logger_name

    def get_logger(self, resource: Resource) -> structlog.stdlib.BoundLogger:
        return get_logger(self._logger_name).bind(
            resource=resource.name, resource_type=resource.resource_type
        )


# --- Module Notes -----------------------------------------------------------
# `wait_for_state` only observes states published after it starts waiting if the
# current snapshot does not already match; a matching snapshot returns at once.
