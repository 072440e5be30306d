"""
tests.test_notifications

Snapshot publication, state waits and watchers.
"""

from __future__ import annotations

import asyncio

import pytest

from localdb_hosting.hosting.notifications import ResourceNotificationService
from localdb_hosting.model.resources import SqlLocalDbInstanceResource
from localdb_hosting.model.state import ResourceSnapshot, ResourceState


@pytest.mark.asyncio
async def test_wait_for_state_returns_immediately_when_already_reached() -> None:
    notifications = ResourceNotificationService()
    instance = SqlLocalDbInstanceResource("TestDb")
    notifications.initialize(
        instance, ResourceSnapshot(instance.resource_type, state=ResourceState.running)
    )

    snapshot = await asyncio.wait_for(
        notifications.wait_for_state(instance, ResourceState.running), timeout=1
    )

    assert snapshot.state is ResourceState.running


@pytest.mark.asyncio
async def test_wait_for_state_wakes_on_publish() -> None:
    notifications = ResourceNotificationService()
    instance = SqlLocalDbInstanceResource("TestDb")
    notifications.initialize(instance, ResourceSnapshot(instance.resource_type))

    waiter = asyncio.create_task(
        notifications.wait_for_state(instance, ResourceState.failed_to_start)
    )
    await notifications.publish_update(instance, lambda s: s.with_state(ResourceState.starting))
    await asyncio.sleep(0)
    assert not waiter.done()

    await notifications.publish_update(
        instance, lambda s: s.with_state(ResourceState.failed_to_start)
    )
    snapshot = await asyncio.wait_for(waiter, timeout=1)

    assert snapshot.state is ResourceState.failed_to_start


@pytest.mark.asyncio
async def test_watch_receives_published_updates() -> None:
    notifications = ResourceNotificationService()
    instance = SqlLocalDbInstanceResource("TestDb")
    stream = notifications.watch()

    pending = asyncio.create_task(anext(stream))
    await asyncio.sleep(0)
    await notifications.publish_update(instance, lambda s: s.with_property("Version", "15.0"))
    event = await asyncio.wait_for(pending, timeout=1)
    await stream.aclose()

    assert event.resource is instance
    assert event.snapshot.property("Version") == "15.0"
    assert event.snapshot.resource_type == "SqlLocalDbInstance"
