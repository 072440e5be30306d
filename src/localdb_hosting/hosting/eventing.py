"""
localdb_hosting.hosting.eventing

Lifecycle events and the in-process event bus.

Event types:
- BeforeStartEvent: the application is about to start its resources.
- ConnectionStringAvailableEvent: a resource's connection string can be resolved.
- ResourceReadyEvent: a resource is running and its health checks pass.

Usage:
    async def on_ready(event: ResourceReadyEvent) -> None:
        ...

    bus.subscribe(ResourceReadyEvent, on_ready, resource=instance)
    await bus.publish(ResourceReadyEvent(resource=instance, services=services))
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

from localdb_hosting.model.resources import Resource
from localdb_hosting.observability.logging import get_logger

if TYPE_CHECKING:
    from localdb_hosting.hosting.services import AppServices

log = get_logger(__name__)

E = TypeVar("E")
EventHandler = Callable[[Any], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class BeforeStartEvent:
    services: AppServices


@dataclass(frozen=True, slots=True)
class ConnectionStringAvailableEvent:
    resource: Resource
    services: AppServices


@dataclass(frozen=True, slots=True)
class ResourceReadyEvent:
    resource: Resource
    services: AppServices


@dataclass(frozen=True, slots=True)
class Subscription:
    event_type: type
    handler: EventHandler
    resource: Resource | None = None

    def matches(self, event: object) -> bool:
        if not isinstance(event, self.event_type):
            return False
        if self.resource is None:
            return True
        return getattr(event, "resource", None) is self.resource


class EventBus:
    """
    Simple async pub/sub event bus.

    Supports:
    - Multiple handlers per event type, called in subscription order
    - Resource-scoped subscriptions
    - Error isolation (one handler failing doesn't affect others)
    """

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []

    def subscribe(
        self,
        event_type: type[E],
        handler: Callable[[E], Awaitable[None]],
        *,
        resource: Resource | None = None,
    ) -> Subscription:
        subscription = Subscription(event_type=event_type, handler=handler, resource=resource)
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> bool:
        try:
            self._subscriptions.remove(subscription)
        except ValueError:
            return False
        return True

    async def publish(self, event: object) -> int:
        """
        Publish an event to all matching handlers; returns how many completed.
        """

        # Snapshot the list: handlers may subscribe further handlers while running.
        matching = [s for s in self._subscriptions if s.matches(event)]
        handled = 0
        for subscription in matching:
            try:
                await subscription.handler(event)
                handled += 1
            except Exception:
                log.exception(
                    "event_handler_failed",
                    event_type=type(event).__name__,
                    resource=getattr(getattr(event, "resource", None), "name", None),
                )
        return handled


# --- Module Notes -----------------------------------------------------------
# Cancellation is not an `Exception`, so a cancelled publish stops immediately
# instead of moving on to the next handler.
