"""
localdb_hosting.hosting.builder

Application builder and per-resource builder handles.

Responsibilities:
- Collect resources (unique, validated names) with their initial snapshots.
- Expose the event bus and services so registration functions can wire callbacks.
- Attach generic annotations: health checks, commands, waits.
"""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Generic, Self, TypeVar

from localdb_hosting.errors import ConfigurationError
from localdb_hosting.hosting.application import DistributedApplication
from localdb_hosting.hosting.commands import (
    CommandState,
    ExecuteCommandContext,
    ExecuteCommandResult,
    IconVariant,
    ResourceCommand,
    UpdateCommandStateContext,
)
from localdb_hosting.hosting.eventing import EventBus
from localdb_hosting.hosting.services import AppServices, create_services
from localdb_hosting.model.resources import HealthCheckAnnotation, Resource, WaitAnnotation
from localdb_hosting.model.state import ResourceSnapshot
from localdb_hosting.settings import Settings, get_settings

R = TypeVar("R", bound=Resource)

# ASCII letters, digits and single hyphens; starts with a letter; at most 64 chars.
_RESOURCE_NAME = re.compile(r"^[A-Za-z](?:[A-Za-z0-9]|-(?=[A-Za-z0-9])){0,63}$")


def validate_resource_name(name: str) -> None:
    if not _RESOURCE_NAME.match(name):
        raise ConfigurationError(
            f"Resource name {name!r} is invalid: use ASCII letters, digits and single hyphens, "
            "start with a letter, end with a letter or digit, at most 64 characters"
        )


class ResourceBuilder(Generic[R]):
    def __init__(self, resource: R, application_builder: DistributedApplicationBuilder) -> None:
        self.resource = resource
        self.application_builder = application_builder

    def with_annotation(self, annotation: object) -> Self:
        self.resource.annotate(annotation)
        return self

    def with_health_check(self, key: str) -> Self:
        return self.with_annotation(HealthCheckAnnotation(key))

    def with_command(
        self,
        name: str,
        display_name: str,
        execute: Callable[[ExecuteCommandContext], Awaitable[ExecuteCommandResult]],
        *,
        update_state: Callable[[UpdateCommandStateContext], CommandState] | None = None,
        display_description: str | None = None,
        icon_name: str | None = None,
        icon_variant: IconVariant | None = None,
        is_highlighted: bool = False,
    ) -> Self:
        existing = [c for c in self.resource.annotations_of(ResourceCommand) if c.name == name]
        for command in existing:
            self.resource.annotations.remove(command)

        command = ResourceCommand(
            name=name,
            display_name=display_name,
            execute=execute,
            display_description=display_description,
            icon_name=icon_name,
            icon_variant=icon_variant,
            is_highlighted=is_highlighted,
        )
        if update_state is not None:
            command = replace(command, update_state=update_state)
        return self.with_annotation(command)

    def wait_for(self, dependency: ResourceBuilder[Resource]) -> Self:
        if dependency.resource is self.resource:
            raise ConfigurationError(f"Resource {self.resource.name} cannot wait for itself")
        return self.with_annotation(WaitAnnotation(dependency.resource))


class DistributedApplicationBuilder:
    def __init__(
        self,
        settings: Settings | None = None,
        *,
        services: AppServices | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.services = services or create_services(self.settings)
        self.eventing = EventBus()
        self._resources: dict[str, Resource] = {}

    @property
    def resources(self) -> list[Resource]:
        return list(self._resources.values())

    def add_resource(
        self, resource: R, *, initial_state: ResourceSnapshot | None = None
    ) -> ResourceBuilder[R]:
        validate_resource_name(resource.name)
        if resource.name.lower() in (n.lower() for n in self._resources):
            raise ConfigurationError(f"Cannot add resource {resource.name!r}: name already in use")
        self._resources[resource.name] = resource
        self.services.notifications.initialize(
            resource, initial_state or ResourceSnapshot(resource.resource_type)
        )
        return ResourceBuilder(resource, self)

    def build(self) -> DistributedApplication:
        return DistributedApplication(
            resources=self.resources, eventing=self.eventing, services=self.services
        )


# --- Module Notes -----------------------------------------------------------
# Resource names are compared case-insensitively because LocalDB instance names are.
