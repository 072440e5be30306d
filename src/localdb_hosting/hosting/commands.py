"""
localdb_hosting.hosting.commands

User-invocable resource commands (e.g. "redeploy").

Responsibilities:
- Describe a command: name, display metadata, execute callback.
- Evaluate whether a command is enabled against the resource's current snapshot.
"""

from __future__ import annotations

import enum
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from localdb_hosting.model.resources import Resource
from localdb_hosting.model.state import ResourceSnapshot

if TYPE_CHECKING:
    from localdb_hosting.hosting.services import AppServices


class CommandState(enum.StrEnum):
    enabled = "Enabled"
    disabled = "Disabled"
    hidden = "Hidden"


class IconVariant(enum.StrEnum):
    regular = "Regular"
    filled = "Filled"


@dataclass(frozen=True, slots=True)
class ExecuteCommandContext:
    resource: Resource
    services: AppServices


@dataclass(frozen=True, slots=True)
class UpdateCommandStateContext:
    resource: Resource
    snapshot: ResourceSnapshot | None


@dataclass(frozen=True, slots=True)
class ExecuteCommandResult:
    success: bool
    error_message: str | None = None


def _always_enabled(_: UpdateCommandStateContext) -> CommandState:
    return CommandState.enabled


@dataclass(frozen=True, slots=True)
class ResourceCommand:
    name: str
    display_name: str
    execute: Callable[[ExecuteCommandContext], Awaitable[ExecuteCommandResult]]
    update_state: Callable[[UpdateCommandStateContext], CommandState] = _always_enabled
    display_description: str | None = None
    icon_name: str | None = None
    icon_variant: IconVariant | None = None
    is_highlighted: bool = False

    def state_for(self, resource: Resource, snapshot: ResourceSnapshot | None) -> CommandState:
        return self.update_state(UpdateCommandStateContext(resource=resource, snapshot=snapshot))

    def describe(self, resource: Resource, snapshot: ResourceSnapshot | None) -> dict[str, Any]:
        return {
            "name": self.name,
            "display_name": self.display_name,
            "description": self.display_description,
            "icon_name": self.icon_name,
            "icon_variant": str(self.icon_variant) if self.icon_variant else None,
            "is_highlighted": self.is_highlighted,
            "state": str(self.state_for(resource, snapshot)),
        }


# --- Module Notes -----------------------------------------------------------
# Commands are stored as resource annotations; `DistributedApplication.execute_command`
# refuses anything whose state is not Enabled.
