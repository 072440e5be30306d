"""
localdb_hosting.model.state

Lifecycle states and resource snapshots.

Responsibilities:
- Define the externally observed states of a resource.
- Provide an immutable snapshot type that the notification service replaces
  wholesale on every update.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


class ResourceState(enum.StrEnum):
    # Values mirror the state names shown to users; treat as stable API contract.
    not_started = "NotStarted"
    waiting = "Waiting"
    starting = "Starting"
    running = "Running"
    failed_to_start = "FailedToStart"


TERMINAL_STATES = frozenset({ResourceState.running, ResourceState.failed_to_start})


class HealthStatus(enum.StrEnum):
    healthy = "Healthy"
    unhealthy = "Unhealthy"


@dataclass(frozen=True, slots=True)
class ResourceSnapshot:
    resource_type: str
    state: ResourceState = ResourceState.not_started
    creation_timestamp: datetime = field(default_factory=utcnow)
    start_timestamp: datetime | None = None
    properties: tuple[tuple[str, str], ...] = ()
    health_status: HealthStatus | None = None

    def with_state(
        self, state: ResourceState, *, start_timestamp: datetime | None = None
    ) -> ResourceSnapshot:
        if start_timestamp is None:
            return replace(self, state=state)
        return replace(self, state=state, start_timestamp=start_timestamp)

    def with_property(self, name: str, value: str) -> ResourceSnapshot:
        kept = tuple((k, v) for k, v in self.properties if k != name)
        return replace(self, properties=(*kept, (name, value)))

    def without_property(self, name: str) -> ResourceSnapshot:
        return replace(self, properties=tuple((k, v) for k, v in self.properties if k != name))

    def property(self, name: str) -> str | None:
        for key, value in self.properties:
            if key == name:
                return value
        return None

    def to_dict(self) -> dict[str, object]:
        return {
            "resource_type": self.resource_type,
            "state": str(self.state),
            "creation_timestamp": self.creation_timestamp.isoformat(),
            "start_timestamp": self.start_timestamp.isoformat() if self.start_timestamp else None,
            "properties": dict(self.properties),
            "health_status": str(self.health_status) if self.health_status else None,
        }


# --- Module Notes -----------------------------------------------------------
# Snapshots are replaced, never mutated: `publish_update` takes a
# `snapshot -> snapshot` function so concurrent updates stay consistent.
