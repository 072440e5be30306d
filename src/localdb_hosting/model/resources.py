"""
localdb_hosting.model.resources

Resource records that make up the application model.

Responsibilities:
- SqlLocalDbInstanceResource: a named LocalDB instance and its database registry.
- SqlLocalDbDatabaseResource: a database hosted by exactly one instance.
- SqlProjectResource: a SQL database project whose dacpac gets deployed.
- Annotations attached to resources (project metadata, dacpac path, waits, etc.).
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, ClassVar, TypeVar

from localdb_hosting.model.connection import ConnectionDescriptor

if TYPE_CHECKING:
    from localdb_hosting.engines.sqllocaldb import InstanceInfo

A = TypeVar("A")


class StopMode(enum.StrEnum):
    # Maps onto `SqlLocalDB stop` flags: none, -k (kill), -i (no wait).
    shutdown = "shutdown"
    kill = "kill"
    nowait = "nowait"


@dataclass(slots=True)
class SqlLocalDbOptions:
    version: str | None = None
    auto_delete_files: bool = False
    stop_on_shutdown: bool = False
    stop_timeout: float = 60.0
    stop_mode: StopMode = StopMode.shutdown


@dataclass(frozen=True, slots=True)
class ProjectMetadata:
    project_path: str


@dataclass(frozen=True, slots=True)
class DacpacMetadata:
    dacpac_path: str


@dataclass(frozen=True, slots=True)
class WaitAnnotation:
    resource: Resource


@dataclass(frozen=True, slots=True)
class HealthCheckAnnotation:
    key: str


@dataclass(eq=False)
class Resource:
    resource_type: ClassVar[str] = "Resource"

    name: str
    annotations: list[object] = field(default_factory=list, kw_only=True, repr=False)

    def annotate(self, annotation: object) -> None:
        self.annotations.append(annotation)

    def last_annotation(self, kind: type[A]) -> A | None:
        for annotation in reversed(self.annotations):
            if isinstance(annotation, kind):
                return annotation
        return None

    def annotations_of(self, kind: type[A]) -> list[A]:
        return [a for a in self.annotations if isinstance(a, kind)]


@dataclass(eq=False)
class SqlLocalDbInstanceResource(Resource):
    resource_type: ClassVar[str] = "SqlLocalDbInstance"

    options: SqlLocalDbOptions = field(default_factory=SqlLocalDbOptions)
    # Set by the provisioning service once the engine reports the instance running.
    instance_info: InstanceInfo | None = field(default=None, repr=False)
    _databases: dict[str, str] = field(default_factory=dict, init=False, repr=False)

    @property
    def databases(self) -> Mapping[str, str]:
        return MappingProxyType(self._databases)

    def add_database(self, name: str, database_name: str) -> bool:
        if name in self._databases:
            return False
        self._databases[name] = database_name
        return True

    @property
    def connection_descriptor(self) -> ConnectionDescriptor | None:
        if self.instance_info is None:
            return None
        return ConnectionDescriptor(self.name)

    async def get_connection_string(self) -> str | None:
        descriptor = self.connection_descriptor
        return str(descriptor) if descriptor is not None else None


@dataclass(eq=False)
class SqlLocalDbDatabaseResource(Resource):
    resource_type: ClassVar[str] = "SqlLocalDbDatabase"

    database_name: str
    parent: SqlLocalDbInstanceResource = field(repr=False)

    @property
    def connection_descriptor(self) -> ConnectionDescriptor | None:
        parent = self.parent.connection_descriptor
        if parent is None:
            return None
        return parent.for_database(self.database_name)

    async def get_connection_string(self) -> str | None:
        parent = await self.parent.get_connection_string()
        if parent is None:
            return None
        return f"{parent};Database={self.database_name}"


@dataclass(eq=False)
class SqlProjectResource(Resource):
    resource_type: ClassVar[str] = "SqlProject"


# --- Module Notes -----------------------------------------------------------
# Resources compare by identity; the builder rejects duplicate names, so the
# name doubles as the lookup key for snapshots and HTTP routes.
