"""
localdb_hosting.manifest

Declarative app host manifest (JSON) for running the host without writing Python.

Responsibilities:
- Validate the manifest shape with Pydantic.
- Apply a manifest to a `DistributedApplicationBuilder` via the registration functions.

Example:
    {
      "instances": [
        {
          "name": "TestDb",
          "databases": [
            {
              "name": "Database",
              "database_name": "Database1",
              "project": {"name": "Database1", "path": "Database1/Database1.sqlproj"}
            }
          ]
        }
      ]
    }
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, model_validator

from localdb_hosting.engines.sqlpackage import DacDeployOptions
from localdb_hosting.hosting.builder import DistributedApplicationBuilder
from localdb_hosting.hosting.sqllocaldb import (
    add_database,
    add_sql_project,
    add_sqllocaldb,
    with_dacpac,
    with_reference,
)
from localdb_hosting.model.resources import SqlLocalDbOptions, StopMode


class _Spec(BaseModel):
    model_config = ConfigDict(extra="forbid")


class DeployOptionsSpec(_Spec):
    block_on_possible_data_loss: bool = True
    drop_objects_not_in_source: bool = False
    command_timeout: int | None = Field(default=None, gt=0)
    properties: dict[str, str] = Field(default_factory=dict)

    def to_options(self) -> DacDeployOptions:
        return DacDeployOptions(
            block_on_possible_data_loss=self.block_on_possible_data_loss,
            drop_objects_not_in_source=self.drop_objects_not_in_source,
            command_timeout=self.command_timeout,
            properties=dict(self.properties),
        )


class InstanceOptionsSpec(_Spec):
    version: str | None = None
    auto_delete_files: bool = False
    stop_on_shutdown: bool = False
    stop_timeout: float = Field(default=60.0, gt=0)
    stop_mode: StopMode = StopMode.shutdown

    def to_options(self) -> SqlLocalDbOptions:
        return SqlLocalDbOptions(**self.model_dump())


class ProjectSpec(_Spec):
    name: str
    path: str | None = None
    dacpac: str | None = None

    @model_validator(mode="after")
    def _has_location(self) -> ProjectSpec:
        if self.path is None and self.dacpac is None:
            raise ValueError("project needs a 'path' or a 'dacpac'")
        return self


class DatabaseSpec(_Spec):
    name: str
    database_name: str | None = None
    dacpac: str | None = None
    project: ProjectSpec | None = None
    deploy_options: DeployOptionsSpec | None = None

    @model_validator(mode="after")
    def _single_source(self) -> DatabaseSpec:
        if self.dacpac is not None and self.project is not None:
            raise ValueError("set either 'dacpac' or 'project', not both")
        return self


class InstanceSpec(_Spec):
    name: str
    options: InstanceOptionsSpec = Field(default_factory=InstanceOptionsSpec)
    databases: list[DatabaseSpec] = Field(default_factory=list)


class AppHostManifest(_Spec):
    instances: list[InstanceSpec] = Field(default_factory=list)


def load_manifest(path: str | Path) -> AppHostManifest:
    return AppHostManifest.model_validate_json(Path(path).read_text(encoding="utf-8"))


def apply_manifest(builder: DistributedApplicationBuilder, manifest: AppHostManifest) -> None:
    for instance_spec in manifest.instances:
        instance = add_sqllocaldb(builder, instance_spec.name, instance_spec.options.to_options())
        for db_spec in instance_spec.databases:
            database = add_database(instance, db_spec.name, db_spec.database_name)
            options = db_spec.deploy_options.to_options() if db_spec.deploy_options else None
            if db_spec.project is not None:
                project = add_sql_project(
                    builder,
                    db_spec.project.name,
                    project_path=db_spec.project.path,
                    dacpac_path=db_spec.project.dacpac,
                )
                with_reference(project, database, options)
            elif db_spec.dacpac is not None:
                with_dacpac(database, db_spec.dacpac, options)


# --- Module Notes -----------------------------------------------------------
# Relative paths are passed through unchanged and resolve against the working
# directory of the host process.
