from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from starlette.status import HTTP_404_NOT_FOUND

from localdb_hosting.api.deps import application_dep
from localdb_hosting.hosting.application import DistributedApplication
from localdb_hosting.hosting.commands import ResourceCommand
from localdb_hosting.model.resources import Resource
from localdb_hosting.model.state import ResourceSnapshot

router = APIRouter(prefix="/v1/resources", tags=["resources"])


class CommandResponse(BaseModel):
    name: str
    display_name: str
    description: str | None = None
    icon_name: str | None = None
    icon_variant: str | None = None
    is_highlighted: bool = False
    state: str


class ResourceResponse(BaseModel):
    name: str
    resource_type: str
    state: str
    health_status: str | None = None
    creation_timestamp: datetime
    start_timestamp: datetime | None = None
    properties: dict[str, str] = Field(default_factory=dict)
    commands: list[CommandResponse] = Field(default_factory=list)


class ConnectionStringResponse(BaseModel):
    name: str
    connection_string: str | None


class ExecuteCommandResponse(BaseModel):
    success: bool
    error_message: str | None = None


def _get_resource(application: DistributedApplication, name: str) -> Resource:
    try:
        return application.get_resource(name)
    except KeyError:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Resource not found") from None


def _to_response(resource: Resource, snapshot: ResourceSnapshot | None) -> ResourceResponse:
    snapshot = snapshot or ResourceSnapshot(resource.resource_type)
    return ResourceResponse(
        name=resource.name,
        resource_type=snapshot.resource_type,
        state=str(snapshot.state),
        health_status=str(snapshot.health_status) if snapshot.health_status else None,
        creation_timestamp=snapshot.creation_timestamp,
        start_timestamp=snapshot.start_timestamp,
        properties=dict(snapshot.properties),
        commands=[
            CommandResponse(**command.describe(resource, snapshot))
            for command in resource.annotations_of(ResourceCommand)
        ],
    )


@router.get("", response_model=list[ResourceResponse])
async def list_resources(
    application: DistributedApplication = Depends(application_dep),
) -> list[ResourceResponse]:
    notifications = application.services.notifications
    return [_to_response(r, notifications.get_snapshot(r)) for r in application.resources]


@router.get("/{name}", response_model=ResourceResponse)
async def get_resource(
    name: str,
    application: DistributedApplication = Depends(application_dep),
) -> ResourceResponse:
    resource = _get_resource(application, name)
    return _to_response(resource, application.services.notifications.get_snapshot(resource))


@router.get("/{name}/connection-string", response_model=ConnectionStringResponse)
async def get_connection_string(
    name: str,
    application: DistributedApplication = Depends(application_dep),
) -> ConnectionStringResponse:
    resource = _get_resource(application, name)
    accessor = getattr(resource, "get_connection_string", None)
    if accessor is None:
        raise HTTPException(
            status_code=HTTP_404_NOT_FOUND, detail="Resource has no connection string"
        )
    return ConnectionStringResponse(name=name, connection_string=await accessor())


@router.post("/{name}/commands/{command}", response_model=ExecuteCommandResponse)
async def execute_command(
    name: str,
    command: str,
    application: DistributedApplication = Depends(application_dep),
) -> ExecuteCommandResponse:
    _get_resource(application, name)
    try:
        result = await application.execute_command(name, command)
    except KeyError:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Command not found") from None
    return ExecuteCommandResponse(success=result.success, error_message=result.error_message)
