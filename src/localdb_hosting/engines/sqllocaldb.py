"""
localdb_hosting.engines.sqllocaldb

Client boundary for the SQL Server LocalDB engine.

Responsibilities:
- Create, start, stop, delete and inspect named LocalDB instances through the
  `SqlLocalDB` command-line utility.
- Parse `SqlLocalDB info <name>` output into an `InstanceInfo` record.
"""

from __future__ import annotations

from dataclasses import dataclass

from localdb_hosting.engines.process import run_command
from localdb_hosting.errors import InvalidInstanceNameError, ProvisioningFailure
from localdb_hosting.model.resources import StopMode

MAX_INSTANCE_NAME_LENGTH = 128

_MISSING_MARKERS = ("doesn't exist", "does not exist")


@dataclass(frozen=True, slots=True)
class InstanceInfo:
    name: str
    exists: bool = True
    state: str = ""
    version: str | None = None
    owner: str | None = None
    shared_name: str | None = None
    auto_create: bool = False
    last_start_time: str | None = None
    pipe_name: str | None = None

    @property
    def is_running(self) -> bool:
        return self.state.lower() == "running"


def validate_instance_name(name: str) -> None:
    if not name or not name.strip():
        raise InvalidInstanceNameError("LocalDB instance name must not be blank")
    if len(name) > MAX_INSTANCE_NAME_LENGTH:
        raise InvalidInstanceNameError(
            f"LocalDB instance name exceeds {MAX_INSTANCE_NAME_LENGTH} characters: {name!r}"
        )


def parse_instance_info(output: str) -> InstanceInfo | None:
    """
    Parse the `Key: value` block printed by `SqlLocalDB info <name>`.

    Returns None when the tool reports that the instance does not exist.
    """

    lowered = output.lower()
    if any(marker in lowered for marker in _MISSING_MARKERS):
        return None

    fields: dict[str, str] = {}
    for line in output.splitlines():
        # Pipe names contain colons (np:\\.\pipe\...), so split on the first one only.
        key, sep, value = line.partition(":")
        if sep:
            fields[key.strip().lower()] = value.strip()

    name = fields.get("name")
    if not name:
        return None
    return InstanceInfo(
        name=name,
        state=fields.get("state", ""),
        version=fields.get("version") or None,
        owner=fields.get("owner") or None,
        shared_name=fields.get("shared name") or None,
        auto_create=fields.get("auto-create", "").lower() == "yes",
        last_start_time=fields.get("last start time") or None,
        pipe_name=fields.get("instance pipe name") or None,
    )


class SqlLocalDbApi:
    def __init__(self, *, executable: str = "SqlLocalDB", timeout: float | None = 120.0) -> None:
        self._executable = executable
        self._timeout = timeout

    async def _run(self, *args: str, check: bool = True) -> str:
        result = await run_command([self._executable, *args], timeout=self._timeout, check=check)
        return result.output

    async def get_instance_names(self) -> list[str]:
        output = await self._run("info")
        return [line.strip() for line in output.splitlines() if line.strip()]

    async def get_instance_info(self, name: str) -> InstanceInfo | None:
        validate_instance_name(name)
        # A missing instance is reported on the output (and sometimes a non-zero exit).
        output = await self._run("info", name, check=False)
        return parse_instance_info(output)

    async def create_instance(self, name: str, version: str | None = None) -> InstanceInfo:
        validate_instance_name(name)
        args = ["create", name]
        if version:
            args.append(version)
        await self._run(*args)
        info = await self.get_instance_info(name)
        if info is None:
            raise ProvisioningFailure(f"LocalDB instance {name} was not created")
        return info

    async def get_or_create_instance(self, name: str, version: str | None = None) -> InstanceInfo:
        info = await self.get_instance_info(name)
        if info is not None:
            return info
        return await self.create_instance(name, version)

    async def start_instance(self, name: str) -> InstanceInfo:
        validate_instance_name(name)
        await self._run("start", name)
        info = await self.get_instance_info(name)
        if info is None or not info.is_running:
            raise ProvisioningFailure(f"LocalDB instance {name} is not running after start")
        return info

    async def stop_instance(
        self, name: str, *, mode: StopMode = StopMode.shutdown, timeout: float | None = None
    ) -> None:
        validate_instance_name(name)
        args = ["stop", name]
        if mode is StopMode.kill:
            args.append("-k")
        elif mode is StopMode.nowait:
            args.append("-i")
        await run_command([self._executable, *args], timeout=timeout or self._timeout)

    async def delete_instance(self, name: str) -> None:
        validate_instance_name(name)
        await self._run("delete", name)


# --- Module Notes -----------------------------------------------------------
# `SqlLocalDB create` does not start the instance; callers start it explicitly so
# pre-existing stopped instances follow the same path as new ones.
