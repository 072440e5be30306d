"""
localdb_hosting.engines.sqlpackage

Client boundary for the schema deployment engine (`sqlpackage`).

Responsibilities:
- Publish a compiled `.dacpac` to a target database with upgrade-in-place semantics.
- Render deploy options into `/p:` publish properties.
- Forward every message the tool prints to a caller-supplied callback.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from localdb_hosting.engines.process import run_command
from localdb_hosting.errors import PackageNotFoundError
from localdb_hosting.model.connection import with_database


@dataclass(slots=True)
class DacDeployOptions:
    block_on_possible_data_loss: bool = True
    drop_objects_not_in_source: bool = False
    command_timeout: int | None = None
    properties: dict[str, str] = field(default_factory=dict)

    def to_arguments(self) -> list[str]:
        props: dict[str, str] = {
            "BlockOnPossibleDataLoss": str(self.block_on_possible_data_loss),
            "DropObjectsNotInSource": str(self.drop_objects_not_in_source),
        }
        if self.command_timeout is not None:
            props["CommandTimeout"] = str(self.command_timeout)
        props.update(self.properties)
        return [f"/p:{key}={value}" for key, value in props.items()]


def _with_trusted_certificate(connection_string: str) -> str:
    if "trustservercertificate" in connection_string.lower():
        return connection_string
    return f"{connection_string};TrustServerCertificate=True"


class SqlPackageDeployer:
    def __init__(self, *, executable: str = "sqlpackage", timeout: float | None = None) -> None:
        self._executable = executable
        self._timeout = timeout

    def build_arguments(
        self,
        dacpac_path: str,
        *,
        connection_string: str,
        database_name: str,
        upgrade_existing: bool = True,
        options: DacDeployOptions | None = None,
    ) -> list[str]:
        target = _with_trusted_certificate(with_database(connection_string, database_name))
        argv = [
            self._executable,
            "/Action:Publish",
            f"/SourceFile:{dacpac_path}",
            f"/TargetConnectionString:{target}",
        ]
        argv += (options or DacDeployOptions()).to_arguments()
        if not upgrade_existing:
            # Drop-and-recreate; the host itself always upgrades in place.
            argv.append("/p:CreateNewDatabase=True")
        return argv

    async def publish(
        self,
        dacpac_path: str,
        *,
        connection_string: str,
        database_name: str,
        upgrade_existing: bool = True,
        options: DacDeployOptions | None = None,
        on_message: Callable[[str], None] | None = None,
    ) -> None:
        if not Path(dacpac_path).is_file():
            raise PackageNotFoundError(f"dacpac not found: {dacpac_path}")

        argv = self.build_arguments(
            dacpac_path,
            connection_string=connection_string,
            database_name=database_name,
            upgrade_existing=upgrade_existing,
            options=options,
        )
        await run_command(argv, timeout=self._timeout, on_output=on_message)


# --- Module Notes -----------------------------------------------------------
# Cancellation of the awaiting task terminates the sqlpackage process (see
# `engines.process.run_command`).
