"""
localdb_hosting.engines.msbuild

MSBuild property evaluation for SQL database projects.

Responsibilities:
- Evaluate a project property (e.g. `SqlTargetPath`, `TargetPath`) via
  `dotnet msbuild -getProperty:<name>`.
"""

from __future__ import annotations

from typing import Protocol

from localdb_hosting.engines.process import run_command_sync


class ProjectEvaluator(Protocol):
    def get_property(self, project_path: str, name: str) -> str: ...


class MsBuildProjectEvaluator:
    """
    Evaluates project properties without building the project.

    Runs synchronously: dacpac paths are resolved while resources are being
    registered, before the application starts its event loop work.
    """

    def __init__(self, *, dotnet: str = "dotnet", timeout: float | None = 120.0) -> None:
        self._dotnet = dotnet
        self._timeout = timeout

    def get_property(self, project_path: str, name: str) -> str:
        result = run_command_sync(
            [self._dotnet, "msbuild", project_path, f"-getProperty:{name}", "-nologo"],
            timeout=self._timeout,
        )
        # A single requested property is printed as a bare value line.
        return result.output.strip()


# --- Module Notes -----------------------------------------------------------
# `-getProperty` requires the .NET 8 SDK or later.
