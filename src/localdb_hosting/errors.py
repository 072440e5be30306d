"""
localdb_hosting.errors

Exception taxonomy for the application host.

Responsibilities:
- Separate caller configuration mistakes (raised at registration time) from
  provisioning/deployment failures (converted into lifecycle states).
- Carry enough context (argv, exit code, output) to log engine failures.
"""

from __future__ import annotations

from collections.abc import Sequence


class LocalDbHostingError(Exception):
    pass


class ConfigurationError(LocalDbHostingError):
    pass


class PackagePathNotFoundError(ConfigurationError, LookupError):
    """
    Raised when no dacpac path can be determined for a SQL project resource.
    """

    def __init__(self, resource_name: str) -> None:
        super().__init__(
            f"Unable to locate SQL Server Database project package for resource {resource_name}."
        )
        self.resource_name = resource_name


class ConnectionUnavailableError(ConfigurationError):
    def __init__(self, resource_name: str) -> None:
        super().__init__(f"Connection string for resource {resource_name} is unavailable")
        self.resource_name = resource_name


class InvalidInstanceNameError(ConfigurationError):
    pass


class ProvisioningFailure(LocalDbHostingError):
    pass


class DeploymentFailure(LocalDbHostingError):
    pass


class PackageNotFoundError(DeploymentFailure, FileNotFoundError):
    pass


class ToolNotFoundError(LocalDbHostingError):
    def __init__(self, tool: str) -> None:
        super().__init__(f"Command not found: {tool}")
        self.tool = tool


class CommandFailedError(LocalDbHostingError):
    """
    An external tool exited with a non-zero status.
    """

    def __init__(self, argv: Sequence[str], exit_code: int, output: str) -> None:
        super().__init__(f"{argv[0]} exited with code {exit_code}: {output.strip()[-500:]}")
        self.argv = list(argv)
        self.exit_code = exit_code
        self.output = output


# --- Module Notes -----------------------------------------------------------
# Only `PackagePathNotFoundError` is expected to reach application code; the
# services catch everything else and publish FailedToStart.
