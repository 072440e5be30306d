"""
localdb_hosting.services.dacpac_service

Dacpac deployment service.

Responsibilities:
- Publish a compiled schema package into a LocalDB database (Starting -> Running/FailedToStart).
- Forward deployment engine messages to the target resource's logger.
- Record why a deployment failed on the resource snapshot.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Protocol

from localdb_hosting.engines.sqlpackage import DacDeployOptions
from localdb_hosting.errors import ConnectionUnavailableError
from localdb_hosting.hosting.notifications import (
    ResourceLoggerService,
    ResourceNotificationService,
)
from localdb_hosting.model.resources import SqlLocalDbDatabaseResource
from localdb_hosting.model.state import ResourceState, utcnow

FAILURE_REASON = "failure_reason"


class Deployer(Protocol):
    async def publish(
        self,
        dacpac_path: str,
        *,
        connection_string: str,
        database_name: str,
        upgrade_existing: bool = True,
        options: DacDeployOptions | None = None,
        on_message: Callable[[str], None] | None = None,
    ) -> None: ...


class DacpacService:
    def __init__(
        self,
        *,
        deployer: Deployer,
        loggers: ResourceLoggerService,
        notifications: ResourceNotificationService,
    ) -> None:
        self._deployer = deployer
        self._loggers = loggers
        self._notifications = notifications

    async def deploy(
        self,
        dacpac_path: str,
        target: SqlLocalDbDatabaseResource,
        options: DacDeployOptions | None = None,
    ) -> ResourceState:
        logger = self._loggers.get_logger(target)

        def _on_message(message: str) -> None:
            logger.info("dacpac_message", message=message)

        try:
            await self._notifications.publish_update(
                target, lambda s: s.with_state(ResourceState.starting)
            )
            logger.info("deploying_dacpac", path=dacpac_path, database=target.database_name)

            connection_string = await target.get_connection_string()
            if not connection_string:
                raise ConnectionUnavailableError(target.name)

            await self._deployer.publish(
                dacpac_path,
                connection_string=connection_string,
                database_name=target.database_name,
                upgrade_existing=True,
                options=options,
                on_message=_on_message,
            )
        except asyncio.CancelledError:
            logger.warning("dacpac_deploy_cancelled", path=dacpac_path, database=target.database_name)
            await self._notifications.publish_update(
                target,
                lambda s: s.with_state(ResourceState.failed_to_start).with_property(
                    FAILURE_REASON, "CancelledError"
                ),
            )
            raise
        except Exception as e:
            logger.exception("dacpac_deploy_failed", path=dacpac_path, database=target.database_name)
            reason = type(e).__name__
            await self._notifications.publish_update(
                target,
                lambda s: s.with_state(ResourceState.failed_to_start).with_property(
                    FAILURE_REASON, reason
                ),
            )
            return ResourceState.failed_to_start

        await self._notifications.publish_update(
            target,
            lambda s: s.with_state(
                ResourceState.running, start_timestamp=utcnow()
            ).without_property(FAILURE_REASON),
        )
        logger.info("dacpac_deployed", database=target.database_name)
        return ResourceState.running


# --- Module Notes -----------------------------------------------------------
# Failures stay coarse (FailedToStart) for observers; `failure_reason` carries the
# exception class name (PackageNotFoundError, CommandFailedError, ...) for display.
