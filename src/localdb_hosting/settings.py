"""
localdb_hosting.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide env-driven settings for the engine clients, health checks and API.
- Locate the command-line tools used to drive LocalDB, sqlpackage and MSBuild.
- Offer a cached settings instance for the composition root.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Local development host settings:
    - Tool paths default to names resolved from PATH
    - Defaults target a developer workstation with LocalDB installed
    """

    model_config = SettingsConfigDict(env_prefix="LOCALDB_", case_sensitive=False)

    env: Literal["dev", "test"] = "dev"
    service_name: str = "localdb-hosting"
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"

    # External tools
    sqllocaldb_path: str = "SqlLocalDB"
    sqlpackage_path: str = "sqlpackage"
    dotnet_path: str = "dotnet"
    command_timeout_seconds: float = Field(default=120.0, gt=0)

    # Health checks (SELECT 1 through SQLAlchemy + aioodbc)
    odbc_driver: str = "ODBC Driver 18 for SQL Server"
    health_check_interval_seconds: float = Field(default=2.0, gt=0)
    health_check_timeout_seconds: float = Field(default=5.0, gt=0)

    # App host manifest consumed by `python -m localdb_hosting.api`
    manifest_path: Path | None = None

    api_host: str = "127.0.0.1"
    api_port: int = 18888


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Tests construct `Settings(...)` directly instead of going through the cache.
