"""
localdb_hosting.model.connection

Connection descriptors for LocalDB instances and databases.

Responsibilities:
- Compose `Data Source=(LocalDb)\\<instance>[;Database=<db>]` connection strings.
- Translate descriptors into the ODBC / SQLAlchemy forms used by health checks.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from urllib.parse import quote_plus

_DATABASE_KEYS = frozenset({"database", "initial catalog"})


@dataclass(frozen=True, slots=True)
class ConnectionDescriptor:
    instance_name: str
    database_name: str | None = None

    def __str__(self) -> str:
        value = f"Data Source=(LocalDb)\\{self.instance_name}"
        if self.database_name is not None:
            value += f";Database={self.database_name}"
        return value

    def for_database(self, database_name: str) -> ConnectionDescriptor:
        return replace(self, database_name=database_name)

    def to_odbc(self, driver: str) -> str:
        parts = [f"Driver={{{driver}}}", f"Server=(localdb)\\{self.instance_name}"]
        if self.database_name is not None:
            parts.append(f"Database={self.database_name}")
        # LocalDB presents a self-signed certificate; newer drivers encrypt by default.
        parts += ["Trusted_Connection=yes", "TrustServerCertificate=yes"]
        return ";".join(parts)

    def to_url(self, driver: str) -> str:
        return f"mssql+aioodbc:///?odbc_connect={quote_plus(self.to_odbc(driver))}"


def with_database(connection_string: str, database_name: str) -> str:
    """
    Replace (or append) the database key of a `key=value;...` connection string.
    """

    kept = [
        part
        for part in connection_string.split(";")
        if part.strip() and part.split("=", 1)[0].strip().lower() not in _DATABASE_KEYS
    ]
    kept.append(f"Database={database_name}")
    return ";".join(kept)


# --- Module Notes -----------------------------------------------------------
# Descriptors are derived on demand from resource state and never cached.
