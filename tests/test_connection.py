"""
tests.test_connection

Connection descriptor formatting.
"""

from __future__ import annotations

from urllib.parse import unquote_plus

import pytest

from localdb_hosting.model.connection import ConnectionDescriptor, with_database


@pytest.mark.parametrize("name", ["TestDb", "MSSQLLocalDB", "dev-01", "a"])
def test_instance_descriptor_embeds_name_once(name: str) -> None:
    value = str(ConnectionDescriptor(name))

    assert value == f"Data Source=(LocalDb)\\{name}"
    assert value.split(";")[0].rsplit("\\", 1)[1] == name
    assert value.count(f"\\{name}") == 1
    assert "Database=" not in value


def test_database_descriptor_appends_database_qualifier() -> None:
    instance = ConnectionDescriptor("TestDb")
    database = instance.for_database("Database1")

    assert str(database) == f"{instance};Database=Database1"
    # The instance descriptor itself is unchanged.
    assert instance.database_name is None


def test_odbc_form_targets_localdb_server() -> None:
    odbc = ConnectionDescriptor("TestDb", "Database1").to_odbc("ODBC Driver 18 for SQL Server")

    assert odbc.startswith("Driver={ODBC Driver 18 for SQL Server};Server=(localdb)\\TestDb;")
    assert "Database=Database1" in odbc
    assert "Trusted_Connection=yes" in odbc


def test_url_wraps_odbc_string() -> None:
    descriptor = ConnectionDescriptor("TestDb")
    url = descriptor.to_url("ODBC Driver 18 for SQL Server")

    prefix = "mssql+aioodbc:///?odbc_connect="
    assert url.startswith(prefix)
    assert unquote_plus(url[len(prefix) :]) == descriptor.to_odbc("ODBC Driver 18 for SQL Server")


@pytest.mark.parametrize(
    ("connection_string", "expected"),
    [
        ("Data Source=(LocalDb)\\TestDb", "Data Source=(LocalDb)\\TestDb;Database=Db2"),
        ("Data Source=(LocalDb)\\TestDb;Database=Db1", "Data Source=(LocalDb)\\TestDb;Database=Db2"),
        (
            "Data Source=(LocalDb)\\TestDb;Initial Catalog=Db1;Encrypt=False",
            "Data Source=(LocalDb)\\TestDb;Encrypt=False;Database=Db2",
        ),
    ],
)
def test_with_database_replaces_existing_key(connection_string: str, expected: str) -> None:
    assert with_database(connection_string, "Db2") == expected
