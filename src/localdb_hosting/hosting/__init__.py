"""
localdb_hosting.hosting

Application model hosting: builder, runtime, events, notifications, commands
and the LocalDB/dacpac registration functions.

Usage:
    from localdb_hosting.hosting.builder import DistributedApplicationBuilder
    from localdb_hosting.hosting.sqllocaldb import add_database, add_sqllocaldb, with_dacpac

    builder = DistributedApplicationBuilder()
    database = add_database(add_sqllocaldb(builder, "TestDb"), "Database", "Database1")
    with_dacpac(database, "bin/Debug/Database1.dacpac")
    await builder.build().run()
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Keep this file import-free: `localdb_hosting.services` imports `hosting.notifications`.
