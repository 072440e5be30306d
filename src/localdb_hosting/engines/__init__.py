"""
localdb_hosting.engines

Client boundaries for the external engines.

Responsibilities:
- Drive the LocalDB engine (`SqlLocalDB`), the schema deployer (`sqlpackage`)
  and MSBuild property evaluation (`dotnet msbuild`) as subprocesses.
"""

# Package marker.
