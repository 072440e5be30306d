"""
localdb_hosting.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Expose the running `DistributedApplication` stored on app.state.
"""

from __future__ import annotations

from fastapi import Request

from localdb_hosting.hosting.application import DistributedApplication


def application_dep(request: Request) -> DistributedApplication:
    # Stored by `localdb_hosting.api.app.create_app`.
    return request.app.state.application  # type: ignore[attr-defined]
