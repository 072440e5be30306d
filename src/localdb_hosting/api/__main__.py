"""
localdb_hosting.api.__main__

Entrypoint for running the host via `python -m localdb_hosting.api`.

Responsibilities:
- Load settings and the app host manifest (`LOCALDB_MANIFEST_PATH`).
- Build the application model and the FastAPI app.
- Start uvicorn with structlog-compatible logging config.
"""

from __future__ import annotations

import sys

import uvicorn

from localdb_hosting.api.app import create_app
from localdb_hosting.hosting.builder import DistributedApplicationBuilder
from localdb_hosting.manifest import apply_manifest, load_manifest
from localdb_hosting.settings import get_settings


def main() -> None:
    settings = get_settings()
    if settings.manifest_path is None:
        sys.exit("LOCALDB_MANIFEST_PATH is not set")

    builder = DistributedApplicationBuilder(settings)
    apply_manifest(builder, load_manifest(settings.manifest_path))
    app = create_app(settings=settings, application=builder.build())

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,  # structlog
    )


if __name__ == "__main__":
    main()
