"""
localdb_hosting.api

HTTP control surface for a running application host (FastAPI).

Responsibilities:
- Resource listing, connection strings and command execution.
- Liveness/readiness probes.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Entry point: `python -m localdb_hosting.api` (see `__main__.py`).
