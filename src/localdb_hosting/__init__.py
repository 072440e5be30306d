"""
localdb_hosting

Top-level package for the SQL Server LocalDB application host.

Responsibilities:
- Expose package version metadata.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"


# --- Module Notes -----------------------------------------------------------
# Keep this file minimal; the public builder API lives in `localdb_hosting.hosting`.
