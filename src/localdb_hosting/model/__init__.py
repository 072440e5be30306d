"""
localdb_hosting.model

Application model package.

Responsibilities:
- Resource records (instances, databases, SQL projects) and their annotations.
- Connection descriptors and lifecycle snapshots.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Nothing in this package performs I/O; engines and services live elsewhere.
