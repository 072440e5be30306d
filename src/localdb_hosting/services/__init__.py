"""
localdb_hosting.services

Service-layer package.

Responsibilities:
- Sequence engine calls and publish lifecycle state transitions.
- Convert engine failures into terminal states instead of raising.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services are plain Python with constructor-injected collaborators, so tests can
# pass fake engine clients.
