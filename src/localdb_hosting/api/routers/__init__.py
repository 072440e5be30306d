"""
localdb_hosting.api.routers

FastAPI routers.
"""

# Package marker.
