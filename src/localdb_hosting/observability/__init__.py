"""
localdb_hosting.observability

Observability package.

Responsibilities:
- Structured logging configuration.
"""

# Package marker.
