"""Product service.

Product catalogue with owner-scoped access control, a cached relational
source of record, a full-text search projection, and an event-driven
repair pipeline for dangling thumbnail references.
"""

__version__ = "0.1.0"
