"""
work-interruption: addressable task store with streaming text export.

Subpackages:
- tasks: schema, SQLite handle, high-level helpers
- provider: URI routing, query/mutation engines, change notifier, stream exporter
- cli / connectors: console front end
"""

__version__ = "0.3.0"
