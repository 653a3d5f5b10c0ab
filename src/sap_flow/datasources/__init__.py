"""External data source integrations.

Each subdirectory is one data source with a consistent structure:

    datasources/{name}/
    ├── __init__.py       # Public API re-exports
    ├── client.py         # API URLs, constants, request helper
    ├── models.py         # Dataclasses for normalized records
    └── {feature}.py      # Fetch functions (one per endpoint/concept)

Fetch functions are synchronous and use the shared session from
``services.http``; ``services.weather`` runs them off the event loop.
"""
