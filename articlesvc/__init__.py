"""Article service: SQLite post storage, request validation and a JSON HTTP gateway."""

__version__ = "0.1.0"