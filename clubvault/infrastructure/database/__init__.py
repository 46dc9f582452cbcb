"""Catalog database access."""
from .connection import (
    connect,
    create_schema,
    get_async_db,
    release_async_db,
    init_async_db,
    close_async_db,
)

__all__ = [
    "connect",
    "create_schema",
    "get_async_db",
    "release_async_db",
    "init_async_db",
    "close_async_db",
]
