"""Async database connection management.

Provides async catalog connectivity using aiosqlite.
"""
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional
import asyncio

import aiosqlite

from ... import config


# =============================================================================
# SQLite3 datetime adapter (Python 3.12 compatibility)
# =============================================================================
def _adapt_datetime(dt: datetime) -> str:
    """Adapt datetime to ISO 8601 string for SQLite."""
    return dt.isoformat()

def _convert_datetime(val: bytes) -> datetime:
    """Convert ISO 8601 string from SQLite to datetime."""
    return datetime.fromisoformat(val.decode())

sqlite3.register_adapter(datetime, _adapt_datetime)
sqlite3.register_converter("DATETIME", _convert_datetime)
sqlite3.register_converter("TIMESTAMP", _convert_datetime)

# Global connection pool reference
_pool: Optional['AsyncConnectionPool'] = None


SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS organizations (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        is_premium BOOLEAN NOT NULL DEFAULT 0,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sub_organizations (
        id TEXT PRIMARY KEY,
        organization_id TEXT NOT NULL,
        name TEXT NOT NULL,
        is_premium BOOLEAN NOT NULL DEFAULT 0,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (organization_id) REFERENCES organizations(id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS storage_subscriptions (
        organization_id TEXT PRIMARY KEY,
        purchased_gb INTEGER NOT NULL DEFAULT 0,
        scheduled_downgrade_gb INTEGER,
        downgrade_at TIMESTAMP,
        FOREIGN KEY (organization_id) REFERENCES organizations(id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS folders (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        organization_id TEXT NOT NULL,
        sub_organization_id TEXT,
        parent_folder_id TEXT,
        created_by INTEGER,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (organization_id) REFERENCES organizations(id) ON DELETE CASCADE,
        FOREIGN KEY (sub_organization_id) REFERENCES sub_organizations(id) ON DELETE CASCADE,
        FOREIGN KEY (parent_folder_id) REFERENCES folders(id) ON DELETE SET NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS stored_objects (
        id TEXT PRIMARY KEY,
        kind TEXT NOT NULL CHECK(kind IN ('photo', 'file')),
        name TEXT,
        url TEXT NOT NULL,
        size_bytes INTEGER,
        organization_id TEXT NOT NULL,
        sub_organization_id TEXT,
        folder_id TEXT,
        uploader_id INTEGER,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        deleted_at TIMESTAMP,
        deleted_by INTEGER,
        FOREIGN KEY (organization_id) REFERENCES organizations(id) ON DELETE CASCADE,
        FOREIGN KEY (sub_organization_id) REFERENCES sub_organizations(id) ON DELETE CASCADE,
        FOREIGN KEY (folder_id) REFERENCES folders(id) ON DELETE SET NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_roles (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL,
        role TEXT NOT NULL CHECK(role IN ('app_admin', 'org_admin', 'sub_org_admin', 'member')),
        organization_id TEXT,
        sub_organization_id TEXT,
        UNIQUE(user_id, role, organization_id, sub_organization_id)
    )
    """,
    # Deleting a folder hands its subfolders and active objects to its parent.
    # Trashed objects fall back to the scope root through ON DELETE SET NULL.
    """
    CREATE TRIGGER IF NOT EXISTS folders_release_contents
    BEFORE DELETE ON folders
    BEGIN
        UPDATE folders SET parent_folder_id = OLD.parent_folder_id
            WHERE parent_folder_id = OLD.id;
        UPDATE stored_objects SET folder_id = OLD.parent_folder_id
            WHERE folder_id = OLD.id AND deleted_at IS NULL;
    END
    """,
    "CREATE INDEX IF NOT EXISTS idx_folders_parent ON folders(parent_folder_id)",
    "CREATE INDEX IF NOT EXISTS idx_objects_org ON stored_objects(organization_id, deleted_at)",
    "CREATE INDEX IF NOT EXISTS idx_objects_folder ON stored_objects(folder_id)",
]


async def connect(db_path: Path | str) -> aiosqlite.Connection:
    """Open a catalog connection with row factory and foreign keys enabled."""
    conn = await aiosqlite.connect(
        db_path,
        detect_types=sqlite3.PARSE_DECLTYPES
    )
    conn.row_factory = aiosqlite.Row
    await conn.execute("PRAGMA foreign_keys = ON")
    return conn


class AsyncConnectionPool:
    """Simple async connection pool for aiosqlite.

    aiosqlite doesn't require a traditional pool since connections
    can be shared across coroutines, but we provide a pool interface
    for compatibility and future optimization.
    """

    def __init__(self, db_path: Path, max_connections: int = 10):
        self.db_path = db_path
        self.max_connections = max_connections
        self._connections: list[aiosqlite.Connection] = []
        self._semaphore = asyncio.Semaphore(max_connections)
        self._lock = asyncio.Lock()

    async def acquire(self) -> aiosqlite.Connection:
        """Acquire a connection from the pool."""
        async with self._semaphore:
            async with self._lock:
                # Return existing connection if available
                if self._connections:
                    return self._connections.pop()

            return await connect(self.db_path)

    async def release(self, conn: aiosqlite.Connection) -> None:
        """Release a connection back to the pool."""
        async with self._lock:
            if len(self._connections) < self.max_connections:
                self._connections.append(conn)
            else:
                await conn.close()

    async def close_all(self) -> None:
        """Close all connections in the pool."""
        async with self._lock:
            for conn in self._connections:
                await conn.close()
            self._connections.clear()


async def get_async_db() -> aiosqlite.Connection:
    """Get async database connection.

    Returns:
        Async database connection
    """
    global _pool
    if _pool is None:
        _pool = AsyncConnectionPool(config.DATABASE_PATH)
    return await _pool.acquire()


async def release_async_db(conn: aiosqlite.Connection) -> None:
    """Release async database connection back to pool.

    Args:
        conn: Connection to release
    """
    global _pool
    if _pool:
        await _pool.release(conn)
    else:
        await conn.close()


async def create_schema(conn: aiosqlite.Connection) -> None:
    """Create catalog tables on an open connection."""
    for statement in SCHEMA:
        await conn.execute(statement)
    await conn.commit()


async def init_async_db() -> None:
    """Initialize database schema using async connection."""
    conn = await get_async_db()
    try:
        await create_schema(conn)
    finally:
        await release_async_db(conn)


async def close_async_db() -> None:
    """Close all async database connections."""
    global _pool
    if _pool:
        await _pool.close_all()
        _pool = None
