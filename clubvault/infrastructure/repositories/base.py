"""Base repository protocol and utilities.

This module defines the interface that all catalog repositories build on.
"""
from typing import Protocol

import aiosqlite


class AsyncConnectionProtocol(Protocol):
    """Protocol for async database connection."""

    async def execute(self, sql: str, parameters: tuple = ...) -> aiosqlite.Cursor: ...
    async def commit(self) -> None: ...


class AsyncRepository:
    """Async base repository class.

    Provides async database operations using aiosqlite.

    Example:
        class AsyncOrganizationRepository(AsyncRepository):
            async def get_by_id(self, organization_id: str) -> dict | None:
                return await self._fetchone(
                    "SELECT * FROM organizations WHERE id = ?", (organization_id,)
                )
    """

    def __init__(self, connection: AsyncConnectionProtocol):
        """Initialize repository with async database connection.

        Args:
            connection: Async database connection (aiosqlite.Connection)
        """
        self._conn = connection

    async def _execute(self, sql: str, parameters: tuple = ()) -> aiosqlite.Cursor:
        """Execute SQL query with parameters asynchronously.

        Args:
            sql: SQL query string
            parameters: Query parameters (prevents SQL injection)

        Returns:
            aiosqlite.Cursor with results
        """
        return await self._conn.execute(sql, parameters)

    async def _commit(self) -> None:
        """Commit current transaction asynchronously."""
        await self._conn.commit()

    def _row_to_dict(self, row: aiosqlite.Row | None) -> dict | None:
        """Convert aiosqlite.Row to dictionary.

        Args:
            row: Database row or None

        Returns:
            Dictionary representation or None
        """
        return dict(row) if row else None

    async def _fetchone(self, sql: str, parameters: tuple = ()) -> dict | None:
        """Fetch single row and return as dict.

        Args:
            sql: SQL query
            parameters: Query parameters

        Returns:
            Dictionary or None
        """
        cursor = await self._execute(sql, parameters)
        row = await cursor.fetchone()
        return self._row_to_dict(row)

    async def _fetchall(self, sql: str, parameters: tuple = ()) -> list[dict]:
        """Fetch all rows and return as list of dicts.

        Args:
            sql: SQL query
            parameters: Query parameters

        Returns:
            List of dictionaries
        """
        cursor = await self._execute(sql, parameters)
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    @staticmethod
    def _scope_clause(organization_id: str, sub_organization_id: str | None,
                      alias: str = "") -> tuple[str, tuple]:
        """Build the owner-scope filter shared by folder and object queries.

        A null sub-organization means organization-level rows only.
        """
        prefix = f"{alias}." if alias else ""
        if sub_organization_id is None:
            return (
                f"{prefix}organization_id = ? AND {prefix}sub_organization_id IS NULL",
                (organization_id,),
            )
        return (
            f"{prefix}organization_id = ? AND {prefix}sub_organization_id = ?",
            (organization_id, sub_organization_id),
        )
