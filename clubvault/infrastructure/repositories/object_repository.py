"""Stored object repository - photos and files in one tagged table.

A non-null ``deleted_at`` marks an object as trashed. Trashed rows keep
their folder and owner references so a restore puts them back in place.
"""
import uuid
from datetime import datetime, timezone

from .base import AsyncRepository


class AsyncObjectRepository(AsyncRepository):
    """Async repository for stored object operations."""

    async def create(
        self,
        kind: str,
        name: str | None,
        url: str,
        organization_id: str,
        sub_organization_id: str | None = None,
        folder_id: str | None = None,
        size_bytes: int | None = None,
        uploader_id: int | None = None,
        object_id: str | None = None,
    ) -> str:
        """Insert a stored object row.

        Returns:
            New object UUID
        """
        object_id = object_id or str(uuid.uuid4())
        await self._execute(
            """INSERT INTO stored_objects
                   (id, kind, name, url, size_bytes, organization_id,
                    sub_organization_id, folder_id, uploader_id)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (object_id, kind, name, url, size_bytes, organization_id,
             sub_organization_id, folder_id, uploader_id)
        )
        await self._commit()
        return object_id

    async def get_by_id(self, object_id: str) -> dict | None:
        """Get object by ID, trashed or not."""
        return await self._fetchone(
            "SELECT * FROM stored_objects WHERE id = ?",
            (object_id,)
        )

    async def list_in_folder(
        self,
        organization_id: str,
        sub_organization_id: str | None,
        folder_id: str | None,
    ) -> list[dict]:
        """List active objects placed in a folder (or at the scope root).

        Returns:
            List of object dicts, newest first
        """
        scope_sql, params = self._scope_clause(organization_id, sub_organization_id)
        if folder_id is None:
            folder_sql = "folder_id IS NULL"
        else:
            folder_sql = "folder_id = ?"
            params = params + (folder_id,)
        return await self._fetchall(
            f"""SELECT * FROM stored_objects
                WHERE {scope_sql} AND {folder_sql} AND deleted_at IS NULL
                ORDER BY created_at DESC, id""",
            params
        )

    async def list_active_for_organization(self, organization_id: str) -> list[dict]:
        """All non-trashed objects owned by an organization or its sub-organizations."""
        return await self._fetchall(
            """SELECT id, kind, name, size_bytes, sub_organization_id
               FROM stored_objects
               WHERE organization_id = ? AND deleted_at IS NULL""",
            (organization_id,)
        )

    async def list_trashed_for_organization(self, organization_id: str) -> list[dict]:
        """Trashed objects across the organization with location names.

        Returns:
            Object dicts plus ``folder_name`` and ``sub_organization_name``,
            most recently deleted first
        """
        return await self._fetchall(
            """SELECT o.*, f.name AS folder_name, s.name AS sub_organization_name
               FROM stored_objects o
               LEFT JOIN folders f ON o.folder_id = f.id
               LEFT JOIN sub_organizations s ON o.sub_organization_id = s.id
               WHERE o.organization_id = ? AND o.deleted_at IS NOT NULL
               ORDER BY o.deleted_at DESC, o.id""",
            (organization_id,)
        )

    async def list_largest(self, organization_id: str, limit: int = 50) -> list[dict]:
        """Largest sized active objects with their sub-organization name."""
        return await self._fetchall(
            """SELECT o.*, s.name AS sub_organization_name
               FROM stored_objects o
               LEFT JOIN sub_organizations s ON o.sub_organization_id = s.id
               WHERE o.organization_id = ?
                 AND o.deleted_at IS NULL
                 AND o.size_bytes IS NOT NULL
               ORDER BY o.size_bytes DESC, o.id
               LIMIT ?""",
            (organization_id, limit)
        )

    async def soft_delete(self, object_id: str, actor_id: int | None) -> bool:
        """Set the soft-delete marker on an active object.

        Returns:
            True if the object was active and is now trashed, False if it was
            already trashed or does not exist
        """
        cursor = await self._execute(
            """UPDATE stored_objects SET deleted_at = ?, deleted_by = ?
               WHERE id = ? AND deleted_at IS NULL""",
            (datetime.now(timezone.utc), actor_id, object_id)
        )
        await self._commit()
        return cursor.rowcount > 0

    async def restore(self, object_id: str, folder_id: str | None) -> bool:
        """Clear the soft-delete marker and (re)set the folder reference."""
        cursor = await self._execute(
            """UPDATE stored_objects SET deleted_at = NULL, deleted_by = NULL, folder_id = ?
               WHERE id = ?""",
            (folder_id, object_id)
        )
        await self._commit()
        return cursor.rowcount > 0

    async def delete(self, object_id: str) -> bool:
        """Remove the object row permanently."""
        cursor = await self._execute(
            "DELETE FROM stored_objects WHERE id = ?",
            (object_id,)
        )
        await self._commit()
        return cursor.rowcount > 0

    async def rename(self, object_id: str, new_name: str) -> bool:
        """Update display name/title."""
        cursor = await self._execute(
            "UPDATE stored_objects SET name = ? WHERE id = ?",
            (new_name.strip(), object_id)
        )
        await self._commit()
        return cursor.rowcount > 0
