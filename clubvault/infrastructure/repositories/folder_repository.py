"""Folder repository - handles all folder-related catalog operations.

Folders form a hierarchy through ``parent_folder_id`` references. Objects are
contained by reference, so reparenting a folder moves its whole subtree
without touching any object row.
"""
import uuid

from .base import AsyncRepository


class AsyncFolderRepository(AsyncRepository):
    """Async repository for folder operations.

    Every folder belongs to exactly one owner scope: an organization
    (``sub_organization_id`` is NULL) or one of its sub-organizations.

    Examples:
        >>> repo = AsyncFolderRepository(conn)
        >>> root = await repo.create("Match photos", "org-1", None, user_id=7)
        >>> child = await repo.create("2026", "org-1", None, user_id=7, parent_folder_id=root)
        >>> await repo.list_children("org-1", None, root)
    """

    async def create(
        self,
        name: str,
        organization_id: str,
        sub_organization_id: str | None,
        user_id: int | None = None,
        parent_folder_id: str | None = None,
        folder_id: str | None = None,
    ) -> str:
        """Create a new folder.

        Args:
            name: Folder name
            organization_id: Owning organization
            sub_organization_id: Owning sub-organization (None for organization level)
            user_id: Creator user ID
            parent_folder_id: Parent folder ID (None for scope root)
            folder_id: Explicit ID (generated when omitted)

        Returns:
            New folder UUID
        """
        folder_id = folder_id or str(uuid.uuid4())
        await self._execute(
            """INSERT INTO folders
                   (id, name, organization_id, sub_organization_id, parent_folder_id, created_by)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (folder_id, name.strip(), organization_id, sub_organization_id,
             parent_folder_id, user_id)
        )
        await self._commit()
        return folder_id

    async def get_by_id(self, folder_id: str) -> dict | None:
        """Get folder by ID.

        Args:
            folder_id: Folder UUID

        Returns:
            Folder dict or None
        """
        return await self._fetchone(
            "SELECT * FROM folders WHERE id = ?",
            (folder_id,)
        )

    async def get_parent_ref(self, folder_id: str) -> dict | None:
        """Get the id, name and parent of a folder (for path walks)."""
        return await self._fetchone(
            "SELECT id, name, parent_folder_id FROM folders WHERE id = ?",
            (folder_id,)
        )

    async def list_children(
        self,
        organization_id: str,
        sub_organization_id: str | None,
        parent_folder_id: str | None,
    ) -> list[dict]:
        """Get direct child folders of a folder (or of the scope root).

        Args:
            organization_id: Owning organization
            sub_organization_id: Owning sub-organization (None for organization level)
            parent_folder_id: Parent folder (None for scope root)

        Returns:
            List of folder dicts ordered by name
        """
        scope_sql, params = self._scope_clause(organization_id, sub_organization_id)
        if parent_folder_id is None:
            return await self._fetchall(
                f"""SELECT * FROM folders
                    WHERE {scope_sql} AND parent_folder_id IS NULL
                    ORDER BY name""",
                params
            )
        return await self._fetchall(
            f"""SELECT * FROM folders
                WHERE {scope_sql} AND parent_folder_id = ?
                ORDER BY name""",
            params + (parent_folder_id,)
        )

    async def update_name(self, folder_id: str, new_name: str) -> bool:
        """Update folder name.

        Args:
            folder_id: Folder ID
            new_name: New folder name

        Returns:
            True if folder existed and was updated
        """
        cursor = await self._execute(
            "UPDATE folders SET name = ? WHERE id = ?",
            (new_name.strip(), folder_id)
        )
        await self._commit()
        return cursor.rowcount > 0

    async def move(self, folder_id: str, new_parent_id: str | None) -> bool:
        """Move folder to new parent.

        Args:
            folder_id: Folder to move
            new_parent_id: New parent (None for scope root)

        Returns:
            True if successful
        """
        cursor = await self._execute(
            "UPDATE folders SET parent_folder_id = ? WHERE id = ?",
            (new_parent_id, folder_id)
        )
        await self._commit()
        return cursor.rowcount > 0

    async def delete(self, folder_id: str) -> bool:
        """Delete a single folder row.

        Child folders and contained objects are not deleted; the
        ``folders_release_contents`` trigger hands them to the parent folder.

        Args:
            folder_id: Folder ID to delete

        Returns:
            True if folder existed and was deleted
        """
        cursor = await self._execute(
            "DELETE FROM folders WHERE id = ?",
            (folder_id,)
        )
        await self._commit()
        return cursor.rowcount > 0

    async def exists(self, folder_id: str) -> bool:
        """Check if folder exists."""
        row = await self._fetchone(
            "SELECT 1 AS present FROM folders WHERE id = ?",
            (folder_id,)
        )
        return row is not None
