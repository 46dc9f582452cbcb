"""Folder service - the folder tree and its scoping rules.

Containment is by reference: objects point at a folder, folders point at a
parent. Moving a folder only rewrites its parent reference.
"""
import logging
from typing import Optional

from ..errors import (
    IntegrityError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from ..models import OwnerScope, StoredObject, PHOTO, FILE
from ...infrastructure.repositories import (
    AsyncFolderRepository,
    AsyncObjectRepository,
    AsyncOrganizationRepository,
)
from .capability_service import CapabilityChecker, require_scope

logger = logging.getLogger(__name__)

DELETE_FOLDER_WARNING = "Contents will move to the parent folder"


class FolderService:
    """Service for folder tree operations.

    Responsibilities:
    - Listing child folders and contained photos/files of a folder view
    - Resolving the ancestor path of a folder
    - Folder create / rename / reparent / delete
    - Scope visibility checks
    """

    def __init__(
        self,
        folder_repository: AsyncFolderRepository,
        object_repository: AsyncObjectRepository,
        capabilities: Optional[CapabilityChecker] = None,
        organization_repository: Optional[AsyncOrganizationRepository] = None
    ):
        self.folder_repo = folder_repository
        self.object_repo = object_repository
        self.capabilities = capabilities
        self.org_repo = organization_repository

    async def _require_folder(self, folder_id: str) -> dict:
        folder = await self.folder_repo.get_by_id(folder_id)
        if not folder:
            raise NotFoundError("Folder not found")
        return folder

    async def _require_view(self, caller_id: int | None, scope: OwnerScope) -> None:
        if caller_id is None or self.capabilities is None:
            return
        if not await self.capabilities.can_view_scope(caller_id, scope):
            if scope.is_organization_level:
                raise PermissionDeniedError("Club-level vault requires club admin access")
            raise PermissionDeniedError("You don't have access to this team vault")

    async def list_children(
        self,
        scope: OwnerScope,
        parent_folder_id: str | None = None,
        caller_id: int | None = None
    ) -> list[dict]:
        """List the direct child folders of a folder (or of the scope root).

        Args:
            scope: Owner scope of the view
            parent_folder_id: Parent folder (None for scope root)
            caller_id: Caller to check visibility for (skipped when None)

        Returns:
            List of folder dicts ordered by name
        """
        await self._require_view(caller_id, scope)
        return await self.folder_repo.list_children(
            scope.organization_id, scope.sub_organization_id, parent_folder_id
        )

    async def list_objects(
        self,
        scope: OwnerScope,
        folder_id: str | None = None,
        caller_id: int | None = None
    ) -> tuple[list[StoredObject], list[StoredObject]]:
        """List active photos and files placed in a folder (or at the scope root).

        Returns:
            (photos, files), newest first
        """
        await self._require_view(caller_id, scope)
        rows = await self.object_repo.list_in_folder(
            scope.organization_id, scope.sub_organization_id, folder_id
        )
        objects = [StoredObject.from_row(row) for row in rows]
        photos = [o for o in objects if o.kind == PHOTO]
        files = [o for o in objects if o.kind == FILE]
        return photos, files

    async def resolve_path(self, folder_id: str, caller_id: int | None = None) -> list[dict]:
        """Get the ancestor chain from the scope root down to ``folder_id``.

        Args:
            folder_id: Target folder ID
            caller_id: Caller to check visibility for (skipped when None)

        Returns:
            List of {id, name} dicts from root to target

        Raises:
            NotFoundError: If the folder doesn't exist
            PermissionDeniedError: Caller can't view the folder's scope
            IntegrityError: If the parent chain loops back on itself
        """
        folder = await self._require_folder(folder_id)
        await self._require_view(caller_id, OwnerScope.from_row(folder))

        breadcrumbs = []
        seen = set()
        current_id = folder_id

        while current_id:
            if current_id in seen:
                logger.error("Folder parent chain of %s loops at %s", folder_id, current_id)
                raise IntegrityError("Cannot scan folders: folder hierarchy contains a cycle")
            seen.add(current_id)

            row = await self.folder_repo.get_parent_ref(current_id)
            if not row:
                if current_id == folder_id:
                    raise NotFoundError("Folder not found")
                break

            breadcrumbs.insert(0, {"id": row["id"], "name": row["name"]})
            current_id = row["parent_folder_id"]

        return breadcrumbs

    async def create_folder(
        self,
        name: str,
        scope: OwnerScope,
        user_id: int,
        parent_folder_id: Optional[str] = None
    ) -> dict:
        """Create a new folder in a scope.

        Raises:
            ValidationError: Empty name or parent from another scope
            NotFoundError: Parent folder not found, or team outside the club
            PermissionDeniedError: Caller can't manage the scope
        """
        if not name or not name.strip():
            raise ValidationError("Folder name is required")

        if self.org_repo is not None:
            await require_scope(self.org_repo, scope)

        if self.capabilities and not await self.capabilities.can_manage_scope(user_id, scope):
            raise PermissionDeniedError("You can't create folders here")

        if parent_folder_id:
            parent = await self.folder_repo.get_by_id(parent_folder_id)
            if not parent:
                raise NotFoundError("Parent folder not found")
            if OwnerScope.from_row(parent) != scope:
                raise ValidationError("Parent folder must be in the same vault")

        folder_id = await self.folder_repo.create(
            name=name,
            organization_id=scope.organization_id,
            sub_organization_id=scope.sub_organization_id,
            user_id=user_id,
            parent_folder_id=parent_folder_id
        )
        return await self.folder_repo.get_by_id(folder_id)

    async def rename_folder(self, folder_id: str, name: str, user_id: int) -> dict:
        """Rename a folder."""
        if not name or not name.strip():
            raise ValidationError("Folder name is required")

        folder = await self._require_folder(folder_id)
        await self._require_act(user_id, folder)

        await self.folder_repo.update_name(folder_id, name)
        return await self.folder_repo.get_by_id(folder_id)

    async def move_folder(
        self,
        folder_id: str,
        new_parent_id: Optional[str],
        user_id: int
    ) -> bool:
        """Reparent a folder inside its own scope.

        Raises:
            ValidationError: Target in another scope, or inside the folder itself
        """
        folder = await self._require_folder(folder_id)
        await self._require_act(user_id, folder)

        if new_parent_id:
            parent = await self.folder_repo.get_by_id(new_parent_id)
            if not parent:
                raise NotFoundError("Parent folder not found")
            if OwnerScope.from_row(parent) != OwnerScope.from_row(folder):
                raise ValidationError("Cannot move a folder to another vault")

            ancestors = await self.resolve_path(new_parent_id)
            if any(a["id"] == folder_id for a in ancestors):
                raise ValidationError("Cannot move folder into its own subfolder")

        return await self.folder_repo.move(folder_id, new_parent_id)

    async def delete_folder(self, folder_id: str, user_id: int) -> str:
        """Delete a folder row without cascading.

        The catalog hands child folders and active objects to the deleted
        folder's parent; trashed objects fall back to the scope root.

        Returns:
            The warning to show the caller
        """
        folder = await self._require_folder(folder_id)
        await self._require_act(user_id, folder)

        await self.folder_repo.delete(folder_id)
        return DELETE_FOLDER_WARNING

    async def _require_act(self, user_id: int, folder: dict) -> None:
        if self.capabilities and not await self.capabilities.can_act_on(user_id, folder):
            raise PermissionDeniedError("You can't modify this folder")
