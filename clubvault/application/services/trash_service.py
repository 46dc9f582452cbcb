"""Trash lifecycle - soft delete, restore and permanent purge.

States::

    active --soft_delete--> trashed --purge_forever--> purged
       ^                       |
       +-------restore---------+

Purged is terminal. ``hard_delete`` purges active objects directly and is
reserved for the privileged large-file cleanup tool.
"""
import logging
from typing import Optional

from ..errors import InvalidStateError, NotFoundError, PermissionDeniedError, VaultError
from ..models import BatchResult, OwnerScope, StoredObject
from ...infrastructure.repositories import AsyncFolderRepository, AsyncObjectRepository
from ...infrastructure.storage import ObjectStore, StorageError
from .capability_service import CapabilityChecker

logger = logging.getLogger(__name__)

TEAM_ROOT_LABEL = "Team root"
CLUB_ROOT_LABEL = "Club root"


def location_label(row: dict) -> str:
    """Human-readable original location of a trashed object."""
    parts = [p for p in (row.get("sub_organization_name"), row.get("folder_name")) if p]
    if not parts:
        return TEAM_ROOT_LABEL if row.get("sub_organization_id") else CLUB_ROOT_LABEL
    return " / ".join(parts)


class TrashService:
    """Service for the trash state machine.

    Every transition checks the caller's capability on the single object it
    touches, so batches built on top can partially succeed.
    """

    def __init__(
        self,
        object_repository: AsyncObjectRepository,
        folder_repository: AsyncFolderRepository,
        storage: ObjectStore,
        capabilities: Optional[CapabilityChecker] = None
    ):
        self.object_repo = object_repository
        self.folder_repo = folder_repository
        self.storage = storage
        self.capabilities = capabilities

    async def _load(self, object_id: str) -> StoredObject:
        row = await self.object_repo.get_by_id(object_id)
        if not row:
            raise NotFoundError("Item not found")
        return StoredObject.from_row(row)

    async def _require_act(self, caller_id: int | None, obj: StoredObject) -> None:
        if caller_id is None or self.capabilities is None:
            return
        if not await self.capabilities.can_act_on(caller_id, obj):
            raise PermissionDeniedError("You can't modify this item")

    async def soft_delete(self, object_id: str, caller_id: int | None) -> StoredObject:
        """Move an object to the trash.

        Trashing an already trashed object is a no-op.

        Raises:
            NotFoundError: Object doesn't exist (e.g. purged concurrently)
            PermissionDeniedError: Caller can't act on the object
        """
        obj = await self._load(object_id)
        await self._require_act(caller_id, obj)

        if not obj.is_trashed:
            await self.object_repo.soft_delete(object_id, caller_id)
        return await self._load(object_id)

    async def restore(self, object_id: str, caller_id: int | None) -> StoredObject:
        """Bring a trashed object back to its original folder and scope.

        If the original folder has been deleted meanwhile, the object
        reappears at its scope root. Restoring an active object is a no-op.
        """
        obj = await self._load(object_id)
        await self._require_act(caller_id, obj)

        if not obj.is_trashed:
            return obj

        folder_id = obj.folder_id
        if folder_id and not await self.folder_repo.exists(folder_id):
            logger.info("Folder %s of %s is gone, restoring to scope root", folder_id, object_id)
            folder_id = None

        if not await self.object_repo.restore(object_id, folder_id):
            raise NotFoundError("Item not found")
        return await self._load(object_id)

    async def purge_forever(self, object_id: str, caller_id: int | None) -> StoredObject:
        """Permanently delete a trashed object and its bytes.

        Raises:
            InvalidStateError: The object is not in the trash
        """
        obj = await self._load(object_id)
        await self._require_act(caller_id, obj)

        if not obj.is_trashed:
            raise InvalidStateError("Move the item to trash before deleting it forever")

        await self._remove(obj)
        return obj

    async def hard_delete(self, object_ids: list[str], caller_id: int | None) -> BatchResult:
        """Immediately purge objects regardless of state (large-file cleanup).

        Each object is handled on its own; failures are collected.

        Returns:
            BatchResult with ``freed_bytes`` summed over purged objects
        """
        result = BatchResult()
        for object_id in object_ids:
            try:
                obj = await self._load(object_id)
                await self._require_act(caller_id, obj)
                await self._remove(obj)
            except VaultError as e:
                result.record_failure(object_id, e.message)
                continue
            result.record_success(object_id)
            result.freed_bytes += obj.size_bytes or 0

        logger.info(
            "Hard delete by %s: %d purged, %d failed, %d bytes freed",
            caller_id, result.succeeded, result.failed, result.freed_bytes
        )
        return result

    async def _remove(self, obj: StoredObject) -> None:
        """Delete the catalog row, then the bytes.

        A failed byte deletion leaves orphaned bytes behind; it is logged and
        never blocks the row removal.
        """
        if not await self.object_repo.delete(obj.id):
            raise NotFoundError("Item not found")

        try:
            await self.storage.delete(obj.url)
        except StorageError as e:
            logger.warning("Orphaned bytes for purged object %s at %s: %s", obj.id, obj.url, e)

    async def list_trash(self, organization_id: str, caller_id: int | None = None) -> list[dict]:
        """All trashed objects across the organization, most recent first.

        Each entry is the object dict plus ``location``, e.g.
        ``"U12 Girls / Match photos"``, ``"Team root"`` or ``"Club root"``.
        Objects in scopes the caller can't view are left out.
        """
        rows = await self.object_repo.list_trashed_for_organization(organization_id)

        visible: dict[OwnerScope, bool] = {}
        entries = []
        for row in rows:
            obj = StoredObject.from_row(row)
            if caller_id is not None and self.capabilities is not None:
                scope = obj.scope
                if scope not in visible:
                    visible[scope] = await self.capabilities.can_view_scope(caller_id, scope)
                if not visible[scope]:
                    continue

            entry = obj.to_dict()
            entry["location"] = location_label(row)
            entries.append(entry)
        return entries
