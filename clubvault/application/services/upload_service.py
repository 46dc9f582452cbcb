"""Upload service - stores new photos and files in the vault.

Uploads are checked against premium entitlement and the quota ledger, then
the bytes go to the object store and the catalog row records the URL and
byte size. The recorded size is what the ledger sums afterwards.
"""
import logging
import time
import uuid
from pathlib import PurePosixPath
from typing import Optional

from ..errors import NotFoundError, PermissionDeniedError, TransferError, ValidationError
from ..models import OBJECT_KINDS, PHOTO, FILE, OwnerScope, StoredObject
from ...infrastructure.repositories import AsyncFolderRepository, AsyncObjectRepository
from ...infrastructure.storage import ObjectStore, StorageError
from .capability_service import CapabilityChecker, require_scope
from .quota_service import QuotaService

logger = logging.getLogger(__name__)


def guess_kind(filename: str, content_type: Optional[str]) -> str:
    """Image uploads become photos, everything else a file."""
    if content_type and content_type.startswith("image/"):
        return PHOTO
    return FILE


class UploadService:
    """Service for handling uploads and renames of stored objects.

    Responsibilities:
    - Entitlement and quota checks (skipped for privileged callers)
    - Writing bytes under ``<uploader>/<timestamp>-<random>.<ext>``
    - Catalog row creation
    """

    def __init__(
        self,
        object_repository: AsyncObjectRepository,
        folder_repository: AsyncFolderRepository,
        quota_service: QuotaService,
        storage: ObjectStore,
        capabilities: Optional[CapabilityChecker] = None
    ):
        self.object_repo = object_repository
        self.folder_repo = folder_repository
        self.quota = quota_service
        self.storage = storage
        self.capabilities = capabilities

    @staticmethod
    def storage_key(uploader_id: int | None, filename: str) -> str:
        ext = PurePosixPath(filename).suffix.lower().lstrip(".") or "bin"
        suffix = uuid.uuid4().hex[:8]
        return f"{uploader_id or 'anonymous'}/{time.time_ns() // 1_000_000}-{suffix}.{ext}"

    async def upload(
        self,
        content: bytes,
        filename: str,
        scope: OwnerScope,
        caller_id: int | None,
        folder_id: Optional[str] = None,
        content_type: Optional[str] = None,
        kind: Optional[str] = None,
    ) -> StoredObject:
        """Upload one photo or file.

        Args:
            content: Object bytes
            filename: Original file name (used as display name)
            scope: Owner scope receiving the object
            caller_id: Uploading user
            folder_id: Target folder (None for the scope root)
            content_type: MIME type reported by the client
            kind: ``photo`` or ``file`` (guessed from the MIME type when omitted)

        Raises:
            ValidationError: Missing name, unknown kind or foreign folder
            NotFoundError: Team outside the club, or folder not found
            PermissionDeniedError: No access to the scope or no premium
            QuotaExceededError: Upload would exceed the storage limit
        """
        if not filename:
            raise ValidationError("file is required")
        kind = kind or guess_kind(filename, content_type)
        if kind not in OBJECT_KINDS:
            raise ValidationError(f"Unknown object kind: {kind}")
        await require_scope(self.quota.org_repo, scope)

        if folder_id:
            folder = await self.folder_repo.get_by_id(folder_id)
            if not folder:
                raise NotFoundError("Folder not found")
            if OwnerScope.from_row(folder) != scope:
                raise ValidationError("Folder belongs to another vault")

        privileged = False
        if caller_id is not None and self.capabilities is not None:
            privileged = await self.capabilities.is_privileged(caller_id)
            if not await self.capabilities.can_view_scope(caller_id, scope):
                raise PermissionDeniedError("You don't have access to this vault")

        if not privileged and not await self.quota.has_premium_access(scope):
            raise PermissionDeniedError("The vault requires a Pro subscription")

        await self.quota.ensure_can_upload(scope.organization_id, len(content), privileged)

        key = self.storage_key(caller_id, filename)
        try:
            url = await self.storage.put(key, content, content_type)
        except StorageError as e:
            logger.error("Upload of %s to %s failed: %s", filename, key, e)
            raise TransferError("Upload failed, please try again") from e

        object_id = await self.object_repo.create(
            kind=kind,
            name=filename,
            url=url,
            organization_id=scope.organization_id,
            sub_organization_id=scope.sub_organization_id,
            folder_id=folder_id,
            size_bytes=len(content),
            uploader_id=caller_id,
        )
        logger.info("Stored %s %s (%d bytes) for %s", kind, object_id, len(content), scope)
        return StoredObject.from_row(await self.object_repo.get_by_id(object_id))

    async def rename(self, object_id: str, name: str, caller_id: int | None) -> StoredObject:
        """Change the display name of a photo or file."""
        if not name or not name.strip():
            raise ValidationError("Name is required")

        row = await self.object_repo.get_by_id(object_id)
        if not row:
            raise NotFoundError("Item not found")
        obj = StoredObject.from_row(row)

        if (caller_id is not None and self.capabilities is not None
                and not await self.capabilities.can_act_on(caller_id, obj)):
            raise PermissionDeniedError("You can't modify this item")

        await self.object_repo.rename(object_id, name)
        return StoredObject.from_row(await self.object_repo.get_by_id(object_id))
