"""Selection and batch operations over a folder view."""
import logging
from dataclasses import dataclass, field
from typing import Optional

from ..cancellation import CancellationToken
from ..errors import ValidationError, VaultError
from ..models import FILE, PHOTO, ArchiveResult, BatchResult, ItemFailure, StoredObject
from ...infrastructure.repositories import AsyncObjectRepository
from .capability_service import CapabilityChecker
from .export_service import ExportService, ProgressCallback
from .trash_service import TrashService

logger = logging.getLogger(__name__)


@dataclass
class Selection:
    """Selected photo and file ids of the current folder view.

    Ids are kept as ordered sets (dict keys) so batches run in the order the
    items were selected.
    """
    photo_ids: dict[str, None] = field(default_factory=dict)
    file_ids: dict[str, None] = field(default_factory=dict)

    def __post_init__(self):
        self.photo_ids = dict.fromkeys(self.photo_ids)
        self.file_ids = dict.fromkeys(self.file_ids)

    def _ids(self, kind: str) -> dict[str, None]:
        if kind == PHOTO:
            return self.photo_ids
        if kind == FILE:
            return self.file_ids
        raise ValidationError(f"Unknown object kind: {kind}")

    def toggle(self, kind: str, object_id: str) -> bool:
        """Flip one id; returns True if it is now selected."""
        ids = self._ids(kind)
        if object_id in ids:
            del ids[object_id]
            return False
        ids[object_id] = None
        return True

    def select_all(self, photos: list[StoredObject], files: list[StoredObject]) -> None:
        self.photo_ids = dict.fromkeys(p.id for p in photos)
        self.file_ids = dict.fromkeys(f.id for f in files)

    def clear(self) -> None:
        self.photo_ids.clear()
        self.file_ids.clear()

    @property
    def count(self) -> int:
        return len(self.photo_ids) + len(self.file_ids)

    def items(self) -> list[tuple[str, str]]:
        """(kind, id) pairs, photos first, each kind in selection order."""
        return [(PHOTO, i) for i in self.photo_ids] + [(FILE, i) for i in self.file_ids]


class BatchService:
    """Runs single-item operations over a selection.

    A batch always attempts every selected item and reports an aggregate
    outcome; one failed item never stops the rest.
    """

    def __init__(
        self,
        trash_service: TrashService,
        export_service: ExportService,
        object_repository: AsyncObjectRepository,
        capabilities: Optional[CapabilityChecker] = None
    ):
        self.trash = trash_service
        self.export = export_service
        self.object_repo = object_repository
        self.capabilities = capabilities

    async def batch_soft_delete(self, selection: Selection, caller_id: int | None) -> BatchResult:
        """Move every selected item to the trash.

        Returns:
            BatchResult, summary like "Moved 4 items to trash, 1 failed"
        """
        result = BatchResult()
        for kind, object_id in selection.items():
            try:
                await self.trash.soft_delete(object_id, caller_id)
            except VaultError as e:
                logger.warning("Batch trash of %s %s failed: %s", kind, object_id, e.message)
                result.record_failure(object_id, e.message, kind)
                continue
            result.record_success(object_id)

        logger.info("Batch trash by %s: %s", caller_id, result.summary())
        return result

    async def batch_export(
        self,
        selection: Selection,
        caller_id: int | None,
        token: Optional[CancellationToken] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> ArchiveResult:
        """Flat ZIP of the selected items.

        Items that vanished, are trashed or can't be viewed are reported as
        failures next to the fetch failures.
        """
        items = selection.items()
        objects = []
        missing = []
        for kind, object_id in items:
            row = await self.object_repo.get_by_id(object_id)
            if not row or row["deleted_at"] is not None:
                missing.append(ItemFailure(object_id, "Item not found", kind))
                continue
            obj = StoredObject.from_row(row)
            if (caller_id is not None and self.capabilities is not None
                    and not await self.capabilities.can_view_scope(caller_id, obj.scope)):
                missing.append(ItemFailure(object_id, "You don't have access to this item", kind))
                continue
            objects.append(obj)

        result = await self.export.export_objects(objects, token, progress)
        result.total += len(missing)
        position = {item: i for i, item in enumerate(items)}
        result.failed = sorted(
            missing + result.failed,
            key=lambda f: position.get((f.kind, f.object_id), len(position)),
        )
        return result
