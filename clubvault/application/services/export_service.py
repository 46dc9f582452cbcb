"""Archive exporter - folder subtree discovery and ZIP assembly.

Export runs in two phases. :meth:`ExportService.discover` walks the folder
tree read-only and records every object with its path relative to the
export root. :meth:`ExportService.build_archive` then fetches the bytes of
the included objects and packs them into a ZIP.

Archive layout::

    photo-at-root.jpg
    Match photos/kickoff.jpg
    Match photos/2026/final.jpg
"""
import asyncio
import logging
import zipfile
from io import BytesIO
from typing import Awaitable, Callable, Optional

from ..cancellation import CancellationToken
from ..errors import (
    ExportCancelledError,
    IntegrityError,
    NotFoundError,
    PermissionDeniedError,
    VaultError,
)
from ..models import (
    ARCHIVE_CANCELLED,
    ARCHIVE_COMPLETED,
    ARCHIVE_EMPTY,
    FILE,
    PHOTO,
    ArchiveResult,
    BatchResult,
    ExportItem,
    ExportSelection,
    FolderBreakdown,
    ItemFailure,
    OwnerScope,
    StoredObject,
)
from ... import config
from ...infrastructure.repositories import (
    AsyncFolderRepository,
    AsyncObjectRepository,
    AsyncOrganizationRepository,
)
from ...infrastructure.storage import ObjectStore, StorageError
from .capability_service import CapabilityChecker, require_scope

logger = logging.getLogger(__name__)

SELECTION_ARCHIVE_NAME = "selected-files.zip"
DEFAULT_ARCHIVE_NAME = "vault.zip"

ProgressCallback = Callable[[int, int], None]
ItemSink = Callable[[ExportItem, bytes], Awaitable[None]]


def archive_filename(name: Optional[str]) -> str:
    """``<name>.zip`` with unsafe characters stripped, ``vault.zip`` fallback."""
    safe = "".join(c for c in (name or "") if c.isalnum() or c in (" ", "-", "_", ".")).strip()
    if not safe:
        return DEFAULT_ARCHIVE_NAME
    return safe if safe.lower().endswith(".zip") else f"{safe}.zip"


class ExportService:
    """Service for vault exports.

    Responsibilities:
    - Depth-first discovery with per-folder breakdown
    - Bounded-concurrency archive assembly with isolated item failures
    - Cooperative cancellation shared by every fetch of a run
    - Sequential "download individually" mode
    """

    def __init__(
        self,
        folder_repository: AsyncFolderRepository,
        object_repository: AsyncObjectRepository,
        storage: ObjectStore,
        organization_repository: Optional[AsyncOrganizationRepository] = None,
        capabilities: Optional[CapabilityChecker] = None,
        concurrency: int = config.EXPORT_CONCURRENCY,
    ):
        self.folder_repo = folder_repository
        self.object_repo = object_repository
        self.storage = storage
        self.org_repo = organization_repository
        self.capabilities = capabilities
        self.concurrency = max(1, concurrency)

    # =========================================================================
    # Discovery
    # =========================================================================

    async def discover(
        self,
        scope: OwnerScope,
        root_folder_id: Optional[str] = None,
        recursive: bool = True,
        caller_id: int | None = None,
    ) -> ExportSelection:
        """Collect every object below a folder (or the scope root).

        Args:
            scope: Owner scope being exported
            root_folder_id: Export root (None for the scope root)
            recursive: False exports the root folder only, paths stay empty
            caller_id: Caller to check visibility for (skipped when None)

        Returns:
            ExportSelection with the flattened items and a per-folder breakdown

        Raises:
            NotFoundError: Root folder doesn't exist
            IntegrityError: A folder is its own ancestor
        """
        if (caller_id is not None and self.capabilities is not None
                and not await self.capabilities.can_view_scope(caller_id, scope)):
            raise PermissionDeniedError("You don't have access to this vault")

        if self.org_repo is not None:
            await require_scope(self.org_repo, scope)
        name = await self._scope_name(scope)
        if root_folder_id:
            folder = await self.folder_repo.get_by_id(root_folder_id)
            if not folder or OwnerScope.from_row(folder) != scope:
                raise NotFoundError("Folder not found")
            name = folder["name"]

        selection = ExportSelection(
            scope=scope,
            root_folder_id=root_folder_id,
            recursive=recursive,
            name=name,
        )
        await self._visit(selection, root_folder_id, "", (root_folder_id,), set())

        logger.info(
            "Discovered %d items in %d folders for export of %s",
            len(selection.items), len(selection.folders), name
        )
        return selection

    async def _visit(
        self,
        selection: ExportSelection,
        folder_id: Optional[str],
        path: str,
        ancestors: tuple,
        visited: set,
    ) -> None:
        scope = selection.scope
        rows = await self.object_repo.list_in_folder(
            scope.organization_id, scope.sub_organization_id, folder_id
        )
        objects = [StoredObject.from_row(row) for row in rows]
        photos = [o for o in objects if o.kind == PHOTO]
        files = [o for o in objects if o.kind == FILE]

        selection.items.extend(ExportItem(o, path) for o in photos + files)
        selection.folders.append(FolderBreakdown(path, len(photos), len(files)))

        if not selection.recursive:
            return

        children = await self.folder_repo.list_children(
            scope.organization_id, scope.sub_organization_id, folder_id
        )
        for child in children:
            child_id = child["id"]
            if child_id in ancestors:
                logger.error("Folder %s is its own ancestor below %r", child_id, path)
                raise IntegrityError("Cannot scan folders: folder hierarchy contains a cycle")
            if child_id in visited:
                logger.warning("Skipping folder %s reached twice during export", child_id)
                continue
            visited.add(child_id)

            child_path = f"{path}/{child['name']}" if path else child["name"]
            await self._visit(selection, child_id, child_path, ancestors + (child_id,), visited)

    async def _scope_name(self, scope: OwnerScope) -> Optional[str]:
        if self.org_repo is None:
            return None
        if scope.sub_organization_id:
            row = await self.org_repo.get_sub_organization(scope.sub_organization_id)
        else:
            row = await self.org_repo.get_by_id(scope.organization_id)
        return row["name"] if row else None

    # =========================================================================
    # Assembly
    # =========================================================================

    async def build_archive(
        self,
        selection: ExportSelection,
        excluded_paths: Optional[set[str]] = None,
        token: Optional[CancellationToken] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> ArchiveResult:
        """Pack the discovered items not under an excluded path into a ZIP.

        Exclusion is by exact recorded path: excluding ``"A"`` keeps items
        recorded under ``"A/B"``.
        """
        items = selection.included(excluded_paths)
        return await self.assemble(items, archive_filename(selection.name), token, progress)

    async def export_objects(
        self,
        objects: list[StoredObject],
        token: Optional[CancellationToken] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> ArchiveResult:
        """Flat archive of explicitly selected objects."""
        items = [ExportItem(obj) for obj in objects]
        return await self.assemble(items, SELECTION_ARCHIVE_NAME, token, progress)

    async def assemble(
        self,
        items: list[ExportItem],
        filename: str = DEFAULT_ARCHIVE_NAME,
        token: Optional[CancellationToken] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> ArchiveResult:
        """Fetch item bytes with bounded concurrency and write the ZIP.

        A failed fetch is recorded and the run continues. Once ``token`` is
        cancelled no new fetch starts, in-flight fetches are abandoned and the
        result carries no archive.

        Args:
            items: Items in discovery order
            filename: Archive file name
            token: Cancellation signal for this run
            progress: Called with ``(completed, total)`` after each item

        Returns:
            ArchiveResult with status completed, empty or cancelled
        """
        token = token or CancellationToken()
        total = len(items)
        contents: list[Optional[bytes]] = [None] * total
        failures: dict[int, ItemFailure] = {}
        completed = 0
        semaphore = asyncio.Semaphore(self.concurrency)

        async def fetch(index: int, item: ExportItem) -> None:
            nonlocal completed
            async with semaphore:
                if token.cancelled:
                    return
                obj = item.object
                try:
                    contents[index] = await token.run(self.storage.get(obj.url))
                except ExportCancelledError:
                    return
                except StorageError as e:
                    logger.warning("Export fetch failed for %s (%s): %s", obj.id, obj.url, e)
                    failures[index] = ItemFailure(obj.id, str(e) or "Fetch failed", obj.kind)

                completed += 1
                if progress is not None and not token.cancelled:
                    progress(completed, total)

        # Let every fetch settle before surfacing an unexpected error
        outcomes = await asyncio.gather(
            *(fetch(i, item) for i, item in enumerate(items)), return_exceptions=True
        )
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome

        failed = [failures[i] for i in sorted(failures)]
        succeeded = sum(1 for data in contents if data is not None)

        if token.cancelled:
            logger.info("Export %s cancelled after %d of %d items", filename, completed, total)
            return ArchiveResult(ARCHIVE_CANCELLED, total, succeeded, failed, None, filename)

        if succeeded == 0:
            logger.info("Export %s produced no files (%d failed)", filename, len(failed))
            return ArchiveResult(ARCHIVE_EMPTY, total, 0, failed, None, filename)

        archive = self._write_zip(
            (item.archive_path, data) for item, data in zip(items, contents) if data is not None
        )
        logger.info("Exported %d of %d items to %s", succeeded, total, filename)
        return ArchiveResult(ARCHIVE_COMPLETED, total, succeeded, failed, archive, filename)

    @staticmethod
    def _write_zip(entries) -> bytes:
        """ZIP the entries; a repeated path keeps the last bytes written."""
        ordered: dict[str, bytes] = {}
        for path, data in entries:
            ordered[path] = data

        buffer = BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
            for path, data in ordered.items():
                zf.writestr(path, data)
        return buffer.getvalue()

    # =========================================================================
    # Individual downloads
    # =========================================================================

    async def download_individually(
        self,
        items: list[ExportItem],
        sink: ItemSink,
        token: Optional[CancellationToken] = None,
        delay: float = config.EXPORT_INDIVIDUAL_DELAY,
    ) -> BatchResult:
        """Fetch items one by one and hand each to ``sink``.

        Waits ``delay`` seconds between items.

        Raises:
            ExportCancelledError: Token cancelled before all items were handed over
        """
        token = token or CancellationToken()
        result = BatchResult()

        for index, item in enumerate(items):
            if index and delay > 0:
                await asyncio.sleep(delay)
            token.raise_if_cancelled()

            obj = item.object
            try:
                data = await token.run(self.storage.get(obj.url))
            except StorageError as e:
                logger.warning("Download failed for %s (%s): %s", obj.id, obj.url, e)
                result.record_failure(obj.id, str(e) or "Fetch failed", obj.kind)
                continue

            try:
                await sink(item, data)
            except ExportCancelledError:
                raise
            except (OSError, VaultError) as e:
                logger.warning("Could not save %s (%s): %s", obj.id, item.archive_path, e)
                result.record_failure(obj.id, getattr(e, "message", None) or str(e), obj.kind)
                continue
            result.record_success(obj.id)

        return result
