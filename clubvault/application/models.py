"""Vault value objects shared by services, routes and the CLI."""
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import PurePosixPath
from typing import Optional

PHOTO = "photo"
FILE = "file"
OBJECT_KINDS = (PHOTO, FILE)

ROOT_FOLDER_LABEL = "(current folder)"


def _safe_parts(path: str) -> list[str]:
    """Path segments without empty, "." or ".." parts."""
    parts = PurePosixPath(path.replace("\\", "/")).parts
    return [p for p in parts if p not in ("", ".", "..", "/")]


@dataclass(frozen=True)
class OwnerScope:
    """Organization or sub-organization owning a folder or object.

    ``organization_id`` is always set; a null ``sub_organization_id`` means
    the organization-level root.
    """
    organization_id: str
    sub_organization_id: Optional[str] = None

    @property
    def is_organization_level(self) -> bool:
        return self.sub_organization_id is None

    @classmethod
    def from_row(cls, row: dict) -> "OwnerScope":
        return cls(row["organization_id"], row.get("sub_organization_id"))


@dataclass
class StoredObject:
    """A photo or a file placed in the folder hierarchy.

    Both kinds share one behaviour surface (trash, restore, export); the
    ``kind`` tag only changes display naming and quota estimation.
    """
    id: str
    kind: str
    name: Optional[str]
    url: str
    organization_id: str
    sub_organization_id: Optional[str] = None
    folder_id: Optional[str] = None
    size_bytes: Optional[int] = None
    uploader_id: Optional[int] = None
    created_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    deleted_by: Optional[int] = None

    @classmethod
    def from_row(cls, row: dict) -> "StoredObject":
        return cls(
            id=row["id"],
            kind=row["kind"],
            name=row.get("name"),
            url=row["url"],
            organization_id=row["organization_id"],
            sub_organization_id=row.get("sub_organization_id"),
            folder_id=row.get("folder_id"),
            size_bytes=row.get("size_bytes"),
            uploader_id=row.get("uploader_id"),
            created_at=row.get("created_at"),
            deleted_at=row.get("deleted_at"),
            deleted_by=row.get("deleted_by"),
        )

    @property
    def scope(self) -> OwnerScope:
        return OwnerScope(self.organization_id, self.sub_organization_id)

    @property
    def is_trashed(self) -> bool:
        return self.deleted_at is not None

    @property
    def filename(self) -> str:
        """Name used for downloads and archive entries."""
        return self.name or self.fallback_filename

    @property
    def fallback_filename(self) -> str:
        if self.kind == PHOTO:
            return f"photo-{self.id}.jpg"
        return f"file-{self.id}"

    def is_photo_like(self, image_extensions: set[str]) -> bool:
        """Photos always count as photos; files only by extension."""
        if self.kind == PHOTO:
            return True
        suffix = PurePosixPath((self.name or "").lower()).suffix
        return suffix in image_extensions

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind,
            "name": self.name,
            "url": self.url,
            "organization_id": self.organization_id,
            "sub_organization_id": self.sub_organization_id,
            "folder_id": self.folder_id,
            "size_bytes": self.size_bytes,
            "uploader_id": self.uploader_id,
            "created_at": _iso(self.created_at),
            "deleted_at": _iso(self.deleted_at),
            "deleted_by": self.deleted_by,
        }


# =============================================================================
# Export
# =============================================================================

@dataclass
class ExportItem:
    """Object scheduled for export with its folder path relative to the export root."""
    object: StoredObject
    path: str = ""

    @property
    def archive_path(self) -> str:
        """Relative entry path; never absolute and never climbs above the export root."""
        folders = _safe_parts(self.path)
        name = _safe_parts(self.object.filename)
        filename = name[-1] if name else self.object.fallback_filename
        return "/".join(folders + [filename])


@dataclass
class FolderBreakdown:
    """One visited folder in an export preview."""
    path: str
    photo_count: int
    file_count: int

    @property
    def label(self) -> str:
        return self.path or ROOT_FOLDER_LABEL

    @property
    def item_count(self) -> int:
        return self.photo_count + self.file_count


@dataclass
class ExportSelection:
    """Result of the read-only discovery phase of an export."""
    scope: OwnerScope
    root_folder_id: Optional[str]
    recursive: bool
    items: list[ExportItem] = field(default_factory=list)
    folders: list[FolderBreakdown] = field(default_factory=list)
    name: str = "export"

    @property
    def paths(self) -> list[str]:
        return [f.path for f in self.folders]

    def included(self, excluded_paths: set[str] | None = None) -> list[ExportItem]:
        """Items whose recorded path is not literally one of ``excluded_paths``."""
        excluded = excluded_paths or set()
        return [item for item in self.items if item.path not in excluded]

    def to_dict(self) -> dict:
        return {
            "organization_id": self.scope.organization_id,
            "sub_organization_id": self.scope.sub_organization_id,
            "root_folder_id": self.root_folder_id,
            "recursive": self.recursive,
            "name": self.name,
            "total_items": len(self.items),
            "folders": [
                {
                    "path": f.path,
                    "label": f.label,
                    "photo_count": f.photo_count,
                    "file_count": f.file_count,
                }
                for f in self.folders
            ],
        }


@dataclass
class ItemFailure:
    """Per-item failure collected by batches and exports."""
    object_id: str
    reason: str
    kind: Optional[str] = None

    def to_dict(self) -> dict:
        return {"id": self.object_id, "kind": self.kind, "reason": self.reason}


ARCHIVE_COMPLETED = "completed"
ARCHIVE_CANCELLED = "cancelled"
ARCHIVE_EMPTY = "empty"


@dataclass
class ArchiveResult:
    """Outcome of archive assembly.

    ``archive`` is only set when at least one item succeeded and the run was
    not cancelled.
    """
    status: str
    total: int
    succeeded: int = 0
    failed: list[ItemFailure] = field(default_factory=list)
    archive: Optional[bytes] = None
    filename: str = "vault.zip"

    @property
    def cancelled(self) -> bool:
        return self.status == ARCHIVE_CANCELLED

    def summary(self) -> str:
        if self.status == ARCHIVE_CANCELLED:
            return "Export cancelled"
        if self.status == ARCHIVE_EMPTY:
            return "No files could be added to ZIP"
        if self.failed:
            return f"Exported {self.succeeded} files as ZIP, {len(self.failed)} failed"
        return f"Exported {self.succeeded} files as ZIP"


# =============================================================================
# Batches
# =============================================================================

@dataclass
class BatchResult:
    """Aggregate outcome of a batch; per-item results kept in discovery order."""
    succeeded: int = 0
    failures: list[ItemFailure] = field(default_factory=list)
    succeeded_ids: list[str] = field(default_factory=list)
    freed_bytes: int = 0

    @property
    def failed(self) -> int:
        return len(self.failures)

    def record_success(self, object_id: str) -> None:
        self.succeeded += 1
        self.succeeded_ids.append(object_id)

    def record_failure(self, object_id: str, reason: str, kind: str | None = None) -> None:
        self.failures.append(ItemFailure(object_id, reason, kind))

    def summary(self, verb: str = "Moved", suffix: str = "to trash") -> str:
        text = f"{verb} {self.succeeded} items {suffix}".rstrip()
        if self.failures:
            text += f", {self.failed} failed"
        return text

    def to_dict(self) -> dict:
        return {
            "succeeded": self.succeeded,
            "failed": self.failed,
            "failures": [f.to_dict() for f in self.failures],
            "freed_bytes": self.freed_bytes,
        }


# =============================================================================
# Quota
# =============================================================================

@dataclass
class SubOrganizationUsage:
    sub_organization_id: Optional[str]
    name: str
    photos_bytes: int = 0
    document_bytes: int = 0

    @property
    def bytes(self) -> int:
        return self.photos_bytes + self.document_bytes


@dataclass
class StorageUsage:
    """Storage consumption derived from catalog rows on each call."""
    organization_id: str
    photos_bytes: int = 0
    document_bytes: int = 0
    per_sub_organization: list[SubOrganizationUsage] = field(default_factory=list)

    @property
    def total_bytes(self) -> int:
        return self.photos_bytes + self.document_bytes

    def for_sub_organization(self, sub_organization_id: str | None) -> int:
        for entry in self.per_sub_organization:
            if entry.sub_organization_id == sub_organization_id:
                return entry.bytes
        return 0


@dataclass
class QuotaLimit:
    base_bytes: int
    purchased_gb: int = 0
    scheduled_downgrade_gb: Optional[int] = None
    downgrade_at: Optional[datetime] = None

    @property
    def limit_bytes(self) -> int:
        return self.base_bytes + self.purchased_gb * 1024 * 1024 * 1024


ALERT_WARNING = "warning"
ALERT_LIMIT_REACHED = "limit_reached"


@dataclass
class QuotaAlert:
    organization_id: str
    level: str
    percent: int
    message: str

    def to_dict(self) -> dict:
        return {
            "organization_id": self.organization_id,
            "level": self.level,
            "percent": self.percent,
            "message": self.message,
        }


@dataclass
class VaultSession:
    """Per-caller session state.

    Holds the set of quota alerts already shown. Lives exactly as long as the
    caller's session and is never persisted.
    """
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    shown_alerts: set[str] = field(default_factory=set)
    closed: bool = False

    def mark_shown(self, key: str) -> bool:
        """Record ``key``; return True only the first time it is seen."""
        if self.closed or key in self.shown_alerts:
            return False
        self.shown_alerts.add(key)
        return True

    def close(self) -> None:
        self.shown_alerts.clear()
        self.closed = True


def _iso(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)
