"""Application services - vault business logic layer."""

from .capability_service import CapabilityChecker, RoleCapabilityService
from .quota_service import QuotaService
from .folder_service import FolderService
from .trash_service import TrashService
from .upload_service import UploadService
from .export_service import ExportService
from .selection_service import BatchService, Selection

__all__ = [
    "CapabilityChecker",
    "RoleCapabilityService",
    "QuotaService",
    "FolderService",
    "TrashService",
    "UploadService",
    "ExportService",
    "BatchService",
    "Selection",
]
