"""Application layer - vault business logic services.

Services are independent of HTTP/FastAPI and can be tested in isolation.
"""

from .services.quota_service import QuotaService
from .services.folder_service import FolderService
from .services.trash_service import TrashService
from .services.export_service import ExportService

__all__ = [
    "QuotaService",
    "FolderService",
    "TrashService",
    "ExportService",
]
