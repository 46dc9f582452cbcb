# Repository Pattern Implementation
"""
Repositories abstract catalog operations.
Each entity has its own repository; all of them are async (aiosqlite).

Usage:
    from clubvault.infrastructure.repositories import AsyncFolderRepository
    repo = AsyncFolderRepository(conn); await repo.get_by_id(folder_id)
"""
from .base import AsyncRepository, AsyncConnectionProtocol
from .folder_repository import AsyncFolderRepository
from .object_repository import AsyncObjectRepository
from .organization_repository import AsyncOrganizationRepository
from .role_repository import AsyncRoleRepository

__all__ = [
    "AsyncRepository",
    "AsyncConnectionProtocol",
    "AsyncFolderRepository",
    "AsyncObjectRepository",
    "AsyncOrganizationRepository",
    "AsyncRoleRepository",
]
