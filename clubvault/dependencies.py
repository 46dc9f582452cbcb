"""Shared FastAPI dependencies and service wiring."""
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Optional

import aiosqlite
from fastapi import HTTPException, Request

from . import config
from .config import SESSION_HEADER, USER_ID_HEADER
from .application.models import VaultSession
from .application.services import (
    BatchService,
    ExportService,
    FolderService,
    QuotaService,
    RoleCapabilityService,
    TrashService,
    UploadService,
)
from .infrastructure.database import get_async_db, release_async_db
from .infrastructure.repositories import (
    AsyncFolderRepository,
    AsyncObjectRepository,
    AsyncOrganizationRepository,
    AsyncRoleRepository,
)
from .infrastructure.storage import ObjectStore, get_storage


def get_current_user(request: Request) -> int | None:
    """Caller id from the user header, None when absent."""
    value = request.headers.get(USER_ID_HEADER)
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {USER_ID_HEADER} header")


def require_user(request: Request) -> int:
    """Require an identified caller, raise 401 otherwise."""
    user_id = get_current_user(request)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user_id


class SessionRegistry:
    """In-memory vault sessions keyed by session id. Never persisted.

    Sessions idle for longer than ``idle_timeout`` seconds are dropped, and
    once ``max_sessions`` are held the least recently used one makes room.
    """

    def __init__(
        self,
        max_sessions: int = config.VAULT_SESSION_LIMIT,
        idle_timeout: float = config.VAULT_SESSION_IDLE_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_sessions = max_sessions
        self.idle_timeout = idle_timeout
        self._clock = clock
        # Least recently used first
        self._sessions: OrderedDict[str, tuple[VaultSession, float]] = OrderedDict()

    def get_or_create(self, session_id: Optional[str]) -> VaultSession:
        now = self._clock()
        self._expire(now)

        entry = self._sessions.get(session_id) if session_id else None
        if entry is None:
            session = VaultSession()
            while len(self._sessions) >= max(1, self.max_sessions):
                _, (oldest, _) = self._sessions.popitem(last=False)
                oldest.close()
        else:
            session = entry[0]

        self._sessions[session.id] = (session, now)
        self._sessions.move_to_end(session.id)
        return session

    def _expire(self, now: float) -> None:
        while self._sessions:
            session_id, (session, last_used) = next(iter(self._sessions.items()))
            if now - last_used <= self.idle_timeout:
                break
            del self._sessions[session_id]
            session.close()

    def discard(self, session_id: Optional[str]) -> bool:
        entry = self._sessions.pop(session_id, None) if session_id else None
        if entry is None:
            return False
        entry[0].close()
        return True

    def clear(self) -> None:
        for session, _ in self._sessions.values():
            session.close()
        self._sessions.clear()

    def __len__(self) -> int:
        return len(self._sessions)


vault_sessions = SessionRegistry()


def get_vault_session(request: Request) -> VaultSession:
    """Session named by the session header, created on first use."""
    return vault_sessions.get_or_create(request.headers.get(SESSION_HEADER))


@dataclass
class VaultServices:
    """Services sharing one catalog connection."""
    quota: QuotaService
    folders: FolderService
    trash: TrashService
    uploads: UploadService
    export: ExportService
    batch: BatchService
    capabilities: RoleCapabilityService


def build_services(conn: aiosqlite.Connection, storage: Optional[ObjectStore] = None) -> VaultServices:
    """Wire repositories and services over a catalog connection."""
    storage = storage or get_storage()
    folder_repo = AsyncFolderRepository(conn)
    object_repo = AsyncObjectRepository(conn)
    org_repo = AsyncOrganizationRepository(conn)
    capabilities = RoleCapabilityService(AsyncRoleRepository(conn))

    quota = QuotaService(object_repo, org_repo)
    trash = TrashService(object_repo, folder_repo, storage, capabilities)
    export = ExportService(folder_repo, object_repo, storage, org_repo, capabilities)
    return VaultServices(
        quota=quota,
        folders=FolderService(folder_repo, object_repo, capabilities, org_repo),
        trash=trash,
        uploads=UploadService(object_repo, folder_repo, quota, storage, capabilities),
        export=export,
        batch=BatchService(trash, export, object_repo, capabilities),
        capabilities=capabilities,
    )


async def get_services() -> AsyncIterator[VaultServices]:
    """Per-request services on a pooled connection."""
    conn = await get_async_db()
    try:
        yield build_services(conn)
    finally:
        await release_async_db(conn)
