"""Storage usage, large-file cleanup and vault session routes."""
from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel

from ..config import LARGE_FILES_LIMIT, SESSION_HEADER
from ..application.errors import PermissionDeniedError
from ..application.models import OwnerScope
from ..application.services.quota_service import format_size
from ..dependencies import VaultServices, get_services, get_vault_session, require_user, vault_sessions

router = APIRouter(prefix="/api/vault", tags=["usage"])


class LargeFilesDelete(BaseModel):
    object_ids: list[str]


@router.get("/organizations/{organization_id}/usage")
async def get_usage(request: Request, response: Response, organization_id: str,
                    services: VaultServices = Depends(get_services)):
    """Storage usage with limit and the quota alerts not yet shown this session."""
    user_id = require_user(request)
    if not await services.capabilities.is_member(user_id, organization_id):
        raise PermissionDeniedError("You are not a member of this club")

    session = get_vault_session(request)
    response.headers[SESSION_HEADER] = session.id
    usage = await services.quota.compute_usage(organization_id)
    limit = await services.quota.get_limit(organization_id)
    alerts = await services.quota.check_thresholds(organization_id, session, usage, limit)

    return {
        "session_id": session.id,
        "usage": {
            "total_bytes": usage.total_bytes,
            "photos_bytes": usage.photos_bytes,
            "document_bytes": usage.document_bytes,
            "total": format_size(usage.total_bytes),
            "per_sub_organization": [
                {
                    "sub_organization_id": g.sub_organization_id,
                    "name": g.name,
                    "bytes": g.bytes,
                    "photos_bytes": g.photos_bytes,
                    "document_bytes": g.document_bytes,
                }
                for g in usage.per_sub_organization
            ],
        },
        "limit": {
            "limit_bytes": limit.limit_bytes,
            "purchased_gb": limit.purchased_gb,
            "scheduled_downgrade_gb": limit.scheduled_downgrade_gb,
            "downgrade_at": limit.downgrade_at.isoformat() if limit.downgrade_at else None,
        },
        "alerts": [a.to_dict() for a in alerts],
    }


@router.get("/organizations/{organization_id}/large-files")
async def get_large_files(request: Request, organization_id: str, limit: int = LARGE_FILES_LIMIT,
                          services: VaultServices = Depends(get_services)):
    """Largest files across the club, for cleanup."""
    user_id = require_user(request)
    if not await services.capabilities.can_manage_scope(user_id, OwnerScope(organization_id)):
        raise PermissionDeniedError("Club admin access required")
    return {"items": await services.quota.find_large_objects(organization_id, limit)}


@router.post("/organizations/{organization_id}/large-files/delete")
async def delete_large_files(request: Request, organization_id: str, data: LargeFilesDelete,
                             services: VaultServices = Depends(get_services)):
    """Permanently delete selected large files right away."""
    user_id = require_user(request)
    if not await services.capabilities.can_manage_scope(user_id, OwnerScope(organization_id)):
        raise PermissionDeniedError("Club admin access required")

    result = await services.trash.hard_delete(data.object_ids, user_id)
    return {
        "status": "ok",
        "message": result.summary("Deleted", "") + f", {format_size(result.freed_bytes)} freed",
        **result.to_dict(),
    }


@router.delete("/session")
async def end_session(request: Request):
    """Discard the caller's vault session and its shown alerts."""
    discarded = vault_sessions.discard(request.headers.get(SESSION_HEADER))
    return {"status": "ok", "discarded": discarded}
