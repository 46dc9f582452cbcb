"""Photo and file routes - listing, upload, rename, trash lifecycle, batches."""
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from pydantic import BaseModel

from ..application.errors import PermissionDeniedError
from ..application.models import OwnerScope
from ..application.services import Selection
from ..dependencies import VaultServices, get_services, require_user

router = APIRouter(prefix="/api/vault", tags=["objects"])


class ObjectRename(BaseModel):
    name: str


class SelectionInput(BaseModel):
    photo_ids: list[str] = []
    file_ids: list[str] = []

    def to_selection(self) -> Selection:
        return Selection(self.photo_ids, self.file_ids)


@router.get("/objects")
async def list_objects(
    request: Request,
    organization_id: str,
    sub_organization_id: Optional[str] = None,
    folder_id: Optional[str] = None,
    services: VaultServices = Depends(get_services)
):
    """Photos and files of a folder view, newest first."""
    user_id = require_user(request)
    scope = OwnerScope(organization_id, sub_organization_id)
    photos, files = await services.folders.list_objects(scope, folder_id, user_id)
    return {
        "photos": [p.to_dict() for p in photos],
        "files": [f.to_dict() for f in files],
    }


@router.post("/objects")
async def upload_object(
    request: Request,
    file: UploadFile = File(...),
    organization_id: str = Form(...),
    sub_organization_id: Optional[str] = Form(None),
    folder_id: Optional[str] = Form(None),
    kind: Optional[str] = Form(None),
    services: VaultServices = Depends(get_services)
):
    """Upload one photo or file into a folder view."""
    user_id = require_user(request)
    content = await file.read()
    obj = await services.uploads.upload(
        content=content,
        filename=file.filename,
        scope=OwnerScope(organization_id, sub_organization_id or None),
        caller_id=user_id,
        folder_id=folder_id or None,
        content_type=file.content_type,
        kind=kind or None,
    )
    return {"status": "ok", "object": obj.to_dict()}


@router.put("/objects/{object_id}")
async def rename_object(request: Request, object_id: str, data: ObjectRename,
                        services: VaultServices = Depends(get_services)):
    user_id = require_user(request)
    obj = await services.uploads.rename(object_id, data.name, user_id)
    return {"status": "ok", "object": obj.to_dict()}


@router.post("/objects/{object_id}/trash")
async def trash_object(request: Request, object_id: str,
                       services: VaultServices = Depends(get_services)):
    user_id = require_user(request)
    obj = await services.trash.soft_delete(object_id, user_id)
    return {"status": "ok", "object": obj.to_dict()}


@router.post("/objects/{object_id}/restore")
async def restore_object(request: Request, object_id: str,
                         services: VaultServices = Depends(get_services)):
    user_id = require_user(request)
    obj = await services.trash.restore(object_id, user_id)
    return {"status": "ok", "object": obj.to_dict()}


@router.delete("/objects/{object_id}")
async def purge_object(request: Request, object_id: str,
                       services: VaultServices = Depends(get_services)):
    """Delete a trashed object forever."""
    user_id = require_user(request)
    await services.trash.purge_forever(object_id, user_id)
    return {"status": "ok"}


@router.get("/organizations/{organization_id}/trash")
async def list_trash(request: Request, organization_id: str,
                     services: VaultServices = Depends(get_services)):
    """Trashed items across the club with their original location."""
    user_id = require_user(request)
    if not await services.capabilities.is_member(user_id, organization_id):
        raise PermissionDeniedError("You are not a member of this club")
    return {"items": await services.trash.list_trash(organization_id, user_id)}


@router.post("/batch/trash")
async def batch_trash(request: Request, data: SelectionInput,
                      services: VaultServices = Depends(get_services)):
    """Move every selected item to the trash; failures don't stop the batch."""
    user_id = require_user(request)
    result = await services.batch.batch_soft_delete(data.to_selection(), user_id)
    return {"status": "ok", "message": result.summary(), **result.to_dict()}
