"""Folder tree routes."""
from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from ..application.models import OwnerScope
from ..dependencies import VaultServices, get_services, require_user

router = APIRouter(prefix="/api/vault/folders", tags=["folders"])


class FolderCreate(BaseModel):
    name: str
    organization_id: str
    sub_organization_id: Optional[str] = None
    parent_id: Optional[str] = None


class FolderUpdate(BaseModel):
    name: str


class FolderMove(BaseModel):
    parent_id: Optional[str] = None


@router.get("")
async def list_folders(
    request: Request,
    organization_id: str,
    sub_organization_id: Optional[str] = None,
    parent_id: Optional[str] = None,
    services: VaultServices = Depends(get_services)
):
    """Child folders of a folder view (scope root when no parent)."""
    user_id = require_user(request)
    scope = OwnerScope(organization_id, sub_organization_id)
    folders = await services.folders.list_children(scope, parent_id, user_id)
    return {"folders": folders}


@router.get("/{folder_id}/path")
async def get_folder_path(request: Request, folder_id: str,
                          services: VaultServices = Depends(get_services)):
    """Breadcrumbs from the scope root to the folder."""
    user_id = require_user(request)
    return {"path": await services.folders.resolve_path(folder_id, user_id)}


@router.post("")
async def create_folder(request: Request, data: FolderCreate,
                        services: VaultServices = Depends(get_services)):
    user_id = require_user(request)
    folder = await services.folders.create_folder(
        name=data.name,
        scope=OwnerScope(data.organization_id, data.sub_organization_id),
        user_id=user_id,
        parent_folder_id=data.parent_id
    )
    return {"status": "ok", "folder": folder}


@router.put("/{folder_id}")
async def rename_folder(request: Request, folder_id: str, data: FolderUpdate,
                        services: VaultServices = Depends(get_services)):
    user_id = require_user(request)
    folder = await services.folders.rename_folder(folder_id, data.name, user_id)
    return {"status": "ok", "folder": folder}


@router.post("/{folder_id}/move")
async def move_folder(request: Request, folder_id: str, data: FolderMove,
                      services: VaultServices = Depends(get_services)):
    user_id = require_user(request)
    await services.folders.move_folder(folder_id, data.parent_id, user_id)
    return {"status": "ok"}


@router.delete("/{folder_id}")
async def delete_folder(request: Request, folder_id: str,
                        services: VaultServices = Depends(get_services)):
    """Delete a folder; its contents move up to the parent."""
    user_id = require_user(request)
    warning = await services.folders.delete_folder(folder_id, user_id)
    return {"status": "ok", "warning": warning}
