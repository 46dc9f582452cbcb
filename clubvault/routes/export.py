"""Export routes - discovery preview and ZIP downloads.

A client that disconnects while the archive is being assembled cancels the
export; no partial archive is produced.
"""
import asyncio
import logging
from io import BytesIO
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from ..application.cancellation import CancellationToken
from ..application.errors import ExportCancelledError
from ..application.models import ArchiveResult, OwnerScope
from ..dependencies import VaultServices, get_services, require_user
from .objects import SelectionInput

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/vault/export", tags=["export"])

DISCONNECT_POLL_INTERVAL = 0.5


class ExportRequest(BaseModel):
    organization_id: str
    sub_organization_id: Optional[str] = None
    folder_id: Optional[str] = None
    recursive: bool = True


class ArchiveRequest(ExportRequest):
    excluded_paths: list[str] = []


async def _cancel_on_disconnect(request: Request, token: CancellationToken) -> None:
    while not token.cancelled:
        if await request.is_disconnected():
            logger.info("Client disconnected, cancelling export")
            token.cancel()
            return
        await asyncio.sleep(DISCONNECT_POLL_INTERVAL)


async def _run_with_disconnect_watch(request: Request, token: CancellationToken, coro):
    watcher = asyncio.create_task(_cancel_on_disconnect(request, token))
    try:
        return await coro
    finally:
        watcher.cancel()


def _zip_response(result: ArchiveResult) -> StreamingResponse:
    if result.cancelled:
        raise ExportCancelledError(result.summary())
    if result.archive is None:
        raise HTTPException(status_code=404, detail=result.summary())

    return StreamingResponse(
        BytesIO(result.archive),
        media_type="application/zip",
        headers={
            "Content-Disposition": f'attachment; filename="{result.filename}"',
            "X-Export-Succeeded": str(result.succeeded),
            "X-Export-Failed": str(len(result.failed)),
        }
    )


@router.post("/discover")
async def discover(request: Request, data: ExportRequest,
                   services: VaultServices = Depends(get_services)):
    """Preview what an export would contain, folder by folder."""
    user_id = require_user(request)
    selection = await services.export.discover(
        OwnerScope(data.organization_id, data.sub_organization_id),
        data.folder_id,
        data.recursive,
        user_id
    )
    return selection.to_dict()


@router.post("/archive")
async def export_archive(request: Request, data: ArchiveRequest,
                         services: VaultServices = Depends(get_services)):
    """ZIP of a folder (optionally with descendants) minus excluded paths."""
    user_id = require_user(request)
    selection = await services.export.discover(
        OwnerScope(data.organization_id, data.sub_organization_id),
        data.folder_id,
        data.recursive,
        user_id
    )

    token = CancellationToken()
    result = await _run_with_disconnect_watch(
        request, token,
        services.export.build_archive(selection, set(data.excluded_paths), token)
    )
    return _zip_response(result)


@router.post("/selection")
async def export_selection(request: Request, data: SelectionInput,
                           services: VaultServices = Depends(get_services)):
    """Flat ZIP of the selected photos and files."""
    user_id = require_user(request)
    token = CancellationToken()
    result = await _run_with_disconnect_watch(
        request, token,
        services.batch.batch_export(data.to_selection(), user_id, token)
    )
    return _zip_response(result)
