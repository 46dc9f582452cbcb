"""Vault routes package.

- usage: storage usage, large-file cleanup, vault session
- folders: folder tree management
- objects: photos and files, trash lifecycle, batches
- export: discovery preview and ZIP downloads
"""
from fastapi import APIRouter

from . import usage, folders, objects, export

router = APIRouter()

router.include_router(usage.router)
router.include_router(folders.router)
router.include_router(objects.router)
router.include_router(export.router)

__all__ = ["router"]
