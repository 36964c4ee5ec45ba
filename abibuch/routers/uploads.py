"""Serve stored uploads to logged-in users."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from ..dependencies import require_user
from ..models import User
from ..services.storage_service import resolve_upload_path

log = logging.getLogger(__name__)

router = APIRouter(tags=["uploads"])


@router.get("/api/uploads/{path:path}")
async def serve_upload(path: str, user: User = Depends(require_user)):
    target = resolve_upload_path(path)
    if target is None:
        raise HTTPException(404, "Datei nicht gefunden.")
    return FileResponse(target)
