"""
routers/exports.py — TSV and ZIP downloads for the yearbook layout

Business Rules:
- Admin only
- zitate requires ?type=lehrer or ?type=schueler
- Image exports answer 404 when there is nothing to pack

Called by: main.py (router mount)
Depends on: services/export_service
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import require_admin
from ..models import User
from ..services import export_service
from ..services.export_service import tsv_response, zip_response

log = logging.getLogger(__name__)

router = APIRouter(tags=["exports"])


@router.get("/api/admin/export/rankings")
async def export_rankings(user: User = Depends(require_admin), db: Session = Depends(get_db)):
    return tsv_response(export_service.export_rankings(db), "rankings.tsv")


@router.get("/api/admin/export/kommentare")
async def export_comments(user: User = Depends(require_admin), db: Session = Depends(get_db)):
    return tsv_response(export_service.export_comments(db), "kommentare.tsv")


@router.get("/api/admin/export/kontaktdaten")
async def export_contacts(user: User = Depends(require_admin), db: Session = Depends(get_db)):
    return tsv_response(export_service.export_contacts(db), "kontaktdaten.tsv")


@router.get("/api/admin/export/steckbriefe")
async def export_steckbriefe(user: User = Depends(require_admin), db: Session = Depends(get_db)):
    return tsv_response(export_service.export_steckbriefe(db), "steckbriefe.tsv")


@router.get("/api/admin/export/steckbrief-bilder")
async def export_steckbrief_images(user: User = Depends(require_admin), db: Session = Depends(get_db)):
    content = export_service.export_steckbrief_images(db)
    if content is None:
        raise HTTPException(404, "Keine Bildfelder konfiguriert.")
    return zip_response(content, "steckbrief_bilder.zip")


@router.get("/api/admin/export/umfragen")
async def export_surveys(user: User = Depends(require_admin), db: Session = Depends(get_db)):
    return tsv_response(export_service.export_surveys(db), "umfragen.tsv")


@router.get("/api/admin/export/zitate")
async def export_quotes(
    type: str | None = Query(None),
    user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if type == "lehrer":
        return tsv_response(export_service.export_teacher_quotes(db), "lehrer_zitate.tsv")
    if type == "schueler":
        return tsv_response(export_service.export_student_quotes(db), "schueler_zitate.tsv")
    raise HTTPException(400, "Parameter 'type' muss 'lehrer' oder 'schueler' sein.")


@router.get("/api/admin/export/fotos")
async def export_photos(user: User = Depends(require_admin), db: Session = Depends(get_db)):
    content = export_service.export_photos(db)
    if content is None:
        raise HTTPException(404, "Keine Fotos zum Exportieren vorhanden.")
    return zip_response(content, "fotos.zip")
