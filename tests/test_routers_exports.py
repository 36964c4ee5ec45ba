"""
tests/test_routers_exports.py -- HTTP tests for routers/exports.py

Covers: TSV downloads (content type, BOM, attachment name), the zitate
type parameter, empty image exports (404) and the photo ZIP.

Called by: pytest
Depends on: abibuch/routers/exports.py, conftest.py (admin_client fixture)
"""

import io
import zipfile

import pytest

from abibuch.models import PhotoCategory
from abibuch.services import photo_service, social_service


class TestTsvExports:
    @pytest.mark.parametrize(
        "path,filename",
        [
            ("rankings", "rankings.tsv"),
            ("kommentare", "kommentare.tsv"),
            ("kontaktdaten", "kontaktdaten.tsv"),
            ("steckbriefe", "steckbriefe.tsv"),
            ("umfragen", "umfragen.tsv"),
        ],
    )
    def test_download(self, admin_client, path, filename):
        resp = admin_client.get(f"/api/admin/export/{path}")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/tab-separated-values")
        assert resp.headers["content-disposition"] == f'attachment; filename="{filename}"'
        assert resp.content.startswith(b"\xef\xbb\xbf")

    def test_teacher_quotes(self, admin_client, db_session, student_user, make_teacher):
        t = make_teacher("Müller", "HERR", subject="Mathe")
        social_service.add_teacher_quotes(db_session, t.id, student_user, ["Setzen!"])
        resp = admin_client.get("/api/admin/export/zitate", params={"type": "lehrer"})
        lines = resp.content.decode("utf-8-sig").split("\n")
        assert lines == ["Lehrer\tAnrede\tFach\tZitat", "Müller\tHerr\tMathe\tSetzen!"]

    def test_student_quotes_filename(self, admin_client):
        resp = admin_client.get("/api/admin/export/zitate", params={"type": "schueler"})
        assert resp.headers["content-disposition"] == 'attachment; filename="schueler_zitate.tsv"'

    def test_quote_type_required(self, admin_client):
        resp = admin_client.get("/api/admin/export/zitate")
        assert resp.status_code == 400
        assert resp.json()["error"] == "Parameter 'type' muss 'lehrer' oder 'schueler' sein."


class TestZipExports:
    def test_no_image_fields(self, admin_client, make_field):
        make_field("hobbies", "TEXT")
        resp = admin_client.get("/api/admin/export/steckbrief-bilder")
        assert resp.status_code == 404
        assert resp.json()["error"] == "Keine Bildfelder konfiguriert."

    def test_no_photos(self, admin_client):
        resp = admin_client.get("/api/admin/export/fotos")
        assert resp.status_code == 404
        assert resp.json()["error"] == "Keine Fotos zum Exportieren vorhanden."

    def test_photo_zip(self, admin_client, db_session, student_user, png_bytes):
        cat = PhotoCategory(name="Abifahrt", max_per_user=5, order=0, active=True)
        db_session.add(cat)
        db_session.commit()
        photo_service.upload_photo(db_session, student_user, cat.id, png_bytes)

        resp = admin_client.get("/api/admin/export/fotos")
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "application/zip"
        names = zipfile.ZipFile(io.BytesIO(resp.content)).namelist()
        assert names == ["fotos/abifahrt/mustermann_max.png"]


class TestAccess:
    def test_student_forbidden(self, anon_client, student_user):
        anon_client.post("/api/auth/login", json={"email": student_user.email, "password": "geheim123"})
        assert anon_client.get("/api/admin/export/rankings").status_code == 403

    def test_anonymous_rejected(self, anon_client):
        assert anon_client.get("/api/admin/export/fotos").status_code == 401
