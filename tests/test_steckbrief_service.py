"""
test_steckbrief_service.py — Tests for steckbrief_service and steckbrief_field_service.

Covers saving text and image values, max_length/max_files limits, keeping
values that were not sent, submit/retract with required fields, the
auto-retract on edit, contact info, admin feedback and field admin.

Called by: pytest
Depends on: abibuch/services/steckbrief_service.py,
            abibuch/services/steckbrief_field_service.py, conftest.py
"""

from pathlib import Path

from abibuch.models import AuditLog, StudentActivity
from abibuch.services import steckbrief_field_service, steckbrief_service
from abibuch.services.steckbrief_service import SteckbriefUpdate, parse_kept_images
from abibuch.services.storage_service import path_for_url


def _save(db, user, **kwargs):
    return steckbrief_service.update_steckbrief(db, user, SteckbriefUpdate(**kwargs))


# ── Helpers ──────────────────────────────────────────────────────────


class TestParseKeptImages:
    def test_valid_list(self):
        assert parse_kept_images('["/api/uploads/a.png"]') == ["/api/uploads/a.png"]

    def test_empty(self):
        assert parse_kept_images("") == []

    def test_malformed(self):
        assert parse_kept_images("not json") is None
        assert parse_kept_images('{"a": 1}') is None
        assert parse_kept_images("[1, 2]") is None


# ── Save ─────────────────────────────────────────────────────────────


class TestSave:
    def test_empty_profile(self, db_session, student_user, make_field):
        make_field(key="motto", label="Motto")
        make_field(key="baby", type="SINGLE_IMAGE", label="Babyfoto", order=1)
        make_field(key="fotos", type="MULTI_IMAGE", label="Fotos", order=2)
        result = steckbrief_service.get_steckbrief(db_session, student_user)
        assert result["profile"]["status"] == "DRAFT"
        assert result["values"] == {"motto": "", "baby": None, "fotos": []}

    def test_text_saved(self, db_session, student_user, make_field):
        make_field(key="motto", label="Motto")
        result = _save(db_session, student_user, texts={"motto": "Carpe diem"})
        assert result["values"]["motto"] == "Carpe diem"

    def test_text_too_long(self, db_session, student_user, make_field):
        make_field(key="motto", label="Motto", max_length=5)
        result = _save(db_session, student_user, texts={"motto": "zu lang"})
        assert result == {"error": "Motto darf maximal 5 Zeichen lang sein.", "status": 400}

    def test_unsent_text_kept(self, db_session, student_user, make_field):
        make_field(key="motto", label="Motto")
        make_field(key="hobbies", label="Hobbys", order=1)
        _save(db_session, student_user, texts={"motto": "Carpe diem", "hobbies": "Lesen"})
        result = _save(db_session, student_user, texts={"hobbies": "Schwimmen"})
        assert result["values"] == {"motto": "Carpe diem", "hobbies": "Schwimmen"}

    def test_single_image_replaces_old_file(self, db_session, student_user, make_field, png_bytes):
        make_field(key="baby", type="SINGLE_IMAGE", label="Babyfoto")
        first = _save(db_session, student_user, single_images={"baby": png_bytes})["values"]["baby"]
        assert first.startswith(f"/api/uploads/profiles/{student_user.id}/baby-")
        assert first.endswith(".png")
        old_path = path_for_url(first)
        assert old_path is not None

        second = _save(db_session, student_user, single_images={"baby": png_bytes})["values"]["baby"]
        assert second != first
        assert not Path(old_path).exists()

    def test_invalid_image_rejected(self, db_session, student_user, make_field):
        make_field(key="baby", type="SINGLE_IMAGE", label="Babyfoto")
        result = _save(db_session, student_user, single_images={"baby": b"%PDF-1.4 nope"})
        assert result["error"] == "Nur JPEG, PNG und WebP Bilder sind erlaubt."

    def test_multi_image_keep_and_drop(self, db_session, student_user, make_field, png_bytes):
        make_field(key="fotos", type="MULTI_IMAGE", label="Fotos", max_files=3)
        urls = _save(db_session, student_user, new_images={"fotos": [png_bytes, png_bytes]})["values"]["fotos"]
        assert len(urls) == 2

        result = _save(
            db_session,
            student_user,
            kept_images={"fotos": [urls[1], "/api/uploads/fremd.png"]},
            new_images={"fotos": [png_bytes]},
        )
        values = result["values"]["fotos"]
        assert len(values) == 2
        assert values[0] == urls[1]
        assert path_for_url(urls[0]) is None

    def test_multi_image_limit(self, db_session, student_user, make_field, png_bytes):
        make_field(key="fotos", type="MULTI_IMAGE", label="Fotos", max_files=2)
        _save(db_session, student_user, new_images={"fotos": [png_bytes, png_bytes]})
        result = _save(db_session, student_user, new_images={"fotos": [png_bytes]})
        assert result["error"] == "Fotos: Maximal 2 Bilder erlaubt."

    def test_edit_reverts_submission(self, db_session, student_user, make_field):
        make_field(key="motto", label="Motto")
        steckbrief_service.submit_steckbrief(db_session, student_user)
        result = _save(db_session, student_user, texts={"motto": "Neu"})
        assert result["status"] == "DRAFT"
        actions = [a.action for a in db_session.query(StudentActivity).order_by(StudentActivity.id)]
        assert actions == ["SUBMIT", "RETRACT"]


# ── Submit / retract ─────────────────────────────────────────────────


class TestSubmit:
    def test_required_field_missing(self, db_session, student_user, make_field):
        make_field(key="motto", label="Motto", required=True)
        make_field(key="baby", type="SINGLE_IMAGE", label="Babyfoto", order=1, required=True)
        result = steckbrief_service.submit_steckbrief(db_session, student_user)
        assert result["status"] == 400
        assert result["errors"] == ["Motto ist ein Pflichtfeld.", "Babyfoto ist ein Pflichtfeld."]

    def test_whitespace_does_not_count(self, db_session, student_user, make_field):
        make_field(key="motto", label="Motto", required=True)
        _save(db_session, student_user, texts={"motto": "   "})
        assert steckbrief_service.submit_steckbrief(db_session, student_user)["status"] == 400

    def test_submit_then_retract(self, db_session, student_user, make_field):
        make_field(key="motto", label="Motto", required=True)
        _save(db_session, student_user, texts={"motto": "Carpe diem"})
        assert steckbrief_service.submit_steckbrief(db_session, student_user)["status"] == "SUBMITTED"
        again = steckbrief_service.submit_steckbrief(db_session, student_user)
        assert again["error"] == "Der Steckbrief wurde bereits eingereicht."
        assert steckbrief_service.retract_steckbrief(db_session, student_user)["status"] == "DRAFT"
        assert steckbrief_service.retract_steckbrief(db_session, student_user)["status"] == 400


# ── Contact info ─────────────────────────────────────────────────────


class TestContactInfo:
    def test_defaults_to_empty(self, db_session, student_user):
        assert steckbrief_service.get_contact_info(db_session, student_user) == {
            "contact_email": "", "contact_phone": "", "contact_insta": "",
        }

    def test_update(self, db_session, student_user):
        result = steckbrief_service.update_contact_info(
            db_session, student_user, " max@web.de ", "0171 123", ""
        )
        assert result["contact_email"] == "max@web.de"
        assert result["contact_phone"] == "0171 123"
        assert result["contact_insta"] == ""

    def test_invalid_email(self, db_session, student_user):
        result = steckbrief_service.update_contact_info(db_session, student_user, "kein-mail", None, None)
        assert result["status"] == 400


# ── Admin ────────────────────────────────────────────────────────────


class TestAdmin:
    def test_overview_counts_filled_fields(self, db_session, student_user, make_student, make_field):
        make_field(key="motto", label="Motto")
        make_field(key="hobbies", label="Hobbys", order=1)
        make_student("Zoe", "Zander")
        _save(db_session, student_user, texts={"motto": "Carpe diem"})

        overview = {row["last_name"]: row for row in steckbrief_service.admin_overview(db_session)}
        assert overview["Mustermann"]["filled_fields"] == 1
        assert overview["Mustermann"]["total_fields"] == 2
        assert overview["Zander"]["registered"] is False
        assert overview["Zander"]["status"] is None

    def test_feedback_returns_to_draft(self, db_session, student_user):
        steckbrief_service.submit_steckbrief(db_session, student_user)
        profile_id = student_user.profile.id
        result = steckbrief_service.set_feedback(db_session, profile_id, " Bitte Foto ändern ")
        assert result["old"]["status"] == "SUBMITTED"
        assert result["profile"].status == "DRAFT"
        assert result["profile"].feedback == "Bitte Foto ändern"

    def test_detail_not_found(self, db_session):
        assert steckbrief_service.admin_profile_detail(db_session, 999)["status"] == 404


class TestFieldAdmin:
    def test_create_appends(self, db_session, make_field):
        make_field(key="motto", order=3)
        result = steckbrief_field_service.create_field(
            db_session, {"key": "lieblingsessen", "type": "TEXT", "label": " Lieblingsessen "}, alias="KS"
        )
        assert result["field"]["order"] == 4
        assert result["field"]["label"] == "Lieblingsessen"
        entry = db_session.query(AuditLog).one()
        assert (entry.action, entry.entity, entry.alias) == ("CREATE", "SteckbriefField", "KS")

    def test_duplicate_key(self, db_session, make_field):
        make_field(key="motto")
        result = steckbrief_field_service.create_field(
            db_session, {"key": "motto", "type": "TEXT", "label": "Motto"}, alias=None
        )
        assert result["status"] == 400

    def test_key_and_type_immutable(self, db_session, make_field):
        field = make_field()
        result = steckbrief_field_service.update_field(db_session, field.id, {"type": "TEXTAREA"}, alias=None)
        assert result["error"] == "Key und Typ eines Feldes können nicht geändert werden."

    def test_deactivate_is_audited(self, db_session, make_field):
        field = make_field()
        steckbrief_field_service.update_field(db_session, field.id, {"active": False}, alias="KS")
        entry = db_session.query(AuditLog).one()
        assert entry.old_values == {"active": True}
        assert entry.new_values == {"active": False}

    def test_reorder(self, db_session, make_field):
        a = make_field(key="a", order=0)
        b = make_field(key="b", order=1)
        result = steckbrief_field_service.reorder_fields(
            db_session, [{"id": a.id, "order": 1}, {"id": b.id, "order": 0}, {"id": 999, "order": 2}], alias=None
        )
        assert result["updated"] == 2
        assert [f["key"] for f in steckbrief_field_service.list_fields(db_session)] == ["b", "a"]
