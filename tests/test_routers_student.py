"""
tests/test_routers_student.py -- HTTP tests for the student-facing routers

Covers: Steckbrief multipart saving, submit/retract, contact info,
rankings voting and search, quotes, comments, photo uploads, the survey,
the dashboard, serving uploads, and the deadline gate on every write.

Called by: pytest
Depends on: abibuch/routers/*.py, conftest.py (client fixture)
"""

import json
from datetime import datetime, timedelta, timezone

import pytest

from abibuch.models import AppSettings, PhotoCategory
from abibuch.services import survey_service


def _close_deadline(db):
    db.add(AppSettings(deadline=datetime.now(timezone.utc) - timedelta(days=1)))
    db.commit()


@pytest.fixture()
def category(db_session):
    cat = PhotoCategory(name="Abifahrt", max_per_user=3, order=0, active=True)
    db_session.add(cat)
    db_session.commit()
    db_session.refresh(cat)
    return cat


# ── Steckbrief ───────────────────────────────────────────────────────


class TestSteckbrief:
    def test_get_includes_fields_values_and_deadline(self, client, make_field):
        make_field("hobbies", "TEXT", "Hobbys")
        make_field("fotos", "MULTI_IMAGE", "Fotos", order=1, max_files=3)
        resp = client.get("/api/steckbrief")
        assert resp.status_code == 200
        data = resp.json()
        assert [f["key"] for f in data["fields"]] == ["hobbies", "fotos"]
        assert data["values"] == {"hobbies": "", "fotos": []}
        assert data["profile"]["status"] == "DRAFT"
        assert data["deadline"] is None
        assert data["deadline_passed"] is False

    def test_save_text_and_image(self, client, make_field, png_bytes):
        make_field("hobbies", "TEXT", "Hobbys")
        make_field("portrait", "SINGLE_IMAGE", "Portrait", order=1)
        resp = client.patch(
            "/api/steckbrief",
            data={"hobbies": " Lesen "},
            files={"image_portrait": ("ich.png", png_bytes, "image/png")},
        )
        assert resp.status_code == 200
        values = resp.json()["values"]
        assert values["hobbies"] == "Lesen"
        assert values["portrait"].startswith("/api/uploads/profiles/")

        served = client.get(values["portrait"])
        assert served.status_code == 200
        assert served.content == png_bytes

    def test_multi_image_keep_and_add(self, client, make_field, png_bytes):
        make_field("fotos", "MULTI_IMAGE", "Fotos", max_files=3)
        first = client.patch(
            "/api/steckbrief",
            data={"existing_fotos": "[]"},
            files=[("new_fotos", ("a.png", png_bytes, "image/png"))],
        ).json()["values"]["fotos"]
        assert len(first) == 1

        second = client.patch(
            "/api/steckbrief",
            data={"existing_fotos": json.dumps(first)},
            files=[("new_fotos", ("b.png", png_bytes, "image/png"))],
        ).json()["values"]["fotos"]
        assert len(second) == 2
        assert second[0] == first[0]

    def test_bad_image_list(self, client, make_field):
        make_field("fotos", "MULTI_IMAGE", "Fotos", max_files=3)
        resp = client.patch("/api/steckbrief", data={"existing_fotos": "kein json"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Fotos: Ungültige Bildliste."

    def test_submit_requires_required_fields(self, client, make_field):
        make_field("zitat", "TEXTAREA", "Lieblingszitat", required=True)
        resp = client.post("/api/steckbrief/submit")
        assert resp.status_code == 400
        assert resp.json()["error"] == "Lieblingszitat ist ein Pflichtfeld."

    def test_submit_and_retract(self, client, make_field):
        make_field("zitat", "TEXTAREA", "Lieblingszitat", required=True)
        client.patch("/api/steckbrief", data={"zitat": "Carpe diem"})
        assert client.post("/api/steckbrief/submit").json()["status"] == "SUBMITTED"
        assert client.post("/api/steckbrief/submit").status_code == 400
        assert client.post("/api/steckbrief/retract").json()["status"] == "DRAFT"

    def test_contact_info(self, client):
        resp = client.patch(
            "/api/contact-info",
            json={"contact_email": "max@privat.de", "contact_phone": " 0170 123 ", "contact_insta": ""},
        )
        assert resp.status_code == 200
        data = client.get("/api/contact-info").json()
        assert data == {"contact_email": "max@privat.de", "contact_phone": "0170 123", "contact_insta": ""}


# ── Rankings ─────────────────────────────────────────────────────────


class TestRankings:
    def test_vote_and_overview(self, client, make_question, other_student_user):
        q = make_question("Wer wird berühmt?")
        lena = other_student_user.student
        resp = client.patch("/api/rankings/vote", json={"question_id": q.id, "student_id": lena.id})
        assert resp.status_code == 200
        assert resp.json()["vote"]["student_id"] == lena.id

        overview = client.get("/api/rankings").json()
        assert [v["question_id"] for v in overview["votes"]] == [q.id]
        assert overview["status"] == "DRAFT"
        assert "deadline_passed" in overview

    def test_invalid_gender_target(self, client, make_question):
        q = make_question()
        resp = client.patch("/api/rankings/vote", json={"question_id": q.id, "gender_target": "X"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Ungültiges Ziel-Geschlecht."

    @pytest.mark.parametrize("target", [["ALL"], {"x": 1}, 1])
    def test_non_string_gender_target(self, client, make_question, target):
        q = make_question()
        resp = client.patch("/api/rankings/vote", json={"question_id": q.id, "gender_target": target})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Ungültiges Ziel-Geschlecht."

    def test_submit_retract_and_delete_vote(self, client, make_question, other_student_user):
        q = make_question()
        client.patch("/api/rankings/vote", json={"question_id": q.id, "student_id": other_student_user.student.id})
        assert client.post("/api/rankings/submit").json()["status"] == "SUBMITTED"
        blocked = client.delete(f"/api/rankings/vote/{q.id}")
        assert blocked.status_code == 400
        client.post("/api/rankings/retract")
        assert client.delete(f"/api/rankings/vote/{q.id}").json()["deleted"] == 1

    def test_search(self, client, other_student_user, make_teacher):
        make_teacher("Müller", "HERR")
        students = client.get("/api/rankings/search/students", params={"q": "len"}).json()["results"]
        assert [s["first_name"] for s in students] == ["Lena"]
        teachers = client.get("/api/rankings/search/teachers", params={"q": "mül"}).json()["results"]
        assert [t["last_name"] for t in teachers] == ["Müller"]


# ── Quotes & comments ────────────────────────────────────────────────


class TestQuotes:
    def test_teacher_quotes_flow(self, client, make_teacher):
        t = make_teacher()
        created = client.post(f"/api/teacher-quotes/{t.id}", json={"quotes": ["Setzen!", " "]})
        assert created.status_code == 201
        assert created.json()["count"] == 1

        listing = client.get("/api/teacher-quotes").json()["teachers"]
        assert listing[0]["quote_count"] == 1
        quotes = client.get(f"/api/teacher-quotes/{t.id}").json()["quotes"]
        assert quotes[0]["is_own"] is True

        assert client.delete(f"/api/teacher-quotes/quote/{quotes[0]['id']}").status_code == 200

    def test_empty_quotes_rejected(self, client, make_teacher):
        t = make_teacher()
        resp = client.post(f"/api/teacher-quotes/{t.id}", json={"quotes": ["", "  "]})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Bitte gib mindestens ein Zitat ein."

    def test_student_quote_about_self(self, client, student_user):
        resp = client.post(f"/api/student-quotes/{student_user.student.id}", json={"quotes": ["Ich"]})
        assert resp.status_code == 403


class TestComments:
    def test_create_list_update_delete(self, client, make_teacher):
        t = make_teacher()
        created = client.post("/api/comments", json={"text": "Danke!", "target_type": "TEACHER", "target_id": t.id})
        assert created.status_code == 201
        comment_id = created.json()["comment"]["id"]

        listing = client.get("/api/comments").json()
        assert [c["id"] for c in listing["comments"]] == [comment_id]
        assert [x["name"] for x in listing["teachers"]] == ["Hr. Müller"]

        updated = client.patch(f"/api/comments/{comment_id}", json={"text": "Vielen Dank!"})
        assert updated.json()["comment"]["text"] == "Vielen Dank!"
        assert client.delete(f"/api/comments/{comment_id}").status_code == 200

    def test_invalid_target_type(self, client):
        resp = client.post("/api/comments", json={"text": "x", "target_type": "ADMIN", "target_id": 1})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Ungültiger Zieltyp."

    def test_list_target_type(self, client):
        resp = client.post("/api/comments", json={"text": "x", "target_type": ["STUDENT"], "target_id": 1})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Ungültiger Zieltyp."


# ── Photos ───────────────────────────────────────────────────────────


class TestPhotos:
    def test_upload_list_delete(self, client, category, png_bytes):
        resp = client.post(f"/api/photos/{category.id}", files={"file": ("foto.png", png_bytes, "image/png")})
        assert resp.status_code == 201
        photo = resp.json()["photo"]

        overview = client.get("/api/photos").json()["categories"]
        assert overview[0]["user_photo_count"] == 1
        detail = client.get(f"/api/photos/{category.id}").json()
        assert [p["id"] for p in detail["photos"]] == [photo["id"]]

        assert client.delete(f"/api/photos/photo/{photo['id']}").status_code == 200
        assert client.get(photo["image_url"]).status_code == 404

    def test_not_an_image(self, client, category):
        resp = client.post(f"/api/photos/{category.id}", files={"file": ("x.png", b"nur text", "image/png")})
        assert resp.status_code == 400


# ── Survey & dashboard ───────────────────────────────────────────────


class TestSurvey:
    def test_answer(self, client, db_session):
        q = survey_service.create_question(db_session, "Lieblingsfach?", ["Mathe", "Sport"], alias=None)["question"]
        sport = q["options"][1]["id"]
        resp = client.put(f"/api/survey/{q['id']}", json={"option_id": sport})
        assert resp.status_code == 200
        survey = client.get("/api/survey").json()
        assert survey["questions"][0]["selected_option_id"] == sport
        assert survey["answered"] == 1


class TestDashboard:
    def test_dashboard_state(self, client, make_question, other_student_user):
        q = make_question()
        client.patch("/api/rankings/vote", json={"question_id": q.id, "student_id": other_student_user.student.id})
        client.post("/api/rankings/submit")
        data = client.get("/api/dashboard").json()
        assert data["steckbrief_status"] == "DRAFT"
        assert data["ranking_status"] == "SUBMITTED"
        assert data["survey"] == {"answered": 0, "total": 0}
        assert data["activities"][0]["entity"] == "Rankings"


class TestUploads:
    def test_missing_file(self, client):
        resp = client.get("/api/uploads/photos/1/nichts.png")
        assert resp.status_code == 404
        assert resp.json()["error"] == "Datei nicht gefunden."


# ── Deadline ─────────────────────────────────────────────────────────


class TestDeadline:
    def test_writes_blocked_after_deadline(self, client, db_session, make_teacher, make_question, category, png_bytes):
        t = make_teacher()
        q = make_question()
        _close_deadline(db_session)
        blocked = [
            client.patch("/api/steckbrief", data={}),
            client.post("/api/steckbrief/submit"),
            client.patch("/api/contact-info", json={}),
            client.patch("/api/rankings/vote", json={"question_id": q.id}),
            client.post("/api/rankings/submit"),
            client.post(f"/api/teacher-quotes/{t.id}", json={"quotes": ["x"]}),
            client.post("/api/comments", json={"text": "x", "target_type": "TEACHER", "target_id": t.id}),
            client.post(f"/api/photos/{category.id}", files={"file": ("f.png", png_bytes, "image/png")}),
        ]
        for resp in blocked:
            assert resp.status_code == 403
            assert resp.json()["error"] == "Die Abgabefrist ist abgelaufen."

    def test_reads_still_allowed(self, client, db_session):
        _close_deadline(db_session)
        data = client.get("/api/steckbrief").json()
        assert data["deadline_passed"] is True
        assert client.get("/api/rankings").status_code == 200

    def test_ranking_retract_not_gated(self, client, db_session):
        client.post("/api/rankings/submit")
        _close_deadline(db_session)
        assert client.post("/api/rankings/retract").status_code == 200
