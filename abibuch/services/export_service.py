"""
export_service.py — TSV and ZIP exports for the yearbook layout

TSV files target InDesign Data Merge: UTF-8 BOM, tab separated, "\\n" line
joins. Image columns are prefixed with "@" and hold paths relative to the
unpacked image ZIP (steckbrief_bilder/<lastname_firstname>/<key><ext>).

Business Rules:
- Values containing tab, newline, CR or '"' are quoted, quotes doubled
- Folder and file names go through sanitize_filename; duplicate student
  folders get _2, _3 ... suffixes in name order
- Only active students, teachers, questions and fields are exported
- Image ZIPs skip files missing on disk

Called by: routers/exports.py
Depends on: models, services/ranking_results_service, services/storage_service
"""

import io
import logging
import zipfile

from fastapi.responses import Response
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ..constants import FieldType, Gender, IMAGE_FIELD_TYPES, Role, Salutation
from ..models import (
    Comment,
    PhotoCategory,
    Profile,
    Student,
    StudentQuote,
    SteckbriefField,
    SurveyAnswer,
    SurveyQuestion,
    Teacher,
    TeacherQuote,
    User,
)
from ..utils.percentages import format_percentage, percentage
from . import ranking_results_service
from .storage_service import file_extension, path_for_url

log = logging.getLogger(__name__)

BOM = "\ufeff"
TSV_MEDIA_TYPE = "text/tab-separated-values; charset=utf-8"
DEFAULT_MAX_FILES = 3

_UMLAUTS = str.maketrans({"ä": "ae", "ö": "oe", "ü": "ue", "ß": "ss"})


# ── TSV primitives ───────────────────────────────────────────────────


def escape_tsv_value(value) -> str:
    if value is None:
        return ""
    text = str(value)
    if any(ch in text for ch in ("\t", "\n", "\r", '"')):
        return '"' + text.replace('"', '""') + '"'
    return text


def build_tsv(headers: list[str], rows: list[list]) -> str:
    lines = ["\t".join(escape_tsv_value(h) for h in headers)]
    lines.extend("\t".join(escape_tsv_value(v) for v in row) for row in rows)
    return BOM + "\n".join(lines)


def tsv_response(content: str, filename: str) -> Response:
    return Response(
        content=content.encode("utf-8"),
        media_type=TSV_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def zip_response(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def sanitize_filename(name: str) -> str:
    """'Müller_Jürgen' -> 'mueller_juergen'."""
    out = []
    for ch in name.lower().translate(_UMLAUTS):
        out.append(ch if ("a" <= ch <= "z" or "0" <= ch <= "9") else "_")
    collapsed = "_".join(part for part in "".join(out).split("_") if part)
    return collapsed


class FolderNamer:
    """Hands out unique folder names: base, base_2, base_3 ..."""

    def __init__(self):
        self._seen: dict[str, int] = {}

    def __call__(self, base: str) -> str:
        count = self._seen.get(base, 0)
        self._seen[base] = count + 1
        return f"{base}_{count + 1}" if count else base


# ── Rankings ─────────────────────────────────────────────────────────


def export_rankings(db: Session) -> str:
    return build_tsv(ranking_results_service.EXPORT_HEADERS, ranking_results_service.export_rows(db))


# ── Comments ─────────────────────────────────────────────────────────


def export_comments(db: Session) -> str:
    comments = (
        db.query(Comment)
        .options(joinedload(Comment.student), joinedload(Comment.teacher))
        .order_by(Comment.created_at)
        .all()
    )
    rows = []
    for c in comments:
        if c.student is not None and c.student.active:
            rows.append(["Schüler/in", c.student.full_name, c.text])
        elif c.teacher is not None and c.teacher.active:
            rows.append(["Lehrer/in", c.teacher.display_name(include_subject=False), c.text])
    rows.sort(key=lambda r: r[1].lower())
    return build_tsv(["Typ", "Empfänger", "Kommentar"], rows)


# ── Contact data ─────────────────────────────────────────────────────


def export_contacts(db: Session) -> str:
    users = (
        db.query(User)
        .join(Profile, Profile.user_id == User.id)
        .filter(
            User.role == Role.STUDENT.value,
            User.active.is_(True),
            (Profile.contact_email.isnot(None))
            | (Profile.contact_phone.isnot(None))
            | (Profile.contact_insta.isnot(None)),
        )
        .order_by(User.last_name, User.first_name)
        .all()
    )
    rows = [
        [
            u.first_name,
            u.last_name,
            u.profile.contact_email or "",
            u.profile.contact_phone or "",
            u.profile.contact_insta or "",
        ]
        for u in users
    ]
    return build_tsv(["Vorname", "Nachname", "E-Mail", "Handynummer", "Instagram"], rows)


# ── Steckbriefe ──────────────────────────────────────────────────────


def _active_fields(db: Session, image_only: bool = False) -> list[SteckbriefField]:
    q = db.query(SteckbriefField).filter(SteckbriefField.active.is_(True))
    if image_only:
        q = q.filter(SteckbriefField.type.in_([t.value for t in IMAGE_FIELD_TYPES]))
    return q.order_by(SteckbriefField.order, SteckbriefField.id).all()


def _active_students(db: Session) -> list[Student]:
    return (
        db.query(Student)
        .options(joinedload(Student.user))
        .filter(Student.active.is_(True))
        .order_by(Student.last_name, Student.first_name)
        .all()
    )


def _values_by_field(student: Student) -> dict:
    profile = student.user.profile if student.user is not None else None
    if profile is None:
        return {}
    return {v.field_id: v for v in profile.values}


def _image_entries(field: SteckbriefField, value, folder: str) -> list[tuple[str, str]]:
    """(source url, archive path) for every stored image of a field."""
    if value is None:
        return []
    key = sanitize_filename(field.key)
    if field.type == FieldType.SINGLE_IMAGE:
        if not value.image_value:
            return []
        url = value.image_value
        return [(url, f"steckbrief_bilder/{folder}/{key}{file_extension(url)}")]
    return [
        (url, f"steckbrief_bilder/{folder}/{key}_{i}{file_extension(url)}")
        for i, url in enumerate(value.images_value or [], start=1)
    ]


def steckbrief_headers(fields: list[SteckbriefField]) -> list[str]:
    headers = ["Vorname", "Nachname", "Geschlecht", "Status"]
    for field in fields:
        if field.type == FieldType.MULTI_IMAGE:
            headers.extend(f"@{field.label}_{i}" for i in range(1, (field.max_files or DEFAULT_MAX_FILES) + 1))
        elif field.type == FieldType.SINGLE_IMAGE:
            headers.append(f"@{field.label}")
        else:
            headers.append(field.label)
    return headers


def export_steckbriefe(db: Session) -> str:
    fields = _active_fields(db)
    folder_for = FolderNamer()
    rows = []
    for student in _active_students(db):
        folder = folder_for(sanitize_filename(f"{student.last_name}_{student.first_name}"))
        values = _values_by_field(student)
        profile = student.user.profile if student.user is not None else None
        gender = {Gender.MALE.value: "m", Gender.FEMALE.value: "w"}.get(student.gender, "")
        row = [student.first_name, student.last_name, gender, profile.status if profile else ""]

        for field in fields:
            value = values.get(field.id)
            if field.type in (FieldType.TEXT, FieldType.TEXTAREA):
                row.append((value.text_value or "") if value else "")
                continue
            paths = [p for _, p in _image_entries(field, value, folder)]
            slots = 1 if field.type == FieldType.SINGLE_IMAGE else (field.max_files or DEFAULT_MAX_FILES)
            paths = paths[:slots]
            row.extend(paths + [""] * (slots - len(paths)))
        rows.append(row)
    return build_tsv(steckbrief_headers(fields), rows)


def export_steckbrief_images(db: Session) -> bytes | None:
    """ZIP of all profile images; None when no image field is configured."""
    fields = _active_fields(db, image_only=True)
    if not fields:
        return None
    folder_for = FolderNamer()
    buf = io.BytesIO()
    added = 0
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for student in _active_students(db):
            values = _values_by_field(student)
            if not any(_image_entries(f, values.get(f.id), "") for f in fields):
                continue
            folder = folder_for(sanitize_filename(f"{student.last_name}_{student.first_name}"))
            for field in fields:
                for url, arcname in _image_entries(field, values.get(field.id), folder):
                    source = path_for_url(url)
                    if source is None:
                        log.warning(f"Steckbrief image missing on disk: {url}")
                        continue
                    zf.write(source, arcname)
                    added += 1
    log.info(f"Steckbrief image export: {added} files")
    return buf.getvalue()


# ── Surveys ──────────────────────────────────────────────────────────


def export_surveys(db: Session) -> str:
    questions = (
        db.query(SurveyQuestion)
        .options(joinedload(SurveyQuestion.options))
        .filter(SurveyQuestion.active.is_(True))
        .order_by(SurveyQuestion.order, SurveyQuestion.id)
        .all()
    )
    counts = dict(
        ((qid, oid), n)
        for qid, oid, n in db.query(SurveyAnswer.question_id, SurveyAnswer.option_id, func.count(SurveyAnswer.id))
        .group_by(SurveyAnswer.question_id, SurveyAnswer.option_id)
        .all()
    )
    rows = []
    for q in questions:
        total = sum(counts.get((q.id, o.id), 0) for o in q.options)
        ranked = sorted(q.options, key=lambda o: -counts.get((q.id, o.id), 0))
        for option in ranked:
            n = counts.get((q.id, option.id), 0)
            pct = percentage(n, total)
            rows.append([q.text, option.text, str(n), format_percentage(pct)])
    return build_tsv(["Frage", "Antwort", "Stimmen", "Prozent"], rows)


# ── Quotes ───────────────────────────────────────────────────────────


def export_teacher_quotes(db: Session) -> str:
    quotes = (
        db.query(TeacherQuote)
        .join(Teacher, Teacher.id == TeacherQuote.teacher_id)
        .order_by(Teacher.last_name, TeacherQuote.created_at)
        .all()
    )
    rows = []
    for q in quotes:
        t = q.teacher
        name = f"{t.first_name} {t.last_name}" if t.first_name else t.last_name
        rows.append([name, "Herr" if t.salutation == Salutation.HERR else "Frau", t.subject or "", q.text])
    return build_tsv(["Lehrer", "Anrede", "Fach", "Zitat"], rows)


def export_student_quotes(db: Session) -> str:
    quotes = (
        db.query(StudentQuote)
        .join(Student, Student.id == StudentQuote.student_id)
        .order_by(Student.last_name, StudentQuote.created_at)
        .all()
    )
    rows = [[q.student.first_name, q.student.last_name, q.text] for q in quotes]
    return build_tsv(["Vorname", "Nachname", "Zitat"], rows)


# ── Photos ───────────────────────────────────────────────────────────


def export_photos(db: Session) -> bytes | None:
    """ZIP of all photos grouped by category; None when there are none."""
    categories = (
        db.query(PhotoCategory)
        .filter(PhotoCategory.active.is_(True))
        .order_by(PhotoCategory.order, PhotoCategory.id)
        .all()
    )
    if not any(c.photos for c in categories):
        return None

    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for category in categories:
            folder = sanitize_filename(category.name)
            name_for = FolderNamer()
            for photo in category.photos:
                source = path_for_url(photo.image_url)
                if source is None:
                    log.warning(f"Photo missing on disk: {photo.image_url}")
                    continue
                base = name_for(sanitize_filename(f"{photo.user.last_name}_{photo.user.first_name}"))
                zf.write(source, f"fotos/{folder}/{base}{file_extension(photo.image_url)}")
    return buf.getvalue()
