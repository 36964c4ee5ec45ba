"""
csv_import_service.py — CSV import for students, teachers, ranking questions

Pipeline: decode → parse (stdlib csv) → match headers against per-kind
column aliases → map rows to dicts keyed by column key → (preview, optionally
edited client side) → batch import with per-row error collection.

Business Rules:
- Delimiter is ";" when the header line has more semicolons than commas
  (German Excel), "," otherwise. Cells are trimmed, blank lines dropped
- Header matching is case-insensitive on trimmed headers; unmatched headers
  are reported, zero matches is an error, missing required columns too
- Row numbers in errors count the header line ("Zeile 2" = first data row)
- Students: missing email → vorname.nachname@<school domain>; foreign
  domains are row errors; duplicates (DB or batch) are skipped
- Teachers: duplicates by salutation + lowercase last name are skipped
- Ranking questions: appended after the current highest order

Called by: routers/admin_people.py, routers/admin_rankings.py
Depends on: models, utils/file_validation, config (school_email_domain)
"""

import csv
import io
import logging
import re
import unicodedata
from dataclasses import dataclass, field

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..config import settings
from ..constants import AnswerMode, Gender, QuestionType, Salutation
from ..models import RankingQuestion, Student, Teacher

log = logging.getLogger(__name__)

MSG_EMPTY = "Die CSV-Datei ist leer oder enthält keine Daten."
MSG_NO_COLUMNS = "Keine bekannten Spalten erkannt. Überprüfe die Header-Zeile der CSV-Datei."


class CsvImportError(ValueError):
    """Raised when a CSV file cannot be turned into rows at all."""


@dataclass(frozen=True)
class ColumnDef:
    key: str
    label: str
    csv_headers: tuple[str, ...]
    required: bool = False


@dataclass
class ImportResult:
    success: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {"success": self.success, "skipped": self.skipped, "errors": self.errors}


STUDENT_COLUMNS = (
    ColumnDef("first_name", "Vorname", ("vorname", "firstname", "first_name"), required=True),
    ColumnDef("last_name", "Nachname", ("nachname", "lastname", "last_name"), required=True),
    ColumnDef("email", "E-Mail", ("email", "e-mail", "mail")),
    ColumnDef("gender", "Geschlecht", ("geschlecht", "gender")),
)

TEACHER_COLUMNS = (
    ColumnDef("salutation", "Anrede", ("anrede", "salutation"), required=True),
    ColumnDef("last_name", "Nachname", ("nachname", "lastname", "last_name"), required=True),
    ColumnDef("first_name", "Vorname", ("vorname", "firstname", "first_name")),
    ColumnDef("subject", "Fach", ("fach", "subject")),
)

RANKING_QUESTION_COLUMNS = (
    ColumnDef("text", "Text", ("text", "frage", "question"), required=True),
    ColumnDef("type", "Typ", ("typ", "type", "kategorie"), required=True),
    ColumnDef(
        "answer_mode",
        "Modus",
        ("answermode", "answer_mode", "modus", "geschlechtsspezifisch", "gender_specific", "geschlecht"),
    ),
)

COLUMN_SETS = {
    "students": STUDENT_COLUMNS,
    "teachers": TEACHER_COLUMNS,
    "ranking-questions": RANKING_QUESTION_COLUMNS,
}


# ── Parsing & header matching ────────────────────────────────────────


def parse_csv(text: str) -> tuple[list[str], list[list[str]]]:
    """Split CSV text into (headers, rows). Blank lines are skipped."""
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        return [], []

    first = lines[0]
    delimiter = ";" if first.count(";") > first.count(",") else ","
    reader = csv.reader(io.StringIO("\n".join(lines)), delimiter=delimiter)
    parsed = [[cell.strip() for cell in row] for row in reader]
    if not parsed:
        return [], []
    return parsed[0], parsed[1:]


def match_headers(
    headers: list[str], columns: tuple[ColumnDef, ...]
) -> tuple[list[ColumnDef | None], list[str]]:
    """Map each CSV header to a column definition.

    Returns (mapping aligned with headers, unmatched header names).
    """
    mapping: list[ColumnDef | None] = []
    for header in headers:
        normalized = header.strip().lower()
        match = next(
            (col for col in columns if normalized in (a.lower() for a in col.csv_headers)),
            None,
        )
        mapping.append(match)
    unmatched = [h for h, m in zip(headers, mapping) if m is None]
    return mapping, unmatched


def map_rows(
    rows: list[list[str]], mapping: list[ColumnDef | None], columns: tuple[ColumnDef, ...]
) -> list[dict]:
    """Turn raw cell lists into dicts with every column key present."""
    mapped = []
    for row in rows:
        if not any(cell.strip() for cell in row):
            continue
        obj = {col.key: "" for col in columns}
        for i, cell in enumerate(row):
            col = mapping[i] if i < len(mapping) else None
            if col:
                obj[col.key] = cell
        mapped.append(obj)
    return mapped


def _missing_required_message(columns: tuple[ColumnDef, ...]) -> str:
    labels = [f"'{c.label}'" for c in columns if c.required]
    return f"Die CSV-Datei muss die Spalten {' und '.join(labels)} enthalten."


def build_preview(text: str, columns: tuple[ColumnDef, ...]) -> dict:
    """Parse and map a CSV file for the preview table.

    Raises CsvImportError with a German message for unusable files.
    """
    headers, rows = parse_csv(text)
    if not headers or not rows:
        raise CsvImportError(MSG_EMPTY)

    mapping, unmatched = match_headers(headers, columns)
    if all(m is None for m in mapping):
        raise CsvImportError(MSG_NO_COLUMNS)

    matched_keys = {m.key for m in mapping if m is not None}
    if any(c.required and c.key not in matched_keys for c in columns):
        raise CsvImportError(_missing_required_message(columns))

    mapped = map_rows(rows, mapping, columns)
    if not mapped:
        raise CsvImportError(MSG_EMPTY)

    return {
        "columns": [
            {"key": c.key, "label": c.label, "required": c.required} for c in columns
        ],
        "rows": mapped,
        "unmatched_headers": unmatched,
    }


# ── Value normalization ──────────────────────────────────────────────

_UMLAUTS = {"ä": "ae", "ö": "oe", "ü": "ue", "ß": "ss"}


def _email_part(name: str) -> str:
    value = name.lower()
    for src, dst in _UMLAUTS.items():
        value = value.replace(src, dst)
    value = unicodedata.normalize("NFD", value)
    value = "".join(ch for ch in value if not unicodedata.combining(ch))
    return re.sub(r"[^a-z]", "", value)


def generate_student_email(first_name: str, last_name: str, domain: str | None = None) -> str:
    """School address from the name, e.g. Jürgen Groß → juergen.gross@lessing-ffm.net."""
    domain = domain or settings.school_email_domain
    return f"{_email_part(first_name)}.{_email_part(last_name)}{domain}"


def parse_gender(value: str | None) -> str | None:
    v = (value or "").strip().lower()
    if v in ("m", "männlich", "maennlich", "male"):
        return Gender.MALE.value
    if v in ("w", "weiblich", "female", "f"):
        return Gender.FEMALE.value
    return None


def parse_salutation(value: str | None) -> str | None:
    v = (value or "").strip().lower().replace(".", "")
    if v in ("hr", "herr"):
        return Salutation.HERR.value
    if v in ("fr", "frau"):
        return Salutation.FRAU.value
    return None


def parse_question_type(value: str | None) -> str | None:
    v = (value or "").strip().lower()
    if v in ("schüler", "schueler", "student", "schülerin"):
        return QuestionType.STUDENT.value
    if v in ("lehrer", "teacher", "lehrerin"):
        return QuestionType.TEACHER.value
    return None


def parse_boolean(value: str | None) -> bool:
    return (value or "").strip().lower() in ("ja", "yes", "true", "1", "x")


def parse_answer_mode(value: str | None) -> str:
    v = (value or "").strip().lower()
    if v in ("duo", "paar", "pair"):
        return AnswerMode.DUO.value
    if v in ("gender_specific", "geschlechtsspezifisch") or parse_boolean(v):
        return AnswerMode.GENDER_SPECIFIC.value
    return AnswerMode.SINGLE.value


# ── Row importers ────────────────────────────────────────────────────


def _cell(row: dict, key: str) -> str:
    return str(row.get(key) or "").strip()


def import_student_rows(db: Session, rows: list[dict]) -> ImportResult:
    domain = settings.school_email_domain
    result = ImportResult()
    existing = {e for (e,) in db.query(func.lower(Student.email)).all()}

    to_create = []
    for idx, row in enumerate(rows):
        line = idx + 2
        first_name = _cell(row, "first_name")
        last_name = _cell(row, "last_name")
        if not first_name or not last_name:
            result.errors.append(f"Zeile {line}: Vorname oder Nachname fehlt.")
            continue

        email = _cell(row, "email").lower() or generate_student_email(first_name, last_name, domain)
        if not email.endswith(domain):
            result.errors.append(f"Zeile {line}: E-Mail-Adresse muss auf {domain} enden.")
            continue
        if email in existing:
            result.skipped += 1
            continue

        existing.add(email)
        to_create.append(
            Student(
                first_name=first_name,
                last_name=last_name,
                email=email,
                gender=parse_gender(_cell(row, "gender")),
                active=True,
            )
        )

    db.add_all(to_create)
    db.commit()
    result.success = len(to_create)
    log.info(f"Student import: {result.success} created, {result.skipped} skipped, {len(result.errors)} errors")
    return result


def import_teacher_rows(db: Session, rows: list[dict]) -> ImportResult:
    result = ImportResult()
    existing = {
        f"{sal}:{last.lower()}"
        for sal, last in db.query(Teacher.salutation, Teacher.last_name).all()
    }

    to_create = []
    for idx, row in enumerate(rows):
        line = idx + 2
        salutation_raw = _cell(row, "salutation")
        last_name = _cell(row, "last_name")
        if not salutation_raw or not last_name:
            result.errors.append(f"Zeile {line}: Anrede oder Nachname fehlt.")
            continue

        salutation = parse_salutation(salutation_raw)
        if not salutation:
            result.errors.append(
                f'Zeile {line}: Ungültige Anrede "{salutation_raw}". Erlaubt: Hr., Fr.'
            )
            continue

        key = f"{salutation}:{last_name.lower()}"
        if key in existing:
            result.skipped += 1
            continue

        existing.add(key)
        to_create.append(
            Teacher(
                salutation=salutation,
                last_name=last_name,
                first_name=_cell(row, "first_name") or None,
                subject=_cell(row, "subject") or None,
                active=True,
            )
        )

    db.add_all(to_create)
    db.commit()
    result.success = len(to_create)
    log.info(f"Teacher import: {result.success} created, {result.skipped} skipped, {len(result.errors)} errors")
    return result


def import_ranking_question_rows(db: Session, rows: list[dict]) -> ImportResult:
    result = ImportResult()
    next_order = (db.query(func.max(RankingQuestion.order)).scalar() or 0) + 1

    to_create = []
    for idx, row in enumerate(rows):
        line = idx + 2
        text = _cell(row, "text")
        type_raw = _cell(row, "type")
        if not text or not type_raw:
            result.errors.append(f"Zeile {line}: Text oder Typ fehlt.")
            continue

        qtype = parse_question_type(type_raw)
        if not qtype:
            result.errors.append(
                f'Zeile {line}: Ungültiger Typ "{type_raw}". Erlaubt: Schüler, Lehrer.'
            )
            continue

        to_create.append(
            RankingQuestion(
                text=text,
                type=qtype,
                answer_mode=parse_answer_mode(_cell(row, "answer_mode")),
                order=next_order,
                active=True,
            )
        )
        next_order += 1

    db.add_all(to_create)
    db.commit()
    result.success = len(to_create)
    log.info(f"Ranking question import: {result.success} created, {len(result.errors)} errors")
    return result


IMPORTERS = {
    "students": import_student_rows,
    "teachers": import_teacher_rows,
    "ranking-questions": import_ranking_question_rows,
}


def import_message(kind: str, result: ImportResult) -> str:
    if kind == "students":
        return f"Import abgeschlossen: {result.success} Schüler hinzugefügt, {result.skipped} übersprungen."
    if kind == "teachers":
        return f"Import abgeschlossen: {result.success} Lehrer hinzugefügt, {result.skipped} übersprungen."
    return f"Import abgeschlossen: {result.success} Fragen hinzugefügt."
