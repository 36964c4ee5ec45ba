"""
schemas/admin.py — Request bodies of the admin API

Covers user, student and teacher management, ranking questions,
Steckbrief fields, photo categories, survey questions, aliases, the
deadline and CSV row imports.

Business Rules:
- Student emails must use the school domain
- Field keys: lowercase start, letters and digits, max 50 chars
- max_files 1-10, rows 1-20, max_length > 0
- Aliases are trimmed, 1-20 chars

Called by: routers/admin_*.py
Depends on: pydantic, constants, schemas/common
"""

import re
from typing import Any

from pydantic import BaseModel, field_validator, model_validator

from ..config import settings
from ..constants import AnswerMode, FieldType, Gender, QuestionType, Role, Salutation
from .common import OrderItem, PartialUpdate, enum_value, password, required_text, school_email, valid_email

FIELD_KEY_RE = re.compile(r"^[a-z][a-zA-Z0-9]*$")
MSG_FIRST_NAME = "Bitte gib einen Vornamen ein."
MSG_LAST_NAME = "Bitte gib einen Nachnamen ein."


def _domain_message() -> str:
    return f"Die E-Mail-Adresse muss auf {settings.school_email_domain} enden."


# ── Users ────────────────────────────────────────────────────────────


class UserCreate(BaseModel):
    email: str
    password: str
    first_name: str
    last_name: str
    role: Role = Role.STUDENT

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        required_text(v, "Bitte gib eine E-Mail-Adresse ein.")
        return valid_email(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        return password(v)

    @field_validator("first_name")
    @classmethod
    def check_first(cls, v):
        return required_text(v, MSG_FIRST_NAME)

    @field_validator("last_name")
    @classmethod
    def check_last(cls, v):
        return required_text(v, MSG_LAST_NAME)

    @field_validator("role", mode="before")
    @classmethod
    def check_role(cls, v):
        return enum_value(v, Role, "Bitte wähle eine gültige Rolle.")


class UserUpdate(PartialUpdate):
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    role: Role | None = None
    active: bool | None = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return valid_email(v or "")

    @field_validator("first_name")
    @classmethod
    def check_first(cls, v):
        return required_text(v, MSG_FIRST_NAME)

    @field_validator("last_name")
    @classmethod
    def check_last(cls, v):
        return required_text(v, MSG_LAST_NAME)

    @field_validator("role", mode="before")
    @classmethod
    def check_role(cls, v):
        return enum_value(v, Role, "Bitte wähle eine gültige Rolle.")


class PasswordReset(BaseModel):
    password: str

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        return password(v)


# ── Students / teachers ──────────────────────────────────────────────


class StudentCreate(BaseModel):
    first_name: str
    last_name: str
    email: str
    gender: Gender | None = None

    @field_validator("first_name")
    @classmethod
    def check_first(cls, v):
        return required_text(v, MSG_FIRST_NAME)

    @field_validator("last_name")
    @classmethod
    def check_last(cls, v):
        return required_text(v, MSG_LAST_NAME)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        required_text(v, "Bitte gib eine E-Mail-Adresse ein.")
        return school_email(v, _domain_message())


class StudentUpdate(PartialUpdate):
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    gender: Gender | None = None
    active: bool | None = None

    @field_validator("first_name")
    @classmethod
    def check_first(cls, v):
        return required_text(v, MSG_FIRST_NAME)

    @field_validator("last_name")
    @classmethod
    def check_last(cls, v):
        return required_text(v, MSG_LAST_NAME)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return school_email(v or "", _domain_message())


class TeacherCreate(BaseModel):
    salutation: Salutation
    last_name: str
    first_name: str | None = None
    subject: str | None = None

    @field_validator("salutation", mode="before")
    @classmethod
    def check_salutation(cls, v):
        return enum_value(v, Salutation, "Bitte wähle eine Anrede aus.")

    @field_validator("last_name")
    @classmethod
    def check_last(cls, v):
        return required_text(v, MSG_LAST_NAME)


class TeacherUpdate(PartialUpdate):
    salutation: Salutation | None = None
    last_name: str | None = None
    first_name: str | None = None
    subject: str | None = None
    active: bool | None = None

    @field_validator("salutation", mode="before")
    @classmethod
    def check_salutation(cls, v):
        return enum_value(v, Salutation, "Bitte wähle eine Anrede aus.")

    @field_validator("last_name")
    @classmethod
    def check_last(cls, v):
        return required_text(v, MSG_LAST_NAME)


class ImportRows(BaseModel):
    """Edited preview rows sent back for import."""

    rows: list[dict[str, Any]]

    @field_validator("rows")
    @classmethod
    def not_empty(cls, v):
        if not v:
            raise ValueError("Keine Daten zum Importieren.")
        return [{k: "" if val is None else str(val) for k, val in row.items()} for row in v]


# ── Ranking questions ────────────────────────────────────────────────


class RankingQuestionCreate(BaseModel):
    text: str
    type: QuestionType
    answer_mode: AnswerMode = AnswerMode.SINGLE

    @field_validator("text")
    @classmethod
    def check_text(cls, v):
        return required_text(v, "Bitte gib einen Fragetext ein.")

    @field_validator("type", mode="before")
    @classmethod
    def check_type(cls, v):
        return enum_value(v, QuestionType, "Bitte wähle einen Typ aus.")

    @field_validator("answer_mode", mode="before")
    @classmethod
    def check_mode(cls, v):
        return enum_value(v, AnswerMode, "Ungültiger Antwortmodus.")


class RankingQuestionUpdate(PartialUpdate):
    text: str | None = None
    type: QuestionType | None = None
    answer_mode: AnswerMode | None = None
    active: bool | None = None

    @field_validator("text")
    @classmethod
    def check_text(cls, v):
        return required_text(v, "Bitte gib einen Fragetext ein.")


class QuestionReorder(BaseModel):
    question_orders: list[OrderItem]


# ── Steckbrief fields ────────────────────────────────────────────────


def _check_limits(values: dict) -> None:
    max_length = values.get("max_length")
    if max_length is not None and max_length <= 0:
        raise ValueError("Die maximale Länge muss größer als 0 sein.")
    max_files = values.get("max_files")
    if max_files is not None and not 1 <= max_files <= 10:
        raise ValueError("Die maximale Anzahl an Bildern muss zwischen 1 und 10 liegen.")
    rows = values.get("rows")
    if rows is not None and not 1 <= rows <= 20:
        raise ValueError("Die Zeilenanzahl muss zwischen 1 und 20 liegen.")


class FieldCreate(BaseModel):
    key: str
    type: FieldType
    label: str
    placeholder: str | None = None
    max_length: int | None = None
    max_files: int | None = None
    rows: int | None = None
    required: bool = False

    @field_validator("key")
    @classmethod
    def check_key(cls, v):
        v = required_text(v, "Key ist erforderlich.")
        if len(v) > 50:
            raise ValueError("Key darf maximal 50 Zeichen lang sein.")
        if not FIELD_KEY_RE.match(v):
            raise ValueError(
                "Key muss mit einem Kleinbuchstaben beginnen und darf nur Buchstaben und Zahlen enthalten."
            )
        return v

    @field_validator("type", mode="before")
    @classmethod
    def check_type(cls, v):
        return enum_value(v, FieldType, "Ungültiger Feldtyp.")

    @field_validator("label")
    @classmethod
    def check_label(cls, v):
        v = required_text(v, "Label ist erforderlich.")
        if len(v) > 100:
            raise ValueError("Label darf maximal 100 Zeichen lang sein.")
        return v

    @field_validator("placeholder")
    @classmethod
    def check_placeholder(cls, v):
        if v and len(v) > 200:
            raise ValueError("Platzhalter darf maximal 200 Zeichen lang sein.")
        return v

    @model_validator(mode="after")
    def check_limits(self):
        _check_limits(self.model_dump())
        return self


class FieldUpdate(PartialUpdate):
    """key and type are accepted here only to reject them with a clear message."""

    key: str | None = None
    type: str | None = None
    label: str | None = None
    placeholder: str | None = None
    max_length: int | None = None
    max_files: int | None = None
    rows: int | None = None
    required: bool | None = None
    active: bool | None = None

    @field_validator("label")
    @classmethod
    def check_label(cls, v):
        v = required_text(v, "Label ist erforderlich.")
        if len(v) > 100:
            raise ValueError("Label darf maximal 100 Zeichen lang sein.")
        return v

    @field_validator("placeholder")
    @classmethod
    def check_placeholder(cls, v):
        if v and len(v) > 200:
            raise ValueError("Platzhalter darf maximal 200 Zeichen lang sein.")
        return v

    @model_validator(mode="after")
    def check_limits(self):
        _check_limits(self.model_dump())
        return self


class FieldReorder(BaseModel):
    field_orders: list[OrderItem]


class FeedbackUpdate(BaseModel):
    feedback: str | None = None


# ── Photos / survey ──────────────────────────────────────────────────


class PhotoCategoryCreate(BaseModel):
    name: str
    description: str | None = None
    max_per_user: int = 10

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        v = required_text(v, "Bitte gib einen Namen ein.")
        if len(v) > 100:
            raise ValueError("Der Name darf maximal 100 Zeichen lang sein.")
        return v

    @field_validator("max_per_user")
    @classmethod
    def check_max(cls, v):
        if not 1 <= v <= 100:
            raise ValueError("Die maximale Anzahl muss zwischen 1 und 100 liegen.")
        return v


class PhotoCategoryUpdate(PartialUpdate):
    name: str | None = None
    description: str | None = None
    max_per_user: int | None = None
    active: bool | None = None

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        return required_text(v, "Bitte gib einen Namen ein.")

    @field_validator("max_per_user")
    @classmethod
    def check_max(cls, v):
        if v is None or not 1 <= v <= 100:
            raise ValueError("Die maximale Anzahl muss zwischen 1 und 100 liegen.")
        return v


class CategoryReorder(BaseModel):
    category_orders: list[OrderItem]


class CoverUpdate(BaseModel):
    image_url: str | None = None


def _check_options(v: list[str]) -> list[str]:
    cleaned = [o.strip() for o in v if o and o.strip()]
    if len(cleaned) < 2:
        raise ValueError("Bitte gib mindestens zwei Antwortmöglichkeiten an.")
    return cleaned


class SurveyQuestionCreate(BaseModel):
    text: str
    options: list[str]

    @field_validator("text")
    @classmethod
    def check_text(cls, v):
        return required_text(v, "Bitte gib einen Fragetext ein.")

    @field_validator("options")
    @classmethod
    def check_options(cls, v):
        return _check_options(v)


class SurveyQuestionUpdate(PartialUpdate):
    text: str | None = None
    options: list[str] | None = None
    active: bool | None = None

    @field_validator("text")
    @classmethod
    def check_text(cls, v):
        return required_text(v, "Bitte gib einen Fragetext ein.")

    @field_validator("options")
    @classmethod
    def check_options(cls, v):
        return _check_options(v or [])


class SurveyReorder(BaseModel):
    question_orders: list[OrderItem]


# ── Moderation ───────────────────────────────────────────────────────


class TextUpdate(BaseModel):
    text: str

    @field_validator("text")
    @classmethod
    def check_text(cls, v):
        return required_text(v, "Der Text darf nicht leer sein.")


# ── Audit / settings ─────────────────────────────────────────────────


class AliasCreate(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        v = required_text(v, "Name ist erforderlich")
        if len(v) > 20:
            raise ValueError("Name darf maximal 20 Zeichen haben")
        return v


class AliasSession(BaseModel):
    alias: str | None = None


class DeadlineUpdate(BaseModel):
    deadline: str | None = None
