"""Request bodies of the student-facing endpoints."""

from pydantic import BaseModel, field_validator

from ..constants import GenderTarget, TargetType
from .common import enum_value, required_text


class VoteRequest(BaseModel):
    question_id: int
    gender_target: GenderTarget = GenderTarget.ALL
    student_id: int | None = None
    teacher_id: int | None = None
    student_id2: int | None = None
    teacher_id2: int | None = None

    @field_validator("gender_target", mode="before")
    @classmethod
    def check_target(cls, v):
        return enum_value(v, GenderTarget, "Ungültiges Ziel-Geschlecht.")


class QuotesCreate(BaseModel):
    quotes: list[str]

    @field_validator("quotes")
    @classmethod
    def check_quotes(cls, v):
        cleaned = [q.strip() for q in v if q and q.strip()]
        if not cleaned:
            raise ValueError("Bitte gib mindestens ein Zitat ein.")
        return cleaned


class CommentCreate(BaseModel):
    text: str
    target_type: TargetType
    target_id: int

    @field_validator("text")
    @classmethod
    def check_text(cls, v):
        return required_text(v, "Bitte gib einen Kommentar ein.")

    @field_validator("target_type", mode="before")
    @classmethod
    def check_type(cls, v):
        return enum_value(v, TargetType, "Ungültiger Zieltyp.")


class CommentUpdate(BaseModel):
    text: str

    @field_validator("text")
    @classmethod
    def check_text(cls, v):
        return required_text(v, "Bitte gib einen Kommentar ein.")


class SurveyAnswerRequest(BaseModel):
    option_id: int


class ContactInfoUpdate(BaseModel):
    contact_email: str | None = None
    contact_phone: str | None = None
    contact_insta: str | None = None
