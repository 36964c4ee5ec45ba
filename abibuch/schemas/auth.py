"""
schemas/auth.py — Login, registration and account settings bodies

Business Rules:
- Registration only with the school email domain
- Passwords need at least 8 characters; confirmation must match

Called by: routers/auth.py
Depends on: pydantic, schemas/common
"""

from pydantic import BaseModel, field_validator, model_validator

from ..config import settings
from .common import PartialUpdate, password, required_text, school_email, valid_email


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        required_text(v, "Bitte gib deine E-Mail-Adresse ein.")
        return valid_email(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        if not v:
            raise ValueError("Bitte gib dein Passwort ein.")
        return v


class RegisterRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        required_text(v, "Bitte gib deine E-Mail-Adresse ein.")
        return school_email(
            v, f"Bitte verwende deine Schul-E-Mail-Adresse ({settings.school_email_domain})."
        )

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        return password(v)


class ProfileUpdate(PartialUpdate):
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None

    @field_validator("first_name")
    @classmethod
    def check_first(cls, v):
        return required_text(v, "Bitte gib deinen Vornamen ein.")

    @field_validator("last_name")
    @classmethod
    def check_last(cls, v):
        return required_text(v, "Bitte gib deinen Nachnamen ein.")

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return valid_email(v or "")


class PasswordChange(BaseModel):
    current_password: str
    new_password: str
    confirm_password: str

    @field_validator("current_password")
    @classmethod
    def check_current(cls, v: str) -> str:
        if not v:
            raise ValueError("Bitte gib dein aktuelles Passwort ein.")
        return v

    @field_validator("new_password")
    @classmethod
    def check_new(cls, v: str) -> str:
        return password(v, "Das neue Passwort muss mindestens 8 Zeichen lang sein.")

    @model_validator(mode="after")
    def passwords_match(self):
        if self.new_password != self.confirm_password:
            raise ValueError("Die Passwörter stimmen nicht überein.")
        return self
