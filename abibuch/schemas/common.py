"""Validation helpers shared by the request schemas.

Validators raise ValueError with German messages; main.py strips pydantic's
"Value error, " prefix and returns the first message as the error text.
"""

import re

from pydantic import BaseModel, field_validator, model_validator

from ..config import settings

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 8
MSG_AT_LEAST_ONE = "Bitte gib mindestens ein Feld zum Aktualisieren an."


def required_text(value: str | None, message: str) -> str:
    if value is None or not str(value).strip():
        raise ValueError(message)
    return str(value).strip()


def valid_email(value: str, message: str = "Bitte gib eine gültige E-Mail-Adresse ein.") -> str:
    value = (value or "").strip().lower()
    if not EMAIL_RE.match(value):
        raise ValueError(message)
    return value


def school_email(value: str, message: str) -> str:
    value = valid_email(value)
    if not value.endswith(settings.school_email_domain):
        raise ValueError(message)
    return value


def enum_value(value, enum, message: str) -> str:
    """Unhashable or non-string input fails like any unknown value."""
    if not isinstance(value, str) or value not in {e.value for e in enum}:
        raise ValueError(message)
    return value


def password(value: str, message: str = "Das Passwort muss mindestens 8 Zeichen lang sein.") -> str:
    if not value or len(value) < MIN_PASSWORD_LENGTH:
        raise ValueError(message)
    return value


class PartialUpdate(BaseModel):
    """Base for PATCH bodies: at least one field must be sent."""

    @model_validator(mode="after")
    def at_least_one(self):
        if not self.model_fields_set:
            raise ValueError(MSG_AT_LEAST_ONE)
        return self

    def sent(self) -> dict:
        return self.model_dump(mode="json", exclude_unset=True)


class OrderItem(BaseModel):
    id: int
    order: int

    @field_validator("order")
    @classmethod
    def non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Die Reihenfolge muss positiv sein.")
        return v
