"""Enumerations shared by models, schemas and services.

Stored as plain strings in the database; the str mixin keeps comparisons
with loaded column values working (``user.role == Role.ADMIN``).
"""

from enum import Enum


class Role(str, Enum):
    STUDENT = "STUDENT"
    ADMIN = "ADMIN"


class Gender(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"


class Salutation(str, Enum):
    HERR = "HERR"
    FRAU = "FRAU"


class Status(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"


class QuestionType(str, Enum):
    STUDENT = "STUDENT"
    TEACHER = "TEACHER"


class AnswerMode(str, Enum):
    SINGLE = "SINGLE"
    GENDER_SPECIFIC = "GENDER_SPECIFIC"
    DUO = "DUO"


class GenderTarget(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    ALL = "ALL"


class FieldType(str, Enum):
    TEXT = "TEXT"
    TEXTAREA = "TEXTAREA"
    SINGLE_IMAGE = "SINGLE_IMAGE"
    MULTI_IMAGE = "MULTI_IMAGE"


class TargetType(str, Enum):
    STUDENT = "STUDENT"
    TEACHER = "TEACHER"


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    IMPORT = "IMPORT"
    REORDER = "REORDER"
    SETTINGS = "SETTINGS"


class StudentAction(str, Enum):
    SUBMIT = "SUBMIT"
    RETRACT = "RETRACT"
    CREATE = "CREATE"
    COMPLETE = "COMPLETE"


IMAGE_FIELD_TYPES = (FieldType.SINGLE_IMAGE, FieldType.MULTI_IMAGE)
