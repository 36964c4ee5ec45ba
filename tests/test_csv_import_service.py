"""
test_csv_import_service.py — Tests for csv_import_service.

Covers delimiter detection, header matching, preview errors, value
normalization (gender, salutation, type, answer mode, generated email)
and the three row importers with duplicate handling.

Called by: pytest
Depends on: abibuch/services/csv_import_service.py, conftest.py
"""

import pytest

from abibuch.models import RankingQuestion, Student, Teacher
from abibuch.services.csv_import_service import (
    RANKING_QUESTION_COLUMNS,
    STUDENT_COLUMNS,
    TEACHER_COLUMNS,
    CsvImportError,
    build_preview,
    generate_student_email,
    import_message,
    import_ranking_question_rows,
    import_student_rows,
    import_teacher_rows,
    parse_answer_mode,
    parse_csv,
    parse_gender,
    parse_question_type,
    parse_salutation,
)


# ── Parsing ──────────────────────────────────────────────────────────


class TestParseCsv:
    def test_semicolon_delimiter(self):
        headers, rows = parse_csv("Vorname;Nachname\nAnna;Schmidt\n")
        assert headers == ["Vorname", "Nachname"]
        assert rows == [["Anna", "Schmidt"]]

    def test_comma_delimiter(self):
        headers, rows = parse_csv("vorname,nachname,email\nMax,Muster,m@x.de")
        assert headers == ["vorname", "nachname", "email"]
        assert rows[0][2] == "m@x.de"

    def test_blank_lines_and_whitespace(self):
        _, rows = parse_csv("Vorname;Nachname\n\n  Anna ; Schmidt \n\n")
        assert rows == [["Anna", "Schmidt"]]

    def test_quoted_cells(self):
        _, rows = parse_csv('text,typ\n"Wer sagt ""Moin""?",Lehrer')
        assert rows[0][0] == 'Wer sagt "Moin"?'

    def test_empty(self):
        assert parse_csv("") == ([], [])


class TestBuildPreview:
    def test_maps_known_headers(self):
        preview = build_preview("Vorname;Nachname;Klasse\nAnna;Schmidt;Q2", STUDENT_COLUMNS)
        assert preview["unmatched_headers"] == ["Klasse"]
        assert preview["rows"] == [
            {"first_name": "Anna", "last_name": "Schmidt", "email": "", "gender": ""}
        ]
        assert [c["key"] for c in preview["columns"]] == ["first_name", "last_name", "email", "gender"]

    def test_headers_case_insensitive(self):
        preview = build_preview("ANREDE,NACHNAME\nHr.,Müller", TEACHER_COLUMNS)
        assert preview["rows"][0]["salutation"] == "Hr."

    def test_header_only_is_empty(self):
        with pytest.raises(CsvImportError, match="leer"):
            build_preview("Vorname;Nachname\n", STUDENT_COLUMNS)

    def test_no_known_columns(self):
        with pytest.raises(CsvImportError, match="Keine bekannten Spalten"):
            build_preview("foo;bar\n1;2", STUDENT_COLUMNS)

    def test_missing_required_column(self):
        with pytest.raises(CsvImportError) as exc:
            build_preview("Vorname;E-Mail\nAnna;a@b.de", STUDENT_COLUMNS)
        assert "'Vorname' und 'Nachname'" in str(exc.value)


# ── Normalization ────────────────────────────────────────────────────


class TestNormalization:
    def test_generated_email_replaces_umlauts(self):
        assert generate_student_email("Jürgen", "Groß", "@schule.de") == "juergen.gross@schule.de"

    def test_generated_email_strips_accents_and_spaces(self):
        assert generate_student_email("José", "van Dyk", "@schule.de") == "jose.vandyk@schule.de"

    @pytest.mark.parametrize("raw,expected", [("m", "MALE"), ("Weiblich", "FEMALE"), ("divers", None), ("", None)])
    def test_gender(self, raw, expected):
        assert parse_gender(raw) == expected

    @pytest.mark.parametrize("raw,expected", [("Hr.", "HERR"), ("frau", "FRAU"), ("Dr.", None)])
    def test_salutation(self, raw, expected):
        assert parse_salutation(raw) == expected

    def test_question_type(self):
        assert parse_question_type("Schüler") == "STUDENT"
        assert parse_question_type("lehrerin") == "TEACHER"
        assert parse_question_type("Eltern") is None

    def test_answer_mode(self):
        assert parse_answer_mode("ja") == "GENDER_SPECIFIC"
        assert parse_answer_mode("Duo") == "DUO"
        assert parse_answer_mode("") == "SINGLE"


# ── Importers ────────────────────────────────────────────────────────


class TestStudentImport:
    def test_creates_and_generates_email(self, db_session):
        result = import_student_rows(db_session, [
            {"first_name": "Jürgen", "last_name": "Groß", "email": "", "gender": "m"},
        ])
        assert result.success == 1
        student = db_session.query(Student).one()
        assert student.email == "juergen.gross@lessing-ffm.net"
        assert student.gender == "MALE"

    def test_foreign_domain_is_row_error(self, db_session):
        result = import_student_rows(db_session, [
            {"first_name": "Anna", "last_name": "Schmidt", "email": "anna@gmail.com"},
        ])
        assert result.success == 0
        assert result.errors == ["Zeile 2: E-Mail-Adresse muss auf @lessing-ffm.net enden."]

    def test_missing_name(self, db_session):
        result = import_student_rows(db_session, [{"first_name": "", "last_name": "Schmidt"}])
        assert result.errors == ["Zeile 2: Vorname oder Nachname fehlt."]

    def test_duplicates_skipped(self, db_session, make_student):
        make_student("Anna", "Schmidt")
        rows = [
            {"first_name": "Anna", "last_name": "Schmidt"},
            {"first_name": "Ben", "last_name": "Kurz"},
            {"first_name": "Ben", "last_name": "Kurz"},
        ]
        result = import_student_rows(db_session, rows)
        assert result.success == 1
        assert result.skipped == 2
        assert db_session.query(Student).count() == 2


class TestTeacherImport:
    def test_creates_and_skips_duplicates(self, db_session, make_teacher):
        make_teacher("Müller", "HERR")
        rows = [
            {"salutation": "Hr.", "last_name": "müller"},
            {"salutation": "Fr.", "last_name": "Müller", "subject": "Mathe"},
            {"salutation": "Prof.", "last_name": "Klug"},
        ]
        result = import_teacher_rows(db_session, rows)
        assert result.success == 1
        assert result.skipped == 1
        assert result.errors == ['Zeile 4: Ungültige Anrede "Prof.". Erlaubt: Hr., Fr.']
        frau = db_session.query(Teacher).filter(Teacher.salutation == "FRAU").one()
        assert frau.subject == "Mathe"
        assert frau.first_name is None


class TestRankingQuestionImport:
    def test_appends_after_highest_order(self, db_session, make_question):
        make_question(order=4)
        rows = [
            {"text": "Wer kommt immer zu spät?", "type": "Schüler", "answer_mode": "ja"},
            {"text": "Wer erzählt die besten Witze?", "type": "Lehrer"},
            {"text": "Kaputt", "type": "Hausmeister"},
        ]
        result = import_ranking_question_rows(db_session, rows)
        assert result.success == 2
        assert len(result.errors) == 1
        created = (
            db_session.query(RankingQuestion)
            .filter(RankingQuestion.order > 4)
            .order_by(RankingQuestion.order)
            .all()
        )
        assert [q.order for q in created] == [5, 6]
        assert created[0].answer_mode == "GENDER_SPECIFIC"
        assert created[1].type == "TEACHER"

    def test_preview_accepts_question_headers(self):
        preview = build_preview("Frage;Kategorie\nWer?;Schüler", RANKING_QUESTION_COLUMNS)
        assert preview["rows"][0]["type"] == "Schüler"


def test_import_message():
    from abibuch.services.csv_import_service import ImportResult

    msg = import_message("teachers", ImportResult(success=3, skipped=1))
    assert msg == "Import abgeschlossen: 3 Lehrer hinzugefügt, 1 übersprungen."
