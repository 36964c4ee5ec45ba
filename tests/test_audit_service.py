"""
test_audit_service.py — Tests for audit_service.

Covers alias cookie freshness, display action/text rendering, German
relative times, grouping of consecutive entries and list filters.

Called by: pytest
Depends on: abibuch/services/audit_service.py, conftest.py
"""

from datetime import datetime, timedelta, timezone

from abibuch.models import AdminAlias, AuditLog
from abibuch.services.audit_service import (
    ADMIN_ALIAS_COOKIE,
    ADMIN_ALIAS_TIMESTAMP_COOKIE,
    alias_cookie_values,
    alias_from_cookies,
    changed_values,
    create_alias,
    delete_alias,
    format_relative_time,
    get_display_action,
    get_display_text,
    group_consecutive_logs,
    list_aliases,
    list_audit_logs,
    log_admin_action,
)

NOW_MS = 1_700_000_000_000


def _cookies(alias="KS", age_ms=0):
    return {ADMIN_ALIAS_COOKIE: alias, ADMIN_ALIAS_TIMESTAMP_COOKIE: str(NOW_MS - age_ms)}


def _entry_dict(alias="KS", action="REORDER", entity="RankingQuestion", success=True, entity_name=None):
    return {
        "alias": alias,
        "action": action,
        "entity": entity,
        "success": success,
        "entity_name": entity_name,
    }


# ── Alias cookie ─────────────────────────────────────────────────────


class TestAliasFromCookies:
    def test_fresh_alias(self):
        assert alias_from_cookies(_cookies(age_ms=60_000), now_ms=NOW_MS) == "KS"

    def test_expired_alias(self):
        two_hours = 2 * 60 * 60 * 1000
        assert alias_from_cookies(_cookies(age_ms=two_hours), now_ms=NOW_MS) is None

    def test_unknown_marker(self):
        assert alias_from_cookies(_cookies(alias="unknown"), now_ms=NOW_MS) is None

    def test_missing_timestamp(self):
        assert alias_from_cookies({ADMIN_ALIAS_COOKIE: "KS"}, now_ms=NOW_MS) is None

    def test_garbage_timestamp(self):
        cookies = {ADMIN_ALIAS_COOKIE: "KS", ADMIN_ALIAS_TIMESTAMP_COOKIE: "gestern"}
        assert alias_from_cookies(cookies, now_ms=NOW_MS) is None

    def test_cookie_values_roundtrip(self):
        values = alias_cookie_values(" KS ", now_ms=NOW_MS)
        assert values == {ADMIN_ALIAS_COOKIE: "KS", ADMIN_ALIAS_TIMESTAMP_COOKIE: str(NOW_MS)}
        assert alias_from_cookies(values, now_ms=NOW_MS + 1000) == "KS"

    def test_cookie_values_without_alias(self):
        values = alias_cookie_values(None, now_ms=NOW_MS)
        assert values[ADMIN_ALIAS_COOKIE] == "unknown"


# ── Display ──────────────────────────────────────────────────────────


class TestDisplay:
    def test_deactivate(self):
        assert get_display_action("UPDATE", {"active": True}, {"active": False}) == "DEACTIVATE"

    def test_activate(self):
        assert get_display_action("UPDATE", {"active": False}, {"active": True}) == "ACTIVATE"

    def test_plain_update(self):
        assert get_display_action("UPDATE", {"text": "a"}, {"text": "b"}) == "UPDATE"

    def test_other_actions_untouched(self):
        assert get_display_action("DELETE", {"active": True}, {"active": False}) == "DELETE"

    def test_text_with_name(self):
        entry = AuditLog(action="CREATE", entity="Student", entity_name="Anna Schmidt", success=True)
        assert get_display_text(entry) == 'Schüler: "Anna Schmidt" erstellt'

    def test_text_without_name(self):
        entry = AuditLog(action="REORDER", entity="RankingQuestion", success=True)
        assert get_display_text(entry) == "Ranking-Frage neu sortiert"

    def test_text_failure(self):
        entry = AuditLog(action="IMPORT", entity="Student", success=False, error="Datei leer")
        assert get_display_text(entry) == "Fehler: Schüler importiert - Datei leer"

    def test_text_deactivated(self):
        entry = AuditLog(
            action="UPDATE",
            entity="Teacher",
            entity_name="Hr. Müller",
            old_values={"active": True},
            new_values={"active": False},
            success=True,
        )
        assert get_display_text(entry) == 'Lehrer: "Hr. Müller" deaktiviert'

    def test_changed_values(self):
        old, new = changed_values({"a": 1, "b": 2}, {"a": 1, "b": 3})
        assert old == {"b": 2}
        assert new == {"b": 3}


class TestRelativeTime:
    now = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)

    def _fmt(self, **delta):
        return format_relative_time(self.now - timedelta(**delta), self.now)

    def test_just_now(self):
        assert self._fmt(seconds=30) == "gerade eben"

    def test_minutes(self):
        assert self._fmt(minutes=5) == "vor 5 Min."

    def test_hours(self):
        assert self._fmt(hours=3) == "vor 3 Std."

    def test_yesterday(self):
        assert self._fmt(hours=30) == "gestern"

    def test_days(self):
        assert self._fmt(days=4) == "vor 4 Tagen"

    def test_absolute_date(self):
        assert self._fmt(days=10) == "28.02.2025"

    def test_naive_datetime_treated_as_utc(self):
        naive = datetime(2025, 3, 10, 11, 50)
        assert format_relative_time(naive, self.now) == "vor 10 Min."


# ── Grouping ─────────────────────────────────────────────────────────


class TestGrouping:
    def test_empty(self):
        assert group_consecutive_logs([]) == []

    def test_unnamed_run_groups(self):
        logs = [_entry_dict(), _entry_dict(), _entry_dict()]
        groups = group_consecutive_logs(logs)
        assert len(groups) == 1
        assert groups[0]["count"] == 3
        assert groups[0]["first"] is logs[0]
        assert groups[0]["last"] is logs[2]

    def test_named_entries_never_group(self):
        logs = [_entry_dict(entity_name="A"), _entry_dict(entity_name="B")]
        assert [g["count"] for g in group_consecutive_logs(logs)] == [1, 1]

    def test_alias_change_breaks_run(self):
        logs = [_entry_dict(), _entry_dict(alias="AB"), _entry_dict(alias="AB")]
        assert [g["count"] for g in group_consecutive_logs(logs)] == [1, 2]

    def test_success_change_breaks_run(self):
        logs = [_entry_dict(), _entry_dict(success=False)]
        assert len(group_consecutive_logs(logs)) == 2


# ── Persistence & listing ────────────────────────────────────────────


class TestLogAndList:
    def test_log_admin_action_persists(self, db_session):
        entry = log_admin_action(
            db_session,
            alias="KS",
            action="CREATE",
            entity="Student",
            entity_id=7,
            entity_name="Anna Schmidt",
            new_values={"first_name": "Anna"},
        )
        assert entry is not None
        stored = db_session.query(AuditLog).one()
        assert stored.entity_id == "7"
        assert stored.new_values == {"first_name": "Anna"}
        assert stored.success is True

    def test_empty_alias_stored_as_null(self, db_session):
        log_admin_action(db_session, alias="", action="REORDER", entity="RankingQuestion")
        assert db_session.query(AuditLog).one().alias is None

    def test_list_newest_first_with_groups(self, db_session):
        base = datetime.now(timezone.utc)
        for i in range(3):
            db_session.add(AuditLog(
                alias="KS", action="REORDER", entity="SteckbriefField", success=True,
                created_at=base - timedelta(minutes=i),
            ))
        db_session.add(AuditLog(
            alias="KS", action="CREATE", entity="Student", entity_name="Anna", success=True,
            created_at=base + timedelta(minutes=1),
        ))
        db_session.commit()

        result = list_audit_logs(db_session)
        assert result["total"] == 4
        assert result["logs"][0]["entity_name"] == "Anna"
        assert [g["count"] for g in result["groups"]] == [1, 3]

    def test_photo_filter_covers_both_entities(self, db_session):
        for entity in ("Photo", "PhotoCategory", "Student"):
            db_session.add(AuditLog(action="DELETE", entity=entity, success=True))
        db_session.commit()
        result = list_audit_logs(db_session, entity="Fotos")
        assert result["total"] == 2
        assert {entry["entity"] for entry in result["logs"]} == {"Photo", "PhotoCategory"}

    def test_errors_only_and_alias_filter(self, db_session):
        db_session.add(AuditLog(alias="KS", action="IMPORT", entity="Student", success=False, error="x"))
        db_session.add(AuditLog(alias="AB", action="IMPORT", entity="Student", success=False, error="y"))
        db_session.add(AuditLog(alias="KS", action="IMPORT", entity="Student", success=True))
        db_session.commit()
        result = list_audit_logs(db_session, errors_only=True, alias="KS")
        assert result["total"] == 1
        assert result["logs"][0]["error"] == "x"

    def test_limit_is_capped(self, db_session):
        assert list_audit_logs(db_session, limit=500)["limit"] == 100


class TestAliases:
    def test_create_list_delete(self, db_session):
        created = create_alias(db_session, " KS ")
        assert created["alias"]["name"] == "KS"
        assert list_aliases(db_session) == [created["alias"]]
        assert delete_alias(db_session, created["alias"]["id"]) == {"success": True}
        assert db_session.query(AdminAlias).count() == 0

    def test_duplicate_alias(self, db_session):
        create_alias(db_session, "KS")
        result = create_alias(db_session, "KS")
        assert result["status"] == 409

    def test_delete_missing(self, db_session):
        assert delete_alias(db_session, 999)["status"] == 404
