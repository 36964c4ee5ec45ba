"""
ranking_results_service.py — Aggregation of submitted ranking votes

Business Rules:
- Only voters whose RankingSubmission is SUBMITTED are counted
- total_voters = number of submitted voters (the percentage base)
- Votes aggregate by (person or ordered pair, gender_target)
- Results sort by count descending, ties by name
- pct = count / total_voters in percent, one decimal rounded half up, 0 when nobody submitted
- GENDER_SPECIFIC questions report {male, female}, all others a flat list
- Export keeps the top 5 per category (Männlich / Weiblich / Alle)

Called by: routers/admin_rankings.py, routers/exports.py
Depends on: models (RankingQuestion, RankingVote, RankingSubmission, User, Student)
"""

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session, joinedload

from ..constants import AnswerMode, GenderTarget, Role, Status
from ..models import RankingQuestion, RankingSubmission, RankingVote, Student, Teacher, User
from ..utils.percentages import format_percentage, percentage

log = logging.getLogger(__name__)

EXPORT_HEADERS = ["Frage", "Kategorie", "Platz", "Name", "Stimmen", "Prozent"]
EXPORT_TOP_N = 5
CATEGORY_LABELS = {
    GenderTarget.MALE.value: "Männlich",
    GenderTarget.FEMALE.value: "Weiblich",
    GenderTarget.ALL.value: "Alle",
}


@dataclass
class AggregatedResult:
    key: tuple
    person_type: str
    name: str
    gender_target: str
    count: int = 0
    person_id: int | None = None
    person_id2: int | None = None

    def as_dict(self, total_voters: int) -> dict:
        return {
            "person_type": self.person_type,
            "person_id": self.person_id,
            "person_id2": self.person_id2,
            "name": self.name,
            "gender_target": self.gender_target,
            "count": self.count,
            "percentage": percentage(self.count, total_voters),
        }


def student_name(s: Student) -> str:
    return f"{s.first_name} {s.last_name}"


def teacher_name(t: Teacher) -> str:
    return t.display_name()


def submitted_voter_ids(db: Session) -> list[int]:
    rows = db.query(RankingSubmission.user_id).filter(RankingSubmission.status == Status.SUBMITTED.value).all()
    return [r[0] for r in rows]


def _vote_person(vote: RankingVote) -> tuple[str, tuple, str, int | None, int | None]:
    """Return (person_type, key, name, id, id2) for a vote."""
    if vote.student_id:
        if vote.student_id2 and vote.student2 is not None:
            name = f"{student_name(vote.student)} & {student_name(vote.student2)}"
        else:
            name = student_name(vote.student)
        return "student", ("s", vote.student_id, vote.student_id2), name, vote.student_id, vote.student_id2
    if vote.teacher_id2 and vote.teacher2 is not None:
        name = f"{teacher_name(vote.teacher)} & {teacher_name(vote.teacher2)}"
    else:
        name = teacher_name(vote.teacher)
    return "teacher", ("t", vote.teacher_id, vote.teacher_id2), name, vote.teacher_id, vote.teacher_id2


def aggregate_votes(votes: list[RankingVote]) -> list[AggregatedResult]:
    """Count votes per person (or pair) and gender target, highest first."""
    buckets: dict[tuple, AggregatedResult] = {}
    for vote in votes:
        if not vote.student_id and not vote.teacher_id:
            continue
        person_type, person_key, name, pid, pid2 = _vote_person(vote)
        key = (person_key, vote.gender_target)
        if key not in buckets:
            buckets[key] = AggregatedResult(
                key=key,
                person_type=person_type,
                name=name,
                gender_target=vote.gender_target,
                person_id=pid,
                person_id2=pid2,
            )
        buckets[key].count += 1
    return sorted(buckets.values(), key=lambda r: (-r.count, r.name.lower()))


def _load_votes(db: Session, voter_ids: list[int], question_ids: list[int]) -> list[RankingVote]:
    if not voter_ids or not question_ids:
        return []
    return (
        db.query(RankingVote)
        .options(
            joinedload(RankingVote.student),
            joinedload(RankingVote.student2),
            joinedload(RankingVote.teacher),
            joinedload(RankingVote.teacher2),
        )
        .filter(RankingVote.voter_id.in_(voter_ids), RankingVote.question_id.in_(question_ids))
        .all()
    )


def split_results(question: RankingQuestion, results: list[AggregatedResult]) -> dict[str, list[AggregatedResult]]:
    """Bucket results by gender target according to the question's mode."""
    if question.answer_mode == AnswerMode.GENDER_SPECIFIC:
        return {
            GenderTarget.MALE.value: [r for r in results if r.gender_target == GenderTarget.MALE],
            GenderTarget.FEMALE.value: [r for r in results if r.gender_target == GenderTarget.FEMALE],
        }
    return {GenderTarget.ALL.value: [r for r in results if r.gender_target == GenderTarget.ALL]}


# ── Stats ────────────────────────────────────────────────────────────


def question_stats(db: Session, question_id: int) -> dict:
    question = db.get(RankingQuestion, question_id)
    if not question:
        return {"error": "Frage nicht gefunden.", "status": 404}

    voter_ids = submitted_voter_ids(db)
    total = len(voter_ids)
    results = aggregate_votes(_load_votes(db, voter_ids, [question.id]))
    split = split_results(question, results)

    if question.answer_mode == AnswerMode.GENDER_SPECIFIC:
        payload = {
            "male": [r.as_dict(total) for r in split[GenderTarget.MALE.value]],
            "female": [r.as_dict(total) for r in split[GenderTarget.FEMALE.value]],
        }
    else:
        payload = [r.as_dict(total) for r in split[GenderTarget.ALL.value]]

    return {
        "question": {
            "id": question.id,
            "text": question.text,
            "type": question.type,
            "answer_mode": question.answer_mode,
            "active": question.active,
        },
        "results": payload,
        "total_voters": total,
    }


def stats_overview(db: Session) -> dict:
    """Participation overview for the admin rankings dashboard."""
    students = (
        db.query(User)
        .join(Student, Student.user_id == User.id)
        .filter(User.role == Role.STUDENT.value, User.active.is_(True))
        .order_by(User.last_name, User.first_name)
        .all()
    )
    submitted = set(submitted_voter_ids(db))
    not_submitted = [
        {"id": u.id, "first_name": u.first_name, "last_name": u.last_name, "email": u.email}
        for u in students
        if u.id not in submitted
    ]
    questions = (
        db.query(RankingQuestion)
        .filter(RankingQuestion.active.is_(True))
        .order_by(RankingQuestion.order, RankingQuestion.id)
        .all()
    )
    return {
        "total_students": len(students),
        "submitted_count": sum(1 for u in students if u.id in submitted),
        "not_submitted": not_submitted,
        "questions": [
            {"id": q.id, "text": q.text, "type": q.type, "answer_mode": q.answer_mode, "order": q.order}
            for q in questions
        ],
    }


# ── Export ───────────────────────────────────────────────────────────


def export_rows(db: Session) -> list[list[str]]:
    """Top-5 rows per question and category for the TSV export."""
    questions = (
        db.query(RankingQuestion)
        .filter(RankingQuestion.active.is_(True))
        .order_by(RankingQuestion.order, RankingQuestion.id)
        .all()
    )
    voter_ids = submitted_voter_ids(db)
    total = len(voter_ids)
    if not total:
        return []

    by_question: dict[int, list[RankingVote]] = {}
    for vote in _load_votes(db, voter_ids, [q.id for q in questions]):
        by_question.setdefault(vote.question_id, []).append(vote)

    rows = []
    for question in questions:
        results = aggregate_votes(by_question.get(question.id, []))
        for target, bucket in split_results(question, results).items():
            for place, r in enumerate(bucket[:EXPORT_TOP_N], start=1):
                rows.append([
                    question.text,
                    CATEGORY_LABELS[target],
                    str(place),
                    r.name,
                    str(r.count),
                    format_percentage(percentage(r.count, total)),
                ])
    log.info(f"Ranking export: {len(questions)} questions, {total} voters, {len(rows)} rows")
    return rows
