"""Ordering helpers shared by the admin lists (questions, fields, categories)."""

import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

log = logging.getLogger(__name__)


def next_order(db: Session, model) -> int:
    """max(order) + 1, or 0 for an empty table."""
    current = db.query(func.max(model.order)).scalar()
    return 0 if current is None else current + 1


def apply_reorder(db: Session, model, orders: list[dict]) -> int:
    """Set `order` from [{"id", "order"}]; unknown ids are ignored.

    Returns the number of rows updated. The caller commits.
    """
    wanted = {int(o["id"]): int(o["order"]) for o in orders}
    if not wanted:
        return 0
    rows = db.query(model).filter(model.id.in_(list(wanted))).all()
    for row in rows:
        row.order = wanted[row.id]
    if len(rows) != len(wanted):
        log.warning(f"Reorder {model.__name__}: {len(wanted) - len(rows)} unknown ids ignored")
    return len(rows)
