"""Percentages with one decimal, rounded half up.

  - 1 of 16  → 6.3   (62.5 ‰ rounds up, not to even)
  - 1 of 3   → 33.3
  - 6.3      → "6.3%",  50.0 → "50%"
"""

import math


def percentage(count: int, total: int) -> float:
    """count/total in percent with one decimal, 0 when total is 0."""
    if not total:
        return 0
    return math.floor(count / total * 1000 + 0.5) / 10


def format_percentage(pct: float) -> str:
    if pct == int(pct):
        return f"{int(pct)}%"
    return f"{pct}%"
