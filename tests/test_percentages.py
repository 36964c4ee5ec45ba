"""
test_percentages.py — Tests for abibuch/utils/percentages.py

Halves round up (62.5 ‰ → 6.3 %), never to the even neighbour.

Called by: pytest
Depends on: abibuch/utils/percentages.py
"""

import pytest

from abibuch.utils.percentages import format_percentage, percentage


@pytest.mark.parametrize(
    "count,total,expected",
    [
        (1, 16, 6.3),
        (3, 16, 18.8),
        (1, 80, 1.3),
        (1, 3, 33.3),
        (2, 3, 66.7),
        (8, 8, 100.0),
        (0, 5, 0.0),
        (0, 0, 0),
    ],
)
def test_percentage_rounds_half_up(count, total, expected):
    assert percentage(count, total) == expected


def test_format_drops_trailing_zero():
    assert format_percentage(percentage(1, 2)) == "50%"
    assert format_percentage(percentage(1, 80)) == "1.3%"
