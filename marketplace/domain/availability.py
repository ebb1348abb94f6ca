"""Date-range availability rules.

Booking ranges are half-open: ``[start_date, end_date)``. The end date is the
check-out day, so a stay ending on the 10th and one starting on the 10th do
not collide.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any

from sqlalchemy import ColumnElement, and_

from marketplace.core.exceptions import ValidationError


@dataclass(frozen=True)
class DateRange:
    """A half-open range of calendar days."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ValidationError("End date must be after start date.")

    @property
    def nights(self) -> int:
        return (self.end - self.start).days

    def overlaps(self, other: "DateRange") -> bool:
        return ranges_overlap(self.start, self.end, other.start, other.end)


def ranges_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """Return True when ``[a_start, a_end)`` and ``[b_start, b_end)`` share a day."""
    return a_start < b_end and a_end > b_start


def overlap_condition(start_column: Any, end_column: Any, requested: DateRange) -> ColumnElement[bool]:
    """SQL form of :func:`ranges_overlap` against stored booking columns."""
    return and_(start_column < requested.end, end_column > requested.start)
