"""Week-level semantics of recurrence patterns and the semester-parity rule.

A pattern occupies a subset of the term's weeks (1..TERM_WEEKS). Two bookings of the
same cell only collide physically when their week sets intersect, and the institution
runs odd and even semesters in interleaved week cycles, so a teacher or room may be
booked once per semester group.
"""
from __future__ import annotations

from routine.models.routine_slot import RecurrenceType, WeekParity
from routine.schemas.routine import TERM_WEEKS, RecurrencePattern

ALL_WEEKS = frozenset(range(1, TERM_WEEKS + 1))
ODD_WEEKS = frozenset(week for week in ALL_WEEKS if week % 2 == 1)
EVEN_WEEKS = frozenset(week for week in ALL_WEEKS if week % 2 == 0)


def resolve_weeks(pattern: RecurrencePattern | None) -> frozenset[int]:
    if pattern is None or pattern.type == RecurrenceType.weekly:
        return ALL_WEEKS
    if pattern.type == RecurrenceType.alternate:
        return EVEN_WEEKS if pattern.pattern == WeekParity.even else ODD_WEEKS
    return frozenset(week for week in pattern.custom_weeks if week in ALL_WEEKS)


def overlaps(a: RecurrencePattern | None, b: RecurrencePattern | None) -> bool:
    """Return True when two patterns can ever occupy the same physical slot."""
    a_type = a.type if a is not None else RecurrenceType.weekly
    b_type = b.type if b is not None else RecurrenceType.weekly
    # Custom goes first so an empty week list stays free even against weekly.
    if a_type == RecurrenceType.custom or b_type == RecurrenceType.custom:
        return bool(resolve_weeks(a) & resolve_weeks(b))
    if a_type == RecurrenceType.weekly or b_type == RecurrenceType.weekly:
        return True
    return (a.pattern or WeekParity.odd) == (b.pattern or WeekParity.odd)


def applies_to_week(pattern: RecurrencePattern | None, week_number: int) -> bool:
    return week_number in resolve_weeks(pattern)


def parity(semester: int) -> int:
    return semester % 2


def semester_group(semester: int) -> str:
    return WeekParity.odd.value if parity(semester) == 1 else WeekParity.even.value


def same_semester_group(semester_a: int, semester_b: int) -> bool:
    return parity(semester_a) == parity(semester_b)


def describe(pattern: RecurrencePattern | None) -> str:
    if pattern is None or pattern.type == RecurrenceType.weekly:
        return "Weekly"
    if pattern.type == RecurrenceType.alternate:
        return f"Alternate weeks ({pattern.pattern.value if pattern.pattern else 'odd'})"
    return pattern.description or "Custom pattern"
