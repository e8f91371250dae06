"""
Rolling week window for the rota grid.

Pure functions only: the same reference instant and week count always give
the same weeks. No store or network access happens here.
"""

from collections.abc import Sequence
from datetime import date, datetime, timedelta

from rota.models.domain.calendar_domain import Day, Week

DAYS_PER_WEEK = 7


def _as_date(reference: date | datetime) -> date:
    if isinstance(reference, datetime):
        return reference.date()
    return reference


def monday_of(reference: date | datetime) -> date:
    """
    Roll back to the Monday starting the ISO week of the reference.

    Sunday goes back 6 days, any other day goes back (weekday - 1) days.
    """
    day = _as_date(reference)
    iso_weekday = day.isoweekday()  # Mon=1 .. Sun=7
    days_back = 6 if iso_weekday == 7 else iso_weekday - 1
    return day - timedelta(days=days_back)


def generate_weeks(
    reference: date | datetime,
    week_count: int,
    tasks: Sequence[str],
) -> list[Week]:
    """
    Build week_count consecutive weeks, week 0 holding the reference date.

    Args:
        reference: The instant the window is anchored to; a datetime is reduced
            to its calendar date as given (convert timezones before calling)
        week_count: Number of weeks, at least 1
        tasks: Task names carried by every day, in display order

    Returns:
        Weeks in chronological order, each with 7 days Mon..Sun
    """
    if week_count < 1:
        raise ValueError(f"week_count must be at least 1, got {week_count}")

    today = _as_date(reference)
    task_names = tuple(tasks)
    first_monday = monday_of(today)

    weeks = []
    for w in range(week_count):
        monday = first_monday + timedelta(days=w * DAYS_PER_WEEK)
        days = tuple(
            Day(date=day, tasks=task_names, is_today=day == today)
            for day in (monday + timedelta(days=d) for d in range(DAYS_PER_WEEK))
        )
        weeks.append(Week(monday=monday, days=days))

    return weeks
