# rota/models/domain/calendar_domain.py
"""
Calendar Domain Models
Generated weeks and days of the rota grid. Never stored.
"""

from dataclasses import dataclass
from datetime import date

from rota.models.domain.slot_domain import slot_id_for

DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
MONTH_NAMES = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def uk_short_date(day: date) -> str:
    """Format a date as '01 Jan'."""
    return f"{day.day:02d} {MONTH_NAMES[day.month - 1]}"


@dataclass(frozen=True, slots=True)
class Day:
    date: date
    tasks: tuple[str, ...]
    is_today: bool = False

    @property
    def day_name(self) -> str:
        return DAY_NAMES[self.date.weekday()]

    @property
    def label(self) -> str:
        return uk_short_date(self.date)

    def slot_ids(self) -> list[tuple[str, str]]:
        """(task, slot_id) pairs in task order."""
        return [(task, slot_id_for(self.date, task)) for task in self.tasks]


@dataclass(frozen=True, slots=True)
class Week:
    monday: date
    days: tuple[Day, ...]

    @property
    def id(self) -> str:
        return self.monday.isoformat()

    @property
    def sunday(self) -> date:
        return self.days[-1].date

    @property
    def range_label(self) -> str:
        return f"Week {uk_short_date(self.monday)} - {uk_short_date(self.sunday)}"
