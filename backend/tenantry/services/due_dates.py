import calendar
from datetime import date
from typing import Optional

from tenantry.core.errors import InvalidInput


def _clamped(year: int, month: int, day: int) -> date:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def add_months(d: date, months: int) -> date:
    """Shift by whole months; the day is clamped to the target month's length."""
    index = d.year * 12 + (d.month - 1) + months
    year, month = divmod(index, 12)
    return _clamped(year, month + 1, d.day)


def next_due_date(day_of_month: int, today: Optional[date] = None) -> date:
    """
    Next rent due date for a tenant whose rent is due on ``day_of_month``.

    Due this month while today's day is on or before the due day, otherwise
    next month. Days past the end of the target month fall on its last day,
    so a due day of 31 lands on Feb 28/29.
    """
    if not 1 <= int(day_of_month) <= 31:
        raise InvalidInput("Payment due day must be between 1 and 31")
    today = today or date.today()

    if today.day <= day_of_month:
        return _clamped(today.year, today.month, day_of_month)

    following = add_months(today.replace(day=1), 1)
    return _clamped(following.year, following.month, day_of_month)
