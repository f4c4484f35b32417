"""Date helpers for the mortgage simulator.

Due dates are informational only; the financial computation never reads
them. They are derived from the simulation start date with month arithmetic
that clamps the day to the end of shorter months.
"""

from __future__ import annotations

import calendar
from datetime import date


def parse_year_month(ym: str) -> date:
    """Parse a YYYY-MM string into a ``date`` object (first day of month).

    Raises
    ------
    ValueError
        If the string is not a valid year-month.
    """
    try:
        parts = ym.split("-")
        if len(parts) < 2:
            raise ValueError
        return date(int(parts[0]), int(parts[1]), 1)
    except (AttributeError, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid year-month string: {ym}") from exc


def add_months(start: date, months: int) -> date:
    """Return the due date falling ``months`` periods after ``start``.

    A start day that does not exist in the target month is moved back to that
    month's last day, so Jan 31 plus one month is Feb 28 (or 29).
    """
    years, month_index = divmod(start.month - 1 + months, 12)
    year = start.year + years
    last_day = calendar.monthrange(year, month_index + 1)[1]
    return start.replace(year=year, month=month_index + 1, day=min(start.day, last_day))

