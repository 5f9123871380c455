"""
Calendar-month helpers and the selected-month view of the ledger.
"""
from calendar import monthrange
from datetime import date
from typing import Iterable, List

from flux.domain.models import Transaction
from flux.domain.validation import is_same_month


def add_months(day: date, months: int) -> date:
    """
    Shift a date by whole months, keeping the day of month.

    The day is clamped to the last day of the target month
    (Jan 31 + 1 month -> Feb 28/29).
    """
    year = day.year + (day.month - 1 + months) // 12
    month = (day.month - 1 + months) % 12 + 1
    _, last_day = monthrange(year, month)
    return date(year, month, min(day.day, last_day))


def month_start(day: date) -> date:
    return date(day.year, day.month, 1)


def month_end(day: date) -> date:
    """Last calendar day of the month containing `day`"""
    _, last_day = monthrange(day.year, day.month)
    return date(day.year, day.month, last_day)


def next_month(day: date) -> date:
    """First day of the following calendar month"""
    return add_months(month_start(day), 1)


def filter_month(transactions: Iterable[Transaction], selected: date) -> List[Transaction]:
    """
    Transactions dated inside the selected month, newest first.

    Args:
        transactions: Full ledger
        selected: Any day of the month in view

    Returns:
        New list; the input is never modified
    """
    in_month = [t for t in transactions if is_same_month(t.date, selected)]
    return sorted(in_month, key=lambda t: t.date, reverse=True)
