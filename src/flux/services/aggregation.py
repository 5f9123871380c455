"""
Derived figures over the ledger.

All functions are pure: they take the full transaction list plus the dates
they depend on and return fresh DTOs, so callers can recompute them after
every change without invalidation bookkeeping.
"""
from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, List, Sequence, Tuple

from flux.domain.enums import PaymentMethod, TransactionStatus, TransactionType
from flux.domain.models import CreditCard, Transaction
from flux.services.models import (
    AnnualProjectionPoint,
    CardStatement,
    CategoryTotal,
    DashboardSnapshot,
    MonthlySummary,
    split_by_type,
)
from flux.services.periods import add_months, filter_month, month_end, next_month

ZERO = Decimal("0")


def _completed(transactions: Iterable[Transaction]) -> List[Transaction]:
    return [t for t in transactions if t.status == TransactionStatus.COMPLETED]


def monthly_summary(transactions: Iterable[Transaction], selected: date) -> MonthlySummary:
    """Completed income and expense of the selected month"""
    realized = _completed(filter_month(transactions, selected))
    incomes, expenses = split_by_type(realized)
    return MonthlySummary(
        year=selected.year,
        month=selected.month,
        incomes=incomes,
        expenses=expenses,
    )


def closing_balance(transactions: Iterable[Transaction], selected: date) -> Decimal:
    """
    Running balance at the end of the selected month.

    Sums every completed transaction from the beginning of history up to and
    including the month's last day, not just the month itself.
    """
    last_day = month_end(selected)
    return sum(
        (t.signed_amount for t in _completed(transactions) if t.date <= last_day),
        ZERO,
    )


def planned_totals(transactions: Iterable[Transaction], month_day: date) -> Tuple[Decimal, Decimal]:
    """Return (planned income, planned expense) dated in the month of `month_day`"""
    planned = [
        t for t in filter_month(transactions, month_day)
        if t.status == TransactionStatus.PLANNED
    ]
    incomes, expenses = split_by_type(planned)
    return (
        sum((t.amount for t in incomes), ZERO),
        sum((t.amount for t in expenses), ZERO),
    )


def next_month_opening_balance(transactions: Sequence[Transaction], selected: date) -> Decimal:
    """
    Estimated balance to start the following month with.

    Closing balance of the selected month plus what is planned to come in
    and go out during the next calendar month.
    """
    planned_income, planned_expense = planned_totals(transactions, next_month(selected))
    return closing_balance(transactions, selected) + planned_income - planned_expense


def annual_projection(transactions: Iterable[Transaction], year: int) -> List[AnnualProjectionPoint]:
    """Completed income and expense for each of the 12 months of `year`"""
    income = defaultdict(lambda: ZERO)
    expense = defaultdict(lambda: ZERO)

    for t in _completed(transactions):
        if t.date.year != year:
            continue
        if t.type == TransactionType.INCOME:
            income[t.date.month] += t.amount
        else:
            expense[t.date.month] += t.amount

    return [
        AnnualProjectionPoint(year=year, month=month, income=income[month], expense=expense[month])
        for month in range(1, 13)
    ]


def category_breakdown(transactions: Iterable[Transaction]) -> List[CategoryTotal]:
    """
    Completed expense totals per category, largest first.

    Pass the monthly view to get the dashboard's pie chart.
    """
    totals = defaultdict(lambda: ZERO)
    for t in _completed(transactions):
        if t.type == TransactionType.EXPENSE:
            totals[t.category] += t.amount

    return [
        CategoryTotal(name=name, total=total)
        for name, total in sorted(totals.items(), key=lambda x: x[1], reverse=True)
    ]


def _closing_date(year: int, month: int, closing_day: int) -> date:
    # Closing day 31 closes on the 30th in a 30-day month
    last = month_end(date(year, month, 1))
    return last.replace(day=min(closing_day, last.day))


def statement_period_start(closing_day: int, today: date) -> date:
    """
    First day of the card's open statement.

    If today is past this month's closing day, the period opened the day
    after it; otherwise it opened the day after last month's closing day.
    """
    if today.day > closing_day:
        closed_on = _closing_date(today.year, today.month, closing_day)
    else:
        previous = add_months(date(today.year, today.month, 1), -1)
        closed_on = _closing_date(previous.year, previous.month, closing_day)
    return closed_on + timedelta(days=1)


def card_statement(card: CreditCard, transactions: Iterable[Transaction], today: date) -> CardStatement:
    """Credit expenses charged to `card` since the statement opened"""
    period_start = statement_period_start(card.closing_day, today)
    charges = [
        t for t in transactions
        if t.card_id == card.id
        and t.type == TransactionType.EXPENSE
        and t.payment_method == PaymentMethod.CREDIT
        and t.date >= period_start
    ]
    charges.sort(key=lambda t: t.date, reverse=True)
    return CardStatement(card=card, period_start=period_start, transactions=charges)


def build_dashboard(
    transactions: Sequence[Transaction],
    cards: Iterable[CreditCard],
    selected: date,
    today: date,
    recent_count: int = 5,
) -> DashboardSnapshot:
    """Compute every dashboard figure for the selected month"""
    monthly = filter_month(transactions, selected)
    return DashboardSnapshot(
        summary=monthly_summary(transactions, selected),
        closing_balance=closing_balance(transactions, selected),
        next_month_opening_balance=next_month_opening_balance(transactions, selected),
        recent_transactions=monthly[:recent_count],
        category_breakdown=category_breakdown(monthly),
        annual_projection=annual_projection(transactions, selected.year),
        statements=[card_statement(card, transactions, today) for card in cards],
    )
