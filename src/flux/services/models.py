"""
Service layer models - DTOs for derived views.

These models represent computed results, not ledger entities.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional
from flux.domain.enums import TransactionType
from flux.domain.models import CreditCard, Transaction
from flux.services.formatting import format_brl, month_label


@dataclass(frozen=True)
class InstallmentSlice:
    """Date and amount of one installment before it becomes a transaction"""
    number: int
    date: date
    amount: Decimal


@dataclass
class MonthlySummary:
    """
    Realized totals for one month.

    Only completed transactions belong here; planned rows are forecasts.
    """

    year: int
    month: int

    incomes: List[Transaction] = field(default_factory=list)
    expenses: List[Transaction] = field(default_factory=list)

    @property
    def total_income(self) -> Decimal:
        return sum((t.amount for t in self.incomes), Decimal("0"))

    @property
    def total_expense(self) -> Decimal:
        return sum((t.amount for t in self.expenses), Decimal("0"))

    @property
    def result(self) -> Decimal:
        """Income minus expense"""
        return self.total_income - self.total_expense

    @property
    def total_transactions(self) -> int:
        return len(self.incomes) + len(self.expenses)

    def __str__(self) -> str:
        lines = [
            f"📊 Resumo - {month_label(self.year, self.month)}",
            f"  💰 Receitas: {format_brl(self.total_income)} ({len(self.incomes)} lançamentos)",
            f"  💸 Despesas: {format_brl(self.total_expense)} ({len(self.expenses)} lançamentos)",
            f"  {'📈' if self.result >= 0 else '📉'} Resultado: {format_brl(self.result)}",
        ]
        return "\n".join(lines)


@dataclass(frozen=True)
class CategoryTotal:
    name: str
    total: Decimal


@dataclass(frozen=True)
class AnnualProjectionPoint:
    """Completed income and expense of one month, for charting"""
    year: int
    month: int
    income: Decimal
    expense: Decimal

    @property
    def label(self) -> str:
        return month_label(self.year, self.month)

    @property
    def net(self) -> Decimal:
        return self.income - self.expense


@dataclass
class CardStatement:
    """
    Open statement ("fatura") of a credit card.

    The period starts the day after the last closing day and runs up to
    today; it has no fixed end.
    """
    card: CreditCard
    period_start: date
    transactions: List[Transaction] = field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return sum((t.amount for t in self.transactions), Decimal("0"))

    @property
    def available_limit(self) -> Decimal:
        return self.card.limit - self.total


@dataclass
class DashboardSnapshot:
    """Everything the monthly dashboard shows, computed in one pass"""
    summary: MonthlySummary
    closing_balance: Decimal
    next_month_opening_balance: Decimal
    recent_transactions: List[Transaction] = field(default_factory=list)
    category_breakdown: List[CategoryTotal] = field(default_factory=list)
    annual_projection: List[AnnualProjectionPoint] = field(default_factory=list)
    statements: List[CardStatement] = field(default_factory=list)

    def top_category(self) -> Optional[CategoryTotal]:
        return self.category_breakdown[0] if self.category_breakdown else None


def split_by_type(transactions: List[Transaction]) -> tuple[List[Transaction], List[Transaction]]:
    """Return (incomes, expenses)"""
    incomes = [t for t in transactions if t.type == TransactionType.INCOME]
    expenses = [t for t in transactions if t.type == TransactionType.EXPENSE]
    return incomes, expenses
