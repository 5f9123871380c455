import pytest
from datetime import date
from decimal import Decimal

from flux.domain.enums import PaymentMethod, TransactionStatus, TransactionType
from flux.services.aggregation import (
    annual_projection,
    build_dashboard,
    card_statement,
    category_breakdown,
    closing_balance,
    monthly_summary,
    next_month_opening_balance,
    statement_period_start,
)
from flux.services.models import CategoryTotal

INCOME = TransactionType.INCOME
EXPENSE = TransactionType.EXPENSE
PLANNED = TransactionStatus.PLANNED


@pytest.fixture
def ledger(make_transaction):
    """Three months of history around March 2024"""
    return [
        make_transaction(date(2024, 1, 5), "3000.00", INCOME),
        make_transaction(date(2024, 1, 10), "2500.00", EXPENSE, category="Moradia"),
        make_transaction(date(2024, 2, 5), "3000.00", INCOME),
        make_transaction(date(2024, 2, 12), "3200.00", EXPENSE, category="Moradia"),
        make_transaction(date(2024, 3, 5), "3000.00", INCOME),
        make_transaction(date(2024, 3, 8), "120.50", EXPENSE, category="Alimentação"),
        make_transaction(date(2024, 3, 9), "79.50", EXPENSE, category="Alimentação"),
        make_transaction(date(2024, 3, 10), "900.00", EXPENSE, category="Moradia"),
        make_transaction(date(2024, 3, 28), "400.00", EXPENSE, status=PLANNED, category="Lazer"),
        make_transaction(date(2024, 4, 5), "3000.00", INCOME, status=PLANNED),
        make_transaction(date(2024, 4, 10), "950.00", EXPENSE, status=PLANNED, category="Moradia"),
        make_transaction(date(2024, 4, 11), "50.00", EXPENSE, category="Lazer"),
    ]


@pytest.mark.unit
class TestMonthlySummary:

    def test_counts_only_completed_rows_of_the_month(self, ledger):
        # Act
        summary = monthly_summary(ledger, date(2024, 3, 1))

        # Assert
        assert summary.total_income == Decimal("3000.00")
        assert summary.total_expense == Decimal("1100.00")
        assert summary.result == Decimal("1900.00")
        assert summary.total_transactions == 4

    def test_empty_month_is_zero(self, ledger):
        summary = monthly_summary(ledger, date(2023, 6, 1))

        assert summary.total_income == Decimal("0")
        assert summary.total_expense == Decimal("0")
        assert summary.result == Decimal("0")


@pytest.mark.unit
class TestBalances:

    def test_closing_balance_includes_all_prior_history(self, ledger):
        # Jan +500, Feb -200, Mar +1900
        assert closing_balance(ledger, date(2024, 1, 1)) == Decimal("500.00")
        assert closing_balance(ledger, date(2024, 2, 1)) == Decimal("300.00")
        assert closing_balance(ledger, date(2024, 3, 1)) == Decimal("2200.00")

    def test_closing_balance_accumulates_month_over_month(self, ledger):
        for month in range(2, 5):
            previous = closing_balance(ledger, date(2024, month - 1, 1))
            current = monthly_summary(ledger, date(2024, month, 1))

            assert closing_balance(ledger, date(2024, month, 1)) == previous + current.result

    def test_closing_balance_counts_last_day_of_month(self, make_transaction):
        ledger = [make_transaction(date(2024, 2, 29), "10.00", INCOME)]

        assert closing_balance(ledger, date(2024, 2, 1)) == Decimal("10.00")
        assert closing_balance(ledger, date(2024, 1, 1)) == Decimal("0")

    def test_next_month_opening_balance_adds_planned_rows(self, ledger):
        # March closing 2200 + planned April income 3000 - planned April expense 950
        assert next_month_opening_balance(ledger, date(2024, 3, 1)) == Decimal("4250.00")

    def test_next_month_of_december_is_january(self, make_transaction):
        ledger = [
            make_transaction(date(2024, 12, 5), "1000.00", INCOME),
            make_transaction(date(2025, 1, 10), "300.00", EXPENSE, status=PLANNED),
            make_transaction(date(2024, 1, 10), "999.00", EXPENSE, status=PLANNED),
        ]

        assert next_month_opening_balance(ledger, date(2024, 12, 1)) == Decimal("700.00")


@pytest.mark.unit
class TestAnnualProjection:

    def test_twelve_points_with_completed_totals(self, ledger):
        points = annual_projection(ledger, 2024)

        assert len(points) == 12
        assert [p.month for p in points] == list(range(1, 13))
        assert points[0].income == Decimal("3000.00")
        assert points[0].expense == Decimal("2500.00")
        assert points[2].expense == Decimal("1100.00")
        # April: only the completed 50.00 counts
        assert points[3].income == Decimal("0")
        assert points[3].expense == Decimal("50.00")
        assert points[11].income == Decimal("0")
        assert points[0].label == "Jan/2024"

    def test_other_years_are_ignored(self, ledger):
        points = annual_projection(ledger, 2023)

        assert all(p.income == 0 and p.expense == 0 for p in points)


@pytest.mark.unit
class TestCategoryBreakdown:

    def test_completed_expenses_grouped_largest_first(self, ledger):
        march = [t for t in ledger if t.date.month == 3]

        result = category_breakdown(march)

        assert result == [
            CategoryTotal(name="Moradia", total=Decimal("900.00")),
            CategoryTotal(name="Alimentação", total=Decimal("200.00")),
        ]


@pytest.mark.unit
class TestCardStatement:

    def test_period_starts_this_month_after_closing(self):
        assert statement_period_start(10, date(2024, 3, 15)) == date(2024, 3, 11)

    def test_period_started_last_month_on_or_before_closing(self):
        assert statement_period_start(10, date(2024, 3, 10)) == date(2024, 2, 11)
        assert statement_period_start(10, date(2024, 3, 2)) == date(2024, 2, 11)

    def test_period_start_rolls_back_over_january(self):
        assert statement_period_start(25, date(2024, 1, 5)) == date(2023, 12, 26)

    def test_closing_day_past_end_of_short_month(self):
        # Closed on Feb 29 (no Feb 31), so the period opened on March 1
        assert statement_period_start(31, date(2024, 3, 15)) == date(2024, 3, 1)

    def test_charge_on_closing_day_included_while_period_open(self, card, make_transaction):
        # Arrange
        charge = make_transaction(
            date(2024, 3, 10), "200.00", payment_method=PaymentMethod.CREDIT, card_id=card.id
        )

        # Act
        on_closing_day = card_statement(card, [charge], today=date(2024, 3, 10))
        after_closing = card_statement(card, [charge], today=date(2024, 3, 11))

        # Assert
        assert on_closing_day.total == Decimal("200.00")
        assert after_closing.total == Decimal("0")

    def test_only_credit_expenses_of_the_card(self, card, make_transaction):
        transactions = [
            make_transaction(date(2024, 3, 12), "100.00", payment_method=PaymentMethod.CREDIT, card_id=card.id),
            make_transaction(date(2024, 3, 13), "35.90", payment_method=PaymentMethod.CREDIT, card_id=card.id,
                             status=PLANNED),
            make_transaction(date(2024, 3, 12), "70.00", payment_method=PaymentMethod.CREDIT, card_id="other"),
            make_transaction(date(2024, 3, 12), "15.00", payment_method=PaymentMethod.DEBIT, card_id=card.id),
            make_transaction(date(2024, 3, 12), "500.00", INCOME, payment_method=PaymentMethod.CREDIT,
                             card_id=card.id),
            make_transaction(date(2024, 3, 1), "80.00", payment_method=PaymentMethod.CREDIT, card_id=card.id),
        ]

        statement = card_statement(card, transactions, today=date(2024, 3, 15))

        assert statement.period_start == date(2024, 3, 11)
        assert statement.total == Decimal("135.90")
        assert statement.available_limit == Decimal("4864.10")


@pytest.mark.unit
class TestDashboard:

    def test_snapshot_for_selected_month(self, ledger, card):
        snapshot = build_dashboard(ledger, [card], date(2024, 3, 1), today=date(2024, 3, 15), recent_count=2)

        assert snapshot.summary.result == Decimal("1900.00")
        assert snapshot.closing_balance == Decimal("2200.00")
        assert snapshot.next_month_opening_balance == Decimal("4250.00")
        assert [t.date for t in snapshot.recent_transactions] == [date(2024, 3, 28), date(2024, 3, 10)]
        assert snapshot.top_category().name == "Moradia"
        assert len(snapshot.annual_projection) == 12
        assert len(snapshot.statements) == 1
