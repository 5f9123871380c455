import itertools
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import List

import pytest

from flux.domain.enums import PaymentMethod, TransactionStatus, TransactionType
from flux.domain.models import Category, CreditCard, Profile, Transaction
from flux.repositories.base import LedgerRepository

# Fixed "now" for every test that depends on today's date
NOW = datetime(2024, 3, 15, 10, 30, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    """Clock frozen at 2024-03-15 10:30 UTC"""
    return lambda: NOW


@pytest.fixture
def categories() -> List[Category]:
    return [
        Category(id="cat-1", name="Alimentação", type=TransactionType.EXPENSE),
        Category(id="cat-2", name="Moradia", type=TransactionType.EXPENSE),
        Category(id="cat-3", name="Lazer", type=TransactionType.EXPENSE),
        Category(id="cat-7", name="Salário", type=TransactionType.INCOME),
    ]


@pytest.fixture
def card() -> CreditCard:
    return CreditCard(
        id="card-1",
        bank_name="Nubank",
        holder_name="Ana",
        limit=Decimal("5000.00"),
        closing_day=10,
        due_day=20,
    )


@pytest.fixture
def profile() -> Profile:
    return Profile(id="user-1", user_name="Ana")


@pytest.fixture
def make_transaction():
    """Factory for transactions with sensible defaults"""
    counter = itertools.count(1)

    def _make(
        day: date,
        amount: str = "10.00",
        type: TransactionType = TransactionType.EXPENSE,
        status: TransactionStatus = TransactionStatus.COMPLETED,
        category: str = None,
        **kwargs,
    ) -> Transaction:
        if category is None:
            category = "Salário" if type == TransactionType.INCOME else "Alimentação"
        return Transaction(
            id=kwargs.pop("id", f"tx-{next(counter)}"),
            date=day,
            description=kwargs.pop("description", "Lançamento"),
            amount=Decimal(amount),
            type=type,
            category=category,
            payer=kwargs.pop("payer", "Ana"),
            status=status,
            payment_method=kwargs.pop("payment_method", PaymentMethod.PIX),
            **kwargs,
        )

    return _make


@pytest.fixture
def echo_repository(mocker, categories, card, profile) -> LedgerRepository:
    """
    Mock repository that stores nothing but echoes rows back with ids,
    like the remote backend does.
    """
    ids = itertools.count(1)
    repository = mocker.Mock(spec=LedgerRepository)
    repository.user_id = "user-1"

    def _stored(row):
        return {**row, "id": f"row-{next(ids)}", "created_at": NOW.isoformat()}

    def _fetch_all(table):
        if table == "categories":
            return [{"id": c.id, "name": c.name, "type": c.type.value} for c in categories]
        if table == "cards":
            return [{
                "id": card.id,
                "bank_name": card.bank_name,
                "holder_name": card.holder_name,
                "credit_limit": str(card.limit),
                "closing_day": card.closing_day,
                "due_day": card.due_day,
            }]
        return []

    repository.fetch_all.side_effect = _fetch_all
    repository.fetch_profile.return_value = {"id": profile.id, "user_name": profile.user_name}
    repository.insert.side_effect = lambda table, row: _stored(row)
    repository.insert_many.side_effect = lambda table, rows: [_stored(r) for r in rows]
    repository.update.side_effect = lambda table, record_id, row: {
        **row, "id": record_id, "created_at": NOW.isoformat()
    }
    repository.save_profile.side_effect = lambda row: dict(row)
    repository.delete.return_value = True
    repository.delete_where.return_value = 0
    return repository
