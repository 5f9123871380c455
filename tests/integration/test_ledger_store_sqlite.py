import pytest
from datetime import date
from decimal import Decimal

from flux.config.settings import ConfigLoader
from flux.database.connection import DatabaseConfig, DatabaseManager
from flux.domain.enums import NotificationType, PaymentMethod, TransactionStatus, TransactionType
from flux.domain.models import CreditCard, InstallmentTransaction, Transaction
from flux.repositories.sqlite_ledger_repository import SQLiteLedgerRepository
from flux.services.ledger_store import LedgerStore


@pytest.fixture
def db_manager(tmp_path):
    manager = DatabaseManager(DatabaseConfig(tmp_path / "flux.db"))
    manager.initialize()
    yield manager
    manager.close()


@pytest.fixture
def make_store(db_manager, clock):
    def _make(user_id="user-1"):
        store = LedgerStore(
            SQLiteLedgerRepository(db_manager, user_id),
            clock=clock,
            default_categories=ConfigLoader.load_default_categories(),
        )
        store.load()
        return store

    return _make


def _expense(day, amount, description, **kwargs):
    return Transaction(
        date=day,
        description=description,
        amount=Decimal(amount),
        type=TransactionType.EXPENSE,
        category=kwargs.pop("category", "Alimentação"),
        payer=kwargs.pop("payer", "user-1"),
        **kwargs,
    )


@pytest.mark.integration
class TestLedgerStoreWithSQLite:

    def test_first_load_seeds_profile_and_categories(self, make_store):
        store = make_store()

        assert store.profile.user_name == "user-1"
        assert "Salário" in [c.name for c in store.categories_for(TransactionType.INCOME)]

    def test_second_load_does_not_reseed(self, make_store):
        first = make_store()

        second = make_store()

        assert len(second.categories) == len(first.categories)

    def test_month_flow_survives_reload(self, make_store):
        # Arrange
        store = make_store()
        card = store.add_card(CreditCard(
            bank_name="Nubank", holder_name="user-1", limit=Decimal("3000"), closing_day=10, due_day=20
        ))
        store.add_transaction(Transaction(
            date=date(2024, 3, 5),
            description="Salário",
            amount=Decimal("4000.00"),
            type=TransactionType.INCOME,
            category="Salário",
            payer="user-1",
        ))
        store.add_transaction(_expense(date(2024, 3, 8), "350.25", "Mercado"))
        store.add_transaction(_expense(date(2024, 3, 20), "180.00", "Luz", category="Moradia",
                                       status=TransactionStatus.PLANNED))
        store.add_purchase(
            _expense(date(2024, 3, 12), "100.00", "Fone", category="Lazer",
                     payment_method=PaymentMethod.CREDIT, card_id=card.id),
            installment_count=3,
        )

        # Act
        reloaded = make_store()
        snapshot = reloaded.dashboard()

        # Assert
        assert len(reloaded.transactions) == 6
        # 4000 - 350.25 - first installment 33.33
        assert snapshot.summary.result == Decimal("3616.42")
        assert snapshot.closing_balance == Decimal("3616.42")
        # April brings the planned installment 33.33
        assert snapshot.next_month_opening_balance == Decimal("3583.09")
        assert reloaded.card_statement(card.id).total == Decimal("100.00")
        due = [n.message for n in reloaded.notifications if n.type == NotificationType.DUE]
        assert due == ['Conta "Luz" vence em 5 dias.']
        assert 'Despesa "Mercado" criada.' in [n.message for n in reloaded.notifications]

    def test_cascade_delete_is_persisted(self, make_store):
        store = make_store()
        siblings = store.add_purchase(_expense(date(2024, 3, 1), "600.00", "Sofá", category="Moradia"),
                                      installment_count=6)
        assert all(isinstance(t, InstallmentTransaction) for t in siblings)

        removed = store.delete_transaction(siblings[-1].id)

        assert removed == 6
        assert make_store().transactions == []

    def test_users_do_not_see_each_other(self, make_store):
        make_store("user-1").add_transaction(_expense(date(2024, 3, 1), "10.00", "Café"))

        assert make_store("user-2").transactions == []

    def test_read_info_notification_survives_reload(self, make_store):
        # Arrange
        store = make_store()
        store.add_transaction(_expense(date(2024, 3, 8), "10.00", "Mercado"))
        created = next(n for n in store.notifications if n.message == 'Despesa "Mercado" criada.')

        # Act
        store.mark_notification_as_read(created.id)
        reloaded = make_store()

        # Assert
        restored = next(n for n in reloaded.notifications if n.id == created.id)
        assert restored.type == NotificationType.INFO
        assert restored.read is True
