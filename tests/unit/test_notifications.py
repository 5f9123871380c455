import pytest
from datetime import date, datetime, timedelta, timezone

from flux.domain.enums import NotificationType, TransactionStatus, TransactionType
from flux.domain.models import Notification
from flux.services.notifications import (
    derive_due_notifications,
    due_notification_for,
    info_notification,
    replace_derived,
    sort_notifications,
)

TODAY = date(2024, 3, 15)
NOW = datetime(2024, 3, 15, 10, 30, tzinfo=timezone.utc)
PLANNED = TransactionStatus.PLANNED


@pytest.mark.unit
class TestDueNotificationFor:

    def test_due_today(self, make_transaction):
        # Arrange
        bill = make_transaction(TODAY, status=PLANNED, description="Luz", id="tx-luz")

        # Act
        notification = due_notification_for(bill, TODAY, NOW)

        # Assert
        assert notification.type == NotificationType.DUE
        assert notification.message == 'Conta "Luz" vence hoje.'
        assert notification.id == "noti-tx-luz-due"
        assert notification.link == "tx-luz"
        assert notification.read is False

    @pytest.mark.parametrize("days, message", [
        (1, 'Conta "Água" vence em 1 dia.'),
        (3, 'Conta "Água" vence em 3 dias.'),
        (7, 'Conta "Água" vence em 7 dias.'),
    ])
    def test_due_within_horizon(self, make_transaction, days, message):
        bill = make_transaction(TODAY + timedelta(days=days), status=PLANNED, description="Água")

        notification = due_notification_for(bill, TODAY, NOW)

        assert notification.type == NotificationType.DUE
        assert notification.message == message

    def test_beyond_horizon_has_no_alert(self, make_transaction):
        bill = make_transaction(TODAY + timedelta(days=8), status=PLANNED)

        assert due_notification_for(bill, TODAY, NOW) is None

    def test_custom_horizon(self, make_transaction):
        bill = make_transaction(TODAY + timedelta(days=10), status=PLANNED)

        assert due_notification_for(bill, TODAY, NOW, horizon_days=10) is not None

    def test_overdue(self, make_transaction):
        bill = make_transaction(TODAY - timedelta(days=1), status=PLANNED, description="Internet", id="tx-9")

        notification = due_notification_for(bill, TODAY, NOW)

        assert notification.type == NotificationType.OVERDUE
        assert notification.message == 'Conta "Internet" está vencida!'
        assert notification.id == "noti-tx-9-overdue"

    @pytest.mark.parametrize("type, status", [
        (TransactionType.EXPENSE, TransactionStatus.COMPLETED),
        (TransactionType.INCOME, TransactionStatus.PLANNED),
    ])
    def test_only_planned_expenses_alert(self, make_transaction, type, status):
        row = make_transaction(TODAY, type=type, status=status)

        assert due_notification_for(row, TODAY, NOW) is None


@pytest.mark.unit
class TestDeriveAndReplace:

    def test_derive_over_ledger(self, make_transaction):
        ledger = [
            make_transaction(TODAY, status=PLANNED),
            make_transaction(TODAY - timedelta(days=30), status=PLANNED),
            make_transaction(TODAY + timedelta(days=30), status=PLANNED),
            make_transaction(TODAY),
        ]

        notifications = derive_due_notifications(ledger, TODAY, NOW)

        assert sorted(n.type.value for n in notifications) == ["due", "overdue"]

    def test_replace_keeps_info_and_drops_old_alerts(self, make_transaction):
        # Arrange
        earlier = NOW - timedelta(hours=1)
        info = info_notification('Despesa "Mercado" criada.', earlier)
        stale = Notification(
            id="noti-old-due", message="old", date=earlier, type=NotificationType.DUE, read=True
        )
        fresh = derive_due_notifications([make_transaction(TODAY, status=PLANNED, id="tx-1")], TODAY, NOW)

        # Act
        result = replace_derived([info, stale], fresh)

        # Assert
        assert [n.id for n in result] == ["noti-tx-1-due", info.id]
        assert all(not n.read for n in result)

    def test_read_flag_is_not_carried_over(self, make_transaction):
        bill = make_transaction(TODAY, status=PLANNED, id="tx-1")
        first = derive_due_notifications([bill], TODAY, NOW)
        first[0].read = True

        result = replace_derived(first, derive_due_notifications([bill], TODAY, NOW))

        assert result[0].id == "noti-tx-1-due"
        assert result[0].read is False

    def test_sort_newest_first(self):
        older = info_notification("a", NOW - timedelta(days=1))
        newer = info_notification("b", NOW)

        assert sort_notifications([older, newer]) == [newer, older]

    def test_info_notification_ids_are_unique(self):
        assert info_notification("x", NOW).id != info_notification("x", NOW).id
