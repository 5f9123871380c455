"""
Due/overdue alerts for planned expenses.

Alerts are rebuilt from scratch whenever the ledger changes and replace the
previous due/overdue set; info notifications are kept as they are.
"""
import uuid
from datetime import date, datetime
from typing import Iterable, List, Optional

from flux.domain.enums import NotificationType, TransactionStatus, TransactionType
from flux.domain.models import Notification, Transaction

DEFAULT_HORIZON_DAYS = 7

_DERIVED_TYPES = (NotificationType.DUE, NotificationType.OVERDUE)


def _due_message(description: str, days: int) -> str:
    if days == 0:
        return f'Conta "{description}" vence hoje.'
    unit = "dia" if days == 1 else "dias"
    return f'Conta "{description}" vence em {days} {unit}.'


def due_notification_for(
    transaction: Transaction,
    today: date,
    now: datetime,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> Optional[Notification]:
    """
    Alert for a single transaction, or None.

    Only planned expenses produce alerts: overdue when dated before today,
    due when dated within `horizon_days` from today (inclusive).
    """
    if transaction.type != TransactionType.EXPENSE or transaction.status != TransactionStatus.PLANNED:
        return None

    days = (transaction.date - today).days

    if days < 0:
        return Notification(
            id=f"noti-{transaction.id}-overdue",
            message=f'Conta "{transaction.description}" está vencida!',
            date=now,
            type=NotificationType.OVERDUE,
            link=transaction.id,
        )

    if days <= horizon_days:
        return Notification(
            id=f"noti-{transaction.id}-due",
            message=_due_message(transaction.description, days),
            date=now,
            type=NotificationType.DUE,
            link=transaction.id,
        )

    return None


def derive_due_notifications(
    transactions: Iterable[Transaction],
    today: date,
    now: datetime,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> List[Notification]:
    """Build the full due/overdue set for the ledger"""
    notifications = []
    for transaction in transactions:
        notification = due_notification_for(transaction, today, now, horizon_days)
        if notification is not None:
            notifications.append(notification)
    return notifications


def info_notification(message: str, now: datetime) -> Notification:
    return Notification(
        id=str(uuid.uuid4()),
        message=message,
        date=now,
        type=NotificationType.INFO,
    )


def sort_notifications(notifications: Iterable[Notification]) -> List[Notification]:
    """Newest first"""
    return sorted(notifications, key=lambda n: n.date, reverse=True)


def replace_derived(existing: Iterable[Notification], fresh: Iterable[Notification]) -> List[Notification]:
    """
    Swap the due/overdue part of `existing` for `fresh`.

    Read flags of replaced alerts are not carried over.
    """
    kept = [n for n in existing if n.type not in _DERIVED_TYPES]
    return sort_notifications(kept + list(fresh))
