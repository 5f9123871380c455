"""
Conversion between storage rows and domain models.

Rows use snake_case columns, ISO dates and amounts as decimal strings so
the same mapping works for SQLite and Supabase.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from flux.domain.enums import (
    AppMode,
    NotificationType,
    PaymentMethod,
    Plan,
    Recurrence,
    Theme,
    TransactionStatus,
    TransactionType,
)
from flux.domain.models import (
    Category,
    CreditCard,
    Goal,
    InstallmentInfo,
    InstallmentTransaction,
    Notification,
    Profile,
    Transaction,
)
from flux.repositories.base import Row


def _to_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _to_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    return Decimal(str(value))


def transaction_to_row(transaction: Transaction) -> Row:
    row = {
        "type": transaction.type.value,
        "amount": str(transaction.amount),
        "date": transaction.date.isoformat(),
        "description": transaction.description,
        "payer": transaction.payer,
        "category": transaction.category,
        "status": transaction.status.value,
        "recurrence": transaction.recurrence.value,
        "payment_method": transaction.payment_method.value,
        "payment_details": transaction.payment_details,
        "card_id": transaction.card_id,
        "installment_current": None,
        "installment_total": None,
        "installment_parent_id": None,
    }
    if isinstance(transaction, InstallmentTransaction):
        row.update(
            installment_current=transaction.installment.current,
            installment_total=transaction.installment.total,
            installment_parent_id=transaction.installment.parent_id,
        )
    return row


def row_to_transaction(row: Row) -> Transaction:
    """Build a Transaction, or an InstallmentTransaction when the row belongs to a group"""
    kwargs = dict(
        id=row["id"],
        created_at=_to_datetime(row.get("created_at")),
        type=TransactionType(row["type"]),
        amount=_to_decimal(row["amount"]),
        date=_to_date(row["date"]),
        description=row["description"],
        payer=row["payer"],
        category=row["category"],
        status=TransactionStatus(row["status"]),
        recurrence=Recurrence(row.get("recurrence") or Recurrence.NONE.value),
        payment_method=PaymentMethod(row.get("payment_method") or PaymentMethod.OTHER.value),
        payment_details=row.get("payment_details"),
        card_id=row.get("card_id"),
    )

    if row.get("installment_parent_id"):
        info = InstallmentInfo(
            current=int(row["installment_current"]),
            total=int(row["installment_total"]),
            parent_id=row["installment_parent_id"],
        )
        return InstallmentTransaction(installment=info, **kwargs)

    return Transaction(**kwargs)


def card_to_row(card: CreditCard) -> Row:
    return {
        "bank_name": card.bank_name,
        "holder_name": card.holder_name,
        "credit_limit": str(card.limit),
        "closing_day": card.closing_day,
        "due_day": card.due_day,
    }


def row_to_card(row: Row) -> CreditCard:
    return CreditCard(
        id=row["id"],
        created_at=_to_datetime(row.get("created_at")),
        bank_name=row["bank_name"],
        holder_name=row["holder_name"],
        limit=_to_decimal(row["credit_limit"]),
        closing_day=int(row["closing_day"]),
        due_day=int(row["due_day"]),
    )


def goal_to_row(goal: Goal) -> Row:
    return {
        "name": goal.name,
        "target_amount": str(goal.target_amount),
        "initial_amount": str(goal.initial_amount),
        "current_amount": str(goal.current_amount) if goal.current_amount is not None else None,
        "start_date": goal.start_date.isoformat(),
        "end_date": goal.end_date.isoformat(),
    }


def row_to_goal(row: Row) -> Goal:
    return Goal(
        id=row["id"],
        created_at=_to_datetime(row.get("created_at")),
        name=row["name"],
        target_amount=_to_decimal(row["target_amount"]),
        initial_amount=_to_decimal(row["initial_amount"]),
        current_amount=_to_decimal(row.get("current_amount")),
        start_date=_to_date(row["start_date"]),
        end_date=_to_date(row["end_date"]),
    )


def category_to_row(category: Category) -> Row:
    return {"name": category.name, "type": category.type.value}


def row_to_category(row: Row) -> Category:
    return Category(
        id=row["id"],
        created_at=_to_datetime(row.get("created_at")),
        name=row["name"],
        type=TransactionType(row["type"]),
    )


def profile_to_row(profile: Profile) -> Row:
    return {
        "id": profile.id,
        "user_name": profile.user_name,
        "partner_name": profile.partner_name,
        "mode": profile.mode.value,
        "theme": profile.theme.value,
        "has_access": profile.has_access,
        "plan": profile.plan.value,
    }


def row_to_profile(row: Row) -> Profile:
    return Profile(
        id=row["id"],
        user_name=row["user_name"],
        partner_name=row.get("partner_name"),
        mode=AppMode(row.get("mode") or AppMode.INDIVIDUAL.value),
        theme=Theme(row.get("theme") or Theme.DARK.value),
        has_access=bool(row.get("has_access", True)),
        plan=Plan(row.get("plan") or Plan.PRO.value),
    )


def notification_to_row(notification: Notification) -> Row:
    return {
        "message": notification.message,
        "date": notification.date.isoformat(),
        "type": notification.type.value,
        "read": notification.read,
        "link": notification.link,
    }


def row_to_notification(row: Row) -> Notification:
    return Notification(
        id=row["id"],
        message=row["message"],
        date=_to_datetime(row["date"]),
        type=NotificationType(row["type"]),
        read=bool(row.get("read", False)),
        link=row.get("link"),
    )
