from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from datetime import date, datetime
from typing import List, Optional, Union
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

CENTS = Decimal("0.01")

def to_money(value: Union[Decimal, float, int, str]) -> Decimal:
    """Coerce a numeric value to a Decimal rounded to cents"""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass
class Transaction:
    """A single standalone money movement"""
    date: date
    description: str
    amount: Decimal
    type: TransactionType
    category: str
    payer: str
    status: TransactionStatus = TransactionStatus.COMPLETED
    recurrence: Recurrence = Recurrence.NONE
    payment_method: PaymentMethod = PaymentMethod.PIX
    card_id: Optional[str] = None
    payment_details: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self):
        self.amount = to_money(self.amount)

    @property
    def signed_amount(self) -> Decimal:
        """Return amount with sign for balance calculations"""
        return self.amount if self.type == TransactionType.INCOME else -self.amount

    @property
    def is_completed(self) -> bool:
        return self.status == TransactionStatus.COMPLETED

    @property
    def base_description(self) -> str:
        return self.description

    def __repr__(self):
        sign = "+" if self.type == TransactionType.INCOME else "-"
        return f"Transaction({self.date}, {self.description[:30]}, {sign}R${self.amount})"


@dataclass(frozen=True)
class InstallmentInfo:
    """Position of a row inside an installment group"""
    current: int
    total: int
    parent_id: str

    @property
    def suffix(self) -> str:
        return f" ({self.current}/{self.total})"


@dataclass(kw_only=True)
class InstallmentTransaction(Transaction):
    """
    One sibling of a purchase split across several months.

    Siblings share `installment.parent_id`; deleting any of them deletes
    the whole group.
    """
    installment: InstallmentInfo

    @property
    def parent_id(self) -> str:
        return self.installment.parent_id

    @property
    def base_description(self) -> str:
        """Description without the ' (i/n)' suffix"""
        suffix = self.installment.suffix
        if self.description.endswith(suffix):
            return self.description[: -len(suffix)]
        return self.description.split(" (")[0]

    def __repr__(self):
        sign = "+" if self.type == TransactionType.INCOME else "-"
        return (
            f"InstallmentTransaction({self.date}, {self.description[:30]}, {sign}R${self.amount}, "
            f"{self.installment.current}/{self.installment.total})"
        )


@dataclass
class CreditCard:
    """Credit card; its open statement balance is always derived"""
    bank_name: str
    holder_name: str
    limit: Decimal
    closing_day: int
    due_day: int
    id: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self):
        self.limit = to_money(self.limit)


@dataclass
class Goal:
    """Savings goal. `current_amount` is progress recorded by the user."""
    name: str
    target_amount: Decimal
    initial_amount: Decimal
    start_date: date
    end_date: date
    current_amount: Optional[Decimal] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self):
        self.target_amount = to_money(self.target_amount)
        self.initial_amount = to_money(self.initial_amount)
        if self.current_amount is not None:
            self.current_amount = to_money(self.current_amount)

    @property
    def progress_percent(self) -> Decimal:
        """Progress towards the target, capped at 100"""
        if self.target_amount <= 0:
            return Decimal("100")
        current = self.current_amount if self.current_amount is not None else self.initial_amount
        percent = (current / self.target_amount * 100).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
        return min(percent, Decimal("100"))


@dataclass
class Category:
    name: str
    type: TransactionType
    id: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class Notification:
    """Alert shown to the user; info alerts are stored, due alerts are derived"""
    id: str
    message: str
    date: datetime
    type: NotificationType
    read: bool = False
    link: Optional[str] = None


@dataclass
class Profile:
    """Per-user settings row"""
    id: str
    user_name: str
    partner_name: Optional[str] = None
    mode: AppMode = AppMode.INDIVIDUAL
    theme: Theme = Theme.DARK
    has_access: bool = True
    plan: Plan = Plan.PRO

    @property
    def payers(self) -> List[str]:
        """Names allowed as a transaction payer"""
        names = [self.user_name]
        if self.mode == AppMode.COUPLE and self.partner_name:
            names.append(self.partner_name)
        return [name for name in names if name]
