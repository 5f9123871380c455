from enum import Enum

class TransactionType(Enum):
    """Represents whether money is coming in or out"""
    INCOME = "income" # in
    EXPENSE = "expense" # out

class TransactionStatus(Enum):
    """Planned rows are expected obligations, completed rows are settled"""
    PLANNED = "previsto"
    COMPLETED = "realizado"

class Recurrence(Enum):
    NONE = "nenhuma"
    MONTHLY = "mensal"
    YEARLY = "anual"

class PaymentMethod(Enum):
    PIX = "pix"
    CREDIT = "crédito"
    DEBIT = "débito"
    CASH = "dinheiro"
    OTHER = "outro"

class NotificationType(Enum):
    DUE = "due"
    OVERDUE = "overdue"
    INFO = "info"

class AppMode(Enum):
    """Single user or a couple sharing one household ledger"""
    INDIVIDUAL = "individual"
    COUPLE = "couple"

class Theme(Enum):
    DARK = "dark"
    LIGHT = "light"

class Plan(Enum):
    FREE = "free"
    PRO = "pro"
    PREMIUM = "premium"
