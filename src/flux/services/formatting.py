from decimal import Decimal
from typing import Union

MONTH_LABELS = ["Jan", "Fev", "Mar", "Abr", "Mai", "Jun", "Jul", "Ago", "Set", "Out", "Nov", "Dez"]


def format_brl(amount: Union[Decimal, float, int]) -> str:
    """
    Format an amount as Brazilian reais.

    Example:
        >>> format_brl(Decimal("1234.5"))
        'R$ 1.234,50'
        >>> format_brl(Decimal("-10"))
        '-R$ 10,00'
    """
    value = Decimal(str(amount))
    sign = "-" if value < 0 else ""
    # 1,234.50 -> 1.234,50
    text = f"{abs(value):,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}R$ {text}"


def month_label(year: int, month: int) -> str:
    return f"{MONTH_LABELS[month - 1]}/{year}"
