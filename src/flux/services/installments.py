"""
Split a purchase into monthly installments.

The split rounds every installment down to the cent and gives the leftover
cents to the last one, so the installments always add up to the total.

Example:
    >>> [s.amount for s in split_installments(Decimal("100.00"), 3, date(2024, 3, 10))]
    [Decimal('33.33'), Decimal('33.33'), Decimal('33.34')]
"""
import logging
import uuid
from dataclasses import fields
from datetime import date
from decimal import Decimal, ROUND_FLOOR
from typing import Any, Dict, List, Optional, Sequence, Union

from flux.domain.enums import TransactionStatus
from flux.domain.models import (
    CENTS,
    InstallmentInfo,
    InstallmentTransaction,
    Transaction,
    to_money,
)
from flux.domain.validation import ValidationError
from flux.services.models import InstallmentSlice
from flux.services.periods import add_months

logger = logging.getLogger(__name__)

# Fields the server assigns; never copied from the template
_SERVER_FIELDS = ("id", "created_at")


def split_installments(
    total_amount: Union[Decimal, float, str],
    installment_count: int,
    start_date: date,
) -> List[InstallmentSlice]:
    """
    Compute dates and amounts for each installment.

    Args:
        total_amount: Purchase total, > 0
        installment_count: Number of installments, >= 1
        start_date: Date of the first installment

    Returns:
        One slice per installment; slice i is dated start_date + i months

    Raises:
        ValidationError: If the total is not positive or the count is below 1
    """
    total = to_money(total_amount)
    if total <= 0:
        raise ValidationError(f"O valor total deve ser positivo (recebido {total}).")
    if installment_count < 1:
        raise ValidationError(f"Número de parcelas inválido: {installment_count}.")

    base = (total / installment_count).quantize(CENTS, rounding=ROUND_FLOOR)
    remainder = total - base * installment_count

    slices = []
    for i in range(installment_count):
        amount = base + remainder if i == installment_count - 1 else base
        slices.append(InstallmentSlice(
            number=i + 1,
            date=add_months(start_date, i),
            amount=amount,
        ))

    return slices


def _template_kwargs(template: Transaction) -> Dict[str, Any]:
    return {
        f.name: getattr(template, f.name)
        for f in fields(Transaction)
        if f.name not in _SERVER_FIELDS
    }


def build_installment_batch(
    template: Transaction,
    installment_count: int,
    parent_id: Optional[str] = None,
    slices: Optional[Sequence[InstallmentSlice]] = None,
) -> List[InstallmentTransaction]:
    """
    Turn a transaction draft into sibling installment rows.

    The first sibling keeps the draft's status; every later one is planned.
    Descriptions get a ' (i/n)' suffix.

    Args:
        template: Draft carrying the full amount, first date and shared fields
        installment_count: Number of siblings to create
        parent_id: Group id, generated when omitted
        slices: Pre-computed (possibly user-edited) slices. Defaults to
            split_installments(template.amount, installment_count, template.date)

    Returns:
        Siblings ordered by installment number
    """
    if slices is None:
        slices = split_installments(template.amount, installment_count, template.date)
    elif len(slices) != installment_count:
        raise ValidationError(
            f"Esperadas {installment_count} parcelas, recebidas {len(slices)}."
        )

    parent_id = parent_id or str(uuid.uuid4())
    base_kwargs = _template_kwargs(template)

    siblings = []
    for index, piece in enumerate(slices):
        info = InstallmentInfo(current=index + 1, total=installment_count, parent_id=parent_id)
        kwargs = dict(base_kwargs)
        kwargs.update(
            date=piece.date,
            amount=piece.amount,
            description=f"{template.description}{info.suffix}",
            status=template.status if index == 0 else TransactionStatus.PLANNED,
        )
        siblings.append(InstallmentTransaction(installment=info, **kwargs))

    logger.debug(
        "Built %d installments for '%s' (group %s)",
        len(siblings), template.description, parent_id,
    )
    return siblings
