"""
Validation predicates for ledger entities.

Every check raises ValidationError (or a subclass) and never mutates its
arguments, so a failed check leaves the caller's state untouched.
"""
from datetime import date
from typing import Iterable, List, Optional, Sequence

from flux.domain.enums import PaymentMethod
from flux.domain.models import (
    Category,
    CreditCard,
    Goal,
    InstallmentTransaction,
    Transaction,
)

class ValidationError(Exception):
    """Raised when an entity breaks one of its invariants."""
    pass

class DateMismatchError(ValidationError):
    """Raised when a transaction date falls outside the selected month."""
    pass


def is_same_month(day: date, selected: date) -> bool:
    return day.year == selected.year and day.month == selected.month


def ensure_in_selected_month(day: date, selected: date) -> None:
    """
    Check that `day` is inside the month currently in view.

    Raises:
        DateMismatchError: If year or month differ
    """
    if not is_same_month(day, selected):
        raise DateMismatchError(
            f"A data do lançamento ({day.isoformat()}) não corresponde ao mês "
            f"atualmente selecionado ({selected.month:02d}/{selected.year})."
        )


def validate_transaction(
    transaction: Transaction,
    categories: Iterable[Category],
    cards: Iterable[CreditCard],
    payers: Optional[Sequence[str]] = None,
) -> None:
    """
    Validate a transaction against the rest of the ledger.

    Args:
        transaction: Transaction to check
        categories: Known categories; the transaction's category must exist with the same type
        cards: Known cards; required when paying by credit
        payers: Household payer names. Skipped when None.

    Raises:
        ValidationError: On the first broken rule
    """
    if not transaction.description or not transaction.description.strip():
        raise ValidationError("A descrição é obrigatória.")

    if transaction.amount <= 0:
        raise ValidationError(f"O valor deve ser positivo (recebido {transaction.amount}).")

    if not transaction.payer:
        raise ValidationError("O responsável é obrigatório.")

    if payers is not None and transaction.payer not in payers:
        raise ValidationError(
            f"Responsável '{transaction.payer}' não reconhecido. "
            f"Opções: {', '.join(payers)}"
        )

    matching = [c for c in categories if c.name == transaction.category]
    if not matching:
        raise ValidationError(f"Categoria '{transaction.category}' não existe.")
    if not any(c.type == transaction.type for c in matching):
        raise ValidationError(
            f"Categoria '{transaction.category}' não é do tipo {transaction.type.value}."
        )

    if transaction.payment_method == PaymentMethod.CREDIT:
        if not transaction.card_id:
            raise ValidationError("Selecione o cartão de crédito.")
        if not any(card.id == transaction.card_id for card in cards):
            raise ValidationError(f"Cartão '{transaction.card_id}' não encontrado.")

    if isinstance(transaction, InstallmentTransaction):
        info = transaction.installment
        if info.total < 1 or not 1 <= info.current <= info.total:
            raise ValidationError(
                f"Parcela inválida: {info.current}/{info.total}."
            )
        if not info.parent_id:
            raise ValidationError("Parcela sem identificador de grupo.")


def validate_installment_group(items: Sequence[InstallmentTransaction]) -> None:
    """
    Check that a batch of siblings forms one consistent group.

    Raises:
        ValidationError: If the batch is empty, mixes groups, or numbering is off
    """
    if not items:
        raise ValidationError("Nenhuma parcela informada.")

    parent_ids = {item.installment.parent_id for item in items}
    if len(parent_ids) != 1:
        raise ValidationError("Todas as parcelas devem compartilhar o mesmo grupo.")

    totals = {item.installment.total for item in items}
    if totals != {len(items)}:
        raise ValidationError(
            f"Total de parcelas inconsistente: {sorted(totals)} para {len(items)} itens."
        )

    currents: List[int] = sorted(item.installment.current for item in items)
    if currents != list(range(1, len(items) + 1)):
        raise ValidationError(f"Numeração de parcelas inválida: {currents}.")


def validate_card(card: CreditCard) -> None:
    if not card.bank_name or not card.bank_name.strip():
        raise ValidationError("O nome do banco é obrigatório.")
    if not card.holder_name or not card.holder_name.strip():
        raise ValidationError("O nome do titular é obrigatório.")
    if card.limit <= 0:
        raise ValidationError("O limite deve ser positivo.")
    for label, day in (("fechamento", card.closing_day), ("vencimento", card.due_day)):
        if not 1 <= day <= 31:
            raise ValidationError(f"Dia de {label} deve estar entre 1 e 31 (recebido {day}).")


def validate_goal(goal: Goal) -> None:
    if not goal.name or not goal.name.strip():
        raise ValidationError("O nome da meta é obrigatório.")
    if goal.target_amount <= 0:
        raise ValidationError("O valor alvo deve ser positivo.")
    if goal.initial_amount < 0:
        raise ValidationError("O valor inicial não pode ser negativo.")
    if goal.end_date < goal.start_date:
        raise ValidationError("A data final deve ser posterior à data inicial.")


def validate_category(category: Category) -> None:
    if not category.name or not category.name.strip():
        raise ValidationError("O nome da categoria é obrigatório.")
