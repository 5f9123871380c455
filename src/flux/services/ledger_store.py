"""
In-memory ledger for the signed-in user.

The store owns the entity collections, applies mutations through the
repository (remote first, memory second) and tells subscribers when
something changed. Derived views are recomputed from the current state.

Usage:
    store = LedgerStore(repository)
    store.load()
    unsubscribe = store.subscribe(lambda store, event: print(event))
    store.add_transaction(Transaction(...))
"""
import logging
from dataclasses import fields, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from flux.domain.enums import NotificationType, TransactionType
from flux.domain.models import (
    Category,
    CreditCard,
    Goal,
    InstallmentTransaction,
    Notification,
    Profile,
    Transaction,
)
from flux.domain.validation import (
    ValidationError,
    ensure_in_selected_month,
    validate_card,
    validate_category,
    validate_goal,
    validate_installment_group,
    validate_transaction,
)
from flux.repositories import mappers
from flux.repositories.base import (
    CARDS,
    CATEGORIES,
    GOALS,
    NOTIFICATIONS,
    TRANSACTIONS,
    LedgerRepository,
    NotFoundError,
    RemoteFailure,
)
from flux.services.aggregation import build_dashboard, card_statement
from flux.services.formatting import format_brl
from flux.services.installments import build_installment_batch
from flux.services.models import CardStatement, DashboardSnapshot, InstallmentSlice
from flux.services.notifications import (
    DEFAULT_HORIZON_DAYS,
    derive_due_notifications,
    info_notification,
    replace_derived,
    sort_notifications,
)
from flux.services.periods import filter_month

logger = logging.getLogger(__name__)

Listener = Callable[["LedgerStore", str], None]
T = TypeVar("T")


def _local_now() -> datetime:
    return datetime.now().astimezone()


def _find(items: Sequence[T], item_id: str) -> Optional[T]:
    return next((item for item in items if item.id == item_id), None)


def _replaced(items: Sequence[T], item_id: str, new_item: T) -> List[T]:
    return [new_item if item.id == item_id else item for item in items]


class LedgerStore:
    """
    Explicit state container for one user's ledger.

    Read values are snapshots (new lists) so callers can't change the
    store behind its back. Every mutation:
        1. validates (raising ValidationError, nothing applied)
        2. awaits the repository (RemoteFailure propagates, nothing applied)
        3. updates memory, appends (and stores) an info notification and re-derives
           due/overdue alerts
        4. notifies subscribers
    """

    def __init__(
        self,
        repository: LedgerRepository,
        selected_date: Optional[date] = None,
        clock: Optional[Callable[[], datetime]] = None,
        due_horizon_days: int = DEFAULT_HORIZON_DAYS,
        default_categories: Optional[List[Dict[str, str]]] = None,
    ):
        """
        Initialize the store.

        Args:
            repository: Persistence backend, already scoped to the user
            selected_date: Month initially in view. Defaults to today.
            clock: Returns "now"; injectable for tests
            due_horizon_days: How far ahead planned expenses raise a due alert
            default_categories: Seed used by load() when the user has no categories
        """
        self.repository = repository
        self._clock = clock or _local_now
        self.due_horizon_days = due_horizon_days
        self._default_categories = default_categories or []

        self._selected_date: date = selected_date or self._clock().date()
        self._transactions: List[Transaction] = []
        self._cards: List[CreditCard] = []
        self._goals: List[Goal] = []
        self._categories: List[Category] = []
        self._notifications: List[Notification] = []
        self._profile: Optional[Profile] = None

        self._listeners: List[Listener] = []
        self._version = 0
        self._monthly_cache: Optional[Tuple[int, int, int, List[Transaction]]] = None

    # ------------------------------------------------------------------
    # Read values
    # ------------------------------------------------------------------

    @property
    def transactions(self) -> List[Transaction]:
        return list(self._transactions)

    @property
    def monthly_transactions(self) -> List[Transaction]:
        """Transactions of the selected month, newest first"""
        key = (self._version, self._selected_date.year, self._selected_date.month)
        if self._monthly_cache is None or self._monthly_cache[:3] != key:
            self._monthly_cache = (*key, filter_month(self._transactions, self._selected_date))
        return list(self._monthly_cache[3])

    @property
    def cards(self) -> List[CreditCard]:
        return list(self._cards)

    @property
    def goals(self) -> List[Goal]:
        return list(self._goals)

    @property
    def categories(self) -> List[Category]:
        return list(self._categories)

    @property
    def notifications(self) -> List[Notification]:
        return list(self._notifications)

    @property
    def selected_date(self) -> date:
        return self._selected_date

    @property
    def profile(self) -> Optional[Profile]:
        return self._profile

    @property
    def payers(self) -> Optional[List[str]]:
        """Household payer names, None until a profile is loaded"""
        return self._profile.payers if self._profile else None

    @property
    def today(self) -> date:
        return self._clock().date()

    def categories_for(self, transaction_type: TransactionType) -> List[Category]:
        return [c for c in self._categories if c.type == transaction_type]

    def dashboard(self, recent_count: int = 5) -> DashboardSnapshot:
        """All dashboard figures for the selected month"""
        return build_dashboard(
            self._transactions,
            self._cards,
            self._selected_date,
            self.today,
            recent_count=recent_count,
        )

    def card_statement(self, card_id: str) -> CardStatement:
        """
        Open statement of a card.

        Raises:
            NotFoundError: If the card doesn't exist
        """
        card = _find(self._cards, card_id)
        if card is None:
            raise NotFoundError(f"Card with ID {card_id} not found")
        return card_statement(card, self._transactions, self.today)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a change listener.

        Args:
            listener: Called as listener(store, event) after each change.
                Events: 'loaded', 'selected_date', 'transactions', 'cards',
                'goals', 'categories', 'settings', 'notifications'

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: str) -> None:
        for listener in list(self._listeners):
            listener(self, event)

    # ------------------------------------------------------------------
    # Loading and month selection
    # ------------------------------------------------------------------

    def load(self) -> None:
        """
        Fetch the user's data from the repository.

        Creates a default profile and seeds the default categories for a
        user that has neither.
        """
        profile_row = self.repository.fetch_profile()
        if profile_row is None:
            logger.info("No profile found, creating one for user %s", self.repository.user_id)
            profile_row = self.repository.save_profile(
                mappers.profile_to_row(Profile(id=self.repository.user_id, user_name=self.repository.user_id))
            )

        category_rows = self.repository.fetch_all(CATEGORIES)
        if not category_rows and self._default_categories:
            logger.info("Seeding %d default categories", len(self._default_categories))
            category_rows = self.repository.insert_many(
                CATEGORIES,
                [{"name": c["name"], "type": c["type"]} for c in self._default_categories],
            )

        transactions = [mappers.row_to_transaction(r) for r in self.repository.fetch_all(TRANSACTIONS)]
        cards = [mappers.row_to_card(r) for r in self.repository.fetch_all(CARDS)]
        goals = [mappers.row_to_goal(r) for r in self.repository.fetch_all(GOALS)]
        saved_notifications = [
            mappers.row_to_notification(r) for r in self.repository.fetch_all(NOTIFICATIONS)
        ]

        self._profile = mappers.row_to_profile(profile_row)
        self._categories = [mappers.row_to_category(r) for r in category_rows]
        self._transactions = transactions
        self._cards = cards
        self._goals = goals
        self._notifications = sort_notifications(saved_notifications)
        self._touch_transactions()

        logger.info(
            "Loaded %d transactions, %d cards, %d goals, %d categories",
            len(self._transactions), len(self._cards), len(self._goals), len(self._categories),
        )
        self._emit("loaded")

    def set_selected_date(self, selected: date) -> None:
        """Change the month in view. No data is modified."""
        self._selected_date = selected
        self._refresh_due_notifications()
        self._emit("selected_date")

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def add_transaction(self, transaction: Transaction) -> Transaction:
        """
        Add a standalone transaction dated in the selected month.

        Raises:
            DateMismatchError: If the date is outside the selected month
            ValidationError: If the transaction breaks an entity rule
        """
        if isinstance(transaction, InstallmentTransaction):
            raise ValidationError("Parcelas devem ser adicionadas com add_installment_batch.")

        ensure_in_selected_month(transaction.date, self._selected_date)
        validate_transaction(transaction, self._categories, self._cards, self.payers)

        row = self.repository.insert(TRANSACTIONS, mappers.transaction_to_row(transaction))
        created = mappers.row_to_transaction(row)

        self._transactions.append(created)
        self._touch_transactions()

        type_text = "Receita" if created.type == TransactionType.INCOME else "Despesa"
        self._notify(f'{type_text} "{created.description}" criada.')
        logger.info("Transaction %s added (%s)", created.id, format_brl(created.amount))
        self._emit("transactions")
        return created

    def add_installment_batch(self, items: Sequence[InstallmentTransaction]) -> List[InstallmentTransaction]:
        """
        Add every sibling of an installment group in one repository call.

        Siblings span several months, so the selected-month rule does not apply.

        Raises:
            ValidationError: If the group or any sibling is inconsistent
        """
        validate_installment_group(items)
        for item in items:
            validate_transaction(item, self._categories, self._cards, self.payers)

        rows = self.repository.insert_many(TRANSACTIONS, [mappers.transaction_to_row(t) for t in items])
        created = [mappers.row_to_transaction(r) for r in rows]

        self._transactions.extend(created)
        self._touch_transactions()

        first = created[0]
        total = sum((t.amount for t in created), Decimal("0"))
        type_text = "Receita" if first.type == TransactionType.INCOME else "Despesa"
        self._notify(
            f'{type_text} parcelada "{first.base_description}" ({len(created)}x) '
            f"no valor total de {format_brl(total)} criada."
        )
        logger.info("Installment group %s added with %d rows", items[0].parent_id, len(created))
        self._emit("transactions")
        return created

    def add_purchase(
        self,
        transaction: Transaction,
        installment_count: int = 1,
        slices: Optional[Sequence[InstallmentSlice]] = None,
    ) -> List[Transaction]:
        """
        Save what the transaction form submits.

        A single installment is a plain add_transaction; more are split
        and added as one group.
        """
        if installment_count <= 1:
            return [self.add_transaction(transaction)]
        batch = build_installment_batch(transaction, installment_count, slices=slices)
        return list(self.add_installment_batch(batch))

    def update_transaction(self, transaction_id: str, transaction: Transaction) -> Transaction:
        """
        Replace a transaction. Only the given row changes, even for installments.

        An installment sibling always keeps its group position; a standalone
        row stays standalone.

        Raises:
            NotFoundError: If no transaction has `transaction_id`
            DateMismatchError: If the new date is outside the selected month
            ValidationError: If `transaction` carries a different installment
                position than the stored row
        """
        existing = _find(self._transactions, transaction_id)
        if existing is None:
            raise NotFoundError(f"Transaction with ID {transaction_id} not found")

        ensure_in_selected_month(transaction.date, self._selected_date)

        if isinstance(existing, InstallmentTransaction):
            if isinstance(transaction, InstallmentTransaction) and transaction.installment != existing.installment:
                raise ValidationError("A posição da parcela no parcelamento não pode ser alterada.")
            transaction = InstallmentTransaction(
                installment=existing.installment,
                **{f.name: getattr(transaction, f.name) for f in fields(Transaction)},
            )
        elif isinstance(transaction, InstallmentTransaction):
            raise ValidationError("Um lançamento avulso não pode virar parcela.")

        validate_transaction(transaction, self._categories, self._cards, self.payers)

        row = self.repository.update(TRANSACTIONS, transaction_id, mappers.transaction_to_row(transaction))
        updated = mappers.row_to_transaction(row)

        self._transactions = _replaced(self._transactions, transaction_id, updated)
        self._touch_transactions()

        self._notify(f'Lançamento "{updated.description}" atualizado.')
        logger.info("Transaction %s updated", transaction_id)
        self._emit("transactions")
        return updated

    def delete_transaction(self, transaction_id: str) -> int:
        """
        Delete a transaction, or its whole installment group.

        Unknown ids are ignored.

        Returns:
            Number of transactions removed
        """
        target = _find(self._transactions, transaction_id)
        if target is None:
            logger.debug("Delete ignored: transaction %s not found", transaction_id)
            return 0

        if isinstance(target, InstallmentTransaction):
            parent_id = target.parent_id
            self.repository.delete_where(TRANSACTIONS, "installment_parent_id", parent_id)
            remaining = [
                t for t in self._transactions
                if not (isinstance(t, InstallmentTransaction) and t.parent_id == parent_id)
            ]
            message = f'Parcelamento "{target.base_description}" e todas as suas parcelas foram excluídos.'
        else:
            self.repository.delete(TRANSACTIONS, transaction_id)
            remaining = [t for t in self._transactions if t.id != transaction_id]
            message = f'Lançamento "{target.description}" excluído.'

        removed = len(self._transactions) - len(remaining)
        self._transactions = remaining
        self._touch_transactions()

        self._notify(message)
        logger.info("Deleted %d transaction(s) starting from %s", removed, transaction_id)
        self._emit("transactions")
        return removed

    # ------------------------------------------------------------------
    # Cards
    # ------------------------------------------------------------------

    def add_card(self, card: CreditCard) -> CreditCard:
        validate_card(card)
        created = mappers.row_to_card(self.repository.insert(CARDS, mappers.card_to_row(card)))
        self._cards.append(created)
        self._notify(f'Cartão "{created.bank_name}" adicionado.')
        logger.info("Card %s added", created.id)
        self._emit("cards")
        return created

    def update_card(self, card_id: str, card: CreditCard) -> CreditCard:
        """
        Raises:
            NotFoundError: If no card has `card_id`
        """
        if _find(self._cards, card_id) is None:
            raise NotFoundError(f"Card with ID {card_id} not found")
        validate_card(card)
        updated = mappers.row_to_card(self.repository.update(CARDS, card_id, mappers.card_to_row(card)))
        self._cards = _replaced(self._cards, card_id, updated)
        self._notify(f'Cartão "{updated.bank_name}" atualizado.')
        logger.info("Card %s updated", card_id)
        self._emit("cards")
        return updated

    def delete_card(self, card_id: str) -> bool:
        card = _find(self._cards, card_id)
        if card is None:
            return False
        self.repository.delete(CARDS, card_id)
        self._cards = [c for c in self._cards if c.id != card_id]
        self._notify(f'Cartão "{card.bank_name}" excluído.')
        logger.info("Card %s deleted", card_id)
        self._emit("cards")
        return True

    # ------------------------------------------------------------------
    # Goals
    # ------------------------------------------------------------------

    def add_goal(self, goal: Goal) -> Goal:
        """Create a goal; its progress starts at the initial amount"""
        validate_goal(goal)
        goal = replace(goal, current_amount=goal.initial_amount)
        created = mappers.row_to_goal(self.repository.insert(GOALS, mappers.goal_to_row(goal)))
        self._goals.append(created)
        self._notify(f'Meta "{created.name}" criada.')
        logger.info("Goal %s added", created.id)
        self._emit("goals")
        return created

    def update_goal(self, goal_id: str, goal: Goal) -> Goal:
        if _find(self._goals, goal_id) is None:
            raise NotFoundError(f"Goal with ID {goal_id} not found")
        validate_goal(goal)
        updated = mappers.row_to_goal(self.repository.update(GOALS, goal_id, mappers.goal_to_row(goal)))
        self._goals = _replaced(self._goals, goal_id, updated)
        self._notify(f'Meta "{updated.name}" atualizada.')
        logger.info("Goal %s updated", goal_id)
        self._emit("goals")
        return updated

    def delete_goal(self, goal_id: str) -> bool:
        goal = _find(self._goals, goal_id)
        if goal is None:
            return False
        self.repository.delete(GOALS, goal_id)
        self._goals = [g for g in self._goals if g.id != goal_id]
        self._notify(f'Meta "{goal.name}" excluída.')
        logger.info("Goal %s deleted", goal_id)
        self._emit("goals")
        return True

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def add_category(self, category: Category) -> Category:
        validate_category(category)
        created = mappers.row_to_category(
            self.repository.insert(CATEGORIES, mappers.category_to_row(category))
        )
        self._categories.append(created)
        self._notify(f'Categoria "{created.name}" criada.')
        logger.info("Category %s added", created.id)
        self._emit("categories")
        return created

    def update_category(self, category_id: str, category: Category) -> Category:
        if _find(self._categories, category_id) is None:
            raise NotFoundError(f"Category with ID {category_id} not found")
        validate_category(category)
        updated = mappers.row_to_category(
            self.repository.update(CATEGORIES, category_id, mappers.category_to_row(category))
        )
        self._categories = _replaced(self._categories, category_id, updated)
        self._notify(f'Categoria "{updated.name}" atualizada.')
        logger.info("Category %s updated", category_id)
        self._emit("categories")
        return updated

    def delete_category(self, category_id: str) -> bool:
        category = _find(self._categories, category_id)
        if category is None:
            return False
        self.repository.delete(CATEGORIES, category_id)
        self._categories = [c for c in self._categories if c.id != category_id]
        self._notify(f'Categoria "{category.name}" excluída.')
        logger.info("Category %s deleted", category_id)
        self._emit("categories")
        return True

    # ------------------------------------------------------------------
    # Settings and notifications
    # ------------------------------------------------------------------

    def update_settings(self, profile: Profile) -> Profile:
        if not profile.user_name or not profile.user_name.strip():
            raise ValidationError("O nome do usuário é obrigatório.")
        row = self.repository.save_profile(mappers.profile_to_row(profile))
        self._profile = mappers.row_to_profile(row)
        self._notify("Configurações salvas.")
        logger.info("Settings saved for user %s", self._profile.id)
        self._emit("settings")
        return self._profile

    def mark_notification_as_read(self, notification_id: str) -> None:
        """
        Flag a notification as read.

        Info notifications keep the flag across loads; due/overdue alerts
        lose it the next time they are regenerated.
        """
        target = _find(self._notifications, notification_id)
        if target is None or target.read:
            return

        if target.type == NotificationType.INFO:
            try:
                self.repository.update(NOTIFICATIONS, notification_id, {"read": True})
            except NotFoundError:
                logger.debug("Notification %s was never stored, marking it in memory only", notification_id)

        self._notifications = [
            replace(n, read=True) if n.id == notification_id else n
            for n in self._notifications
        ]
        self._emit("notifications")

    def _notify(self, message: str) -> None:
        """Append an info notification and store it"""
        notification = info_notification(message, self._clock())
        try:
            row = self.repository.insert(NOTIFICATIONS, mappers.notification_to_row(notification))
            notification = mappers.row_to_notification(row)
        except RemoteFailure as e:
            # Kept for this session only
            logger.error('Could not store notification "%s": %s', message, e)
        self._notifications = sort_notifications([notification, *self._notifications])

    def _touch_transactions(self) -> None:
        self._version += 1
        self._refresh_due_notifications()

    def _refresh_due_notifications(self) -> None:
        now = self._clock()
        fresh = derive_due_notifications(self._transactions, now.date(), now, self.due_horizon_days)
        self._notifications = replace_derived(self._notifications, fresh)
