import logging
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from flux.config.settings import ConfigLoader, Settings
from flux.database.connection import DatabaseConfig, DatabaseManager
from flux.domain.enums import (
    AppMode,
    NotificationType,
    PaymentMethod,
    Recurrence,
    Theme,
    TransactionStatus,
    TransactionType,
)
from flux.domain.models import Category, CreditCard, Goal, InstallmentTransaction, Transaction
from flux.logging_config import configure_logging
from flux.repositories.base import LedgerRepository
from flux.repositories.sqlite_ledger_repository import SQLiteLedgerRepository
from flux.services.formatting import format_brl, month_label
from flux.services.ledger_store import LedgerStore

app = typer.Typer(
    name="flux",
    help="Track household income, expenses, cards and goals",
    add_completion=False,
)

console = Console()
logger = logging.getLogger(__name__)

class State:
    verbose: bool = False
    settings: Optional[Settings] = None
    store: Optional[LedgerStore] = None
    db_manager: Optional[DatabaseManager] = None
    selected_month: Optional[date] = None


state = State()


def build_repository(settings: Settings) -> LedgerRepository:
    """Create the repository for the configured backend"""
    if settings.backend == "supabase":
        from flux.repositories.supabase_ledger_repository import (
            SupabaseLedgerRepository,
            get_supabase_client,
        )
        client = get_supabase_client(settings.supabase_url, settings.supabase_key)
        return SupabaseLedgerRepository(client, settings.user_id)

    state.db_manager = DatabaseManager(DatabaseConfig(settings.db_path))
    state.db_manager.initialize()
    return SQLiteLedgerRepository(state.db_manager, settings.user_id)


def parse_month(value: Optional[str]) -> date:
    """'2024-03' -> date(2024, 3, 1); None -> first day of the current month"""
    if value is None:
        today = date.today()
        return date(today.year, today.month, 1)
    try:
        return datetime.strptime(value, "%Y-%m").date()
    except ValueError:
        raise typer.BadParameter(f"Expected YYYY-MM, got '{value}'")


def parse_amount(value: str) -> Decimal:
    """Accept '1234.56' or the Brazilian '1.234,56'"""
    text = value.strip()
    if "," in text:
        text = text.replace(".", "").replace(",", ".")
    try:
        return Decimal(text)
    except InvalidOperation:
        raise typer.BadParameter(f"Invalid amount '{value}'")


def default_entry_date(selected: date) -> date:
    """Today when the selected month is the current one, else its first day"""
    today = date.today()
    if (today.year, today.month) == (selected.year, selected.month):
        return today
    return date(selected.year, selected.month, 1)


def get_store() -> LedgerStore:
    if state.store is None:
        logger.debug("Using %s backend for user %s", state.settings.backend, state.settings.user_id)
        repository = build_repository(state.settings)
        state.store = LedgerStore(
            repository,
            selected_date=state.selected_month,
            due_horizon_days=state.settings.due_horizon_days,
            default_categories=ConfigLoader.load_default_categories(),
        )
        state.store.load()
    return state.store


def fail(e: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {e}")
    if state.verbose:
        console.print_exception()
    raise typer.Exit(code=1)


def amount_markup(transaction: Transaction) -> str:
    if transaction.type == TransactionType.EXPENSE:
        return f"[red]-{format_brl(transaction.amount)}[/red]"
    return f"[green]+{format_brl(transaction.amount)}[/green]"


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Enable verbose output",
    ),
    month: Optional[str] = typer.Option(
        None,
        "--month", "-m",
        help="Selected month as YYYY-MM (defaults to the current month)",
    ),
):
    """
    Flux - household finance tracker.
    """
    try:
        state.settings = Settings.from_env()
    except Exception as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        raise typer.Exit(code=1)

    state.verbose = verbose
    state.selected_month = parse_month(month)
    configure_logging(state.settings.log_level, verbose=verbose)


@app.command(name="init-db")
def init_db():
    """Create the local SQLite database and schema."""
    try:
        db_manager = DatabaseManager(DatabaseConfig(state.settings.db_path))
        with db_manager:
            db_manager.initialize()
            row = db_manager.get_connection().execute(
                "SELECT version, description FROM schema_version ORDER BY version DESC LIMIT 1"
            ).fetchone()
        console.print(f"[bold green]✓ Database ready at {state.settings.db_path}[/bold green]")
        if row:
            console.print(f"  Schema version: {row['version']} - {row['description']}")
    except Exception as e:
        fail(e)


@app.command(name="month")
def month_report():
    """
    Show the dashboard of the selected month.

    Examples:
        flux month
        flux --month 2024-03 month
    """
    try:
        store = get_store()
        snapshot = store.dashboard(recent_count=state.settings.recent_transactions)
        summary = snapshot.summary
        label = month_label(summary.year, summary.month)

        summary_text = (
            f"[green]💰 Receitas:[/green]          {format_brl(summary.total_income):>16}\n"
            f"[red]💸 Despesas:[/red]          {format_brl(summary.total_expense):>16}\n"
            f"{'─' * 38}\n"
            f"{'📈' if summary.result >= 0 else '📉'} Resultado do mês:   {format_brl(summary.result):>16}\n"
            f"🏦 Saldo final do mês: {format_brl(snapshot.closing_balance):>16}\n"
            f"🔮 Saldo inicial previsto do próximo mês: {format_brl(snapshot.next_month_opening_balance)}"
        )
        console.print(Panel(
            summary_text,
            title=f"[bold]{label}[/bold]",
            border_style="cyan",
            padding=(1, 2),
        ))

        if snapshot.category_breakdown:
            console.print("\n[bold]Gastos por categoria[/bold]")
            category_table = Table(show_header=True, box=None, padding=(0, 2))
            category_table.add_column("Categoria", style="cyan", no_wrap=True)
            category_table.add_column("Valor", justify="right", style="red")
            category_table.add_column("% do total", justify="right", style="dim")
            for item in snapshot.category_breakdown:
                share = item.total / summary.total_expense * 100 if summary.total_expense > 0 else 0
                category_table.add_row(item.name, format_brl(item.total), f"{share:.1f}%")
            console.print(category_table)

        console.print("\n[bold]Lançamentos recentes[/bold]")
        if not snapshot.recent_transactions:
            console.print("[yellow]Nenhum lançamento neste mês[/yellow]")
        for txn in snapshot.recent_transactions:
            console.print(f"  {txn.date}  {txn.description[:40]:<40} {amount_markup(txn)}")

    except Exception as e:
        fail(e)


@app.command(name="annual")
def annual_report(
    year: Optional[int] = typer.Option(None, "--year", "-y", help="Year (defaults to the selected month's year)"),
):
    """Show completed income and expense for each month of a year."""
    try:
        store = get_store()
        if year is not None:
            store.set_selected_date(date(year, store.selected_date.month, 1))
        points = store.dashboard().annual_projection

        table = Table(title=f"Projeção anual {store.selected_date.year}")
        table.add_column("Mês", style="cyan")
        table.add_column("Receita", justify="right", style="green")
        table.add_column("Despesa", justify="right", style="red")
        table.add_column("Saldo", justify="right")
        for point in points:
            table.add_row(point.label, format_brl(point.income), format_brl(point.expense), format_brl(point.net))
        console.print(table)
    except Exception as e:
        fail(e)


@app.command(name="list")
def list_transactions():
    """List the transactions of the selected month."""
    try:
        store = get_store()
        transactions = store.monthly_transactions

        table = Table(title=f"Lançamentos - {month_label(store.selected_date.year, store.selected_date.month)}")
        table.add_column("ID", style="dim", max_width=8)
        table.add_column("Data", style="cyan")
        table.add_column("Descrição", max_width=40)
        table.add_column("Categoria", style="magenta")
        table.add_column("Status")
        table.add_column("Valor", justify="right")
        for txn in transactions:
            table.add_row(
                txn.id[:8],
                str(txn.date),
                txn.description,
                txn.category,
                txn.status.value,
                amount_markup(txn),
            )
        console.print(table)
    except Exception as e:
        fail(e)


@app.command(name="add")
def add_transaction(
    description: str = typer.Argument(..., help="What the money was for"),
    amount: str = typer.Argument(..., help="Total amount, e.g. 150.90 or 1.234,56"),
    category: str = typer.Option(..., "--category", "-c", help="Category name"),
    transaction_type: TransactionType = typer.Option(TransactionType.EXPENSE, "--type", "-t", help="income or expense"),
    entry_date: Optional[datetime] = typer.Option(None, "--date", "-d", formats=["%Y-%m-%d"], help="Date (YYYY-MM-DD)"),
    payer: Optional[str] = typer.Option(None, "--payer", "-p", help="Who paid (defaults to the profile name)"),
    status: TransactionStatus = typer.Option(TransactionStatus.COMPLETED, "--status", "-s"),
    method: PaymentMethod = typer.Option(PaymentMethod.PIX, "--method"),
    card_id: Optional[str] = typer.Option(None, "--card", help="Card ID when paying by credit"),
    recurrence: Recurrence = typer.Option(Recurrence.NONE, "--recurrence"),
    installments: int = typer.Option(1, "--installments", "-i", min=1, max=60, help="Split into N monthly installments"),
):
    """
    Add a transaction to the selected month.

    Examples:
        flux add "Mercado" 230,45 -c Alimentação
        flux add "Notebook" 4500 -c Lazer --method crédito --card <id> -i 10
    """
    try:
        store = get_store()
        draft = Transaction(
            date=entry_date.date() if entry_date else default_entry_date(store.selected_date),
            description=description,
            amount=parse_amount(amount),
            type=transaction_type,
            category=category,
            payer=payer or store.profile.user_name,
            status=status,
            recurrence=recurrence,
            payment_method=method,
            card_id=card_id,
        )
        created = store.add_purchase(draft, installment_count=installments)

        for txn in created:
            console.print(f"[green]✓[/green] {txn.date}  {txn.description}  {amount_markup(txn)}  [dim]{txn.id}[/dim]")
    except Exception as e:
        fail(e)


@app.command(name="edit")
def edit_transaction(
    transaction_id: str = typer.Argument(..., help="Transaction ID"),
    description: Optional[str] = typer.Option(None, "--description"),
    amount: Optional[str] = typer.Option(None, "--amount"),
    entry_date: Optional[datetime] = typer.Option(None, "--date", "-d", formats=["%Y-%m-%d"]),
    category: Optional[str] = typer.Option(None, "--category", "-c"),
    status: Optional[TransactionStatus] = typer.Option(None, "--status", "-s"),
):
    """Edit a transaction of the selected month (one installment at a time)."""
    try:
        store = get_store()
        current = next((t for t in store.transactions if t.id == transaction_id), None)
        if current is None:
            raise ValueError(f"Transaction {transaction_id} not found")

        changes = {}
        if description is not None:
            changes["description"] = description
        if amount is not None:
            if isinstance(current, InstallmentTransaction):
                raise ValueError("O valor de uma parcela não pode ser editado")
            changes["amount"] = parse_amount(amount)
        if entry_date is not None:
            changes["date"] = entry_date.date()
        if category is not None:
            changes["category"] = category
        if status is not None:
            changes["status"] = status

        updated = store.update_transaction(transaction_id, replace(current, **changes))
        console.print(f"[green]✓ Updated[/green] {updated.date}  {updated.description}  {amount_markup(updated)}")
    except Exception as e:
        fail(e)


@app.command(name="delete")
def delete_transaction(
    transaction_id: str = typer.Argument(..., help="Transaction ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Don't ask before deleting a whole installment group"),
):
    """Delete a transaction; installments are deleted together."""
    try:
        store = get_store()
        target = next((t for t in store.transactions if t.id == transaction_id), None)
        if isinstance(target, InstallmentTransaction) and not yes:
            typer.confirm(
                "Este é um lançamento parcelado. Deseja excluir todas as parcelas relacionadas?",
                abort=True,
            )
        removed = store.delete_transaction(transaction_id)
        if removed:
            console.print(f"[green]✓ Removed {removed} transaction(s)[/green]")
        else:
            console.print("[yellow]Nothing to delete[/yellow]")
    except typer.Abort:
        raise
    except Exception as e:
        fail(e)


@app.command(name="cards")
def list_cards():
    """Show cards with their open statement and available limit."""
    try:
        store = get_store()
        table = Table(title="Cartões")
        table.add_column("ID", style="dim", max_width=8)
        table.add_column("Banco", style="cyan")
        table.add_column("Titular")
        table.add_column("Fecha/Vence", justify="center")
        table.add_column("Fatura aberta desde", justify="center")
        table.add_column("Fatura", justify="right", style="red")
        table.add_column("Disponível", justify="right", style="green")
        for statement in store.dashboard().statements:
            card = statement.card
            table.add_row(
                card.id[:8],
                card.bank_name,
                card.holder_name,
                f"{card.closing_day}/{card.due_day}",
                str(statement.period_start),
                format_brl(statement.total),
                format_brl(statement.available_limit),
            )
        console.print(table)
    except Exception as e:
        fail(e)


@app.command(name="card-add")
def add_card(
    bank_name: str = typer.Argument(...),
    limit: str = typer.Argument(..., help="Credit limit"),
    closing_day: int = typer.Option(..., "--closing", min=1, max=31),
    due_day: int = typer.Option(..., "--due", min=1, max=31),
    holder_name: Optional[str] = typer.Option(None, "--holder", help="Defaults to the profile name"),
):
    """Register a credit card."""
    try:
        store = get_store()
        card = store.add_card(CreditCard(
            bank_name=bank_name,
            holder_name=holder_name or store.profile.user_name,
            limit=parse_amount(limit),
            closing_day=closing_day,
            due_day=due_day,
        ))
        console.print(f"[green]✓ Card {card.bank_name} added[/green] [dim]{card.id}[/dim]")
    except Exception as e:
        fail(e)


@app.command(name="card-delete")
def delete_card(card_id: str = typer.Argument(...)):
    """Delete a credit card."""
    try:
        if get_store().delete_card(card_id):
            console.print("[green]✓ Card deleted[/green]")
        else:
            console.print("[yellow]Nothing to delete[/yellow]")
    except Exception as e:
        fail(e)


@app.command(name="goals")
def list_goals():
    """Show savings goals and their progress."""
    try:
        table = Table(title="Metas")
        table.add_column("ID", style="dim", max_width=8)
        table.add_column("Meta", style="cyan")
        table.add_column("Atual", justify="right")
        table.add_column("Alvo", justify="right")
        table.add_column("Progresso", justify="right")
        table.add_column("Prazo")
        for goal in get_store().goals:
            table.add_row(
                goal.id[:8],
                goal.name,
                format_brl(goal.current_amount or goal.initial_amount),
                format_brl(goal.target_amount),
                f"{goal.progress_percent}%",
                f"{goal.start_date} → {goal.end_date}",
            )
        console.print(table)
    except Exception as e:
        fail(e)


@app.command(name="goal-add")
def add_goal(
    name: str = typer.Argument(...),
    target: str = typer.Argument(..., help="Target amount"),
    end_date: datetime = typer.Option(..., "--end", formats=["%Y-%m-%d"]),
    initial: str = typer.Option("0", "--initial", help="Amount already saved"),
    start_date: Optional[datetime] = typer.Option(None, "--start", formats=["%Y-%m-%d"]),
):
    """Create a savings goal."""
    try:
        goal = get_store().add_goal(Goal(
            name=name,
            target_amount=parse_amount(target),
            initial_amount=parse_amount(initial),
            start_date=start_date.date() if start_date else date.today(),
            end_date=end_date.date(),
        ))
        console.print(f"[green]✓ Goal {goal.name} created[/green] [dim]{goal.id}[/dim]")
    except Exception as e:
        fail(e)


@app.command(name="goal-progress")
def goal_progress(
    goal_id: str = typer.Argument(...),
    current: str = typer.Argument(..., help="Amount saved so far"),
):
    """Record how much has been saved towards a goal."""
    try:
        store = get_store()
        goal = next((g for g in store.goals if g.id == goal_id), None)
        if goal is None:
            raise ValueError(f"Goal {goal_id} not found")
        updated = store.update_goal(goal_id, replace(goal, current_amount=parse_amount(current)))
        console.print(f"[green]✓ {updated.name}: {updated.progress_percent}%[/green]")
    except Exception as e:
        fail(e)


@app.command(name="categories")
def list_categories():
    """List income and expense categories."""
    try:
        store = get_store()
        for transaction_type, title, style in (
            (TransactionType.INCOME, "Receitas", "green"),
            (TransactionType.EXPENSE, "Despesas", "red"),
        ):
            console.print(f"[bold {style}]{title}[/bold {style}]")
            for category in store.categories_for(transaction_type):
                console.print(f"  • {category.name} [dim]{category.id}[/dim]")
    except Exception as e:
        fail(e)


@app.command(name="category-add")
def add_category(
    name: str = typer.Argument(...),
    transaction_type: TransactionType = typer.Option(TransactionType.EXPENSE, "--type", "-t"),
):
    """Create a category."""
    try:
        category = get_store().add_category(Category(name=name, type=transaction_type))
        console.print(f"[green]✓ Category {category.name} created[/green]")
    except Exception as e:
        fail(e)


@app.command(name="notifications")
def list_notifications(
    show_all: bool = typer.Option(False, "--all", "-a", help="Include read notifications"),
):
    """Show due/overdue bills and recent activity."""
    try:
        icons = {
            NotificationType.OVERDUE: "[red]⚠[/red]",
            NotificationType.DUE: "[yellow]⏰[/yellow]",
            NotificationType.INFO: "[cyan]ℹ[/cyan]",
        }
        notifications = [n for n in get_store().notifications if show_all or not n.read]
        if not notifications:
            console.print("[green]Nenhuma notificação[/green]")
        for notification in notifications:
            console.print(f"{icons[notification.type]} {notification.message} [dim]{notification.id}[/dim]")
    except Exception as e:
        fail(e)


@app.command(name="notifications-read")
def read_notification(notification_id: str = typer.Argument(...)):
    """Mark a notification as read."""
    try:
        get_store().mark_notification_as_read(notification_id)
    except Exception as e:
        fail(e)


@app.command(name="settings")
def update_settings(
    user_name: Optional[str] = typer.Option(None, "--name"),
    partner_name: Optional[str] = typer.Option(None, "--partner"),
    mode: Optional[AppMode] = typer.Option(None, "--mode"),
    theme: Optional[Theme] = typer.Option(None, "--theme"),
):
    """Show or change profile settings."""
    try:
        store = get_store()
        profile = store.profile
        changes = {
            key: value for key, value in (
                ("user_name", user_name),
                ("partner_name", partner_name),
                ("mode", mode),
                ("theme", theme),
            ) if value is not None
        }
        if changes:
            profile = store.update_settings(replace(profile, **changes))
            console.print("[green]✓ Configurações salvas.[/green]")

        console.print(Panel.fit(
            f"Nome: {profile.user_name}\n"
            f"Parceiro(a): {profile.partner_name or '-'}\n"
            f"Modo: {profile.mode.value}\n"
            f"Tema: {profile.theme.value}\n"
            f"Responsáveis: {', '.join(profile.payers)}",
            title="Configurações",
            border_style="cyan",
        ))
    except Exception as e:
        fail(e)


def cli_main():
    """Entry point for the CLI"""
    try:
        app()
    finally:
        if state.db_manager is not None:
            state.db_manager.close()


if __name__ == "__main__":
    cli_main()
