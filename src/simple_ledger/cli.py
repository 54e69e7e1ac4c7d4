from datetime import date
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from simple_ledger.config.settings import Settings
from simple_ledger.database.connection import DatabaseConfig, DatabaseManager
from simple_ledger.domain.enums import AccountType, CategoryGranularity, Side
from simple_ledger.domain.errors import SimpleLedgerError, TransactionRejectedError
from simple_ledger.domain.models import JournalEntry, TransactionCandidate, ValidatedTransaction
from simple_ledger.logging_config import configure_logging
from simple_ledger.registry.chart_of_accounts import ChartOfAccounts
from simple_ledger.repositories.sqlite_account_repository import SQLiteAccountRepository
from simple_ledger.repositories.sqlite_transaction_repository import SQLiteTransactionRepository
from simple_ledger.services.ledger_service import LedgerService
from simple_ledger.validation.validator import parse_iso_date

app = typer.Typer(
    name="simple-ledger",
    help="Double-entry bookkeeping for individuals and small businesses",
    add_completion=False,
)

console = Console()


class State:
    verbose: bool = False
    settings: Optional[Settings] = None
    db_manager: Optional[DatabaseManager] = None
    service: Optional[LedgerService] = None


state = State()


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Enable verbose output",
    ),
    database: Optional[Path] = typer.Option(
        None,
        "--db",
        help="Path to the ledger database (overrides settings)",
    ),
):
    """
    Simple Ledger - record, correct and report double-entry transactions.
    """
    if state.settings is None:
        state.settings = Settings.load()

    configure_logging(
        level="DEBUG" if verbose else state.settings.log_level,
        fmt=state.settings.log_format,
    )

    if state.service is None:
        db_path = database or state.settings.database_path
        state.db_manager = DatabaseManager(DatabaseConfig(db_path))
        state.service = LedgerService(
            SQLiteAccountRepository(state.db_manager),
            SQLiteTransactionRepository(state.db_manager),
        )

    state.verbose = verbose


def _fail(error: Exception) -> None:
    """Print an error (and every validation problem) then exit with code 1"""
    console.print(f"[bold red]Error:[/bold red] {escape(str(error))}")
    if isinstance(error, TransactionRejectedError):
        for problem in error.errors:
            console.print(f"  [red]•[/red] [bold]{escape(problem.field)}[/bold]: {escape(problem.message)}")
    if state.verbose:
        console.print_exception()
    raise typer.Exit(code=1)


def _parse_postings(
    values: Optional[List[str]],
    side: Side,
    registry: ChartOfAccounts,
) -> List[JournalEntry]:
    """
    Turn 'CODE=AMOUNT[:memo]' options into journal entries.

    Amounts are integers in the smallest currency unit. Unknown codes are
    passed through with account id -1 so the validator reports them with
    the rest of the problems.
    """
    entries = []
    for value in values or []:
        try:
            code, rest = value.split("=", 1)
            amount_text, _, memo = rest.partition(":")
            amount = int(amount_text)
        except ValueError:
            raise typer.BadParameter(f"Expected CODE=AMOUNT[:memo], got {value!r}")

        account = registry.get_by_code(code.strip())
        entries.append(JournalEntry(
            account_id=account.id if account else -1,
            side=side,
            amount=amount,
            memo=memo.strip(),
        ))
    return entries


def _parse_date(value: Optional[str]) -> Optional[date]:
    if value is None:
        return None
    parsed = parse_iso_date(value)
    if parsed is None:
        raise typer.BadParameter(f"Invalid date {value!r}, use YYYY-MM-DD")
    return parsed


def _format_amount(amount: int) -> str:
    return f"{amount:,}"


def _transactions_table(
    transactions: List[ValidatedTransaction],
    registry: ChartOfAccounts,
    title: Optional[str] = None,
) -> Table:
    table = Table(title=title, show_header=True, padding=(0, 1))
    table.add_column("ID", justify="right", style="dim")
    table.add_column("Date", style="cyan", width=12)
    table.add_column("Memo", style="white", max_width=40)
    table.add_column("Debit", style="green")
    table.add_column("Credit", style="red")
    table.add_column("Amount", justify="right")

    for txn in transactions:
        def describe(side: Side) -> str:
            names = []
            for entry in txn.entries:
                if entry.side != side:
                    continue
                account = registry.get(entry.account_id)
                names.append(account.name if account else f"#{entry.account_id}")
            return ", ".join(names)

        memo = escape(txn.memo)
        if txn.is_correction:
            memo = f"[yellow]{memo}[/yellow]"

        table.add_row(
            str(txn.id),
            str(txn.date),
            memo,
            describe(Side.DEBIT),
            describe(Side.CREDIT),
            _format_amount(txn.debit_total),
        )
    return table


@app.command(name="init-db")
def init_db(
    seed: bool = typer.Option(
        True,
        "--seed/--no-seed",
        help="Load the default chart of accounts",
    ),
):
    """
    Create the database schema and (optionally) seed the chart of accounts.
    """
    try:
        version = state.db_manager.initialize()
        console.print(
            f"[green]✓[/green] Database ready at {state.db_manager.config.db_path} "
            f"(schema v{version})"
        )

        if seed:
            accounts = state.service.seed_chart_of_accounts()
            console.print(f"[green]✓[/green] Seeded {len(accounts)} accounts")
    except (SimpleLedgerError, OSError) as e:
        _fail(e)


@app.command(name="accounts")
def list_accounts(
    account_types: Optional[List[AccountType]] = typer.Option(
        None,
        "--type", "-t",
        help="Only show accounts of this type (repeatable)",
        case_sensitive=False,
    ),
):
    """
    List active accounts in the chart of accounts.

    Examples:
        simple-ledger accounts
        simple-ledger accounts --type revenue --type expense
    """
    try:
        registry = state.service.chart_of_accounts()
        types = set(account_types) if account_types else set(AccountType)
        accounts = registry.list_by_type(types)
    except SimpleLedgerError as e:
        _fail(e)

    table = Table(title="Chart of Accounts")
    table.add_column("Code", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Type", style="magenta")
    table.add_column("Normal Balance", justify="center")
    table.add_column("Description", style="dim")

    for account in accounts:
        table.add_row(
            account.code,
            account.name,
            account.type.value,
            account.normal_balance.value,
            account.description,
        )
    console.print(table)


@app.command(name="import-accounts")
def import_accounts(
    filepath: Path = typer.Argument(
        ...,
        help="CSV or Excel file with code,name,type columns",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    file_format: Optional[str] = typer.Option(
        None,
        "--format", "-f",
        help="File format (csv, xlsx, xls); defaults to the extension",
    ),
):
    """
    Import or update accounts from a spreadsheet.
    """
    try:
        accounts = state.service.import_chart_of_accounts(filepath, file_format)
    except (SimpleLedgerError, ValueError, FileNotFoundError) as e:
        _fail(e)

    console.print(f"[bold green]✓ Imported {len(accounts)} accounts[/bold green]")


@app.command(name="add")
def add_transaction(
    memo: str = typer.Argument(..., help="Transaction memo (max 100 characters)"),
    debit: Optional[List[str]] = typer.Option(
        None,
        "--debit", "-d",
        help="Debit posting as CODE=AMOUNT[:memo] (repeatable)",
    ),
    credit: Optional[List[str]] = typer.Option(
        None,
        "--credit", "-c",
        help="Credit posting as CODE=AMOUNT[:memo] (repeatable)",
    ),
    on: Optional[str] = typer.Option(
        None,
        "--date",
        help="Transaction date (YYYY-MM-DD), defaults to today",
    ),
):
    """
    Record a transaction.

    Examples:
        simple-ledger add "Sale" --debit 1000=1000 --credit 4000=1000
        simple-ledger add "Rent" -d 6300=800 -c 1010=800 --date 2025-01-31
    """
    try:
        registry = state.service.chart_of_accounts()
        entries = (
            _parse_postings(debit, Side.DEBIT, registry)
            + _parse_postings(credit, Side.CREDIT, registry)
        )
        candidate = TransactionCandidate.of(
            date=on or date.today(),
            memo=memo,
            entries=entries,
        )
        saved = state.service.create_transaction(candidate)
    except SimpleLedgerError as e:
        _fail(e)

    console.print(
        f"[bold green]✓ Recorded transaction #{saved.id}[/bold green] "
        f"({_format_amount(saved.debit_total)})"
    )


@app.command(name="list")
def list_transactions(
    page: int = typer.Option(1, "--page", "-p", min=1, help="Page number"),
    page_size: Optional[int] = typer.Option(None, "--page-size", min=1, help="Transactions per page"),
    keyword: Optional[str] = typer.Option(None, "--keyword", "-k", help="Search memos"),
):
    """
    List stored transactions, newest first.
    """
    try:
        result = state.service.get_page(
            page=page,
            page_size=page_size or state.settings.default_page_size,
            keyword=keyword,
        )
        registry = state.service.chart_of_accounts()
    except SimpleLedgerError as e:
        _fail(e)

    if result.total == 0:
        console.print(Panel(
            "[yellow]No transactions found[/yellow]",
            title="Empty Ledger",
            border_style="yellow"
        ))
        return

    console.print(_transactions_table(list(result.transactions), registry))
    footer = f"Page {result.page} - {len(result.transactions)} of {result.total} transactions"
    if result.has_next_page:
        footer += f" (next: --page {result.page + 1})"
    console.print(f"\n[dim]{footer}[/dim]")


@app.command(name="report")
def report(
    start: Optional[str] = typer.Option(None, "--from", help="Start date (YYYY-MM-DD)"),
    end: Optional[str] = typer.Option(None, "--to", help="End date (YYYY-MM-DD)"),
    by_type: bool = typer.Option(
        False,
        "--by-type",
        help="Group categories by account type instead of account",
    ),
    monthly: bool = typer.Option(False, "--monthly", help="Include monthly balances"),
):
    """
    Income, expense and balance report.

    Examples:
        simple-ledger report
        simple-ledger report --from 2025-01-01 --to 2025-03-31 --monthly
    """
    try:
        start_date = _parse_date(start)
        end_date = _parse_date(end)
        granularity = (
            CategoryGranularity.ACCOUNT_TYPE if by_type else CategoryGranularity.ACCOUNT
        )
        summary = state.service.get_summary(start_date, end_date, granularity)
        months = state.service.get_monthly_balances(start_date, end_date) if monthly else []
    except SimpleLedgerError as e:
        _fail(e)

    if summary.transaction_count == 0:
        console.print(Panel(
            "[yellow]No transactions found for this period[/yellow]",
            title="Empty Report",
            border_style="yellow"
        ))
        return

    summary_text = (
        f"[bold]Transactions:[/bold] {summary.transaction_count}\n\n"
        f"[green]Income:[/green]   {summary.total_income:>12,}\n"
        f"[red]Expense:[/red]  {summary.total_expense:>12,}\n"
        f"{'─' * 30}\n"
    )
    colour = "green" if summary.balance >= 0 else "red"
    summary_text += f"[bold {colour}]Balance:[/bold {colour}]  {summary.balance:>12,}"

    console.print(Panel(
        summary_text,
        title="[bold]Summary[/bold]",
        border_style="cyan",
        padding=(1, 2)
    ))

    for title, categories, colour in (
        ("Income by Category", summary.income_categories, "green"),
        ("Expense by Category", summary.expense_categories, "red"),
    ):
        if not categories:
            continue
        console.print(f"\n[bold]{title}[/bold]")
        table = Table(show_header=True, box=None, padding=(0, 2))
        table.add_column("Key", style="dim")
        table.add_column("Category", style="cyan", no_wrap=True)
        table.add_column("Amount", justify="right", style=colour)
        for category in categories:
            table.add_row(category.key, category.label, _format_amount(category.total))
        console.print(table)

    top = summary.top_expense_categories()
    if len(summary.expense_categories) > len(top):
        console.print("\n[bold]Top Expenses[/bold]")
        for rank, category in enumerate(top, start=1):
            console.print(f"  {rank}. {category.label}: {_format_amount(category.total)}")

    if months:
        console.print("\n[bold]Monthly Balances[/bold]")
        table = Table(show_header=True, padding=(0, 1))
        table.add_column("Month", style="cyan")
        table.add_column("Income", justify="right", style="green")
        table.add_column("Expense", justify="right", style="red")
        table.add_column("Balance", justify="right")
        for month in months:
            table.add_row(
                month.label,
                _format_amount(month.income),
                _format_amount(month.expense),
                _format_amount(month.balance),
            )
        console.print(table)


@app.command(name="balance")
def account_balance(
    code: str = typer.Argument(..., help="Account code"),
    as_of: Optional[str] = typer.Option(None, "--as-of", help="Balance as of date (YYYY-MM-DD)"),
):
    """
    Show the balance of one account on its normal-balance side.
    """
    try:
        balance = state.service.get_account_balance(code, end_date=_parse_date(as_of))
    except SimpleLedgerError as e:
        _fail(e)

    console.print(f"[bold]{code}[/bold]: {_format_amount(balance)}")


@app.command(name="correct")
def correct_transaction(
    transaction_id: int = typer.Argument(..., help="ID of the transaction to correct"),
    debit: Optional[List[str]] = typer.Option(
        None,
        "--debit", "-d",
        help="Corrected debit posting as CODE=AMOUNT[:memo] (repeatable)",
    ),
    credit: Optional[List[str]] = typer.Option(
        None,
        "--credit", "-c",
        help="Corrected credit posting as CODE=AMOUNT[:memo] (repeatable)",
    ),
    note: Optional[str] = typer.Option(None, "--note", "-n", help="Reason for the correction"),
    on: Optional[str] = typer.Option(
        None,
        "--date",
        help="Date of the corrected transaction (defaults to the original date)",
    ),
):
    """
    Correct a transaction with a reversal and a replacement.

    The original is kept; a reversal dated today cancels it and the
    replacement records the corrected entries.

    Examples:
        simple-ledger correct 12 -d 6400=300 -c 1000=300 --note "Wrong account"
    """
    try:
        registry = state.service.chart_of_accounts()
        entries = (
            _parse_postings(debit, Side.DEBIT, registry)
            + _parse_postings(credit, Side.CREDIT, registry)
        )
        correction = state.service.correct_transaction(
            transaction_id,
            entries,
            note=note,
            date=_parse_date(on),
        )
    except SimpleLedgerError as e:
        _fail(e)

    console.print(_transactions_table(
        [correction.reversal, correction.replacement],
        registry,
        title=f"Correction of #{transaction_id}",
    ))
    console.print(f"[bold green]✓ Correction {correction.state.value}[/bold green]")


@app.command(name="delete")
def delete_transaction(
    transaction_id: int = typer.Argument(..., help="ID of the transaction to delete"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """
    Delete a transaction and all of its entries.

    Prefer `correct` for posted transactions; deletion removes history.
    """
    if not yes:
        typer.confirm(f"Delete transaction #{transaction_id}?", abort=True)

    try:
        state.service.delete_transaction(transaction_id)
    except SimpleLedgerError as e:
        _fail(e)

    console.print(f"[green]✓[/green] Deleted transaction #{transaction_id}")


def cli_main():
    """Entry point for the CLI"""
    app()


if __name__ == "__main__":
    cli_main()
