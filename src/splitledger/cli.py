"""CLI for SplitLedger using Typer."""

import logging
import sys
from datetime import datetime
from decimal import Decimal, InvalidOperation

import typer
from rich.console import Console
from rich.table import Table

from .config import load_settings
from .db import Database
from .models import Balance, Group, Settlement, Split
from .service import LedgerService

app = typer.Typer(
    name="splitledger",
    help="Track shared expenses and work out who owes whom",
)

console = Console()


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def parse_amount(value: str) -> Decimal:
    """Parse a CLI amount argument into a Decimal."""
    try:
        amount = Decimal(value)
    except InvalidOperation:
        raise typer.BadParameter(f"Not a valid amount: {value}") from None
    if not amount.is_finite() or amount < 0:
        raise typer.BadParameter(f"Amount must be a non-negative number: {value}")
    return amount


def parse_split(value: str) -> Split:
    """Parse a PARTICIPANT=AMOUNT split argument."""
    participant_id, sep, amount = value.partition("=")
    if not sep or not participant_id:
        raise typer.BadParameter(f"Split must look like PARTICIPANT=AMOUNT: {value}")
    return Split(participant_id=participant_id.strip(), amount=parse_amount(amount))


def format_money(amount: Decimal, symbol: str = "$", use_color: bool = True) -> str:
    """
    Format money in accounting style with alignment.

    Negative amounts use parentheses: ($85.02)
    Positive amounts have spaces:      $85.02
    """
    abs_amount = abs(amount)
    if amount < 0:
        if use_color:
            return f"({symbol}[red]{abs_amount:,.2f}[/red])"
        return f"({symbol}{abs_amount:,.2f})"
    if use_color:
        return f" [green]{symbol}{abs_amount:,.2f}[/green] "
    return f" {symbol}{abs_amount:,.2f} "


def display_balances(balances: list[Balance], symbol: str = "$"):
    """Display balances in a table."""
    table = Table(title="Balances", show_header=True, header_style="bold magenta")
    table.add_column("Participant", style="cyan")
    table.add_column("Paid", justify="right")
    table.add_column("Owed", justify="right")
    table.add_column("Net", justify="right")

    for balance in balances:
        table.add_row(
            balance.name,
            format_money(balance.paid, symbol, use_color=False),
            format_money(balance.owed, symbol, use_color=False),
            format_money(balance.net, symbol),
        )

    console.print(table)


def display_settlements(settlements: list[Settlement], symbol: str = "$"):
    """Display settlements in a table."""
    if not settlements:
        console.print("[green]✓ All settled up[/green]")
        return

    table = Table(title="Settlements", show_header=True, header_style="bold magenta")
    table.add_column("From", style="cyan")
    table.add_column("To", style="cyan")
    table.add_column("Amount", justify="right")

    for settlement in settlements:
        table.add_row(
            settlement.source_name,
            settlement.destination_name,
            format_money(settlement.amount, symbol),
        )

    console.print(table)


@app.command("create-group")
def create_group(
    group_id: str = typer.Argument(..., help="Group ID"),
    name: str = typer.Option(..., "--name", "-n", help="Group display name"),
    description: str = typer.Option("", "--description", "-d", help="Description"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Create a new expense group."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)
        db.create_group(Group(id=group_id, name=name, description=description))
        console.print(f"[green]✓ Created group {name} ({group_id})[/green]")

    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if "db" in locals():
            db.close()


@app.command("add-member")
def add_member(
    group_id: str = typer.Argument(..., help="Group ID"),
    participant_id: str = typer.Argument(..., help="Participant ID"),
    name: str = typer.Option(None, "--name", "-n", help="Participant display name"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Add a participant to a group (appended to the membership order)."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)

        if db.get_group(group_id) is None:
            console.print(f"[yellow]Group not found: {group_id}[/yellow]")
            sys.exit(1)

        display_name = name or db.get_participant_name(participant_id) or participant_id
        db.save_participant(participant_id, display_name)

        if db.add_group_member(group_id, participant_id):
            console.print(f"[green]✓ Added {display_name} to {group_id}[/green]")
        else:
            console.print(f"[yellow]{display_name} is already in {group_id}[/yellow]")

    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if "db" in locals():
            db.close()


@app.command("add-expense")
def add_expense(
    group_id: str = typer.Argument(..., help="Group ID"),
    payer: str = typer.Option(..., "--payer", "-p", help="Participant who paid"),
    amount: str = typer.Option(..., "--amount", "-a", help="Total amount, e.g. 42.50"),
    title: str = typer.Option("", "--title", "-t", help="What the expense was for"),
    category: str = typer.Option("Other", "--category", help="Expense category"),
    split: list[str] = typer.Option(
        None,
        "--split",
        "-s",
        help="Explicit share as PARTICIPANT=AMOUNT (repeatable); "
        "omit to split equally across the group",
    ),
    notes: str = typer.Option("", "--notes", help="Free-form notes"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Record an expense in a group.

    Without --split the amount is divided equally across the group's members.
    With --split the shares must add up to the amount.
    """
    setup_logging(verbose)

    try:
        total = parse_amount(amount)
        splits = [parse_split(value) for value in split or []]

        settings = load_settings()
        db = Database(settings.database_path)
        service = LedgerService(settings, db)

        expense = service.record_expense(
            amount=total,
            payer_id=payer,
            group_id=group_id,
            splits=splits,
            split_mode="exact" if splits else "equal",
            title=title,
            category=category,
            notes=notes,
        )

        amount_str = format_money(
            expense.amount, settings.currency_symbol, use_color=False
        ).strip()
        console.print(
            f"[green]✓ Recorded {amount_str} paid by {payer} "
            f"({len(expense.splits)} shares)[/green]"
        )

    except typer.BadParameter as e:
        console.print(f"\n[bold red]Invalid input:[/bold red] {e}")
        sys.exit(2)
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if "db" in locals():
            db.close()


@app.command()
def balances(
    group_id: str = typer.Argument(..., help="Group ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show each member's balance and the transfers that settle the group."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)
        service = LedgerService(settings, db)

        ledger = service.compute_group_ledger(group_id)

        if not ledger.balances:
            console.print("[yellow]No expenses recorded for this group.[/yellow]")
            return

        console.print()
        display_balances(ledger.balances, settings.currency_symbol)
        console.print()
        display_settlements(ledger.settlements, settings.currency_symbol)

    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if "db" in locals():
            db.close()


@app.command()
def overview(
    participant_id: str = typer.Argument(..., help="Participant ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show what a participant pays or receives in every group they belong to."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)
        service = LedgerService(settings, db)

        groups = service.compute_participant_overview(participant_id)

        if not groups:
            console.print(f"[yellow]{participant_id} is not in any group.[/yellow]")
            return

        for group in groups:
            console.print(f"\n[bold]{group.group_name}[/bold] ({group.group_id})")
            display_settlements(group.settlements, settings.currency_symbol)

        totals = service.summarize_participant(participant_id)
        console.print(
            f"\n[bold]Net across all groups:[/bold] "
            f"{format_money(totals.balance, settings.currency_symbol)}"
        )

    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if "db" in locals():
            db.close()


@app.command("update-expense")
def update_expense(
    expense_id: str = typer.Argument(..., help="Expense ID"),
    amount: str = typer.Option(None, "--amount", "-a", help="New total amount"),
    title: str = typer.Option(None, "--title", "-t", help="New title"),
    category: str = typer.Option(None, "--category", help="New category"),
    split: list[str] = typer.Option(
        None,
        "--split",
        "-s",
        help="Replacement share as PARTICIPANT=AMOUNT (repeatable)",
    ),
    notes: str = typer.Option(None, "--notes", help="New notes"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Change an existing expense.

    Only the given fields change. Replacement shares must add up to the
    (new) amount.
    """
    setup_logging(verbose)

    try:
        total = parse_amount(amount) if amount is not None else None
        splits = [parse_split(value) for value in split or []]

        settings = load_settings()
        db = Database(settings.database_path)
        service = LedgerService(settings, db)

        expense = service.update_expense(
            expense_id,
            amount=total,
            splits=splits,
            split_mode="exact" if splits else None,
            title=title,
            category=category,
            notes=notes,
        )

        amount_str = format_money(
            expense.amount, settings.currency_symbol, use_color=False
        ).strip()
        console.print(
            f"[green]✓ Updated {expense.id}: {amount_str} "
            f"({len(expense.splits)} shares)[/green]"
        )

    except typer.BadParameter as e:
        console.print(f"\n[bold red]Invalid input:[/bold red] {e}")
        sys.exit(2)
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if "db" in locals():
            db.close()


@app.command("delete-expense")
def delete_expense(
    expense_id: str = typer.Argument(..., help="Expense ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Delete an expense."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)
        service = LedgerService(settings, db)

        service.delete_expense(expense_id)
        console.print(f"[green]✓ Deleted expense {expense_id}[/green]")

    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if "db" in locals():
            db.close()


@app.command()
def expenses(
    group_id: str = typer.Option(None, "--group", "-g", help="Only this group"),
    participant_id: str = typer.Option(
        None, "--participant", "-p", help="Only expenses this participant is part of"
    ),
    category: str = typer.Option(None, "--category", help="Only this category"),
    since: datetime = typer.Option(
        None, "--since", formats=["%Y-%m-%d"], help="On or after this date"
    ),
    until: datetime = typer.Option(
        None, "--until", formats=["%Y-%m-%d"], help="On or before this date"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """List expenses, newest first."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)
        service = LedgerService(settings, db)

        found = service.list_expenses(
            group_id=group_id,
            participant_id=participant_id,
            category=category,
            start=since.date() if since else None,
            end=until.date() if until else None,
        )

        if not found:
            console.print("[yellow]No expenses found.[/yellow]")
            return

        table = Table(title="Expenses", show_header=True, header_style="bold magenta")
        table.add_column("ID", style="dim")
        table.add_column("Date")
        table.add_column("Title", style="cyan")
        table.add_column("Category", style="yellow")
        table.add_column("Paid by")
        table.add_column("Amount", justify="right")

        for expense in found:
            table.add_row(
                expense.id,
                str(expense.expense_date or ""),
                expense.title,
                expense.category,
                expense.payer_name or expense.payer_id,
                format_money(expense.amount, settings.currency_symbol, use_color=False),
            )

        console.print(table)

    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if "db" in locals():
            db.close()


@app.command()
def summary(
    participant_id: str = typer.Argument(..., help="Participant ID"),
    group_id: str = typer.Option(None, "--group", "-g", help="Only this group"),
    since: datetime = typer.Option(
        None, "--since", formats=["%Y-%m-%d"], help="On or after this date"
    ),
    until: datetime = typer.Option(
        None, "--until", formats=["%Y-%m-%d"], help="On or before this date"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show what a participant paid and owes, with spending per category."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)
        service = LedgerService(settings, db)

        result = service.summarize_participant(
            participant_id,
            group_id=group_id,
            start=since.date() if since else None,
            end=until.date() if until else None,
        )
        symbol = settings.currency_symbol

        console.print(f"\n[bold]Summary for {participant_id}:[/bold]")
        console.print(f"  Expenses: {result.expense_count}")
        console.print(f"  Paid:     {format_money(result.total_spent, symbol, use_color=False)}")
        console.print(f"  Owed:     {format_money(result.total_owed, symbol, use_color=False)}")
        console.print(f"  Net:      {format_money(result.balance, symbol)}")

        if result.category_breakdown:
            table = Table(title="Paid by category", show_header=True)
            table.add_column("Category", style="yellow")
            table.add_column("Paid", justify="right")
            for name, paid in result.category_breakdown.items():
                table.add_row(name, format_money(paid, symbol, use_color=False))
            console.print(table)

    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if "db" in locals():
            db.close()


if __name__ == "__main__":
    app()
