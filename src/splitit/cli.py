"""CLI for SplitIt using Typer."""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from .backup import export_state, import_state
from .balances import is_settled, outstanding
from .config import load_settings
from .db import Database
from .exceptions import SplitError, SplitItError
from .models import EntryFilter, LedgerEntry, Person, SplitMode
from .service import LedgerService
from .ui import confirm, select_person_interactive, select_transfer_interactive

app = typer.Typer(
    name="splitit",
    help="Track shared expenses and work out who owes whom",
)
person_app = typer.Typer(help="Manage people")
group_app = typer.Typer(help="Manage groups")
expense_app = typer.Typer(help="Record and list expenses")

app.add_typer(person_app, name="person")
app.add_typer(group_app, name="group")
app.add_typer(expense_app, name="expense")

console = Console()


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


@contextmanager
def open_service(verbose: bool = False) -> Iterator[LedgerService]:
    """Load settings, open the database and report errors the way every command does."""
    setup_logging(verbose)
    db = None
    try:
        settings = load_settings()
        db = Database(settings.database_path)
        yield LedgerService(settings, db)
    except SplitError as e:
        console.print(f"\n[bold yellow]⚠️  {e}[/bold yellow]\n")
        sys.exit(1)
    except (SplitItError, ValueError) as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if db is not None:
            db.close()


def format_money(amount: Decimal, symbol: str = "", use_color: bool = True) -> str:
    """
    Format money in accounting style with alignment.

    Negative amounts use parentheses: (₹85.02)
    Positive amounts have spaces:      ₹85.02
    """
    abs_amount = abs(amount)
    if amount < 0:
        if use_color:
            return f"({symbol}[red]{abs_amount:,.2f}[/red])"
        return f"({symbol}{abs_amount:,.2f})"
    if use_color:
        return f" [green]{symbol}{abs_amount:,.2f}[/green] "
    return f" {symbol}{abs_amount:,.2f} "


def resolve_person(people: list[Person], ref: str) -> str:
    """Resolve a person id or (case-insensitive) name to an id."""
    for person in people:
        if person.id == ref:
            return person.id
    matches = [p for p in people if p.name.lower() == ref.lower()]
    if len(matches) == 1:
        return matches[0].id
    if matches:
        raise ValueError(f"More than one person is called {ref!r}; use their id")
    raise ValueError(f"Unknown person: {ref!r}")


def parse_mode_inputs(people: list[Person], pairs: list[str]) -> dict[str, Decimal]:
    """Parse ``name=value`` pairs into a person id -> Decimal mapping."""
    inputs = {}
    for pair in pairs:
        ref, sep, raw = pair.rpartition("=")
        if not sep or not ref:
            raise ValueError(f"Expected NAME=VALUE, got {pair!r}")
        try:
            inputs[resolve_person(people, ref.strip())] = Decimal(raw.strip())
        except InvalidOperation:
            raise ValueError(f"Not a number: {raw!r}") from None
    return inputs


def parse_day(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValueError(f"Dates must look like YYYY-MM-DD, got {value!r}") from None


# ============================================================================
# People
# ============================================================================


@person_app.command("add")
def person_add(
    name: str = typer.Argument(..., help="Display name"),
    contact: str | None = typer.Option(None, "--contact", help="Phone or email"),
    notes: str | None = typer.Option(None, "--notes", help="Free-text notes"),
    you: bool = typer.Option(False, "--you", help="Mark this person as you"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Add a person."""
    with open_service(verbose) as service:
        person = service.add_person(name, contact=contact, notes=notes, is_you=you)
        console.print(
            f"[green]✓ Added {person.name}[/green] [dim]({person.id})[/dim]"
        )


@person_app.command("list")
def person_list(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """List people with their net balance."""
    with open_service(verbose) as service:
        state = service.snapshot()
        balances = service.balances()
        symbol = state.settings.currency_symbol

        table = Table(title="People", show_header=True, header_style="bold magenta")
        table.add_column("Name", style="cyan")
        table.add_column("Contact", style="dim")
        table.add_column("Balance", justify="right")
        table.add_column("ID", style="dim")

        for person in state.people:
            name = f"{person.name} (you)" if person.is_you else person.name
            table.add_row(
                name,
                person.contact or "",
                format_money(balances.get(person.id, Decimal("0")), symbol),
                person.id,
            )

        console.print(table)


@person_app.command("remove")
def person_remove(
    person: str = typer.Argument(..., help="Person name or id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Remove a person. Their past entries are kept."""
    with open_service(verbose) as service:
        person_id = resolve_person(service.list_people(), person)
        if not yes and not confirm(f"Remove {person}?"):
            console.print("[yellow]Cancelled.[/yellow]")
            return
        service.remove_person(person_id)
        console.print(f"[green]✓ Removed {person}[/green]")


# ============================================================================
# Groups
# ============================================================================


@group_app.command("add")
def group_add(
    name: str = typer.Argument(..., help="Group name"),
    members: list[str] = typer.Option(
        [], "--member", "-m", help="Member name or id (repeatable)"
    ),
    description: str | None = typer.Option(None, "--description", "-d"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Add a group."""
    with open_service(verbose) as service:
        people = service.list_people()
        member_ids = [resolve_person(people, ref) for ref in members]
        group = service.add_group(name, member_ids, description=description)
        console.print(
            f"[green]✓ Added group {group.name}[/green] [dim]({group.id})[/dim]"
        )


@group_app.command("list")
def group_list(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """List groups with the balances inside each group."""
    with open_service(verbose) as service:
        state = service.snapshot()
        names = {person.id: person.name for person in state.people}
        symbol = state.settings.currency_symbol

        if not state.groups:
            console.print("[yellow]No groups yet.[/yellow]")
            return

        for group in state.groups:
            members = ", ".join(
                names.get(m, f"{m} (deleted)") for m in group.member_ids
            )
            console.print(f"\n[bold]{group.name}[/bold] [dim]({group.id})[/dim]")
            if group.description:
                console.print(f"  {group.description}")
            console.print(f"  Members: {members or 'none'}")

            open_balances = outstanding(service.group_balances(group.id))
            if not open_balances:
                console.print("  [green]Everyone is settled in this group.[/green]")
            for pid, value in open_balances.items():
                name = names.get(pid, f"{pid} (deleted)")
                console.print(f"  {name}: {format_money(value, symbol)}")


@group_app.command("remove")
def group_remove(
    group_id: str = typer.Argument(..., help="Group id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Remove a group. Its entries are kept without a group."""
    with open_service(verbose) as service:
        group = service.get_group(group_id)
        if not yes and not confirm(f"Remove group {group.name}?"):
            console.print("[yellow]Cancelled.[/yellow]")
            return
        service.remove_group(group_id)
        console.print(f"[green]✓ Removed group {group.name}[/green]")


# ============================================================================
# Expenses
# ============================================================================


@expense_app.command("add")
def expense_add(
    description: str = typer.Argument(..., help="What the expense was for"),
    amount: str = typer.Argument(..., help="Total amount"),
    payer: str | None = typer.Option(
        None, "--payer", "-p", help="Who paid (name or id); prompts if omitted"
    ),
    participants: list[str] = typer.Option(
        [], "--with", "-w", help="Participant name or id (repeatable); default everyone"
    ),
    mode: SplitMode = typer.Option(SplitMode.EQUAL, "--mode", "-m", help="Split mode"),
    shares: list[str] = typer.Option(
        [], "--share", "-s", help="NAME=VALUE amount, percent or weight (repeatable)"
    ),
    on: str | None = typer.Option(None, "--date", help="YYYY-MM-DD, default today"),
    group_id: str | None = typer.Option(None, "--group", "-g", help="Group id"),
    category: str | None = typer.Option(None, "--category", "-c"),
    notes: str = typer.Option("", "--notes"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Add an expense split between participants.

    Modes: equal (default), exact (--share amounts), percent (--share
    percentages summing to 100) and shares (--share weights).
    """
    with open_service(verbose) as service:
        people = service.list_people()
        payer_id = _payer_id(people, payer)
        if payer_id is None:
            console.print("[yellow]No payer selected.[/yellow]")
            return

        entry = service.add_expense(
            description=description,
            amount=_parse_amount(amount),
            payer_id=payer_id,
            participant_ids=_participant_ids(service, people, participants, group_id),
            mode=mode,
            mode_inputs=parse_mode_inputs(people, shares),
            on=parse_day(on),
            group_id=group_id,
            category=category,
            notes=notes,
        )

        display_entry(entry, people, service.get_app_settings().currency_symbol)
        console.print("\n[bold green]✓ Expense added[/bold green]")


@expense_app.command("edit")
def expense_edit(
    entry_id: str = typer.Argument(..., help="Entry id"),
    description: str | None = typer.Option(None, "--description"),
    amount: str | None = typer.Option(None, "--amount"),
    payer: str | None = typer.Option(None, "--payer", "-p"),
    participants: list[str] = typer.Option([], "--with", "-w"),
    mode: SplitMode = typer.Option(SplitMode.EQUAL, "--mode", "-m"),
    shares: list[str] = typer.Option([], "--share", "-s"),
    on: str | None = typer.Option(None, "--date"),
    group_id: str | None = typer.Option(None, "--group", "-g"),
    category: str | None = typer.Option(None, "--category", "-c"),
    notes: str | None = typer.Option(None, "--notes"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Edit an expense.

    Description, amount, payer, participants, date, group, category and notes
    keep their current values unless given. The split is always recomputed
    from --mode and --share, so an exact, percent or shares expense goes back
    to an equal split unless you pass its mode and shares again.
    """
    with open_service(verbose) as service:
        people = service.list_people()
        existing = service.get_entry(entry_id)

        participant_ids = (
            [resolve_person(people, ref) for ref in participants]
            if participants
            else [split.person_id for split in existing.splits]
        )
        entry = service.edit_expense(
            entry_id,
            description=description or existing.description,
            amount=_parse_amount(amount) if amount else existing.amount,
            payer_id=resolve_person(people, payer) if payer else existing.payer_id,
            participant_ids=participant_ids,
            mode=mode,
            mode_inputs=parse_mode_inputs(people, shares),
            on=parse_day(on) or existing.date,
            group_id=group_id or existing.group_id,
            category=category or existing.category,
            notes=existing.notes if notes is None else notes,
        )

        display_entry(entry, people, service.get_app_settings().currency_symbol)
        console.print("\n[bold green]✓ Expense updated[/bold green]")


@expense_app.command("list")
def expense_list(
    group_id: str | None = typer.Option(None, "--group", "-g"),
    person: str | None = typer.Option(None, "--person", "-p", help="Name or id"),
    category: str | None = typer.Option(None, "--category", "-c"),
    search: str | None = typer.Option(None, "--search", "-q"),
    date_from: str | None = typer.Option(None, "--from", help="YYYY-MM-DD"),
    date_to: str | None = typer.Option(None, "--to", help="YYYY-MM-DD"),
    sort_by: str = typer.Option(
        "date-desc", "--sort", help="date-desc, date-asc, amount-desc or amount-asc"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """List ledger entries."""
    with open_service(verbose) as service:
        state = service.snapshot()
        criteria = EntryFilter(
            group_id=group_id,
            person_id=resolve_person(state.people, person) if person else None,
            category=category,
            search=search,
            date_from=parse_day(date_from),
            date_to=parse_day(date_to),
            sort_by=sort_by,
        )
        entries = service.filter_entries(criteria)

        if not entries:
            console.print("[yellow]No entries found.[/yellow]")
            return

        names = {p.id: p.name for p in state.people}
        groups = {g.id: g.name for g in state.groups}
        symbol = state.settings.currency_symbol

        table = Table(title="Entries", show_header=True, header_style="bold magenta")
        table.add_column("Date", style="dim", width=10)
        table.add_column("Description", style="cyan", width=36)
        table.add_column("Amount", justify="right", width=12)
        table.add_column("Paid by")
        table.add_column("Group", style="dim")
        table.add_column("Category", style="yellow")
        table.add_column("ID", style="dim")

        for entry in entries:
            desc = entry.description
            if entry.kind == "settlement":
                desc += " (Settlement)"
            table.add_row(
                entry.date.isoformat(),
                desc[:36] + "..." if len(desc) > 36 else desc,
                format_money(entry.amount, symbol, use_color=False),
                names.get(entry.payer_id, f"{entry.payer_id} (deleted)"),
                groups.get(entry.group_id or "", ""),
                entry.category,
                entry.id,
            )

        console.print(table)


@expense_app.command("delete")
def expense_delete(
    entry_id: str = typer.Argument(..., help="Entry id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Delete a ledger entry."""
    with open_service(verbose) as service:
        entry = service.get_entry(entry_id)
        if not yes and not confirm(f"Delete '{entry.description}'?"):
            console.print("[yellow]Cancelled.[/yellow]")
            return
        service.delete_entry(entry_id)
        console.print(f"[green]✓ Deleted {entry.description}[/green]")


def _parse_amount(raw: str) -> Decimal:
    try:
        return Decimal(raw)
    except InvalidOperation:
        raise ValueError(f"Not a number: {raw!r}") from None


def _payer_id(people: list[Person], payer: str | None) -> str | None:
    if payer:
        return resolve_person(people, payer)
    return select_person_interactive(people, "Payer")


def _participant_ids(
    service: LedgerService,
    people: list[Person],
    participants: list[str],
    group_id: str | None,
) -> list[str]:
    if participants:
        return [resolve_person(people, ref) for ref in participants]
    if group_id:
        return service.get_group(group_id).member_ids
    return [person.id for person in people]


def display_entry(entry: LedgerEntry, people: list[Person], symbol: str):
    """Display an entry and its splits in a table."""
    names = {person.id: person.name for person in people}

    console.print(f"\n[bold]{entry.description}[/bold]")
    console.print(f"  Date: {entry.date}")
    console.print(f"  Paid by: {names.get(entry.payer_id, entry.payer_id)}")
    console.print(f"  Total: {format_money(entry.amount, symbol)}")

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Participant", style="cyan")
    table.add_column("Share", justify="right", width=12)
    for split in entry.splits:
        table.add_row(
            names.get(split.person_id, split.person_id),
            format_money(split.amount, symbol),
        )
    console.print(table)


# ============================================================================
# Balances & settling up
# ============================================================================


@app.command()
def balances(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show who owes and who is owed."""
    with open_service(verbose) as service:
        state = service.snapshot()
        names = {p.id: p.name for p in state.people}
        symbol = state.settings.currency_symbol
        net = service.balances()

        you = next((p for p in state.people if p.is_you), None)
        if you is not None:
            mine = net.get(you.id, Decimal("0"))
            if is_settled(mine):
                console.print("\n[bold]You are all settled up.[/bold]")
            elif mine > 0:
                owed = format_money(mine, symbol)
                console.print(f"\n[bold]You are owed {owed}[/bold]")
            else:
                console.print(f"\n[bold]You owe {format_money(-mine, symbol)}[/bold]")

        open_balances = outstanding(net)
        if not open_balances:
            console.print("[green]No net balances. Everyone is settled![/green]")
            return

        table = Table(title="Balances", show_header=True, header_style="bold magenta")
        table.add_column("Person", style="cyan")
        table.add_column("Balance", justify="right", width=14)
        table.add_column("Status")

        for pid, value in open_balances.items():
            name = names.get(pid, f"{pid} (deleted)")
            status = f"Others owe {name}" if value > 0 else f"{name} owes"
            table.add_row(name, format_money(value, symbol), status)

        console.print(table)


@app.command()
def suggest(
    group_id: str | None = typer.Option(
        None, "--group", "-g", help="Only settle this group's entries"
    ),
    interactive: bool = typer.Option(
        False, "--interactive", "-i", help="Pick a suggestion to record as paid"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Suggest payments that settle everyone up."""
    with open_service(verbose) as service:
        state = service.snapshot()
        names = {p.id: p.name for p in state.people}
        symbol = state.settings.currency_symbol
        transfers = service.suggest_transfers(group_id)

        if not transfers:
            console.print("[green]All settled up. No payments needed.[/green]")
            return

        if interactive:
            selected = select_transfer_interactive(transfers, names, symbol)
            if selected is None:
                console.print("[yellow]No settlement selected.[/yellow]")
                return
            transfer = transfers[selected]
            entry = service.record_transfer(transfer, group_id=group_id)
            console.print(
                f"\n[bold green]✓ Recorded: {entry.description}[/bold green]"
            )
            return

        table = Table(
            title="Suggested Settlements", show_header=True, header_style="bold magenta"
        )
        table.add_column("From", style="cyan")
        table.add_column("To", style="cyan")
        table.add_column("Amount", justify="right", width=14)
        for transfer in transfers:
            table.add_row(
                names.get(transfer.from_id, f"{transfer.from_id} (deleted)"),
                names.get(transfer.to_id, f"{transfer.to_id} (deleted)"),
                format_money(transfer.amount, symbol, use_color=False),
            )
        console.print(table)
        console.print(
            "\nRecord a payment with [cyan]splitit settle FROM TO AMOUNT[/cyan] "
            "or [cyan]splitit suggest --interactive[/cyan]\n"
        )


@app.command()
def settle(
    payer: str = typer.Argument(..., help="Who paid (name or id)"),
    payee: str = typer.Argument(..., help="Who received the money (name or id)"),
    amount: str = typer.Argument(..., help="Amount paid"),
    on: str | None = typer.Option(None, "--date", help="YYYY-MM-DD, default today"),
    group_id: str | None = typer.Option(None, "--group", "-g", help="Group id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Record a direct payment between two people."""
    with open_service(verbose) as service:
        people = service.list_people()
        from_id = resolve_person(people, payer)
        to_id = resolve_person(people, payee)
        value = _parse_amount(amount)
        symbol = service.get_app_settings().currency_symbol

        if not yes and not confirm(
            f"Mark settlement as paid: {payer} pays {payee} {symbol}{value:.2f}?"
        ):
            console.print("[yellow]Cancelled.[/yellow]")
            return

        entry = service.settle_up(
            from_id, to_id, value, on=parse_day(on), group_id=group_id
        )
        console.print(
            f"[bold green]✓ Settlement recorded[/bold green] [dim]({entry.id})[/dim]"
        )


# ============================================================================
# Settings & backup
# ============================================================================


@app.command()
def settings(
    currency: str | None = typer.Option(None, "--currency", help="Currency symbol"),
    theme: str | None = typer.Option(None, "--theme", help="light or dark"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show or change display settings."""
    with open_service(verbose) as service:
        changes = {}
        if currency:
            changes["currency_symbol"] = currency
        if theme:
            changes["theme"] = theme

        current = (
            service.update_app_settings(**changes)
            if changes
            else service.get_app_settings()
        )
        console.print(f"  Currency symbol: {current.currency_symbol}")
        console.print(f"  Theme: {current.theme}")


@app.command("export")
def export_cmd(
    path: Path = typer.Argument(Path("."), help="File or directory to write"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Back up everything to a JSON file."""
    with open_service(verbose) as service:
        written = export_state(service.snapshot(), path)
        console.print(f"[green]✓ Exported to {written}[/green]")


@app.command("import")
def import_cmd(
    path: Path = typer.Argument(..., help="Backup file to import"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Replace all data with the contents of a JSON backup."""
    with open_service(verbose) as service:
        state = import_state(path)
        console.print(
            f"Backup has {len(state.people)} people, {len(state.groups)} groups "
            f"and {len(state.entries)} entries."
        )
        if not yes and not confirm("Import data and overwrite current state?"):
            console.print("[yellow]Cancelled.[/yellow]")
            return
        service.replace_state(state)
        console.print("[bold green]✓ Data imported[/bold green]")


if __name__ == "__main__":
    app()
