import os
import json
from datetime import date
from typing import Any, Dict, List

from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from lending.book import Book
from lending.config import settings
from lending.loan import Loan
from lending.member import Member

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, settings.output_mode).lower()


def _loan_row(loan: Loan, today: date) -> Dict[str, Any]:
    return {
        "loan_id": loan.loan_id,
        "book_id": loan.book_id,
        "member_id": loan.member_id,
        "issue_date": loan.issue_date.isoformat(),
        "due_date": loan.due_date.isoformat(),
        "return_date": loan.return_date.isoformat() if loan.return_date else None,
        "overdue_days": loan.overdue_days(today),
        "fine": f"{loan.fine_as_of(today):.2f}",
        "status": loan.status.value,
    }


def print_books(books: List[Book], empty_message: str = "No books found.") -> None:
    """Print books in the current output mode.
    - plain: 'ID - Title by Author [Category] available/total' lines
    - json: JSON array of book records
    - rich: Rich table
    """
    mode = get_output_mode()

    if not books:
        print(empty_message)
        return

    if mode == "json":
        print(json.dumps([b.to_dict() for b in books], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="📚 Books", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Author", style="white")
        table.add_column("ISBN", no_wrap=True)
        table.add_column("Category")
        table.add_column("Available", justify="right")
        for b in books:
            table.add_row(b.book_id, b.title, b.author, b.isbn, b.category,
                          f"{b.available_quantity}/{b.total_quantity}")
        _console.print(table)
    else:
        for b in books:
            print(f"{b.book_id} - {b.title} by {b.author} [{b.category}] {b.available_quantity}/{b.total_quantity}")


def print_members(members: List[Member], empty_message: str = "No members found.") -> None:
    mode = get_output_mode()

    if not members:
        print(empty_message)
        return

    if mode == "json":
        print(json.dumps([m.to_dict() for m in members], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="👥 Members", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Name", style="white")
        table.add_column("Type")
        table.add_column("Email")
        table.add_column("Phone", no_wrap=True)
        table.add_column("Books", justify="right")
        for m in members:
            table.add_row(m.member_id, m.name, m.member_type.value, m.email, m.phone,
                          f"{m.borrowed_count}/{m.max_allowed}")
        _console.print(table)
    else:
        for m in members:
            print(f"{m.member_id} - {m.name} ({m.member_type.value}) {m.email} books {m.borrowed_count}/{m.max_allowed}")


def print_loans(loans: List[Loan], today: date, empty_message: str = "No loans found.") -> None:
    """Print loans; fines of open loans are shown as of ``today``."""
    mode = get_output_mode()

    if not loans:
        print(empty_message)
        return

    rows = [_loan_row(l, today) for l in loans]
    if mode == "json":
        print(json.dumps(rows, ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="📖 Loans", show_lines=True, header_style="bold cyan")
        for column in ("Loan", "Book", "Member", "Issued", "Due", "Returned", "Fine", "Status"):
            table.add_column(column, no_wrap=True)
        for r in rows:
            table.add_row(r["loan_id"], r["book_id"], r["member_id"], r["issue_date"], r["due_date"],
                          r["return_date"] or "-", r["fine"], r["status"])
        _console.print(table)
    else:
        for r in rows:
            returned = r["return_date"] or "not returned"
            print(f"{r['loan_id']} - book {r['book_id']} member {r['member_id']} "
                  f"due {r['due_date']} ({returned}) fine {r['fine']} {r['status']}")


def print_loan_receipt(title: str, loan: Loan, today: date) -> None:
    mode = get_output_mode()
    row = _loan_row(loan, today)

    if mode == "json":
        print(json.dumps(row, ensure_ascii=False))
    elif mode == "rich":
        content = "\n".join(f"[bold]{key.replace('_', ' ').title()}:[/] {value}" for key, value in row.items()
                            if value is not None)
        _console.print(Panel.fit(content, title=title, border_style="green"))
    else:
        print(title)
        for key, value in row.items():
            if value is not None:
                print(f"{key.replace('_', ' ').title()}: {value}")


def print_stats_result(stats: Dict[str, Any]) -> None:
    """Print the library statistics in the current output mode."""
    mode = get_output_mode()

    if not stats:
        print("No statistics available.")
        return

    labels = {
        "total_books": "Total Books",
        "available_books": "Available Books",
        "total_members": "Total Members",
        "total_loans": "Total Loans",
        "issued_loans": "Currently Issued",
        "overdue_loans": "Overdue Books",
        "total_fines": "Total Fines",
    }
    values = {key: (f"{value:.2f}" if key == "total_fines" else value) for key, value in stats.items()}

    if mode == "json":
        print(json.dumps(values, ensure_ascii=False))
    elif mode == "rich":
        content = "\n".join(f"[bold]{labels.get(k, k)}:[/] {v}" for k, v in values.items())
        _console.print(Panel.fit(content, title="📊 Stats", border_style="blue"))
    else:
        for key, value in values.items():
            print(f"{labels.get(key, key)}: {value}")
