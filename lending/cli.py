import logging
from typing import Optional

import typer

from lending.book import Book
from lending.config import settings
from lending.errors import LendingError
from lending.library import Library
from lending.member import Member, MemberType
from lending.ui_helpers import (
    print_books,
    print_loan_receipt,
    print_loans,
    print_members,
    print_stats_result,
    set_output_mode,
)
from lending.validators import ISBNValidator, validate_book_fields, validate_member_fields

APP_NAME = "Library Lending CLI"

app = typer.Typer(help=APP_NAME)


def _fail(message: str) -> None:
    print(f"Error: {message}")
    raise typer.Exit(code=1)


def _library(ctx: typer.Context) -> Library:
    return ctx.obj


@app.callback()
def _global_options(
    ctx: typer.Context,
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    ),
    data_dir: Optional[str] = typer.Option(
        None,
        "--data-dir",
        "-d",
        help="Directory holding books.txt, members.txt and transactions.txt",
    ),
):
    """Global options for the CLI (output mode, data directory)."""
    if output:
        set_output_mode(output)
    ctx.obj = Library.open(data_dir or settings.data_dir)


# ------------------------- Books ------------------------- #
@app.command("add-book")
def cli_add_book(
    ctx: typer.Context,
    book_id: str,
    title: str,
    author: str,
    isbn: str,
    category: str,
    quantity: int = typer.Option(1, "--quantity", "-q", help="Number of copies"),
):
    """Add a new book to the catalog."""
    isbn = ISBNValidator.normalize_isbn(isbn)
    problem = validate_book_fields(book_id, title, author, isbn, category, quantity)
    if problem:
        _fail(problem)
    try:
        book = _library(ctx).catalog.add(Book(book_id, title, author, isbn, category, quantity))
    except LendingError as e:
        _fail(str(e))
    print(f"Successfully added: {book.title} by {book.author} ({book.book_id})")


@app.command("update-book")
def cli_update_book(
    ctx: typer.Context,
    book_id: str,
    title: Optional[str] = typer.Option(None, "--title"),
    author: Optional[str] = typer.Option(None, "--author"),
    isbn: Optional[str] = typer.Option(None, "--isbn"),
    category: Optional[str] = typer.Option(None, "--category"),
    quantity: Optional[int] = typer.Option(None, "--quantity", "-q"),
):
    """Update a book's details; fields left out keep their current value."""
    lib = _library(ctx)
    current = lib.catalog.find_by_id(book_id)
    if current is None:
        _fail(f"Book {book_id} not found.")
    fields = (
        current.book_id,
        title if title is not None else current.title,
        author if author is not None else current.author,
        ISBNValidator.normalize_isbn(isbn) if isbn is not None else current.isbn,
        category if category is not None else current.category,
        quantity if quantity is not None else current.total_quantity,
    )
    problem = validate_book_fields(*fields)
    if problem:
        _fail(problem)
    try:
        book = lib.catalog.update(Book(*fields))
    except LendingError as e:
        _fail(str(e))
    print(f"Book {book.book_id} updated.")


@app.command("remove-book")
def cli_remove_book(ctx: typer.Context, book_id: str):
    """Remove a book that has no copies out on loan."""
    try:
        book = _library(ctx).catalog.remove(book_id)
    except LendingError as e:
        _fail(str(e))
    print(f"Book {book.book_id} has been removed.")


@app.command("find-book")
def cli_find_book(ctx: typer.Context, book_id: str):
    """Show one book by its ID."""
    book = _library(ctx).catalog.find_by_id(book_id)
    if book is None:
        _fail(f"Book {book_id} not found.")
    print_books([book])


@app.command("search-books")
def cli_search_books(
    ctx: typer.Context,
    title: Optional[str] = typer.Option(None, "--title", "-t", help="Title contains"),
    author: Optional[str] = typer.Option(None, "--author", "-a", help="Author contains"),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Exact category"),
    isbn: Optional[str] = typer.Option(None, "--isbn", help="Exact ISBN"),
):
    """Search the catalog by title, author, category or ISBN."""
    catalog = _library(ctx).catalog
    if isbn:
        found = catalog.search_by_isbn(ISBNValidator.normalize_isbn(isbn))
        books = [found] if found else []
    elif title:
        books = catalog.search_by_title(title)
    elif author:
        books = catalog.search_by_author(author)
    elif category:
        books = catalog.search_by_category(category)
    else:
        _fail("Give one of --title, --author, --category or --isbn.")
    print_books(books, "No books match the criteria.")


@app.command("list-books")
def cli_list_books(
    ctx: typer.Context,
    available: bool = typer.Option(False, "--available", help="Only books with copies on the shelf"),
):
    """List every book in the catalog."""
    catalog = _library(ctx).catalog
    books = catalog.list_available() if available else catalog.list_all()
    print_books(books, "No books in library.")


# ------------------------- Members ------------------------- #
@app.command("register")
def cli_register(
    ctx: typer.Context,
    member_id: str,
    name: str,
    email: str,
    phone: str,
    member_type: str = typer.Option("STUDENT", "--type", "-t", help="STUDENT or FACULTY"),
):
    """Register a new member."""
    problem = validate_member_fields(member_id, name, email, phone, member_type)
    if problem:
        _fail(problem)
    try:
        member = _library(ctx).members.register(Member(member_id, name, email, phone, member_type))
    except LendingError as e:
        _fail(str(e))
    print(f"Registered {member.name} ({member.member_id}) as {member.member_type.value}, "
          f"limit {member.max_allowed} books")


@app.command("update-member")
def cli_update_member(
    ctx: typer.Context,
    member_id: str,
    name: Optional[str] = typer.Option(None, "--name"),
    email: Optional[str] = typer.Option(None, "--email"),
    phone: Optional[str] = typer.Option(None, "--phone"),
    member_type: Optional[str] = typer.Option(None, "--type", "-t"),
):
    """Update a member's contact details or type."""
    lib = _library(ctx)
    current = lib.members.find_by_id(member_id)
    if current is None:
        _fail(f"Member {member_id} not found.")
    name = name if name is not None else current.name
    email = email if email is not None else current.email
    phone = phone if phone is not None else current.phone
    member_type = member_type if member_type is not None else current.member_type.value
    problem = validate_member_fields(current.member_id, name, email, phone, member_type)
    if problem:
        _fail(problem)
    try:
        member = lib.members.update(Member(current.member_id, name, email, phone, member_type))
    except LendingError as e:
        _fail(str(e))
    print(f"Member {member.member_id} updated.")


@app.command("find-member")
def cli_find_member(
    ctx: typer.Context,
    member_id: Optional[str] = typer.Argument(None),
    email: Optional[str] = typer.Option(None, "--email", help="Look up by email instead"),
):
    """Show one member by ID or email."""
    if not member_id and not email:
        _fail("Give a member ID or --email.")
    members = _library(ctx).members
    member = members.find_by_email(email) if email else members.find_by_id(member_id)
    if member is None:
        _fail(f"Member {email or member_id} not found.")
    print_members([member])


@app.command("search-members")
def cli_search_members(ctx: typer.Context, name: str):
    """Find members whose name contains the given text."""
    print_members(_library(ctx).members.search_by_name(name), "No members match the criteria.")


@app.command("list-members")
def cli_list_members(
    ctx: typer.Context,
    member_type: Optional[str] = typer.Option(None, "--type", "-t", help="STUDENT or FACULTY"),
):
    """List registered members."""
    members = _library(ctx).members
    if member_type:
        try:
            listed = members.list_by_type(MemberType.parse(member_type))
        except ValueError as e:
            _fail(str(e))
    else:
        listed = members.list_all()
    print_members(listed, "No members registered.")


# ------------------------- Loans ------------------------- #
@app.command("issue")
def cli_issue(ctx: typer.Context, book_id: str, member_id: str):
    """Issue a book to a member."""
    ledger = _library(ctx).ledger
    try:
        loan = ledger.issue(book_id, member_id)
    except LendingError as e:
        _fail(str(e))
    print_loan_receipt("Book issued successfully", loan, ledger.clock())


@app.command("return")
def cli_return(ctx: typer.Context, loan_id: str):
    """Return a loaned book and settle its fine."""
    ledger = _library(ctx).ledger
    try:
        loan = ledger.return_loan(loan_id)
    except LendingError as e:
        _fail(str(e))
    print_loan_receipt("Book returned successfully", loan, ledger.clock())


@app.command("loans")
def cli_loans(
    ctx: typer.Context,
    member: Optional[str] = typer.Option(None, "--member", "-m", help="Loans of one member"),
    book: Optional[str] = typer.Option(None, "--book", "-b", help="Loans of one book"),
    issued: bool = typer.Option(False, "--issued", help="Only loans not yet returned"),
):
    """List loans."""
    ledger = _library(ctx).ledger
    if member:
        loans = ledger.list_by_member(member)
    elif book:
        loans = ledger.list_by_book(book)
    else:
        loans = ledger.list_all()
    if issued:
        loans = [l for l in loans if not l.is_returned]
    print_loans(loans, ledger.clock(), "No loans found.")


@app.command("overdue")
def cli_overdue(ctx: typer.Context):
    """Overdue loans with the fine owed as of today."""
    ledger = _library(ctx).ledger
    overdue = ledger.list_overdue()
    print_loans(overdue, ledger.clock(), "No overdue books!")
    if overdue:
        print(f"Total fines: {ledger.total_outstanding_fines():.2f}")


@app.command("stats")
def cli_stats(ctx: typer.Context):
    """Show library statistics."""
    print_stats_result(_library(ctx).get_statistics())


def main() -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app()


if __name__ == "__main__":
    main()
