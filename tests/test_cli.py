import json
from datetime import date, timedelta

import pytest
from typer.testing import CliRunner

from lending.book import Book
from lending.cli import app
from lending.database import LOANS_FILE
from lending.library import Library
from lending.loan import Loan
from lending.member import Member

runner = CliRunner()


@pytest.fixture(autouse=True)
def plain_output(monkeypatch):
    # --output writes the mode into the environment; undo it after each test
    monkeypatch.setenv("LIB_CLI_OUTPUT", "plain")


@pytest.fixture
def invoke(data_dir):
    def _invoke(*args):
        return runner.invoke(app, ["--data-dir", str(data_dir), *args])
    return _invoke


@pytest.fixture
def seeded(data_dir):
    lib = Library.open(data_dir)
    lib.catalog.add(Book("B001", "Dune", "Frank Herbert", "9780441172719", "Fiction", 2))
    lib.members.register(Member("M001", "Alice Reader", "alice@example.com", "9876543210", "STUDENT"))
    return lib


def test_list_no_books(invoke):
    result = invoke("list-books")
    assert result.exit_code == 0
    assert "No books in library." in result.stdout


def test_add_book_success(invoke, data_dir):
    result = invoke("add-book", "B001", "Dune", "Frank Herbert", "978-0441172719", "Fiction", "--quantity", "2")
    assert result.exit_code == 0
    assert "Successfully added: Dune by Frank Herbert (B001)" in result.stdout
    book = Library.open(data_dir).catalog.find_by_id("B001")
    assert book.isbn == "9780441172719"
    assert book.available_quantity == 2


def test_add_book_invalid_isbn(invoke):
    result = invoke("add-book", "B001", "Dune", "Frank Herbert", "12345", "Fiction")
    assert result.exit_code == 1
    assert "Error: Invalid ISBN format." in result.stdout


def test_add_book_rejects_separator(invoke):
    result = invoke("add-book", "B001", "Dune|Part One", "Frank Herbert", "9780441172719", "Fiction")
    assert result.exit_code == 1
    assert "cannot contain '|'" in result.stdout


def test_add_duplicate_book(invoke, seeded):
    result = invoke("add-book", "B001", "Other", "Someone", "9780132350884", "Misc")
    assert result.exit_code == 1
    assert "Book with ID B001 already exists." in result.stdout


def test_find_book(invoke, seeded):
    result = invoke("find-book", "b001")
    assert result.exit_code == 0
    assert "B001 - Dune by Frank Herbert [Fiction] 2/2" in result.stdout

    missing = invoke("find-book", "B404")
    assert missing.exit_code == 1
    assert "Book B404 not found." in missing.stdout


def test_update_book_partial(invoke, seeded, data_dir):
    result = invoke("update-book", "B001", "--title", "Dune (Deluxe)", "--quantity", "3")
    assert result.exit_code == 0
    book = Library.open(data_dir).catalog.find_by_id("B001")
    assert book.title == "Dune (Deluxe)"
    assert book.author == "Frank Herbert"
    assert book.total_quantity == 3


def test_update_book_negative_quantity(invoke, seeded, data_dir):
    result = invoke("update-book", "B001", "-q", "-1")
    assert result.exit_code == 1
    assert "Error: Quantity must be a positive number." in result.stdout
    assert Library.open(data_dir).catalog.find_by_id("B001").total_quantity == 2


def test_update_book_below_copies_on_loan(invoke, seeded):
    invoke("issue", "B001", "M001")
    invoke("register", "M002", "Bob Reader", "bob@example.com", "9876543211")
    invoke("issue", "B001", "M002")
    result = invoke("update-book", "B001", "-q", "1")
    assert result.exit_code == 1
    assert "Error: Cannot shrink book B001: 2 copies are currently issued." in result.stdout


def test_search_books_json(invoke, seeded):
    result = invoke("--output", "json", "search-books", "--author", "herbert")
    assert result.exit_code == 0
    payload = json.loads(result.stdout.strip().splitlines()[-1])
    assert [b["book_id"] for b in payload] == ["B001"]


def test_search_books_needs_a_criterion(invoke, seeded):
    result = invoke("search-books")
    assert result.exit_code == 1


def test_register_and_list_members(invoke):
    result = invoke("register", "M002", "Bob Lecturer", "bob@example.com", "9876543211", "--type", "faculty")
    assert result.exit_code == 0
    assert "as FACULTY, limit 5 books" in result.stdout

    listing = invoke("list-members", "--type", "FACULTY")
    assert "M002 - Bob Lecturer (FACULTY) bob@example.com books 0/5" in listing.stdout


def test_register_invalid_email(invoke):
    result = invoke("register", "M002", "Bob", "not-an-email", "9876543211")
    assert result.exit_code == 1
    assert "Invalid email address." in result.stdout


def test_find_member_by_email(invoke, seeded):
    result = invoke("find-member", "--email", "ALICE@example.com")
    assert result.exit_code == 0
    assert "M001 - Alice Reader" in result.stdout


def test_issue_and_return(invoke, seeded, data_dir):
    issued = invoke("issue", "B001", "M001")
    assert issued.exit_code == 0
    assert "Book issued successfully" in issued.stdout
    assert "Loan Id: TXN00001" in issued.stdout

    lib = Library.open(data_dir)
    assert lib.catalog.find_by_id("B001").available_quantity == 1
    assert lib.members.find_by_id("M001").borrowed_count == 1

    returned = invoke("return", "TXN00001")
    assert returned.exit_code == 0
    assert "Book returned successfully" in returned.stdout
    assert "Fine: 0.00" in returned.stdout

    again = invoke("return", "TXN00001")
    assert again.exit_code == 1
    assert "already been returned" in again.stdout


def test_remove_book_with_copies_out(invoke, seeded):
    invoke("issue", "B001", "M001")
    result = invoke("remove-book", "B001")
    assert result.exit_code == 1
    assert "currently issued" in result.stdout


def test_overdue_report(invoke, seeded, data_dir):
    issued_on = date.today() - timedelta(days=20)
    loan = Loan("TXN00001", "B001", "M001", issued_on)
    (data_dir / LOANS_FILE).write_text(loan.to_line() + "\n", encoding="utf-8")

    result = invoke("overdue")
    assert result.exit_code == 0
    assert "TXN00001" in result.stdout
    assert "fine 30.00" in result.stdout
    assert "Total fines: 30.00" in result.stdout


def test_stats(invoke, seeded):
    invoke("issue", "B001", "M001")
    result = invoke("stats")
    assert result.exit_code == 0
    assert "Total Books: 1" in result.stdout
    assert "Currently Issued: 1" in result.stdout
    assert "Total Fines: 0.00" in result.stdout
