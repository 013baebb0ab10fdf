"""Library Lending - Core Application Package

This package contains:
- Data models and their line formats (book.py, member.py, loan.py)
- Persistence layer (database.py)
- Book catalog, member directory and lending ledger (catalog.py, members.py, ledger.py)
- Library facade wiring them together (library.py)
- CLI interface (cli.py)
"""

from lending.book import Book
from lending.catalog import BookCatalog
from lending.database import FileStore, MemoryStore, Store
from lending.errors import (
    AlreadyReturnedError,
    DuplicateEmailError,
    DuplicateIdError,
    LendingError,
    LimitReachedError,
    NotFoundError,
    OutstandingCopiesError,
    UnavailableError,
)
from lending.ledger import LendingLedger
from lending.library import Library
from lending.loan import Loan, LoanStatus, compute_fine
from lending.member import Member, MemberType
from lending.members import MemberDirectory

__all__ = [
    "Book",
    "Member",
    "MemberType",
    "Loan",
    "LoanStatus",
    "compute_fine",
    "Store",
    "FileStore",
    "MemoryStore",
    "BookCatalog",
    "MemberDirectory",
    "LendingLedger",
    "Library",
    "LendingError",
    "NotFoundError",
    "DuplicateIdError",
    "DuplicateEmailError",
    "UnavailableError",
    "LimitReachedError",
    "OutstandingCopiesError",
    "AlreadyReturnedError",
]
