"""Error types raised by the lending core.

Every error here is recoverable: callers catch them and report the problem,
the process keeps running.
"""

from __future__ import annotations


class LendingError(Exception):
    """Base class for all library lending errors."""


class NotFoundError(LendingError, LookupError):
    """A book, member or loan lookup missed."""

    def __init__(self, kind: str, identifier: str) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} {identifier} not found.")


class DuplicateIdError(LendingError, ValueError):
    def __init__(self, kind: str, identifier: str) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} with ID {identifier} already exists.")


class DuplicateEmailError(LendingError, ValueError):
    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f"Member with email {email} already exists.")


class UnavailableError(LendingError):
    """No copies of the book are left to issue."""

    def __init__(self, book_id: str) -> None:
        self.book_id = book_id
        super().__init__(f"Book {book_id} is not available.")


class LimitReachedError(LendingError):
    """The member already holds as many books as their type allows."""

    def __init__(self, member_id: str, max_allowed: int) -> None:
        self.member_id = member_id
        self.max_allowed = max_allowed
        super().__init__(f"Member {member_id} has reached the borrowing limit ({max_allowed} books).")


class OutstandingCopiesError(LendingError):
    def __init__(self, book_id: str, outstanding: int, action: str = "remove") -> None:
        self.book_id = book_id
        self.outstanding = outstanding
        super().__init__(f"Cannot {action} book {book_id}: {outstanding} copies are currently issued.")


class AlreadyReturnedError(LendingError):
    def __init__(self, loan_id: str) -> None:
        self.loan_id = loan_id
        super().__init__(f"Loan {loan_id} has already been returned.")
