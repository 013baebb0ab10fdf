from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional

from lending.codec import days_between, format_date, join_fields, parse_date, split_fields

LOAN_FIELDS = 8
LOAN_PERIOD_DAYS = 14
FINE_PER_DAY = Decimal("5.00")
ZERO = Decimal("0.00")
CENTS = Decimal("0.01")


class LoanStatus(str, Enum):
    ISSUED = "ISSUED"
    RETURNED = "RETURNED"


def _money(value) -> Decimal:
    amount = Decimal(value)
    if not amount.is_finite() or amount < 0:
        raise ValueError(f"Invalid fine amount: {value!r}")
    try:
        return amount.quantize(CENTS)
    except InvalidOperation:
        raise ValueError(f"Fine amount out of range: {value!r}") from None


def overdue_days(due_date: date, on: date) -> int:
    """Whole days past the due date, floored at zero."""
    return max(0, days_between(due_date, on))


def compute_fine(due_date: date, on: date) -> Decimal:
    """Flat per-day fine: no cap, no compounding."""
    return (overdue_days(due_date, on) * FINE_PER_DAY).quantize(CENTS)


class Loan:
    """One copy of a book lent to one member.

    Before the loan is returned its fine is derived from the evaluation date on
    every query. Returning it stores the fine once and it never changes again.
    """

    def __init__(self, loan_id: str, book_id: str, member_id: str, issue_date: date,
                 due_date: Optional[date] = None, return_date: Optional[date] = None,
                 fine: Decimal = ZERO, status: "str | LoanStatus" = LoanStatus.ISSUED) -> None:
        self.loan_id = loan_id
        self.book_id = book_id
        self.member_id = member_id
        self.issue_date = issue_date
        self.due_date = due_date or issue_date + timedelta(days=LOAN_PERIOD_DAYS)
        self.return_date = return_date
        self._fine = _money(fine)
        self.status = LoanStatus(status)
        if self.status is LoanStatus.RETURNED and self.return_date is None:
            raise ValueError(f"Returned loan {loan_id} has no return date.")
        if self.status is LoanStatus.ISSUED and self.return_date is not None:
            raise ValueError(f"Issued loan {loan_id} already has a return date.")

    def __repr__(self) -> str:
        return f"Loan({self.loan_id!r}, book={self.book_id!r}, member={self.member_id!r}, {self.status.value})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Loan):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    @property
    def is_returned(self) -> bool:
        return self.status is LoanStatus.RETURNED

    @property
    def fine(self) -> Decimal:
        """The stored fine: zero while issued, frozen once returned."""
        return self._fine

    def overdue_days(self, today: date) -> int:
        return overdue_days(self.due_date, self.return_date or today)

    def is_overdue(self, today: date) -> bool:
        return not self.is_returned and today > self.due_date

    def fine_as_of(self, today: date) -> Decimal:
        if self.is_returned:
            return self._fine
        return compute_fine(self.due_date, today)

    def mark_returned(self, today: date) -> None:
        if self.is_returned:
            raise ValueError(f"Loan {self.loan_id} is already returned.")
        self._fine = compute_fine(self.due_date, today)
        self.return_date = today
        self.status = LoanStatus.RETURNED

    def copy(self) -> "Loan":
        return Loan(
            self.loan_id, self.book_id, self.member_id, self.issue_date,
            self.due_date, self.return_date, self._fine, self.status,
        )

    def to_dict(self) -> dict:
        return {
            "loan_id": self.loan_id,
            "book_id": self.book_id,
            "member_id": self.member_id,
            "issue_date": format_date(self.issue_date),
            "due_date": format_date(self.due_date),
            "return_date": format_date(self.return_date) if self.return_date else None,
            "fine": f"{self._fine:.2f}",
            "status": self.status.value,
        }

    def to_line(self) -> str:
        return join_fields(
            self.loan_id, self.book_id, self.member_id,
            format_date(self.issue_date), format_date(self.due_date), format_date(self.return_date),
            f"{self._fine:.2f}", self.status.value,
        )

    @staticmethod
    def from_line(line: str) -> "Loan":
        loan_id, book_id, member_id, issued, due, returned, fine, status = split_fields(line, LOAN_FIELDS)
        issue_date = parse_date(issued)
        due_date = parse_date(due)
        if issue_date is None or due_date is None:
            raise ValueError("issue and due dates are required")
        try:
            amount = Decimal(fine.strip())
        except InvalidOperation:
            raise ValueError(f"invalid fine amount: {fine!r}") from None
        return Loan(loan_id, book_id, member_id, issue_date, due_date, parse_date(returned), amount, status.strip())
