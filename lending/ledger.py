"""Loan issuing and returning.

The ledger is the only place that touches more than one collection. Issuing
or returning a loan changes the book's available copies, the member's borrow
count and the loan record together: all three locks are taken in the order
catalog, directory, ledger, and the three collections are written out in one
store batch.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from typing import Callable, Dict, Iterator, List, Optional

from lending.catalog import BookCatalog
from lending.database import Store
from lending.errors import (
    AlreadyReturnedError,
    LimitReachedError,
    NotFoundError,
    UnavailableError,
)
from lending.loan import ZERO, Loan, LoanStatus
from lending.members import MemberDirectory

logger = logging.getLogger(__name__)

LOAN_ID_PREFIX = "TXN"


def format_loan_id(sequence: int) -> str:
    return f"{LOAN_ID_PREFIX}{sequence:05d}"


def _key(loan_id: str) -> str:
    return loan_id.strip().upper()


class LendingLedger:
    """Owns loan records and keeps books and members in step with them."""

    def __init__(self, store: Store, catalog: BookCatalog, members: MemberDirectory,
                 clock: Callable[[], date] = date.today) -> None:
        self.store = store
        self.catalog = catalog
        self.members = members
        self.clock = clock
        self._lock = threading.RLock()
        self._loans: List[Loan] = []
        self._index: Dict[str, Loan] = {}
        for loan in store.load_loans():
            if _key(loan.loan_id) in self._index:
                logger.warning(f"Ignoring duplicate loan {loan.loan_id}")
                continue
            self._loans.append(loan)
            self._index[_key(loan.loan_id)] = loan
        self._next_sequence = len(self._loans) + 1
        logger.info(f"Loaded {len(self._loans)} loans")

    @contextmanager
    def locked(self) -> Iterator[None]:
        with self._lock:
            yield

    # ------------------------- State changes ------------------------- #
    def issue(self, book_id: str, member_id: str) -> Loan:
        """Lend one copy of a book to a member for the standard loan period.

        Checks run in order and the first failure leaves everything untouched:
        the book must exist and have a copy on the shelf, then the member must
        exist and be under their borrowing limit.
        """
        with self.catalog.locked(), self.members.locked(), self._lock:
            book = self.catalog.find_by_id(book_id)
            if book is None:
                raise NotFoundError("Book", book_id)
            if not book.is_available:
                raise UnavailableError(book.book_id)
            member = self.members.find_by_id(member_id)
            if member is None:
                raise NotFoundError("Member", member_id)
            if not member.can_borrow():
                raise LimitReachedError(member.member_id, member.max_allowed)

            loan = Loan(self._allocate_id(), book.book_id, member.member_id, self.clock())
            with self.store.batch():
                self.catalog.adjust_availability(book.book_id, -1)
                self.members.adjust_borrowed_count(member.member_id, 1)
                self._loans.append(loan)
                self._index[_key(loan.loan_id)] = loan
                self._persist()

        logger.info(f"Issued {loan.loan_id}: book {loan.book_id} to member {loan.member_id}, due {loan.due_date}")
        return loan.copy()

    def return_loan(self, loan_id: str) -> Loan:
        """Close a loan, fixing its fine, and put the copy back on the shelf."""
        with self.catalog.locked(), self.members.locked(), self._lock:
            loan = self._index.get(_key(loan_id))
            if loan is None:
                raise NotFoundError("Loan", loan_id)
            if loan.is_returned:
                raise AlreadyReturnedError(loan.loan_id)

            loan.mark_returned(self.clock())
            with self.store.batch():
                self._restock(loan.book_id)
                self._release(loan.member_id)
                self._persist()

        logger.info(f"Returned {loan.loan_id} on {loan.return_date}, fine {loan.fine:.2f}")
        return loan.copy()

    # ------------------------- Queries ------------------------- #
    def find_by_id(self, loan_id: str) -> Optional[Loan]:
        with self._lock:
            loan = self._index.get(_key(loan_id))
            return loan.copy() if loan else None

    def list_all(self) -> List[Loan]:
        return self._select(lambda l: True)

    def list_by_member(self, member_id: str) -> List[Loan]:
        wanted = member_id.strip().upper()
        return self._select(lambda l: l.member_id.upper() == wanted)

    def list_by_book(self, book_id: str) -> List[Loan]:
        wanted = book_id.strip().upper()
        return self._select(lambda l: l.book_id.upper() == wanted)

    def list_issued(self) -> List[Loan]:
        return self._select(lambda l: l.status is LoanStatus.ISSUED)

    def list_overdue(self) -> List[Loan]:
        today = self.clock()
        return self._select(lambda l: l.is_overdue(today))

    def is_overdue(self, loan_id: str) -> bool:
        return self._require(loan_id).is_overdue(self.clock())

    def current_fine(self, loan_id: str) -> Decimal:
        """Fine owed today for an open loan, or the settled fine of a returned one."""
        return self._require(loan_id).fine_as_of(self.clock())

    def total_outstanding_fines(self) -> Decimal:
        today = self.clock()
        return sum((l.fine_as_of(today) for l in self.list_overdue()), ZERO)

    # ------------------------- Internals ------------------------- #
    def _allocate_id(self) -> str:
        loan_id = format_loan_id(self._next_sequence)
        while _key(loan_id) in self._index:
            self._next_sequence += 1
            loan_id = format_loan_id(self._next_sequence)
        self._next_sequence += 1
        return loan_id

    def _restock(self, book_id: str) -> None:
        try:
            self.catalog.adjust_availability(book_id, 1)
        except NotFoundError:
            logger.warning(f"Book {book_id} no longer in the catalog; availability not restored")

    def _release(self, member_id: str) -> None:
        try:
            self.members.adjust_borrowed_count(member_id, -1)
        except NotFoundError:
            logger.warning(f"Member {member_id} no longer registered; borrowed count not updated")

    def _require(self, loan_id: str) -> Loan:
        with self._lock:
            loan = self._index.get(_key(loan_id))
            if loan is None:
                raise NotFoundError("Loan", loan_id)
            return loan.copy()

    def _select(self, predicate) -> List[Loan]:
        with self._lock:
            return [l.copy() for l in self._loans if predicate(l)]

    def _persist(self) -> None:
        self.store.save_loans(self._loans)
