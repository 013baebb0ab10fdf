import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from lending.book import Book
from lending.database import Store
from lending.errors import DuplicateIdError, NotFoundError, OutstandingCopiesError

logger = logging.getLogger(__name__)


def _key(book_id: str) -> str:
    return book_id.strip().upper()


class BookCatalog:
    """Owns the book records and their availability counters."""

    def __init__(self, store: Store) -> None:
        self.store = store
        self._lock = threading.RLock()
        self._books: Dict[str, Book] = {}
        for book in store.load_books():
            self._books.setdefault(_key(book.book_id), book)
        logger.info(f"Loaded {len(self._books)} books")

    @contextmanager
    def locked(self) -> Iterator[None]:
        with self._lock:
            yield

    # ------------------------- Core operations ------------------------- #
    def add(self, book: Book) -> Book:
        """Add a new book. Book IDs are unique regardless of case."""
        with self._lock:
            key = _key(book.book_id)
            if key in self._books:
                raise DuplicateIdError("Book", book.book_id)
            stored = book.copy()
            self._books[key] = stored
            self._persist()
            logger.info(f"Added book {stored.book_id} ({stored.total_quantity} copies)")
            return stored.copy()

    def update(self, book: Book) -> Book:
        """Replace the descriptive fields and total of an existing book.

        Copies out on loan stay out: the available count moves with the total
        so the outstanding count is unchanged. A total below the copies on
        loan is refused.
        """
        with self._lock:
            existing = self._get(book.book_id)
            outstanding = existing.outstanding
            if book.total_quantity < outstanding:
                raise OutstandingCopiesError(existing.book_id, outstanding, action="shrink")
            existing.title = book.title
            existing.author = book.author
            existing.isbn = book.isbn
            existing.category = book.category
            existing.total_quantity = book.total_quantity
            existing.available_quantity = book.total_quantity - outstanding
            self._persist()
            logger.info(f"Updated book {existing.book_id}")
            return existing.copy()

    def remove(self, book_id: str) -> Book:
        with self._lock:
            book = self._get(book_id)
            if book.outstanding > 0:
                raise OutstandingCopiesError(book.book_id, book.outstanding)
            del self._books[_key(book_id)]
            self._persist()
            logger.info(f"Removed book {book.book_id}")
            return book.copy()

    def adjust_availability(self, book_id: str, delta: int) -> Book:
        """Move one copy on or off the shelf.

        Going below zero or above the total is ignored rather than rejected.
        """
        if delta not in (1, -1):
            raise ValueError(f"Availability can only change by one copy, got {delta}.")
        with self._lock:
            book = self._get(book_id)
            new_value = book.available_quantity + delta
            if 0 <= new_value <= book.total_quantity:
                book.available_quantity = new_value
            else:
                logger.warning(
                    f"Book {book.book_id}: availability change {delta:+d} ignored at "
                    f"{book.available_quantity}/{book.total_quantity}"
                )
            self._persist()
            return book.copy()

    # ------------------------- Lookups ------------------------- #
    def find_by_id(self, book_id: str) -> Optional[Book]:
        with self._lock:
            book = self._books.get(_key(book_id))
            return book.copy() if book else None

    def search_by_title(self, title: str) -> List[Book]:
        needle = title.lower()
        return self._select(lambda b: needle in b.title.lower())

    def search_by_author(self, author: str) -> List[Book]:
        needle = author.lower()
        return self._select(lambda b: needle in b.author.lower())

    def search_by_category(self, category: str) -> List[Book]:
        wanted = category.lower()
        return self._select(lambda b: b.category.lower() == wanted)

    def search_by_isbn(self, isbn: str) -> Optional[Book]:
        matches = self._select(lambda b: b.isbn == isbn)
        return matches[0] if matches else None

    def list_all(self) -> List[Book]:
        return self._select(lambda b: True)

    def list_available(self) -> List[Book]:
        return self._select(lambda b: b.is_available)

    def categories(self) -> List[str]:
        with self._lock:
            return list(dict.fromkeys(b.category for b in self._books.values()))

    # ------------------------- Internals ------------------------- #
    def _get(self, book_id: str) -> Book:
        book = self._books.get(_key(book_id))
        if book is None:
            raise NotFoundError("Book", book_id)
        return book

    def _select(self, predicate) -> List[Book]:
        with self._lock:
            return [b.copy() for b in self._books.values() if predicate(b)]

    def _persist(self) -> None:
        self.store.save_books(list(self._books.values()))
