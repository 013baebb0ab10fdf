import logging
import os
from datetime import date
from typing import Any, Callable, Dict, Optional

from lending.catalog import BookCatalog
from lending.config import settings
from lending.database import FileStore, Store
from lending.ledger import LendingLedger
from lending.members import MemberDirectory

logger = logging.getLogger(__name__)


class Library:
    """Wires a store to the catalog, member directory and lending ledger."""

    def __init__(self, store: Store, clock: Callable[[], date] = date.today) -> None:
        self.store = store
        self.catalog = BookCatalog(store)
        self.members = MemberDirectory(store, clock=clock)
        self.ledger = LendingLedger(store, self.catalog, self.members, clock=clock)

    @classmethod
    def open(cls, data_dir: "Optional[str | os.PathLike[str]]" = None,
             clock: Callable[[], date] = date.today) -> "Library":
        """Open the library kept in ``data_dir`` (the configured data directory by default)."""
        store = FileStore(data_dir or settings.data_dir)
        logger.info(f"Opening library at {store.data_dir}")
        return cls(store, clock=clock)

    def snapshot(self) -> Dict[str, list]:
        """Copies of every collection taken at one consistent instant."""
        with self.catalog.locked(), self.members.locked(), self.ledger.locked():
            return {
                "books": self.catalog.list_all(),
                "members": self.members.list_all(),
                "loans": self.ledger.list_all(),
            }

    def get_statistics(self) -> Dict[str, Any]:
        with self.catalog.locked(), self.members.locked(), self.ledger.locked():
            return {
                "total_books": len(self.catalog.list_all()),
                "available_books": len(self.catalog.list_available()),
                "total_members": len(self.members.list_all()),
                "total_loans": len(self.ledger.list_all()),
                "issued_loans": len(self.ledger.list_issued()),
                "overdue_loans": len(self.ledger.list_overdue()),
                "total_fines": self.ledger.total_outstanding_fines(),
            }
