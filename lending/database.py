"""Persistence for the book, member and loan collections.

Each collection lives in its own text file, one record per line. Every save
rewrites the whole file: the new content goes to a temporary file in the same
directory which then replaces the original, so a crash mid-write never leaves
a truncated file behind.
"""

import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, TypeVar

from lending.book import Book
from lending.loan import Loan
from lending.member import Member

logger = logging.getLogger(__name__)

BOOKS_FILE = "books.txt"
MEMBERS_FILE = "members.txt"
LOANS_FILE = "transactions.txt"

T = TypeVar("T")


class Store(ABC):
    """Storage for the three collections, injected into each component.

    Saves issued inside a ``batch()`` block are held back and written together
    when the outermost block exits.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._batch_depth = 0
        self._pending: Dict[str, List[str]] = {}

    @abstractmethod
    def read_lines(self, name: str) -> Optional[List[str]]:
        """Raw lines of a collection, or None if it was never written."""

    @abstractmethod
    def write_lines(self, name: str, lines: List[str]) -> None:
        """Replace a collection with the given lines."""

    # ------------------------- Collections ------------------------- #
    def load_books(self) -> List[Book]:
        return self._load(BOOKS_FILE, Book.from_line)

    def save_books(self, books: List[Book]) -> None:
        self._save(BOOKS_FILE, [b.to_line() for b in books])

    def load_members(self) -> List[Member]:
        return self._load(MEMBERS_FILE, Member.from_line)

    def save_members(self, members: List[Member]) -> None:
        self._save(MEMBERS_FILE, [m.to_line() for m in members])

    def load_loans(self) -> List[Loan]:
        return self._load(LOANS_FILE, Loan.from_line)

    def save_loans(self, loans: List[Loan]) -> None:
        self._save(LOANS_FILE, [l.to_line() for l in loans])

    @contextmanager
    def batch(self) -> Iterator[None]:
        with self._lock:
            self._batch_depth += 1
            try:
                yield
            finally:
                self._batch_depth -= 1
                if self._batch_depth == 0:
                    pending, self._pending = self._pending, {}
                    for name, lines in pending.items():
                        self._write(name, lines)

    # ------------------------- Internals ------------------------- #
    def _load(self, name: str, parse: Callable[[str], T]) -> List[T]:
        try:
            lines = self.read_lines(name)
        except OSError as e:
            logger.error(f"Could not read {name}: {e}")
            return []
        if lines is None:
            logger.info(f"{name} not found, starting with an empty collection")
            return []

        records: List[T] = []
        for number, line in enumerate(lines, 1):
            if not line.strip():
                continue
            try:
                records.append(parse(line))
            except (ValueError, KeyError) as e:
                logger.warning(f"Skipping malformed line {number} in {name}: {e}")
        return records

    def _save(self, name: str, lines: List[str]) -> None:
        with self._lock:
            if self._batch_depth:
                self._pending[name] = lines
                return
            self._write(name, lines)

    def _write(self, name: str, lines: List[str]) -> None:
        # In-memory state stays authoritative when the disk write fails
        try:
            self.write_lines(name, lines)
        except OSError as e:
            logger.error(f"Failed to save {name}: {e}")


class FileStore(Store):
    """Stores each collection as a text file under ``data_dir``."""

    def __init__(self, data_dir: "str | os.PathLike[str]") -> None:
        super().__init__()
        self.data_dir = Path(data_dir)

    def __repr__(self) -> str:
        return f"FileStore({str(self.data_dir)!r})"

    def path_for(self, name: str) -> Path:
        return self.data_dir / name

    def read_lines(self, name: str) -> Optional[List[str]]:
        path = self.path_for(name)
        if not path.exists():
            return None
        with open(path, "rb") as f:
            raw = f.read().splitlines()
        lines = []
        for number, chunk in enumerate(raw, 1):
            try:
                lines.append(chunk.decode("utf-8"))
            except UnicodeDecodeError as e:
                logger.warning(f"Skipping undecodable line {number} in {name}: {e}")
                # blank placeholder keeps later line numbers right
                lines.append("")
        return lines

    def write_lines(self, name: str, lines: List[str]) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(name)
        fd, tmp_path = tempfile.mkstemp(prefix=f".{name}.", suffix=".tmp", dir=self.data_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                for line in lines:
                    f.write(line)
                    f.write("\n")
            os.replace(tmp_path, path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        logger.debug(f"Saved {len(lines)} records to {path}")


class MemoryStore(Store):
    """Keeps collections in memory; handy for scripts and tests."""

    def __init__(self) -> None:
        super().__init__()
        self.files: Dict[str, List[str]] = {}

    def read_lines(self, name: str) -> Optional[List[str]]:
        lines = self.files.get(name)
        return list(lines) if lines is not None else None

    def write_lines(self, name: str, lines: List[str]) -> None:
        self.files[name] = list(lines)
