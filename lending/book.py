from __future__ import annotations

from lending.codec import join_fields, split_fields

BOOK_FIELDS = 7


class Book:
    """A title held by the library, with its copy counters."""

    def __init__(self, book_id: str, title: str, author: str, isbn: str, category: str,
                 total_quantity: int, available_quantity: int | None = None) -> None:
        self.book_id = book_id.strip()
        self.title = title.strip()
        self.author = author.strip()
        self.isbn = isbn.strip()
        self.category = category.strip()
        self.total_quantity = int(total_quantity)
        # A freshly catalogued book has every copy on the shelf
        self.available_quantity = self.total_quantity if available_quantity is None else int(available_quantity)
        if self.total_quantity < 0:
            raise ValueError("Total quantity cannot be negative.")
        if not 0 <= self.available_quantity <= self.total_quantity:
            raise ValueError(
                f"Available quantity {self.available_quantity} must be between 0 and {self.total_quantity}."
            )

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} by {self.author} ({self.book_id}, {self.available_quantity}/{self.total_quantity})"

    def __repr__(self) -> str:
        return f"Book({self.book_id!r}, {self.title!r}, available={self.available_quantity}/{self.total_quantity})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Book):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    @property
    def is_available(self) -> bool:
        return self.available_quantity > 0

    @property
    def outstanding(self) -> int:
        """Copies currently out on loan."""
        return self.total_quantity - self.available_quantity

    def copy(self) -> "Book":
        return Book.from_dict(self.to_dict())

    def to_dict(self) -> dict:
        return {
            "book_id": self.book_id,
            "title": self.title,
            "author": self.author,
            "isbn": self.isbn,
            "category": self.category,
            "total_quantity": self.total_quantity,
            "available_quantity": self.available_quantity,
        }

    @staticmethod
    def from_dict(data: dict) -> "Book":
        return Book(
            book_id=data["book_id"],
            title=data["title"],
            author=data["author"],
            isbn=data["isbn"],
            category=data["category"],
            total_quantity=data["total_quantity"],
            available_quantity=data.get("available_quantity"),
        )

    def to_line(self) -> str:
        return join_fields(
            self.book_id, self.title, self.author, self.isbn, self.category,
            self.total_quantity, self.available_quantity,
        )

    @staticmethod
    def from_line(line: str) -> "Book":
        book_id, title, author, isbn, category, total, available = split_fields(line, BOOK_FIELDS)
        return Book(book_id, title, author, isbn, category, int(total), int(available))
