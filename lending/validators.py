import re
from typing import Optional

from lending.member import MemberType

EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9+_.-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")
PHONE_PATTERN = re.compile(r"^[0-9]{10}$")
BOOK_ID_PATTERN = re.compile(r"^B[0-9]{3,}$")
MEMBER_ID_PATTERN = re.compile(r"^M[0-9]{3,}$")


class ISBNValidator:
    """ISBN checks: digits only, 10 or 13 long (13 with a 978/979 prefix)."""

    @staticmethod
    def normalize_isbn(raw: Optional[str]) -> str:
        if raw is None:
            return ""
        return re.sub(r"[\s-]", "", raw)

    @staticmethod
    def is_valid_isbn(isbn: Optional[str]) -> bool:
        s = ISBNValidator.normalize_isbn(isbn)
        if not s.isdigit():
            return False
        return len(s) == 10 or (len(s) == 13 and s[:3] in ("978", "979"))


class FieldValidator:
    """Format checks for the fields an operator types in."""

    @staticmethod
    def is_valid_email(email: Optional[str]) -> bool:
        return bool(email) and EMAIL_PATTERN.match(email.strip()) is not None

    @staticmethod
    def is_valid_phone(phone: Optional[str]) -> bool:
        return bool(phone) and PHONE_PATTERN.match(phone.strip()) is not None

    @staticmethod
    def is_valid_book_id(book_id: Optional[str]) -> bool:
        return bool(book_id) and BOOK_ID_PATTERN.match(book_id.strip()) is not None

    @staticmethod
    def is_valid_member_id(member_id: Optional[str]) -> bool:
        return bool(member_id) and MEMBER_ID_PATTERN.match(member_id.strip()) is not None

    @staticmethod
    def is_valid_member_type(member_type: Optional[str]) -> bool:
        if member_type is None:
            return False
        try:
            MemberType.parse(member_type)
        except ValueError:
            return False
        return True

    @staticmethod
    def is_not_empty(text: Optional[str]) -> bool:
        return text is not None and bool(text.strip())

    @staticmethod
    def has_no_separator(text: Optional[str]) -> bool:
        # The data files use '|' between fields and cannot escape it
        return text is not None and "|" not in text


def validate_book_fields(book_id: str, title: str, author: str, isbn: str, category: str,
                         quantity: int) -> Optional[str]:
    """Return an error message for the first bad field, or None."""
    if not FieldValidator.is_valid_book_id(book_id):
        return "Book ID must look like B001."
    for label, value in (("Title", title), ("Author", author), ("Category", category)):
        if not FieldValidator.is_not_empty(value):
            return f"{label} cannot be empty."
        if not FieldValidator.has_no_separator(value):
            return f"{label} cannot contain '|'."
    if not ISBNValidator.is_valid_isbn(isbn):
        return "Invalid ISBN format."
    if quantity <= 0:
        return "Quantity must be a positive number."
    return None


def validate_member_fields(member_id: str, name: str, email: str, phone: str,
                           member_type: str) -> Optional[str]:
    if not FieldValidator.is_valid_member_id(member_id):
        return "Member ID must look like M001."
    if not FieldValidator.is_not_empty(name):
        return "Name cannot be empty."
    if not FieldValidator.has_no_separator(name):
        return "Name cannot contain '|'."
    if not FieldValidator.is_valid_email(email):
        return "Invalid email address."
    if not FieldValidator.is_valid_phone(phone):
        return "Phone number must be 10 digits."
    if not FieldValidator.is_valid_member_type(member_type):
        return "Member type must be STUDENT or FACULTY."
    return None
