from __future__ import annotations

from datetime import date
from enum import Enum

from lending.codec import format_date, join_fields, parse_date, split_fields

MEMBER_FIELDS = 8


class MemberType(str, Enum):
    STUDENT = "STUDENT"
    FACULTY = "FACULTY"

    @property
    def max_allowed(self) -> int:
        return BORROW_LIMITS[self]

    @classmethod
    def parse(cls, raw: "str | MemberType") -> "MemberType":
        if isinstance(raw, MemberType):
            return raw
        try:
            return cls(raw.strip().upper())
        except ValueError:
            raise ValueError(f"Unknown member type: {raw!r}. Use STUDENT or FACULTY.") from None


BORROW_LIMITS = {
    MemberType.STUDENT: 3,
    MemberType.FACULTY: 5,
}


class Member:
    """A registered borrower. The borrow limit always follows the member type."""

    def __init__(self, member_id: str, name: str, email: str, phone: str,
                 member_type: "str | MemberType", registration_date: date | None = None,
                 borrowed_count: int = 0) -> None:
        self.member_id = member_id.strip()
        self.name = name.strip()
        self.email = email.strip()
        self.phone = phone.strip()
        self.member_type = MemberType.parse(member_type)
        self.registration_date = registration_date or date.today()
        self.borrowed_count = int(borrowed_count)
        if not 0 <= self.borrowed_count <= self.max_allowed:
            raise ValueError(
                f"Borrowed count {self.borrowed_count} must be between 0 and {self.max_allowed}."
            )

    def __repr__(self) -> str:
        return f"Member({self.member_id!r}, {self.name!r}, {self.member_type.value}, {self.borrowed_count}/{self.max_allowed})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Member):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    @property
    def member_type(self) -> MemberType:
        return self._member_type

    @member_type.setter
    def member_type(self, value: "str | MemberType") -> None:
        self._member_type = MemberType.parse(value)

    @property
    def max_allowed(self) -> int:
        return self._member_type.max_allowed

    def can_borrow(self) -> bool:
        return self.borrowed_count < self.max_allowed

    def copy(self) -> "Member":
        return Member.from_dict(self.to_dict())

    def to_dict(self) -> dict:
        return {
            "member_id": self.member_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "member_type": self.member_type.value,
            "registration_date": format_date(self.registration_date),
            "borrowed_count": self.borrowed_count,
            "max_allowed": self.max_allowed,
        }

    @staticmethod
    def from_dict(data: dict) -> "Member":
        return Member(
            member_id=data["member_id"],
            name=data["name"],
            email=data["email"],
            phone=data["phone"],
            member_type=data["member_type"],
            registration_date=parse_date(data["registration_date"]),
            borrowed_count=data.get("borrowed_count", 0),
        )

    def to_line(self) -> str:
        return join_fields(
            self.member_id, self.name, self.email, self.phone, self.member_type.value,
            format_date(self.registration_date), self.borrowed_count, self.max_allowed,
        )

    @staticmethod
    def from_line(line: str) -> "Member":
        member_id, name, email, phone, member_type, registered, borrowed, _max_allowed = split_fields(line, MEMBER_FIELDS)
        # The limit column is rederived from the member type on load
        return Member(member_id, name, email, phone, member_type, parse_date(registered), int(borrowed))
