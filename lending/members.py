import logging
import threading
from contextlib import contextmanager
from datetime import date
from typing import Callable, Dict, Iterator, List, Optional

from lending.database import Store
from lending.errors import DuplicateEmailError, DuplicateIdError, LimitReachedError, NotFoundError
from lending.member import Member, MemberType

logger = logging.getLogger(__name__)


def _key(member_id: str) -> str:
    return member_id.strip().upper()


class MemberDirectory:
    """Owns member records and their borrow counters."""

    def __init__(self, store: Store, clock: Callable[[], date] = date.today) -> None:
        self.store = store
        self.clock = clock
        self._lock = threading.RLock()
        self._members: Dict[str, Member] = {}
        for member in store.load_members():
            self._members.setdefault(_key(member.member_id), member)
        logger.info(f"Loaded {len(self._members)} members")

    @contextmanager
    def locked(self) -> Iterator[None]:
        with self._lock:
            yield

    def register(self, member: Member) -> Member:
        """Register a new member with nothing borrowed yet, dated today."""
        with self._lock:
            if _key(member.member_id) in self._members:
                raise DuplicateIdError("Member", member.member_id)
            if self._by_email(member.email) is not None:
                raise DuplicateEmailError(member.email)
            stored = member.copy()
            stored.borrowed_count = 0
            stored.registration_date = self.clock()
            self._members[_key(stored.member_id)] = stored
            self._persist()
            logger.info(f"Registered member {stored.member_id} as {stored.member_type.value}")
            return stored.copy()

    def update(self, member: Member) -> Member:
        """Replace name, email, phone and type. The ID, registration date and borrow count stay."""
        with self._lock:
            existing = self._get(member.member_id)
            owner = self._by_email(member.email)
            if owner is not None and owner is not existing:
                raise DuplicateEmailError(member.email)
            new_type = MemberType.parse(member.member_type)
            # A type change may not leave the member holding more than the new limit
            if existing.borrowed_count > new_type.max_allowed:
                raise LimitReachedError(existing.member_id, new_type.max_allowed)
            existing.name = member.name
            existing.email = member.email
            existing.phone = member.phone
            existing.member_type = new_type
            self._persist()
            logger.info(f"Updated member {existing.member_id}")
            return existing.copy()

    def find_by_id(self, member_id: str) -> Optional[Member]:
        with self._lock:
            member = self._members.get(_key(member_id))
            return member.copy() if member else None

    def find_by_email(self, email: str) -> Optional[Member]:
        with self._lock:
            member = self._by_email(email)
            return member.copy() if member else None

    def search_by_name(self, name: str) -> List[Member]:
        needle = name.lower()
        with self._lock:
            return [m.copy() for m in self._members.values() if needle in m.name.lower()]

    def list_all(self) -> List[Member]:
        with self._lock:
            return [m.copy() for m in self._members.values()]

    def list_by_type(self, member_type: "str | MemberType") -> List[Member]:
        wanted = MemberType.parse(member_type)
        with self._lock:
            return [m.copy() for m in self._members.values() if m.member_type is wanted]

    def can_borrow(self, member_id: str) -> bool:
        with self._lock:
            member = self._members.get(_key(member_id))
            return member is not None and member.can_borrow()

    def adjust_borrowed_count(self, member_id: str, delta: int) -> Member:
        """Count one book borrowed (+1) or given back (-1).

        Changes past zero or past the member's limit are ignored.
        """
        if delta not in (1, -1):
            raise ValueError(f"Borrowed count can only change by one book, got {delta}.")
        with self._lock:
            member = self._get(member_id)
            new_value = member.borrowed_count + delta
            if 0 <= new_value <= member.max_allowed:
                member.borrowed_count = new_value
            else:
                logger.warning(
                    f"Member {member.member_id}: borrowed count change {delta:+d} ignored at "
                    f"{member.borrowed_count}/{member.max_allowed}"
                )
            self._persist()
            return member.copy()

    def _get(self, member_id: str) -> Member:
        member = self._members.get(_key(member_id))
        if member is None:
            raise NotFoundError("Member", member_id)
        return member

    def _by_email(self, email: str) -> Optional[Member]:
        wanted = email.strip().lower()
        for member in self._members.values():
            if member.email.lower() == wanted:
                return member
        return None

    def _persist(self) -> None:
        self.store.save_members(list(self._members.values()))
