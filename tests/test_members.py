from datetime import date

import pytest

from lending.errors import DuplicateEmailError, DuplicateIdError, LimitReachedError, NotFoundError
from lending.member import Member, MemberType
from lending.members import MemberDirectory


@pytest.fixture
def directory(store):
    directory = MemberDirectory(store)
    directory.register(Member("M001", "Alice Reader", "alice@example.com", "9876543210", "STUDENT"))
    directory.register(Member("M002", "Bob Lecturer", "bob@example.com", "9876543211", "FACULTY"))
    return directory


def test_register_sets_limit_from_type(directory):
    assert directory.find_by_id("M001").max_allowed == 3
    assert directory.find_by_id("M002").max_allowed == 5
    assert directory.find_by_id("m002").borrowed_count == 0


def test_register_duplicate_id(directory):
    with pytest.raises(DuplicateIdError):
        directory.register(Member("M001", "Someone", "someone@example.com", "9876543212", "STUDENT"))


def test_register_duplicate_email_ignores_case(directory):
    with pytest.raises(DuplicateEmailError):
        directory.register(Member("M003", "Alice Again", "ALICE@example.com", "9876543212", "STUDENT"))
    assert len(directory.list_all()) == 2


def test_find_and_search(directory):
    assert directory.find_by_email("Bob@Example.com").member_id == "M002"
    assert directory.find_by_email("nobody@example.com") is None
    assert [m.member_id for m in directory.search_by_name("reader")] == ["M001"]
    assert [m.member_id for m in directory.list_by_type(MemberType.FACULTY)] == ["M002"]


def test_update_recomputes_limit(directory):
    updated = directory.update(Member("M001", "Alice R.", "alice.r@example.com", "9876543219", "FACULTY"))
    assert updated.name == "Alice R."
    assert updated.email == "alice.r@example.com"
    assert updated.max_allowed == 5


def test_update_keeps_borrow_count_and_registration(directory):
    directory.adjust_borrowed_count("M001", 1)
    before = directory.find_by_id("M001")
    updated = directory.update(Member("M001", "Alice", "alice@example.com", "9876543210", "STUDENT"))
    assert updated.borrowed_count == 1
    assert updated.registration_date == before.registration_date


def test_update_not_found(directory):
    with pytest.raises(NotFoundError):
        directory.update(Member("M999", "Ghost", "ghost@example.com", "9876543210", "STUDENT"))


def test_update_to_taken_email(directory):
    with pytest.raises(DuplicateEmailError):
        directory.update(Member("M001", "Alice", "bob@example.com", "9876543210", "STUDENT"))


def test_downgrade_below_current_borrow_count_is_refused(directory):
    for _ in range(4):
        directory.adjust_borrowed_count("M002", 1)
    with pytest.raises(LimitReachedError):
        directory.update(Member("M002", "Bob Lecturer", "bob@example.com", "9876543211", "STUDENT"))
    assert directory.find_by_id("M002").member_type is MemberType.FACULTY


def test_can_borrow_and_clamp(directory):
    for _ in range(3):
        directory.adjust_borrowed_count("M001", 1)
    assert not directory.can_borrow("M001")
    # At the limit, a further increment is ignored
    assert directory.adjust_borrowed_count("M001", 1).borrowed_count == 3
    assert directory.can_borrow("M002")
    assert not directory.can_borrow("M999")


def test_decrement_at_zero_is_ignored(directory):
    assert directory.adjust_borrowed_count("M002", -1).borrowed_count == 0


def test_persistence(directory, store):
    directory.adjust_borrowed_count("M002", 1)
    reopened = MemberDirectory(store)
    assert reopened.find_by_id("M002").borrowed_count == 1
    assert reopened.find_by_email("alice@example.com").member_id == "M001"


def test_register_dates_member_by_the_library_clock(lib, store, clock):
    registered = lib.members.register(
        Member("M009", "Dana Reader", "dana@example.com", "9876543219", "STUDENT", date(2001, 1, 1))
    )
    assert registered.registration_date == clock.today
    assert MemberDirectory(store).find_by_id("M009").registration_date == date(2024, 3, 1)
