"""
Unit tests for core.identity — the keys money is aggregated under.
"""

from __future__ import annotations

from types import SimpleNamespace

from backend.app.core import identity


def _member(member_id: int, user_id: int | None = None):
    return SimpleNamespace(id=member_id, user_id=user_id)


def test_registered_member_keyed_by_user():
    assert identity.member_key(_member(3, user_id=7)) == "user:7"


def test_guest_member_keyed_by_member_id():
    assert identity.member_key(_member(7)) == "member:7"


def test_user_and_guest_with_same_number_do_not_collide():
    assert identity.member_key(_member(1, user_id=7)) != identity.member_key(_member(7))


def test_payer_key_matches_member_key_of_same_user():
    member = _member(12, user_id=5)
    expense = SimpleNamespace(paid_by_user_id=5)
    assert identity.payer_key(expense) == identity.member_key(member)


def test_split_key_prefers_user_snapshot():
    split = SimpleNamespace(member_id=12, user_id=5)
    assert identity.split_key(split) == "user:5"


def test_split_key_for_guest_uses_member_id():
    split = SimpleNamespace(member_id=12, user_id=None)
    assert identity.split_key(split) == identity.member_key(_member(12))


def test_unique_members_keeps_first_occurrence():
    first = _member(1, user_id=9)
    duplicate = _member(2, user_id=9)
    guest = _member(3)

    assert identity.unique_members([first, guest, duplicate]) == [first, guest]


def test_unique_members_on_empty_input():
    assert identity.unique_members([]) == []
